"""
Conversion between unsigned fingerprints and signed storage integers.

Fingerprints are unsigned N-bit values, but the database columns are signed
N-bit integers. Values in the upper half of the range are stored in their
negative two's-complement form and restored on the way out.
"""

from typing import Any, Mapping, Optional

from hashcatalog.fingerprints import FINGERPRINT_BITS, Fingerprints


def to_db_int(num: Optional[int], bits: int) -> Optional[int]:
    """Encode an unsigned ``bits``-wide value for a signed column."""
    if num is None:
        return None
    if num >= 1 << (bits - 1):
        return num - (1 << bits)
    return num


def from_db_int(num: Optional[int], bits: int) -> Optional[int]:
    """Decode a signed ``bits``-wide column value back to unsigned."""
    if num is None:
        return None
    if num < 0:
        return num + (1 << bits)
    return num


def encode_fingerprints(fingerprints: Fingerprints) -> dict[str, Optional[int]]:
    """Column values for a fingerprint set."""
    return {
        name: to_db_int(value, FINGERPRINT_BITS[name])
        for name, value in fingerprints.as_dict().items()
    }


def decode_fingerprints(row: Mapping[str, Any] | Any) -> Fingerprints:
    """Fingerprint set from a row mapping or an object with fingerprint attributes."""
    if isinstance(row, Mapping):
        values = {name: row.get(name) for name in FINGERPRINT_BITS}
    else:
        values = {name: getattr(row, name) for name in FINGERPRINT_BITS}
    return Fingerprints(**{
        name: from_db_int(value, FINGERPRINT_BITS[name])
        for name, value in values.items()
    })
