"""
Fingerprint computation for catalog strings.

Four fingerprints are computed for every string:

- WD-FNV64: FNV-style hash over the UTF-16 code units of the normalized
  string, tagged with a ``101`` marker in its top three bits
- WD-FNV32: derived from WD-FNV64, never in the reserved ``0xFFFFxxxx`` range
- CRC32 / CRC64: standard checksums over the raw UTF-8 bytes

The WD-FNV hashes see the normalized string, the CRC hashes see the raw one.
"""

from dataclasses import asdict, dataclass
from typing import Optional

import crcmod
import crcmod.predefined

from hashcatalog.exceptions import InvalidHexStringError
from hashcatalog.normalizers import normalize_string, replace_lone_surrogates

FNV64_OFFSET_BASIS = 0xCBF29CE484222325
FNV64_PRIME = 0x100000001B3

MASK_32 = 0xFFFFFFFF
MASK_64 = 0xFFFFFFFFFFFFFFFF

# Low 61 bits carry the hash, the top three bits are the 0b101 format tag
WD_FNV64_VALUE_MASK = 0x1FFFFFFFFFFFFFFF
WD_FNV64_MARKER = 0xA000000000000000

WD_FNV32_RESERVED_MASK = 0xFFFF0000
WD_FNV32_RESERVED_BIT = 1 << 16

# Storage width of each fingerprint column, in bits
FINGERPRINT_BITS = {
    "fnv32": 32,
    "fnv64": 64,
    "crc32": 32,
    "crc64": 64,
}
FINGERPRINT_FIELDS = tuple(FINGERPRINT_BITS)

_crc32 = crcmod.predefined.mkPredefinedCrcFun("crc-32")
# CRC-64/ECMA-182: no reflection, zero init, no final xor
_crc64 = crcmod.mkCrcFun(0x142F0E1EBA9EA3693, initCrc=0, rev=False, xorOut=0)


@dataclass(frozen=True)
class Fingerprints:
    """
    Unsigned fingerprint set of one string.

    Any field may be None for placeholder data where that fingerprint
    was never observed.
    """
    fnv32: Optional[int] = None
    fnv64: Optional[int] = None
    crc32: Optional[int] = None
    crc64: Optional[int] = None

    def as_dict(self) -> dict[str, Optional[int]]:
        return asdict(self)

    def is_empty(self) -> bool:
        return all(value is None for value in self.as_dict().values())

    def matches(self, candidate: "Fingerprints") -> bool:
        """
        Check whether a candidate fingerprint set satisfies this one.

        A field that is None on this side matches anything, so a placeholder
        that only knows its fnv32 matches every candidate with the same fnv32.
        """
        for name in FINGERPRINT_FIELDS:
            known = getattr(self, name)
            if known is not None and known != getattr(candidate, name):
                return False
        return True


def _wd_fnv64_raw(s: str) -> int:
    encoded = normalize_string(s).encode("utf-16-le", "surrogatepass")
    h = FNV64_OFFSET_BASIS
    for i in range(0, len(encoded), 2):
        unit = encoded[i] | (encoded[i + 1] << 8)
        h = ((h * FNV64_PRIME) ^ unit) & MASK_64
    return h


def wd_fnv64(s: str) -> int:
    """WD-FNV64 of a string."""
    return (_wd_fnv64_raw(s) & WD_FNV64_VALUE_MASK) | WD_FNV64_MARKER


def wd_fnv32(s: str) -> int:
    """WD-FNV32 of a string, the low half of WD-FNV64 outside the reserved range."""
    hash32 = wd_fnv64(s) & MASK_32
    if hash32 & WD_FNV32_RESERVED_MASK == WD_FNV32_RESERVED_MASK:
        return hash32 & ~WD_FNV32_RESERVED_BIT
    return hash32


def _utf8_bytes(s: str) -> bytes:
    return replace_lone_surrogates(s).encode("utf-8")


def crc32(s: str) -> int:
    """CRC-32 of the raw UTF-8 bytes."""
    return _crc32(_utf8_bytes(s))


def crc64(s: str) -> int:
    """CRC-64 (ECMA-182) of the raw UTF-8 bytes."""
    return _crc64(_utf8_bytes(s))


def compute_fingerprints(s: str) -> Fingerprints:
    """Compute all four fingerprints of a string."""
    return Fingerprints(
        fnv32=wd_fnv32(s),
        fnv64=wd_fnv64(s),
        crc32=crc32(s),
        crc64=crc64(s),
    )


# =============================================================================
# Hex display helpers
# =============================================================================

def to_hex_string(num: int) -> str:
    """Upper-case hex, zero-padded to 8 digits up to 32 bits and 16 beyond."""
    width = 16 if num > MASK_32 else 8
    return format(num, "X").rjust(width, "0")


def reverse_hex_string(value: str) -> str:
    """
    Swap the byte order of a hex string.

    Raises:
        InvalidHexStringError: If the string has an odd number of digits
    """
    if len(value) % 2 != 0:
        raise InvalidHexStringError("Input hex string length must be a multiple of 2", value)
    return "".join(value[i:i + 2] for i in range(len(value) - 2, -1, -2))


def to_reverse_hex_string(num: int | str) -> str:
    """Byte-swapped hex form of a number or of an existing hex string."""
    return reverse_hex_string(num if isinstance(num, str) else to_hex_string(num))


def parse_hex_string(value: str) -> int:
    """
    Parse a user supplied hex fingerprint, with or without a 0x prefix.

    Raises:
        InvalidHexStringError: If the value is not a hex number
    """
    digits = value.strip()
    if digits[:2].lower() == "0x":
        digits = digits[2:]
    if not digits or any(c not in "0123456789abcdefABCDEF" for c in digits):
        raise InvalidHexStringError(f"Not a hex string: {value!r}", value)
    return int(digits, 16)
