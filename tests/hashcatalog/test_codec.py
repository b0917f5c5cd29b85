# SPDX-License-Identifier: MIT
"""Tests for the signed storage codec."""

import pytest

from hashcatalog.codec import decode_fingerprints, encode_fingerprints, from_db_int, to_db_int
from hashcatalog.fingerprints import Fingerprints


class TestFixedWidthCodec:
    """Test unsigned <-> signed conversion."""

    @pytest.mark.parametrize("value, bits, stored", [
        (0, 32, 0),
        (0x7FFFFFFF, 32, 0x7FFFFFFF),
        (0x80000000, 32, -0x80000000),
        (0xFFFFFFFF, 32, -1),
        (0x7FFFFFFFFFFFFFFF, 64, 0x7FFFFFFFFFFFFFFF),
        (0x8000000000000000, 64, -0x8000000000000000),
        (0xB8B7A7186B90559E, 64, 0xB8B7A7186B90559E - 2**64),
        (0x40000000, 31, 0x40000000 - 2**31),
    ])
    def test_encode(self, value, bits, stored):
        assert to_db_int(value, bits) == stored
        assert from_db_int(stored, bits) == value

    @pytest.mark.parametrize("bits", [32, 64])
    @pytest.mark.parametrize("offset", [0, 1, 2**8, 2**16 + 3])
    def test_round_trip_at_edges(self, bits, offset):
        for value in (offset, (1 << (bits - 1)) - 1 - offset, (1 << (bits - 1)) + offset, (1 << bits) - 1 - offset):
            stored = to_db_int(value, bits)
            assert -(1 << (bits - 1)) <= stored < 1 << (bits - 1)
            assert from_db_int(stored, bits) == value

    def test_none_passes_through(self):
        assert to_db_int(None, 32) is None
        assert from_db_int(None, 64) is None


class TestFingerprintEncoding:
    """Test per-column encoding of fingerprint sets."""

    def test_encode_uses_column_widths(self, lol_fingerprints):
        stored = encode_fingerprints(lol_fingerprints)
        assert stored == {
            "fnv32": 0x6B90559E,
            "fnv64": 0xB8B7A7186B90559E - 2**64,
            "crc32": 0x18EDB14D,
            "crc64": 0x6EDC72D3A99101FE,
        }

    def test_decode_mapping_and_object(self, lol_fingerprints):
        stored = encode_fingerprints(lol_fingerprints)
        assert decode_fingerprints(stored) == lol_fingerprints

        class Row:
            fnv32 = stored["fnv32"]
            fnv64 = stored["fnv64"]
            crc32 = stored["crc32"]
            crc64 = stored["crc64"]

        assert decode_fingerprints(Row()) == lol_fingerprints

    def test_partial_fingerprints(self):
        fp = Fingerprints(crc32=0xFFFFFFFF)
        stored = encode_fingerprints(fp)
        assert stored == {"fnv32": None, "fnv64": None, "crc32": -1, "crc64": None}
        assert decode_fingerprints(stored) == fp
