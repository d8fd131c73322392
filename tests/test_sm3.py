"""
Test Suite for the SM3 Hash

Published vectors from GB/T 32905 plus streaming behavior.
"""

import secrets

import pytest
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes

from sm2.sm3 import SM3, pad, rotl32, sm3_hash


EMPTY_DIGEST = "1ab21d8355cfa17f8e61194831e81a8f22bec8c728fefb747ed035eb5082aa2b"
ABC_DIGEST = "66c7f0f462eeedd9d1f2d46bdc10e4e24167c4875cf2f7a2297da02b8f4ba8e0"
ABCD16_DIGEST = "debe9ff92275b8a138604889c18e5a4d6fdb70e5387e5765293dcba39c0c5732"


def _openssl_sm3_supported() -> bool:
    try:
        return default_backend().hash_supported(hashes.SM3())
    except Exception:
        return False


class TestSM3Vectors:
    """Known-answer tests."""

    def test_empty_message(self):
        assert sm3_hash(b"").hex() == EMPTY_DIGEST

    def test_abc(self):
        assert sm3_hash(b"abc").hex() == ABC_DIGEST

    def test_two_block_message(self):
        """64-byte input pads into a second block."""
        assert sm3_hash(b"abcd" * 16).hex() == ABCD16_DIGEST

    def test_deterministic(self):
        data = secrets.token_bytes(100)
        assert sm3_hash(data) == sm3_hash(data)
        assert len(sm3_hash(data)) == 32


class TestSM3Streaming:
    """Tests for the hashlib-style interface."""

    def test_incremental_matches_one_shot(self):
        """Chunked updates across block boundaries give the same digest."""
        data = secrets.token_bytes(300)
        h = SM3()
        for start in range(0, len(data), 37):
            h.update(data[start:start + 37])

        assert h.digest() == sm3_hash(data)

    def test_digest_does_not_finalize(self):
        h = SM3(b"ab")
        first = h.hexdigest()
        h.update(b"c")

        assert first != h.hexdigest()
        assert h.hexdigest() == ABC_DIGEST

    def test_copy_is_independent(self):
        h = SM3(b"abc")
        clone = h.copy()
        clone.update(b"more")

        assert h.hexdigest() == ABC_DIGEST
        assert clone.digest() == sm3_hash(b"abcmore")

    def test_attributes(self):
        h = SM3()
        assert h.name == "sm3"
        assert h.digest_size == 32
        assert h.block_size == 64


class TestSM3Internals:
    """Tests for padding and word helpers."""

    @pytest.mark.parametrize("length", [0, 3, 55, 56, 63, 64, 119, 120])
    def test_padding_aligns_to_block(self, length):
        padding = pad(length)

        assert (length + len(padding)) % 64 == 0
        assert padding[0] == 0x80
        assert int.from_bytes(padding[-8:], 'big') == length * 8

    def test_rotl32(self):
        assert rotl32(0x80000000, 1) == 1
        assert rotl32(0x12345678, 0) == 0x12345678
        assert rotl32(0x12345678, 32) == 0x12345678
        assert rotl32(0x00000001, 31) == 0x80000000


@pytest.mark.skipif(not _openssl_sm3_supported(), reason="OpenSSL backend without SM3")
class TestSM3AgainstOpenSSL:
    """Cross-check against the cryptography package's SM3."""

    @pytest.mark.parametrize("length", [0, 1, 55, 56, 64, 65, 200])
    def test_matches_openssl(self, length):
        data = secrets.token_bytes(length)
        digest = hashes.Hash(hashes.SM3())
        digest.update(data)

        assert sm3_hash(data) == digest.finalize()
