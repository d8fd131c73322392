"""
Test Suite for SM2 Encryption

Tests for:
- Round trips and ciphertext layout
- Tamper and format detection
- Legacy C1C2C3 order
- All-zero keystream handling
"""

import pytest

import sm2.cipher
from sm2 import decrypt, encrypt, generate_keypair
from sm2.cipher import CipherConfig, CipherMode, SM2Cipher
from sm2.curve import SM2Curve, SM2Params
from sm2.errors import FormatError, IntegrityError, SM2Error


@pytest.fixture(scope="module")
def keypair():
    return generate_keypair()


class TestEncryptDecrypt:
    """Tests for encrypt/decrypt round trips."""

    def test_round_trip(self, keypair):
        message = b"Firmware update for ECU"
        ciphertext = encrypt(message, keypair.public_bytes())

        assert decrypt(ciphertext, keypair.private_bytes()) == message

    def test_layout_and_length(self, keypair):
        message = b"x" * 50
        ciphertext = encrypt(message, keypair.public_bytes())

        assert len(ciphertext) == 65 + 32 + len(message)
        assert ciphertext[0] == 0x04

    def test_empty_message(self, keypair):
        ciphertext = encrypt(b"", keypair.public_bytes())

        assert len(ciphertext) == 97
        assert decrypt(ciphertext, keypair.private_bytes()) == b""

    def test_multi_block_message(self, keypair):
        """Messages longer than one KDF block."""
        message = bytes(range(256)) * 2
        assert decrypt(encrypt(message, keypair.public_bytes()), keypair.private_bytes()) == message

    def test_non_deterministic(self, keypair):
        """Fresh ephemeral keys make every ciphertext different."""
        message = b"same message"
        ct1 = encrypt(message, keypair.public_bytes())
        ct2 = encrypt(message, keypair.public_bytes())

        assert ct1 != ct2
        assert decrypt(ct1, keypair.private_bytes()) == message
        assert decrypt(ct2, keypair.private_bytes()) == message

    def test_fixed_nonce_is_deterministic(self, keypair):
        cipher = SM2Cipher(nonce_generator=lambda: 0x1234567890ABCDEF)
        message = b"deterministic"

        assert cipher.encrypt(message, keypair.public_bytes()) == \
            cipher.encrypt(message, keypair.public_bytes())

    def test_accepts_decoded_keys(self, keypair):
        cipher = SM2Cipher()
        ciphertext = cipher.encrypt(b"points", keypair.public_key)

        assert cipher.decrypt(ciphertext, keypair.private_key) == b"points"

    def test_malformed_public_key(self):
        with pytest.raises(FormatError):
            encrypt(b"data", b"\x04" + b"\x01" * 64)

    def test_largest_private_key_decrypts(self):
        d = SM2Params.N - 1
        q = SM2Curve().multiply_generator(d)
        ciphertext = encrypt(b"edge of the range", q.to_bytes())

        assert decrypt(ciphertext, d.to_bytes(32, 'big')) == b"edge of the range"


class TestTamperDetection:
    """Tests for integrity and format failures."""

    def test_flipped_c2_byte(self, keypair):
        ciphertext = bytearray(encrypt(b"sensitive payload", keypair.public_bytes()))
        ciphertext[97 + 3] ^= 0x01

        with pytest.raises(IntegrityError):
            decrypt(bytes(ciphertext), keypair.private_bytes())

    @pytest.mark.parametrize("offset", [65, 80, 96])
    def test_flipped_c3_byte(self, keypair, offset):
        ciphertext = bytearray(encrypt(b"sensitive payload", keypair.public_bytes()))
        ciphertext[offset] ^= 0x80

        with pytest.raises(IntegrityError):
            decrypt(bytes(ciphertext), keypair.private_bytes())

    def test_wrong_private_key(self, keypair):
        other = generate_keypair()
        ciphertext = encrypt(b"for someone else", keypair.public_bytes())

        with pytest.raises(IntegrityError):
            decrypt(ciphertext, other.private_bytes())

    def test_bad_marker(self, keypair):
        ciphertext = bytearray(encrypt(b"data", keypair.public_bytes()))
        ciphertext[0] = 0x02

        with pytest.raises(FormatError):
            decrypt(bytes(ciphertext), keypair.private_bytes())

    def test_too_short(self, keypair):
        with pytest.raises(FormatError):
            decrypt(b"\x04" + b"\x00" * 95, keypair.private_bytes())

    def test_c1_off_curve(self, keypair):
        ciphertext = bytearray(encrypt(b"data", keypair.public_bytes()))
        ciphertext[64] ^= 0x01

        with pytest.raises(FormatError):
            decrypt(bytes(ciphertext), keypair.private_bytes())

    def test_errors_share_base_class(self):
        assert issubclass(FormatError, SM2Error)
        assert issubclass(IntegrityError, SM2Error)


class TestLegacyMode:
    """Tests for the C1C2C3 field order."""

    def test_round_trip(self, keypair):
        cipher = SM2Cipher(CipherConfig(mode=CipherMode.C1C2C3))
        message = b"legacy order"
        ciphertext = cipher.encrypt(message, keypair.public_bytes())

        assert cipher.decrypt(ciphertext, keypair.private_bytes()) == message

    def test_orders_are_permutations(self, keypair):
        """Same nonce: both layouts hold the same C1, C2 and C3."""
        k = 0xC0FFEE
        modern = SM2Cipher(nonce_generator=lambda: k)
        legacy = SM2Cipher(CipherConfig(mode=CipherMode.C1C2C3), nonce_generator=lambda: k)
        message = b"permutation"

        ct_modern = modern.encrypt(message, keypair.public_bytes())
        ct_legacy = legacy.encrypt(message, keypair.public_bytes())

        c1, c3, c2 = ct_modern[:65], ct_modern[65:97], ct_modern[97:]
        assert ct_legacy == c1 + c2 + c3

    def test_mode_mismatch_fails(self, keypair):
        legacy = SM2Cipher(CipherConfig(mode=CipherMode.C1C2C3))
        ciphertext = legacy.encrypt(b"mismatched layout", keypair.public_bytes())

        with pytest.raises(IntegrityError):
            SM2Cipher().decrypt(ciphertext, keypair.private_bytes())


class TestZeroKeystream:
    """Tests for the all-zero KDF output check."""

    def test_encrypt_redraws_nonce(self, keypair, monkeypatch):
        real_kdf = sm2.cipher.kdf
        calls = []

        def fake_kdf(z, klen):
            calls.append(klen)
            if len(calls) == 1:
                return b"\x00" * klen
            return real_kdf(z, klen)

        monkeypatch.setattr(sm2.cipher, "kdf", fake_kdf)
        nonces = iter([111, 222])
        cipher = SM2Cipher(nonce_generator=lambda: next(nonces))

        ciphertext = cipher.encrypt(b"payload", keypair.public_bytes())
        expected = SM2Cipher(nonce_generator=lambda: 222).encrypt(b"payload", keypair.public_bytes())

        assert ciphertext == expected

    def test_encrypt_gives_up(self, keypair, monkeypatch):
        monkeypatch.setattr(sm2.cipher, "kdf", lambda z, klen: b"\x00" * klen)
        cipher = SM2Cipher(CipherConfig(max_attempts=2))

        with pytest.raises(SM2Error):
            cipher.encrypt(b"payload", keypair.public_bytes())

    def test_empty_message_not_rejected(self, keypair, monkeypatch):
        monkeypatch.setattr(sm2.cipher, "kdf", lambda z, klen: b"\x00" * klen)
        assert len(SM2Cipher().encrypt(b"", keypair.public_bytes())) == 97

    def test_check_can_be_disabled(self, keypair, monkeypatch):
        monkeypatch.setattr(sm2.cipher, "kdf", lambda z, klen: b"\x00" * klen)
        cipher = SM2Cipher(CipherConfig(reject_zero_keystream=False))
        ciphertext = cipher.encrypt(b"payload", keypair.public_bytes())

        # Keystream of zeros leaves C2 equal to the plaintext
        assert ciphertext[97:] == b"payload"
        assert cipher.decrypt(ciphertext, keypair.private_bytes()) == b"payload"

    def test_decrypt_rejects_zero_keystream(self, keypair, monkeypatch):
        ciphertext = encrypt(b"payload", keypair.public_bytes())
        monkeypatch.setattr(sm2.cipher, "kdf", lambda z, klen: b"\x00" * klen)

        with pytest.raises(IntegrityError):
            decrypt(ciphertext, keypair.private_bytes())
