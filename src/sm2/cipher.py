"""
SM2 Engine: Public-Key Encryption (GB/T 32918.4)

Ciphertext layout (default C1C3C2 order):

    0x04 || C1.x (32) || C1.y (32) || C3 (32) || C2 (len(M))

where
    C1 = k*G                    ephemeral public point
    (x2, y2) = k*Q              shared point
    t  = KDF(x2 || y2, len(M))  keystream
    C2 = M XOR t
    C3 = SM3(x2 || M || y2)     integrity tag

The legacy C1C2C3 order is available through CipherConfig.mode.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

from cryptography.hazmat.primitives import constant_time

from .curve import Point, SM2Curve, SM2Params
from .errors import FormatError, IntegrityError, SM2Error
from .kdf import kdf
from .keys import (
    PrivateKeyLike,
    PublicKeyLike,
    load_private_key,
    load_public_key,
    random_nonce,
)
from .sm3 import sm3_hash


logger = logging.getLogger(__name__)

POINT_SIZE = 1 + 2 * SM2Params.BYTES   # 0x04 || X || Y
HASH_SIZE = 32
MIN_CIPHERTEXT_SIZE = POINT_SIZE + HASH_SIZE


class CipherMode(Enum):
    """Ciphertext field order."""
    C1C3C2 = "c1c3c2"  # Current standard (default)
    C1C2C3 = "c1c2c3"  # Legacy order used by older implementations


@dataclass
class CipherConfig:
    """Configuration for SM2 encryption."""
    mode: CipherMode = CipherMode.C1C3C2
    reject_zero_keystream: bool = True  # Redraw k if KDF output is all zero
    max_attempts: int = 16


class SM2Cipher:
    """
    SM2 public-key encryption.

    Usage:
        cipher = SM2Cipher()
        ciphertext = cipher.encrypt(b"firmware", keypair.public_bytes())
        plaintext = cipher.decrypt(ciphertext, keypair.private_bytes())
    """

    def __init__(self,
                 config: Optional[CipherConfig] = None,
                 nonce_generator: Optional[Callable[[], int]] = None):
        """
        Initialize the cipher.

        Args:
            config: Encryption settings (defaults to C1C3C2 with zero
                    keystream rejection)
            nonce_generator: Source of ephemeral scalars in [1, n-1]
        """
        self.config = config or CipherConfig()
        self.curve = SM2Curve()
        self._nonce_generator = nonce_generator or random_nonce

    def encrypt(self, plaintext: bytes, public_key: PublicKeyLike) -> bytes:
        """
        Encrypt plaintext for the holder of public_key.

        Args:
            plaintext: Message bytes (may be empty)
            public_key: 65-byte 0x04 || X || Y encoding or a Point

        Returns:
            65 + 32 + len(plaintext) bytes

        Raises:
            FormatError: If the public key is malformed
            SM2Error: If no usable ephemeral key was found
        """
        q = load_public_key(public_key)
        plaintext = bytes(plaintext)

        for attempt in range(1, self.config.max_attempts + 1):
            k = self._nonce_generator()
            c1 = self.curve.multiply_generator(k)
            shared = self.curve.scalar_multiply(k, q)
            x2, y2 = shared.coordinates_bytes()

            keystream = kdf(x2 + y2, len(plaintext))
            if self.config.reject_zero_keystream and _is_zero_keystream(keystream):
                logger.warning(f"All-zero KDF output on attempt {attempt}, drawing a new ephemeral key")
                continue

            c2 = _xor(plaintext, keystream)
            c3 = sm3_hash(x2 + plaintext + y2)

            ciphertext = self._assemble(c1.to_bytes(), c3, c2)
            logger.debug(f"Encrypted {len(plaintext)} bytes → {len(ciphertext)} bytes")
            return ciphertext

        raise SM2Error(f"Encryption failed after {self.config.max_attempts} ephemeral keys")

    def decrypt(self, ciphertext: bytes, private_key: PrivateKeyLike) -> bytes:
        """
        Decrypt and verify a ciphertext.

        Args:
            ciphertext: Bytes produced by encrypt()
            private_key: 32-byte private key or scalar

        Returns:
            Plaintext bytes

        Raises:
            FormatError: If the ciphertext or key is malformed
            IntegrityError: If the C3 tag does not match
        """
        d = load_private_key(private_key)
        c1_bytes, c3, c2 = self._split(bytes(ciphertext))

        try:
            c1 = Point.from_bytes(c1_bytes)
        except FormatError:
            logger.error("Ciphertext C1 is not a valid curve point")
            raise

        shared = self.curve.scalar_multiply(d, c1)
        x2, y2 = shared.coordinates_bytes()

        keystream = kdf(x2 + y2, len(c2))
        if self.config.reject_zero_keystream and _is_zero_keystream(keystream):
            logger.error("All-zero KDF output during decryption")
            raise IntegrityError("Ciphertext integrity check failed")

        plaintext = _xor(c2, keystream)
        expected = sm3_hash(x2 + plaintext + y2)

        if not constant_time.bytes_eq(expected, c3):
            logger.error("C3 mismatch - ciphertext tampered or wrong key")
            raise IntegrityError("Ciphertext integrity check failed")

        logger.debug(f"Decrypted {len(plaintext)} bytes")
        return plaintext

    # ========== Layout ==========

    def _assemble(self, c1: bytes, c3: bytes, c2: bytes) -> bytes:
        if self.config.mode == CipherMode.C1C2C3:
            return c1 + c2 + c3
        return c1 + c3 + c2

    def _split(self, ciphertext: bytes) -> Tuple[bytes, bytes, bytes]:
        """Return (C1, C3, C2) according to the configured mode."""
        if len(ciphertext) < MIN_CIPHERTEXT_SIZE:
            logger.error(f"Ciphertext too short: {len(ciphertext)} bytes")
            raise FormatError(f"Ciphertext must be at least {MIN_CIPHERTEXT_SIZE} bytes")
        if ciphertext[0] != 0x04:
            logger.error(f"Invalid ciphertext marker {ciphertext[0]:#04x}")
            raise FormatError("Invalid ciphertext format")

        c1 = ciphertext[:POINT_SIZE]
        if self.config.mode == CipherMode.C1C2C3:
            c2 = ciphertext[POINT_SIZE:-HASH_SIZE]
            c3 = ciphertext[-HASH_SIZE:]
        else:
            c3 = ciphertext[POINT_SIZE:MIN_CIPHERTEXT_SIZE]
            c2 = ciphertext[MIN_CIPHERTEXT_SIZE:]
        return c1, c3, c2


def _xor(data: bytes, keystream: bytes) -> bytes:
    return bytes(x ^ y for x, y in zip(data, keystream))


def _is_zero_keystream(keystream: bytes) -> bool:
    # An empty keystream (empty message) masks nothing and is accepted
    return bool(keystream) and not any(keystream)


# Utility functions

def encrypt(plaintext: bytes, public_key: PublicKeyLike) -> bytes:
    """Encrypt with the default C1C3C2 configuration."""
    return SM2Cipher().encrypt(plaintext, public_key)


def decrypt(ciphertext: bytes, private_key: PrivateKeyLike) -> bytes:
    """Decrypt a default C1C3C2 ciphertext."""
    return SM2Cipher().decrypt(ciphertext, private_key)
