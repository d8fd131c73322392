"""
SM2 Engine: Key Generation and Key Encoding

Private keys are scalars d in [1, n-1] encoded as 32 big-endian bytes.
Generated keys stay in [1, n-2] so that they can also sign.
Public keys are points Q = d*G encoded as 0x04 || X || Y.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from typing import Union

from .curve import Point, SM2Curve, SM2Params
from .errors import FormatError
from .sm3 import sm3_hash


logger = logging.getLogger(__name__)

_curve = SM2Curve()

PrivateKeyLike = Union[bytes, bytearray, int]
PublicKeyLike = Union[bytes, bytearray, Point]


def random_scalar(upper: int) -> int:
    """
    Draw a scalar in [1, upper] from 32 CSPRNG bytes.

    Computes (t mod upper) + 1, so values are slightly biased towards the
    low end of the range.
    """
    t = int.from_bytes(secrets.token_bytes(SM2Params.BYTES), 'big')
    return t % upper + 1


def random_nonce() -> int:
    """Ephemeral scalar k in [1, n-1]."""
    return random_scalar(SM2Params.N - 1)


@dataclass(frozen=True)
class SM2KeyPair:
    """SM2 key pair container."""
    private_key: int = field(repr=False)
    public_key: Point

    def private_bytes(self) -> bytes:
        """Get private key as 32 big-endian bytes (for secure storage only)."""
        return private_key_to_bytes(self.private_key)

    def public_bytes(self, compressed: bool = False) -> bytes:
        """Get public key bytes, uncompressed 0x04 || X || Y by default."""
        return self.public_key.to_bytes(compressed=compressed)

    @property
    def key_id(self) -> str:
        """Key identifier: SM3 hash of the uncompressed public key."""
        return sm3_hash(self.public_bytes()).hex()[:16]


def generate_keypair() -> SM2KeyPair:
    """
    Generate a new SM2 key pair.

    Private key: d = (t mod (n-2)) + 1 for 32 random bytes t
    Public key: Q = d*G

    Returns:
        SM2KeyPair
    """
    d = random_scalar(SM2Params.N - 2)
    keypair = keypair_from_private(d)

    logger.debug(f"Generated SM2 key pair {keypair.key_id}")
    return keypair


def keypair_from_private(private_key: PrivateKeyLike) -> SM2KeyPair:
    """Rebuild the key pair belonging to a private key."""
    d = load_private_key(private_key)
    return SM2KeyPair(private_key=d, public_key=public_key_from_private(d))


def public_key_from_private(private_key: int) -> Point:
    """Compute Q = d*G."""
    return _curve.multiply_generator(private_key)


def private_key_to_bytes(private_key: int) -> bytes:
    """Encode a private scalar as 32 big-endian bytes."""
    return private_key.to_bytes(SM2Params.BYTES, 'big')


def private_key_from_bytes(data: bytes) -> int:
    """
    Decode a 32-byte private key.

    Raises:
        FormatError: If the length is wrong or d is outside [1, n-1]
    """
    if len(data) != SM2Params.BYTES:
        raise FormatError(f"Private key must be {SM2Params.BYTES} bytes, got {len(data)}")
    return _check_private_scalar(int.from_bytes(data, 'big'))


def public_key_to_bytes(public_key: Point, compressed: bool = False) -> bytes:
    """Encode a public key point."""
    if public_key.is_infinity:
        raise FormatError("Public key cannot be the point at infinity")
    return public_key.to_bytes(compressed=compressed)


def public_key_from_bytes(data: bytes) -> Point:
    """
    Decode a public key (uncompressed 65 bytes or compressed 33 bytes).

    Raises:
        FormatError: If the encoding is malformed or not on the curve
    """
    point = Point.from_bytes(bytes(data))
    if point.is_infinity:
        raise FormatError("Public key cannot be the point at infinity")
    return point


def load_private_key(private_key: PrivateKeyLike) -> int:
    """Accept a private key as bytes or int and return the checked scalar."""
    if isinstance(private_key, int):
        return _check_private_scalar(private_key)
    return private_key_from_bytes(bytes(private_key))


def load_public_key(public_key: PublicKeyLike) -> Point:
    """Accept a public key as bytes or Point and return the checked point."""
    if isinstance(public_key, Point):
        if public_key.is_infinity or not public_key.is_on_curve():
            raise FormatError("Public key is not a valid curve point")
        return public_key
    return public_key_from_bytes(public_key)


def _check_private_scalar(d: int) -> int:
    if not 1 <= d <= SM2Params.N - 1:
        raise FormatError("Private key out of range")
    return d
