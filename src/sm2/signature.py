"""
SM2 Engine: Digital Signatures (GB/T 32918.2)

Identity-bound signatures:

    ZA = SM3(ENTL || ID || a || b || Gx || Gy || Qx || Qy)
    e  = SM3(ZA || M)

Signing:
    k ← [1, n-1], (x1, y1) = k*G
    r = (e + x1) mod n              retry if r == 0 or r + k == n
    s = (1 + d)^-1 * (k - r*d) mod n retry if s == 0

Verification:
    t = (r + s) mod n, (x1, y1) = s*G + t*Q, valid iff (e + x1) mod n == r

Signatures are encoded as r (32 bytes) || s (32 bytes).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from .curve import Point, SM2Curve, SM2Params, mod_inverse
from .errors import FormatError, SigningError
from .keys import (
    PrivateKeyLike,
    PublicKeyLike,
    load_private_key,
    load_public_key,
    public_key_from_private,
    random_nonce,
)
from .sm3 import SM3


logger = logging.getLogger(__name__)

DEFAULT_USER_ID = b"1234567812345678"
SIGNATURE_SIZE = 2 * SM2Params.BYTES
# ENTL is a 16-bit bit count
MAX_USER_ID_SIZE = 0xFFFF // 8


@dataclass
class SignatureConfig:
    """Configuration for SM2 signing."""
    default_user_id: bytes = DEFAULT_USER_ID
    max_attempts: int = 64  # Nonce redraws before giving up


def compute_za(public_key: Point, user_id: bytes = DEFAULT_USER_ID) -> bytes:
    """
    Compute the signer identity hash ZA.

    Args:
        public_key: Signer's public key point
        user_id: Signer identity bytes

    Returns:
        32-byte ZA

    Raises:
        FormatError: If the identity is longer than 8191 bytes
    """
    if len(user_id) > MAX_USER_ID_SIZE:
        raise FormatError(f"User ID must be at most {MAX_USER_ID_SIZE} bytes")

    entl = len(user_id) * 8
    qx, qy = public_key.coordinates_bytes()
    size = SM2Params.BYTES

    h = SM3()
    h.update(entl.to_bytes(2, 'big'))
    h.update(user_id)
    h.update(SM2Params.A.to_bytes(size, 'big'))
    h.update(SM2Params.B.to_bytes(size, 'big'))
    h.update(SM2Params.GX.to_bytes(size, 'big'))
    h.update(SM2Params.GY.to_bytes(size, 'big'))
    h.update(qx)
    h.update(qy)
    return h.digest()


def message_digest(message: bytes,
                   public_key: Point,
                   user_id: bytes = DEFAULT_USER_ID) -> bytes:
    """Compute SM3(ZA || M), the digest that is actually signed."""
    h = SM3(compute_za(public_key, user_id))
    h.update(message)
    return h.digest()


def signature_to_bytes(r: int, s: int) -> bytes:
    """Encode (r, s) as 64 bytes."""
    return r.to_bytes(SM2Params.BYTES, 'big') + s.to_bytes(SM2Params.BYTES, 'big')


def signature_from_bytes(data: bytes) -> Tuple[int, int]:
    """
    Decode r || s.

    Raises:
        FormatError: If the signature is not 64 bytes
    """
    if len(data) != SIGNATURE_SIZE:
        raise FormatError(f"Signature must be {SIGNATURE_SIZE} bytes, got {len(data)}")
    return (int.from_bytes(data[:SM2Params.BYTES], 'big'),
            int.from_bytes(data[SM2Params.BYTES:], 'big'))


class SM2Signer:
    """
    SM2 signature scheme.

    Usage:
        signer = SM2Signer()
        signature = signer.sign(message, keypair.private_bytes())
        valid = signer.verify(message, signature, keypair.public_bytes())
    """

    def __init__(self,
                 config: Optional[SignatureConfig] = None,
                 nonce_generator: Optional[Callable[[], int]] = None):
        """
        Initialize the signer.

        Args:
            config: Signing settings
            nonce_generator: Source of nonces k in [1, n-1]; fixed
                             generators reproduce known-answer vectors
        """
        self.config = config or SignatureConfig()
        self.curve = SM2Curve()
        self._nonce_generator = nonce_generator or random_nonce

    def sign(self,
             message: bytes,
             private_key: PrivateKeyLike,
             user_id: Optional[bytes] = None) -> bytes:
        """
        Sign a message.

        Args:
            message: Message bytes
            private_key: 32-byte private key or scalar
            user_id: Signer identity (defaults to config.default_user_id)

        Returns:
            64-byte signature r || s

        Raises:
            FormatError: If the key or identity is malformed, or d == n-1
            SigningError: If every nonce attempt was rejected
        """
        d = load_private_key(private_key)
        # 1 + d has no inverse mod n
        if d == SM2Params.N - 1:
            raise FormatError("Private key n-1 cannot sign")
        if user_id is None:
            user_id = self.config.default_user_id

        q = public_key_from_private(d)
        e = int.from_bytes(message_digest(message, q, user_id), 'big')
        r, s = self._sign_digest(e, d)

        return signature_to_bytes(r, s)

    def _sign_digest(self, e: int, d: int) -> Tuple[int, int]:
        n = SM2Params.N
        inv_1_plus_d = mod_inverse(1 + d, n)

        for attempt in range(1, self.config.max_attempts + 1):
            k = self._nonce_generator()
            x1 = self.curve.multiply_generator(k).x

            r = (e + x1) % n
            if r == 0 or r + k == n:
                logger.debug(f"Rejected nonce on attempt {attempt} (r out of range)")
                continue

            s = (inv_1_plus_d * (k - r * d)) % n
            if s == 0:
                logger.debug(f"Rejected nonce on attempt {attempt} (s == 0)")
                continue

            return r, s

        logger.error(f"Signing gave up after {self.config.max_attempts} nonces")
        raise SigningError("Could not produce a signature")

    def verify(self,
               message: bytes,
               signature: bytes,
               public_key: PublicKeyLike,
               user_id: Optional[bytes] = None) -> bool:
        """
        Verify a signature.

        Never raises: malformed inputs verify as False.

        Args:
            message: Original message bytes
            signature: 64-byte r || s
            public_key: Signer's public key (bytes or Point)
            user_id: Signer identity (defaults to config.default_user_id)

        Returns:
            True if signature is valid, False otherwise
        """
        if user_id is None:
            user_id = self.config.default_user_id

        try:
            r, s = signature_from_bytes(bytes(signature))
            q = load_public_key(public_key)
            e = int.from_bytes(message_digest(message, q, user_id), 'big')
        except (FormatError, TypeError, ValueError) as exc:
            logger.debug(f"Rejecting signature input: {exc}")
            return False

        n = SM2Params.N

        if not (1 <= r < n and 1 <= s < n):
            return False

        t = (r + s) % n
        if t == 0:
            return False

        point = self.curve.shamirs_trick(s, Point.generator(), t, q)
        if point.is_infinity:
            return False

        return (e + point.x) % n == r


# Utility functions

def sign(message: bytes,
         private_key: PrivateKeyLike,
         user_id: Optional[bytes] = None) -> bytes:
    """Sign with default settings."""
    return SM2Signer().sign(message, private_key, user_id)


def verify(message: bytes,
           signature: bytes,
           public_key: PublicKeyLike,
           user_id: Optional[bytes] = None) -> bool:
    """Verify with default settings."""
    return SM2Signer().verify(message, signature, public_key, user_id)
