"""
SM2 Engine: Key Derivation Function

Counter-mode expansion of a shared secret Z with SM3:
    K = SM3(Z || 00000001) || SM3(Z || 00000002) || ...
truncated to the requested length.
"""

from .sm3 import SM3

# 32-bit big-endian counter limits the output to (2^32 - 1) digests
MAX_KEY_LENGTH = (2 ** 32 - 1) * SM3.digest_size


def kdf(z: bytes, klen: int) -> bytes:
    """
    Derive klen bytes from z.

    Args:
        z: Shared secret (X2 || Y2 for SM2 encryption)
        klen: Number of output bytes

    Returns:
        Exactly klen bytes

    Raises:
        ValueError: If klen is negative or exceeds the counter range
    """
    if klen < 0:
        raise ValueError("Key length must be non-negative")
    if klen > MAX_KEY_LENGTH:
        raise ValueError("Key length exceeds KDF counter range")

    blocks = []
    produced = 0
    counter = 1

    # Z is absorbed once; each counter block hashes a copy of that state
    base = SM3(z)

    while produced < klen:
        h = base.copy()
        h.update(counter.to_bytes(4, 'big'))
        blocks.append(h.digest())
        produced += SM3.digest_size
        counter += 1

    return b''.join(blocks)[:klen]
