"""
SM3 Cryptographic Hash Function (GB/T 32905)

256-bit Merkle–Damgård hash with 64-byte blocks:
- Padding: 0x80, zeros to 56 mod 64, 64-bit big-endian bit length
- Message expansion: 68-word W and 64-word W'
- 64-round compression with FF/GG boolean functions and P0/P1 permutations

The SM3 object follows the hashlib interface (update/digest/hexdigest/copy).
"""

from __future__ import annotations

from typing import List


IV = (
    0x7380166F, 0x4914B2B9, 0x172442D7, 0xDA8A0600,
    0xA96F30BC, 0x163138AA, 0xE38DEE4D, 0xB0FB0E4E,
)

# Round constants: T[0] for rounds 0-15, T[1] for rounds 16-63
T = (0x79CC4519, 0x7A879D8A)

MASK32 = 0xFFFFFFFF


def rotl32(x: int, n: int) -> int:
    """Rotate a 32-bit word left by n bits."""
    n %= 32
    return ((x << n) | (x >> (32 - n))) & MASK32


def _ff(j: int, x: int, y: int, z: int) -> int:
    if j < 16:
        return x ^ y ^ z
    return (x & y) | (x & z) | (y & z)


def _gg(j: int, x: int, y: int, z: int) -> int:
    if j < 16:
        return x ^ y ^ z
    return (x & y) | (~x & z & MASK32)


def _p0(x: int) -> int:
    return x ^ rotl32(x, 9) ^ rotl32(x, 17)


def _p1(x: int) -> int:
    return x ^ rotl32(x, 15) ^ rotl32(x, 23)


# Per-round rotated constants T_j <<< (j mod 32)
_T_ROTATED = tuple(rotl32(T[0] if j < 16 else T[1], j) for j in range(64))


def expand(block: bytes) -> tuple:
    """
    Expand one 64-byte block into the W (68 words) and W' (64 words)
    schedules.
    """
    w: List[int] = [int.from_bytes(block[i:i + 4], 'big') for i in range(0, 64, 4)]

    for i in range(16, 68):
        w.append(
            _p1(w[i - 16] ^ w[i - 9] ^ rotl32(w[i - 3], 15))
            ^ rotl32(w[i - 13], 7)
            ^ w[i - 6]
        )

    w1 = [w[i] ^ w[i + 4] for i in range(64)]
    return w, w1


def compress(v: tuple, block: bytes) -> tuple:
    """
    Compression function CF(V, B).

    Args:
        v: Current chaining value (8 words)
        block: 64-byte message block

    Returns:
        Next chaining value (8 words)
    """
    w, w1 = expand(block)
    a, b, c, d, e, f, g, h = v

    for j in range(64):
        a12 = rotl32(a, 12)
        ss1 = rotl32((a12 + e + _T_ROTATED[j]) & MASK32, 7)
        ss2 = ss1 ^ a12
        tt1 = (_ff(j, a, b, c) + d + ss2 + w1[j]) & MASK32
        tt2 = (_gg(j, e, f, g) + h + ss1 + w[j]) & MASK32
        d = c
        c = rotl32(b, 9)
        b = a
        a = tt1
        h = g
        g = rotl32(f, 19)
        f = e
        e = _p0(tt2)

    return (
        a ^ v[0], b ^ v[1], c ^ v[2], d ^ v[3],
        e ^ v[4], f ^ v[5], g ^ v[6], h ^ v[7],
    )


def pad(message_length: int) -> bytes:
    """Return the padding appended to a message of the given byte length."""
    bit_length = message_length * 8
    zeros = (56 - (message_length + 1) % 64) % 64
    return b'\x80' + b'\x00' * zeros + bit_length.to_bytes(8, 'big')


class SM3:
    """
    Streaming SM3 hash object.

    Usage:
        h = SM3()
        h.update(b"part one")
        h.update(b"part two")
        digest = h.digest()
    """

    name = "sm3"
    digest_size = 32
    block_size = 64

    def __init__(self, data: bytes = b""):
        self._state = IV
        self._buffer = b""
        self._length = 0
        if data:
            self.update(data)

    def update(self, data: bytes) -> None:
        """Feed more bytes; full blocks are compressed immediately."""
        data = bytes(data)
        self._length += len(data)
        buffer = self._buffer + data

        full = len(buffer) - len(buffer) % self.block_size
        for offset in range(0, full, self.block_size):
            self._state = compress(self._state, buffer[offset:offset + self.block_size])

        self._buffer = buffer[full:]

    def digest(self) -> bytes:
        """Return the 32-byte digest without disturbing the running state."""
        tail = self._buffer + pad(self._length)
        state = self._state

        for offset in range(0, len(tail), self.block_size):
            state = compress(state, tail[offset:offset + self.block_size])

        return b''.join(word.to_bytes(4, 'big') for word in state)

    def hexdigest(self) -> str:
        return self.digest().hex()

    def copy(self) -> "SM3":
        clone = SM3()
        clone._state = self._state
        clone._buffer = self._buffer
        clone._length = self._length
        return clone


def sm3_hash(data: bytes) -> bytes:
    """
    Hash data with SM3.

    Args:
        data: Message bytes

    Returns:
        32-byte SM3 digest
    """
    return SM3(data).digest()
