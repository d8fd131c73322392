"""
SM2 Engine: Curve Arithmetic

Affine point arithmetic over the SM2 recommended curve (sm2p256v1).

Provides:
- Modular helpers (canonical residue, inverse, power, square root)
- Point representation with uncompressed/compressed encodings
- Group law: addition, doubling, negation
- Scalar multiplication:
    * double-and-add for public scalars
    * Montgomery ladder for secret scalars (fixed 256-step schedule)
    * Shamir's trick for the k1*P1 + k2*P2 step of verification
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from .errors import FormatError


class SM2Params:
    """SM2 recommended curve parameters (GB/T 32918.5)."""
    # Prime modulus
    P = 0xFFFFFFFEFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFF00000000FFFFFFFFFFFFFFFF
    # Curve order
    N = 0xFFFFFFFEFFFFFFFFFFFFFFFFFFFFFFFF7203DF6B21C6052B53BBF40939D54123
    # Curve coefficient a = p - 3
    A = 0xFFFFFFFEFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFF00000000FFFFFFFFFFFFFFFC
    # Curve coefficient b
    B = 0x28E9FA9E9D9F5E344D5A9E4BCF6509A7F39789F515AB8F92DDBCBD414D940E93
    # Generator point x-coordinate
    GX = 0x32C4AE2C1F1981195F9904466A39C9948FE30BBFF2660BE1715A4589334C74C7
    # Generator point y-coordinate
    GY = 0xBC3736A2F4F6779C59BDCEE36B692153D0A9877CC62A474002DF32E52139F0A0
    # Cofactor
    H = 1
    # Bit length
    BITS = 256
    # Byte length
    BYTES = 32
    NAME = "sm2p256v1"


# ========== Modular Arithmetic ==========

def mod(a: int, m: int) -> int:
    """Canonical representative of a in [0, m)."""
    return a % m


def mod_inverse(a: int, m: int) -> int:
    """
    Compute modular inverse using the extended Euclidean algorithm.

    Returns: a^(-1) mod m

    Raises:
        ValueError: If a has no inverse modulo m
    """
    a = mod(a, m)
    old_r, r = m, a
    old_s, s = 0, 1

    while r != 0:
        q = old_r // r
        old_r, r = r, old_r - q * r
        old_s, s = s, old_s - q * s

    if old_r != 1:
        raise ValueError("Modular inverse does not exist")
    return mod(old_s, m)


def mod_pow(base: int, exp: int, m: int) -> int:
    """Square-and-multiply modular exponentiation."""
    result = 1
    base = mod(base, m)

    while exp > 0:
        if exp & 1:
            result = (result * base) % m
        exp >>= 1
        base = (base * base) % m

    return result % m


def mod_sqrt(a: int, p: int) -> int:
    """
    Compute a modular square root.

    For the SM2 prime, p ≡ 3 (mod 4), so sqrt(a) = a^((p+1)/4).

    Raises:
        ValueError: If p is not 3 mod 4 or a is not a quadratic residue
    """
    if p % 4 != 3:
        raise ValueError("Only primes p ≡ 3 (mod 4) are supported")

    y = pow(a, (p + 1) // 4, p)
    if (y * y) % p != a % p:
        raise ValueError("Value is not a quadratic residue")
    return y


# ========== Points ==========

@dataclass(frozen=True)
class Point:
    """
    Elliptic curve point in affine coordinates.

    The point at infinity carries x=None, y=None and is_infinity=True.
    """
    x: Optional[int]
    y: Optional[int]
    is_infinity: bool = False

    @classmethod
    def infinity(cls) -> "Point":
        """Return point at infinity (identity element)."""
        return cls(x=None, y=None, is_infinity=True)

    @classmethod
    def generator(cls) -> "Point":
        """Return generator point G."""
        return cls(x=SM2Params.GX, y=SM2Params.GY)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Point):
            return False
        if self.is_infinity and other.is_infinity:
            return True
        if self.is_infinity or other.is_infinity:
            return False
        return self.x == other.x and self.y == other.y

    def __hash__(self) -> int:
        return hash((self.x, self.y, self.is_infinity))

    def __repr__(self) -> str:
        if self.is_infinity:
            return "Point(infinity)"
        return f"Point(x={self.x:#066x}, y={self.y:#066x})"

    def is_on_curve(self) -> bool:
        """
        Check y² ≡ x³ + ax + b (mod p).

        The point at infinity is on every curve.
        """
        if self.is_infinity:
            return True
        if not (0 <= self.x < SM2Params.P and 0 <= self.y < SM2Params.P):
            return False

        p = SM2Params.P
        lhs = (self.y * self.y) % p
        rhs = (pow(self.x, 3, p) + SM2Params.A * self.x + SM2Params.B) % p
        return lhs == rhs

    def coordinates_bytes(self) -> Tuple[bytes, bytes]:
        """Return (X, Y) as 32-byte big-endian strings."""
        if self.is_infinity:
            raise ValueError("Point at infinity has no coordinates")
        return (self.x.to_bytes(SM2Params.BYTES, 'big'),
                self.y.to_bytes(SM2Params.BYTES, 'big'))

    def to_bytes(self, compressed: bool = False) -> bytes:
        """
        Convert point to bytes.

        Args:
            compressed: If True, use compressed format (prefix + x).
                        Public keys and C1 always use the uncompressed
                        0x04 || X || Y form.
        """
        if self.is_infinity:
            return b'\x00'

        x_bytes, y_bytes = self.coordinates_bytes()

        if compressed:
            prefix = 0x03 if self.y & 1 else 0x02
            return bytes([prefix]) + x_bytes
        return b'\x04' + x_bytes + y_bytes

    @classmethod
    def from_bytes(cls, data: bytes) -> "Point":
        """
        Decode a point and check that it lies on the curve.

        Supports uncompressed (0x04) and compressed (0x02/0x03) formats.

        Raises:
            FormatError: On bad length, unknown prefix or off-curve point
        """
        if not data:
            raise FormatError("Empty point encoding")

        prefix = data[0]

        if prefix == 0x04:
            if len(data) != 1 + 2 * SM2Params.BYTES:
                raise FormatError(f"Uncompressed point must be 65 bytes, got {len(data)}")
            x = int.from_bytes(data[1:33], 'big')
            y = int.from_bytes(data[33:65], 'big')
            point = cls(x=x, y=y)
        elif prefix in (0x02, 0x03):
            if len(data) != 1 + SM2Params.BYTES:
                raise FormatError(f"Compressed point must be 33 bytes, got {len(data)}")
            x = int.from_bytes(data[1:33], 'big')
            if x >= SM2Params.P:
                raise FormatError("Point x-coordinate out of range")
            try:
                y = cls._recover_y(x, prefix == 0x03)
            except ValueError as e:
                raise FormatError("Compressed point is not on the curve") from e
            point = cls(x=x, y=y)
        else:
            raise FormatError(f"Invalid point format prefix: {prefix:#04x}")

        if not point.is_on_curve():
            raise FormatError("Point is not on the SM2 curve")
        return point

    @staticmethod
    def _recover_y(x: int, is_odd: bool) -> int:
        """Recover y from x using y² = x³ + ax + b (mod p)."""
        y_squared = (pow(x, 3, SM2Params.P) + SM2Params.A * x + SM2Params.B) % SM2Params.P
        y = mod_sqrt(y_squared, SM2Params.P)

        if (y & 1) != is_odd:
            y = SM2Params.P - y
        return y


class SM2Curve:
    """
    Group operations on the SM2 curve.

    Secret scalars go through scalar_multiply (Montgomery ladder, fixed
    number of steps). Public scalars may use multiply (double-and-add)
    or shamirs_trick.
    """

    # ========== Core Point Operations ==========

    def point_add(self, p1: Point, p2: Point) -> Point:
        """
        Add two elliptic curve points.

        Uses: λ = (y2 - y1) / (x2 - x1)
        """
        if p1.is_infinity:
            return p2
        if p2.is_infinity:
            return p1

        p = SM2Params.P

        if p1.x == p2.x:
            if (p1.y + p2.y) % p == 0:
                return Point.infinity()
            return self.point_double(p1)

        dx = (p2.x - p1.x) % p
        dy = (p2.y - p1.y) % p
        lam = (dy * mod_inverse(dx, p)) % p

        x3 = (lam * lam - p1.x - p2.x) % p
        y3 = (lam * (p1.x - x3) - p1.y) % p

        return Point(x=x3, y=y3)

    def point_double(self, pt: Point) -> Point:
        """
        Double an elliptic curve point.

        Uses: λ = (3x² + a) / (2y)
        """
        if pt.is_infinity or pt.y == 0:
            return Point.infinity()

        p = SM2Params.P
        numerator = (3 * pt.x * pt.x + SM2Params.A) % p
        denominator = (2 * pt.y) % p
        lam = (numerator * mod_inverse(denominator, p)) % p

        x3 = (lam * lam - 2 * pt.x) % p
        y3 = (lam * (pt.x - x3) - pt.y) % p

        return Point(x=x3, y=y3)

    def point_negate(self, pt: Point) -> Point:
        """Negate a point (reflect over x-axis)."""
        if pt.is_infinity:
            return pt
        return Point(x=pt.x, y=(SM2Params.P - pt.y) % SM2Params.P)

    # ========== Scalar Multiplication ==========

    def multiply(self, k: int, pt: Point) -> Point:
        """
        Double-and-add over the bits of k, least significant first.

        O(log k) group operations; running time depends on k, so only
        use it for public scalars.
        """
        if k < 0:
            return self.multiply(-k, self.point_negate(pt))

        result = Point.infinity()
        addend = pt

        while k > 0:
            if k & 1:
                result = self.point_add(result, addend)
            addend = self.point_double(addend)
            k >>= 1

        return result

    def scalar_multiply(self, k: int, pt: Point) -> Point:
        """
        Scalar multiplication using the Montgomery ladder.

        Every call performs one addition and one doubling per bit of a
        fixed 256-bit schedule, independent of the value of k.

        Args:
            k: Scalar value
            pt: Point to multiply

        Returns:
            Result point k*P
        """
        if pt.is_infinity:
            return Point.infinity()

        k = k % SM2Params.N

        r0 = Point.infinity()
        r1 = pt

        for i in range(SM2Params.BITS - 1, -1, -1):
            bit = (k >> i) & 1

            if bit == 0:
                r1 = self.point_add(r0, r1)
                r0 = self.point_double(r0)
            else:
                r0 = self.point_add(r0, r1)
                r1 = self.point_double(r1)

        return r0

    def multiply_generator(self, k: int) -> Point:
        """Compute k*G with the ladder."""
        return self.scalar_multiply(k, Point.generator())

    def shamirs_trick(self, k1: int, p1: Point, k2: int, p2: Point) -> Point:
        """
        Compute k1*P1 + k2*P2 using Shamir's trick.

        Processes both scalars in one pass of doublings. Used for the
        s*G + t*Q step of signature verification.
        """
        k1 = k1 % SM2Params.N
        k2 = k2 % SM2Params.N

        if k1 == 0:
            return self.multiply(k2, p2)
        if k2 == 0:
            return self.multiply(k1, p1)

        p1_plus_p2 = self.point_add(p1, p2)
        result = Point.infinity()

        max_bits = max(k1.bit_length(), k2.bit_length())

        for i in range(max_bits - 1, -1, -1):
            result = self.point_double(result)

            b1 = (k1 >> i) & 1
            b2 = (k2 >> i) & 1

            if b1 and b2:
                result = self.point_add(result, p1_plus_p2)
            elif b1:
                result = self.point_add(result, p1)
            elif b2:
                result = self.point_add(result, p2)

        return result
