"""Short Weierstrass curve arithmetic.

Curves have the form ``y^2 = x^3 + ax + b mod p`` over a prime field.
Points are affine; the point at infinity is ``None``, following py_ecc.
"""

from typing import NamedTuple, Optional


class PointNotOnCurve(ValueError):
    """Raised when raw coordinates do not describe a point of the curve."""

    def __init__(self, x: int, y: int, reason: str = "provided point is not on curve"):
        self.x = x
        self.y = y
        super().__init__(reason)


class Point(NamedTuple):
    x: int
    y: int


OptPoint = Optional[Point]


class Curve:
    """Weierstrass curve ``y^2 = x^3 + ax + b`` over GF(p)."""

    def __init__(self, a: int, b: int, p: int):
        if p < 3:
            raise ValueError(f"field modulus must be an odd prime, got {p}")
        self.a = a % p
        self.b = b % p
        self.p = p
        if (4 * pow(self.a, 3, p) + 27 * pow(self.b, 2, p)) % p == 0:
            raise ValueError("singular curve: 4a^3 + 27b^2 == 0 mod p")

    def __repr__(self) -> str:
        return f"Curve(a={self.a}, b={self.b}, p={self.p})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, Curve):
            return NotImplemented
        return (self.a, self.b, self.p) == (other.a, other.b, other.p)

    def __hash__(self) -> int:
        return hash((self.a, self.b, self.p))

    def in_field(self, value: int) -> bool:
        return 0 <= value < self.p

    def is_on_curve(self, point: OptPoint) -> bool:
        if point is None:
            return True
        x, y = point
        if not (self.in_field(x) and self.in_field(y)):
            return False
        return (y * y - (x * x * x + self.a * x + self.b)) % self.p == 0

    def neg(self, point: OptPoint) -> OptPoint:
        if point is None:
            return None
        return Point(point.x, (-point.y) % self.p)

    def double(self, point: OptPoint) -> OptPoint:
        if point is None or point.y == 0:
            return None
        x, y = point
        p = self.p
        m = (3 * x * x + self.a) * pow(2 * y, -1, p) % p
        nx = (m * m - 2 * x) % p
        ny = (m * (x - nx) - y) % p
        return Point(nx, ny)

    def add(self, p1: OptPoint, p2: OptPoint) -> OptPoint:
        if p1 is None:
            return p2
        if p2 is None:
            return p1
        p = self.p
        if p1.x == p2.x:
            if (p1.y + p2.y) % p == 0:
                return None
            return self.double(p1)
        m = (p2.y - p1.y) * pow(p2.x - p1.x, -1, p) % p
        nx = (m * m - p1.x - p2.x) % p
        ny = (m * (p1.x - nx) - p1.y) % p
        return Point(nx, ny)

    def scalar_mul(self, point: OptPoint, k: int) -> OptPoint:
        """Double-and-add multiplication. Negative scalars multiply the negated point."""
        if k < 0:
            return self.scalar_mul(self.neg(point), -k)
        result = None
        addend = point
        while k:
            if k & 1:
                result = self.add(result, addend)
            addend = self.double(addend)
            k >>= 1
        return result

    def scalar_mul_add_points(self, p1: OptPoint, p2: OptPoint, k: int, u: int) -> OptPoint:
        """Return ``k*p1 + u*p2`` using a joint double-and-add pass."""
        if k < 0:
            p1, k = self.neg(p1), -k
        if u < 0:
            p2, u = self.neg(p2), -u
        both = self.add(p1, p2)
        result = None
        for i in range(max(k.bit_length(), u.bit_length()) - 1, -1, -1):
            result = self.double(result)
            kb = (k >> i) & 1
            ub = (u >> i) & 1
            if kb and ub:
                result = self.add(result, both)
            elif kb:
                result = self.add(result, p1)
            elif ub:
                result = self.add(result, p2)
        return result


def new_curve(a: int, b: int, p: int) -> Curve:
    return Curve(a, b, p)


def new_point(x: int, y: int, curve: Curve) -> Point:
    """Build a point from raw coordinates, checking it lies on the curve.

    Raises:
        PointNotOnCurve: If a coordinate is outside the field or the curve
            equation does not hold
    """
    if not curve.in_field(x):
        raise PointNotOnCurve(x, y, f"x coordinate is not within prime field range, field size is {curve.p}")
    if not curve.in_field(y):
        raise PointNotOnCurve(x, y, f"y coordinate is not within prime field range, field size is {curve.p}")
    point = Point(x, y)
    if not curve.is_on_curve(point):
        raise PointNotOnCurve(x, y)
    return point


def mul_add(p1: OptPoint, p2: OptPoint, k: int, u: int, curve: Curve) -> OptPoint:
    return curve.scalar_mul_add_points(p1, p2, k, u)


__all__ = [
    "Curve",
    "Point",
    "PointNotOnCurve",
    "new_curve",
    "new_point",
    "mul_add",
]
