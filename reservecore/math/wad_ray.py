"""Fixed-point arithmetic at two scales.

- WAD: 18 decimal places (token amounts)
- RAY: 27 decimal places (rates and indices)

Every operation truncates toward zero. Rounding never favours the caller,
so repeated conversions can lose dust but never create value. Results are
bounded to 256 bits; anything wider raises ``ArithmeticOverflow``.
"""

from decimal import Decimal, localcontext
from typing import NewType

from reservecore.errors import ArithmeticOverflow

Wad = NewType("Wad", int)
Ray = NewType("Ray", int)

WAD = 10**18
RAY = 10**27
WAD_RAY_RATIO = 10**9

# Basis points: 10_000 = 100%
PERCENTAGE_FACTOR = 10_000

MAX_UINT128 = 2**128 - 1
MAX_UINT256 = 2**256 - 1


def _check_uint256(value: int, op: str) -> int:
    if value < 0 or value > MAX_UINT256:
        raise ArithmeticOverflow(f"{op} result out of uint256 range")
    return value


def wad_mul(a: int, b: int) -> int:
    return _check_uint256(a * b, "wad_mul") // WAD


def wad_div(a: int, b: int) -> int:
    if b == 0:
        raise ZeroDivisionError("wad_div by zero")
    return _check_uint256(a * WAD, "wad_div") // b


def ray_mul(a: int, b: int) -> int:
    return _check_uint256(a * b, "ray_mul") // RAY


def ray_div(a: int, b: int) -> int:
    if b == 0:
        raise ZeroDivisionError("ray_div by zero")
    return _check_uint256(a * RAY, "ray_div") // b


def ray_to_wad(a: int) -> int:
    return a // WAD_RAY_RATIO


def wad_to_ray(a: int) -> int:
    return _check_uint256(a * WAD_RAY_RATIO, "wad_to_ray")


def percent_mul(value: int, percentage: int) -> int:
    """Multiply ``value`` by a basis-point ``percentage``."""
    return _check_uint256(value * percentage, "percent_mul") // PERCENTAGE_FACTOR


def percent_div(value: int, percentage: int) -> int:
    if percentage == 0:
        raise ZeroDivisionError("percent_div by zero")
    return _check_uint256(value * PERCENTAGE_FACTOR, "percent_div") // percentage


def ensure_uint128(value: int, what: str) -> int:
    """Reject values wider than the 128-bit storage slots used for rates and indices."""
    if value < 0 or value > MAX_UINT128:
        raise ArithmeticOverflow(f"{what} exceeds uint128")
    return value


def to_ray(value: float | str) -> Ray:
    """Convert a human decimal (e.g. ``"0.04"``) to ray.

    Strings are parsed exactly; floats go through ``repr`` so ``0.04``
    becomes ``4 * 10**25`` rather than the nearest binary fraction.
    """
    with localcontext() as ctx:
        ctx.prec = 80
        return Ray(int(Decimal(value if isinstance(value, str) else repr(value)) * RAY))


def ray_to_float(ray: int) -> float:
    """Convert RAY (1e27) fixed-point to a decimal fraction."""
    return ray / float(RAY)


def wad_to_float(wad: int) -> float:
    return wad / float(WAD)
