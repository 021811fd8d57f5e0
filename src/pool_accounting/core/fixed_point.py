"""WAD / RAY fixed-point arithmetic.

All values are unsigned scaled integers bounded by uint256:
- WAD (1e18) for token amounts and USD values
- RAY (1e27) for interest indices and per-second rates

Python integers never overflow, so every product is computed exactly and the
result is checked against MAX_UINT256 instead of silently wrapping or
saturating. Rounding is always explicit.
"""

from __future__ import annotations

from decimal import ROUND_CEILING, Decimal, InvalidOperation, localcontext
from enum import Enum

from pool_accounting.core.errors import (
    ArithmeticOverflowError,
    DivisionByZeroError,
    InvalidInputError,
)
from pool_accounting.data.constants import MAX_UINT256, RAY, WAD, WAD_DECIMALS

MAX_DECIMALS = 77  # 10**78 no longer fits in uint256


class Rounding(str, Enum):
    """Rounding mode for scaled division."""

    DOWN = "down"
    UP = "up"
    HALF_UP = "half_up"


def _require_uint(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0:
        raise InvalidInputError(f"{name} must be non-negative, got {value}")


def _require_decimals(decimals: int) -> None:
    _require_uint("decimals", decimals)
    if decimals > MAX_DECIMALS:
        raise InvalidInputError(f"decimals must be <= {MAX_DECIMALS}, got {decimals}")


def _checked(value: int) -> int:
    if value > MAX_UINT256:
        raise ArithmeticOverflowError(f"Result {value} exceeds uint256 range")
    return value


def mul_div(
    a: int,
    b: int,
    denominator: int,
    rounding: Rounding = Rounding.DOWN,
) -> int:
    """Compute a * b / denominator with an exact intermediate product.

    Raises:
        DivisionByZeroError: If denominator is zero.
        ArithmeticOverflowError: If the result exceeds uint256.
    """
    _require_uint("a", a)
    _require_uint("b", b)
    _require_uint("denominator", denominator)
    if denominator == 0:
        raise DivisionByZeroError("mul_div denominator is zero")

    product = a * b
    if rounding is Rounding.UP:
        result = -(-product // denominator)
    elif rounding is Rounding.HALF_UP:
        result = (product + denominator // 2) // denominator
    else:
        result = product // denominator
    return _checked(result)


def ceil_div(a: int, b: int) -> int:
    """Ceiling division, used where under-approving would leave 1 wei of dust."""
    _require_uint("a", a)
    _require_uint("b", b)
    if b == 0:
        raise DivisionByZeroError("ceil_div divisor is zero")
    return -(-a // b)


def to_wad(amount: int, decimals: int) -> int:
    """Scale a token-native amount to 18-decimal fixed point.

    Tokens with more than 18 decimals are truncated toward zero.
    """
    _require_uint("amount", amount)
    _require_decimals(decimals)
    if decimals <= WAD_DECIMALS:
        return _checked(amount * 10 ** (WAD_DECIMALS - decimals))
    return amount // 10 ** (decimals - WAD_DECIMALS)


def from_wad(value: int, decimals: int) -> int:
    """Convert a WAD value to token-native units, truncating toward zero.

    Truncation never credits a user with more than the exact amount.
    """
    _require_uint("value", value)
    _require_decimals(decimals)
    if decimals <= WAD_DECIMALS:
        return value // 10 ** (WAD_DECIMALS - decimals)
    return _checked(value * 10 ** (decimals - WAD_DECIMALS))


def wad_mul(a: int, b: int, rounding: Rounding = Rounding.DOWN) -> int:
    """Multiply two WAD values."""
    return mul_div(a, b, WAD, rounding)


def wad_div(a: int, b: int, rounding: Rounding = Rounding.DOWN) -> int:
    """Divide two WAD values.

    Raises:
        DivisionByZeroError: If b is zero.
    """
    if b == 0:
        raise DivisionByZeroError("wad_div by zero")
    return mul_div(a, WAD, b, rounding)


def ray_mul(a: int, b: int, rounding: Rounding = Rounding.DOWN) -> int:
    """Multiply two RAY values."""
    return mul_div(a, b, RAY, rounding)


def ray_div(a: int, b: int, rounding: Rounding = Rounding.DOWN) -> int:
    """Divide two RAY values.

    Raises:
        DivisionByZeroError: If b is zero.
    """
    if b == 0:
        raise DivisionByZeroError("ray_div by zero")
    return mul_div(a, RAY, b, rounding)


def to_units_ceil(human_amount: str | Decimal | int, decimals: int) -> int:
    """Parse a human-readable amount into raw units, rounding up.

    Any fractional remainder below one raw unit rounds up, and the result is
    never below 1 so a repay is never submitted for zero.

    Args:
        human_amount: Amount as entered by the user (e.g. "2.5").
        decimals: Token decimals.

    Returns:
        Raw token units (>= 1).

    Raises:
        InvalidInputError: If the amount is not a finite, non-negative number.
    """
    _require_decimals(decimals)
    try:
        amount = Decimal(str(human_amount).strip())
    except InvalidOperation as e:
        raise InvalidInputError(f"Cannot parse amount {human_amount!r}") from e

    if not amount.is_finite() or amount < 0:
        raise InvalidInputError(f"Amount must be finite and non-negative, got {human_amount!r}")

    with localcontext() as ctx:
        ctx.prec = 160
        scaled = amount.scaleb(decimals)
        raw = int(scaled.to_integral_value(rounding=ROUND_CEILING))
    return _checked(max(raw, 1))
