"""Tests for WAD/RAY fixed-point arithmetic."""

from __future__ import annotations

from decimal import Decimal

import pytest

from pool_accounting.core.errors import (
    ArithmeticOverflowError,
    DivisionByZeroError,
    InvalidInputError,
)
from pool_accounting.core.fixed_point import (
    Rounding,
    ceil_div,
    from_wad,
    mul_div,
    ray_div,
    ray_mul,
    to_units_ceil,
    to_wad,
    wad_div,
    wad_mul,
)
from pool_accounting.data.constants import MAX_UINT256, RAY, WAD


class TestScaling:
    """Tests for converting between native units and WAD."""

    @pytest.mark.parametrize("decimals", [0, 6, 8, 18])
    def test_round_trip_is_exact(self, decimals: int) -> None:
        """Native -> WAD -> native should return the original amount."""
        amount = 123_456 * 10**decimals + 7
        assert from_wad(to_wad(amount, decimals), decimals) == amount

    def test_to_wad_six_decimals(self) -> None:
        """1 USDC should be 1e18 in WAD."""
        assert to_wad(1_000_000, 6) == WAD

    def test_more_than_18_decimals_truncates(self) -> None:
        """Scaling down from 24 decimals should truncate toward zero."""
        assert to_wad(1_234_567, 24) == 1
        assert from_wad(1, 24) == 10**6

    def test_from_wad_truncates(self) -> None:
        """Sub-unit WAD remainders should be dropped, never rounded up."""
        assert from_wad(WAD - 1, 0) == 0
        assert from_wad(1_999_999_999_999, 6) == 1

    def test_rejects_negative_amount(self) -> None:
        """Negative amounts are invalid."""
        with pytest.raises(InvalidInputError):
            to_wad(-1, 6)

    def test_rejects_excessive_decimals(self) -> None:
        """Decimals beyond uint256 scale are invalid."""
        with pytest.raises(InvalidInputError):
            to_wad(1, 78)


class TestMulDiv:
    """Tests for mul_div and rounding."""

    def test_exact_intermediate_product(self) -> None:
        """Products above uint256 should not overflow when the result fits."""
        assert mul_div(MAX_UINT256, 10, 10) == MAX_UINT256

    def test_rounding_modes(self) -> None:
        """Rounding should be explicit and honored."""
        assert mul_div(1, 1, 2) == 0
        assert mul_div(1, 1, 2, Rounding.UP) == 1
        assert mul_div(1, 1, 2, Rounding.HALF_UP) == 1
        assert mul_div(1, 1, 3, Rounding.HALF_UP) == 0
        assert mul_div(6, 1, 3, Rounding.UP) == 2

    def test_overflow_raises(self) -> None:
        """Results above uint256 should raise, not wrap or saturate."""
        with pytest.raises(ArithmeticOverflowError):
            mul_div(MAX_UINT256, 2, 1)

    def test_zero_denominator_raises(self) -> None:
        """Division by zero should raise a catchable ZeroDivisionError."""
        with pytest.raises(DivisionByZeroError):
            mul_div(1, 1, 0)
        with pytest.raises(ZeroDivisionError):
            mul_div(1, 1, 0)

    def test_rejects_negative_and_bool(self) -> None:
        """Only non-negative integers are accepted."""
        with pytest.raises(InvalidInputError):
            mul_div(-1, 1, 1)
        with pytest.raises(InvalidInputError):
            mul_div(True, 1, 1)

    def test_ceil_div(self) -> None:
        """ceil_div should round any remainder up."""
        assert ceil_div(10, 3) == 4
        assert ceil_div(9, 3) == 3
        assert ceil_div(0, 5) == 0
        with pytest.raises(DivisionByZeroError):
            ceil_div(1, 0)


class TestWadRay:
    """Tests for WAD and RAY multiply/divide."""

    def test_wad_mul_and_div(self) -> None:
        """Basic WAD arithmetic."""
        assert wad_mul(2 * WAD, 3 * WAD) == 6 * WAD
        assert wad_div(3 * WAD, 2 * WAD) == 3 * WAD // 2
        assert wad_mul(WAD // 2, 3) == 1

    def test_ray_mul_and_div(self) -> None:
        """Basic RAY arithmetic."""
        assert ray_mul(RAY, RAY) == RAY
        assert ray_mul(2 * RAY, RAY // 4) == RAY // 2
        assert ray_div(RAY, 4 * RAY) == RAY // 4

    def test_division_by_zero(self) -> None:
        """wad_div/ray_div by zero should raise DivisionByZeroError."""
        with pytest.raises(DivisionByZeroError):
            wad_div(WAD, 0)
        with pytest.raises(DivisionByZeroError):
            ray_div(RAY, 0)

    def test_wad_mul_overflow(self) -> None:
        """Overflowing products should raise."""
        with pytest.raises(ArithmeticOverflowError):
            wad_mul(MAX_UINT256, 2 * WAD)


class TestToUnitsCeil:
    """Tests for parsing human amounts into raw units."""

    def test_exact_amount(self) -> None:
        """Exact decimal amounts convert without rounding."""
        assert to_units_ceil("2.5", 6) == 2_500_000
        assert to_units_ceil(Decimal("1"), 18) == WAD
        assert to_units_ceil(3, 0) == 3

    def test_rounds_up_sub_unit_remainder(self) -> None:
        """Any remainder below one raw unit rounds up."""
        assert to_units_ceil("1.0000001", 6) == 1_000_001
        assert to_units_ceil("0.0000001", 6) == 1

    def test_minimum_is_one(self) -> None:
        """A zero amount still yields one raw unit."""
        assert to_units_ceil("0", 6) == 1

    def test_precision_beyond_default_context(self) -> None:
        """Long amounts should not lose digits."""
        amount = "123456789012345678901234567890.000000000000000001"
        assert to_units_ceil(amount, 18) == 123456789012345678901234567890 * WAD + 1

    @pytest.mark.parametrize("bad", ["abc", "-1", "NaN", "Infinity", ""])
    def test_rejects_invalid_amounts(self, bad: str) -> None:
        """Unparseable, negative and non-finite amounts are rejected."""
        with pytest.raises(InvalidInputError):
            to_units_ceil(bad, 6)
