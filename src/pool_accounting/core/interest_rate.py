"""Two-slope utilization interest rate model.

Pure and deterministic: maps (cash, debt, curve parameters) to per-second,
RAY-scaled borrow and supply rates.

    U <= Uopt:  borrow = base + slope1 * U / Uopt
    U >  Uopt:  borrow = base + slope1 + slope2 * (U - Uopt) / (1 - Uopt)
    supply = borrow * U * (1 - reserveFactor)

Both branches meet at U == Uopt. Annualization is left to the display layer.
"""

from __future__ import annotations

from dataclasses import dataclass

from pool_accounting.core.errors import ConfigurationError, InvalidInputError
from pool_accounting.core.fixed_point import mul_div, to_wad
from pool_accounting.data.constants import BPS, WAD
from pool_accounting.data.models import Reserve


@dataclass(frozen=True)
class RateQuote:
    """Rates produced by the curve at one utilization point."""

    borrow_rate: int  # RAY per second
    supply_rate: int  # RAY per second
    utilization: int  # WAD


def utilization(cash: int, debt: int) -> int:
    """Fraction of pool liquidity currently borrowed, WAD-scaled.

    Returns 0 when there is no debt and 1.0 when there is debt but no cash.
    """
    if cash < 0 or debt < 0:
        raise InvalidInputError(f"cash and debt must be non-negative, got {cash}, {debt}")
    if debt == 0:
        return 0
    if cash == 0:
        return WAD
    return mul_div(debt, WAD, cash + debt)


def validate_rate_params(reserve_factor_bps: int, optimal_utilization_bps: int) -> None:
    """Validate curve configuration.

    Raises:
        ConfigurationError: If the optimal utilization is zero or above 100%,
            or the reserve factor is above 100%.
    """
    if optimal_utilization_bps <= 0 or optimal_utilization_bps > BPS:
        raise ConfigurationError(
            f"optimal utilization must be in (0, {BPS}] bps, got {optimal_utilization_bps}"
        )
    if reserve_factor_bps < 0 or reserve_factor_bps > BPS:
        raise ConfigurationError(
            f"reserve factor must be in [0, {BPS}] bps, got {reserve_factor_bps}"
        )


def get_rates(
    cash: int,
    debt: int,
    reserve_factor_bps: int,
    optimal_utilization_bps: int,
    base_rate: int,
    slope1: int,
    slope2: int,
) -> RateQuote:
    """Evaluate the curve.

    Args:
        cash: Available liquidity.
        debt: Outstanding debt (same units as cash).
        reserve_factor_bps: Share of interest kept by the protocol.
        optimal_utilization_bps: Kink of the curve.
        base_rate: Borrow rate at zero utilization (RAY per second).
        slope1: Rate added between 0 and the kink (RAY per second).
        slope2: Rate added between the kink and 100% (RAY per second).

    Returns:
        RateQuote with borrow and supply rates.
    """
    validate_rate_params(reserve_factor_bps, optimal_utilization_bps)
    if min(base_rate, slope1, slope2) < 0:
        raise InvalidInputError("rate parameters must be non-negative")

    u = utilization(cash, debt)
    u_opt = optimal_utilization_bps * WAD // BPS

    if u <= u_opt:
        borrow_rate = base_rate + mul_div(slope1, u, u_opt)
    else:
        # u_opt < u <= WAD, so the denominator is positive
        borrow_rate = base_rate + slope1 + mul_div(slope2, u - u_opt, WAD - u_opt)

    supply_rate = mul_div(borrow_rate * u, BPS - reserve_factor_bps, WAD * BPS)

    return RateQuote(borrow_rate=borrow_rate, supply_rate=supply_rate, utilization=u)


def rates_for_reserve(reserve: Reserve) -> RateQuote:
    """Evaluate the curve for a reserve's current cash and debt."""
    return get_rates(
        cash=to_wad(reserve.cash, reserve.decimals),
        debt=to_wad(reserve.total_debt_principal, reserve.decimals),
        reserve_factor_bps=reserve.reserve_factor_bps,
        optimal_utilization_bps=reserve.optimal_utilization_bps,
        base_rate=reserve.base_rate_per_second,
        slope1=reserve.slope1_per_second,
        slope2=reserve.slope2_per_second,
    )
