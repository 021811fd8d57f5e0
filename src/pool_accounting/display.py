"""Display conversions layered on top of the core's scaled integers.

The core reports per-second RAY rates, WAD ratios and raw token units; these
helpers turn them into APR percentages and human-readable strings.
"""

from __future__ import annotations

from decimal import Decimal

from pool_accounting.data.constants import (
    DISPLAY_DUST_THRESHOLD,
    HEALTH_FACTOR_INFINITE,
    RAY,
    SECONDS_PER_YEAR,
    WAD,
)


def rate_to_apr_pct(rate_ray_per_second: int) -> Decimal:
    """Annualize a per-second RAY rate as an APR percentage (5.25 = 5.25%)."""
    return Decimal(rate_ray_per_second * SECONDS_PER_YEAR * 100) / Decimal(RAY)


def utilization_pct(utilization_wad: int) -> Decimal:
    """Utilization as a percentage."""
    return Decimal(utilization_wad * 100) / Decimal(WAD)


def wad_to_decimal(value: int) -> Decimal:
    """WAD-scaled integer as a Decimal."""
    return Decimal(value) / Decimal(WAD)


def format_units(raw: int, decimals: int) -> str:
    """Raw token units as a plain decimal string, trailing zeros dropped."""
    if decimals == 0:
        return str(raw)
    whole, frac = divmod(raw, 10**decimals)
    frac_str = str(frac).rjust(decimals, "0").rstrip("0")
    return f"{whole}.{frac_str}" if frac_str else str(whole)


def health_factor_display(health_factor: int, places: int = 2) -> str:
    """Health factor for display; the no-debt sentinel shows as infinity."""
    if health_factor == HEALTH_FACTOR_INFINITE:
        return "∞"
    return f"{wad_to_decimal(health_factor):.{places}f}"


def apr_display(apr_pct: Decimal) -> str:
    """APR percentage for display."""
    if apr_pct == 0:
        return "0%"
    if apr_pct < Decimal("0.01"):
        return "<0.01%"
    return f"{apr_pct:.2f}%"


def is_display_dust(raw: int, decimals: int) -> bool:
    """Whether a non-zero balance is too small to show meaningfully."""
    if raw == 0:
        return False
    return Decimal(raw).scaleb(-decimals) < Decimal(DISPLAY_DUST_THRESHOLD)
