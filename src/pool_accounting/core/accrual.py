"""Interest index accrual and live balances.

Indices advance with a linear per-call step, matching the ledger being
mirrored:

    index' = index * (1 + ratePerSecond * dt)

This is a discrete step, not continuous compounding. Accrual touches indices
only; principals change on supply/borrow/repay/withdraw, which happen on-chain.

A user's live balance is principal * currentIndex / snapshotIndex.
"""

from __future__ import annotations

from pool_accounting.core.errors import InvalidInputError
from pool_accounting.core.fixed_point import Rounding, mul_div, ray_mul
from pool_accounting.core.interest_rate import rates_for_reserve
from pool_accounting.data.constants import RAY
from pool_accounting.data.models import Reserve, UserReservePosition


def accrue(reserve: Reserve, now_timestamp: int) -> Reserve:
    """Advance a reserve's indices to now_timestamp.

    Returns the same reserve when no time has elapsed, so accruing twice at
    one timestamp is a no-op.

    Args:
        reserve: Reserve snapshot.
        now_timestamp: Unix timestamp to accrue to.

    Returns:
        Reserve with updated indices and last_update_timestamp.
    """
    if now_timestamp < 0:
        raise InvalidInputError(f"timestamp must be non-negative, got {now_timestamp}")

    dt = now_timestamp - reserve.last_update_timestamp
    if dt <= 0:
        return reserve

    liquidity_index = ray_mul(
        reserve.liquidity_index, RAY + reserve.liquidity_rate_per_second * dt
    )
    variable_borrow_index = ray_mul(
        reserve.variable_borrow_index, RAY + reserve.variable_borrow_rate_per_second * dt
    )

    return reserve.model_copy(
        update={
            "liquidity_index": liquidity_index,
            "variable_borrow_index": variable_borrow_index,
            "last_update_timestamp": now_timestamp,
        }
    )


def refresh_rates(reserve: Reserve) -> Reserve:
    """Re-derive the stored per-second rates from the interest rate curve."""
    quote = rates_for_reserve(reserve)
    return reserve.model_copy(
        update={
            "liquidity_rate_per_second": quote.supply_rate,
            "variable_borrow_rate_per_second": quote.borrow_rate,
        }
    )


def current_balance(
    principal: int,
    snapshot_index: int,
    current_index: int,
    rounding: Rounding = Rounding.DOWN,
) -> int:
    """Scale a principal from its snapshot index to the current index.

    A position whose snapshot index was never initialized (zero) returns the
    principal unchanged. For a fixed principal and snapshot the result never
    decreases as current_index grows.
    """
    if min(principal, snapshot_index, current_index) < 0:
        raise InvalidInputError("principal and indices must be non-negative")
    if snapshot_index == 0:
        return principal
    return mul_div(principal, current_index, snapshot_index, rounding)


def supply_balance(position: UserReservePosition, reserve: Reserve) -> int:
    """Current supply balance of a position against an accrued reserve."""
    return current_balance(
        position.supply_principal,
        position.supply_snapshot_index,
        reserve.liquidity_index,
    )


def borrow_balance(position: UserReservePosition, reserve: Reserve) -> int:
    """Current borrow balance of a position against an accrued reserve."""
    return current_balance(
        position.borrow_principal,
        position.borrow_snapshot_index,
        reserve.variable_borrow_index,
    )
