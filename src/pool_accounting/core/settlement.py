"""Full-debt settlement despite interest accruing between read and repay.

A "repay all" races against the ledger: the debt read a moment ago is
already smaller than the debt at execution time. The resolver runs two tiers:

1. Unlimited: approve and repay the max-uint256 sentinel, letting the ledger
   clear whatever the exact debt is at execution time.
2. Exact with buffer: if the collaborator rejects the sentinel, approve and
   repay ceil(debt * (1 + buffer)), never less than 1 raw unit.

After a tier executes, the remaining principal is read back. Zero means
Cleared; a remainder under the dust threshold is Cleared with a warning;
anything else fails. No retries happen beyond these two tiers.

    IDLE -> UNLIMITED_ATTEMPTED -> EXACT_WITH_BUFFER_ATTEMPTED -> CLEARED | FAILED
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from pool_accounting.core.config import PoolAccountingConfig
from pool_accounting.core.errors import InvalidInputError, SettlementFailedError
from pool_accounting.core.fixed_point import ceil_div, to_units_ceil
from pool_accounting.core.logging import AuditLogger
from pool_accounting.data.constants import MAX_UINT256


class SettlementState(str, Enum):
    """States of one full-repay attempt."""

    IDLE = "idle"
    UNLIMITED_ATTEMPTED = "unlimited_attempted"
    EXACT_WITH_BUFFER_ATTEMPTED = "exact_with_buffer_attempted"
    CLEARED = "cleared"
    FAILED = "failed"


class SettlementTier(str, Enum):
    """Repay strategy used by an attempt."""

    UNLIMITED = "unlimited"
    EXACT_WITH_BUFFER = "exact_with_buffer"


class SettlementExecutor(ABC):
    """Collaborator that approves and repays on the authoritative ledger.

    Implementations raise on rejection; the resolver records the reason.
    """

    @property
    def supports_unlimited(self) -> bool:
        """Whether the max-uint256 sentinel may be submitted at all."""
        return True

    @abstractmethod
    def repay(self, asset: str, amount: int) -> None:
        """Approve `amount` and repay it (amount may be MAX_UINT256)."""
        pass

    @abstractmethod
    def remaining_principal(self, asset: str) -> int:
        """Read the user's remaining borrow principal after a repay."""
        pass


@dataclass
class SettlementAttempt:
    """Record of one executed tier."""

    tier: SettlementTier
    amount: int
    succeeded: bool
    remaining_principal: int | None = None
    error: str | None = None


@dataclass
class SettlementOutcome:
    """Tagged result of a settlement: CLEARED or FAILED."""

    asset: str
    state: SettlementState
    debt_at_read: int
    remaining_principal: int | None = None
    reason: str | None = None
    warning: str | None = None
    attempts: list[SettlementAttempt] = field(default_factory=list)

    @property
    def is_cleared(self) -> bool:
        """Whether the debt is settled (possibly with tolerated dust)."""
        return self.state is SettlementState.CLEARED

    @property
    def dust_remaining(self) -> bool:
        """Whether the debt was accepted as cleared with dust left over."""
        return self.is_cleared and bool(self.remaining_principal)

    @property
    def final_tier(self) -> SettlementTier | None:
        """Tier of the last executed attempt."""
        return self.attempts[-1].tier if self.attempts else None

    def raise_for_failure(self) -> None:
        """Raise SettlementFailedError if the outcome is FAILED."""
        if self.state is SettlementState.FAILED:
            raise SettlementFailedError(self.reason or "unknown reason")

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly representation."""
        return {
            "asset": self.asset,
            "state": self.state.value,
            "debt_at_read": str(self.debt_at_read),
            "remaining_principal": (
                str(self.remaining_principal) if self.remaining_principal is not None else None
            ),
            "reason": self.reason,
            "warning": self.warning,
            "attempts": [
                {
                    "tier": a.tier.value,
                    "amount": str(a.amount),
                    "succeeded": a.succeeded,
                    "remaining_principal": (
                        str(a.remaining_principal) if a.remaining_principal is not None else None
                    ),
                    "error": a.error,
                }
                for a in self.attempts
            ],
        }


class DebtSettlementResolver:
    """Drive one asset's debt to zero with the two-tier repay strategy.

    Usage:
        resolver = DebtSettlementResolver(config, audit)
        outcome = resolver.settle(executor, asset, debt_principal_at_read)
        if outcome.dust_remaining:
            print(outcome.warning)
        outcome.raise_for_failure()
    """

    def __init__(
        self,
        config: PoolAccountingConfig | None = None,
        logger: AuditLogger | None = None,
    ) -> None:
        """Initialize resolver.

        Args:
            config: Buffer, dust threshold and unlimited-tier settings.
            logger: Optional audit logger for the settlement trail.
        """
        self.config = config or PoolAccountingConfig()
        self.logger = logger
        self.state = SettlementState.IDLE

    def buffered_repay_amount(self, debt_principal: int) -> int:
        """Exact-tier amount: ceil(debt * numerator / denominator), at least 1."""
        if debt_principal < 0:
            raise InvalidInputError(f"debt must be non-negative, got {debt_principal}")
        amount = ceil_div(
            debt_principal * self.config.buffer_numerator,
            self.config.buffer_denominator,
        )
        return max(amount, 1)

    def partial_repay_amount(self, human_amount: str | Decimal, decimals: int) -> int:
        """Raw amount for a user-chosen partial repay (ceiling, >= 1, no buffer)."""
        return to_units_ceil(human_amount, decimals)

    def settle(
        self,
        executor: SettlementExecutor,
        asset: str,
        debt_principal_at_read: int,
    ) -> SettlementOutcome:
        """Run the settlement state machine for one asset.

        Args:
            executor: Ledger collaborator.
            asset: Debt asset address.
            debt_principal_at_read: Debt principal read before settling.

        Returns:
            SettlementOutcome in state CLEARED or FAILED.
        """
        if debt_principal_at_read < 0:
            raise InvalidInputError(
                f"debt must be non-negative, got {debt_principal_at_read}"
            )

        self.state = SettlementState.IDLE
        outcome = SettlementOutcome(
            asset=asset,
            state=SettlementState.IDLE,
            debt_at_read=debt_principal_at_read,
        )
        if self.logger:
            self.logger.log_event(
                "settlement_started",
                {"asset": asset, "debt_at_read": str(debt_principal_at_read)},
            )

        if debt_principal_at_read == 0:
            outcome.remaining_principal = 0
            return self._finish(outcome, SettlementState.CLEARED)

        debt_basis = debt_principal_at_read

        if self.config.allow_unlimited_repay and executor.supports_unlimited:
            self.state = SettlementState.UNLIMITED_ATTEMPTED
            attempt = self._execute(executor, asset, SettlementTier.UNLIMITED, MAX_UINT256)
            outcome.attempts.append(attempt)

            if attempt.succeeded:
                if self._accept(outcome, attempt):
                    return self._finish(outcome, SettlementState.CLEARED)
                if attempt.remaining_principal is None:
                    return self._finish(outcome, SettlementState.FAILED)
                # The ledger took the sentinel but left real debt; retry exactly
                debt_basis = max(debt_basis, attempt.remaining_principal)

        self.state = SettlementState.EXACT_WITH_BUFFER_ATTEMPTED
        amount = self.buffered_repay_amount(debt_basis)
        attempt = self._execute(executor, asset, SettlementTier.EXACT_WITH_BUFFER, amount)
        outcome.attempts.append(attempt)

        if attempt.succeeded and self._accept(outcome, attempt):
            return self._finish(outcome, SettlementState.CLEARED)
        return self._finish(outcome, SettlementState.FAILED)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _execute(
        self,
        executor: SettlementExecutor,
        asset: str,
        tier: SettlementTier,
        amount: int,
    ) -> SettlementAttempt:
        attempt = SettlementAttempt(tier=tier, amount=amount, succeeded=False)
        try:
            executor.repay(asset, amount)
        except Exception as e:
            attempt.error = f"{tier.value} repay rejected: {e}"
            self._log_attempt(asset, attempt)
            return attempt

        attempt.succeeded = True
        try:
            attempt.remaining_principal = executor.remaining_principal(asset)
        except Exception as e:
            attempt.error = f"could not read remaining principal: {e}"
        self._log_attempt(asset, attempt)
        return attempt

    def _accept(self, outcome: SettlementOutcome, attempt: SettlementAttempt) -> bool:
        """Verify the post-repay remainder; record the reason if unacceptable."""
        remaining = attempt.remaining_principal
        outcome.remaining_principal = remaining
        if remaining is None:
            outcome.reason = attempt.error
            return False
        if remaining == 0:
            return True
        if remaining < self.config.dust_threshold_raw:
            outcome.warning = (
                f"Debt cleared with {remaining} raw units of dust remaining "
                f"(threshold {self.config.dust_threshold_raw})"
            )
            return True
        outcome.reason = (
            f"{remaining} raw units remain after {attempt.tier.value} repay "
            f"(dust threshold {self.config.dust_threshold_raw})"
        )
        return False

    def _finish(self, outcome: SettlementOutcome, state: SettlementState) -> SettlementOutcome:
        self.state = state
        outcome.state = state
        if state is SettlementState.CLEARED:
            outcome.reason = None
        elif outcome.reason is None:
            outcome.reason = next(
                (a.error for a in reversed(outcome.attempts) if a.error), "settlement failed"
            )
        if self.logger:
            data = outcome.to_dict()
            if state is SettlementState.FAILED:
                self.logger.error(f"Settlement failed for {outcome.asset}: {outcome.reason}", data)
            elif outcome.warning:
                self.logger.warning(outcome.warning, data)
            else:
                self.logger.info(f"Debt cleared for {outcome.asset}", data)
        return outcome

    def _log_attempt(self, asset: str, attempt: SettlementAttempt) -> None:
        if self.logger:
            self.logger.log_event(
                "settlement_attempt",
                {
                    "asset": asset,
                    "tier": attempt.tier.value,
                    "amount": str(attempt.amount),
                    "succeeded": attempt.succeeded,
                    "remaining_principal": (
                        str(attempt.remaining_principal)
                        if attempt.remaining_principal is not None
                        else None
                    ),
                    "error": attempt.error,
                },
            )

