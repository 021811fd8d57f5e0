"""Error taxonomy for the pool accounting core.

Arithmetic errors are local and recoverable: the usual response is to re-read
a fresh snapshot and recompute. Settlement failures carry the reason reported
by the collaborator that rejected the repay.
"""

from __future__ import annotations


class PoolAccountingError(Exception):
    """Base class for all pool accounting errors."""

    pass


class ArithmeticOverflowError(PoolAccountingError):
    """Raised when a fixed-point result exceeds the uint256 range."""

    pass


class DivisionByZeroError(PoolAccountingError, ZeroDivisionError):
    """Raised on an explicit division by zero (e.g. wad_div(x, 0))."""

    pass


class InvalidInputError(PoolAccountingError, ValueError):
    """Raised when a caller passes negative or otherwise invalid input."""

    pass


class ConfigurationError(PoolAccountingError):
    """Raised for invalid reserve parameters or environment configuration."""

    pass


class SettlementFailedError(PoolAccountingError):
    """Raised when both repay tiers are exhausted without clearing the debt."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Debt settlement failed: {reason}")
        self.reason = reason
