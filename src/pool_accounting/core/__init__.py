"""Core accounting modules."""

from pool_accounting.core.errors import (
    ArithmeticOverflowError,
    ConfigurationError,
    DivisionByZeroError,
    InvalidInputError,
    PoolAccountingError,
    SettlementFailedError,
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
from pool_accounting.core.interest_rate import RateQuote, get_rates, rates_for_reserve, utilization
from pool_accounting.core.accrual import accrue, current_balance, refresh_rates
from pool_accounting.core.risk import AccountRisk, AssetExposure, RiskCalculator
from pool_accounting.core.config import PoolAccountingConfig
from pool_accounting.core.logging import AuditEntry, AuditLogger, verify_audit_log
from pool_accounting.core.settlement import (
    DebtSettlementResolver,
    SettlementExecutor,
    SettlementOutcome,
    SettlementState,
    SettlementTier,
)

__all__ = [
    # Errors
    "ArithmeticOverflowError",
    "ConfigurationError",
    "DivisionByZeroError",
    "InvalidInputError",
    "PoolAccountingError",
    "SettlementFailedError",
    # Fixed point
    "Rounding",
    "ceil_div",
    "from_wad",
    "mul_div",
    "ray_div",
    "ray_mul",
    "to_units_ceil",
    "to_wad",
    "wad_div",
    "wad_mul",
    # Rates and accrual
    "RateQuote",
    "get_rates",
    "rates_for_reserve",
    "utilization",
    "accrue",
    "current_balance",
    "refresh_rates",
    # Risk
    "AccountRisk",
    "AssetExposure",
    "RiskCalculator",
    # Config and logging
    "PoolAccountingConfig",
    "AuditEntry",
    "AuditLogger",
    "verify_audit_log",
    # Settlement
    "DebtSettlementResolver",
    "SettlementExecutor",
    "SettlementOutcome",
    "SettlementState",
    "SettlementTier",
]
