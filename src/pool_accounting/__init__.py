"""Lending Pool Accounting - off-chain mirror of a pooled lending ledger.

This package reproduces the pool's fixed-point accounting off-chain:
interest accrual, account health, safe withdraw/borrow bounds and the
full-repay settlement flow. It reads ledger state but never writes it.
"""

__version__ = "0.1.0"

from pool_accounting.core.errors import PoolAccountingError
from pool_accounting.core.risk import RiskCalculator
from pool_accounting.core.settlement import DebtSettlementResolver

__all__ = ["DebtSettlementResolver", "PoolAccountingError", "RiskCalculator", "__version__"]
