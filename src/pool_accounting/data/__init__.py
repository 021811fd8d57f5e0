"""Ledger data models and constants.

The snapshot loader and the web3 reader live in
pool_accounting.data.snapshot_loader and pool_accounting.data.pool_reader.
"""

from pool_accounting.data.models import (
    PoolSnapshot,
    PositionStatus,
    Reserve,
    UserReservePosition,
    normalize_address,
)

__all__ = [
    "PoolSnapshot",
    "PositionStatus",
    "Reserve",
    "UserReservePosition",
    "normalize_address",
]
