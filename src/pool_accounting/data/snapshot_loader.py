"""Load and save pool snapshots as JSON.

Ledger integers routinely exceed 2**53, so they are written as decimal
strings; plain JSON integers are accepted on load as well.

Expected JSON format:
    {
        "ledger_version": 1234,
        "timestamp": 1700000000,
        "reserves": {"0xusdc...": {"asset": "0xusdc...", "decimals": 6, ...}},
        "prices": {"0xusdc...": "1000000000000000000"},
        "positions": {"0xuser...": [{"asset": "0xusdc...", ...}]}
    }
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pool_accounting.core.logging import AuditLogger
from pool_accounting.data.models import PoolSnapshot, Reserve, UserReservePosition

_INT_FIELDS_RESERVE = {
    "cash",
    "total_debt_principal",
    "liquidity_index",
    "variable_borrow_index",
    "liquidity_rate_per_second",
    "variable_borrow_rate_per_second",
    "base_rate_per_second",
    "slope1_per_second",
    "slope2_per_second",
}
_INT_FIELDS_POSITION = {
    "supply_principal",
    "supply_snapshot_index",
    "borrow_principal",
    "borrow_snapshot_index",
}


def _ints_to_str(data: dict[str, Any], fields: set[str]) -> dict[str, Any]:
    return {k: str(v) if k in fields else v for k, v in data.items()}


def _coerce_ints(data: dict[str, Any], fields: set[str]) -> dict[str, Any]:
    return {k: int(v) if k in fields and isinstance(v, str) else v for k, v in data.items()}


def snapshot_from_dict(data: dict[str, Any]) -> PoolSnapshot:
    """Build a PoolSnapshot from decoded JSON."""
    return PoolSnapshot(
        ledger_version=int(data["ledger_version"]),
        timestamp=int(data["timestamp"]),
        reserves={
            asset: Reserve.model_validate(_coerce_ints(reserve, _INT_FIELDS_RESERVE))
            for asset, reserve in data.get("reserves", {}).items()
        },
        prices={asset: int(price) for asset, price in data.get("prices", {}).items()},
        positions={
            user: [
                UserReservePosition.model_validate(_coerce_ints(p, _INT_FIELDS_POSITION))
                for p in items
            ]
            for user, items in data.get("positions", {}).items()
        },
    )


def snapshot_to_dict(snapshot: PoolSnapshot) -> dict[str, Any]:
    """Encode a PoolSnapshot as JSON-safe data."""
    return {
        "ledger_version": snapshot.ledger_version,
        "timestamp": snapshot.timestamp,
        "reserves": {
            asset: _ints_to_str(reserve.model_dump(), _INT_FIELDS_RESERVE)
            for asset, reserve in snapshot.reserves.items()
        },
        "prices": {asset: str(price) for asset, price in snapshot.prices.items()},
        "positions": {
            user: [_ints_to_str(p.model_dump(), _INT_FIELDS_POSITION) for p in items]
            for user, items in snapshot.positions.items()
        },
    }


def load_snapshot(file_path: str | Path, logger: AuditLogger | None = None) -> PoolSnapshot:
    """Load a snapshot from a JSON file.

    Args:
        file_path: Path to the JSON file.
        logger: Optional audit logger.

    Returns:
        Validated PoolSnapshot.
    """
    path = Path(file_path)
    with open(path) as f:
        data = json.load(f)

    snapshot = snapshot_from_dict(data)

    if logger:
        logger.info(
            f"Loaded snapshot at ledger version {snapshot.ledger_version}",
            {
                "file": str(path),
                "reserves": len(snapshot.reserves),
                "accounts": len(snapshot.positions),
            },
        )
    return snapshot


def save_snapshot(snapshot: PoolSnapshot, file_path: str | Path) -> None:
    """Save a snapshot to a JSON file."""
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(snapshot_to_dict(snapshot), f, indent=2)
