"""Pytest configuration and fixtures for pool accounting tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from pool_accounting.data.constants import RAY, WAD
from pool_accounting.data.models import PoolSnapshot, Reserve, UserReservePosition

USDC = "0x" + "a" * 40
WETH = "0x" + "b" * 40
USER = "0x" + "c" * 40
SUPPLIER = "0x" + "d" * 40

SNAPSHOT_TIME = 1_700_000_000

CONFIG_ENV_VARS = (
    "DUST_THRESHOLD_RAW",
    "REPAY_BUFFER_BPS",
    "ALLOW_UNLIMITED_REPAY",
    "AT_RISK_HEALTH_FACTOR",
    "LOG_DIR",
)


@pytest.fixture(autouse=True)
def clean_config_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Start every test from default configuration, logging to a temp dir."""
    for name in CONFIG_ENV_VARS:
        # setenv first so teardown also removes values loaded from .env files
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))


@pytest.fixture
def temp_log_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for log files."""
    log_dir = tmp_path / "audit"
    log_dir.mkdir()
    return log_dir


@pytest.fixture
def usdc_reserve() -> Reserve:
    """6-decimal stablecoin reserve: 1M cash, 500k borrowed."""
    return Reserve(
        asset=USDC,
        symbol="USDC",
        decimals=6,
        cash=1_000_000 * 10**6,
        total_debt_principal=500_000 * 10**6,
        ltv_bps=8000,
        liquidation_threshold_bps=8500,
        liquidation_bonus_bps=500,
        reserve_factor_bps=1000,
        optimal_utilization_bps=8000,
        slope1_per_second=4 * RAY // 100 // (365 * 24 * 60 * 60),
        slope2_per_second=60 * RAY // 100 // (365 * 24 * 60 * 60),
        last_update_timestamp=SNAPSHOT_TIME,
    )


@pytest.fixture
def weth_reserve() -> Reserve:
    """18-decimal reserve with no borrows."""
    return Reserve(
        asset=WETH,
        symbol="WETH",
        decimals=18,
        cash=1_000 * WAD,
        total_debt_principal=0,
        ltv_bps=8000,
        liquidation_threshold_bps=8250,
        liquidation_bonus_bps=500,
        last_update_timestamp=SNAPSHOT_TIME,
    )


@pytest.fixture
def snapshot(usdc_reserve: Reserve, weth_reserve: Reserve) -> PoolSnapshot:
    """User supplies 2 WETH as collateral and borrows 3000 USDC.

    Collateral: 2 * $2000 * 0.825 = $3300
    Debt: $3000
    HF = 1.1
    """
    return PoolSnapshot(
        ledger_version=100,
        timestamp=SNAPSHOT_TIME,
        reserves={USDC: usdc_reserve, WETH: weth_reserve},
        prices={USDC: WAD, WETH: 2000 * WAD},
        positions={
            USER: [
                UserReservePosition(
                    asset=WETH,
                    supply_principal=2 * WAD,
                    supply_snapshot_index=RAY,
                    use_as_collateral=True,
                ),
                UserReservePosition(
                    asset=USDC,
                    borrow_principal=3_000 * 10**6,
                    borrow_snapshot_index=RAY,
                ),
            ],
            SUPPLIER: [
                UserReservePosition(
                    asset=USDC,
                    supply_principal=10_000 * 10**6,
                    supply_snapshot_index=RAY,
                    use_as_collateral=True,
                ),
            ],
        },
    )
