"""Tests for ledger data models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from pool_accounting.data.constants import RAY, WAD
from pool_accounting.data.models import (
    PoolSnapshot,
    Reserve,
    UserReservePosition,
    normalize_address,
)

USDC = "0x" + "a" * 40
WETH = "0x" + "b" * 40
USER = "0x" + "c" * 40


class TestNormalizeAddress:
    """Tests for address normalization."""

    def test_lowercases_and_prefixes(self) -> None:
        """Addresses are lowercase and 0x-prefixed."""
        assert normalize_address(" 0xABCdef ") == "0xabcdef"
        assert normalize_address("abcdef") == "0xabcdef"


class TestReserve:
    """Tests for Reserve model."""

    def test_defaults(self, usdc_reserve: Reserve) -> None:
        """Indices start at RAY."""
        assert usdc_reserve.liquidity_index == RAY
        assert usdc_reserve.variable_borrow_index == RAY
        assert usdc_reserve.is_borrowable

    def test_index_below_ray_rejected(self, usdc_reserve: Reserve) -> None:
        """Indices can never fall below 1.0."""
        data = usdc_reserve.model_dump()
        data["liquidity_index"] = RAY - 1
        with pytest.raises(ValidationError):
            Reserve(**data)

    def test_negative_cash_rejected(self, usdc_reserve: Reserve) -> None:
        """Balances are non-negative."""
        data = usdc_reserve.model_dump()
        data["cash"] = -1
        with pytest.raises(ValidationError):
            Reserve(**data)

    def test_threshold_above_100_pct_rejected(self, usdc_reserve: Reserve) -> None:
        """Basis point parameters are capped at 100%."""
        data = usdc_reserve.model_dump()
        data["liquidation_threshold_bps"] = 10_001
        with pytest.raises(ValidationError):
            Reserve(**data)

    def test_zero_optimal_utilization_rejected(self, usdc_reserve: Reserve) -> None:
        """A rate curve needs a kink above 0%."""
        data = usdc_reserve.model_dump()
        data["optimal_utilization_bps"] = 0
        with pytest.raises(ValidationError):
            Reserve(**data)

    def test_frozen(self, usdc_reserve: Reserve) -> None:
        """Reserves are immutable snapshots."""
        with pytest.raises(ValidationError):
            usdc_reserve.cash = 0  # type: ignore[misc]


class TestPoolSnapshot:
    """Tests for PoolSnapshot lookups."""

    def test_lookups_normalize_addresses(self, snapshot: PoolSnapshot) -> None:
        """Lookups accept any address casing."""
        assert snapshot.reserve(USDC.upper().replace("0X", "0x")).symbol == "USDC"
        assert snapshot.price(WETH) == 2000 * WAD
        assert len(snapshot.positions_for(USER)) == 2

    def test_position_for(self, snapshot: PoolSnapshot) -> None:
        """A single asset position can be looked up."""
        position = snapshot.position_for(USER, WETH)
        assert position is not None
        assert position.use_as_collateral
        assert snapshot.position_for("0x" + "e" * 40, WETH) is None

    def test_missing_reserve_and_price(self, snapshot: PoolSnapshot) -> None:
        """Unknown assets raise KeyError."""
        with pytest.raises(KeyError):
            snapshot.reserve("0x" + "f" * 40)
        with pytest.raises(KeyError):
            snapshot.price("0x" + "f" * 40)

    def test_negative_price_rejected(self) -> None:
        """Oracle prices are non-negative."""
        with pytest.raises(ValidationError):
            PoolSnapshot(ledger_version=1, timestamp=1, prices={USDC: -1})

    def test_is_stale(self, snapshot: PoolSnapshot) -> None:
        """A snapshot is stale once the ledger moves past it."""
        assert not snapshot.is_stale(100)
        assert snapshot.is_stale(101)

    def test_position_defaults(self) -> None:
        """An empty position has zero principals."""
        position = UserReservePosition(asset=USDC)
        assert position.supply_principal == 0
        assert position.borrow_snapshot_index == 0
        assert not position.use_as_collateral
