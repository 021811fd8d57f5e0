"""Data models for the mirrored lending pool.

Pydantic models for representing raw ledger reads:
- Reserve state and configuration (one per listed asset)
- A user's supply/borrow principal and snapshot indices per asset
- A full pool snapshot with oracle prices and a ledger version

Snapshots are read-only: the core never mutates the authoritative ledger,
it only derives new values from what it was given.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pool_accounting.data.constants import BPS, RAY


def normalize_address(v: str) -> str:
    """Normalize an address to lowercase 0x-prefixed form."""
    v = v.strip()
    if not v.startswith("0x"):
        v = "0x" + v
    return v.lower()


class PositionStatus(str, Enum):
    """Status of a user's account."""

    HEALTHY = "healthy"
    AT_RISK = "at_risk"  # Health factor below the at-risk threshold
    LIQUIDATABLE = "liquidatable"  # Health factor < 1.0


class Reserve(BaseModel):
    """Reserve state and configuration for one listed asset.

    Amounts are token-native integers; indices and per-second rates are
    RAY-scaled; parameters are basis points.
    """

    model_config = ConfigDict(frozen=True)

    asset: str = Field(description="Token contract address")
    symbol: str = ""
    decimals: int = Field(ge=0, le=77)

    cash: int = Field(ge=0, description="Available liquidity, native units")
    total_debt_principal: int = Field(ge=0)

    liquidity_index: int = Field(default=RAY, ge=RAY)
    variable_borrow_index: int = Field(default=RAY, ge=RAY)
    liquidity_rate_per_second: int = Field(default=0, ge=0)
    variable_borrow_rate_per_second: int = Field(default=0, ge=0)

    is_borrowable: bool = True
    ltv_bps: int = Field(ge=0, le=BPS)
    liquidation_threshold_bps: int = Field(ge=0, le=BPS)
    liquidation_bonus_bps: int = Field(default=0, ge=0)
    close_factor_bps: int = Field(default=5000, ge=0, le=BPS)
    reserve_factor_bps: int = Field(default=1000, ge=0, le=BPS)

    optimal_utilization_bps: int = Field(default=8000, gt=0, le=BPS)
    base_rate_per_second: int = Field(default=0, ge=0)
    slope1_per_second: int = Field(default=0, ge=0)
    slope2_per_second: int = Field(default=0, ge=0)

    last_update_timestamp: int = Field(ge=0)

    @field_validator("asset", mode="before")
    @classmethod
    def _normalize_asset(cls, v: str) -> str:
        return normalize_address(v)


class UserReservePosition(BaseModel):
    """A user's principal and snapshot index pair for one asset."""

    model_config = ConfigDict(frozen=True)

    asset: str
    supply_principal: int = Field(default=0, ge=0)
    supply_snapshot_index: int = Field(default=0, ge=0)
    borrow_principal: int = Field(default=0, ge=0)
    borrow_snapshot_index: int = Field(default=0, ge=0)
    use_as_collateral: bool = False

    @field_validator("asset", mode="before")
    @classmethod
    def _normalize_asset(cls, v: str) -> str:
        return normalize_address(v)


class PoolSnapshot(BaseModel):
    """Everything read from the ledger and oracle at one point in time.

    The ledger_version (block number) and timestamp let a consumer detect that
    a value computed from this snapshot predates the state it acts on.
    """

    ledger_version: int = Field(ge=0, description="Block number of the read")
    timestamp: int = Field(ge=0, description="Unix timestamp of the read")
    reserves: dict[str, Reserve] = Field(default_factory=dict)
    prices: dict[str, int] = Field(
        default_factory=dict, description="Asset -> USD price, WAD-scaled"
    )
    positions: dict[str, list[UserReservePosition]] = Field(
        default_factory=dict, description="User -> per-asset positions"
    )

    @field_validator("reserves", "prices", "positions", mode="before")
    @classmethod
    def _normalize_keys(cls, v: dict) -> dict:
        return {normalize_address(k): item for k, item in v.items()}

    @field_validator("prices")
    @classmethod
    def _non_negative_prices(cls, v: dict[str, int]) -> dict[str, int]:
        for asset, price in v.items():
            if price < 0:
                raise ValueError(f"Price for {asset} must be non-negative, got {price}")
        return v

    def reserve(self, asset: str) -> Reserve:
        """Get the reserve for an asset."""
        key = normalize_address(asset)
        if key not in self.reserves:
            raise KeyError(f"No reserve for asset {asset}")
        return self.reserves[key]

    def price(self, asset: str) -> int:
        """Get the WAD-scaled USD price for an asset."""
        key = normalize_address(asset)
        if key not in self.prices:
            raise KeyError(f"No price for asset {asset}")
        return self.prices[key]

    def positions_for(self, user: str) -> list[UserReservePosition]:
        """Get a user's positions (empty if the user has none)."""
        return self.positions.get(normalize_address(user), [])

    def position_for(self, user: str, asset: str) -> UserReservePosition | None:
        """Get a user's position in one asset, if any."""
        key = normalize_address(asset)
        for position in self.positions_for(user):
            if position.asset == key:
                return position
        return None

    def is_stale(self, current_ledger_version: int) -> bool:
        """Check whether the ledger has advanced past this snapshot."""
        return current_ledger_version > self.ledger_version
