"""Account risk: collateral valuation, health factor and safe operation bounds.

Health Factor = Sum(Supply_i * Price_i * LiquidationThreshold_i) / Sum(Debt_j * Price_j)

Only assets flagged as collateral count toward the numerator. An account
with no debt reports HEALTH_FACTOR_INFINITE, which no finite health factor
can equal. All USD values and health factors are WAD-scaled integers.

Every bound is advisory as of the snapshot it was computed from; the caller
re-validates against the ledger (or buffers) before submitting.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping, Sequence

from pool_accounting.core.accrual import accrue, borrow_balance, supply_balance
from pool_accounting.core.errors import ArithmeticOverflowError, InvalidInputError
from pool_accounting.core.fixed_point import from_wad, mul_div, to_wad, wad_div, wad_mul
from pool_accounting.data.constants import (
    BPS,
    DEFAULT_AT_RISK_HEALTH_FACTOR,
    HEALTH_FACTOR_INFINITE,
    LIQUIDATION_HEALTH_FACTOR,
    WAD,
)
from pool_accounting.data.models import (
    PoolSnapshot,
    PositionStatus,
    Reserve,
    UserReservePosition,
    normalize_address,
)


def _require_non_negative(**values: int) -> None:
    for name, value in values.items():
        if value < 0:
            raise InvalidInputError(f"{name} must be non-negative, got {value}")


def asset_value_usd(amount: int, decimals: int, price: int) -> int:
    """USD value (WAD) of a token-native amount at a WAD price."""
    return wad_mul(to_wad(amount, decimals), price)


@dataclass
class AssetExposure:
    """One asset's contribution to an account."""

    asset: str
    symbol: str
    decimals: int
    price: int
    supply_balance: int
    borrow_balance: int
    supply_value_usd: int
    debt_value_usd: int
    use_as_collateral: bool
    liquidation_threshold_bps: int
    ltv_bps: int

    @property
    def liquidation_value_usd(self) -> int:
        """Supply value weighted by the liquidation threshold (0 if not collateral)."""
        if not self.use_as_collateral:
            return 0
        return mul_div(self.supply_value_usd, self.liquidation_threshold_bps, BPS)

    @property
    def borrow_capacity_usd(self) -> int:
        """Supply value weighted by LTV (0 if not collateral)."""
        if not self.use_as_collateral:
            return 0
        return mul_div(self.supply_value_usd, self.ltv_bps, BPS)


@dataclass
class AccountRisk:
    """Risk breakdown for one account, as of one snapshot."""

    user_address: str
    ledger_version: int
    timestamp: int

    total_supply_usd: int
    collateral_value_usd: int  # Weighted by liquidation thresholds
    borrow_capacity_usd: int  # Weighted by LTV
    debt_value_usd: int
    health_factor: int
    status: PositionStatus

    exposures: list[AssetExposure] = field(default_factory=list)

    @property
    def has_debt(self) -> bool:
        """Whether the account carries any debt."""
        return self.health_factor != HEALTH_FACTOR_INFINITE

    @property
    def is_liquidatable(self) -> bool:
        """Whether the account is eligible for liquidation (HF < 1.0)."""
        return self.health_factor < LIQUIDATION_HEALTH_FACTOR

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly representation (big integers as strings)."""
        return {
            "user_address": self.user_address,
            "ledger_version": self.ledger_version,
            "timestamp": self.timestamp,
            "total_supply_usd": str(self.total_supply_usd),
            "collateral_value_usd": str(self.collateral_value_usd),
            "borrow_capacity_usd": str(self.borrow_capacity_usd),
            "debt_value_usd": str(self.debt_value_usd),
            "health_factor": str(self.health_factor),
            "has_debt": self.has_debt,
            "status": self.status.value,
            "exposures": [
                {
                    "asset": e.asset,
                    "symbol": e.symbol,
                    "supply_balance": str(e.supply_balance),
                    "borrow_balance": str(e.borrow_balance),
                    "supply_value_usd": str(e.supply_value_usd),
                    "debt_value_usd": str(e.debt_value_usd),
                    "use_as_collateral": e.use_as_collateral,
                }
                for e in self.exposures
            ],
        }


class RiskCalculator:
    """Compute health factors and safe withdraw/borrow bounds.

    The primitive operations take plain integers; the snapshot helpers accrue
    every reserve to the snapshot time, derive live balances, and feed the
    primitives.

    Usage:
        calculator = RiskCalculator()
        risk = calculator.assess(snapshot, user_address)
        if risk.is_liquidatable:
            print(f"HF below 1.0: {risk.health_factor}")
        limit = calculator.max_withdraw_for(snapshot, user_address, asset)
    """

    def __init__(
        self,
        at_risk_health_factor: int = int(Decimal(DEFAULT_AT_RISK_HEALTH_FACTOR) * WAD),
    ) -> None:
        """Initialize calculator.

        Args:
            at_risk_health_factor: WAD health factor below which a solvent
                account is reported AT_RISK (default 1.5).
        """
        if at_risk_health_factor < LIQUIDATION_HEALTH_FACTOR:
            raise InvalidInputError("at_risk_health_factor must be at least 1.0")
        self.at_risk_health_factor = at_risk_health_factor

    # ------------------------------------------------------------------
    # Primitive operations
    # ------------------------------------------------------------------

    def collateral_value_usd(
        self,
        positions: Sequence[UserReservePosition],
        reserves: Mapping[str, Reserve],
        prices: Mapping[str, int],
    ) -> int:
        """Liquidation-threshold-weighted value of collateral-flagged supply.

        Reserves are expected to be accrued already.
        """
        return sum(
            (e.liquidation_value_usd for e in self._exposures(positions, reserves, prices)),
            0,
        )

    def debt_value_usd(
        self,
        positions: Sequence[UserReservePosition],
        reserves: Mapping[str, Reserve],
        prices: Mapping[str, int],
    ) -> int:
        """Total USD value of all borrow balances."""
        return sum(
            (e.debt_value_usd for e in self._exposures(positions, reserves, prices)),
            0,
        )

    def health_factor(self, collateral_usd: int, debt_usd: int) -> int:
        """Collateral over debt as a WAD ratio.

        Returns:
            HEALTH_FACTOR_INFINITE when debt is zero, otherwise the ratio.
        """
        _require_non_negative(collateral_usd=collateral_usd, debt_usd=debt_usd)
        if debt_usd == 0:
            return HEALTH_FACTOR_INFINITE

        hf = wad_div(collateral_usd, debt_usd)
        if hf >= HEALTH_FACTOR_INFINITE:
            raise ArithmeticOverflowError("Health factor collides with the no-debt sentinel")
        return hf

    def is_liquidatable(self, health_factor: int) -> bool:
        """Whether a health factor permits liquidation."""
        return health_factor < LIQUIDATION_HEALTH_FACTOR

    def position_status(self, health_factor: int) -> PositionStatus:
        """Classify an account by its health factor."""
        if health_factor < LIQUIDATION_HEALTH_FACTOR:
            return PositionStatus.LIQUIDATABLE
        if health_factor < self.at_risk_health_factor:
            return PositionStatus.AT_RISK
        return PositionStatus.HEALTHY

    def max_safe_withdraw(
        self,
        collateral_usd: int,
        debt_usd: int,
        price: int,
        liquidation_threshold_bps: int,
        user_supply_balance: int,
        pool_cash: int,
        decimals: int = 18,
    ) -> int:
        """Largest withdrawal that keeps collateral at or above debt.

        x_max = (CollateralUSD - DebtUSD) * 10000 / liqThresholdBps / Price,
        clamped to the user's balance and to the pool's cash.

        Args:
            collateral_usd: Threshold-weighted collateral (WAD USD).
            debt_usd: Debt (WAD USD).
            price: Asset price (WAD USD per whole token).
            liquidation_threshold_bps: Asset's liquidation threshold.
            user_supply_balance: User's supply balance, native units.
            pool_cash: Available pool liquidity, native units.
            decimals: Asset decimals.

        Returns:
            Amount in native units.
        """
        _require_non_negative(
            collateral_usd=collateral_usd,
            debt_usd=debt_usd,
            price=price,
            liquidation_threshold_bps=liquidation_threshold_bps,
            user_supply_balance=user_supply_balance,
            pool_cash=pool_cash,
        )
        if collateral_usd <= debt_usd:
            return 0
        # An asset that cannot be valued or weighted has no computable bound
        if price == 0 or liquidation_threshold_bps == 0:
            return 0

        net_collateral = collateral_usd - debt_usd
        max_usd = mul_div(net_collateral, BPS, liquidation_threshold_bps)
        max_amount = from_wad(wad_div(max_usd, price), decimals)

        return min(max_amount, user_supply_balance, pool_cash)

    def max_safe_borrow(
        self,
        collateral_usd: int,
        debt_usd: int,
        price: int,
        pool_cash: int,
        ltv_bps: int,
        decimals: int = 18,
    ) -> int:
        """Largest borrow within LTV headroom, clamped to pool cash.

        headroom = max(0, CollateralUSD * ltvBps / 10000 - DebtUSD)
        """
        _require_non_negative(
            collateral_usd=collateral_usd,
            debt_usd=debt_usd,
            price=price,
            pool_cash=pool_cash,
            ltv_bps=ltv_bps,
        )
        headroom_usd = max(0, mul_div(collateral_usd, ltv_bps, BPS) - debt_usd)
        if headroom_usd == 0 or price == 0:
            return 0

        max_amount = from_wad(wad_div(headroom_usd, price), decimals)
        return min(max_amount, pool_cash)

    # ------------------------------------------------------------------
    # Snapshot helpers
    # ------------------------------------------------------------------

    def accrued_reserves(
        self,
        snapshot: PoolSnapshot,
        now_timestamp: int | None = None,
    ) -> dict[str, Reserve]:
        """Accrue every reserve in a snapshot to now (default: snapshot time)."""
        now = snapshot.timestamp if now_timestamp is None else now_timestamp
        return {asset: accrue(reserve, now) for asset, reserve in snapshot.reserves.items()}

    def assess(
        self,
        snapshot: PoolSnapshot,
        user_address: str,
        now_timestamp: int | None = None,
        prices: Mapping[str, int] | None = None,
    ) -> AccountRisk:
        """Build the full risk breakdown for one account.

        Args:
            snapshot: Pool snapshot.
            user_address: Account to assess.
            now_timestamp: Accrue to this time instead of the snapshot time.
            prices: Override prices (used for stress scenarios).

        Returns:
            AccountRisk with totals, health factor and per-asset exposures.
        """
        reserves = self.accrued_reserves(snapshot, now_timestamp)
        positions = snapshot.positions_for(user_address)
        exposures = self._exposures(
            positions, reserves, snapshot.prices if prices is None else prices
        )

        collateral = sum((e.liquidation_value_usd for e in exposures), 0)
        debt = sum((e.debt_value_usd for e in exposures), 0)
        hf = self.health_factor(collateral, debt)

        return AccountRisk(
            user_address=normalize_address(user_address),
            ledger_version=snapshot.ledger_version,
            timestamp=snapshot.timestamp if now_timestamp is None else now_timestamp,
            total_supply_usd=sum((e.supply_value_usd for e in exposures), 0),
            collateral_value_usd=collateral,
            borrow_capacity_usd=sum((e.borrow_capacity_usd for e in exposures), 0),
            debt_value_usd=debt,
            health_factor=hf,
            status=self.position_status(hf),
            exposures=exposures,
        )

    def max_withdraw_for(
        self,
        snapshot: PoolSnapshot,
        user_address: str,
        asset: str,
        now_timestamp: int | None = None,
    ) -> int:
        """Safe withdrawal bound for one asset of one account, native units."""
        risk = self.assess(snapshot, user_address, now_timestamp)
        exposure = self._find_exposure(risk, asset)
        if exposure is None:
            return 0
        reserve = snapshot.reserve(asset)

        # Withdrawing non-collateral supply, or with no debt, cannot lower the HF
        if not exposure.use_as_collateral or risk.debt_value_usd == 0:
            return min(exposure.supply_balance, reserve.cash)

        return self.max_safe_withdraw(
            collateral_usd=risk.collateral_value_usd,
            debt_usd=risk.debt_value_usd,
            price=exposure.price,
            liquidation_threshold_bps=exposure.liquidation_threshold_bps,
            user_supply_balance=exposure.supply_balance,
            pool_cash=reserve.cash,
            decimals=exposure.decimals,
        )

    def max_borrow_for(
        self,
        snapshot: PoolSnapshot,
        user_address: str,
        asset: str,
        now_timestamp: int | None = None,
    ) -> int:
        """Safe borrow bound for one asset of one account, native units."""
        reserve = snapshot.reserve(asset)
        if not reserve.is_borrowable:
            return 0

        risk = self.assess(snapshot, user_address, now_timestamp)
        # borrow_capacity_usd is already LTV-weighted per asset
        return self.max_safe_borrow(
            collateral_usd=risk.borrow_capacity_usd,
            debt_usd=risk.debt_value_usd,
            price=snapshot.price(asset),
            pool_cash=reserve.cash,
            ltv_bps=BPS,
            decimals=reserve.decimals,
        )

    def health_factor_after_borrow(
        self,
        snapshot: PoolSnapshot,
        user_address: str,
        asset: str,
        amount: int,
        now_timestamp: int | None = None,
    ) -> int:
        """Projected health factor if the account borrowed `amount` more."""
        _require_non_negative(amount=amount)
        risk = self.assess(snapshot, user_address, now_timestamp)
        reserve = snapshot.reserve(asset)
        added_debt = asset_value_usd(amount, reserve.decimals, snapshot.price(asset))
        return self.health_factor(risk.collateral_value_usd, risk.debt_value_usd + added_debt)

    def simulate_price_change(
        self,
        snapshot: PoolSnapshot,
        user_address: str,
        asset: str,
        price_change_pct: Decimal,
    ) -> int:
        """Health factor after moving one asset's price by a percentage.

        Args:
            snapshot: Pool snapshot.
            user_address: Account to stress.
            asset: Asset whose price moves.
            price_change_pct: Change as percentage (e.g., -10 for -10%).

        Returns:
            Health factor (WAD) under the stressed price.
        """
        if price_change_pct < -100:
            raise InvalidInputError(f"price cannot fall more than 100%, got {price_change_pct}")

        key = normalize_address(asset)
        multiplier = Decimal(1) + (Decimal(price_change_pct) / Decimal(100))
        prices = dict(snapshot.prices)
        prices[key] = int(Decimal(snapshot.price(key)) * multiplier)

        return self.assess(snapshot, user_address, prices=prices).health_factor

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _exposures(
        self,
        positions: Sequence[UserReservePosition],
        reserves: Mapping[str, Reserve],
        prices: Mapping[str, int],
    ) -> list[AssetExposure]:
        exposures: list[AssetExposure] = []
        for position in positions:
            if position.asset not in reserves:
                raise InvalidInputError(f"No reserve for asset {position.asset}")
            if position.asset not in prices:
                raise InvalidInputError(f"No price for asset {position.asset}")

            reserve = reserves[position.asset]
            price = prices[position.asset]
            _require_non_negative(price=price)

            supplied = supply_balance(position, reserve)
            borrowed = borrow_balance(position, reserve)
            exposures.append(
                AssetExposure(
                    asset=position.asset,
                    symbol=reserve.symbol,
                    decimals=reserve.decimals,
                    price=price,
                    supply_balance=supplied,
                    borrow_balance=borrowed,
                    supply_value_usd=asset_value_usd(supplied, reserve.decimals, price),
                    debt_value_usd=asset_value_usd(borrowed, reserve.decimals, price),
                    use_as_collateral=position.use_as_collateral,
                    liquidation_threshold_bps=reserve.liquidation_threshold_bps,
                    ltv_bps=reserve.ltv_bps,
                )
            )
        return exposures

    @staticmethod
    def _find_exposure(risk: AccountRisk, asset: str) -> AssetExposure | None:
        key = normalize_address(asset)
        return next((e for e in risk.exposures if e.asset == key), None)
