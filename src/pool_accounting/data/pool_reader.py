"""Read-only ledger reader for the mirrored lending pool.

Builds Reserve, UserReservePosition and price snapshots from the pool and
oracle contracts. Every call of one snapshot is pinned to the same block,
whose number becomes the snapshot's ledger_version.

The reader never signs or submits transactions.
"""

from __future__ import annotations

from typing import Iterable, Mapping

from web3 import Web3
from web3.contract import Contract
from web3.types import BlockIdentifier

from pool_accounting.core.logging import AuditLogger
from pool_accounting.data.constants import ORACLE_ABI, POOL_ABI
from pool_accounting.data.models import (
    PoolSnapshot,
    Reserve,
    UserReservePosition,
    normalize_address,
)


def reserve_from_struct(asset: str, raw: tuple, symbol: str = "") -> Reserve:
    """Decode the pool's `reserves(asset)` return value."""
    (
        cash,
        total_debt_principal,
        liquidity_index,
        variable_borrow_index,
        liquidity_rate,
        variable_borrow_rate,
        reserve_factor_bps,
        ltv_bps,
        liquidation_threshold_bps,
        liquidation_bonus_bps,
        close_factor_bps,
        decimals,
        is_borrowable,
        optimal_utilization_bps,
        base_rate,
        slope1,
        slope2,
        last_update,
    ) = raw
    return Reserve(
        asset=asset,
        symbol=symbol,
        decimals=decimals,
        cash=cash,
        total_debt_principal=total_debt_principal,
        liquidity_index=liquidity_index,
        variable_borrow_index=variable_borrow_index,
        liquidity_rate_per_second=liquidity_rate,
        variable_borrow_rate_per_second=variable_borrow_rate,
        is_borrowable=is_borrowable,
        ltv_bps=ltv_bps,
        liquidation_threshold_bps=liquidation_threshold_bps,
        liquidation_bonus_bps=liquidation_bonus_bps,
        close_factor_bps=close_factor_bps,
        reserve_factor_bps=reserve_factor_bps,
        optimal_utilization_bps=optimal_utilization_bps,
        base_rate_per_second=base_rate,
        slope1_per_second=slope1,
        slope2_per_second=slope2,
        last_update_timestamp=last_update,
    )


def position_from_struct(asset: str, raw: tuple) -> UserReservePosition:
    """Decode the pool's `userReserves(user, asset)` return value."""
    (supply_principal, supply_index), (borrow_principal, borrow_index), use_as_collateral = raw
    return UserReservePosition(
        asset=asset,
        supply_principal=supply_principal,
        supply_snapshot_index=supply_index,
        borrow_principal=borrow_principal,
        borrow_snapshot_index=borrow_index,
        use_as_collateral=use_as_collateral,
    )


class LendingPoolReader:
    """Typed read access to the pool and its price oracle.

    Usage:
        reader = LendingPoolReader(web3, pool_address, oracle_address)
        snapshot = reader.read_snapshot(users=[user_address])
    """

    def __init__(
        self,
        web3: Web3,
        pool_address: str,
        oracle_address: str,
        symbols: Mapping[str, str] | None = None,
        logger: AuditLogger | None = None,
    ) -> None:
        """Initialize reader.

        Args:
            web3: Connected Web3 instance.
            pool_address: Lending pool contract address.
            oracle_address: Price oracle contract address.
            symbols: Optional asset -> symbol labels for reports.
            logger: Optional audit logger for snapshot reads.
        """
        self.web3 = web3
        self.logger = logger
        self._symbols = {normalize_address(k): v for k, v in (symbols or {}).items()}
        self._pool: Contract = self.web3.eth.contract(
            address=Web3.to_checksum_address(pool_address),
            abi=POOL_ABI,
        )
        self._oracle: Contract = self.web3.eth.contract(
            address=Web3.to_checksum_address(oracle_address),
            abi=ORACLE_ABI,
        )

    def list_reserves(self, block_identifier: BlockIdentifier = "latest") -> list[str]:
        """Addresses of all listed reserves."""
        assets = self._pool.functions.getReservesList().call(block_identifier=block_identifier)
        return [normalize_address(a) for a in assets]

    def read_reserve(self, asset: str, block_identifier: BlockIdentifier = "latest") -> Reserve:
        """Read one reserve."""
        raw = self._pool.functions.reserves(Web3.to_checksum_address(asset)).call(
            block_identifier=block_identifier
        )
        key = normalize_address(asset)
        return reserve_from_struct(key, raw, self._symbols.get(key, ""))

    def read_position(
        self,
        user: str,
        asset: str,
        block_identifier: BlockIdentifier = "latest",
    ) -> UserReservePosition:
        """Read one user's position in one asset."""
        raw = self._pool.functions.userReserves(
            Web3.to_checksum_address(user),
            Web3.to_checksum_address(asset),
        ).call(block_identifier=block_identifier)
        return position_from_struct(normalize_address(asset), raw)

    def read_price(self, asset: str, block_identifier: BlockIdentifier = "latest") -> int:
        """Read the oracle's WAD-scaled USD price for an asset."""
        return self._oracle.functions.getAssetPrice1e18(Web3.to_checksum_address(asset)).call(
            block_identifier=block_identifier
        )

    def read_snapshot(
        self,
        users: Iterable[str],
        assets: Iterable[str] | None = None,
        block_identifier: BlockIdentifier = "latest",
    ) -> PoolSnapshot:
        """Read reserves, prices and user positions pinned to one block.

        Args:
            users: Accounts to include.
            assets: Reserves to include (default: every listed reserve).
            block_identifier: Block to read at.

        Returns:
            PoolSnapshot stamped with the block number and timestamp.
        """
        block = self.web3.eth.get_block(block_identifier)
        block_number = block["number"]

        asset_list = (
            [normalize_address(a) for a in assets]
            if assets is not None
            else self.list_reserves(block_number)
        )

        reserves = {a: self.read_reserve(a, block_number) for a in asset_list}
        prices = {a: self.read_price(a, block_number) for a in asset_list}

        positions: dict[str, list[UserReservePosition]] = {}
        for user in users:
            user_positions = [self.read_position(user, a, block_number) for a in asset_list]
            positions[normalize_address(user)] = [
                p
                for p in user_positions
                if p.supply_principal or p.borrow_principal
            ]

        if self.logger:
            self.logger.debug(
                f"Read snapshot at block {block_number}",
                {"reserves": len(reserves), "accounts": len(positions)},
            )

        return PoolSnapshot(
            ledger_version=block_number,
            timestamp=block["timestamp"],
            reserves=reserves,
            prices=prices,
            positions=positions,
        )
