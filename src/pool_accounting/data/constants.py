"""Constants for the mirrored lending pool.

Fixed-point scales, protocol limits, and the minimal ABIs of the pool and
oracle contracts read by the ledger reader.
"""

from __future__ import annotations

# =============================================================================
# Fixed-point scales
# =============================================================================

WAD = 10**18
RAY = 10**27
WAD_DECIMALS = 18

BPS = 10_000  # 100% in basis points

SECONDS_PER_YEAR = 365 * 24 * 60 * 60

MAX_UINT256 = 2**256 - 1

# Health factor reported for accounts with no debt. Finite health factors are
# always strictly below this value.
HEALTH_FACTOR_INFINITE = MAX_UINT256

# Health factor (WAD) below which a position is liquidatable
LIQUIDATION_HEALTH_FACTOR = WAD

# =============================================================================
# Settlement defaults
# =============================================================================

DEFAULT_DUST_THRESHOLD_RAW = 1000
DEFAULT_REPAY_BUFFER_BPS = 1  # 1.0001x
DEFAULT_AT_RISK_HEALTH_FACTOR = "1.5"

# Debt displays below this many whole tokens are shown as dust
DISPLAY_DUST_THRESHOLD = "0.0001"

# =============================================================================
# Minimal ABIs (read-only views)
# =============================================================================

POOL_ABI = [
    {
        "inputs": [{"name": "asset", "type": "address"}],
        "name": "reserves",
        "outputs": [
            {"name": "reserveCash", "type": "uint128"},
            {"name": "totalDebtPrincipal", "type": "uint128"},
            {"name": "liquidityIndex", "type": "uint128"},
            {"name": "variableBorrowIndex", "type": "uint128"},
            {"name": "liquidityRateRayPerSec", "type": "uint64"},
            {"name": "variableBorrowRateRayPerSec", "type": "uint64"},
            {"name": "reserveFactorBps", "type": "uint16"},
            {"name": "ltvBps", "type": "uint16"},
            {"name": "liqThresholdBps", "type": "uint16"},
            {"name": "liqBonusBps", "type": "uint16"},
            {"name": "closeFactorBps", "type": "uint16"},
            {"name": "decimals", "type": "uint8"},
            {"name": "isBorrowable", "type": "bool"},
            {"name": "optimalUBps", "type": "uint16"},
            {"name": "baseRateRayPerSec", "type": "uint64"},
            {"name": "slope1RayPerSec", "type": "uint64"},
            {"name": "slope2RayPerSec", "type": "uint64"},
            {"name": "lastUpdate", "type": "uint40"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "user", "type": "address"},
            {"name": "asset", "type": "address"},
        ],
        "name": "userReserves",
        "outputs": [
            {
                "components": [
                    {"name": "principal", "type": "uint128"},
                    {"name": "index", "type": "uint128"},
                ],
                "name": "supply",
                "type": "tuple",
            },
            {
                "components": [
                    {"name": "principal", "type": "uint128"},
                    {"name": "index", "type": "uint128"},
                ],
                "name": "borrow",
                "type": "tuple",
            },
            {"name": "useAsCollateral", "type": "bool"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "getReservesList",
        "outputs": [{"name": "", "type": "address[]"}],
        "stateMutability": "view",
        "type": "function",
    },
]

ORACLE_ABI = [
    {
        "inputs": [{"name": "asset", "type": "address"}],
        "name": "getAssetPrice1e18",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]