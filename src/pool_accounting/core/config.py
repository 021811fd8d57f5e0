"""Runtime configuration for pool accounting.

Settings are read from environment variables, with `.env` support:

    DUST_THRESHOLD_RAW      remaining debt (raw units) accepted as cleared  (1000)
    REPAY_BUFFER_BPS        full-repay buffer in basis points, 1 = 1.0001x  (1)
    ALLOW_UNLIMITED_REPAY   try the max-sentinel repay tier first           (true)
    AT_RISK_HEALTH_FACTOR   health factor below which an account is at risk (1.5)
    LOG_DIR                 directory for audit logs                        (logs)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path

from dotenv import load_dotenv

from pool_accounting.core.errors import ConfigurationError
from pool_accounting.data.constants import (
    BPS,
    DEFAULT_AT_RISK_HEALTH_FACTOR,
    DEFAULT_DUST_THRESHOLD_RAW,
    DEFAULT_REPAY_BUFFER_BPS,
    WAD,
)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class PoolAccountingConfig:
    """Configuration for settlement and risk reporting."""

    dust_threshold_raw: int = DEFAULT_DUST_THRESHOLD_RAW
    repay_buffer_bps: int = DEFAULT_REPAY_BUFFER_BPS
    allow_unlimited_repay: bool = True
    at_risk_health_factor: Decimal = Decimal(DEFAULT_AT_RISK_HEALTH_FACTOR)
    log_dir: Path = Path("logs")

    def __post_init__(self) -> None:
        if self.dust_threshold_raw < 0:
            raise ConfigurationError(
                f"DUST_THRESHOLD_RAW must be non-negative, got {self.dust_threshold_raw}"
            )
        if self.repay_buffer_bps < 0 or self.repay_buffer_bps > BPS:
            raise ConfigurationError(
                f"REPAY_BUFFER_BPS must be in [0, {BPS}], got {self.repay_buffer_bps}"
            )
        if self.at_risk_health_factor < 1:
            raise ConfigurationError(
                f"AT_RISK_HEALTH_FACTOR must be >= 1, got {self.at_risk_health_factor}"
            )

    @property
    def buffer_numerator(self) -> int:
        """Numerator of the full-repay buffer ratio."""
        return BPS + self.repay_buffer_bps

    @property
    def buffer_denominator(self) -> int:
        """Denominator of the full-repay buffer ratio."""
        return BPS

    @property
    def at_risk_health_factor_wad(self) -> int:
        """At-risk threshold as a WAD integer."""
        return int(self.at_risk_health_factor * WAD)

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> PoolAccountingConfig:
        """Load configuration from the environment (and an optional .env file).

        Raises:
            ConfigurationError: If a variable cannot be parsed or is out of range.
        """
        load_dotenv(env_file)
        return cls(
            dust_threshold_raw=_int_env("DUST_THRESHOLD_RAW", DEFAULT_DUST_THRESHOLD_RAW),
            repay_buffer_bps=_int_env("REPAY_BUFFER_BPS", DEFAULT_REPAY_BUFFER_BPS),
            allow_unlimited_repay=_bool_env("ALLOW_UNLIMITED_REPAY", True),
            at_risk_health_factor=_decimal_env(
                "AT_RISK_HEALTH_FACTOR", DEFAULT_AT_RISK_HEALTH_FACTOR
            ),
            log_dir=Path(os.getenv("LOG_DIR", "logs")),
        )


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw.strip())
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")


def _decimal_env(name: str, default: str) -> Decimal:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return Decimal(default)
    try:
        value = Decimal(raw.strip())
    except InvalidOperation as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e
    if not value.is_finite():
        raise ConfigurationError(f"{name} must be finite, got {raw!r}")
    return value
