"""
Engine configuration loaded from environment variables.

Uses pydantic-settings so bad values fail at startup with a clear message
instead of producing a silently odd backtest.

Usage:
    from strategy_lab.config import get_settings
    settings = get_settings()
    print(settings.cost_pct)

Every field can be overridden with a ``STRATEGY_LAB_`` prefixed variable,
e.g. ``STRATEGY_LAB_COST_PCT=0.1``.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """All engine settings, loaded from the environment / .env file."""

    model_config = SettingsConfigDict(
        env_prefix="STRATEGY_LAB_",
        env_file=str(Path(__file__).parent.parent / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Simulation ──
    initial_equity: float = 10_000.0
    cost_pct: float = 0.05               # spread + slippage per round trip, in %
    max_trades: int = 1000               # hard stop for pathological signal series
    default_risk_fraction: float = 0.1   # used when the risk note has no percentage

    # ── Walk-forward ──
    train_bars: int = 180   # ~6 months
    test_bars: int = 90     # ~3 months
    min_test_bars: int = 60

    # ── Data ──
    history_years: int = 3
    data_source: str = "yfinance"   # "yfinance", "csv" or "synthetic"
    csv_dir: Path | None = None

    # ── Application ──
    log_level: str = "INFO"

    @field_validator("initial_equity")
    @classmethod
    def validate_initial_equity(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("initial_equity must be positive")
        return v

    @field_validator("cost_pct")
    @classmethod
    def validate_cost_pct(cls, v: float) -> float:
        if not 0.0 <= v <= 5.0:
            raise ValueError("cost_pct must be 0-5 (%)")
        return v

    @field_validator("max_trades")
    @classmethod
    def validate_max_trades(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_trades must be at least 1")
        return v

    @field_validator("default_risk_fraction")
    @classmethod
    def validate_risk_fraction(cls, v: float) -> float:
        if not 0.0 < v <= 1.0:
            raise ValueError("default_risk_fraction must be in (0, 1]")
        return v

    @field_validator("train_bars", "test_bars", "min_test_bars", "history_years")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("window sizes and history_years must be positive")
        return v

    @field_validator("data_source")
    @classmethod
    def validate_data_source(cls, v: str) -> str:
        v = v.lower()
        if v not in ("yfinance", "csv", "synthetic"):
            raise ValueError("data_source must be one of: yfinance, csv, synthetic")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log_level: {v}")
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache so the environment is only read once.
    """
    return Settings()
