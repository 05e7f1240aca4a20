"""
Strategy Lab: backtesting and statistics engine for prose trading strategies.

A free-text strategy description becomes a small executable rule
(RSI thresholds, EMA cross, or a momentum fallback), which is replayed
over daily closes to produce:
- A trade log and equity curve (single long position, fractional sizing)
- Sharpe, max drawdown, win rate, total return, profit factor
- A t-test on per-bar returns (normal approximation)
- Walk-forward out-of-sample re-tests on rolling 180/90-bar windows
- Multi-pair comparisons with a synthetic-data fallback when history is missing
"""

from .engine import BacktestEngine, backtest_pair
from .errors import DataUnavailable, InsufficientData, StrategyLabError
from .metrics import compute_metrics
from .models import (
    BacktestResult,
    ComparisonReport,
    EquityPoint,
    Metrics,
    PairComparison,
    PriceBar,
    Trade,
    WindowResult,
)
from .risk import parse_risk_fraction
from .rules import EmaCrossRule, MomentumRule, RsiRule, StrategyRule, derive_rule
from .runner import MAJOR_PAIRS, run_comparison
from .walkforward import plan_windows, walk_forward_test

__all__ = [
    "BacktestEngine",
    "BacktestResult",
    "ComparisonReport",
    "DataUnavailable",
    "EmaCrossRule",
    "EquityPoint",
    "InsufficientData",
    "MAJOR_PAIRS",
    "Metrics",
    "MomentumRule",
    "PairComparison",
    "PriceBar",
    "RsiRule",
    "StrategyLabError",
    "StrategyRule",
    "Trade",
    "WindowResult",
    "backtest_pair",
    "compute_metrics",
    "derive_rule",
    "parse_risk_fraction",
    "plan_windows",
    "run_comparison",
    "walk_forward_test",
]
