"""
Data model for the backtest core.

Bars, trades and equity points are plain frozen dataclasses. Result
containers carry a ``to_dict()`` producing the camelCase shapes that the
web client and the CSV/JSON exports consume.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

import pandas as pd

from .rules import StrategyRule

INITIAL_EQUITY = 10_000.0
PROFIT_FACTOR_CAP = 9999.0


class Side(Enum):
    LONG = "long"
    FLAT = "flat"


@dataclass(frozen=True)
class PriceBar:
    """One daily close. ``date`` is an ISO calendar date string."""
    date: str
    close: float


@dataclass(frozen=True)
class Trade:
    """A completed round trip. Only ever created when a position closes."""
    pair: str
    entry_date: str
    exit_date: str
    entry_price: float
    exit_price: float
    pnl: float
    return_pct: float
    bars_held: int = 0
    exit_reason: str = "signal"  # "signal" or "end_of_data"

    def to_dict(self) -> dict:
        return {
            "pair": self.pair,
            "entryDate": self.entry_date,
            "exitDate": self.exit_date,
            "entryPrice": self.entry_price,
            "exitPrice": self.exit_price,
            "pnl": self.pnl,
            "returnPct": self.return_pct,
        }


@dataclass(frozen=True)
class EquityPoint:
    date: str
    equity: float

    def to_dict(self) -> dict:
        return {"date": self.date, "equity": self.equity}


@dataclass
class Metrics:
    """Summary statistics for one simulated run."""
    sharpe: float = 0.0
    max_drawdown_pct: float = 0.0
    win_rate_pct: float = 0.0
    total_return_pct: float = 0.0
    profit_factor: float = 0.0
    t_statistic: float = 0.0
    p_value: float = 1.0
    total_trades: int = 0

    def summary(self) -> dict:
        """Return a clean summary dict for display."""
        return {
            "sharpe": f"{self.sharpe:.2f}",
            "max_drawdown": f"{self.max_drawdown_pct:.2f}%",
            "win_rate": f"{self.win_rate_pct:.1f}%",
            "total_return": f"{self.total_return_pct:+.2f}%",
            "profit_factor": f"{self.profit_factor:.2f}",
            "t_stat": f"{self.t_statistic:.2f}",
            "p_value": f"{self.p_value:.4f}",
            "total_trades": self.total_trades,
        }

    def to_dict(self) -> dict:
        return {
            "sharpe": self.sharpe,
            "maxDrawdownPct": self.max_drawdown_pct,
            "winRatePct": self.win_rate_pct,
            "totalReturnPct": self.total_return_pct,
            "profitFactor": self.profit_factor,
            "tStatistic": self.t_statistic,
            "pValue": self.p_value,
        }

    @property
    def is_significant(self) -> bool:
        """Two-sided 5% test on the per-bar returns."""
        return self.total_trades > 0 and self.p_value < 0.05


@dataclass
class BacktestResult:
    """Full result of a single-pair simulation."""
    pair: str
    equity_curve: list[EquityPoint] = field(default_factory=list)
    trades: list[Trade] = field(default_factory=list)
    metrics: Metrics = field(default_factory=Metrics)
    rule: StrategyRule | None = None
    risk_fraction: float = 0.1
    data_source: str = "provided"

    @property
    def final_equity(self) -> float:
        return self.equity_curve[-1].equity if self.equity_curve else INITIAL_EQUITY

    def equity_series(self) -> pd.Series:
        """Equity curve as a date-indexed Series (for plotting)."""
        if not self.equity_curve:
            return pd.Series(dtype=float)
        return pd.Series(
            [p.equity for p in self.equity_curve],
            index=pd.to_datetime([p.date for p in self.equity_curve]),
            name=self.pair,
        )

    def to_dict(self) -> dict:
        return {
            "equityCurve": [p.to_dict() for p in self.equity_curve],
            "trades": [t.to_dict() for t in self.trades],
            "metrics": self.metrics.to_dict(),
        }


@dataclass(frozen=True)
class WindowResult:
    """Out-of-sample result for one walk-forward window."""
    window: int
    trades: int
    return_pct: float
    sharpe: float
    pair: str = ""
    start_date: str = ""
    end_date: str = ""

    def to_dict(self) -> dict:
        return {
            "pair": self.pair,
            "window": self.window,
            "trades": self.trades,
            "returnPct": self.return_pct,
            "sharpe": self.sharpe,
        }


@dataclass
class PairComparison:
    pair: str
    metrics: Metrics
    trades: int
    data_source: str
    result: BacktestResult | None = None

    def to_dict(self) -> dict:
        return {
            "pair": self.pair,
            "trades": self.trades,
            "source": self.data_source,
            **self.metrics.to_dict(),
        }


@dataclass
class ComparisonReport:
    """Output of a multi-pair run: per-pair metrics plus walk-forward windows."""
    comparisons: list[PairComparison] = field(default_factory=list)
    walkforward: list[WindowResult] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def best(self) -> PairComparison | None:
        if not self.comparisons:
            return None
        return max(self.comparisons, key=lambda c: c.metrics.sharpe)

    def to_dict(self) -> dict:
        return {
            "comparisons": [c.to_dict() for c in self.comparisons],
            "walkforward": [w.to_dict() for w in self.walkforward],
        }
