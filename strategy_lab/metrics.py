"""
Performance metrics for backtest evaluation.

Computes the statistics shown next to every backtest:
Sharpe, max drawdown, win rate, total return, profit factor and a
t-test on per-bar returns. Degenerate inputs (no trades, flat equity,
empty curve) map to defined values (0, 1 or the 9999 profit-factor cap)
instead of NaN/inf.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from .models import (
    INITIAL_EQUITY,
    PROFIT_FACTOR_CAP,
    BacktestResult,
    EquityPoint,
    Metrics,
    PairComparison,
    Trade,
    WindowResult,
)
from .stats import profit_factor, round_half_up, t_test

TRADING_DAYS_PER_YEAR = 252


def compute_returns(equity_curve: Sequence[EquityPoint]) -> np.ndarray:
    """Per-bar simple returns; the first entry is defined as 0."""
    equity = np.array([p.equity for p in equity_curve], dtype=float)
    returns = np.zeros(len(equity))
    if len(equity) > 1:
        returns[1:] = np.diff(equity) / equity[:-1]
    return returns


def compute_sharpe(returns: np.ndarray, periods_per_year: int = TRADING_DAYS_PER_YEAR) -> float:
    """
    Annualized Sharpe ratio with no risk-free adjustment.

    Sharpe = mean * sqrt(periods_per_year) / std, population std.
    """
    if len(returns) == 0:
        return 0.0
    std = float(returns.std())
    if std == 0:
        return 0.0
    return float(returns.mean()) * math.sqrt(periods_per_year) / std


def compute_max_drawdown(equity_curve: Sequence[EquityPoint]) -> float:
    """Deepest peak-to-trough decline in percent, running peak from the first point."""
    if not equity_curve:
        return 0.0
    peak = equity_curve[0].equity
    max_dd = 0.0
    for point in equity_curve:
        peak = max(peak, point.equity)
        if peak > 0:
            max_dd = max(max_dd, (peak - point.equity) / peak)
    return min(max_dd, 1.0) * 100


def compute_metrics(
    equity_curve: Sequence[EquityPoint],
    trades: Sequence[Trade],
    initial_equity: float = INITIAL_EQUITY,
) -> Metrics:
    """Compute all metrics from a trade list and equity curve."""
    returns = compute_returns(equity_curve)

    wins = sum(1 for t in trades if t.pnl > 0)
    win_rate = wins / len(trades) * 100 if trades else 0.0

    if equity_curve:
        total_return = (equity_curve[-1].equity / initial_equity - 1) * 100
    else:
        total_return = 0.0

    pf = profit_factor(t.pnl for t in trades)
    if math.isinf(pf):
        pf = PROFIT_FACTOR_CAP

    t_stat, p_value = t_test(returns)

    return Metrics(
        sharpe=round_half_up(compute_sharpe(returns), 2),
        max_drawdown_pct=round_half_up(compute_max_drawdown(equity_curve), 2),
        win_rate_pct=round_half_up(win_rate, 2),
        total_return_pct=round_half_up(total_return, 2),
        profit_factor=round_half_up(pf, 2),
        t_statistic=round_half_up(t_stat, 2),
        p_value=round_half_up(p_value, 4),
        total_trades=len(trades),
    )


def format_results_table(comparisons: list[PairComparison]) -> str:
    """Format multiple pair results as a comparison table."""
    from tabulate import tabulate

    headers = ["Pair", "Source", "Trades", "Win%", "Return%", "Sharpe", "MaxDD%", "PF", "t", "p"]

    rows = []
    for c in sorted(comparisons, key=lambda x: x.metrics.sharpe, reverse=True):
        m = c.metrics
        rows.append([
            c.pair,
            c.data_source,
            c.trades,
            f"{m.win_rate_pct:.1f}",
            f"{m.total_return_pct:.2f}",
            f"{m.sharpe:.2f}",
            f"{m.max_drawdown_pct:.2f}",
            f"{m.profit_factor:.2f}",
            f"{m.t_statistic:.2f}",
            f"{m.p_value:.4f}",
        ])

    return tabulate(rows, headers=headers, tablefmt="grid")


def format_walkforward_table(windows: list[WindowResult]) -> str:
    from tabulate import tabulate

    headers = ["Pair", "Window", "From", "To", "Trades", "Return%", "Sharpe"]
    rows = [
        [w.pair, w.window, w.start_date, w.end_date, w.trades, f"{w.return_pct:.2f}", f"{w.sharpe:.2f}"]
        for w in windows
    ]
    return tabulate(rows, headers=headers, tablefmt="grid")


def format_detailed_report(r: BacktestResult) -> str:
    """Format a detailed report for a single pair."""
    m = r.metrics
    params = r.rule.params_dict if r.rule is not None else {}
    lines = [
        f"\n{'='*60}",
        f"  {r.pair}  ({r.data_source})",
        f"{'='*60}",
        f"  Rule:        {params}",
        f"  Risk/trade:  {r.risk_fraction * 100:.1f}% of equity",
        f"",
        f"  RETURNS",
        f"    Total Return:     {m.total_return_pct:>8.2f}%",
        f"    Final Equity:     {r.final_equity:>8.2f}",
        f"    Sharpe Ratio:     {m.sharpe:>8.2f}",
        f"",
        f"  RISK",
        f"    Max Drawdown:     {m.max_drawdown_pct:>8.2f}%",
        f"",
        f"  TRADES",
        f"    Total Trades:     {m.total_trades:>8d}",
        f"    Win Rate:         {m.win_rate_pct:>8.2f}%",
        f"    Profit Factor:    {m.profit_factor:>8.2f}",
        f"",
        f"  SIGNIFICANCE",
        f"    t-Statistic:      {m.t_statistic:>8.2f}",
        f"    p-Value:          {m.p_value:>8.4f}",
        f"{'='*60}",
    ]
    return "\n".join(lines)
