"""
Trade-log export.

The CSV layout is consumed by existing spreadsheets and must keep its
field order:

    Pair,Entry Date,Exit Date,Entry Price,Exit Price,PNL,Return %
    <one row per trade>
    <blank line>
    Sharpe,<v>
    Max Drawdown %,<v>
    Win Rate %,<v>
    Total Return %,<v>
    Profit Factor,<v>
    t-Statistic,<v>
    p-Value,<v>

Numbers are written the way the browser client writes them (shortest
round-trip form, integral values without a trailing ".0").
"""

from __future__ import annotations

import json
import math
from datetime import date, datetime
from pathlib import Path

import numpy as np

from .models import BacktestResult, ComparisonReport

CSV_HEADER = "Pair,Entry Date,Exit Date,Entry Price,Exit Price,PNL,Return %"


def format_number(x: float | int) -> str:
    """Render a number like JavaScript's String(x)."""
    if isinstance(x, (int, np.integer)) and not isinstance(x, bool):
        return str(int(x))
    x = float(x)
    if math.isnan(x):
        return "NaN"
    if math.isinf(x):
        return "Infinity" if x > 0 else "-Infinity"
    if x == 0:
        return "0"
    if 1e-6 <= abs(x) < 1e21:
        return np.format_float_positional(x, trim="-")
    mantissa, exp = repr(x).split("e")
    exp_int = int(exp)
    return f"{mantissa}e{'+' if exp_int > 0 else '-'}{abs(exp_int)}"


def trades_to_csv(result: BacktestResult) -> str:
    """Serialize trades plus the metrics footer. No trailing newline."""
    lines = [CSV_HEADER]
    for t in result.trades:
        lines.append(",".join([
            t.pair,
            t.entry_date,
            t.exit_date,
            format_number(t.entry_price),
            format_number(t.exit_price),
            format_number(t.pnl),
            format_number(t.return_pct),
        ]))
    lines.append("")

    m = result.metrics
    lines.append(f"Sharpe,{format_number(m.sharpe)}")
    lines.append(f"Max Drawdown %,{format_number(m.max_drawdown_pct)}")
    lines.append(f"Win Rate %,{format_number(m.win_rate_pct)}")
    lines.append(f"Total Return %,{format_number(m.total_return_pct)}")
    lines.append(f"Profit Factor,{format_number(m.profit_factor)}")
    lines.append(f"t-Statistic,{format_number(m.t_statistic)}")
    lines.append(f"p-Value,{format_number(m.p_value)}")
    return "\n".join(lines)


def _iso_day(value: date | datetime | str) -> str:
    if isinstance(value, (date, datetime)):
        return value.isoformat()[:10]
    return str(value)[:10]


def export_filename(instrument: str | None, start: date | datetime | str, end: date | datetime | str) -> str:
    """backtest_<instrument|multi>_<start>_<end>.csv"""
    return f"backtest_{instrument or 'multi'}_{_iso_day(start)}_{_iso_day(end)}.csv"


def write_csv(result: BacktestResult, path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(trades_to_csv(result), encoding="utf-8")
    return path


def save_report_json(report: ComparisonReport, path: str | Path) -> Path:
    """Save a comparison run for machine-readable analysis."""
    data = {
        "generated_at": datetime.now().isoformat(timespec="seconds"),
        **report.to_dict(),
        "skipped": report.skipped,
    }
    best = report.best
    if best is not None and best.result is not None:
        data["best"] = {"pair": best.pair, **best.result.to_dict()}

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path
