#!/usr/bin/env python3
"""
Strategy backtest runner.

Turns a prose strategy + risk note into a rule, backtests it across the
requested pairs, walk-forward re-tests it and prints a comparison report.
Optional CSV/JSON exports and an equity-curve chart.

Usage:
    python -m strategy_lab.run --description "Buy when RSI(14) is below 30, sell above 70" \
        --risk "Risk 2% per trade"
    python -m strategy_lab.run -d "EMA(9) crosses above EMA(21)" --pairs EURUSD GBPUSD \
        --source synthetic --seed 7 --export trades.csv --plot equity.png
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import numpy as np
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import matplotlib.dates as mdates

from .config import get_settings
from .data import build_provider
from .export import export_filename, save_report_json, write_csv
from .metrics import format_detailed_report, format_results_table, format_walkforward_table
from .models import BacktestResult
from .runner import default_range, resolve_pairs, run_comparison

log = logging.getLogger("lab.run")


def plot_equity_curves(
    results: list[BacktestResult],
    path: str | Path,
    title: str = "Strategy Equity by Pair",
) -> str:
    """Plot equity curves and drawdowns for every pair."""
    fig, axes = plt.subplots(2, 1, figsize=(16, 10), gridspec_kw={"height_ratios": [3, 1]})
    ax1, ax2 = axes

    sorted_results = sorted(results, key=lambda r: r.metrics.sharpe, reverse=True)
    colors = plt.cm.tab10(np.linspace(0, 1, max(1, min(len(sorted_results), 10))))

    for idx, result in enumerate(sorted_results[:10]):
        equity = result.equity_series()
        if len(equity) < 2:
            continue
        color = colors[idx % len(colors)]
        label = f"{result.pair} [{result.data_source}] (Sharpe={result.metrics.sharpe:.2f})"
        ax1.plot(equity.index, equity.values, label=label, color=color, linewidth=1.5)

        cummax = equity.cummax()
        drawdown = (equity - cummax) / cummax * 100
        ax2.fill_between(drawdown.index, drawdown.values, 0, alpha=0.3, color=color)

    ax1.set_title(title, fontsize=14, fontweight="bold")
    ax1.set_ylabel("Equity")
    ax1.legend(loc="upper left", fontsize=8)
    ax1.grid(True, alpha=0.3)
    ax1.xaxis.set_major_formatter(mdates.DateFormatter("%Y-%m"))

    ax2.set_title("Drawdown (%)", fontsize=11)
    ax2.set_ylabel("Drawdown %")
    ax2.set_xlabel("Date")
    ax2.grid(True, alpha=0.3)
    ax2.xaxis.set_major_formatter(mdates.DateFormatter("%Y-%m"))

    plt.tight_layout()
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return str(path)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Backtest a prose trading strategy")
    parser.add_argument("-d", "--description", required=True, help="Strategy description")
    parser.add_argument("-r", "--risk", default=None, help="Risk management note, e.g. 'risk 2%% per trade'")
    parser.add_argument("--instrument", default=None, help="Instrument label (default: major FX pairs)")
    parser.add_argument("--pairs", nargs="+", default=None, help="Explicit list of pairs")
    parser.add_argument("--years", type=int, default=None, help="Years of history")
    parser.add_argument("--source", choices=["yfinance", "csv", "synthetic"], default=None, help="Price source")
    parser.add_argument("--csv-dir", default=None, help="Directory of <PAIR>.csv files for --source csv")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the synthetic fallback")
    parser.add_argument("--workers", type=int, default=1, help="Pairs to run in parallel")
    parser.add_argument("--no-walk-forward", action="store_true", help="Skip walk-forward re-test")
    parser.add_argument("--export", default=None, help="Write the best pair's trades to this CSV (or a directory)")
    parser.add_argument("--json", default=None, help="Write the full report as JSON")
    parser.add_argument("--plot", default=None, help="Write an equity-curve PNG")
    parser.add_argument("--verbose", action="store_true", help="Verbose logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(name)-20s %(levelname)-7s %(message)s",
        datefmt="%H:%M:%S",
    )
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    source = args.source or settings.data_source
    csv_dir = args.csv_dir or settings.csv_dir
    try:
        provider = build_provider(source, csv_dir)
    except ValueError as e:
        log.error("%s", e)
        return 2

    pairs = args.pairs or resolve_pairs(args.instrument)
    start, end = default_range(args.years or settings.history_years)

    print(f"Backtesting {len(pairs)} pair(s) from {start} to {end} ({source})...")
    report = run_comparison(
        args.description,
        args.risk,
        pairs=pairs,
        start=start,
        end=end,
        provider=provider,
        settings=settings,
        walk_forward=not args.no_walk_forward,
        workers=args.workers,
        seed=args.seed,
    )

    if report.skipped:
        print(f"  No usable data for: {', '.join(report.skipped)}")
    if not report.comparisons:
        print("\nNo pairs produced a result. Check the data source.")
        return 1

    print("\n--- Pair Comparison (sorted by Sharpe) ---")
    print(format_results_table(report.comparisons))

    best = report.best
    print(format_detailed_report(best.result))

    if report.walkforward:
        print("\n--- Walk-Forward (out-of-sample windows) ---")
        print(format_walkforward_table(report.walkforward))

    if args.export:
        target = Path(args.export)
        if target.is_dir():
            instrument = best.pair if len(pairs) == 1 else None
            target = target / export_filename(instrument, start, end)
        print(f"  Trades CSV: {write_csv(best.result, target)}")

    if args.json:
        print(f"  Results JSON: {save_report_json(report, args.json)}")

    if args.plot:
        results = [c.result for c in report.comparisons if c.result is not None]
        print(f"  Equity chart: {plot_equity_curves(results, args.plot)}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
