"""
Multi-pair comparison run.

For each pair: load history (falling back to synthetic data), run the
full-period backtest, then the walk-forward re-test. Pairs are independent,
so they can be spread over a thread pool; the report keeps the order of
the requested pairs either way.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from .config import Settings, get_settings
from .data import HistoryProvider, load_bars, require_bars
from .engine import BacktestEngine
from .errors import InsufficientData
from .models import ComparisonReport, PairComparison, WindowResult
from .risk import parse_risk_fraction
from .rules import derive_rule
from .walkforward import walk_forward_test

log = logging.getLogger("lab.runner")

MAJOR_PAIRS = ["EURUSD", "GBPUSD", "USDJPY", "AUDUSD", "USDCAD"]
MULTI_CURRENCY_LABEL = "Multi-Currency (Majors)"


def normalize_instrument(raw: str | None) -> str | None:
    """
    Canonical symbol from a display label.

    "EURUSD (Euro / Dollar)" -> "EURUSD"; the multi-currency label is kept.
    """
    if not raw:
        return None
    trimmed = raw.strip()
    if trimmed == MULTI_CURRENCY_LABEL:
        return MULTI_CURRENCY_LABEL
    paren_idx = trimmed.find("(")
    space_idx = trimmed.find(" ")
    cut_idx = paren_idx if paren_idx >= 0 else space_idx
    return trimmed[:cut_idx].strip() if cut_idx >= 0 else trimmed


def resolve_pairs(instrument: str | None) -> list[str]:
    """The pairs a backtest request covers: majors for the multi label or nothing."""
    symbol = normalize_instrument(instrument)
    if not symbol or symbol == MULTI_CURRENCY_LABEL:
        return list(MAJOR_PAIRS)
    return [symbol]


def default_range(years: int, end: date | None = None) -> tuple[date, date]:
    end = end or datetime.now().date()
    return end - timedelta(days=365 * years), end


@dataclass
class _PairOutcome:
    pair: str
    comparison: PairComparison | None = None
    windows: list[WindowResult] = field(default_factory=list)


def _run_pair(
    pair: str,
    description: str,
    risk_text: str | None,
    start: date,
    end: date,
    provider: HistoryProvider | None,
    engine: BacktestEngine,
    settings: Settings,
    walk_forward: bool,
    seed: int | None,
) -> _PairOutcome:
    bars, source = load_bars(provider, pair, start, end, seed=seed)
    bars = require_bars(pair, bars)

    rule = derive_rule(description)
    risk_fraction = parse_risk_fraction(risk_text, default=settings.default_risk_fraction)
    result = engine.run(pair, bars, rule, risk_fraction, data_source=source)
    log.info(
        "%s: %d bars (%s), %d trades, return %.2f%%, sharpe %.2f",
        pair, len(bars), source, len(result.trades),
        result.metrics.total_return_pct, result.metrics.sharpe,
    )

    outcome = _PairOutcome(
        pair=pair,
        comparison=PairComparison(
            pair=pair,
            metrics=result.metrics,
            trades=len(result.trades),
            data_source=source,
            result=result,
        ),
    )
    if walk_forward:
        outcome.windows = walk_forward_test(
            pair, bars, description, risk_text,
            engine=engine,
            train_bars=settings.train_bars,
            test_bars=settings.test_bars,
            min_test_bars=settings.min_test_bars,
            default_risk_fraction=settings.default_risk_fraction,
        )
    return outcome


def run_comparison(
    description: str,
    risk_text: str | None = None,
    pairs: list[str] | None = None,
    start: date | None = None,
    end: date | None = None,
    provider: HistoryProvider | None = None,
    settings: Settings | None = None,
    walk_forward: bool = True,
    workers: int = 1,
    seed: int | None = None,
) -> ComparisonReport:
    """
    Backtest one description across several pairs.

    Pairs left with no usable bars (InsufficientData) are listed in
    ``report.skipped`` rather than failing the run.
    """
    settings = settings or get_settings()
    pairs = pairs or list(MAJOR_PAIRS)
    if start is None or end is None:
        default_start, default_end = default_range(settings.history_years, end)
        start = start or default_start
        end = end or default_end

    engine = BacktestEngine.from_settings(settings)
    args = (description, risk_text, start, end, provider, engine, settings, walk_forward, seed)

    outcomes: dict[str, _PairOutcome] = {}
    if workers > 1 and len(pairs) > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_pair = {executor.submit(_run_pair, pair, *args): pair for pair in pairs}
            for future in as_completed(future_to_pair):
                pair = future_to_pair[future]
                try:
                    outcomes[pair] = future.result()
                except InsufficientData as e:
                    log.warning("%s: no result (%s)", pair, e)
                    outcomes[pair] = _PairOutcome(pair=pair)
    else:
        for pair in pairs:
            try:
                outcomes[pair] = _run_pair(pair, *args)
            except InsufficientData as e:
                log.warning("%s: no result (%s)", pair, e)
                outcomes[pair] = _PairOutcome(pair=pair)

    report = ComparisonReport()
    for pair in pairs:
        outcome = outcomes[pair]
        if outcome.comparison is None:
            report.skipped.append(pair)
            continue
        report.comparisons.append(outcome.comparison)
        report.walkforward.extend(outcome.windows)
    return report
