from datetime import date, timedelta

import pytest

from strategy_lab import runner
from strategy_lab.runner import (
    MAJOR_PAIRS,
    MULTI_CURRENCY_LABEL,
    default_range,
    normalize_instrument,
    resolve_pairs,
    run_comparison,
)

START = date(2023, 1, 1)
END = START + timedelta(days=400)
DESCRIPTION = "Buy when RSI(14) is below 30, sell when above 70"


@pytest.mark.parametrize("raw, symbol", [
    ("EURUSD (Euro / US Dollar)", "EURUSD"),
    ("  GBPUSD  ", "GBPUSD"),
    ("USDJPY Yen", "USDJPY"),
    (MULTI_CURRENCY_LABEL, MULTI_CURRENCY_LABEL),
    ("", None),
    (None, None),
])
def test_normalize_instrument(raw, symbol):
    assert normalize_instrument(raw) == symbol


def test_resolve_pairs():
    assert resolve_pairs("EURUSD (Euro / US Dollar)") == ["EURUSD"]
    assert resolve_pairs(MULTI_CURRENCY_LABEL) == MAJOR_PAIRS
    assert resolve_pairs(None) == MAJOR_PAIRS


def test_default_range():
    start, end = default_range(3, end=date(2024, 6, 30))
    assert end == date(2024, 6, 30)
    assert (end - start).days == 365 * 3


def test_comparison_over_synthetic_data(settings):
    report = run_comparison(
        DESCRIPTION, "Risk 2% per trade",
        pairs=["EURUSD", "GBPUSD"], start=START, end=END, settings=settings, seed=5,
    )

    assert [c.pair for c in report.comparisons] == ["EURUSD", "GBPUSD"]
    assert all(c.data_source == "synthetic" for c in report.comparisons)
    assert all(c.result.risk_fraction == 0.02 for c in report.comparisons)
    assert [(w.pair, w.window) for w in report.walkforward] == [
        ("EURUSD", 1), ("EURUSD", 2), ("GBPUSD", 1), ("GBPUSD", 2),
    ]
    assert report.skipped == []
    assert report.best in report.comparisons


def test_thread_pool_keeps_pair_order(settings):
    kwargs = dict(pairs=MAJOR_PAIRS, start=START, end=END, settings=settings, seed=5)
    serial = run_comparison(DESCRIPTION, **kwargs)
    parallel = run_comparison(DESCRIPTION, workers=3, **kwargs)

    assert [c.pair for c in parallel.comparisons] == MAJOR_PAIRS
    assert [c.metrics for c in parallel.comparisons] == [c.metrics for c in serial.comparisons]


def test_walk_forward_can_be_disabled(settings):
    report = run_comparison(DESCRIPTION, pairs=["EURUSD"], start=START, end=END,
                            settings=settings, walk_forward=False)
    assert report.walkforward == []
    assert len(report.comparisons) == 1


def test_pairs_without_usable_data_are_skipped(settings, monkeypatch):
    real_load = runner.load_bars

    def fake_load(provider, pair, start, end, seed=None):
        if pair == "GBPUSD":
            return [], "broken"
        return real_load(provider, pair, start, end, seed=seed)

    monkeypatch.setattr(runner, "load_bars", fake_load)
    report = run_comparison(DESCRIPTION, pairs=["EURUSD", "GBPUSD"], start=START, end=END, settings=settings)

    assert [c.pair for c in report.comparisons] == ["EURUSD"]
    assert report.skipped == ["GBPUSD"]


def test_report_to_dict_shape(settings):
    report = run_comparison(DESCRIPTION, pairs=["EURUSD"], start=START, end=END, settings=settings, seed=1)
    data = report.to_dict()

    assert set(data) == {"comparisons", "walkforward"}
    assert list(data["comparisons"][0]) == [
        "pair", "trades", "source", "sharpe", "maxDrawdownPct", "winRatePct",
        "totalReturnPct", "profitFactor", "tStatistic", "pValue",
    ]


def test_empty_report_has_no_best():
    assert runner.ComparisonReport().best is None
