"""
Walk-forward testing.

Rolls a fixed train/test window across the bar series and re-runs the
backtest on each out-of-sample test slice:

    |---- train (180) ----|-- test (90) --|
                 |---- train (180) ----|-- test (90) --|

The window start advances by the test size, so test slices never overlap.
The rule is parameter-free, so the train slice is only carried along with
each window (it is where a future fitting step would look); only the test
slice is simulated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from .data import clean_bars
from .engine import BacktestEngine
from .models import PriceBar, WindowResult
from .risk import DEFAULT_RISK_FRACTION, parse_risk_fraction
from .rules import derive_rule

log = logging.getLogger("lab.walkforward")

TRAIN_BARS = 180  # ~6 months of daily bars
TEST_BARS = 90    # ~3 months
MIN_TEST_BARS = 60


@dataclass(frozen=True)
class WalkForwardWindow:
    """Bar index bounds: train = [start, train_end), test = [train_end, end)."""
    start: int
    train_end: int
    end: int

    @property
    def train_slice(self) -> slice:
        return slice(self.start, self.train_end)

    @property
    def test_slice(self) -> slice:
        return slice(self.train_end, self.end)


def plan_windows(n_bars: int, train_bars: int = TRAIN_BARS, test_bars: int = TEST_BARS) -> list[WalkForwardWindow]:
    """All windows that fit entirely inside ``n_bars``."""
    windows = []
    idx = 0
    while idx + train_bars + test_bars <= n_bars:
        windows.append(WalkForwardWindow(idx, idx + train_bars, idx + train_bars + test_bars))
        idx += test_bars
    return windows


def walk_forward_test(
    pair: str,
    bars: Sequence[PriceBar],
    description: str,
    risk_text: str | None = None,
    engine: BacktestEngine | None = None,
    train_bars: int = TRAIN_BARS,
    test_bars: int = TEST_BARS,
    min_test_bars: int = MIN_TEST_BARS,
    default_risk_fraction: float = DEFAULT_RISK_FRACTION,
) -> list[WindowResult]:
    """
    Out-of-sample results for each walk-forward window.

    Malformed bars are dropped before windows are planned. Windows whose
    test slice is shorter than ``min_test_bars`` are skipped
    without error.
    """
    bars = clean_bars(bars)
    engine = engine or BacktestEngine()
    rule = derive_rule(description)
    risk_fraction = parse_risk_fraction(risk_text, default=default_risk_fraction)

    windows = plan_windows(len(bars), train_bars, test_bars)
    results = []
    for n, window in enumerate(windows, start=1):
        test = list(bars[window.test_slice])
        if len(test) < min_test_bars:
            log.debug("%s: window %d has %d test bars, skipping", pair, n, len(test))
            continue
        res = engine.run(pair, test, rule, risk_fraction)
        results.append(WindowResult(
            window=n,
            trades=len(res.trades),
            return_pct=res.metrics.total_return_pct,
            sharpe=res.metrics.sharpe,
            pair=pair,
            start_date=test[0].date,
            end_date=test[-1].date,
        ))

    log.info("%s: walk-forward %d/%d windows evaluated", pair, len(results), len(windows))
    return results
