"""
Statistics toolkit.

Profit factor, a closed-form normal CDF, a one-sample t-test on a returns
series and toFixed-style rounding. The CDF uses the Abramowitz-Stegun 7.1.26 erf
approximation (max abs error ~1.5e-7) instead of math.erf so results match
the figures the web client shows to the digit.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Sequence

import numpy as np

# Abramowitz & Stegun 7.1.26
_P = 0.3275911
_A1 = 0.254829592
_A2 = -0.284496736
_A3 = 1.421413741
_A4 = -1.453152027
_A5 = 1.061405429


def round_half_up(x: float, places: int) -> float:
    """
    Round to ``places`` decimals with ties away from zero, on the float's
    exact binary value (the web client's ``toFixed``). ``round()`` would
    send 0.125 to 0.12; this gives 0.13.
    """
    if not math.isfinite(x):
        return x
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(x).quantize(quantum, rounding=ROUND_HALF_UP))


def profit_factor(pnls: Iterable[float]) -> float:
    """
    Gross profit / gross loss. Zero-PnL trades count as gains.

    Returns ``inf`` when there are no losing trades; the metrics layer caps
    it before it leaves the engine.
    """
    gains = 0.0
    losses = 0.0
    for pnl in pnls:
        if pnl >= 0:
            gains += pnl
        else:
            losses += abs(pnl)
    if losses == 0:
        return float("inf")
    return gains / losses


def erf_approx(x: float) -> float:
    sign = -1.0 if x < 0 else 1.0
    ax = abs(x)
    t = 1.0 / (1.0 + _P * ax)
    poly = ((((_A5 * t + _A4) * t + _A3) * t + _A2) * t + _A1) * t
    return sign * (1.0 - poly * math.exp(-ax * ax))


def normal_cdf(x: float) -> float:
    """Standard normal CDF, Phi(x) = (1 + erf(x / sqrt(2))) / 2."""
    return 0.5 * (1.0 + erf_approx(x / math.sqrt(2.0)))


def t_test(returns: Sequence[float]) -> tuple[float, float]:
    """
    One-sample t-statistic of the mean against zero, with a two-sided
    p-value from the normal approximation.

    t = mean / (s / sqrt(n)) using the sample (n-1) standard deviation.
    Returns (0.0, 1.0) when n < 2, and t = 0 when the series has no variance.
    """
    arr = np.asarray(returns, dtype=float)
    n = len(arr)
    if n < 2:
        return 0.0, 1.0
    std = float(arr.std(ddof=1))
    t = 0.0 if std == 0 else float(arr.mean()) / (std / math.sqrt(n))
    p = 2.0 * (1.0 - normal_cdf(abs(t)))
    # erf_approx(0) is 1e-9, so p undershoots 1 slightly at t = 0.
    return t, min(1.0, max(0.0, p))
