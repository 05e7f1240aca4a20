"""
Technical indicators computed over a close-price vector.

Both functions return a float array the same length as the input. Entries
that cannot be computed are NaN rather than raising, so callers can compare
against thresholds directly (NaN comparisons are always False).
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
import pandas as pd


def ema(values: Sequence[float], period: int) -> np.ndarray:
    """
    Exponential moving average seeded with the first value.

    ema[0] = values[0]
    ema[i] = values[i] * k + ema[i-1] * (1 - k),  k = 2 / (period + 1)

    A period of 1 gives k = 1, i.e. the input itself. Periods below 1 or
    longer than the series give an all-NaN array.
    """
    prices = np.asarray(values, dtype=float)
    n = len(prices)
    if period < 1 or period > n:
        return np.full(n, np.nan)
    if period == 1:
        return prices.copy()
    return pd.Series(prices).ewm(span=period, adjust=False).mean().to_numpy()


def rsi(values: Sequence[float], period: int = 14) -> np.ndarray:
    """
    Relative Strength Index with Wilder smoothing.

    The first ``period`` entries are NaN. The averages are seeded with the
    simple mean of the first ``period`` gains/losses, then smoothed as
    avg = (avg * (period - 1) + x) / period. A zero average loss reads 100.
    """
    prices = np.asarray(values, dtype=float)
    n = len(prices)
    out = np.full(n, np.nan)
    if period < 1 or n <= period:
        return out

    diffs = np.diff(prices)
    gains = np.where(diffs > 0, diffs, 0.0)
    losses = np.where(diffs < 0, -diffs, 0.0)

    avg_gain = gains[:period].sum() / period
    avg_loss = losses[:period].sum() / period
    out[period] = _rsi_value(avg_gain, avg_loss)

    for i in range(period + 1, n):
        avg_gain = (avg_gain * (period - 1) + gains[i - 1]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i - 1]) / period
        out[i] = _rsi_value(avg_gain, avg_loss)

    return out


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    return 100.0 - 100.0 / (1.0 + avg_gain / avg_loss)
