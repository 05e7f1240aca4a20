"""
Strategy rule derivation.

Maps a free-text strategy description onto one of a closed set of
executable rule variants using keyword and regex matching:

  - RsiRule:        buy when RSI < 30, sell when RSI > 70
  - EmaCrossRule:   buy/sell when the fast EMA crosses the slow EMA
  - MomentumRule:   fallback when nothing is recognised (+/-0.2% vs prev bar)

RSI and EMA-cross legs can both be present; their signals are OR-ed.
Every leg produces vectorised boolean buy/sell arrays aligned to the
price vector, which the engine then walks bar by bar.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .indicators import ema, rsi

DEFAULT_RSI_PERIOD = 14
DEFAULT_EMA_FAST = 9
DEFAULT_EMA_SLOW = 21

_RSI_PERIOD_RE = re.compile(r"rsi\s*\(?\s*(\d{1,3})\s*\)?")
_EMA_FAST_RE = re.compile(r"ema\s*\(?\s*(\d{1,3})\s*\)?")
_EMA_PAIR_RE = re.compile(r"ema\s*\(?\s*(\d{1,3})\s*\)?[^\d]*(\d{1,3})")


class RuleLeg(ABC):
    """One signal source of a strategy rule."""

    name: str = "Base"

    @abstractmethod
    def generate_signals(self, prices: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """
        Return (buy, sell) boolean arrays the same length as ``prices``.

        Index 0 is always False: a signal needs a previous bar.
        """

    @property
    def params_dict(self) -> dict:
        return {}


@dataclass(frozen=True)
class RsiRule(RuleLeg):
    period: int = DEFAULT_RSI_PERIOD
    buy_on_oversold: bool = False
    sell_on_overbought: bool = False
    oversold: float = 30.0
    overbought: float = 70.0

    name = "RSI"

    @property
    def params_dict(self) -> dict:
        return {"rsi_period": self.period, "oversold": self.buy_on_oversold,
                "overbought": self.sell_on_overbought}

    def generate_signals(self, prices: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        values = rsi(prices, self.period)
        with np.errstate(invalid="ignore"):
            buy = (values < self.oversold) if self.buy_on_oversold else np.zeros(len(prices), dtype=bool)
            sell = (values > self.overbought) if self.sell_on_overbought else np.zeros(len(prices), dtype=bool)
        if len(prices):
            buy[0] = sell[0] = False
        return buy, sell


@dataclass(frozen=True)
class EmaCrossRule(RuleLeg):
    fast: int = DEFAULT_EMA_FAST
    slow: int = DEFAULT_EMA_SLOW

    name = "EMA Cross"

    @property
    def params_dict(self) -> dict:
        return {"fast_ema": self.fast, "slow_ema": self.slow}

    def generate_signals(self, prices: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        n = len(prices)
        buy = np.zeros(n, dtype=bool)
        sell = np.zeros(n, dtype=bool)
        if n < 2:
            return buy, sell
        fast = ema(prices, self.fast)
        slow = ema(prices, self.slow)
        prev_fast, prev_slow = fast[:-1], slow[:-1]
        cur_fast, cur_slow = fast[1:], slow[1:]
        # "Was not above, now above" so a cross off the shared seed value counts.
        buy[1:] = (prev_fast <= prev_slow) & (cur_fast > cur_slow)
        sell[1:] = (prev_fast >= prev_slow) & (cur_fast < cur_slow)
        return buy, sell


@dataclass(frozen=True)
class MomentumRule(RuleLeg):
    threshold: float = 0.002

    name = "Momentum"

    @property
    def params_dict(self) -> dict:
        return {"threshold_pct": self.threshold * 100}

    def generate_signals(self, prices: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        n = len(prices)
        buy = np.zeros(n, dtype=bool)
        sell = np.zeros(n, dtype=bool)
        if n < 2:
            return buy, sell
        prev = prices[:-1]
        buy[1:] = prices[1:] > prev * (1 + self.threshold)
        sell[1:] = prices[1:] < prev * (1 - self.threshold)
        return buy, sell


@dataclass(frozen=True)
class StrategyRule:
    """Derived rule record. No legs means the momentum fallback applies."""
    rsi: RsiRule | None = None
    ema_cross: EmaCrossRule | None = None
    momentum: MomentumRule = MomentumRule()

    @property
    def uses_rsi(self) -> bool:
        return self.rsi is not None

    @property
    def uses_ema_cross(self) -> bool:
        return self.ema_cross is not None

    @property
    def rsi_period(self) -> int:
        return self.rsi.period if self.rsi else DEFAULT_RSI_PERIOD

    @property
    def buy_on_oversold(self) -> bool:
        return bool(self.rsi and self.rsi.buy_on_oversold)

    @property
    def sell_on_overbought(self) -> bool:
        return bool(self.rsi and self.rsi.sell_on_overbought)

    @property
    def ema_fast_period(self) -> int:
        return self.ema_cross.fast if self.ema_cross else DEFAULT_EMA_FAST

    @property
    def ema_slow_period(self) -> int:
        return self.ema_cross.slow if self.ema_cross else DEFAULT_EMA_SLOW

    @property
    def legs(self) -> tuple[RuleLeg, ...]:
        legs = tuple(leg for leg in (self.ema_cross, self.rsi) if leg is not None)
        return legs or (self.momentum,)

    @property
    def kind(self) -> str:
        if self.rsi and self.ema_cross:
            return "rsi+ema_cross"
        if self.rsi:
            return "rsi"
        if self.ema_cross:
            return "ema_cross"
        return "momentum"

    @property
    def params_dict(self) -> dict:
        params = {"kind": self.kind}
        for leg in self.legs:
            params.update(leg.params_dict)
        return params

    def generate_signals(self, prices: Sequence[float]) -> tuple[np.ndarray, np.ndarray]:
        """OR the buy and sell arrays of every leg."""
        arr = np.asarray(prices, dtype=float)
        buy = np.zeros(len(arr), dtype=bool)
        sell = np.zeros(len(arr), dtype=bool)
        for leg in self.legs:
            leg_buy, leg_sell = leg.generate_signals(arr)
            buy |= leg_buy
            sell |= leg_sell
        return buy, sell


def derive_rule(description: str | None) -> StrategyRule:
    """
    Classify a strategy description into a StrategyRule.

    Best-effort keyword matching, not a parser: "rsi" (optionally with a
    period), "below 30"/"< 30" and "above 70"/"> 70" configure the RSI leg;
    "ema" together with "cross" configures the EMA-cross leg with fast/slow
    periods taken from the first two numbers after "ema".
    """
    lower = (description or "").lower()

    rsi_leg = None
    if "rsi" in lower:
        match = _RSI_PERIOD_RE.search(lower)
        period = int(match.group(1)) if match else DEFAULT_RSI_PERIOD
        rsi_leg = RsiRule(
            period=period or DEFAULT_RSI_PERIOD,
            buy_on_oversold="below 30" in lower or "< 30" in lower,
            sell_on_overbought="above 70" in lower or "> 70" in lower,
        )

    ema_leg = None
    if "ema" in lower and "cross" in lower:
        fast_match = _EMA_FAST_RE.search(lower)
        pair_match = _EMA_PAIR_RE.search(lower)
        fast = int(fast_match.group(1)) if fast_match else DEFAULT_EMA_FAST
        slow = int(pair_match.group(2)) if pair_match else DEFAULT_EMA_SLOW
        ema_leg = EmaCrossRule(fast=fast or DEFAULT_EMA_FAST, slow=slow or DEFAULT_EMA_SLOW)

    return StrategyRule(rsi=rsi_leg, ema_cross=ema_leg)
