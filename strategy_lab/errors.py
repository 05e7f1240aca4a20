"""Exception types raised around the backtest core."""

from __future__ import annotations


class StrategyLabError(Exception):
    pass


class DataUnavailable(StrategyLabError):
    """Raised by a history provider when it cannot supply bars for a pair."""

    def __init__(self, pair: str, reason: str) -> None:
        self.pair = pair
        self.reason = reason
        super().__init__(f"No price history for {pair}: {reason}")


class InsufficientData(StrategyLabError):
    """Raised when a bar series is empty after malformed bars are removed."""

    def __init__(self, pair: str, bars: int = 0) -> None:
        self.pair = pair
        self.bars = bars
        super().__init__(f"Not enough usable bars for {pair} ({bars})")
