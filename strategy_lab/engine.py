"""
Backtest Engine.

Replays a single-pair close series through a derived strategy rule and
produces a trade log, an equity curve and summary metrics.

Assumptions:
- Long-only, one position at a time (no pyramiding, no shorting)
- Entries and exits fill at the bar's close
- A flat percentage cost (spread + slippage) is charged per round trip
- PnL is sized as a fixed fraction of current equity
- Any position still open on the last bar is closed there

All run state lives in a local accumulator, so separate runs (pairs,
walk-forward windows) share nothing and can execute in parallel.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from .config import Settings, get_settings
from .data import clean_bars
from .metrics import compute_metrics
from .models import BacktestResult, EquityPoint, PriceBar, Side, Trade
from .risk import parse_risk_fraction
from .rules import StrategyRule, derive_rule

log = logging.getLogger("lab.engine")


@dataclass
class _SimState:
    """Mutable accumulator for one run. Never shared between runs."""
    equity: float
    side: Side = Side.FLAT
    entry_price: float = 0.0
    entry_index: int = 0
    trades: list[Trade] = field(default_factory=list)
    curve: list[EquityPoint] = field(default_factory=list)


class BacktestEngine:
    """
    Single-position state machine over daily closes.

    flat -> long   on a buy signal (records entry price/index)
    long -> flat   on a sell signal (books a Trade, updates equity)
    long at end    force-closed at the last close
    """

    def __init__(
        self,
        initial_equity: float = 10_000.0,
        cost_pct: float = 0.05,  # 0.05% combined spread + slippage
        max_trades: int = 1000,
    ):
        self.initial_equity = initial_equity
        self.cost_pct = cost_pct
        self.max_trades = max_trades

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "BacktestEngine":
        settings = settings or get_settings()
        return cls(
            initial_equity=settings.initial_equity,
            cost_pct=settings.cost_pct,
            max_trades=settings.max_trades,
        )

    def run(
        self,
        pair: str,
        bars: Sequence[PriceBar],
        rule: StrategyRule,
        risk_fraction: float,
        data_source: str = "provided",
    ) -> BacktestResult:
        """Run the simulation for one pair."""
        bars = clean_bars(bars)
        state = _SimState(equity=self.initial_equity)

        if len(bars) < 2:
            log.debug("%s: %d usable bars, nothing to simulate", pair, len(bars))
            return self._result(pair, state, rule, risk_fraction, data_source)

        prices = [b.close for b in bars]
        buy, sell = rule.generate_signals(prices)

        for i in range(1, len(bars)):
            price = prices[i]
            if state.side == Side.FLAT and buy[i]:
                state.side = Side.LONG
                state.entry_price = price
                state.entry_index = i
            elif state.side == Side.LONG and sell[i]:
                self._close_position(state, pair, bars, i, risk_fraction, "signal")

            state.curve.append(EquityPoint(date=bars[i].date, equity=state.equity))

            if len(state.trades) >= self.max_trades:
                log.warning("%s: hit max_trades=%d at bar %d, stopping early", pair, self.max_trades, i)
                break

        if state.side == Side.LONG:
            last = len(bars) - 1
            self._close_position(state, pair, bars, last, risk_fraction, "end_of_data")
            # Same bar as the last curve point: restate it rather than duplicate the date.
            state.curve[-1] = EquityPoint(date=bars[last].date, equity=state.equity)

        log.debug(
            "%s: %d trades, final equity %.2f (%s)",
            pair, len(state.trades), state.equity, rule.kind,
        )
        return self._result(pair, state, rule, risk_fraction, data_source)

    def _close_position(
        self,
        state: _SimState,
        pair: str,
        bars: Sequence[PriceBar],
        exit_index: int,
        risk_fraction: float,
        exit_reason: str,
    ) -> Trade:
        """Book the open position as a Trade and apply its PnL to equity."""
        entry = state.entry_price
        exit_price = bars[exit_index].close
        gross_return_pct = (exit_price - entry) / entry * 100
        net_return_pct = gross_return_pct - self.cost_pct
        pnl = net_return_pct / 100 * state.equity * risk_fraction

        trade = Trade(
            pair=pair,
            entry_date=bars[state.entry_index].date,
            exit_date=bars[exit_index].date,
            entry_price=entry,
            exit_price=exit_price,
            pnl=pnl,
            return_pct=net_return_pct,
            bars_held=exit_index - state.entry_index,
            exit_reason=exit_reason,
        )
        state.trades.append(trade)
        state.equity += pnl
        state.side = Side.FLAT
        state.entry_price = 0.0
        state.entry_index = 0
        return trade

    def _result(
        self,
        pair: str,
        state: _SimState,
        rule: StrategyRule,
        risk_fraction: float,
        data_source: str,
    ) -> BacktestResult:
        return BacktestResult(
            pair=pair,
            equity_curve=state.curve,
            trades=state.trades,
            metrics=compute_metrics(state.curve, state.trades, self.initial_equity),
            rule=rule,
            risk_fraction=risk_fraction,
            data_source=data_source,
        )


def backtest_pair(
    pair: str,
    bars: Sequence[PriceBar],
    description: str,
    risk_text: str | None = None,
    max_trades: int | None = None,
    cost_pct: float | None = None,
    settings: Settings | None = None,
    data_source: str = "provided",
) -> BacktestResult:
    """
    Derive the rule and position size from text, then run the engine.

    ``max_trades`` and ``cost_pct`` override the configured defaults.
    """
    settings = settings or get_settings()
    engine = BacktestEngine(
        initial_equity=settings.initial_equity,
        cost_pct=settings.cost_pct if cost_pct is None else cost_pct,
        max_trades=settings.max_trades if max_trades is None else max_trades,
    )
    rule = derive_rule(description)
    risk_fraction = parse_risk_fraction(risk_text, default=settings.default_risk_fraction)
    return engine.run(pair, bars, rule, risk_fraction, data_source=data_source)
