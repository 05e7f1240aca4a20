"""
Historical price data for backtesting.

Data source priority:
  1. The configured provider (Yahoo Finance via yfinance, or a CSV directory)
  2. Synthetic fallback (daily random walk, for offline use)

Providers raise DataUnavailable when they cannot deliver. ``load_bars``
catches that, logs it and switches to the synthetic series, returning a
source label so the degraded mode is always visible to the caller.

CSV files are expected as ``<PAIR>.csv`` with a date column and a close
(or adjusted close) column, e.g. a Yahoo Finance history download.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Iterable, Protocol

import numpy as np
import pandas as pd

from .errors import DataUnavailable, InsufficientData
from .models import PriceBar
from .stats import round_half_up

log = logging.getLogger("lab.data")

SYNTHETIC_SOURCE = "synthetic"
SYNTHETIC_FLOOR = 0.2

# Yahoo symbols for instruments that aren't plain FX pairs.
YAHOO_SYMBOL_OVERRIDES = {
    "XAUUSD": "GC=F",
    "XAGUSD": "SI=F",
    "BTCUSD": "BTC-USD",
    "ETHUSD": "ETH-USD",
}


class HistoryProvider(Protocol):
    """Anything that can return ordered daily closes for a pair."""

    source: str

    def fetch(self, pair: str, start: date, end: date) -> list[PriceBar]:
        ...


def _as_date(value: date | datetime | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return pd.Timestamp(value).date()


def frame_to_bars(df: pd.DataFrame, close_col: str = "close") -> list[PriceBar]:
    """Convert a date-indexed frame to PriceBars, one per calendar date."""
    series = pd.to_numeric(df[close_col], errors="coerce")
    index = pd.to_datetime(df.index)
    if index.tz is not None:
        index = index.tz_localize(None)
    series.index = index
    series = series.sort_index()
    series = series[~series.index.normalize().duplicated(keep="last")]
    return [PriceBar(date=ts.strftime("%Y-%m-%d"), close=float(v)) for ts, v in series.items()]


# ── Yahoo Finance ──


def yahoo_symbol(pair: str) -> str:
    """EURUSD -> EURUSD=X; symbols that already look like Yahoo tickers pass through."""
    symbol = pair.upper().replace("/", "").strip()
    if symbol in YAHOO_SYMBOL_OVERRIDES:
        return YAHOO_SYMBOL_OVERRIDES[symbol]
    if len(symbol) == 6 and symbol.isalpha():
        return f"{symbol}=X"
    return symbol


class YahooFinanceProvider:
    """Daily closes from Yahoo Finance (free, no API key)."""

    source = "yahoo_finance"

    def fetch(self, pair: str, start: date, end: date) -> list[PriceBar]:
        import yfinance as yf

        symbol = yahoo_symbol(pair)
        start, end = _as_date(start), _as_date(end)
        try:
            df = yf.Ticker(symbol).history(
                start=start.isoformat(),
                end=(end + timedelta(days=1)).isoformat(),
                interval="1d",
                auto_adjust=True,
            )
        except Exception as e:
            raise DataUnavailable(pair, f"yfinance download failed for {symbol}: {e}") from e

        if df is None or df.empty or "Close" not in df.columns:
            raise DataUnavailable(pair, f"yfinance returned no data for {symbol}")

        bars = frame_to_bars(df.dropna(subset=["Close"]), close_col="Close")
        log.info("%s: %d bars from yfinance (%s)", pair, len(bars), symbol)
        return bars


# ── CSV import ──


def _normalize_csv(df: pd.DataFrame) -> pd.DataFrame:
    """Normalize a CSV frame to a date index and a single ``close`` column."""
    col_lower = {c: c.strip().lower().replace(" ", "_") for c in df.columns}
    has_adj_close = "adj_close" in col_lower.values()

    col_map = {}
    for col, lower in col_lower.items():
        if lower in ("date", "datetime", "timestamp", "time"):
            col_map[col] = "__date__"
        elif lower == "adj_close":
            col_map[col] = "close"  # Adj Close preferred
        elif lower in ("close", "price") and not has_adj_close:
            col_map[col] = "close"

    if "close" not in col_map.values():
        raise ValueError(f"no close column in {list(df.columns)}")

    df = df[list(col_map)].rename(columns=col_map)
    if "__date__" in df.columns:
        df.index = pd.to_datetime(df["__date__"])
        df = df.drop(columns=["__date__"])
    else:
        df.index = pd.to_datetime(df.index)
    return df


class CsvHistoryProvider:
    """Reads ``<directory>/<PAIR>.csv`` files."""

    source = "csv_import"

    def __init__(self, directory: str | Path):
        self.directory = Path(directory).expanduser()

    def path_for(self, pair: str) -> Path:
        return self.directory / f"{pair.upper().replace('/', '')}.csv"

    def fetch(self, pair: str, start: date, end: date) -> list[PriceBar]:
        path = self.path_for(pair)
        if not path.exists():
            raise DataUnavailable(pair, f"CSV file not found: {path}")
        try:
            df = _normalize_csv(pd.read_csv(path))
        except (ValueError, pd.errors.ParserError) as e:
            raise DataUnavailable(pair, f"unreadable CSV {path.name}: {e}") from e

        start_ts = pd.Timestamp(_as_date(start))
        end_ts = pd.Timestamp(_as_date(end))
        df = df[(df.index >= start_ts) & (df.index <= end_ts)]
        bars = frame_to_bars(df)
        log.info("%s: %d bars from %s", pair, len(bars), path.name)
        return bars


# ── Synthetic fallback ──


def generate_synthetic_bars(
    start: date | datetime | str,
    end: date | datetime | str,
    seed: int | None = None,
    base_price: float | None = None,
    mean_reversion: float = 0.01,
) -> list[PriceBar]:
    """
    Daily random walk with a mild pull back toward the starting level.

    One bar per calendar day in [start, end), base price drawn from
    [1.0, 1.5] (an FX-like level), daily drift uniform in +/-0.5%, floored
    at 0.2 and rounded to 4 decimals. Always returns at least one bar.
    """
    rng = np.random.default_rng(seed)
    start_d, end_d = _as_date(start), _as_date(end)
    n_days = max(1, (end_d - start_d).days)

    base = base_price if base_price is not None else 1.0 + rng.random() * 0.5
    price = base
    bars = []
    for i in range(n_days):
        drift = (rng.random() - 0.5) * 0.01
        drift += mean_reversion * (base - price) / price
        price = max(SYNTHETIC_FLOOR, price * (1 + drift))
        bars.append(PriceBar(
            date=(start_d + timedelta(days=i)).isoformat(),
            close=round_half_up(price, 4),
        ))
    return bars


# ── Loading ──


def clean_bars(bars: Iterable[PriceBar]) -> list[PriceBar]:
    """Drop bars whose close is missing, non-finite or non-positive."""
    cleaned = []
    for bar in bars:
        try:
            close = float(bar.close)
        except (TypeError, ValueError):
            continue
        if math.isfinite(close) and close > 0:
            cleaned.append(bar if close == bar.close else PriceBar(bar.date, close))
    return cleaned


def require_bars(pair: str, bars: Iterable[PriceBar]) -> list[PriceBar]:
    """clean_bars, raising InsufficientData if nothing usable is left."""
    cleaned = clean_bars(bars)
    if not cleaned:
        raise InsufficientData(pair, 0)
    return cleaned


def load_bars(
    provider: HistoryProvider | None,
    pair: str,
    start: date | datetime | str,
    end: date | datetime | str,
    seed: int | None = None,
) -> tuple[list[PriceBar], str]:
    """
    Fetch bars for a pair, falling back to synthetic data.

    Returns (bars, source_label) where source_label is the provider's
    ``source`` or "synthetic". A provider failure is logged here and never
    propagated.
    """
    if provider is not None:
        try:
            bars = clean_bars(provider.fetch(pair, _as_date(start), _as_date(end)))
            if bars:
                return bars, provider.source
            log.warning("%s: %s returned no usable bars", pair, provider.source)
        except DataUnavailable as e:
            log.warning("%s: %s", pair, e)

    log.warning("%s: using synthetic price series (degraded mode)", pair)
    return generate_synthetic_bars(start, end, seed=seed), SYNTHETIC_SOURCE


def build_provider(source: str, csv_dir: str | Path | None = None) -> HistoryProvider | None:
    """Provider for a configured source name; None means synthetic only."""
    source = source.lower()
    if source == "yfinance":
        return YahooFinanceProvider()
    if source == "csv":
        if csv_dir is None:
            raise ValueError("csv source needs a csv_dir")
        return CsvHistoryProvider(csv_dir)
    if source == SYNTHETIC_SOURCE:
        return None
    raise ValueError(f"unknown data source: {source}")
