"""Position sizing from free-text risk-management notes."""

from __future__ import annotations

import math
import re

DEFAULT_RISK_FRACTION = 0.1

_PERCENT_RE = re.compile(r"(\d+(?:\.\d+)?)\s*%")


def parse_risk_fraction(risk_text: str | None, default: float = DEFAULT_RISK_FRACTION) -> float:
    """
    Fraction of equity committed per trade.

    Takes the first percentage in the text ("risk 2% per trade" -> 0.02).
    Falls back to ``default`` when there is no percentage or the first one
    lies outside (0, 100].
    """
    if not risk_text:
        return default
    match = _PERCENT_RE.search(risk_text)
    if match is None:
        return default
    pct = float(match.group(1))
    if math.isfinite(pct) and 0 < pct <= 100:
        return pct / 100
    return default
