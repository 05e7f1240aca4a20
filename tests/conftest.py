from datetime import date, timedelta

import numpy as np
import pytest

from strategy_lab.config import Settings
from strategy_lab.models import PriceBar


def build_bars(closes, start=date(2024, 1, 1)):
    return [
        PriceBar(date=(start + timedelta(days=i)).isoformat(), close=float(c))
        for i, c in enumerate(closes)
    ]


@pytest.fixture
def make_bars():
    """Factory: list of closes -> daily PriceBars starting 2024-01-01."""
    return build_bars


@pytest.fixture
def settings():
    """Default settings, isolated from any local .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def random_walk_bars():
    rng = np.random.default_rng(11)
    closes = 1.2 * np.cumprod(1 + rng.normal(0, 0.006, 400))
    return build_bars(closes)
