import pytest
from pydantic import ValidationError

from strategy_lab.config import Settings


def test_defaults(settings):
    assert settings.initial_equity == 10_000
    assert settings.cost_pct == 0.05
    assert settings.max_trades == 1000
    assert settings.default_risk_fraction == 0.1
    assert (settings.train_bars, settings.test_bars, settings.min_test_bars) == (180, 90, 60)
    assert settings.data_source == "yfinance"


def test_env_override(monkeypatch):
    monkeypatch.setenv("STRATEGY_LAB_MAX_TRADES", "25")
    monkeypatch.setenv("STRATEGY_LAB_DATA_SOURCE", "Synthetic")
    monkeypatch.setenv("STRATEGY_LAB_LOG_LEVEL", "debug")
    settings = Settings(_env_file=None)

    assert settings.max_trades == 25
    assert settings.data_source == "synthetic"
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize("field, value", [
    ("cost_pct", 10),
    ("cost_pct", -0.1),
    ("initial_equity", 0),
    ("max_trades", 0),
    ("default_risk_fraction", 1.5),
    ("train_bars", 0),
    ("data_source", "bloomberg"),
    ("log_level", "LOUD"),
])
def test_invalid_values_rejected(field, value):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: value})
