import pytest

from strategy_lab.risk import DEFAULT_RISK_FRACTION, parse_risk_fraction


@pytest.mark.parametrize("text, expected", [
    ("Risk 2% of the account per trade", 0.02),
    ("risk 1.5 % per position", 0.015),
    ("Stop at 2%, target 6%", 0.02),
    ("all in: 100%", 1.0),
])
def test_first_percentage_is_used(text, expected):
    assert parse_risk_fraction(text) == pytest.approx(expected)


@pytest.mark.parametrize("text", [None, "", "use a tight stop", "0% risk", "risk 250% leverage"])
def test_falls_back_to_default(text):
    assert parse_risk_fraction(text) == DEFAULT_RISK_FRACTION == 0.1


def test_custom_default():
    assert parse_risk_fraction("no numbers here", default=0.05) == 0.05
