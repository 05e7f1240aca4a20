import math

import numpy as np
import pytest

from strategy_lab.stats import erf_approx, normal_cdf, profit_factor, round_half_up, t_test


def test_erf_approximation_error_bound():
    for x in np.linspace(-4, 4, 81):
        assert erf_approx(float(x)) == pytest.approx(math.erf(x), abs=2e-7)


def test_normal_cdf_reference_points():
    assert normal_cdf(0.0) == pytest.approx(0.5, abs=1e-7)
    assert normal_cdf(1.96) == pytest.approx(0.975, abs=1e-4)
    assert normal_cdf(-1.96) == pytest.approx(0.025, abs=1e-4)
    assert normal_cdf(1.0) + normal_cdf(-1.0) == pytest.approx(1.0)


def test_profit_factor():
    assert profit_factor([10.0, -5.0, 20.0, -10.0]) == pytest.approx(2.0)
    assert profit_factor([0.0, -4.0]) == 0.0


def test_profit_factor_without_losses_is_infinite():
    assert math.isinf(profit_factor([1.0, 0.0, 3.0]))
    assert math.isinf(profit_factor([]))


def test_t_test_needs_two_observations():
    assert t_test([]) == (0.0, 1.0)
    assert t_test([0.01]) == (0.0, 1.0)


def test_t_test_zero_variance():
    t, p = t_test([0.0] * 10)
    assert t == 0.0
    assert p == pytest.approx(1.0, abs=1e-8)
    assert p <= 1.0


def test_t_test_known_value():
    returns = [0.01, 0.02, 0.03, 0.04]
    mean = 0.025
    sd = np.std(returns, ddof=1)
    t, p = t_test(returns)
    assert t == pytest.approx(mean / (sd / 2))
    assert p == pytest.approx(2 * (1 - normal_cdf(abs(t))))


def test_p_value_in_unit_interval():
    rng = np.random.default_rng(0)
    for _ in range(50):
        sample = rng.normal(rng.normal(0, 0.01), 0.02, rng.integers(2, 300))
        _, p = t_test(sample)
        assert 0.0 <= p <= 1.0


@pytest.mark.parametrize("value, places, expected", [
    (0.125, 2, 0.13),
    (-0.125, 2, -0.13),
    (2.5, 0, 3.0),
    (1.005, 2, 1.0),  # binary value sits just below the tie
    (1.23456, 2, 1.23),
])
def test_round_half_up_matches_to_fixed(value, places, expected):
    assert round_half_up(value, places) == expected


def test_round_half_up_passes_non_finite_through():
    assert math.isinf(round_half_up(float("inf"), 2))
    assert math.isnan(round_half_up(float("nan"), 2))
