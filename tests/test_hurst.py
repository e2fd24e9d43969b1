import math
import numpy as np
import pytest
from src.core.hurst import HurstEstimate, RescaledRangeEstimator
from helpers import falling, rising


@pytest.fixture
def estimator():
    return RescaledRangeEstimator()


def test_constant_series_is_neutral_and_degenerate(estimator):
    est = estimator.estimate([100.0] * 60)
    assert est.hurst == 0.5
    assert est.r2 == 0.0
    assert est.degenerate


def test_too_few_returns_is_neutral(estimator):
    est = estimator.estimate(rising(30))
    assert est == HurstEstimate.neutral()


def test_non_positive_prices_never_produce_nan(estimator):
    est = estimator.estimate([0.0, -1.0] * 40)
    assert est.hurst == 0.5
    assert not math.isnan(est.r2)


def test_scale_progression(estimator):
    assert estimator.scales(49) == [8, 11, 15]
    assert estimator.scales(20) == []


@pytest.mark.parametrize("prices", [rising(50), falling(50)])
def test_steady_trend_is_persistent(estimator, prices):
    est = estimator.estimate(prices)
    assert est.hurst > 0.58
    assert est.r2 > 0.9
    assert est.scales_used >= 3


@pytest.mark.parametrize("seed", [1, 7, 42, 2024])
def test_random_walk_output_is_clamped_and_finite(estimator, seed):
    rng = np.random.default_rng(seed)
    prices = 100 * np.exp(np.cumsum(rng.normal(0, 0.001, 400)))
    est = estimator.estimate(prices.tolist())
    assert 0.1 <= est.hurst <= 0.9
    assert 0.0 <= est.r2 <= 1.0
    assert math.isfinite(est.hurst) and math.isfinite(est.r2)


def test_wild_series_stays_in_bounds(estimator):
    rng = np.random.default_rng(3)
    prices = np.abs(rng.standard_cauchy(200)) + 1e-3
    est = estimator.estimate(prices.tolist())
    assert 0.1 <= est.hurst <= 0.9
