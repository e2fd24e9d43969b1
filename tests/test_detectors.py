import pytest
from src.constants import Behavior, Signal, Trend
from src.core.hurst_regime import HurstRegimeDetector
from src.core.mean_reversion import MeanReversionDetector
from src.core.momentum import MomentumConfirmationDetector, count_run
from src.core.momentum_persistent import (
    MomentumPersistentDetector, count_reversals, efficiency_ratio, trailing_run,
)
from src.core.signals import build_detector
from helpers import falling, rising


def mirror(prices, pivot=200.0):
    return [round(pivot - p, 4) for p in prices]


@pytest.mark.parametrize("detector, n", [
    (MeanReversionDetector(), 19),
    (MomentumConfirmationDetector(), 14),
    (HurstRegimeDetector(), 49),
    (MomentumPersistentDetector(), 19),
])
def test_short_input_holds_with_zero_confidence(detector, n):
    result = detector.detect(rising(n))
    assert result.signal == Signal.HOLD
    assert result.confidence == 0
    assert result.rationale


def test_build_detector_by_name():
    assert isinstance(build_detector("hurst_regime"), HurstRegimeDetector)
    with pytest.raises(ValueError):
        build_detector("astrology")


# --- mean reversion ---------------------------------------------------------

SPIKE_UP = [100.0] * 15 + [100.0, 100.1, 100.2, 100.3, 101.0]
SPIKE_DOWN = [100.0] * 15 + [100.0, 99.9, 99.8, 99.7, 99.0]


def test_mean_reversion_fades_upward_spike():
    result = MeanReversionDetector().detect(SPIKE_UP)
    assert result.signal == Signal.PUT
    assert result.z_score > 1.5
    assert result.velocity > 0
    assert 0 < result.confidence <= 0.85


def test_mean_reversion_fades_downward_spike():
    result = MeanReversionDetector().detect(SPIKE_DOWN)
    assert result.signal == Signal.CALL
    assert result.z_score < -1.5
    assert 0 < result.confidence <= 0.85


def test_mean_reversion_flat_market_holds():
    result = MeanReversionDetector().detect([100.0] * 25)
    assert result.signal == Signal.HOLD
    assert result.std == 0


def test_mean_reversion_inside_band_holds():
    result = MeanReversionDetector().detect([100.0, 100.1] * 10)
    assert result.signal == Signal.HOLD
    assert abs(result.z_score) <= 1.5


# --- momentum confirmation ----------------------------------------------------

QUIET_THEN_RUN = [100.0, 100.01] * 5 + [100.0, 100.1, 100.2, 100.3, 100.4]
NOISY_THEN_RUN = [100.0, 101.0] * 5 + [100.0, 100.1, 100.2, 100.3, 100.4]


def test_count_run_stops_on_flat_or_reversal():
    assert count_run([1, 2, 3, 4, 5]) == (4, Trend.UP)
    assert count_run([5, 4, 4, 3, 2]) == (2, Trend.DOWN)
    assert count_run([1, 2, 3, 3]) == (0, Trend.LATERAL)
    assert count_run([3, 2, 3, 4]) == (2, Trend.UP)


def test_forceful_run_is_faded():
    result = MomentumConfirmationDetector().detect(QUIET_THEN_RUN)
    assert result.consecutive == 4
    assert result.direction == Trend.UP
    assert result.force > 1.5
    assert result.signal == Signal.PUT
    assert 0.5 <= result.confidence <= 0.8


def test_long_run_without_force_is_faded_at_lower_confidence():
    result = MomentumConfirmationDetector().detect(NOISY_THEN_RUN)
    assert result.force < 1.5
    assert result.signal == Signal.PUT
    assert result.confidence == pytest.approx(0.45)


def test_downward_run_is_faded_with_call():
    result = MomentumConfirmationDetector().detect(mirror(QUIET_THEN_RUN))
    assert result.direction == Trend.DOWN
    assert result.signal == Signal.CALL


def test_short_run_holds():
    ticks = [100.0, 100.01] * 6 + [100.0, 100.1, 100.2]
    result = MomentumConfirmationDetector().detect(ticks)
    assert result.signal == Signal.HOLD
    assert result.consecutive == 2


# --- hurst regime -------------------------------------------------------------

def test_persistent_uptrend_continues():
    result = HurstRegimeDetector().detect(rising(50))
    assert result.behavior == Behavior.PERSISTENT
    assert result.r2 > 0.5
    assert result.signal == Signal.CALL
    assert 0 < result.confidence <= 0.7


def test_persistent_downtrend_continues():
    result = HurstRegimeDetector().detect(falling(50))
    assert result.signal == Signal.PUT
    assert result.direction == Trend.DOWN


def test_hurst_regime_flat_series_holds():
    result = HurstRegimeDetector().detect([100.0] * 60)
    assert result.signal == Signal.HOLD
    assert result.hurst == 0.5
    assert result.r2 == 0


# --- momentum persistent ------------------------------------------------------

def test_composite_rides_monotonic_uptrend():
    result = MomentumPersistentDetector().detect(rising(50))
    assert result.hurst > 0.58
    assert result.is_persistent
    assert (result.short_trend, result.medium_trend, result.long_trend) == (Trend.UP,) * 3
    assert result.alignment == pytest.approx(1.0)
    assert result.signal == Signal.CALL
    assert 0 < result.confidence <= 0.80
    assert not result.is_lateral


def test_composite_flat_market_is_lateral_and_holds():
    result = MomentumPersistentDetector().detect([100.0] * 60)
    assert result.signal == Signal.HOLD
    assert result.is_lateral
    assert result.efficiency == 0


def test_composite_uses_supplied_hurst_for_short_windows():
    result = MomentumPersistentDetector().detect(rising(20), hurst=0.7)
    assert result.hurst == 0.7
    assert result.r2 == pytest.approx(0.8)
    assert result.signal == Signal.CALL


def test_composite_needs_persistence():
    result = MomentumPersistentDetector().detect(rising(20), hurst=0.5)
    assert result.signal == Signal.HOLD
    assert not result.is_persistent


def test_lateral_flag_does_not_suppress_signal():
    ticks = [100.0]
    for k in range(1, 20):
        ticks.append(round(ticks[-1] + (0.3 if k % 2 else -0.2), 4))
    result = MomentumPersistentDetector().detect(ticks, hurst=0.7)
    assert result.is_lateral
    assert result.efficiency < 0.3
    assert result.signal == Signal.CALL


def test_choppiness_helpers():
    assert efficiency_ratio([1, 2, 3, 4]) == pytest.approx(1.0)
    assert efficiency_ratio([1, 2, 1, 2, 1]) == 0
    assert efficiency_ratio([5, 5, 5]) == 0
    assert trailing_run([1, 2, 1, 2, 2, 3, 4]) == 3
    assert count_reversals([1, 2, 1, 2, 1]) == 3
    assert count_reversals([1, 2, 2, 3]) == 0
