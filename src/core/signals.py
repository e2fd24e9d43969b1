from dataclasses import dataclass
from typing import Sequence
import numpy as np
from src.constants import Signal, Trend

@dataclass(frozen=True)
class DetectorResult:
    signal: Signal
    confidence: float           # 0..1
    rationale: str

    @property
    def is_actionable(self) -> bool:
        return self.signal != Signal.HOLD


def trend_of(delta: float, threshold: float = 0.0) -> Trend:
    if delta > threshold:
        return Trend.UP
    if delta < -threshold:
        return Trend.DOWN
    return Trend.LATERAL


def follow(trend: Trend) -> Signal:
    """Signal that rides `trend`."""
    if trend == Trend.UP:
        return Signal.CALL
    if trend == Trend.DOWN:
        return Signal.PUT
    return Signal.HOLD


def fade(trend: Trend) -> Signal:
    """Signal that bets against `trend`."""
    if trend == Trend.UP:
        return Signal.PUT
    if trend == Trend.DOWN:
        return Signal.CALL
    return Signal.HOLD


def net_move(prices: Sequence[float]) -> float:
    return float(prices[-1] - prices[0]) if len(prices) > 1 else 0.0


def abs_path(prices: Sequence[float]) -> float:
    """Sum of absolute tick-to-tick moves."""
    if len(prices) < 2:
        return 0.0
    return float(np.sum(np.abs(np.diff(np.asarray(prices, dtype=np.float64)))))


def build_detector(name: str):
    from src.core.mean_reversion import MeanReversionDetector
    from src.core.momentum import MomentumConfirmationDetector
    from src.core.hurst_regime import HurstRegimeDetector
    from src.core.momentum_persistent import MomentumPersistentDetector

    detectors = {
        "mean_reversion": MeanReversionDetector,
        "momentum_confirmation": MomentumConfirmationDetector,
        "hurst_regime": HurstRegimeDetector,
        "momentum_persistent": MomentumPersistentDetector,
    }
    try:
        return detectors[name]()
    except KeyError:
        raise ValueError(
            f"Unknown strategy {name!r} (choose from {', '.join(sorted(detectors))})"
        ) from None
