from dataclasses import dataclass
from typing import Optional, Sequence
from src.constants import Behavior, Persistence, Signal, Trend
from src.core.hurst import RescaledRangeEstimator
from src.core.signals import DetectorResult, fade, follow, net_move, trend_of

PERSISTENT_H = 0.58
ANTIPERSISTENT_H = 0.42
MIN_R2 = 0.5


def classify_persistence(hurst: float) -> Persistence:
    if hurst > 0.6:
        return Persistence.HIGH
    if hurst > 0.4:
        return Persistence.MEDIUM
    return Persistence.LOW


def classify_behavior(hurst: float) -> Behavior:
    if hurst > PERSISTENT_H:
        return Behavior.PERSISTENT
    if hurst < ANTIPERSISTENT_H:
        return Behavior.ANTIPERSISTENT
    return Behavior.RANDOM


@dataclass(frozen=True)
class HurstRegimeResult(DetectorResult):
    hurst: float = 0.5
    r2: float = 0.0
    persistence: Persistence = Persistence.MEDIUM
    behavior: Behavior = Behavior.RANDOM
    predictability: float = 0.0
    direction: Trend = Trend.LATERAL


class HurstRegimeDetector:
    """
    Trades the regime the Hurst exponent reports:
    persistent series continue the 5-tick direction, antipersistent ones revert it.
    Nothing is emitted unless the R/S fit has R² > 0.5.
    """

    name = "hurst_regime"
    MIN_TICKS = 50

    def __init__(self, estimator: Optional[RescaledRangeEstimator] = None):
        self.estimator = estimator or RescaledRangeEstimator()

    def detect(self, ticks: Sequence[float]) -> HurstRegimeResult:
        if len(ticks) < self.MIN_TICKS:
            return HurstRegimeResult(Signal.HOLD, 0.0, "Insufficient data")

        est = self.estimator.estimate(ticks)
        if est.degenerate:
            return HurstRegimeResult(Signal.HOLD, 0.0, "No meaningful variation in prices")

        h, r2 = est.hurst, est.r2
        deviation = abs(h - 0.5) * 2
        direction = trend_of(net_move(ticks[-5:]))
        behavior = classify_behavior(h)
        metrics = dict(
            hurst=h, r2=r2,
            persistence=classify_persistence(h),
            behavior=behavior,
            predictability=deviation * max(r2, 0.3),
            direction=direction,
        )

        if r2 > MIN_R2 and direction != Trend.LATERAL:
            conf = min(deviation * r2 * 1.5, 0.7)
            if behavior == Behavior.PERSISTENT:
                return HurstRegimeResult(
                    follow(direction), conf,
                    f"H={h:.3f} (R²={r2:.0%}) persistent, {direction.value} move continues",
                    **metrics,
                )
            if behavior == Behavior.ANTIPERSISTENT:
                return HurstRegimeResult(
                    fade(direction), conf,
                    f"H={h:.3f} (R²={r2:.0%}) antipersistent, {direction.value} move reverts",
                    **metrics,
                )

        if r2 <= MIN_R2:
            reason = f"H={h:.3f} but R²={r2:.0%} is too low to trust"
        elif direction == Trend.LATERAL:
            reason = f"H={h:.3f} with no recent direction"
        else:
            reason = f"H={h:.3f} close to 0.5 (random walk)"
        return HurstRegimeResult(Signal.HOLD, 0.0, reason, **metrics)
