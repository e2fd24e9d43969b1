from dataclasses import dataclass
from typing import Optional, Sequence
import numpy as np
from src.constants import Signal, Trend
from src.core.hurst import RescaledRangeEstimator
from src.core.hurst_regime import PERSISTENT_H
from src.core.signals import DetectorResult, abs_path, follow, net_move, trend_of

@dataclass(frozen=True)
class MomentumPersistentResult(DetectorResult):
    hurst: float = 0.5
    r2: float = 0.0
    short_trend: Trend = Trend.LATERAL     # last 3 ticks
    medium_trend: Trend = Trend.LATERAL    # last 7 ticks
    long_trend: Trend = Trend.LATERAL      # last 15 ticks
    alignment: float = 0.0
    force: float = 0.0
    is_persistent: bool = False
    efficiency: float = 0.0
    trend_strength: float = 0.0            # 0..100
    reversals: int = 0
    is_lateral: bool = True


def efficiency_ratio(prices: Sequence[float]) -> float:
    """Net displacement over total path: 1.0 is a straight line, ~0 is chop."""
    path = abs_path(prices)
    return abs(net_move(prices)) / path if path > 0 else 0.0


def _tick_dirs(prices: Sequence[float]) -> np.ndarray:
    return np.sign(np.diff(np.asarray(prices, dtype=np.float64))).astype(int)


def trailing_run(prices: Sequence[float]) -> int:
    """Length of the newest same-direction run, skipping flat ticks."""
    run = 0
    current = 0
    for d in _tick_dirs(prices)[::-1]:
        if d == 0:
            continue
        if current == 0:
            current, run = d, 1
        elif d == current:
            run += 1
        else:
            break
    return run


def count_reversals(prices: Sequence[float]) -> int:
    reversals = 0
    last = 0
    for d in _tick_dirs(prices):
        if d != 0 and d != last:
            if last != 0:
                reversals += 1
            last = d
    return reversals


def trend_strength(efficiency: float, run: int, reversals: int) -> float:
    """Composite 0..100 score: efficiency (40) + run length (30) + few reversals (30)."""
    return efficiency * 40 + min(run * 10, 30) + max(30 - reversals * 5, 0)


class MomentumPersistentDetector:
    """
    Production strategy: ride the trend when the market is persistent (H > 0.58)
    and the 3/7/15-tick directions agree.

    Choppiness (efficiency, trend strength, reversals) is reported through
    `is_lateral` but does not suppress signals.
    """

    name = "momentum_persistent"
    MIN_TICKS = 20
    HURST_TICKS = 50
    ASSUMED_R2 = 0.8            # when the caller supplies H from a longer history

    def __init__(self, estimator: Optional[RescaledRangeEstimator] = None,
                 threshold_ratio: float = 0.0001):
        self.estimator = estimator or RescaledRangeEstimator()
        self.threshold_ratio = threshold_ratio

    def detect(self, ticks: Sequence[float], hurst: Optional[float] = None) -> MomentumPersistentResult:
        if len(ticks) < self.MIN_TICKS:
            return MomentumPersistentResult(Signal.HOLD, 0.0, "Insufficient data")

        h = 0.5 if hurst is None else float(hurst)
        r2 = self.ASSUMED_R2
        # shared estimator: 50 ticks give scales 8/11/15, so H runs a little off a denser scale set
        if hurst is None and len(ticks) >= self.HURST_TICKS:
            est = self.estimator.estimate(ticks)
            h, r2 = est.hurst, est.r2
        persistent = h > PERSISTENT_H

        prices = np.asarray(ticks, dtype=np.float64)
        threshold = float(prices.mean()) * self.threshold_ratio
        short_move = net_move(ticks[-3:])
        trends = [
            trend_of(short_move, threshold),
            trend_of(net_move(ticks[-7:]), threshold),
            trend_of(net_move(ticks[-15:]), threshold),
        ]
        ups = trends.count(Trend.UP)
        downs = trends.count(Trend.DOWN)
        laterals = trends.count(Trend.LATERAL)
        majority = max(ups, downs)
        alignment = (majority - laterals * 0.5) / 3

        last20 = prices[-20:]
        std20 = float(last20.std())
        force = abs(short_move) / std20 if std20 > 0 else 0.0

        last15 = ticks[-15:]
        eff = efficiency_ratio(last15)
        reversals = count_reversals(last15)
        strength = trend_strength(eff, trailing_run(last15), reversals)
        lateral = eff < 0.3 or strength < 25 or reversals > 5

        metrics = dict(
            hurst=h, r2=r2,
            short_trend=trends[0], medium_trend=trends[1], long_trend=trends[2],
            alignment=alignment, force=force, is_persistent=persistent,
            efficiency=eff, trend_strength=strength, reversals=reversals,
            is_lateral=lateral,
        )
        leader = Trend.UP if ups > downs else Trend.DOWN

        if persistent and alignment >= 0.8:
            conf = min(
                (h - 0.5) * 2
                + r2 * 0.2
                + alignment * 0.2
                + min(force * 0.1, 0.2)
                + eff * 0.2,
                0.80,
            )
            return MomentumPersistentResult(
                follow(leader), conf,
                f"H={h:.2f} + strength={strength:.0f} {leader.value} trend ({majority}/3)",
                **metrics,
            )

        if persistent and majority >= 2 and force > 1.5:
            conf = min((h - 0.5) * 1.5 + force * 0.1, 0.55)
            return MomentumPersistentResult(
                follow(leader), conf,
                f"H={h:.2f} + force {force:.1f}x + strength={strength:.0f}, "
                f"{leader.value} ({majority}/3)",
                **metrics,
            )

        reason = (f"H={h:.2f} persistent but timeframes not aligned ({majority}/3)"
                  if persistent else f"H={h:.2f} not persistent (< {PERSISTENT_H})")
        return MomentumPersistentResult(Signal.HOLD, 0.0, reason, **metrics)
