from dataclasses import dataclass
from typing import Sequence
import numpy as np
from src.constants import Signal, Trend
from src.core.signals import DetectorResult, fade

@dataclass(frozen=True)
class MomentumConfirmationResult(DetectorResult):
    consecutive: int = 0
    direction: Trend = Trend.LATERAL
    net_move: float = 0.0
    avg_move: float = 0.0
    force: float = 0.0


def count_run(ticks: Sequence[float]) -> tuple[int, Trend]:
    """Same-direction moves counted backwards from the newest tick; a flat tick or reversal ends the run."""
    ups = downs = 0
    for i in range(len(ticks) - 1, 0, -1):
        diff = ticks[i] - ticks[i - 1]
        if diff > 0:
            if downs:
                break
            ups += 1
        elif diff < 0:
            if ups:
                break
            downs += 1
        else:
            break
    if ups > downs:
        return ups, Trend.UP
    if downs > ups:
        return downs, Trend.DOWN
    return 0, Trend.LATERAL


class MomentumConfirmationDetector:
    """
    Fades exhausted runs in the last 5 ticks.

    Rule A: ≥3 consecutive moves whose net move is > 1.5x the typical 5-tick path.
    Rule B: ≥4 consecutive moves regardless of force, at lower confidence.
    """

    name = "momentum_confirmation"
    MIN_TICKS = 15

    def detect(self, ticks: Sequence[float]) -> MomentumConfirmationResult:
        if len(ticks) < self.MIN_TICKS:
            return MomentumConfirmationResult(Signal.HOLD, 0.0, "Insufficient data")

        last5 = list(ticks[-5:])
        last15 = np.asarray(ticks[-15:], dtype=np.float64)

        consecutive, direction = count_run(last5)
        net = float(last5[-1] - last5[0])
        avg_move = float(np.sum(np.abs(np.diff(last15)))) / 14
        force = abs(net) / (avg_move * 5) if avg_move > 0 else 0.0
        metrics = dict(
            consecutive=consecutive, direction=direction,
            net_move=net, avg_move=avg_move, force=force,
        )
        word = "up" if direction == Trend.UP else "down"

        if consecutive >= 3 and force > 1.5 and direction != Trend.LATERAL:
            conf = min(0.5 + (consecutive - 3) * 0.1 + (force - 1.5) * 0.1, 0.8)
            return MomentumConfirmationResult(
                fade(direction), conf,
                f"{consecutive} consecutive {word} ticks with {force:.2f}x force", **metrics,
            )

        if consecutive >= 4 and direction != Trend.LATERAL:
            conf = min(0.45 + (consecutive - 4) * 0.1, 0.7)
            return MomentumConfirmationResult(
                fade(direction), conf,
                f"Long run of {consecutive} {word} ticks, exhaustion likely", **metrics,
            )

        reason = (f"Only {consecutive} consecutive ticks, waiting for confirmation"
                  if consecutive > 0 else "No clear momentum pattern")
        return MomentumConfirmationResult(Signal.HOLD, 0.0, reason, **metrics)
