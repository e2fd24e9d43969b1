from dataclasses import dataclass
from typing import Sequence
import numpy as np
from src.constants import Signal
from src.core.signals import DetectorResult

@dataclass(frozen=True)
class MeanReversionResult(DetectorResult):
    z_score: float = 0.0
    mean: float = 0.0
    std: float = 0.0
    velocity: float = 0.0
    acceleration: float = 0.0


class MeanReversionDetector:
    """Fade prices stretched more than `z_threshold` deviations from the 20-tick mean."""

    name = "mean_reversion"
    MIN_TICKS = 20

    def __init__(self, z_threshold: float = 1.5, max_confidence: float = 0.85):
        self.z_threshold = z_threshold
        self.max_confidence = max_confidence

    def detect(self, ticks: Sequence[float]) -> MeanReversionResult:
        if len(ticks) < self.MIN_TICKS:
            return MeanReversionResult(Signal.HOLD, 0.0, "Insufficient data")

        window = np.asarray(ticks[-self.MIN_TICKS:], dtype=np.float64)
        last10 = window[-10:]
        current = float(window[-1])
        mean = float(window.mean())
        std = float(window.std())

        if std == 0:
            return MeanReversionResult(Signal.HOLD, 0.0, "Zero volatility", mean=mean, std=std)

        z = (current - mean) / std
        velocity = float(np.sum(np.diff(last10[-5:])))
        prev_velocity = float(np.sum(np.diff(last10[:5])))
        acceleration = velocity - prev_velocity
        metrics = dict(z_score=z, mean=mean, std=std, velocity=velocity, acceleration=acceleration)

        if z > self.z_threshold and velocity > 0:
            boost = 0.1 if acceleration < 0 else 0.0   # decelerating spike
            conf = min((abs(z) - 1) / 2 + boost, self.max_confidence)
            return MeanReversionResult(
                Signal.PUT, conf,
                f"Price {z:.2f} std above the mean, pullback likely", **metrics,
            )

        if z < -self.z_threshold and velocity < 0:
            boost = 0.1 if acceleration > 0 else 0.0
            conf = min((abs(z) - 1) / 2 + boost, self.max_confidence)
            return MeanReversionResult(
                Signal.CALL, conf,
                f"Price {abs(z):.2f} std below the mean, bounce likely", **metrics,
            )

        return MeanReversionResult(
            Signal.HOLD, 0.0, f"Z-score {z:.2f} inside the normal band", **metrics,
        )
