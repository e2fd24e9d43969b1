from dataclasses import dataclass
from typing import Sequence
import numpy as np

@dataclass(frozen=True)
class HurstEstimate:
    hurst: float
    r2: float
    scales_used: int = 0
    degenerate: bool = False

    @classmethod
    def neutral(cls, degenerate: bool = False) -> "HurstEstimate":
        return cls(hurst=0.5, r2=0.0, scales_used=0, degenerate=degenerate)


class RescaledRangeEstimator:
    """
    Hurst exponent via multi-scale rescaled-range (R/S) analysis of log returns.

      • returns are split into non-overlapping windows per scale
      • R/S is *averaged* across the windows of a scale (max is too jumpy)
      • H is the slope of ln(avg R/S) against ln(scale); R² of that fit is
        returned so callers can ignore exponents the fit does not support

    Degenerate input (too short, flat, non-positive prices) yields the neutral
    estimate H=0.5, R²=0 instead of raising.
    """

    MIN_RETURNS = 30
    MIN_POINTS = 3
    MIN_VARIANCE = 1e-12
    H_MIN, H_MAX = 0.1, 0.9

    def __init__(self, min_scale: int = 8, growth: float = 1.4):
        self.min_scale = min_scale
        self.growth = growth

    def scales(self, n_returns: int) -> list[int]:
        max_scale = n_returns // 3
        out: list[int] = []
        scale = self.min_scale
        while scale <= max_scale:
            out.append(scale)
            nxt = int(scale * self.growth)
            scale = nxt if nxt > scale else scale + 1
        return out

    @staticmethod
    def log_returns(prices: Sequence[float]) -> np.ndarray:
        p = np.asarray(prices, dtype=np.float64)
        if p.size < 2:
            return np.empty(0)
        prev, cur = p[:-1], p[1:]
        ok = (prev > 0) & (cur > 0) & np.isfinite(prev) & np.isfinite(cur)
        rets = np.log(cur[ok] / prev[ok])
        return rets[np.isfinite(rets)]

    @staticmethod
    def _avg_rescaled_range(rets: np.ndarray, scale: int) -> float:
        n_windows = len(rets) // scale
        if n_windows == 0:
            return 0.0
        windows = rets[: n_windows * scale].reshape(n_windows, scale)
        devs = windows - windows.mean(axis=1, keepdims=True)
        cum = np.cumsum(devs, axis=1)
        r = cum.max(axis=1) - cum.min(axis=1)
        s = np.sqrt((devs ** 2).mean(axis=1))
        with np.errstate(divide="ignore", invalid="ignore"):
            rs = r / s
        rs = rs[(s > 0) & np.isfinite(rs)]
        if rs.size == 0:
            return 0.0
        return float(rs.mean())

    def estimate(self, prices: Sequence[float]) -> HurstEstimate:
        rets = self.log_returns(prices)
        if len(rets) < self.MIN_RETURNS:
            return HurstEstimate.neutral()

        # second moment, as a flat series has all-zero returns
        if float(np.mean(rets ** 2)) < self.MIN_VARIANCE:
            return HurstEstimate.neutral(degenerate=True)

        xs: list[float] = []
        ys: list[float] = []
        for scale in self.scales(len(rets)):
            avg_rs = self._avg_rescaled_range(rets, scale)
            if avg_rs > 0 and np.isfinite(avg_rs):
                xs.append(np.log(scale))
                ys.append(np.log(avg_rs))

        if len(xs) < self.MIN_POINTS:
            return HurstEstimate.neutral()

        x = np.array(xs)
        y = np.array(ys)
        if np.var(x) < 1e-12:
            return HurstEstimate.neutral()

        slope, intercept = np.polyfit(x, y, 1)
        if not np.isfinite(slope):
            return HurstEstimate.neutral()

        ss_tot = float(np.sum((y - y.mean()) ** 2))
        ss_res = float(np.sum((y - (intercept + slope * x)) ** 2))
        r2 = 1.0 - ss_res / ss_tot if ss_tot > 0 else 0.0
        r2 = min(max(r2, 0.0), 1.0)

        hurst = float(np.clip(slope, self.H_MIN, self.H_MAX))
        return HurstEstimate(hurst=hurst, r2=r2, scales_used=len(xs))
