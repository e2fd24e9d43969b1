from typing import Sequence
import numpy as np
from src.config import BotConfig

class TickFilter:
    """
    Optional pre-trade veto applied after a detector fires.

      • super-lateral: tight range, both edges touched repeatedly, zig-zagging
      • spike: any single tick-to-tick jump above `strong_move_threshold`
    """

    def __init__(self, cfg: BotConfig):
        self.window = cfg.filter_window
        self.zone_perc = cfg.filter_zone_perc
        self.spike_lookback = cfg.strong_move_lookback
        self.spike_threshold = cfg.strong_move_threshold

    def is_super_lateral(self, ticks: Sequence[float]) -> bool:
        last = np.asarray(ticks[-self.window:], dtype=np.float64)
        hi, lo = float(last.max()), float(last.min())
        avg = float(last.mean())
        price_range = hi - lo
        perc_range = price_range / avg if avg else 0.0

        top_zone = hi - price_range * 0.10
        bottom_zone = lo + price_range * 0.10

        moves = np.diff(last)
        up_moves = int(np.sum(moves > 0))
        down_moves = int(np.sum(moves < 0))
        rest = last[1:]
        touches_high = int(np.sum((rest >= top_zone) & (rest < hi + 1e-8)))
        touches_low = int(np.sum((rest <= bottom_zone) & (rest > lo - 1e-8)))

        zigzag = up_moves > 4 and down_moves > 4
        many_touches = touches_high >= 2 and touches_low >= 2
        return perc_range < self.zone_perc and many_touches and zigzag

    def has_spike(self, ticks: Sequence[float]) -> bool:
        last = np.asarray(ticks[-self.spike_lookback:], dtype=np.float64)
        if last.size < 2:
            return False
        return bool(np.any(np.abs(np.diff(last)) > self.spike_threshold))

    def check(self, ticks: Sequence[float]) -> tuple[bool, str]:
        """(allowed, reason)"""
        if len(ticks) < self.window:
            return False, f"Filter needs {self.window} ticks, have {len(ticks)}"
        if self.is_super_lateral(ticks):
            return False, "Super-lateral market"
        if self.has_spike(ticks):
            return False, f"Tick move above {self.spike_threshold} in last {self.spike_lookback} ticks"
        return True, "OK"
