from collections import deque
from typing import Iterable

class TickWindow:
    """Fixed-capacity FIFO of the most recent prices for one instrument."""

    def __init__(self, capacity: int = 50):
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._prices: deque[float] = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._prices)

    @property
    def is_full(self) -> bool:
        return len(self._prices) == self.capacity

    def seed(self, prices: Iterable[float]):
        """Replace the contents with a history snapshot (keeps the newest `capacity`)."""
        self._prices.clear()
        self._prices.extend(float(p) for p in prices)

    def append(self, price: float):
        self._prices.append(float(price))

    def snapshot(self) -> list[float]:
        return list(self._prices)

    def last(self, n: int) -> list[float]:
        if n <= 0:
            return []
        return list(self._prices)[-n:]

    def clear(self):
        self._prices.clear()
