from collections import deque
from src.trading.trade import TradeRecord

class PerformanceTracker:
    def __init__(self):
        self.wins = 0
        self.losses = 0
        self.total_profit = 0.0
        self.consec_losses = 0
        self.max_drawdown = 0.0
        self._peak = 0.0
        self.recent_results: deque[bool] = deque(maxlen=100)

    @property
    def total(self):
        return self.wins + self.losses

    @property
    def win_rate(self):
        return self.wins / self.total if self.total > 0 else 0.5

    @property
    def recent_win_rate(self):
        if not self.recent_results:
            return 0.5
        return sum(self.recent_results) / len(self.recent_results)

    def record(self, trade: TradeRecord):
        self.recent_results.append(trade.is_win)
        self.total_profit += trade.profit
        if trade.is_win:
            self.wins += 1
            self.consec_losses = 0
        else:
            self.losses += 1
            self.consec_losses += 1

        # Drawdown
        if self.total_profit > self._peak:
            self._peak = self.total_profit
        dd = self._peak - self.total_profit
        if dd > self.max_drawdown:
            self.max_drawdown = dd

    def reset(self):
        self.__init__()

    def summary(self) -> str:
        return (
            f"W:{self.wins} L:{self.losses} "
            f"WR:{self.win_rate:.1%} "
            f"P&L:${self.total_profit:+.2f} "
            f"MaxDD:${self.max_drawdown:.2f} "
            f"Streak:{'L' if self.consec_losses else 'OK'}{self.consec_losses}"
        )
