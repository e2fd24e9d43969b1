from dataclasses import dataclass
from typing import Callable, Optional
from src.config import BotConfig
from src.constants import StakePolicy
from src.utils.logger import log

ThresholdCallback = Callable[[float, float], None]   # (amount, balance)

@dataclass
class StakeState:
    policy: StakePolicy
    current_balance: float
    initial_stake: float
    current_stake: float
    consecutive_wins: int = 0
    consecutive_losses: int = 0
    soros_level: int = 0                  # compounding wins in the current cycle
    martingale_level: int = 0             # escalated losses in the current streak
    streak_loss: float = 0.0              # losses to recover in the current streak
    base_wins: int = 0                    # wins at base stake since the last escalation
    escalating: bool = False
    total_profit: float = 0.0             # session gross winnings
    total_loss: float = 0.0               # session gross losses
    session_start_balance: float = 0.0
    target_fired: bool = False
    stop_loss_fired: bool = False

    @property
    def session_net(self) -> float:
        return self.current_balance - self.session_start_balance


class StakeSizer:
    """
    Stake policy engine.

      fixed       always the initial stake
      martingale  after a loss, size the stake so one win recovers the streak's
                  losses plus one unit of profit on the initial stake
      soros       after a win, reinvest the profit (stake + profit) for up to
                  `soros_level` wins, then start over; any loss resets

    `wins_before_martingale` wins at base stake must happen before either
    escalation kicks in. Balance and stake only move in `update_last_trade`.
    """

    def __init__(self, cfg: BotConfig):
        self.cfg = cfg
        self.policy = StakePolicy(cfg.stake_policy)
        self.payout = cfg.profit_percent / 100.0
        if self.payout <= 0:
            raise ValueError("profit_percent must be positive")
        self.state = StakeState(
            policy=self.policy,
            current_balance=cfg.initial_balance,
            initial_stake=cfg.initial_stake,
            current_stake=self._clamp(cfg.initial_stake),
            session_start_balance=cfg.initial_balance,
        )
        self._on_target: Optional[ThresholdCallback] = None
        self._on_stop_loss: Optional[ThresholdCallback] = None

    # ------------------------------------------------------------------
    def set_on_target_reached(self, cb: ThresholdCallback):
        self._on_target = cb

    def set_on_stop_loss_reached(self, cb: ThresholdCallback):
        self._on_stop_loss = cb

    def get_current_balance(self) -> float:
        return self.state.current_balance

    def calculate_next_stake(self) -> float:
        return self.state.current_stake

    # ------------------------------------------------------------------
    def _clamp(self, stake: float) -> float:
        stake = max(self.cfg.min_stake, min(stake, self.cfg.max_stake))
        return round(max(stake, 0.0), 2)

    def _armed(self) -> bool:
        return self.state.base_wins >= self.cfg.wins_before_martingale

    def _reset_cycle(self):
        s = self.state
        s.current_stake = self._clamp(s.initial_stake)
        s.soros_level = 0
        s.martingale_level = 0
        s.streak_loss = 0.0
        s.escalating = False

    def _martingale_stake(self) -> float:
        target = self.state.initial_stake * self.payout
        return (self.state.streak_loss + target) / self.payout

    # ------------------------------------------------------------------
    def update_last_trade(self, is_win: bool, stake: Optional[float] = None,
                          profit: Optional[float] = None):
        """Apply a settled trade. `stake`/`profit` default to the sizer's own figures."""
        s = self.state
        stake = s.current_stake if not stake else float(stake)

        if is_win:
            gain = stake * self.payout if profit is None else abs(float(profit))
            s.current_balance += gain
            s.total_profit += gain
            s.consecutive_wins += 1
            s.consecutive_losses = 0
            self._after_win(stake, gain)
        else:
            loss = stake if not profit else abs(float(profit))
            s.current_balance -= loss
            s.total_loss += loss
            s.consecutive_losses += 1
            s.consecutive_wins = 0
            self._after_loss(loss)

        s.current_balance = round(s.current_balance, 2)
        log.debug("Stake state: balance=%.2f next=%.2f wins=%d losses=%d",
                  s.current_balance, s.current_stake,
                  s.consecutive_wins, s.consecutive_losses)
        self._check_thresholds()

    def _after_win(self, stake: float, gain: float):
        s = self.state
        if self.policy == StakePolicy.SOROS:
            if not s.escalating:
                s.base_wins += 1
                if s.base_wins <= self.cfg.wins_before_martingale:
                    return  # still earning the right to compound
            s.soros_level += 1
            if s.soros_level >= self.cfg.soros_level:
                log.info("Soros cycle complete after %d wins — back to base stake", s.soros_level)
                self._reset_cycle()
                s.base_wins = 0
            else:
                s.escalating = True
                s.current_stake = self._clamp(stake + gain)
            return

        if self.policy == StakePolicy.MARTINGALE and s.escalating:
            log.info("Martingale recovered at level %d", s.martingale_level)
            self._reset_cycle()
            s.base_wins = 0
            return

        s.base_wins += 1
        self._reset_cycle()

    def _after_loss(self, loss: float):
        s = self.state
        if self.policy == StakePolicy.MARTINGALE:
            if not s.escalating and not self._armed():
                s.base_wins = 0
                self._reset_cycle()
                return
            s.streak_loss += loss
            s.martingale_level += 1
            if s.martingale_level > self.cfg.max_martingale_level:
                log.warning("Martingale depth %d exceeded — cutting the streak",
                            self.cfg.max_martingale_level)
                self._reset_cycle()
                s.base_wins = 0
                return
            s.escalating = True
            s.current_stake = self._clamp(self._martingale_stake())
            return

        if s.escalating or self.policy == StakePolicy.SOROS:
            s.base_wins = 0
        self._reset_cycle()

    # ------------------------------------------------------------------
    def _check_thresholds(self):
        s = self.state
        net = s.session_net
        if (not s.target_fired and self.cfg.target_profit > 0
                and net >= self.cfg.target_profit):
            s.target_fired = True
            log.info("🎯 Target profit reached: %+.2f (balance %.2f)", net, s.current_balance)
            if self._on_target:
                self._on_target(net, s.current_balance)
        if (not s.stop_loss_fired and self.cfg.target_stop_loss > 0
                and net <= -self.cfg.target_stop_loss):
            s.stop_loss_fired = True
            log.warning("🛑 Stop loss reached: %.2f (balance %.2f)", -net, s.current_balance)
            if self._on_stop_loss:
                self._on_stop_loss(-net, s.current_balance)

    def reset_session(self):
        """Start a new trading session: keep the balance, clear streaks and accumulators."""
        s = self.state
        s.session_start_balance = s.current_balance
        s.total_profit = 0.0
        s.total_loss = 0.0
        s.consecutive_wins = 0
        s.consecutive_losses = 0
        s.base_wins = 0
        s.target_fired = False
        s.stop_loss_fired = False
        self._reset_cycle()

    def summary(self) -> str:
        s = self.state
        return (f"{self.policy.value} stake=${s.current_stake:.2f} "
                f"bal=${s.current_balance:.2f} session={s.session_net:+.2f}")
