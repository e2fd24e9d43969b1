import asyncio
import time
from typing import Callable, Optional

from src.broker.base import Broker
from src.config import BotConfig
from src.core.events import (
    ContractUpdate, HistoryEvent, PollRequested, StopRequested, TickEvent, WatchdogExpired,
)
from src.core.filters import TickFilter
from src.core.signals import DetectorResult, build_detector
from src.core.tick_window import TickWindow
from src.errors import AuthRequired, BrokerError
from src.trading.journal import TradeJournal
from src.trading.performance import PerformanceTracker
from src.trading.reconciler import TradeReconciler
from src.trading.stake_sizer import StakeSizer
from src.trading.trade import TradeRecord
from src.utils.logger import log


class TickTradingBot:
    """
    One instrument, one position, one event queue.

    Tick pumps, settlement pushes and watchdog expiries only enqueue events;
    `_dispatch` is the single consumer, so the tick window, stake state and
    pending contract are never touched concurrently.
    """

    def __init__(self, cfg: BotConfig, broker: Broker,
                 journal: Optional[TradeJournal] = None,
                 notify: Optional[Callable[[str], None]] = None):
        self.cfg = cfg
        self.broker = broker
        self.journal = journal
        self.notify = notify or (lambda text: log.info("📣 %s", text))

        self.window = TickWindow(cfg.window_size)
        self.detector = build_detector(cfg.strategy)
        self.tick_filter = TickFilter(cfg)
        self.sizer = StakeSizer(cfg)
        self.perf = PerformanceTracker()
        self.reconciler = TradeReconciler(
            cfg, broker, self.sizer, journal,
            on_settlement=self._on_settled,
            on_watchdog=self._on_watchdog,
            notify=self.notify,
        )
        self.sizer.set_on_target_reached(self._on_target_reached)
        self.sizer.set_on_stop_loss_reached(self._on_stop_loss_reached)

        # outward hooks for a notification / UI layer
        self.on_signal: Optional[Callable[[DetectorResult], None]] = None
        self.on_settlement: Optional[Callable[[TradeRecord], None]] = None
        self.on_target_reached: Optional[Callable[[float, float], None]] = None
        self.on_stop_loss_reached: Optional[Callable[[float, float], None]] = None

        self._events: Optional[asyncio.Queue] = None
        self._running = False
        self._tick_task: Optional[asyncio.Task] = None
        self._tasks: list[asyncio.Task] = []
        self._last_activity = 0.0
        self._session_started = 0.0
        self._needs_auth = False

    @property
    def running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    async def start(self):
        """Run a trading session until stopped."""
        log.info("═" * 60)
        log.info("  📈 TICK REGIME BOT")
        log.info("  Asset: %s  |  Strategy: %s  |  Window: %d ticks",
                 self.cfg.asset, self.detector.name, self.cfg.window_size)
        log.info("  Stake: %s  |  Contract: %d ticks x %ds  |  Watchdog: %.0fs",
                 self.sizer.summary(), self.cfg.ticks_count,
                 self.cfg.contract_seconds, self.cfg.watchdog_seconds)
        log.info("═" * 60)

        self.window.clear()
        self.reconciler.reset()
        self.sizer.reset_session()
        self.perf.reset()

        if not await self.broker.authorize():
            self.notify("❌ Broker authorization failed, bot not started")
            return

        self._events = asyncio.Queue()
        self._running = True
        self._last_activity = asyncio.get_running_loop().time()
        self._session_started = time.time()
        if self.journal is not None:
            log.info("Journal: %d trades on record, recent win rate %.1f%%",
                     self.journal.total_trades(), self.journal.recent_win_rate() * 100)
            self.journal.mark_session("start", self.sizer.get_current_balance())

        self._tick_task = asyncio.create_task(self._tick_pump())
        self._tasks = [
            asyncio.create_task(self._contract_pump()),
            asyncio.create_task(self._stall_monitor()),
        ]
        self.notify("🤖 Bot started and connected")

        try:
            await self._dispatch_loop()
        finally:
            await self._teardown()

    async def stop(self, reason: str = "stop requested"):
        if self._running:
            self.request_stop(reason)

    def request_stop(self, reason: str):
        log.info("Stopping: %s", reason)
        self._running = False
        if self._events is not None:
            self._events.put_nowait(StopRequested(reason))

    async def _teardown(self):
        self._running = False
        tasks = [t for t in [self._tick_task, *self._tasks] if t is not None]
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tick_task = None
        self._tasks = []

        self.reconciler.reset()
        self.window.clear()
        stopped = "🛑 Bot stopped"
        if self.journal is not None:
            try:
                self.journal.mark_session("stop", self.sizer.get_current_balance())
                stopped += f"  session P&L ${self.journal.session_profit(self._session_started):+.2f}"
            except Exception as e:
                log.error("Failed to record session stop: %s", e)
        log.info("Bot stopped.  Final stats: %s  |  %s", self.perf.summary(), self.sizer.summary())
        self.notify(stopped)

    # ------------------------------------------------------------------
    async def _dispatch_loop(self):
        while self._running:
            event = await self._events.get()
            try:
                await self._dispatch(event)
            except Exception as e:
                log.error("Dispatch error on %s: %s", type(event).__name__, e, exc_info=True)

    async def _dispatch(self, event):
        self._last_activity = asyncio.get_running_loop().time()

        if isinstance(event, TickEvent):
            self.window.append(event.price)
            await self._on_tick()
        elif isinstance(event, HistoryEvent):
            self.window.seed(event.prices)
            log.info("Loaded %d history ticks", len(self.window))
        elif isinstance(event, ContractUpdate):
            self.reconciler.handle_update(event)
        elif isinstance(event, (WatchdogExpired, PollRequested)):
            await self.reconciler.poll(event.contract_id)
        elif isinstance(event, StopRequested):
            self._running = False

    async def _on_tick(self):
        if not self.reconciler.is_idle:
            self._count_pending_tick()
            return

        ticks = self.window.snapshot()
        result = self.detector.detect(ticks)
        if self.on_signal:
            self.on_signal(result)

        if not result.is_actionable:
            log.debug("HOLD: %s", result.rationale)
            return
        if result.confidence < self.cfg.min_confidence:
            log.debug("Low confidence %.1f%% (need %.1f%%): %s",
                      result.confidence * 100, self.cfg.min_confidence * 100, result.rationale)
            return
        if self.cfg.use_filters:
            allowed, reason = self.tick_filter.check(ticks)
            if not allowed:
                log.info("⏸ Filtered %s: %s", result.signal.value.upper(), reason)
                return

        stake = self.sizer.calculate_next_stake()
        if not self._check_stake_and_balance(stake):
            self.request_stop("stake or balance below minimum")
            return

        log.info("🎯 %s  conf=%.1f%%  stake=$%.2f  │ %s",
                 result.signal.value.upper(), result.confidence * 100, stake, result.rationale)
        self.notify(f"🎯 Signal {result.signal.value.upper()} — stake ${stake:.2f}")
        await self.reconciler.place(self.cfg.asset, result.signal, stake)

    def _count_pending_tick(self):
        pending = self.reconciler.pending
        if pending is None:
            return
        pending.ticks_seen += 1
        if not pending.nudged and pending.ticks_seen >= self.cfg.ticks_count + 1:
            pending.nudged = True
            log.info("Contract %s should have expired after %d ticks — polling",
                     pending.contract_id, pending.ticks_seen)
            self._events.put_nowait(PollRequested(pending.contract_id))

    def _check_stake_and_balance(self, stake: float) -> bool:
        balance = self.sizer.get_current_balance()
        if stake < self.cfg.min_balance or balance < self.cfg.min_balance:
            log.warning("Stake $%.2f or balance $%.2f below minimum $%.2f",
                        stake, balance, self.cfg.min_balance)
            self.notify(
                "🚨 CRITICAL: stake or balance reached the minimum — bot stopped. "
                f"Final balance: ${balance:.2f}"
            )
            return False
        return True

    # ------------------------------------------------------------------
    def _on_settled(self, record: TradeRecord):
        self.perf.record(record)
        verdict = "✅ Trade won" if record.is_win else "❌ Trade lost"
        self.notify(f"{verdict}  ${record.profit:+.2f}  balance ${record.balance_after:.2f}  "
                    f"│ {self.perf.summary()}")
        if self.on_settlement:
            self.on_settlement(record)

    def _on_watchdog(self, contract_id: str):
        if self._events is not None:
            self._events.put_nowait(WatchdogExpired(contract_id))

    def _on_target_reached(self, profit: float, balance: float):
        self.notify(f"🎯 Target profit reached! Profit ${profit:.2f}  "
                    f"(target ${self.cfg.target_profit:.2f})  balance ${balance:.2f}")
        if self.on_target_reached:
            self.on_target_reached(profit, balance)
        self.request_stop("target profit reached")

    def _on_stop_loss_reached(self, loss: float, balance: float):
        self.notify(f"🛑 Stop loss reached! Loss ${loss:.2f}  "
                    f"(limit ${self.cfg.target_stop_loss:.2f})  balance ${balance:.2f}")
        if self.on_stop_loss_reached:
            self.on_stop_loss_reached(loss, balance)
        self.request_stop("stop loss reached")

    # ------------------------------------------------------------------
    async def _tick_pump(self):
        """Subscribe to ticks and forward them to the dispatch queue."""
        try:
            async for item in self.broker.subscribe_ticks(self.cfg.asset):
                self._events.put_nowait(item)
            log.warning("Tick stream for %s ended", self.cfg.asset)
        except AuthRequired as e:
            log.error("Tick stream lost authorization: %s", e)
            self._needs_auth = True
        except BrokerError as e:
            log.error("Tick stream error: %s", e)
            self.notify(f"❌ Tick stream error: {e}")

    async def _contract_pump(self):
        try:
            async for update in self.broker.contract_updates():
                self._events.put_nowait(update)
        except BrokerError as e:
            log.error("Contract update stream error: %s", e)

    async def _stall_monitor(self):
        """Resubscribe when nothing has arrived for `stall_timeout` seconds while idle."""
        loop = asyncio.get_running_loop()
        while self._running:
            await asyncio.sleep(self.cfg.stall_check_interval)
            idle_for = loop.time() - self._last_activity
            if self.reconciler.is_idle and idle_for > self.cfg.stall_timeout:
                log.warning("No activity for %.0fs — restarting tick subscription", idle_for)
                await self._restart_ticks()

    async def _restart_ticks(self):
        if self._tick_task is not None:
            self._tick_task.cancel()
            await asyncio.gather(self._tick_task, return_exceptions=True)
        if self._needs_auth:
            if not await self.broker.authorize():
                self.notify("❌ Re-authorization failed")
                return
            self._needs_auth = False
        self.window.clear()
        self._last_activity = asyncio.get_running_loop().time()
        self._tick_task = asyncio.create_task(self._tick_pump())
