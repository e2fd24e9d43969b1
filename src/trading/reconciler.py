import asyncio
import time
from typing import Callable, Optional
from src.broker.base import Broker
from src.config import BotConfig
from src.constants import ContractStatus, ReconcilerState, Signal
from src.core.events import ContractUpdate
from src.errors import AuthRequired, BrokerError, InvariantViolation
from src.trading.journal import TradeJournal
from src.trading.stake_sizer import StakeSizer
from src.trading.trade import OrderRequest, PendingContract, TradeRecord
from src.utils.logger import log


class TradeReconciler:
    """
    Tracks the single in-flight contract: IDLE → PLACED → SETTLED → IDLE.

    Settlement comes from a broker push (`handle_update`) or from a poll
    (`poll`) triggered by the watchdog. Whichever lands first wins; later
    updates for the same contract find no matching pending contract and
    are ignored.
    """

    def __init__(
        self,
        cfg: BotConfig,
        broker: Broker,
        sizer: StakeSizer,
        journal: Optional[TradeJournal] = None,
        on_settlement: Optional[Callable[[TradeRecord], None]] = None,
        on_watchdog: Optional[Callable[[str], None]] = None,
        notify: Optional[Callable[[str], None]] = None,
    ):
        self.cfg = cfg
        self.broker = broker
        self.sizer = sizer
        self.journal = journal
        self.on_settlement = on_settlement
        self.on_watchdog = on_watchdog
        self.notify = notify or (lambda text: None)

        self.state = ReconcilerState.IDLE
        self.pending: Optional[PendingContract] = None
        self.auth_retries = 0
        self._watchdog: Optional[asyncio.TimerHandle] = None
        self._placing = False
        self._poll_task: Optional[asyncio.Task] = None
        self._epoch = 0                     # bumped by reset()

    @property
    def is_idle(self) -> bool:
        return self.state == ReconcilerState.IDLE and not self._placing

    # ------------------------------------------------------------------
    async def place(self, symbol: str, direction: Signal, stake: float) -> Optional[PendingContract]:
        """Buy a contract. Returns None when the broker refuses the order."""
        if not self.is_idle:
            raise InvariantViolation(
                f"Cannot place an order while {self.state.value} "
                f"(pending={self.pending.contract_id if self.pending else None})"
            )
        if direction == Signal.HOLD:
            raise InvariantViolation("HOLD is not an order direction")

        order = OrderRequest(
            symbol=symbol,
            direction=direction,
            stake=stake,
            duration_ticks=self.cfg.ticks_count,
            duration_seconds=self.cfg.contract_duration,
        )
        epoch = self._epoch
        self._placing = True
        try:
            contract_id = await self.broker.place_order(order)
        except BrokerError as e:
            log.error("Order placement failed: %s", e)
            self.notify(f"❌ Order failed: {e}")
            return None
        finally:
            self._placing = False

        if epoch != self._epoch:
            log.warning("Contract %s placed during shutdown — not tracking it", contract_id)
            self.broker.discard(str(contract_id))
            return None

        self.pending = PendingContract(contract_id=str(contract_id), stake=stake)
        self.state = ReconcilerState.PLACED
        self.auth_retries = 0
        self._arm_watchdog()
        log.info("▶ PLACED  %s  %s  $%.2f  contract=%s",
                 symbol, direction.value.upper(), stake, contract_id)
        return self.pending

    # ------------------------------------------------------------------
    def handle_update(self, update: ContractUpdate) -> Optional[TradeRecord]:
        """Apply a settlement push or poll answer. Stale or open updates are no-ops."""
        if self.pending is None or str(update.contract_id) != self.pending.contract_id:
            log.debug("Ignoring update for contract %s (pending=%s)",
                      update.contract_id, self.pending.contract_id if self.pending else None)
            return None
        if update.status == ContractStatus.OPEN:
            return None
        return self._settle(update)

    def _settle(self, update: ContractUpdate) -> TradeRecord:
        pending = self.pending
        self.state = ReconcilerState.SETTLED
        self._cancel_watchdog()

        is_win = update.status == ContractStatus.WON
        stake = update.stake or pending.stake
        balance_before = self.sizer.get_current_balance()
        if is_win:
            self.sizer.update_last_trade(True, stake=stake,
                                         profit=update.profit if update.profit > 0 else None)
        else:
            self.sizer.update_last_trade(False, stake=stake,
                                         profit=update.profit if update.profit < 0 else None)
        balance_after = self.sizer.get_current_balance()

        record = TradeRecord(
            is_win=is_win,
            stake=stake,
            profit=round(balance_after - balance_before, 2),
            balance_after=balance_after,
            timestamp=time.time(),
            contract_id=pending.contract_id,
        )

        self.pending = None
        self.auth_retries = 0
        self.state = ReconcilerState.IDLE

        icon = "✅" if is_win else "❌"
        log.info("%s  %s  $%+.2f  balance=$%.2f  contract=%s",
                 icon, "WIN" if is_win else "LOSS", record.profit,
                 balance_after, record.contract_id)

        if self.journal is not None:
            try:
                self.journal.save_trade(record)
            except Exception as e:
                log.error("Failed to save trade %s: %s", record.contract_id, e)
        if self.on_settlement:
            self.on_settlement(record)
        return record

    # ------------------------------------------------------------------
    async def poll(self, contract_id: Optional[str] = None) -> Optional[TradeRecord]:
        """Query the broker for the pending contract, re-authorizing on demand."""
        if self.pending is None:
            return None
        cid = self.pending.contract_id
        if contract_id is not None and str(contract_id) != cid:
            return None

        while True:
            try:
                update = await self.broker.poll_contract(cid)
                break
            except AuthRequired as e:
                if self.auth_retries >= self.cfg.max_auth_retries:
                    log.warning("Giving up on contract %s after %d re-authorizations: %s",
                                cid, self.auth_retries, e)
                    self.notify(f"⚠️ Could not fetch result of contract {cid}: authorization keeps failing")
                    return None
                self.auth_retries += 1
                log.warning("Authorization required polling %s — re-authorizing (%d/%d)",
                            cid, self.auth_retries, self.cfg.max_auth_retries)
                if not await self.broker.authorize():
                    log.error("Re-authorization failed for contract %s", cid)
                    return None
                if self.pending is None or self.pending.contract_id != cid:
                    return None
            except BrokerError as e:
                log.error("Polling contract %s failed: %s", cid, e)
                return None

        # the contract may have settled (or the bot stopped) while we waited
        if self.pending is None or self.pending.contract_id != cid:
            log.debug("Discarding stale poll result for contract %s", cid)
            return None
        return self.handle_update(update)

    # ------------------------------------------------------------------
    def _arm_watchdog(self):
        self._cancel_watchdog()
        loop = asyncio.get_running_loop()
        self._watchdog = loop.call_later(self.cfg.watchdog_seconds, self._on_watchdog_expired)

    def _on_watchdog_expired(self):
        self._watchdog = None
        if self.pending is None:
            return
        cid = self.pending.contract_id
        log.warning("No settlement for contract %s after %.0fs — polling",
                    cid, self.cfg.watchdog_seconds)
        self._arm_watchdog()
        if self.on_watchdog:
            self.on_watchdog(cid)
        elif self._poll_task is None or self._poll_task.done():
            self._poll_task = asyncio.get_running_loop().create_task(self.poll(cid))
            self._poll_task.add_done_callback(self._poll_finished)

    def _poll_finished(self, task: asyncio.Task):
        if task is self._poll_task:
            self._poll_task = None
        if not task.cancelled() and task.exception() is not None:
            log.error("Watchdog poll failed: %s", task.exception())

    def _cancel_watchdog(self):
        if self._watchdog is not None:
            self._watchdog.cancel()
            self._watchdog = None

    @property
    def watchdog_armed(self) -> bool:
        return self._watchdog is not None

    def reset(self):
        """Drop any pending contract and timers (bot stop)."""
        self._cancel_watchdog()
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None
        if self.pending is not None:
            log.info("Dropping pending contract %s on reset", self.pending.contract_id)
            self.broker.discard(self.pending.contract_id)
        self.pending = None
        self.auth_retries = 0
        self.state = ReconcilerState.IDLE
        self._epoch += 1
