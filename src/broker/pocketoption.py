import asyncio
from typing import AsyncIterator, Optional
from src.broker.base import Broker, TickStreamItem
from src.constants import ContractStatus, Signal
from src.core.events import ContractUpdate, HistoryEvent, TickEvent
from src.errors import AuthRequired, BrokerError
from src.trading.trade import OrderRequest
from src.utils.logger import log
from src.utils.quotes import parse_price

AUTH_MARKERS = ("auth", "ssid", "unauthor", "not logged")


def _translate(exc: Exception) -> BrokerError:
    text = str(exc).lower()
    if any(m in text for m in AUTH_MARKERS):
        return AuthRequired(str(exc))
    return BrokerError(str(exc))


def parse_result(raw) -> tuple[ContractStatus, Optional[float]]:
    """Map a `check_win` answer (dict or string) onto a contract status and profit."""
    profit = None
    if isinstance(raw, dict):
        text = str(raw.get("result", raw.get("status", ""))).lower().strip()
        if raw.get("profit") is not None:
            try:
                profit = float(raw["profit"])
            except (TypeError, ValueError):
                profit = None
    else:
        text = str(raw).lower().strip()

    if text in ("win", "won"):
        return ContractStatus.WON, profit
    if text in ("loss", "lost", "lose", "draw"):
        return ContractStatus.LOST, profit
    # result buried in a larger payload
    raw_str = str(raw).lower()
    if "win" in raw_str:
        return ContractStatus.WON, profit
    if "loss" in raw_str or "lose" in raw_str or "draw" in raw_str:
        return ContractStatus.LOST, profit
    return ContractStatus.OPEN, profit


class PocketOptionBroker(Broker):
    """Broker adapter over BinaryOptionsToolsV2's async PocketOption client."""

    def __init__(self, ssid: str, history_size: int = 50, history_period: int = 1,
                 handshake_delay: float = 3.0):
        self.ssid = ssid
        self.history_size = history_size
        self.history_period = history_period
        self.handshake_delay = handshake_delay
        self.client = None
        self._stakes: dict[str, float] = {}

    async def authorize(self) -> bool:
        from BinaryOptionsToolsV2.pocketoption import PocketOptionAsync

        await self._release_client()
        try:
            self.client = PocketOptionAsync(ssid=self.ssid)
            await asyncio.sleep(self.handshake_delay)  # allow websocket handshake
            balance = await self.client.balance()
            log.info("Connected to PocketOption. Balance: $%.2f", balance)
            return True
        except Exception as e:
            log.error("PocketOption authorization failed: %s", e)
            await self._release_client()
            return False

    async def _release_client(self):
        """Shut the current websocket client down so a replacement never runs beside it."""
        client, self.client = self.client, None
        if client is None:
            return
        for name in ("disconnect", "close", "shutdown"):
            method = getattr(client, name, None)
            if not callable(method):
                continue
            try:
                result = method()
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                log.warning("Error while disconnecting PocketOption client: %s", e)
            return

    async def close(self):
        await self._release_client()
        self._stakes.clear()

    def discard(self, contract_id: str):
        self._stakes.pop(str(contract_id), None)

    def _require_client(self):
        if self.client is None:
            raise AuthRequired("PocketOption client is not authorized")
        return self.client

    async def subscribe_ticks(self, symbol: str) -> AsyncIterator[TickStreamItem]:
        client = self._require_client()
        try:
            raw_history = await client.get_candles(symbol, self.history_period, self.history_size)
            prices = tuple(p for p in (parse_price(c) for c in raw_history) if p is not None)
            yield HistoryEvent(prices=prices)

            stream = await client.subscribe_symbol(symbol)
            async for raw in stream:
                price = parse_price(raw)
                if price is not None:
                    yield TickEvent(price=price)
        except (BrokerError, asyncio.CancelledError):
            raise
        except Exception as e:
            raise _translate(e) from e

    async def place_order(self, order: OrderRequest) -> str:
        client = self._require_client()
        try:
            if order.direction == Signal.CALL:
                trade_id, _ = await client.buy(order.symbol, order.stake, order.duration_seconds)
            elif order.direction == Signal.PUT:
                trade_id, _ = await client.sell(order.symbol, order.stake, order.duration_seconds)
            else:
                raise BrokerError(f"Cannot place an order for {order.direction.value}")
        except BrokerError:
            raise
        except Exception as e:
            raise _translate(e) from e
        contract_id = str(trade_id)
        self._stakes[contract_id] = order.stake
        return contract_id

    async def poll_contract(self, contract_id: str) -> ContractUpdate:
        client = self._require_client()
        try:
            raw = await client.check_win(contract_id)
        except Exception as e:
            raise _translate(e) from e

        log.debug("check_win(%s) raw=%r", contract_id, raw)
        status, profit = parse_result(raw)
        stake = self._stakes.get(contract_id, 0.0)
        if status != ContractStatus.OPEN:
            self._stakes.pop(contract_id, None)
        if profit is None:
            profit = 0.0 if status != ContractStatus.LOST else -stake
        return ContractUpdate(contract_id=contract_id, status=status, profit=profit, stake=stake)
