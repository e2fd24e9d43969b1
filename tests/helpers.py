import asyncio
from src.broker.base import Broker
from src.constants import ContractStatus
from src.core.events import ContractUpdate, HistoryEvent, TickEvent
from src.errors import BrokerError


def rising(n=50, start=100.0, step=0.1):
    return [round(start + step * i, 4) for i in range(n)]


def falling(n=50, start=105.0, step=0.1):
    return [round(start - step * i, 4) for i in range(n)]


class FakeBroker(Broker):
    """In-memory broker: scripted ticks, scripted poll answers, optional auto-settle push."""

    def __init__(self, history=(), ticks=(), poll_answers=(), auto_settle=None,
                 auth_ok=True, fail_orders=False, payout=0.88):
        self.history = tuple(history)
        self.ticks = list(ticks)
        self.poll_answers = list(poll_answers)
        self.auto_settle = auto_settle        # ContractStatus pushed right after each order
        self.auth_ok = auth_ok
        self.fail_orders = fail_orders
        self.payout = payout
        self.orders = []
        self.polls = []
        self.authorize_calls = 0
        self.poll_gate = None                 # asyncio.Event holding poll answers back
        self.order_gate = None                # asyncio.Event holding order placement back
        self.stream_errors = []               # raised by successive subscriptions
        self.on_subscribe = None
        self.subscribe_calls = 0
        self.discarded = []
        self._pushes = None

    def _push_queue(self):
        if self._pushes is None:
            self._pushes = asyncio.Queue()
        return self._pushes

    async def authorize(self):
        self.authorize_calls += 1
        return self.auth_ok

    async def subscribe_ticks(self, symbol):
        self.subscribe_calls += 1
        if self.on_subscribe is not None:
            self.on_subscribe()
        if self.stream_errors:
            raise self.stream_errors.pop(0)
        yield HistoryEvent(prices=self.history)
        for p in self.ticks:
            yield TickEvent(price=p)
        await asyncio.Event().wait()

    async def place_order(self, order):
        if self.order_gate is not None:
            await self.order_gate.wait()
        if self.fail_orders:
            raise BrokerError("market closed")
        self.orders.append(order)
        cid = f"c{len(self.orders)}"
        if self.auto_settle is not None:
            profit = order.stake * self.payout if self.auto_settle == ContractStatus.WON else -order.stake
            self._push_queue().put_nowait(
                ContractUpdate(cid, self.auto_settle, profit=profit, stake=order.stake)
            )
        return cid

    async def poll_contract(self, contract_id):
        self.polls.append(contract_id)
        if self.poll_gate is not None:
            await self.poll_gate.wait()
        answer = self.poll_answers.pop(0) if self.poll_answers else \
            ContractUpdate(contract_id, ContractStatus.OPEN)
        if isinstance(answer, Exception):
            raise answer
        return answer

    def discard(self, contract_id):
        self.discarded.append(contract_id)

    async def contract_updates(self):
        queue = self._push_queue()
        while True:
            yield await queue.get()


