from abc import ABC, abstractmethod
from typing import AsyncIterator, Union
from src.core.events import ContractUpdate, HistoryEvent, TickEvent
from src.trading.trade import OrderRequest

TickStreamItem = Union[HistoryEvent, TickEvent]


class Broker(ABC):
    """
    What the engine needs from a broker connection.

    Implementations translate their library's failures into
    `src.errors.BrokerError` / `src.errors.AuthRequired`.
    """

    @abstractmethod
    async def authorize(self) -> bool:
        """(Re)authorize the session. Returns False instead of raising."""

    @abstractmethod
    def subscribe_ticks(self, symbol: str) -> AsyncIterator[TickStreamItem]:
        """One HistoryEvent, then a TickEvent per price update."""

    @abstractmethod
    async def place_order(self, order: OrderRequest) -> str:
        """Buy a contract and return its id. Raises BrokerError."""

    @abstractmethod
    async def poll_contract(self, contract_id: str) -> ContractUpdate:
        """Current status of a contract. Raises AuthRequired or BrokerError."""

    async def contract_updates(self) -> AsyncIterator[ContractUpdate]:
        """Unsolicited settlement pushes. Brokers without pushes yield nothing."""
        return
        yield  # pragma: no cover

    def discard(self, contract_id: str):
        """Forget per-contract bookkeeping for a contract the engine stopped tracking."""

    async def close(self):
        pass
