from dataclasses import dataclass, field
from src.constants import ContractStatus

@dataclass(frozen=True)
class HistoryEvent:
    prices: tuple = field(default_factory=tuple)

@dataclass(frozen=True)
class TickEvent:
    price: float

@dataclass(frozen=True)
class ContractUpdate:
    """Settlement push or poll answer for one contract."""
    contract_id: str
    status: ContractStatus
    profit: float = 0.0
    stake: float = 0.0

@dataclass(frozen=True)
class WatchdogExpired:
    contract_id: str

@dataclass(frozen=True)
class PollRequested:
    contract_id: str

@dataclass(frozen=True)
class StopRequested:
    reason: str = ""
