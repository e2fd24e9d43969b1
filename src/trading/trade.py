from dataclasses import dataclass, field
import time
from src.constants import Signal

@dataclass(frozen=True)
class OrderRequest:
    symbol: str
    direction: Signal                      # CALL or PUT
    stake: float
    duration_ticks: int
    duration_seconds: int

@dataclass
class PendingContract:
    contract_id: str
    stake: float
    placed_at: float = field(default_factory=time.time)
    ticks_seen: int = 0                    # ticks received while waiting
    nudged: bool = False                   # tick-count poll already requested

@dataclass(frozen=True)
class TradeRecord:
    is_win: bool
    stake: float
    profit: float                          # negative on a loss
    balance_after: float
    timestamp: float
    contract_id: str = ""
