from enum import Enum

class Signal(Enum):
    CALL = "call"
    PUT = "put"
    HOLD = "hold"

class Trend(Enum):
    UP = "up"
    DOWN = "down"
    LATERAL = "lateral"

class Persistence(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

class Behavior(Enum):
    PERSISTENT = "persistent"
    ANTIPERSISTENT = "antipersistent"
    RANDOM = "random"

class StakePolicy(Enum):
    FIXED = "fixed"
    MARTINGALE = "martingale"
    SOROS = "soros"

class ContractStatus(Enum):
    OPEN = "open"
    WON = "won"
    LOST = "lost"

class ReconcilerState(Enum):
    IDLE = "idle"
    PLACED = "placed"
    SETTLED = "settled"
