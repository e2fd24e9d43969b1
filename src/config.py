from dataclasses import dataclass

@dataclass
class BotConfig:
    """All tuneable knobs in one place."""

    # --- connection ---
    ssid: str = ""                          # PocketOption session ID
    asset: str = "EURUSD_otc"               # instrument to trade
    history_period: int = 1                 # seconds per history sample

    # --- tick window ---
    window_size: int = 50                   # ticks kept per instrument

    # --- signals ---
    strategy: str = "momentum_persistent"   # active detector (see core.signals.DETECTORS)
    min_confidence: float = 0.0             # 0 = trade every non-HOLD signal

    # --- pre-trade filters ---
    use_filters: bool = False
    filter_window: int = 20                 # ticks inspected by the lateral filter
    filter_zone_perc: float = 0.007         # max range/mean for a "super lateral" market
    strong_move_lookback: int = 8
    strong_move_threshold: float = 0.30     # absolute tick-to-tick move that blocks entry

    # --- contract ---
    ticks_count: int = 10                   # contract duration in ticks
    contract_seconds: int = 2               # seconds per tick
    watchdog_factor: float = 3.0            # watchdog = ticks x seconds x factor

    # --- money management ---
    stake_policy: str = "fixed"             # fixed | martingale | soros
    initial_stake: float = 0.35
    min_stake: float = 0.35
    max_stake: float = 100.0
    profit_percent: float = 88.0            # payout on a win, % of stake
    max_martingale_level: int = 20          # losses in a row before the streak is cut
    soros_level: int = 20                   # compounding wins before reset
    wins_before_martingale: int = 0         # base-stake wins required before escalation
    initial_balance: float = 100.0
    target_profit: float = 2.0              # session take-profit ($)
    target_stop_loss: float = 2.0           # session stop-loss ($)
    min_balance: float = 0.35               # stop when stake or balance falls below

    # --- reconciliation ---
    max_auth_retries: int = 2               # re-authorizations per contract

    # --- persistence ---
    db_path: str = "trade_journal.db"

    # --- misc ---
    stall_timeout: float = 120.0            # seconds without events before resubscribing
    stall_check_interval: float = 30.0

    @property
    def watchdog_seconds(self) -> float:
        return self.ticks_count * self.contract_seconds * self.watchdog_factor

    @property
    def contract_duration(self) -> int:
        """Contract expiry in seconds."""
        return self.ticks_count * self.contract_seconds
