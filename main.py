import asyncio
import logging
import os
import sys
from src.bot import TickTradingBot
from src.broker.pocketoption import PocketOptionBroker
from src.config import BotConfig
from src.trading.journal import TradeJournal
from src.utils.logger import log

def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")

def main():
    log.setLevel(getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO))

    # --- Load config from env or defaults ---
    cfg = BotConfig(
        ssid=os.environ.get("TB_SSID", ""),
        asset=os.environ.get("TB_ASSET", "EURUSD_otc"),
        window_size=int(os.environ.get("TB_WINDOW", "50")),
        strategy=os.environ.get("TB_STRATEGY", "momentum_persistent"),
        min_confidence=float(os.environ.get("TB_MIN_CONF", "0.0")),
        use_filters=_env_bool("TB_USE_FILTERS", False),
        ticks_count=int(os.environ.get("TB_TICKS", "10")),
        contract_seconds=int(os.environ.get("TB_CONTRACT_SECONDS", "2")),
        watchdog_factor=float(os.environ.get("TB_WATCHDOG_FACTOR", "3.0")),
        stake_policy=os.environ.get("TB_STAKE_POLICY", "fixed"),
        initial_stake=float(os.environ.get("TB_INITIAL_STAKE", "0.35")),
        max_stake=float(os.environ.get("TB_MAX_STAKE", "100.0")),
        profit_percent=float(os.environ.get("TB_PROFIT_PERCENT", "88")),
        soros_level=int(os.environ.get("TB_SOROS_LEVEL", "20")),
        wins_before_martingale=int(os.environ.get("TB_WINS_BEFORE_MARTINGALE", "0")),
        initial_balance=float(os.environ.get("TB_INITIAL_BALANCE", "100.0")),
        target_profit=float(os.environ.get("TB_TARGET_PROFIT", "2.0")),
        target_stop_loss=float(os.environ.get("TB_TARGET_STOP_LOSS", "2.0")),
        db_path=os.environ.get("TB_DB", "trade_journal.db"),
    )

    if not cfg.ssid:
        print("=" * 60)
        print("  ERROR: No SSID provided!")
        print()
        print("  Set your PocketOption session ID:")
        print("    export TB_SSID='your-session-id-here'  # Linux/Mac")
        print("    set TB_SSID=your-session-id-here       # Windows")
        print("=" * 60)
        sys.exit(1)

    try:
        broker = PocketOptionBroker(cfg.ssid, history_size=cfg.window_size,
                                    history_period=cfg.history_period)
        bot = TickTradingBot(cfg, broker, journal=TradeJournal(cfg.db_path))
    except ValueError as e:
        print(f"Invalid configuration: {e}")
        sys.exit(1)

    async def run():
        try:
            await bot.start()
        finally:
            await broker.close()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        print("\nCTRL+C detected, bot stopped.")
    finally:
        bot.journal.close()

if __name__ == "__main__":
    main()
