import pytest
from src.config import BotConfig


@pytest.fixture
def cfg():
    return BotConfig(
        stake_policy="fixed",
        initial_stake=10.0,
        min_stake=0.35,
        max_stake=100.0,
        profit_percent=90.0,
        initial_balance=100.0,
        target_profit=0.0,
        target_stop_loss=0.0,
        stall_check_interval=3600.0,
    )
