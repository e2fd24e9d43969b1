import asyncio
import dataclasses
import pytest
from helpers import FakeBroker, rising
from src.bot import TickTradingBot
from src.constants import ContractStatus, Signal
from src.core.events import ContractUpdate
from src.trading.journal import TradeJournal


def run(bot, timeout=5.0):
    asyncio.run(asyncio.wait_for(bot.start(), timeout))


def test_one_signal_one_order_then_settle(cfg):
    broker = FakeBroker(history=rising(50), ticks=[105.0, 105.1],
                        auto_settle=ContractStatus.WON)
    journal = TradeJournal(":memory:")
    bot = TickTradingBot(cfg, broker, journal=journal, notify=lambda text: None)
    bot.on_settlement = lambda record: bot.request_stop("settled")

    run(bot)

    assert len(broker.orders) == 1
    order = broker.orders[0]
    assert order.direction == Signal.CALL
    assert order.stake == 10.0
    assert order.duration_ticks == cfg.ticks_count
    assert journal.total_trades() == 1
    assert bot.perf.total == 1
    assert bot.sizer.get_current_balance() == pytest.approx(100.0 + 10.0 * 0.88)

    assert not bot.running
    assert bot.reconciler.is_idle
    assert not bot.reconciler.watchdog_armed
    assert len(bot.window) == 0
    events = [e for (e,) in journal.conn.execute("SELECT event FROM sessions ORDER BY rowid")]
    assert events == ["start", "stop"]
    journal.close()


def test_target_profit_stops_the_session(cfg):
    broker = FakeBroker(history=rising(50), ticks=[105.0, 105.1, 105.2],
                        auto_settle=ContractStatus.WON)
    bot = TickTradingBot(dataclasses.replace(cfg, target_profit=5.0), broker,
                         notify=lambda text: None)
    reached = []
    bot.on_target_reached = lambda profit, balance: reached.append(profit)

    run(bot)

    assert len(broker.orders) == 1
    assert reached == [pytest.approx(8.8)]
    assert not bot.running


def test_flat_market_never_trades(cfg):
    broker = FakeBroker(history=[100.0] * 50, ticks=[100.0] * 5)
    bot = TickTradingBot(cfg, broker, notify=lambda text: None)
    seen = []

    def on_signal(result):
        seen.append(result)
        if len(seen) == 5:
            bot.request_stop("seen enough")

    bot.on_signal = on_signal
    run(bot)

    assert broker.orders == []
    assert all(r.signal == Signal.HOLD for r in seen)


def test_stake_below_minimum_stops_without_trading(cfg):
    low = dataclasses.replace(cfg, initial_stake=0.2, min_stake=0.1)
    broker = FakeBroker(history=rising(50), ticks=[105.0])
    notes = []
    bot = TickTradingBot(low, broker, notify=notes.append)

    run(bot)

    assert broker.orders == []
    assert not bot.running
    assert any("CRITICAL" in n for n in notes)


def test_tick_count_nudges_a_poll(cfg):
    short = dataclasses.replace(cfg, ticks_count=2)
    broker = FakeBroker(
        history=rising(50), ticks=[105.0, 105.1, 105.2, 105.3],
        poll_answers=[ContractUpdate("c1", ContractStatus.WON, profit=8.8, stake=10.0)],
    )
    bot = TickTradingBot(short, broker, notify=lambda text: None)
    settled = []

    def on_settlement(record):
        settled.append(record)
        bot.request_stop("settled")

    bot.on_settlement = on_settlement
    run(bot)

    assert broker.polls == ["c1"]
    assert len(broker.orders) == 1
    assert settled[0].profit == pytest.approx(8.8)


def test_failed_authorization_does_not_start(cfg):
    broker = FakeBroker(history=rising(50), ticks=[105.0], auth_ok=False)
    notes = []
    bot = TickTradingBot(cfg, broker, notify=notes.append)

    run(bot)

    assert broker.authorize_calls == 1
    assert broker.orders == []
    assert not bot.running
    assert notes


def test_stalled_stream_is_resubscribed(cfg):
    stally = dataclasses.replace(cfg, stall_check_interval=0.02, stall_timeout=0.01)
    broker = FakeBroker(history=rising(50))
    bot = TickTradingBot(stally, broker, notify=lambda text: None)
    window_sizes = []
    broker.on_subscribe = lambda: window_sizes.append(len(bot.window))

    async def scenario():
        task = asyncio.create_task(bot.start())
        for _ in range(300):
            await asyncio.sleep(0.01)
            if broker.subscribe_calls >= 3:
                break
        bot.request_stop("enough")
        await asyncio.wait_for(task, 5)

    asyncio.run(scenario())

    assert broker.subscribe_calls >= 3
    # every resubscription starts from an empty window
    assert window_sizes and all(size == 0 for size in window_sizes)
    assert broker.authorize_calls == 1


def test_lost_authorization_on_stream_reauthorizes(cfg):
    from src.errors import AuthRequired

    stally = dataclasses.replace(cfg, stall_check_interval=0.02, stall_timeout=0.01)
    broker = FakeBroker(history=rising(50))
    broker.stream_errors = [AuthRequired("session expired")]
    bot = TickTradingBot(stally, broker, notify=lambda text: None)

    async def scenario():
        task = asyncio.create_task(bot.start())
        for _ in range(300):
            await asyncio.sleep(0.01)
            if broker.subscribe_calls >= 2:
                break
        needs_auth = bot._needs_auth
        bot.request_stop("enough")
        await asyncio.wait_for(task, 5)
        return needs_auth

    needs_auth = asyncio.run(scenario())

    assert broker.subscribe_calls >= 2
    assert broker.authorize_calls == 2
    assert not needs_auth


def test_journal_figures_reach_start_and_stop(cfg, caplog):
    import logging

    caplog.set_level(logging.INFO)
    broker = FakeBroker(history=rising(50), ticks=[105.0], auto_settle=ContractStatus.WON)
    journal = TradeJournal(":memory:")
    notes = []
    bot = TickTradingBot(cfg, broker, journal=journal, notify=notes.append)
    bot.on_settlement = lambda record: bot.request_stop("settled")

    run(bot)

    assert "0 trades on record" in caplog.text
    assert any("session P&L $+8.80" in n for n in notes)
    journal.close()
