"""
Tests for pilot creation, the trading cycle and trade execution.
"""

import asyncio

import pytest
from pydantic import ValidationError

from core.domain.entities.strategy_entity import StrategyEntity
from core.domain.enums.pilot_enums import TradeSide
from core.services.pilot_locks import PilotLocks
from core.services.price_oracle import AssetQuote, PriceOracle
from core.services.signal_evaluator import SideSelector, StaticSignalEvaluator
from core.services.strategy_catalog import StrategyCatalog
from core.services.trade_factory import position_size


def test_create_pilot_defaults(make_engine):
    async def scenario():
        engine = make_engine()
        return await engine.create_pilot("u", 1000, {})

    pilot = asyncio.run(scenario())
    assert pilot.current_value == 1000
    assert pilot.total_return == 0
    assert pilot.total_return_percent == 0
    assert pilot.status == "active"
    assert pilot.autopilot_enabled is True
    assert pilot.risk_dna == "balanced"
    assert pilot.risk_score == 50
    assert pilot.name == "Pilot #1"


def test_create_pilot_seeds_watch_stream_and_stats(make_engine, recorder):
    async def scenario():
        engine = make_engine()
        pilot = await engine.create_pilot("u", 2500, {"plain_english_level": "expert"})
        await engine.create_pilot("v", 500)
        return engine, pilot, await engine.get_watch_stream(pilot.id)

    engine, pilot, stream = asyncio.run(scenario())
    assert stream.enabled is False
    assert stream.live_commentary[0].message.startswith("Init: $2500 | Risk DNA: balanced")
    stats = engine.get_global_stats()
    assert stats.total_pilots == 2
    assert stats.total_capital == 3000
    assert [e.name for e in recorder.events].count("pilot_created") == 2


def test_one_tick_with_always_accept_executes_one_trade(make_engine, single_strategy_catalog, recorder):
    async def scenario():
        engine = make_engine(catalog=single_strategy_catalog)
        pilot = await engine.create_pilot("u", 1000, {"risk_dna": "aggressive"})
        await engine.run_trading_cycle()
        return engine, pilot, await engine.get_watch_stream(pilot.id)

    engine, pilot, stream = asyncio.run(scenario())
    strategy = single_strategy_catalog.get("ai_momentum")

    assert len(stream.recent_trades) == 1
    trade = stream.recent_trades[0]
    assert trade.status == "executed"
    assert trade.reasoning.confidence == round(strategy.win_rate * 100)
    assert trade.reasoning.bot_source == "Cryptohopper: AI Momentum Hunter"
    assert stream.pending_trades == []
    assert trade.fees == trade.value * 0.001
    assert trade.net_value == trade.value - trade.fees
    assert trade.value == position_size(pilot)
    assert engine.get_global_stats().total_trades == 1
    assert any(m.message.startswith("✅ EXECUTED: ") for m in stream.live_commentary)
    assert any(m.message.startswith("Considering: ") for m in stream.live_commentary)
    assert len(recorder.named("trade_executed")) == 1


def test_never_accept_gate_produces_no_trades(make_engine):
    async def scenario():
        engine = make_engine(signal_evaluator=StaticSignalEvaluator(False))
        pilot = await engine.create_pilot("u", 1000)
        await engine.run_trading_cycle()
        return await engine.get_pilot_trades(pilot.id)

    assert asyncio.run(scenario()) == []


def test_recent_trades_capped_newest_first(make_engine):
    async def scenario():
        engine = make_engine(top_n=10)
        pilot = await engine.create_pilot("u", 100000, {"risk_dna": "growth"})
        for _ in range(5):
            await engine.run_trading_cycle()
        return await engine.get_watch_stream(pilot.id), await engine.get_pilot_trades(pilot.id)

    stream, trades = asyncio.run(scenario())
    assert len(trades) > 20
    assert len(stream.recent_trades) == 20
    # newest first, oldest evicted
    assert [t.id for t in stream.recent_trades] == [t.id for t in reversed(trades)][:20]


def test_trade_ids_are_unique_and_monotonic(make_engine):
    async def scenario():
        engine = make_engine()
        pilot = await engine.create_pilot("u", 50000, {"risk_dna": "growth"})
        await engine.run_trading_cycle()
        await engine.run_trading_cycle()
        return await engine.get_pilot_trades(pilot.id)

    ids = [t.id for t in asyncio.run(scenario())]
    assert len(ids) == len(set(ids))
    assert ids == sorted(ids)
    assert all(i.startswith("trade_") and len(i) == len("trade_") + 12 for i in ids)


def test_tiny_positions_are_skipped_and_counted(make_engine):
    async def scenario():
        engine = make_engine()
        pilot = await engine.create_pilot("u", 5, {"risk_dna": "ultra_safe"})  # 5 * 0.1 * 0.1 = 0.05
        await engine.run_trading_cycle()
        return await engine.get_pilot(pilot.id), await engine.get_pilot_trades(pilot.id)

    pilot, trades = asyncio.run(scenario())
    assert trades == []
    assert pilot.skipped_signals > 0


def test_opening_allocation_uses_top_ranked_strategies(make_engine):
    async def scenario():
        engine = make_engine(initial_allocation_n=5, signal_evaluator=StaticSignalEvaluator(False))
        pilot = await engine.create_pilot("u", 10000)
        ranked = await engine.select_strategies_for_pilot(pilot.id)
        return ranked, await engine.get_pilot_trades(pilot.id)

    ranked, trades = asyncio.run(scenario())
    assert [t.strategy_id for t in trades] == [s.id for s in ranked[:5]]
    assert all(t.status == "executed" for t in trades)


def test_paused_pilots_are_not_traded(make_engine):
    async def scenario():
        engine = make_engine()
        pilot = await engine.create_pilot("u", 1000)
        await engine.pause_trading(pilot.id)
        await engine.run_trading_cycle()
        return await engine.get_pilot_trades(pilot.id)

    assert asyncio.run(scenario()) == []


def test_delayed_execution_completes_after_drain(make_engine, single_strategy_catalog):
    async def scenario():
        engine = make_engine(catalog=single_strategy_catalog, execution_delay_sec=0.01)
        pilot = await engine.create_pilot("u", 1000, {"risk_dna": "aggressive"})
        await engine.run_trading_cycle()
        pending = (await engine.get_watch_stream(pilot.id)).pending_trades
        await engine.drain_pending()
        return pending, await engine.get_watch_stream(pilot.id)

    pending, stream = asyncio.run(scenario())
    assert len(pending) == 1 and pending[0].status == "pending"
    assert stream.pending_trades == []
    assert [t.id for t in stream.recent_trades] == [pending[0].id]


def test_pause_cancels_scheduled_executions(make_engine, single_strategy_catalog):
    async def scenario():
        engine = make_engine(catalog=single_strategy_catalog, execution_delay_sec=0.05)
        pilot = await engine.create_pilot("u", 1000, {"risk_dna": "aggressive"})
        await engine.run_trading_cycle()
        await engine.pause_trading(pilot.id)
        await asyncio.sleep(0.1)
        await engine.drain_pending()
        return await engine.get_watch_stream(pilot.id), await engine.get_pilot_trades(pilot.id)

    stream, trades = asyncio.run(scenario())
    assert trades == []
    assert stream.pending_trades == []
    assert stream.recent_trades == []
    assert stream.live_commentary[-1].type == "alert"


def test_one_failing_pilot_does_not_stop_the_cycle(make_engine):
    class Exploding(StaticSignalEvaluator):
        def should_trade(self, strategy, pilot):
            if pilot.user_id == "bad":
                raise RuntimeError("boom")
            return True

    async def scenario():
        engine = make_engine(signal_evaluator=Exploding(True))
        await engine.create_pilot("bad", 1000)
        good = await engine.create_pilot("good", 1000)
        await engine.run_trading_cycle()
        return await engine.get_pilot_trades(good.id)

    assert asyncio.run(scenario())


def test_catalog_strategies_are_immutable():
    s = StrategyCatalog().all()[0]
    assert isinstance(s, StrategyEntity)
    with pytest.raises(ValidationError):
        s.win_rate = 0.0


class SteppingOracle(PriceOracle):
    """Always Bitcoin, at the next price of a fixed series."""

    def __init__(self, prices):
        self._prices = iter(prices)

    async def quote_for_asset_class(self, asset_class):
        return AssetQuote(symbol="BTC", name="Bitcoin", price=next(self._prices))


class AlternatingSides(SideSelector):
    def __init__(self):
        self._count = 0

    def side_for(self, strategy):
        self._count += 1
        return TradeSide.BUY if self._count % 2 else TradeSide.SELL


def test_restarted_engine_continues_trade_ids(make_engine, memory_repos, single_strategy_catalog):
    async def scenario():
        first = make_engine(repos=memory_repos, catalog=single_strategy_catalog)
        pilot = await first.create_pilot("u", 1000, {"risk_dna": "aggressive"})
        await first.run_trading_cycle()

        second = make_engine(repos=memory_repos, catalog=single_strategy_catalog)
        await second.run_trading_cycle()
        await second.run_trading_cycle()
        return await second.get_pilot_trades(pilot.id), await second.get_watch_stream(pilot.id)

    trades, stream = asyncio.run(scenario())
    assert [t.id for t in trades] == ["trade_000000000001", "trade_000000000002", "trade_000000000003"]
    assert len(stream.recent_trades) == len(trades)


def test_duplicate_trade_id_is_not_executed_twice(make_engine, single_strategy_catalog, recorder):
    async def scenario():
        engine = make_engine(catalog=single_strategy_catalog)
        pilot = await engine.create_pilot("u", 1000, {"risk_dna": "aggressive"})
        await engine.run_trading_cycle()
        trade = (await engine.get_pilot_trades(pilot.id))[0]
        again = await engine._executor.execute(pilot.id, trade.model_copy(update={"status": "pending"}))
        return engine, again, await engine.get_pilot_trades(pilot.id), await engine.get_watch_stream(pilot.id)

    engine, again, trades, stream = asyncio.run(scenario())
    assert again is None
    assert len(trades) == 1
    assert len(stream.recent_trades) == 1
    assert engine.get_global_stats().total_trades == 1
    assert len(recorder.named("trade_executed")) == 1


def test_unknown_pilot_lookups_leave_no_locks(make_engine):
    async def scenario():
        engine = make_engine()
        for i in range(50):
            assert await engine.get_pilot(f"ghost_{i}", record_view=True) is None
            assert await engine.enable_watch_mode(f"ghost_{i}") is False
        return engine

    engine = asyncio.run(scenario())
    assert len(engine._locks) == 0


def test_pilot_locks_are_shared_while_held_and_released_after():
    locks = PilotLocks()

    async def scenario():
        lock = locks.for_pilot("p")
        async with lock:
            assert locks.for_pilot("p") is lock
            assert locks.for_pilot("q") is not lock
            assert len(locks) == 1

    asyncio.run(scenario())
    assert len(locks) == 0


def test_sell_records_realized_profit_against_average_cost(make_engine, single_strategy_catalog):
    async def scenario():
        engine = make_engine(
            catalog=single_strategy_catalog,
            price_oracle=SteppingOracle([100, 110, 120, 130, 140]),
            side_selector=AlternatingSides(),
        )
        pilot = await engine.create_pilot("u", 1000, {"risk_dna": "aggressive"})
        for _ in range(5):
            await engine.run_trading_cycle()
        trades = await engine.get_pilot_trades(pilot.id)
        await engine.run_learning_loop()
        return pilot, trades, await engine.get_pilot(pilot.id)

    pilot, trades, after = asyncio.run(scenario())
    assert [t.side for t in trades] == ["buy", "sell", "buy", "sell", "buy"]
    assert all(t.profit_loss is None for t in trades if t.side == "buy")

    size = position_size(pilot)
    first_sell = trades[1]
    assert first_sell.exit_price == 110
    assert first_sell.profit_loss == pytest.approx(10 * size / 110 - size * 0.001)
    assert first_sell.profit_loss_percent == pytest.approx(10.0)
    assert trades[3].profit_loss > 0
    assert after.win_rate == 1.0


def test_win_rate_is_untouched_without_realized_trades(make_engine, single_strategy_catalog):
    class AlwaysBuy(SideSelector):
        def side_for(self, strategy):
            return TradeSide.BUY

    async def scenario():
        engine = make_engine(catalog=single_strategy_catalog, side_selector=AlwaysBuy())
        pilot = await engine.create_pilot("u", 1000, {"risk_dna": "aggressive"})
        for _ in range(5):
            await engine.run_trading_cycle()
        await engine.run_learning_loop()
        return await engine.get_pilot_trades(pilot.id), await engine.get_pilot(pilot.id)

    trades, pilot = asyncio.run(scenario())
    assert len(trades) == 5
    assert all(t.profit_loss is None for t in trades)
    assert pilot.win_rate == 0.0


def test_snapshot_lists_holdings_from_the_trade_log(make_engine, single_strategy_catalog):
    async def scenario():
        engine = make_engine(
            catalog=single_strategy_catalog,
            price_oracle=SteppingOracle([100, 120]),
            side_selector=AlternatingSides(),
        )
        pilot = await engine.create_pilot("u", 1000, {"risk_dna": "aggressive"})
        await engine.run_trading_cycle()
        return pilot, await engine.get_snapshot(pilot.id)

    pilot, snapshot = asyncio.run(scenario())
    size = position_size(pilot)
    assert len(snapshot.holdings) == 1
    held = snapshot.holdings[0]
    assert held.asset == "BTC"
    assert held.quantity == pytest.approx(size / 100)
    assert held.avg_cost == pytest.approx(100)
    assert held.value == pytest.approx(size)
    assert held.allocation == pytest.approx(size / pilot.current_value * 100)
    assert held.plain_english.startswith("You own ")
