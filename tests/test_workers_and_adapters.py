"""
Periodic loops, supervisor wiring, the price oracle client and event sinks.
"""

import asyncio
import json
import logging

import httpx
import pytest

from adapters.external.market_data.price_oracle_http_client import PriceOracleHttpClient
from adapters.external.notify.event_log_subscriber import EventLogSubscriber
from adapters.external.notify.telegram_notifier import MAX_LEN, TelegramNotifier, format_event
from core.services.event_bus import EventBus, Initialized, RecordingSubscriber, TradingPaused
from workers.autopilot_supervisor import AutoPilotSupervisor
from workers.periodic_task import PeriodicTask


# ---------- periodic task ----------

def test_run_once_logs_and_swallows_errors(caplog):
    calls = []

    async def boom():
        calls.append(1)
        raise RuntimeError("tick failed")

    task = PeriodicTask("boom", boom, interval_sec=60)

    async def scenario():
        with caplog.at_level(logging.ERROR):
            await task.run_once()
            await task.run_once()

    asyncio.run(scenario())
    assert calls == [1, 1]
    assert task.ticks == 2
    assert "boom tick error: tick failed" in caplog.text


def test_start_and_stop_loop():
    ticks = []

    async def tick():
        ticks.append(1)

    async def scenario():
        task = PeriodicTask("fast", tick, interval_sec=0.01, run_immediately=True)
        task.start()
        task.start()  # no second loop
        await asyncio.sleep(0.05)
        assert task.running
        await task.stop()
        assert not task.running
        return task

    task = asyncio.run(scenario())
    assert task.ticks >= 1
    assert len(ticks) == task.ticks


# ---------- event bus ----------

def test_failing_handler_does_not_break_publish():
    bus = EventBus()
    recorder = RecordingSubscriber()

    async def broken(event):
        raise RuntimeError("sink down")

    bus.subscribe(broken)
    bus.subscribe(recorder, Initialized)

    asyncio.run(bus.publish(Initialized(strategy_count=3)))
    asyncio.run(bus.publish(TradingPaused(pilot_id="p", current_value=1.0)))
    assert [e.name for e in recorder.events] == ["initialized"]

    bus.unsubscribe(recorder, Initialized)
    asyncio.run(bus.publish(Initialized(strategy_count=3)))
    assert len(recorder.events) == 1


# ---------- supervisor ----------

def test_supervisor_memory_backend_wires_engine_and_loops():
    async def scenario():
        supervisor = AutoPilotSupervisor(backend="memory")
        engine = await supervisor.start(start_loops=False)
        pilot = await engine.create_pilot("u", 1000)
        for task in supervisor.tasks:
            await task.run_once()
        names = [t.name for t in supervisor.tasks]
        running = [t.running for t in supervisor.tasks]
        await supervisor.stop()
        return engine, pilot, names, running

    engine, pilot, names, running = asyncio.run(scenario())
    assert names == ["trading-cycle", "learning-loop", "social-proof", "auto-skim"]
    assert running == [False, False, False, False]
    assert engine.get_global_stats().total_pilots == 1
    assert engine.get_social_proof(pilot.id) is not None


# ---------- price oracle client ----------

def _oracle(handler):
    return PriceOracleHttpClient("http://quotes.local/", transport=httpx.MockTransport(handler))


def test_price_oracle_parses_quote():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json={"symbol": "ETH", "name": "Ethereum", "price": "2250.5"})

    quote = asyncio.run(_oracle(handler).quote_for_asset_class("crypto"))
    assert seen == ["http://quotes.local/api/quotes/crypto"]
    assert quote.symbol == "ETH"
    assert quote.price == 2250.5


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(503, text="unavailable"),
        httpx.Response(200, json={"name": "no symbol"}),
        httpx.Response(200, text="not json"),
    ],
)
def test_price_oracle_is_best_effort(response):
    assert asyncio.run(_oracle(lambda request: response).quote_for_asset_class("stocks")) is None


def test_price_oracle_transport_error_returns_none():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    assert asyncio.run(_oracle(handler).quote_for_asset_class("forex")) is None


def test_price_oracle_without_base_url():
    assert asyncio.run(PriceOracleHttpClient("").quote_for_asset_class("stocks")) is None


def test_trading_skips_candidates_without_quotes(make_engine):
    oracle = _oracle(lambda request: httpx.Response(500))

    async def scenario():
        engine = make_engine(price_oracle=oracle)
        pilot = await engine.create_pilot("u", 1000)
        await engine.run_trading_cycle()
        return await engine.get_pilot_trades(pilot.id), await engine.get_pilot(pilot.id)

    trades, pilot = asyncio.run(scenario())
    assert trades == []
    assert pilot.skipped_signals > 0


# ---------- event sinks ----------

def test_format_event_for_trades_and_silence_for_others(make_engine, single_strategy_catalog, recorder):
    async def scenario():
        engine = make_engine(catalog=single_strategy_catalog)
        await engine.create_pilot("u", 1000, {"risk_dna": "aggressive"})
        await engine.run_trading_cycle()

    asyncio.run(scenario())
    executed = recorder.named("trade_executed")[0]
    text = format_event(executed)
    assert text.startswith(f"[{executed.pilot_id}] ")
    assert "conf 62%" in text
    assert format_event(Initialized(strategy_count=1)) is None


def test_telegram_notifier_posts_and_truncates():
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"ok": True})

    async def scenario():
        notifier = TelegramNotifier("token", 42, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        await notifier(TradingPaused(pilot_id="pilot_a", current_value=12.5))
        await notifier(Initialized(strategy_count=1))
        await notifier.send_message("x" * (MAX_LEN + 100))
        await notifier.aclose()

    asyncio.run(scenario())
    assert len(bodies) == 2
    assert bodies[0] == {"chat_id": 42, "text": "[pilot_a] trading paused at $12.50"}
    assert len(bodies[1]["text"]) < MAX_LEN
    assert bodies[1]["text"].endswith("[... truncated ...]")


def test_telegram_error_is_logged_not_raised(caplog):
    async def scenario():
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(400, json={"ok": False})))
        notifier = TelegramNotifier("token", "chat", client=client)
        with caplog.at_level(logging.ERROR):
            await notifier.send_message("hello")
        await notifier.aclose()

    asyncio.run(scenario())
    assert "Telegram error 400" in caplog.text


def test_event_log_subscriber(caplog):
    sink = EventLogSubscriber()
    with caplog.at_level(logging.DEBUG, logger="autopilot.events"):
        asyncio.run(sink(TradingPaused(pilot_id="p1", current_value=3.0)))
        asyncio.run(sink(Initialized(strategy_count=2)))
    assert "trading_paused: [p1] trading paused at $3.00" in caplog.text
    assert "initialized: {'strategy_count': 2}" in caplog.text
