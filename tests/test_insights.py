"""
Tests for the learning loop, risk discovery, snapshots, social proof and time travel.
"""

import asyncio
import random
from datetime import datetime, timedelta, timezone

import pytest

from core.common.errors import PilotNotFoundError
from core.domain.entities.pilot_entity import DayReturn
from core.domain.entities.snapshot_entity import SnapshotEntity, SnapshotSummary
from core.domain.entities.trade_entity import TradeEntity, TradeNarrative, TradeReasoning
from core.services.position_book import build_positions, holdings, realized_pnl
from core.services.risk_discovery_service import RiskDiscoveryService
from core.services.snapshot_service import SnapshotService
from core.services.social_proof_service import SocialProofService, percentile, rank_in, summarize

from conftest import T0, FixedReturnSource


def _trade(i, at, **kw):
    data = dict(
        id=f"trade_{i:012d}", pilot_id="pilot_test", strategy_id="grid_bot_classic", timestamp=at,
        asset="BTC", asset_name="Bitcoin", side="buy", quantity=0.01, price=42500, value=425,
        fees=0.425, net_value=424.575,
        plain_english=TradeNarrative(eli5="a", beginner="b", intermediate="c", advanced="d", expert="e"),
        reasoning=TradeReasoning(confidence=73, bot_source="Pionex: Classic Grid Bot", expected_outcome="x"),
        status="executed",
    )
    data.update(kw)
    return TradeEntity(**data)


def _trades(n, step_hours=2):
    return [_trade(i, T0 + timedelta(hours=i * step_hours)) for i in range(n)]


# ---------- learning loop ----------

def test_learning_applies_day_return_to_pilots_with_history(make_engine, recorder):
    async def scenario():
        engine = make_engine(initial_allocation_n=5, return_source=FixedReturnSource(0.01))
        pilot = await engine.create_pilot("u", 10000)
        updated = await engine.run_learning_loop()
        return (
            engine, updated, await engine.get_pilot(pilot.id),
            await engine.get_risk_discovery(pilot.id), await engine.get_snapshot_history(pilot.id),
        )

    engine, updated, pilot, discovery, history = asyncio.run(scenario())
    trades = asyncio.run(engine.get_pilot_trades(pilot.id))
    assert updated == 1
    assert pilot.current_value == pytest.approx(10100.0)
    assert pilot.total_return == pytest.approx(100.0)
    assert pilot.total_return_percent == pytest.approx(1.0)
    assert pilot.best_day.return_ == pytest.approx(0.01)
    assert pilot.worst_day.return_ == 0
    realized = [t for t in trades if t.profit_loss is not None]
    expected = sum(1 for t in realized if t.profit_loss > 0) / len(realized) if realized else 0
    assert pilot.win_rate == pytest.approx(expected)
    assert discovery is not None and discovery.pilot_id == pilot.id
    assert len(history) == 1
    assert history[0].day_return_percent == pytest.approx(1.0)
    stats = engine.get_global_stats()
    assert stats.avg_return == pytest.approx(1.0)
    assert stats.best_pilot.id == pilot.id


def test_learning_skips_performance_for_new_pilots_but_snapshots_them(make_engine):
    async def scenario():
        engine = make_engine(return_source=FixedReturnSource(0.05))
        pilot = await engine.create_pilot("u", 1000)
        updated = await engine.run_learning_loop()
        return (
            updated, await engine.get_pilot(pilot.id),
            await engine.get_risk_discovery(pilot.id), await engine.get_snapshot_history(pilot.id),
        )

    updated, pilot, discovery, history = asyncio.run(scenario())
    assert updated == 0
    assert pilot.current_value == 1000
    assert discovery is None
    assert len(history) == 1


def test_learning_ignores_closed_pilots(make_engine):
    async def scenario():
        engine = make_engine(initial_allocation_n=5, return_source=FixedReturnSource(0.01))
        pilot = await engine.create_pilot("u", 10000)
        await engine.withdraw_all(pilot.id)
        await engine.run_learning_loop()
        return await engine.get_pilot(pilot.id), await engine.get_snapshot_history(pilot.id)

    pilot, history = asyncio.run(scenario())
    assert pilot.current_value == 0
    assert history == []


def test_negative_day_updates_worst_day(make_engine, clock):
    async def scenario():
        engine = make_engine(initial_allocation_n=5, return_source=FixedReturnSource(-0.02))
        pilot = await engine.create_pilot("u", 10000)
        clock.advance(days=1)
        await engine.run_learning_loop()
        return await engine.get_pilot(pilot.id), await engine.get_snapshot(pilot.id)

    pilot, snapshot = asyncio.run(scenario())
    assert pilot.worst_day.return_ == pytest.approx(-0.02)
    assert pilot.worst_day.date == T0 + timedelta(days=1)
    assert snapshot.summary.sentiment == "okay"
    assert snapshot.summary.headline == "Hang in there!"


# ---------- risk discovery ----------

def test_discovery_matches_declared_profile(pilot_factory):
    pilot = pilot_factory(risk_dna="balanced")
    result = RiskDiscoveryService().discover(pilot, _trades(5), T0 + timedelta(days=2))

    assert result.discovered_risk == "balanced"
    assert result.confidence == 50
    assert result.recommendation == "Keep your balanced profile."
    assert result.average_hold_time == pytest.approx(2.0)


def test_discovery_detects_a_more_cautious_investor(pilot_factory):
    pilot = pilot_factory(risk_dna="balanced", pause_count=1, view_count=30)
    result = RiskDiscoveryService().discover(pilot, _trades(20), T0)

    # 50 - 10 (one pause) - 10 (30 views in a day)
    assert result.discovered_risk == "careful"
    assert result.panic_sells == 1
    assert result.check_frequency == 30
    assert result.confidence == 95
    assert result.recommendation == "Consider switching to careful."
    assert result.explanation.startswith("You're more cautious than you think!")


def test_discovery_rewards_calm_through_drawdowns(pilot_factory):
    pilot = pilot_factory(risk_dna="growth", worst_day=DayReturn(date=T0, return_=-0.03), skipped_signals=4)
    result = RiskDiscoveryService().discover(pilot, _trades(6), T0 + timedelta(days=10))

    assert result.drawdown_tolerance == pytest.approx(3.0)
    assert result.missed_opportunities == 4
    assert result.discovered_risk == "aggressive"
    assert result.recommendation == "You could handle aggressive."


# ---------- snapshots ----------

def _snap(at, value):
    return SnapshotEntity(
        pilot_id="pilot_test", timestamp=at, total_value=value, cash_balance=value * 0.1,
        invested_value=value * 0.9, summary=SnapshotSummary(headline="", detail="", sentiment="good"),
    )


@pytest.mark.parametrize(
    "pct,sentiment,action",
    [(12, "great", False), (0, "good", False), (-4.9, "okay", False), (-5, "concerning", True), (-15, "bad", True)],
)
def test_snapshot_sentiment_tiers(pilot_factory, pct, sentiment, action):
    pilot = pilot_factory(current_value=1000 * (1 + pct / 100))
    pilot.recompute_returns()
    snap = SnapshotService().build(pilot, T0)

    assert snap.summary.sentiment == sentiment
    assert snap.summary.action_needed is action
    assert (snap.summary.suggestion is not None) is action


def test_snapshot_week_and_month_returns_from_history(pilot_factory):
    pilot = pilot_factory(current_value=1200)
    pilot.recompute_returns()
    history = [
        _snap(T0 - timedelta(days=40), 900),
        _snap(T0 - timedelta(days=20), 1000),
        _snap(T0 - timedelta(days=3), 1150),
    ]
    snap = SnapshotService().build(pilot, T0, history=history)

    assert snap.week_return == pytest.approx(200)
    assert snap.month_return == pytest.approx(300)
    assert snap.cash_balance == pytest.approx(120)
    assert snap.invested_value == pytest.approx(1080)
    assert snap.summary.headline == "Your money is growing!"
    assert snap.summary.detail == "Current value: $1200.00"


def test_snapshot_without_history_has_flat_periods(pilot_factory):
    snap = SnapshotService().build(pilot_factory(), T0)
    assert snap.week_return == 0
    assert snap.month_return == 0


# ---------- social proof ----------

def test_rank_and_percentile():
    assert percentile(1, 10) == 90
    assert percentile(10, 10) == 0
    assert percentile(1, 0) == 0


@pytest.mark.parametrize(
    "pct,prefix",
    [
        (90, "You're in the top 10%!"),
        (75, "Great job! You're beating 75%"),
        (50, "You're doing better than 50%"),
        (49.9, "Room to grow!"),
    ],
)
def test_summary_tiers(pilot_factory, pct, prefix):
    assert summarize(pilot_factory(total_return_percent=12.0), pct).startswith(prefix)


def test_social_proof_cohorts(pilot_factory):
    a = pilot_factory(id="a", total_return_percent=20.0)
    b = pilot_factory(id="b", total_return_percent=10.0)
    c = pilot_factory(id="c", total_deposited=1400.0, total_return_percent=30.0, risk_dna="yolo")
    d = pilot_factory(id="d", total_deposited=5000.0, total_return_percent=50.0)
    pilots = [a, b, c, d]

    proof = SocialProofService().build(
        a, pilots,
        trades_by_pilot={"a": _trades(2), "b": [_trade(9, T0, strategy_id="dca_smart", asset="ETH")] * 3},
        strategy_names={"dca_smart": "Smart DCA Bot"},
    )

    # deposit cohort: a, b, c (d is far away)
    assert proof.similar_deposit.count == 3
    assert proof.similar_deposit.your_rank == 2
    assert proof.similar_deposit.best_return == 30.0
    assert proof.similar_deposit.avg_return == pytest.approx(20.0)
    # risk cohort: a, b, d (c is yolo)
    assert proof.similar_risk.count == 3
    assert proof.similar_risk.your_rank == rank_in(a, [a, b, d]) == 2
    assert proof.top_strategy == "Smart DCA Bot"
    assert proof.top_asset == "ETH"
    assert proof.summary.startswith("Room to grow!")


def test_engine_social_proof_pass(make_engine, recorder):
    async def scenario():
        engine = make_engine()
        first = await engine.create_pilot("u", 1000)
        await engine.create_pilot("v", 1100)
        results = await engine.run_social_proof()
        return engine, first, results

    engine, first, results = asyncio.run(scenario())
    assert len(results) == 2
    assert engine.get_social_proof(first.id) is not None
    assert engine.get_social_proof("pilot_missing") is None
    assert len(recorder.named("social_proof_updated")) == 2


# ---------- time travel ----------

def test_time_travel_last_month(make_engine):
    async def scenario():
        engine = make_engine()
        pilot = await engine.create_pilot("u", 1000)
        return await engine.time_travel(pilot.id, "last_month")

    result = asyncio.run(scenario())
    days = (T0 - datetime(2024, 2, 15, 12, 0, tzinfo=timezone.utc)).days
    base = 0.15 * (days / 30) / 12
    assert result.start_date == T0 - timedelta(days=days)
    assert result.end_date == T0
    assert base * 0.8 * 100 <= result.hypothetical_return_percent <= base * 1.2 * 100
    assert result.hypothetical_value == pytest.approx(1000 + result.hypothetical_return)
    assert result.summary.startswith("If you had started with $1000 last month, you would have earned $")
    assert result.best_trade is None
    assert result.biggest_miss == "No trades yet to compare against."


def test_time_travel_longer_horizon_earns_more_with_same_seed(make_engine):
    async def percent(scenario_name):
        engine = make_engine(rng=random.Random(11))
        pilot = await engine.create_pilot("u", 1000, {"risk_dna": "growth"})
        return (await engine.time_travel(pilot.id, scenario_name)).hypothetical_return_percent

    month = asyncio.run(percent("last_month"))
    quarter = asyncio.run(percent("last_quarter"))
    year = asyncio.run(percent("last_year"))
    assert month < quarter < year


def test_time_travel_custom_start_and_trades(make_engine):
    async def scenario():
        engine = make_engine(initial_allocation_n=3)
        pilot = await engine.create_pilot("u", 10000)
        start = T0 - timedelta(days=60)
        return await engine.time_travel(pilot.id, "custom", start)

    result = asyncio.run(scenario())
    assert result.scenario == "From 2024-01-15"
    assert result.best_trade is not None and result.worst_trade is not None
    assert result.best_trade.value >= result.worst_trade.value
    assert result.biggest_miss == f"Would have caught the {result.best_trade.asset_name} move earlier."


def test_time_travel_errors(make_engine):
    async def scenario():
        engine = make_engine()
        pilot = await engine.create_pilot("u", 1000)
        with pytest.raises(ValueError):
            await engine.time_travel(pilot.id, "someday")
        with pytest.raises(PilotNotFoundError):
            await engine.time_travel("pilot_missing", "last_month")

    asyncio.run(scenario())


def test_time_travel_naive_custom_start_is_read_as_utc(make_engine):
    async def scenario():
        engine = make_engine()
        pilot = await engine.create_pilot("u", 1000)
        naive = await engine.time_travel(pilot.id, "custom", datetime(2024, 1, 1))
        offset = await engine.time_travel(
            pilot.id, "custom", datetime(2024, 1, 1, 2, 0, tzinfo=timezone(timedelta(hours=2)))
        )
        return naive, offset

    naive, offset = asyncio.run(scenario())
    assert naive.scenario == "From 2024-01-01"
    assert naive.start_date == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert naive.start_date.tzinfo is not None
    assert naive.end_date == T0
    assert offset.start_date == datetime(2024, 1, 1, tzinfo=timezone.utc)


# ---------- position book ----------

def test_realized_pnl_needs_an_open_position():
    sell = _trade(1, T0, side="sell", quantity=0.01, price=50000, fees=0.5)
    assert realized_pnl([], sell) is None
    assert realized_pnl([_trade(0, T0, asset="ETH", asset_name="Ethereum")], sell) is None


def test_realized_pnl_uses_average_cost_and_caps_at_held_quantity():
    buys = [
        _trade(0, T0, quantity=0.01, price=40000),
        _trade(1, T0, quantity=0.01, price=44000),
    ]
    sell = _trade(2, T0, side="sell", quantity=0.05, price=45000, fees=1.0)
    pnl, pct = realized_pnl(buys, sell)
    assert pnl == pytest.approx((45000 - 42000) * 0.02 - 1.0)
    assert pct == pytest.approx((45000 / 42000 - 1) * 100)


def test_holdings_mark_open_positions_at_last_price():
    trades = [
        _trade(0, T0, quantity=0.01, price=40000),
        _trade(1, T0, asset="ETH", asset_name="Ethereum", quantity=1, price=2000),
        _trade(2, T0, side="sell", quantity=0.005, price=44000),
        _trade(3, T0, asset="SOL", asset_name="Solana", quantity=1, price=100),
        _trade(4, T0, asset="SOL", asset_name="Solana", side="sell", quantity=1, price=90),
    ]
    book = build_positions(trades)
    assert book["BTC"].quantity == pytest.approx(0.005)
    assert book["SOL"].quantity == 0

    entries = holdings(trades, portfolio_value=10000)
    assert [h.asset for h in entries] == ["ETH", "BTC"]
    btc = entries[1]
    assert btc.avg_cost == pytest.approx(40000)
    assert btc.value == pytest.approx(220)
    assert btc.profit_loss_percent == pytest.approx(10.0)
    assert btc.allocation == pytest.approx(2.2)
    assert btc.plain_english == "You own 0.0050 Bitcoin worth $220.00 (up 10.0%)"
