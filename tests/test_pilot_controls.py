"""
Tests for the exit ramp, pause/resume, watch mode and withdrawals.
"""

import asyncio
from datetime import timedelta

import pytest

from core.common.errors import InsufficientFundsError, InvalidPilotStateError, PilotNotFoundError

from conftest import T0


def run(coro):
    return asyncio.run(coro)


def test_gradual_exit_ramp_sets_exiting_and_target(make_engine, recorder):
    async def scenario():
        engine = make_engine()
        pilot = await engine.create_pilot("u", 1000)
        ramp = await engine.initiate_exit_ramp(pilot.id, "gradual_1week")
        return ramp, await engine.get_pilot(pilot.id), await engine.get_exit_ramp(pilot.id)

    ramp, pilot, stored = run(scenario())
    assert pilot.status == "exiting"
    assert pilot.autopilot_enabled is False
    assert ramp.target_exit_date == T0 + timedelta(days=7)
    assert ramp.estimated_completion == ramp.target_exit_date
    assert ramp.tax_optimized is True
    assert ramp.estimated_tax_savings == pytest.approx(20.0)
    assert ramp.projected_final_value == pytest.approx(995.0)
    assert ramp.status == "Exit ramp initiated. Strategy: gradual_1week"
    assert stored is not None and stored.exit_strategy == "gradual_1week"
    assert len(recorder.named("exit_ramp_initiated")) == 1


def test_immediate_exit_is_not_tax_optimized(make_engine):
    async def scenario():
        engine = make_engine()
        pilot = await engine.create_pilot("u", 1000)
        return await engine.initiate_exit_ramp(pilot.id, "immediate")

    ramp = run(scenario())
    assert ramp.target_exit_date == T0
    assert ramp.tax_optimized is False
    assert ramp.estimated_tax_savings == 0


def test_exit_ramp_counts_open_positions(make_engine):
    async def scenario():
        engine = make_engine(initial_allocation_n=3)
        pilot = await engine.create_pilot("u", 10000)
        trades = await engine.get_pilot_trades(pilot.id)
        return trades, await engine.initiate_exit_ramp(pilot.id, "optimal")

    trades, ramp = run(scenario())
    held = {t.asset for t in trades if t.side == "buy"} - {t.asset for t in trades if t.side == "sell"}
    assert ramp.positions_remaining >= len(held)
    assert ramp.target_exit_date == T0 + timedelta(days=14)


def test_exit_ramp_twice_is_rejected(make_engine):
    async def scenario():
        engine = make_engine()
        pilot = await engine.create_pilot("u", 1000)
        await engine.initiate_exit_ramp(pilot.id, "gradual_1month")
        await engine.initiate_exit_ramp(pilot.id, "immediate")

    with pytest.raises(InvalidPilotStateError):
        run(scenario())


def test_exit_ramp_unknown_pilot_and_strategy(make_engine):
    engine = make_engine()
    with pytest.raises(PilotNotFoundError):
        run(engine.initiate_exit_ramp("pilot_missing", "immediate"))
    with pytest.raises(ValueError):
        run(engine.initiate_exit_ramp("pilot_missing", "whenever"))


def test_exiting_pilot_is_never_traded_or_resumed(make_engine):
    async def scenario():
        engine = make_engine()
        pilot = await engine.create_pilot("u", 1000)
        await engine.initiate_exit_ramp(pilot.id, "gradual_1week")
        await engine.run_trading_cycle()
        trades = await engine.get_pilot_trades(pilot.id)
        with pytest.raises(InvalidPilotStateError):
            await engine.resume_trading(pilot.id)
        return trades, await engine.get_pilot(pilot.id)

    trades, pilot = run(scenario())
    assert trades == []
    assert pilot.status == "exiting"


def test_pause_then_resume(make_engine, recorder):
    async def scenario():
        engine = make_engine()
        pilot = await engine.create_pilot("u", 1000)
        paused = await engine.pause_trading(pilot.id)
        resumed = await engine.resume_trading(pilot.id)
        return paused, resumed

    paused, resumed = run(scenario())
    assert paused.status == "paused" and paused.autopilot_enabled is False
    assert paused.pause_count == 1
    assert resumed.status == "active" and resumed.autopilot_enabled is True
    assert [e.name for e in recorder.events][-2:] == ["trading_paused", "trading_resumed"]


def test_watch_mode_toggle(make_engine, recorder):
    async def scenario():
        engine = make_engine()
        pilot = await engine.create_pilot("u", 1000)
        on = await engine.enable_watch_mode(pilot.id)
        enabled = (await engine.get_watch_stream(pilot.id)).enabled
        off = await engine.disable_watch_mode(pilot.id)
        missing = await engine.enable_watch_mode("pilot_missing")
        return on, enabled, off, missing, (await engine.get_watch_stream(pilot.id)).enabled

    on, enabled, off, missing, final = run(scenario())
    assert on is True and enabled is True
    assert off is True and final is False
    assert missing is False
    assert len(recorder.named("watch_mode_enabled")) == 1


def test_withdraw_all_closes_pilot(make_engine, recorder):
    async def scenario():
        engine = make_engine()
        pilot = await engine.create_pilot("u", 1000)
        result = await engine.withdraw_all(pilot.id)
        with pytest.raises(InvalidPilotStateError):
            await engine.withdraw_all(pilot.id)
        return engine, result, await engine.get_pilot(pilot.id)

    engine, result, pilot = run(scenario())
    assert result.success is True
    assert result.amount_withdrawn == 1000
    assert result.fees == pytest.approx(3.0)
    assert result.net_amount == pytest.approx(997.0)
    assert result.message == "Withdrawal complete! $997.00 is on its way to your account."
    assert pilot.status == "closed"
    assert pilot.current_value == 0
    assert pilot.autopilot_enabled is False
    assert engine.get_global_stats().total_capital == 0
    assert len(recorder.named("withdrawal_complete")) == 1


def test_withdraw_all_from_exiting_pilot(make_engine):
    async def scenario():
        engine = make_engine()
        pilot = await engine.create_pilot("u", 1000)
        await engine.initiate_exit_ramp(pilot.id, "gradual_1week")
        await engine.withdraw_all(pilot.id)
        return await engine.get_pilot(pilot.id)

    assert run(scenario()).status == "closed"


def test_panic_withdrawal_is_counted_when_under_water(make_engine):
    async def scenario():
        engine = make_engine()
        pilot = await engine.create_pilot("u", 1000)
        stored = await engine._pilot_repo.get_by_id(pilot.id)
        stored.current_value = 900
        stored.recompute_returns()
        await engine._pilot_repo.save(stored)
        await engine.withdraw_partial(pilot.id, 100)
        return await engine.get_pilot(pilot.id)

    pilot = run(scenario())
    assert pilot.panic_withdrawals == 1
    assert pilot.current_value == 800
    # return percentage survives the withdrawal
    assert pilot.total_return_percent == pytest.approx(-10.0)


def test_partial_withdrawal(make_engine, recorder):
    async def scenario():
        engine = make_engine()
        pilot = await engine.create_pilot("u", 1000)
        result = await engine.withdraw_partial(pilot.id, 200)
        return result, await engine.get_pilot(pilot.id)

    result, pilot = run(scenario())
    assert result.net_amount == pytest.approx(199.4)
    assert result.positions_closed == 0
    assert result.message == "Partial withdrawal complete! $199.40 is on its way. Remaining: $800.00"
    assert pilot.current_value == 800
    assert pilot.status == "active"
    assert pilot.total_return == pytest.approx(0.0)
    assert pilot.panic_withdrawals == 0
    assert len(recorder.named("partial_withdrawal")) == 1


def test_partial_withdrawal_rejections(make_engine):
    async def scenario():
        engine = make_engine()
        pilot = await engine.create_pilot("u", 1000)
        with pytest.raises(InsufficientFundsError) as exc:
            await engine.withdraw_partial(pilot.id, 1000.01)
        with pytest.raises(ValueError):
            await engine.withdraw_partial(pilot.id, 0)
        await engine.initiate_exit_ramp(pilot.id, "immediate")
        with pytest.raises(InvalidPilotStateError):
            await engine.withdraw_partial(pilot.id, 10)
        return exc.value, await engine.get_pilot(pilot.id)

    err, pilot = run(scenario())
    assert str(err) == "Insufficient funds. Available: $1000.00"
    assert pilot.current_value == 1000


def test_available_balance(make_engine):
    async def scenario():
        engine = make_engine()
        pilot = await engine.create_pilot("u", 1000)
        before = await engine.get_available_balance(pilot.id)
        await engine.initiate_exit_ramp(pilot.id, "immediate")
        after = await engine.get_available_balance(pilot.id)
        return before, after

    before, after = run(scenario())
    assert before.available == pytest.approx(100.0)
    assert before.invested == pytest.approx(900.0)
    assert before.total == 1000
    assert before.can_withdraw is True
    assert after.can_withdraw is False


def test_controls_on_unknown_pilot(make_engine):
    engine = make_engine()
    for call in (engine.pause_trading, engine.resume_trading, engine.withdraw_all, engine.get_available_balance):
        with pytest.raises(PilotNotFoundError):
            run(call("pilot_missing"))
