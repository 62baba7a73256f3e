"""
HTTP surface tests: the autopilot router over an in-memory engine.
"""

import asyncio

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from adapters.entry.http.autopilot_router import router as autopilot_router


@pytest.fixture
def client(make_engine):
    app = FastAPI()
    app.include_router(autopilot_router)
    app.state.engine = make_engine()
    return TestClient(app)


def _create(client, **body):
    payload = {"user_id": "user_123", "initial_deposit": 1000}
    payload.update(body)
    r = client.post("/autopilot/pilots", json=payload)
    assert r.status_code == 201, r.text
    return r.json()


def test_create_and_fetch_pilot(client):
    pilot = _create(client, preferences={"risk_dna": "growth", "plain_english_level": "eli5"})
    assert pilot["risk_dna"] == "growth"
    assert pilot["risk_score"] == 70
    assert pilot["best_day"]["return"] == 0

    r = client.get(f"/autopilot/pilots/{pilot['id']}")
    assert r.status_code == 200
    assert r.json()["view_count"] == 1


def test_create_pilot_validation(client):
    assert client.post("/autopilot/pilots", json={"user_id": "u", "initial_deposit": 0}).status_code == 422
    assert client.post("/autopilot/pilots", json={"user_id": "  ", "initial_deposit": 10}).status_code == 422
    r = client.post(
        "/autopilot/pilots",
        json={"user_id": "u", "initial_deposit": 10, "preferences": {"risk_dna": "reckless"}},
    )
    assert r.status_code == 422


def test_unknown_pilot_is_404_everywhere(client):
    for method, path, body in [
        ("get", "/autopilot/pilots/pilot_missing", None),
        ("get", "/autopilot/pilots/pilot_missing/trades", None),
        ("get", "/autopilot/pilots/pilot_missing/watch", None),
        ("post", "/autopilot/pilots/pilot_missing/watch", None),
        ("get", "/autopilot/pilots/pilot_missing/snapshot", None),
        ("get", "/autopilot/pilots/pilot_missing/strategies", None),
        ("post", "/autopilot/pilots/pilot_missing/time-travel", {"scenario": "last_month"}),
        ("post", "/autopilot/pilots/pilot_missing/exit-ramp", {"strategy": "immediate"}),
        ("post", "/autopilot/pilots/pilot_missing/pause", None),
        ("post", "/autopilot/pilots/pilot_missing/withdraw", {}),
        ("get", "/autopilot/pilots/pilot_missing/balance", None),
    ]:
        r = client.request(method.upper(), path, json=body)
        assert r.status_code == 404, (method, path, r.status_code)


def test_exit_ramp_twice_conflicts(client):
    pilot = _create(client)
    url = f"/autopilot/pilots/{pilot['id']}/exit-ramp"

    first = client.post(url, json={"strategy": "gradual_1week"})
    assert first.status_code == 200
    assert first.json()["exit_strategy"] == "gradual_1week"

    second = client.post(url, json={"strategy": "immediate"})
    assert second.status_code == 409


def test_withdraw_partial_then_all(client):
    pilot = _create(client)
    url = f"/autopilot/pilots/{pilot['id']}/withdraw"

    assert client.post(url, json={"amount": 5000}).status_code == 409
    partial = client.post(url, json={"amount": 100})
    assert partial.status_code == 200
    assert partial.json()["amount_withdrawn"] == 100

    full = client.post(url, json={})
    assert full.status_code == 200
    assert client.get(f"/autopilot/pilots/{pilot['id']}").json()["status"] == "closed"


def test_watch_mode_and_stream(client):
    pilot = _create(client)
    url = f"/autopilot/pilots/{pilot['id']}/watch"

    assert client.post(url).json() == {"pilot_id": pilot["id"], "enabled": True}
    assert client.get(url).json()["enabled"] is True
    assert client.delete(url).json()["enabled"] is False


def test_engine_wide_endpoints(client):
    _create(client)
    stats = client.get("/autopilot/stats").json()
    assert stats["total_pilots"] == 1
    assert stats["total_capital"] == 1000
    assert "return" in stats["best_pilot"]

    strategies = client.get("/autopilot/strategies").json()
    assert strategies and {"id", "win_rate", "risk_level"} <= set(strategies[0])


def test_pilot_strategies_respect_limit(client):
    pilot = _create(client)
    r = client.get(f"/autopilot/pilots/{pilot['id']}/strategies", params={"limit": 3})
    assert r.status_code == 200
    assert len(r.json()) == 3


def test_time_travel_bad_scenario_is_422(client):
    pilot = _create(client)
    r = client.post(f"/autopilot/pilots/{pilot['id']}/time-travel", json={"scenario": "someday"})
    assert r.status_code == 422


def test_time_travel_accepts_naive_custom_start(client):
    pilot = _create(client)
    r = client.post(
        f"/autopilot/pilots/{pilot['id']}/time-travel",
        json={"scenario": "custom", "custom_start_date": "2024-01-01T00:00:00"},
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["scenario"] == "From 2024-01-01"
    assert body["start_date"].startswith("2024-01-01T00:00:00")


def test_auto_skim_routes(client):
    pilot = _create(client)
    base = f"/autopilot/pilots/{pilot['id']}/skim"

    r = client.post(base, json={"mode": "spread_skim", "assets": ["SOL"]})
    assert r.status_code == 200, r.text
    config = r.json()
    assert config["enabled"] is True
    assert config["mode"] == "spread_skim"
    assert config["min_profit_bps"] == 5

    assert client.get(base).json()["assets"] == ["SOL"]
    assert client.get(f"{base}/stats").json()["total_skims"] == 0

    asyncio.run(client.app.state.engine.run_skim_scan())
    active = client.get(f"{base}/active").json()
    assert len(active) == 1 and active[0]["asset"] == "SOL"
    assert client.get(f"{base}/results", params={"limit": 5}).json() == []

    r = client.put(f"{base}/mode", json={"mode": "flash_arb"})
    assert r.status_code == 200
    assert r.json()["mode"] == "flash_arb"
    assert client.put(f"{base}/mode", json={"mode": "moonshot"}).status_code == 422

    r = client.delete(base)
    assert r.status_code == 200
    assert r.json() == {"pilot_id": pilot["id"], "enabled": False}
    assert client.get(base).json()["enabled"] is False


def test_auto_skim_defaults_and_errors(client):
    pilot = _create(client)
    base = f"/autopilot/pilots/{pilot['id']}/skim"

    for path in (base, f"{base}/stats"):
        assert client.get(path).status_code == 404
    assert client.delete(base).status_code == 404
    assert client.put(f"{base}/mode", json={"mode": "all"}).status_code == 404
    assert client.get(f"{base}/active").json() == []

    assert client.post(base, json={"min_profit_bps": 80}).status_code == 422
    assert client.post("/autopilot/pilots/pilot_missing/skim").status_code == 404

    r = client.post(base)
    assert r.status_code == 200, r.text
    assert r.json()["mode"] == "all"
    assert client.get(f"{base}/results", params={"limit": 0}).status_code == 422
