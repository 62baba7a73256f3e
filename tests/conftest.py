import random
from datetime import datetime, timezone

import pytest

from adapters.external.memory.in_memory_repositories import (
    InMemoryExitRampRepository,
    InMemoryPilotRepository,
    InMemoryRiskDiscoveryRepository,
    InMemorySnapshotRepository,
    InMemoryTradeRepository,
    InMemoryWatchStreamRepository,
)
from core.autopilot_engine import AutoPilotEngine
from core.common.utils import FixedClock
from core.domain.entities.pilot_entity import DayReturn, PilotEntity
from core.services.allocation_selector import risk_dna_to_score
from core.services.event_bus import RecordingSubscriber
from core.services.signal_evaluator import ReturnSource, StaticSignalEvaluator
from core.services.strategy_catalog import StrategyCatalog
from workers.autopilot_supervisor import build_in_memory_engine

T0 = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)

MOMENTUM = {
    "id": "ai_momentum", "name": "AI Momentum Hunter", "source": "Cryptohopper", "type": "momentum",
    "win_rate": 0.62, "avg_return": 0.25, "risk_level": "aggressive", "asset_class": ["crypto"],
    "max_drawdown": 0.25, "sharpe_ratio": 1.2, "signals": ["macd_cross", "volume_surge"],
}


class FixedReturnSource(ReturnSource):
    def __init__(self, value: float):
        self.value = value

    def day_return(self, pilot):
        return self.value


@pytest.fixture
def clock():
    return FixedClock(T0)


@pytest.fixture
def recorder():
    return RecordingSubscriber()


@pytest.fixture
def make_engine(clock, recorder):
    """
    Deterministic in-memory engine: fixed clock, seeded rng, inline execution,
    no opening allocation and an always-accept admission gate unless overridden.
    Pass `repos` to build it over an existing set of repositories.
    """

    def _make(repos=None, **overrides):
        options = dict(
            clock=clock,
            rng=random.Random(7),
            execution_delay_sec=0,
            initial_allocation_n=0,
            signal_evaluator=StaticSignalEvaluator(True),
        )
        options.update(overrides)
        engine = AutoPilotEngine(**repos, **options) if repos else build_in_memory_engine(**options)
        engine.event_bus.subscribe(recorder)
        return engine

    return _make


@pytest.fixture
def single_strategy_catalog():
    return StrategyCatalog([MOMENTUM])


@pytest.fixture
def pilot_factory():
    def _make(**kw):
        data = dict(
            id="pilot_test",
            user_id="user_1",
            name="Pilot #1",
            initial_deposit=1000.0,
            total_deposited=1000.0,
            current_value=1000.0,
            start_date=T0,
            last_deposit=T0,
            last_activity=T0,
            best_day=DayReturn(date=T0, return_=0.0),
            worst_day=DayReturn(date=T0, return_=0.0),
        )
        data.update(kw)
        pilot = PilotEntity(**data)
        if "risk_score" not in kw:
            pilot.risk_score = risk_dna_to_score(pilot.risk_dna)
        return pilot

    return _make


@pytest.fixture
def memory_repos():
    """One set of in-memory repositories, shareable between engines."""
    return dict(
        pilot_repo=InMemoryPilotRepository(),
        trade_repo=InMemoryTradeRepository(),
        watch_repo=InMemoryWatchStreamRepository(),
        discovery_repo=InMemoryRiskDiscoveryRepository(),
        exit_repo=InMemoryExitRampRepository(),
        snapshot_repo=InMemorySnapshotRepository(),
    )
