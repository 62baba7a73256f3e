"""
In-memory repositories for tests and local runs (STORE_BACKEND=memory).

Entities are deep-copied on the way in and out so callers never share
mutable state with the store, mirroring what a database round-trip does.
"""

from typing import Dict, List, Optional, Set

from core.domain.entities.exit_ramp_entity import ExitRampEntity
from core.domain.entities.pilot_entity import PilotEntity
from core.domain.entities.risk_discovery_entity import RiskDNADiscoveryEntity
from core.domain.entities.snapshot_entity import SnapshotEntity
from core.domain.entities.trade_entity import TradeEntity
from core.domain.entities.watch_stream_entity import WatchStreamEntity
from core.repositories.exit_ramp_repository import ExitRampRepository
from core.repositories.pilot_repository import PilotRepository
from core.repositories.risk_discovery_repository import RiskDiscoveryRepository
from core.repositories.snapshot_repository import SnapshotRepository
from core.repositories.trade_repository import TradeRepository
from core.repositories.watch_stream_repository import WatchStreamRepository


class InMemoryPilotRepository(PilotRepository):
    def __init__(self):
        self._items: Dict[str, PilotEntity] = {}

    async def ensure_indexes(self) -> None:
        return None

    async def save(self, pilot: PilotEntity) -> None:
        self._items[pilot.id] = pilot.model_copy(deep=True)

    async def get_by_id(self, pilot_id: str) -> Optional[PilotEntity]:
        pilot = self._items.get(pilot_id)
        return pilot.model_copy(deep=True) if pilot else None

    async def list_all(self) -> List[PilotEntity]:
        return [p.model_copy(deep=True) for p in self._items.values()]

    async def count(self) -> int:
        return len(self._items)


class InMemoryTradeRepository(TradeRepository):
    def __init__(self):
        self._by_pilot: Dict[str, List[TradeEntity]] = {}
        self._ids: Set[str] = set()

    async def ensure_indexes(self) -> None:
        return None

    async def append(self, trade: TradeEntity) -> bool:
        if trade.id in self._ids:
            return False
        self._ids.add(trade.id)
        self._by_pilot.setdefault(trade.pilot_id, []).append(trade.model_copy(deep=True))
        return True

    async def list_for_pilot(self, pilot_id: str) -> List[TradeEntity]:
        return [t.model_copy(deep=True) for t in self._by_pilot.get(pilot_id, [])]

    async def latest_id(self) -> Optional[str]:
        return max(self._ids) if self._ids else None


class InMemoryWatchStreamRepository(WatchStreamRepository):
    def __init__(self):
        self._items: Dict[str, WatchStreamEntity] = {}

    async def ensure_indexes(self) -> None:
        return None

    async def save(self, stream: WatchStreamEntity) -> None:
        self._items[stream.pilot_id] = stream.model_copy(deep=True)

    async def get_by_pilot(self, pilot_id: str) -> Optional[WatchStreamEntity]:
        stream = self._items.get(pilot_id)
        return stream.model_copy(deep=True) if stream else None


class InMemoryRiskDiscoveryRepository(RiskDiscoveryRepository):
    def __init__(self):
        self._items: Dict[str, RiskDNADiscoveryEntity] = {}

    async def ensure_indexes(self) -> None:
        return None

    async def upsert(self, discovery: RiskDNADiscoveryEntity) -> None:
        self._items[discovery.pilot_id] = discovery.model_copy(deep=True)

    async def get_by_pilot(self, pilot_id: str) -> Optional[RiskDNADiscoveryEntity]:
        item = self._items.get(pilot_id)
        return item.model_copy(deep=True) if item else None


class InMemoryExitRampRepository(ExitRampRepository):
    def __init__(self):
        self._items: Dict[str, ExitRampEntity] = {}

    async def ensure_indexes(self) -> None:
        return None

    async def create(self, exit_ramp: ExitRampEntity) -> None:
        self._items[exit_ramp.pilot_id] = exit_ramp.model_copy(deep=True)

    async def get_by_pilot(self, pilot_id: str) -> Optional[ExitRampEntity]:
        item = self._items.get(pilot_id)
        return item.model_copy(deep=True) if item else None


class InMemorySnapshotRepository(SnapshotRepository):
    def __init__(self):
        self._by_pilot: Dict[str, List[SnapshotEntity]] = {}

    async def ensure_indexes(self) -> None:
        return None

    async def append(self, snapshot: SnapshotEntity) -> None:
        self._by_pilot.setdefault(snapshot.pilot_id, []).append(snapshot.model_copy(deep=True))

    async def list_for_pilot(self, pilot_id: str, limit: int = 100) -> List[SnapshotEntity]:
        items = self._by_pilot.get(pilot_id, [])
        return [s.model_copy(deep=True) for s in items[-limit:]] if limit > 0 else []
