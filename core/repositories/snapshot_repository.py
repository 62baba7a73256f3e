from abc import ABC, abstractmethod
from typing import List

from core.domain.entities.snapshot_entity import SnapshotEntity


class SnapshotRepository(ABC):

    @abstractmethod
    async def ensure_indexes(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def append(self, snapshot: SnapshotEntity) -> None:
        raise NotImplementedError

    @abstractmethod
    async def list_for_pilot(self, pilot_id: str, limit: int = 100) -> List[SnapshotEntity]:
        """Most recent `limit` snapshots, oldest first."""
        raise NotImplementedError
