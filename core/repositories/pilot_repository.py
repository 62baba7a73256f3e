from abc import ABC, abstractmethod
from typing import List, Optional

from core.domain.entities.pilot_entity import PilotEntity


class PilotRepository(ABC):
    """
    Repository interface for pilot profiles.
    """

    @abstractmethod
    async def ensure_indexes(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def save(self, pilot: PilotEntity) -> None:
        """Insert or replace the pilot document by id."""
        raise NotImplementedError

    @abstractmethod
    async def get_by_id(self, pilot_id: str) -> Optional[PilotEntity]:
        raise NotImplementedError

    @abstractmethod
    async def list_all(self) -> List[PilotEntity]:
        """Return every pilot in creation order."""
        raise NotImplementedError

    @abstractmethod
    async def count(self) -> int:
        raise NotImplementedError
