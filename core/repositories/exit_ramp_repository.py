from abc import ABC, abstractmethod
from typing import Optional

from core.domain.entities.exit_ramp_entity import ExitRampEntity


class ExitRampRepository(ABC):

    @abstractmethod
    async def ensure_indexes(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def create(self, exit_ramp: ExitRampEntity) -> None:
        """Store the single exit ramp of a pilot."""
        raise NotImplementedError

    @abstractmethod
    async def get_by_pilot(self, pilot_id: str) -> Optional[ExitRampEntity]:
        raise NotImplementedError
