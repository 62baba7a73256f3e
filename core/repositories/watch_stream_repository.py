from abc import ABC, abstractmethod
from typing import Optional

from core.domain.entities.watch_stream_entity import WatchStreamEntity


class WatchStreamRepository(ABC):

    @abstractmethod
    async def ensure_indexes(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def save(self, stream: WatchStreamEntity) -> None:
        raise NotImplementedError

    @abstractmethod
    async def get_by_pilot(self, pilot_id: str) -> Optional[WatchStreamEntity]:
        raise NotImplementedError
