from abc import ABC, abstractmethod
from typing import List, Optional

from core.domain.entities.trade_entity import TradeEntity


class TradeRepository(ABC):
    """
    Append-only trade log, one ordered list per pilot.
    """

    @abstractmethod
    async def ensure_indexes(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def append(self, trade: TradeEntity) -> bool:
        """
        Record an executed trade. A trade id is recorded at most once;
        returns False (and writes nothing) when the id is already logged.
        """
        raise NotImplementedError

    @abstractmethod
    async def list_for_pilot(self, pilot_id: str) -> List[TradeEntity]:
        """Trades in execution order (oldest first)."""
        raise NotImplementedError

    @abstractmethod
    async def latest_id(self) -> Optional[str]:
        """Greatest trade id in the log, across all pilots."""
        raise NotImplementedError
