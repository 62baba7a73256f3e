from abc import ABC, abstractmethod
from typing import Optional

from core.domain.entities.risk_discovery_entity import RiskDNADiscoveryEntity


class RiskDiscoveryRepository(ABC):
    """
    Latest risk-DNA discovery per pilot (each recompute replaces the previous one).
    """

    @abstractmethod
    async def ensure_indexes(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def upsert(self, discovery: RiskDNADiscoveryEntity) -> None:
        raise NotImplementedError

    @abstractmethod
    async def get_by_pilot(self, pilot_id: str) -> Optional[RiskDNADiscoveryEntity]:
        raise NotImplementedError
