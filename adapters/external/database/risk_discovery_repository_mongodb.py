import time
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from core.domain.entities.risk_discovery_entity import RiskDNADiscoveryEntity
from core.repositories.risk_discovery_repository import RiskDiscoveryRepository


class RiskDiscoveryRepositoryMongoDB(RiskDiscoveryRepository):
    """
    Latest discovery per pilot; each learning tick overwrites it.
    """

    COLLECTION = "risk_discoveries"

    def __init__(self, db: AsyncIOMotorDatabase):
        self._col = db[self.COLLECTION]

    async def ensure_indexes(self) -> None:
        await self._col.create_index([("discovered_risk", 1)], name="ix_discovered_risk")

    async def upsert(self, discovery: RiskDNADiscoveryEntity) -> None:
        doc = discovery.to_mongo()
        doc.pop("_id", None)
        await self._col.update_one(
            {"_id": discovery.pilot_id},
            {"$set": {**doc, "updated_at": int(time.time() * 1000)}},
            upsert=True,
        )

    async def get_by_pilot(self, pilot_id: str) -> Optional[RiskDNADiscoveryEntity]:
        doc = await self._col.find_one({"_id": pilot_id})
        if not doc:
            return None
        doc.pop("_id", None)
        return RiskDNADiscoveryEntity.model_validate(doc)
