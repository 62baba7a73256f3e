import time
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from core.domain.entities.watch_stream_entity import WatchStreamEntity
from core.repositories.watch_stream_repository import WatchStreamRepository

# commentary grows with every trade; keep the stored tail bounded
MAX_COMMENTARY = 500


class WatchStreamRepositoryMongoDB(WatchStreamRepository):
    """
    One watch stream document per pilot, keyed by pilot id.
    """

    COLLECTION = "watch_streams"

    def __init__(self, db: AsyncIOMotorDatabase):
        self._col = db[self.COLLECTION]

    async def ensure_indexes(self) -> None:
        await self._col.create_index([("enabled", 1)], name="ix_enabled")

    async def save(self, stream: WatchStreamEntity) -> None:
        doc = stream.to_mongo()
        doc.pop("_id", None)
        doc["live_commentary"] = doc.get("live_commentary", [])[-MAX_COMMENTARY:]
        await self._col.update_one(
            {"_id": stream.pilot_id},
            {"$set": {**doc, "updated_at": int(time.time() * 1000)}},
            upsert=True,
        )

    async def get_by_pilot(self, pilot_id: str) -> Optional[WatchStreamEntity]:
        doc = await self._col.find_one({"_id": pilot_id})
        if not doc:
            return None
        doc.pop("_id", None)
        return WatchStreamEntity.model_validate(doc)
