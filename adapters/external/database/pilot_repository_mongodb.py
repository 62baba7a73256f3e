from datetime import datetime, timezone
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from core.common.utils import to_iso, to_ms
from core.domain.entities.pilot_entity import PilotEntity
from core.repositories.pilot_repository import PilotRepository


class PilotRepositoryMongoDB(PilotRepository):
    """
    Mongo implementation for pilot profiles. `_id` is the pilot id.
    """

    COLLECTION = "pilots"

    def __init__(self, db: AsyncIOMotorDatabase):
        self._col = db[self.COLLECTION]

    async def ensure_indexes(self) -> None:
        await self._col.create_index([("user_id", 1)], name="ix_user")
        await self._col.create_index([("status", 1), ("autopilot_enabled", 1)], name="ix_status_autopilot")
        await self._col.create_index([("created_at", 1)], name="ix_created_at")

    async def save(self, pilot: PilotEntity) -> None:
        now = datetime.now(timezone.utc)
        now_ms = to_ms(now)
        now_iso = to_iso(now)

        doc = pilot.to_mongo()
        doc.pop("_id", None)
        update = {
            "$set": {
                **doc,
                "updated_at": now_ms,
            },
            "$setOnInsert": {
                "created_at": now_ms,
                "created_at_iso": now_iso,
            },
        }
        await self._col.update_one({"_id": pilot.id}, update, upsert=True)

    async def get_by_id(self, pilot_id: str) -> Optional[PilotEntity]:
        doc = await self._col.find_one({"_id": pilot_id})
        return PilotEntity.from_mongo(doc)

    async def list_all(self) -> List[PilotEntity]:
        cursor = self._col.find({}, sort=[("created_at", 1), ("_id", 1)])
        docs = await cursor.to_list(length=None)
        return [PilotEntity.from_mongo(d) for d in docs if d]

    async def count(self) -> int:
        return await self._col.count_documents({})
