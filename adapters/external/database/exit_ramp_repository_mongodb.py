from datetime import datetime, timezone
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from core.common.utils import to_iso, to_ms
from core.domain.entities.exit_ramp_entity import ExitRampEntity
from core.repositories.exit_ramp_repository import ExitRampRepository


class ExitRampRepositoryMongoDB(ExitRampRepository):
    """
    Mongo implementation for exit ramps, one per pilot.
    """

    COLLECTION = "exit_ramps"

    def __init__(self, db: AsyncIOMotorDatabase):
        self._col = db[self.COLLECTION]

    async def ensure_indexes(self) -> None:
        await self._col.create_index([("target_exit_date", 1)], name="ix_target_exit_date")

    async def create(self, exit_ramp: ExitRampEntity) -> None:
        now = datetime.now(timezone.utc)
        now_ms = to_ms(now)
        now_iso = to_iso(now)

        doc = exit_ramp.to_mongo()
        doc.pop("_id", None)
        await self._col.update_one(
            {"_id": exit_ramp.pilot_id},
            {"$set": {**doc, "created_at": now_ms, "created_at_iso": now_iso}},
            upsert=True,
        )

    async def get_by_pilot(self, pilot_id: str) -> Optional[ExitRampEntity]:
        doc = await self._col.find_one({"_id": pilot_id})
        if not doc:
            return None
        doc.pop("_id", None)
        return ExitRampEntity.model_validate(doc)
