from typing import List

from motor.motor_asyncio import AsyncIOMotorDatabase

from core.domain.entities.snapshot_entity import SnapshotEntity
from core.repositories.snapshot_repository import SnapshotRepository


class SnapshotRepositoryMongoDB(SnapshotRepository):
    """
    Portfolio snapshot history, appended by the learning loop.
    """

    COLLECTION = "pilot_snapshots"

    def __init__(self, db: AsyncIOMotorDatabase):
        self._col = db[self.COLLECTION]

    async def ensure_indexes(self) -> None:
        await self._col.create_index(
            [("pilot_id", 1), ("timestamp", -1)],
            name="ix_pilot_timestamp",
        )

    async def append(self, snapshot: SnapshotEntity) -> None:
        doc = snapshot.to_mongo()
        doc.pop("_id", None)
        await self._col.insert_one(doc)

    async def list_for_pilot(self, pilot_id: str, limit: int = 100) -> List[SnapshotEntity]:
        if limit <= 0:
            return []
        cursor = self._col.find({"pilot_id": pilot_id}, sort=[("timestamp", -1)], limit=limit)
        docs = await cursor.to_list(length=limit)
        # newest-first from the index, oldest-first to callers
        return [SnapshotEntity.from_mongo(d) for d in reversed(docs) if d]
