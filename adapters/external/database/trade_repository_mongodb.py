import time
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from core.domain.entities.trade_entity import TradeEntity
from core.repositories.trade_repository import TradeRepository


class TradeRepositoryMongoDB(TradeRepository):
    """
    Append-only trade log. `_id` is the trade id, so re-appending is a no-op.
    """

    COLLECTION = "pilot_trades"

    def __init__(self, db: AsyncIOMotorDatabase):
        self._col = db[self.COLLECTION]

    async def ensure_indexes(self) -> None:
        await self._col.create_index(
            [("pilot_id", 1), ("created_at", 1)],
            name="ix_pilot_created_at",
        )
        await self._col.create_index([("strategy_id", 1)], name="ix_strategy")

    async def append(self, trade: TradeEntity) -> bool:
        doc = trade.to_mongo()
        doc.pop("_id", None)
        # only the first write of an id lands
        res = await self._col.update_one(
            {"_id": trade.id},
            {"$setOnInsert": {**doc, "created_at": time.time_ns()}},
            upsert=True,
        )
        return res.upserted_id is not None

    async def list_for_pilot(self, pilot_id: str) -> List[TradeEntity]:
        cursor = self._col.find({"pilot_id": pilot_id}, sort=[("created_at", 1), ("_id", 1)])
        docs = await cursor.to_list(length=None)
        return [TradeEntity.from_mongo(d) for d in docs if d]

    async def latest_id(self) -> Optional[str]:
        # ids are zero-padded, so string order is sequence order
        doc = await self._col.find_one({}, projection={"_id": 1}, sort=[("_id", -1)])
        return doc["_id"] if doc else None
