# core/domain/entities/base_entity.py
from typing import Any, Optional, TypeVar, Type
from pydantic import BaseModel, ConfigDict

E = TypeVar("E", bound="MongoEntity")

class MongoEntity(BaseModel):
    """
    Base entity for Mongo-backed documents.
    Maps Mongo's `_id` to `id` (string).
    """
    id: Optional[str] = None  # maps _id

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        extra="ignore",
        use_enum_values=True,
        validate_assignment=True,
    )

    @classmethod
    def from_mongo(cls: Type[E], doc: Optional[dict[str, Any]]) -> Optional[E]:
        if not doc:
            return None
        data = dict(doc)
        if "_id" in data:
            data["id"] = str(data.pop("_id"))
        return cls.model_validate(data)

    def to_mongo(self) -> dict[str, Any]:
        data = self.model_dump(mode="python", exclude_none=True)
        if "id" in data:
            data["_id"] = data.pop("id")
        return data
