# core/domain/entities/snapshot_entity.py
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from ..enums.pilot_enums import Sentiment
from .base_entity import MongoEntity


class HoldingEntry(BaseModel):
    asset: str
    asset_name: str
    quantity: float
    avg_cost: float
    current_price: float
    value: float
    profit_loss: float
    profit_loss_percent: float
    allocation: float  # % of portfolio
    plain_english: str

    model_config = ConfigDict(extra="ignore")


class SnapshotSummary(BaseModel):
    headline: str
    detail: str
    sentiment: Sentiment
    action_needed: bool = False
    suggestion: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True, extra="ignore")


class SnapshotEntity(MongoEntity):
    pilot_id: str
    timestamp: datetime

    total_value: float
    cash_balance: float
    invested_value: float

    day_return: float = 0.0
    day_return_percent: float = 0.0
    week_return: float = 0.0
    month_return: float = 0.0
    total_return: float = 0.0
    total_return_percent: float = 0.0

    holdings: List[HoldingEntry] = Field(default_factory=list)
    summary: SnapshotSummary

    vs_spx: float = 0.0
    vs_bitcoin: float = 0.0
    vs_avg_user: float = 0.0
