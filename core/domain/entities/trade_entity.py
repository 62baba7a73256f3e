# core/domain/entities/trade_entity.py
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from ..enums.pilot_enums import PlainEnglishLevel, TradeSide, TradeStatus
from .base_entity import MongoEntity


class TradeNarrative(BaseModel):
    """Same trade explained at five comprehension levels, plainest first."""

    eli5: str
    beginner: str
    intermediate: str
    advanced: str
    expert: str

    model_config = ConfigDict(extra="ignore")

    def for_level(self, level: PlainEnglishLevel | str) -> str:
        key = level.value if isinstance(level, PlainEnglishLevel) else str(level)
        return getattr(self, key, self.beginner)


class TradeReasoning(BaseModel):
    signals: List[str] = Field(default_factory=list)
    confidence: int  # 0-100
    bot_source: str
    expected_outcome: str
    risks: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class TradeEntity(MongoEntity):
    id: str
    pilot_id: str
    strategy_id: str
    timestamp: datetime

    asset: str
    asset_name: str
    side: TradeSide
    quantity: float
    price: float
    value: float

    fees: float
    net_value: float

    entry_price: Optional[float] = None
    exit_price: Optional[float] = None
    profit_loss: Optional[float] = None
    profit_loss_percent: Optional[float] = None

    plain_english: TradeNarrative
    reasoning: TradeReasoning
    educational_tip: Optional[str] = None

    status: TradeStatus = TradeStatus.PENDING
