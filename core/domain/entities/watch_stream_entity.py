# core/domain/entities/watch_stream_entity.py
from datetime import datetime
from typing import List
from pydantic import BaseModel, ConfigDict, Field
from ..enums.pilot_enums import CommentaryType
from .base_entity import MongoEntity
from .trade_entity import TradeEntity


class CommentaryEntry(BaseModel):
    timestamp: datetime
    message: str
    type: CommentaryType = CommentaryType.INFO

    model_config = ConfigDict(use_enum_values=True, extra="ignore")


class WatchStreamEntity(MongoEntity):
    """
    Live feed of a pilot's pending/recent trades plus narrated commentary.
    recent_trades is newest-first and never longer than its capacity.
    """

    pilot_id: str
    enabled: bool = False

    pending_trades: List[TradeEntity] = Field(default_factory=list)
    recent_trades: List[TradeEntity] = Field(default_factory=list)
    live_commentary: List[CommentaryEntry] = Field(default_factory=list)

    market_status: str = "Analyzing market conditions..."
    relevant_news: List[str] = Field(default_factory=list)

    def add_commentary(self, at: datetime, message: str, kind: CommentaryType = CommentaryType.INFO) -> None:
        self.live_commentary.append(CommentaryEntry(timestamp=at, message=message, type=kind))

    def remove_pending(self, trade_id: str) -> None:
        self.pending_trades = [t for t in self.pending_trades if t.id != trade_id]

    def push_recent(self, trade: TradeEntity, capacity: int) -> None:
        # newest first, evict the oldest beyond capacity
        self.recent_trades = [trade, *self.recent_trades][:capacity]
