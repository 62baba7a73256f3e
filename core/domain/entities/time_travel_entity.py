# core/domain/entities/time_travel_entity.py
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict
from .trade_entity import TradeEntity


class TimeTravelResult(BaseModel):
    """Counterfactual 'what if I had started earlier' projection."""

    pilot_id: str
    scenario: str

    start_date: datetime
    end_date: datetime
    hypothetical_deposit: float
    hypothetical_value: float
    hypothetical_return: float
    hypothetical_return_percent: float

    best_trade: Optional[TradeEntity] = None
    worst_trade: Optional[TradeEntity] = None
    biggest_miss: str

    summary: str

    model_config = ConfigDict(extra="ignore")
