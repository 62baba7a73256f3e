# core/domain/entities/strategy_entity.py
from typing import List
from pydantic import ConfigDict, Field
from .base_entity import MongoEntity

class StrategyEntity(MongoEntity):
    """
    Catalog entry describing a trading approach and its historical metrics.
    Created once when the catalog loads; never mutated afterwards.
    """
    id: str
    name: str
    source: str = "Research"
    type: str
    description: str = "Advanced trading strategy"
    win_rate: float = Field(..., ge=0.0, le=1.0)
    avg_return: float = 0.10
    risk_level: str = "balanced"
    asset_class: List[str] = Field(default_factory=lambda: ["stocks", "crypto"])
    timeframe: str = "1h"
    min_capital: float = 100
    max_drawdown: float = 0.15
    sharpe_ratio: float = 1.5
    signals: List[str] = Field(default_factory=list)
    plain_english: str = "Smart trading strategy"

    model_config = ConfigDict(frozen=True, validate_assignment=False)

    @property
    def primary_asset_class(self) -> str:
        return self.asset_class[0] if self.asset_class else "stocks"
