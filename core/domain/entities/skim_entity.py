# core/domain/entities/skim_entity.py
from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator
from ..enums.pilot_enums import TradeSide
from ..enums.skim_enums import SkimFrequency, SkimMode
from .base_entity import MongoEntity


class AutoSkimConfig(BaseModel):
    """Per-pilot skimming setup. Profit targets are in basis points."""

    enabled: bool = True
    mode: SkimMode = SkimMode.ALL

    min_profit_bps: float = Field(5.0, gt=0)
    max_profit_bps: float = Field(50.0, gt=0)

    max_position_size: float = Field(2.0, gt=0, le=100)  # % of capital per skim
    max_concurrent_skims: int = Field(10, ge=1)
    max_daily_loss: float = Field(2.0, gt=0)  # % of capital

    skim_frequency: SkimFrequency = SkimFrequency.FAST
    hold_time_seconds: int = Field(30, ge=1)

    assets: List[str] = Field(default_factory=list)  # empty = every skimmable asset
    exclude_assets: List[str] = Field(default_factory=list)

    use_ai: bool = True
    adapt_to_volatility: bool = True
    compound_profits: bool = True

    model_config = ConfigDict(use_enum_values=True, extra="ignore", validate_assignment=True)

    @model_validator(mode="after")
    def _targets_ordered(self):
        if self.max_profit_bps < self.min_profit_bps:
            raise ValueError("max_profit_bps must be >= min_profit_bps")
        return self


class SkimOpportunity(MongoEntity):
    id: str
    timestamp: datetime

    type: SkimMode
    asset: str
    asset_name: str
    side: TradeSide = TradeSide.BUY

    entry_price: float
    target_exit: float
    stop_loss: float

    expected_profit_bps: float
    confidence: float  # 0-100
    edge_source: str

    expected_hold_seconds: int
    expires_at: datetime

    explanation: str

    @property
    def score(self) -> float:
        return self.confidence * self.expected_profit_bps


class SkimResult(MongoEntity):
    id: str
    opportunity_id: str
    pilot_id: str
    timestamp: datetime

    asset: str
    side: TradeSide
    entry_price: float
    exit_price: float
    position_value: float

    gross_profit: float
    fees: float
    net_profit: float
    profit_bps: float
    hold_time_ms: int

    skim_type: SkimMode
    successful: bool

    what_worked: str = ""
    what_didnt: str = ""


class SkimTypeStats(BaseModel):
    count: int = 0
    profit: float = 0.0
    win_rate: float = 0.0
    avg_profit_bps: float = 0.0


class AutoSkimStats(BaseModel):
    pilot_id: str
    day: Optional[datetime] = None  # start of the day the today_* counters cover

    today_skims: int = 0
    today_profit: float = 0.0
    today_profit_bps: float = 0.0
    today_win_rate: float = 0.0

    total_skims: int = 0
    total_profit: float = 0.0
    total_profit_bps: float = 0.0
    overall_win_rate: float = 0.0
    avg_hold_time_ms: float = 0.0
    avg_profit_per_skim: float = 0.0

    by_type: Dict[str, SkimTypeStats] = Field(
        default_factory=lambda: {mode.value: SkimTypeStats() for mode in SkimMode}
    )

    best_asset: str = ""
    best_skim_type: SkimMode = SkimMode.MICRO_VACUUM
    biggest_skim: Optional[SkimResult] = None

    current_win_streak: int = 0
    best_win_streak: int = 0

    summary: str = "Auto-Skim activated! Scanning for micro-profit opportunities..."

    model_config = ConfigDict(use_enum_values=True, extra="ignore")
