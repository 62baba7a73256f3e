# core/domain/entities/pilot_entity.py
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from ..enums.pilot_enums import (
    AssetMix,
    DepositMode,
    NotificationFrequency,
    PilotStatus,
    PlainEnglishLevel,
    RiskDNA,
    TradingStyle,
)
from .base_entity import MongoEntity


class DayReturn(BaseModel):
    date: datetime
    return_: float = Field(0.0, alias="return")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class PilotEntity(MongoEntity):
    """
    A user's automated portfolio instance.

    Status moves active <-> paused, then to exiting and finally closed.
    closed never changes again.
    """

    id: str
    user_id: str
    name: str

    risk_dna: RiskDNA = RiskDNA.BALANCED
    risk_score: int = 50
    deposit_mode: DepositMode = DepositMode.ONE_TIME
    trading_style: TradingStyle = TradingStyle.HYBRID
    asset_mix: AssetMix = AssetMix.DIVERSIFIED

    plain_english_level: PlainEnglishLevel = PlainEnglishLevel.BEGINNER
    wants_notifications: bool = True
    notification_frequency: NotificationFrequency = NotificationFrequency.DAILY
    wants_education: bool = True

    initial_deposit: float
    total_deposited: float
    current_value: float
    total_return: float = 0.0
    total_return_percent: float = 0.0

    start_date: datetime
    last_deposit: datetime
    last_activity: datetime

    win_rate: float = 0.0
    best_day: DayReturn
    worst_day: DayReturn

    status: PilotStatus = PilotStatus.ACTIVE
    autopilot_enabled: bool = True

    # behavioral counters feeding risk discovery
    view_count: int = 0
    pause_count: int = 0
    panic_withdrawals: int = 0
    skipped_signals: int = 0

    @property
    def is_tradeable(self) -> bool:
        return self.status == PilotStatus.ACTIVE and self.autopilot_enabled

    def recompute_returns(self) -> None:
        self.total_return = self.current_value - self.total_deposited
        if self.total_deposited:
            self.total_return_percent = self.total_return / self.total_deposited * 100
        else:
            self.total_return_percent = 0.0


class PilotPreferences(BaseModel):
    """Optional choices at pilot creation; anything omitted takes the pilot default."""

    risk_dna: Optional[RiskDNA] = None
    deposit_mode: Optional[DepositMode] = None
    trading_style: Optional[TradingStyle] = None
    asset_mix: Optional[AssetMix] = None
    plain_english_level: Optional[PlainEnglishLevel] = None
    wants_notifications: Optional[bool] = None
    notification_frequency: Optional[NotificationFrequency] = None
    wants_education: Optional[bool] = None

    model_config = ConfigDict(use_enum_values=True, extra="ignore")

    def chosen(self) -> dict:
        return self.model_dump(exclude_none=True)
