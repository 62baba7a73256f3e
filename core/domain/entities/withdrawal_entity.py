# core/domain/entities/withdrawal_entity.py
from datetime import datetime
from pydantic import BaseModel, ConfigDict


class WithdrawalResult(BaseModel):
    success: bool
    pilot_id: str
    requested_at: datetime
    completed_at: datetime
    amount_requested: float
    amount_withdrawn: float
    fees: float
    net_amount: float
    positions_closed: int
    message: str

    model_config = ConfigDict(extra="ignore")


class AvailableBalance(BaseModel):
    available: float
    invested: float
    total: float
    can_withdraw: bool
