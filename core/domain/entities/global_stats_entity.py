# core/domain/entities/global_stats_entity.py
from pydantic import BaseModel, ConfigDict, Field


class PilotReturnRef(BaseModel):
    id: str = ""
    return_: float = Field(0.0, alias="return")

    model_config = ConfigDict(populate_by_name=True)


class GlobalStats(BaseModel):
    total_pilots: int = 0
    total_capital: float = 0.0
    total_trades: int = 0
    avg_return: float = 0.0
    best_pilot: PilotReturnRef = Field(default_factory=PilotReturnRef)
    worst_pilot: PilotReturnRef = Field(default_factory=PilotReturnRef)
