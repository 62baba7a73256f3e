# core/domain/entities/exit_ramp_entity.py
from datetime import datetime
from ..enums.pilot_enums import ExitStrategy
from .base_entity import MongoEntity

class ExitRampEntity(MongoEntity):
    pilot_id: str
    requested_at: datetime
    target_exit_date: datetime

    exit_strategy: ExitStrategy

    positions_closed: int = 0
    positions_remaining: int = 0
    cash_extracted: float = 0.0
    remaining_value: float = 0.0

    tax_optimized: bool = False
    estimated_tax_savings: float = 0.0

    status: str = ""
    estimated_completion: datetime
    projected_final_value: float = 0.0
