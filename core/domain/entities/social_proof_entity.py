# core/domain/entities/social_proof_entity.py
from typing import Optional
from pydantic import BaseModel, ConfigDict


class CohortStats(BaseModel):
    count: int = 0
    avg_return: float = 0.0
    best_return: float = 0.0
    your_rank: int = 1
    percentile: float = 0.0

    model_config = ConfigDict(extra="ignore")


class SocialProofEntity(BaseModel):
    pilot_id: str
    similar_deposit: CohortStats
    similar_risk: CohortStats
    top_strategy: Optional[str] = None
    top_asset: Optional[str] = None
    summary: str

    model_config = ConfigDict(extra="ignore")
