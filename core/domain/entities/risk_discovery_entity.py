# core/domain/entities/risk_discovery_entity.py
from ..enums.pilot_enums import RiskDNA
from .base_entity import MongoEntity

class RiskDNADiscoveryEntity(MongoEntity):
    pilot_id: str

    # behavioral counters
    check_frequency: float = 0.0     # views per day
    panic_sells: int = 0
    missed_opportunities: int = 0
    average_hold_time: float = 0.0   # hours
    drawdown_tolerance: float = 0.0  # % of the worst day

    discovered_risk: RiskDNA
    confidence: int = 50
    recommendation: str = ""
    explanation: str = ""
