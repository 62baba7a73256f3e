from datetime import datetime
from typing import List

from core.domain.entities.pilot_entity import PilotEntity
from core.domain.entities.risk_discovery_entity import RiskDNADiscoveryEntity
from core.domain.entities.trade_entity import TradeEntity
from core.services.allocation_selector import risk_dna_to_score, score_to_risk_dna

MIN_TRADES_FOR_DISCOVERY = 5

PANIC_PENALTY = 10
ANXIOUS_CHECKS_PER_DAY = 10.0
ANXIOUS_PENALTY = 10
CALM_DRAWDOWN_PCT = 1.0
CALM_BONUS = 10


class RiskDiscoveryService:
    """
    Derives a pilot's behavioral risk tier from how they actually react,
    as opposed to the tier they declared.

    Counters:
      - check_frequency: pilot views per day since start
      - panic_sells: manual pauses plus withdrawals taken while losing
      - missed_opportunities: admitted signals that could not be sized
      - average_hold_time: mean hours between consecutive trades
      - drawdown_tolerance: worst day seen, in percent
    """

    def discover(self, pilot: PilotEntity, trades: List[TradeEntity], now: datetime) -> RiskDNADiscoveryEntity:
        days_active = max((now - pilot.start_date).total_seconds() / 86400.0, 1.0)
        check_frequency = pilot.view_count / days_active
        panic_sells = pilot.pause_count + pilot.panic_withdrawals
        drawdown_tolerance = abs(min(pilot.worst_day.return_, 0.0)) * 100

        declared = risk_dna_to_score(pilot.risk_dna)
        score = declared - PANIC_PENALTY * panic_sells
        if check_frequency > ANXIOUS_CHECKS_PER_DAY:
            score -= ANXIOUS_PENALTY
        if drawdown_tolerance >= CALM_DRAWDOWN_PCT and panic_sells == 0:
            score += CALM_BONUS
        score = max(0, min(100, score))

        discovered = score_to_risk_dna(score)
        confidence = min(95, 50 + 3 * (len(trades) - MIN_TRADES_FOR_DISCOVERY))
        recommendation, explanation = self._describe(pilot, discovered.value, declared, score)

        return RiskDNADiscoveryEntity(
            pilot_id=pilot.id,
            check_frequency=round(check_frequency, 2),
            panic_sells=panic_sells,
            missed_opportunities=pilot.skipped_signals,
            average_hold_time=round(self._average_gap_hours(trades), 2),
            drawdown_tolerance=round(drawdown_tolerance, 2),
            discovered_risk=discovered,
            confidence=confidence,
            recommendation=recommendation,
            explanation=explanation,
        )

    @staticmethod
    def _average_gap_hours(trades: List[TradeEntity]) -> float:
        if len(trades) < 2:
            return 0.0
        stamps = sorted(t.timestamp for t in trades)
        gaps = [(b - a).total_seconds() / 3600.0 for a, b in zip(stamps, stamps[1:])]
        return sum(gaps) / len(gaps)

    @staticmethod
    def _describe(pilot: PilotEntity, discovered: str, declared: int, score: int):
        declared_dna = getattr(pilot.risk_dna, "value", pilot.risk_dna)
        if discovered == declared_dna:
            return (
                f"Keep your {declared_dna} profile.",
                f"Your behavior matches the {declared_dna} profile you picked. Nice self-awareness!",
            )
        if score < declared:
            return (
                f"Consider switching to {discovered}.",
                f"You're more cautious than you think! You chose {declared_dna}, "
                f"but you react like a {discovered} investor.",
            )
        return (
            f"You could handle {discovered}.",
            f"You're calmer than you think! You chose {declared_dna}, "
            f"but you ride out dips like a {discovered} investor.",
        )
