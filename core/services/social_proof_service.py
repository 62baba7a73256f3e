from collections import Counter
from typing import Dict, List, Optional

from core.domain.entities.pilot_entity import PilotEntity
from core.domain.entities.social_proof_entity import CohortStats, SocialProofEntity
from core.domain.entities.trade_entity import TradeEntity

DEPOSIT_BAND = 0.5


def deposit_cohort(subject: PilotEntity, pilots: List[PilotEntity]) -> List[PilotEntity]:
    """Pilots whose total deposit is within 50% of the subject's (subject included)."""
    base = subject.total_deposited
    if base <= 0:
        return [p for p in pilots if p.total_deposited == base]
    return [p for p in pilots if abs(p.total_deposited - base) / base < DEPOSIT_BAND]


def risk_cohort(subject: PilotEntity, pilots: List[PilotEntity]) -> List[PilotEntity]:
    return [p for p in pilots if p.risk_dna == subject.risk_dna]


def rank_in(subject: PilotEntity, cohort: List[PilotEntity]) -> int:
    """1 + number of cohort members strictly ahead by total return %."""
    return sum(1 for p in cohort if p.total_return_percent > subject.total_return_percent) + 1


def percentile(rank: int, cohort_size: int) -> float:
    return 100 - (rank / (cohort_size or 1)) * 100


def cohort_stats(subject: PilotEntity, cohort: List[PilotEntity]) -> CohortStats:
    if not cohort:
        return CohortStats()
    returns = [p.total_return_percent for p in cohort]
    rank = rank_in(subject, cohort)
    return CohortStats(
        count=len(cohort),
        avg_return=sum(returns) / len(returns),
        best_return=max(returns),
        your_rank=rank,
        percentile=percentile(rank, len(cohort)),
    )


def summarize(subject: PilotEntity, pct: float) -> str:
    if pct >= 90:
        return f"You're in the top 10%! Crushing it with {subject.total_return_percent:.1f}% returns!"
    if pct >= 75:
        return f"Great job! You're beating {pct:.0f}% of similar investors!"
    if pct >= 50:
        return f"You're doing better than {pct:.0f}% of people with similar deposits. Keep going!"
    return "Room to grow! Let's optimize your strategy to catch up with the top performers."


class SocialProofService:
    """
    Ranks a pilot against peers of similar capital and of the same risk DNA.

    Building the cohorts is a linear scan over all pilots, so a full pass
    over n pilots costs O(n^2).
    """

    def build(
        self,
        subject: PilotEntity,
        pilots: List[PilotEntity],
        trades_by_pilot: Optional[Dict[str, List[TradeEntity]]] = None,
        strategy_names: Optional[Dict[str, str]] = None,
    ) -> SocialProofEntity:
        by_deposit = deposit_cohort(subject, pilots)
        by_risk = risk_cohort(subject, pilots)
        deposit_stats = cohort_stats(subject, by_deposit)

        top_strategy, top_asset = self._trending(by_deposit, trades_by_pilot or {})
        if top_strategy and strategy_names:
            top_strategy = strategy_names.get(top_strategy, top_strategy)

        return SocialProofEntity(
            pilot_id=subject.id,
            similar_deposit=deposit_stats,
            similar_risk=cohort_stats(subject, by_risk),
            top_strategy=top_strategy,
            top_asset=top_asset,
            summary=summarize(subject, deposit_stats.percentile),
        )

    @staticmethod
    def _trending(cohort: List[PilotEntity], trades_by_pilot: Dict[str, List[TradeEntity]]):
        strategies: Counter = Counter()
        assets: Counter = Counter()
        for p in cohort:
            for t in trades_by_pilot.get(p.id, []):
                strategies[t.strategy_id] += 1
                assets[t.asset] += 1
        top_strategy = strategies.most_common(1)[0][0] if strategies else None
        top_asset = assets.most_common(1)[0][0] if assets else None
        return top_strategy, top_asset
