"""
Strategy allocation for a pilot: risk filter, asset-mix filter, ranking.

Everything here is a pure function of (pilot, strategies); the output order
is deterministic for identical inputs.
"""

from typing import Iterable, List

from core.domain.entities.pilot_entity import PilotEntity
from core.domain.entities.strategy_entity import StrategyEntity
from core.domain.enums.pilot_enums import AssetMix, RiskDNA

RISK_TOLERANCE_BAND = 30
EPS = 1e-9
DEFAULT_DRAWDOWN = 0.1

RISK_DNA_SCORES = {
    RiskDNA.ULTRA_SAFE.value: 10,
    RiskDNA.CAREFUL.value: 25,
    RiskDNA.BALANCED.value: 50,
    RiskDNA.GROWTH.value: 70,
    RiskDNA.AGGRESSIVE.value: 85,
    RiskDNA.YOLO.value: 100,
}

# Strategy tiers map "careful" to 30, not 25.
RISK_LEVEL_SCORES = {
    "ultra_safe": 10,
    "careful": 30,
    "balanced": 50,
    "growth": 70,
    "aggressive": 85,
    "yolo": 100,
    "maximum": 100,
}

_ASSET_TAGS = {
    AssetMix.STOCKS_ONLY.value: "stocks",
    AssetMix.CRYPTO_ONLY.value: "crypto",
    AssetMix.FOREX_ONLY.value: "forex",
}

_YIELD_TYPES = {"yield", "dividend"}


def _value(v) -> str:
    return v.value if hasattr(v, "value") else str(v)


def risk_dna_to_score(risk_dna) -> int:
    return RISK_DNA_SCORES[_value(risk_dna)]


def risk_level_to_score(level: str) -> int:
    """Unknown tiers score as balanced."""
    return RISK_LEVEL_SCORES.get(_value(level), 50)


def score_to_risk_dna(score: float) -> RiskDNA:
    """Nearest tier for a 0-100 score (ties go to the safer tier)."""
    return min(
        (RiskDNA(k) for k in RISK_DNA_SCORES),
        key=lambda r: abs(RISK_DNA_SCORES[r.value] - score),
    )


def is_risk_compatible(strategy: StrategyEntity, pilot: PilotEntity) -> bool:
    return abs(risk_level_to_score(strategy.risk_level) - pilot.risk_score) <= RISK_TOLERANCE_BAND


def is_asset_compatible(strategy: StrategyEntity, pilot: PilotEntity) -> bool:
    mix = _value(pilot.asset_mix)
    if mix == AssetMix.DIVERSIFIED.value:
        return True
    tag = _ASSET_TAGS.get(mix)
    if tag is not None:
        return tag in strategy.asset_class
    if mix == AssetMix.YIELD_FOCUSED.value:
        return strategy.type in _YIELD_TYPES
    # unknown / open-ended mixes accept everything
    return True


def ranking_score(strategy: StrategyEntity) -> float:
    drawdown = strategy.max_drawdown or DEFAULT_DRAWDOWN
    return (strategy.avg_return * strategy.win_rate) / max(drawdown, EPS)


def select_strategies_for_pilot(
    pilot: PilotEntity,
    strategies: Iterable[StrategyEntity],
) -> List[StrategyEntity]:
    eligible = [
        s for s in strategies
        if is_risk_compatible(s, pilot) and is_asset_compatible(s, pilot)
    ]
    # sorted() is stable: ties keep catalog order
    return sorted(eligible, key=ranking_score, reverse=True)
