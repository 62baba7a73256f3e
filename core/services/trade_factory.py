import logging
from typing import Optional

from core.common.utils import Clock
from core.domain.entities.pilot_entity import PilotEntity
from core.domain.entities.strategy_entity import StrategyEntity
from core.domain.entities.trade_entity import TradeEntity, TradeReasoning
from core.domain.enums.pilot_enums import TradeStatus
from core.services.explanation_service import ExplanationService
from core.services.trade_id_generator import TradeIdGenerator
from core.services.price_oracle import PriceOracle
from core.services.signal_evaluator import SideSelector

MAX_POSITION_SHARE = 0.1
HARD_CAP_SHARE = 0.2
MIN_NOTIONAL = 1.0
FEE_RATE = 0.001


def position_size(pilot: PilotEntity) -> float:
    """10% of the portfolio scaled by risk score, never above 20%."""
    risk_adjusted = pilot.current_value * MAX_POSITION_SHARE * (pilot.risk_score / 100)
    return min(risk_adjusted, pilot.current_value * HARD_CAP_SHARE)


class TradeFactory:
    """
    Builds a pending trade candidate for (pilot, strategy).

    Returns None, without raising, when the position is below the minimum
    notional or the oracle has no quote.
    """

    def __init__(
        self,
        price_oracle: PriceOracle,
        side_selector: SideSelector,
        explanations: ExplanationService,
        id_generator: TradeIdGenerator,
        clock: Clock,
        logger: Optional[logging.Logger] = None,
    ):
        self._oracle = price_oracle
        self._sides = side_selector
        self._explanations = explanations
        self._ids = id_generator
        self._clock = clock
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def generate(self, pilot: PilotEntity, strategy: StrategyEntity) -> Optional[TradeEntity]:
        size = position_size(pilot)
        if size < MIN_NOTIONAL:
            self._logger.debug("Skip %s for %s: size %.4f below minimum", strategy.id, pilot.id, size)
            return None

        asset = await self._oracle.quote_for_asset_class(strategy.primary_asset_class)
        if asset is None or asset.price <= 0:
            self._logger.debug("Skip %s for %s: no quote for %s", strategy.id, pilot.id, strategy.primary_asset_class)
            return None

        side = self._sides.side_for(strategy)
        confidence = round(strategy.win_rate * 100)
        fees = size * FEE_RATE

        return TradeEntity(
            id=await self._ids.next_id(),
            pilot_id=pilot.id,
            strategy_id=strategy.id,
            timestamp=self._clock.now(),
            asset=asset.symbol,
            asset_name=asset.name,
            side=side,
            quantity=size / asset.price,
            price=asset.price,
            value=size,
            fees=fees,
            net_value=size - fees,
            entry_price=asset.price,
            plain_english=self._explanations.narrate(strategy, asset, side, confidence),
            reasoning=TradeReasoning(
                signals=list(strategy.signals),
                confidence=confidence,
                bot_source=f"{strategy.source}: {strategy.name}",
                expected_outcome=f"{strategy.avg_return * 100:.1f}% expected return",
                risks=[f"Max drawdown: {strategy.max_drawdown * 100:.1f}%"],
            ),
            educational_tip=self._explanations.educational_tip(strategy),
            status=TradeStatus.PENDING,
        )
