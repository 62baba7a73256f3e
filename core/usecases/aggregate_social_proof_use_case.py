import logging
from typing import Dict, List, Optional

from core.domain.entities.social_proof_entity import SocialProofEntity
from core.domain.entities.trade_entity import TradeEntity
from core.services.event_bus import EventBus, SocialProofUpdated
from core.services.social_proof_service import SocialProofService
from core.services.strategy_catalog import StrategyCatalog

from ..repositories.pilot_repository import PilotRepository
from ..repositories.trade_repository import TradeRepository


class AggregateSocialProofUseCase:
    """
    Ranks every pilot against its deposit and risk cohorts and publishes the
    result. Read-only over pilots, so no pilot lock is taken; the latest result
    per pilot is kept for on-demand reads.
    """

    def __init__(
        self,
        pilot_repo: PilotRepository,
        trade_repo: TradeRepository,
        catalog: StrategyCatalog,
        service: SocialProofService,
        event_bus: EventBus,
        logger: Optional[logging.Logger] = None,
    ):
        self._pilot_repo = pilot_repo
        self._trade_repo = trade_repo
        self._catalog = catalog
        self._service = service
        self._bus = event_bus
        self._logger = logger or logging.getLogger(self.__class__.__name__)
        self._latest: Dict[str, SocialProofEntity] = {}

    def latest(self, pilot_id: str) -> Optional[SocialProofEntity]:
        return self._latest.get(pilot_id)

    async def execute_once(self) -> List[SocialProofEntity]:
        pilots = await self._pilot_repo.list_all()
        if not pilots:
            return []

        trades_by_pilot: Dict[str, List[TradeEntity]] = {}
        for p in pilots:
            trades_by_pilot[p.id] = await self._trade_repo.list_for_pilot(p.id)
        names = {s.id: s.name for s in self._catalog.all()}

        results: List[SocialProofEntity] = []
        for subject in pilots:
            try:
                proof = self._service.build(subject, pilots, trades_by_pilot, names)
            except Exception as exc:
                self._logger.exception("Social proof failed for pilot %s: %s", subject.id, exc)
                continue
            self._latest[subject.id] = proof
            results.append(proof)
            await self._bus.publish(SocialProofUpdated(pilot_id=subject.id, social_proof=proof))

        self._logger.debug("Social proof refreshed for %d pilots", len(results))
        return results
