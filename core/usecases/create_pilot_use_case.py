import logging
import uuid
from typing import List, Optional

from core.common.utils import Clock
from core.domain.entities.pilot_entity import DayReturn, PilotEntity, PilotPreferences
from core.domain.entities.trade_entity import TradeEntity
from core.domain.entities.watch_stream_entity import WatchStreamEntity
from core.domain.enums.pilot_enums import CommentaryType
from core.services.allocation_selector import risk_dna_to_score, select_strategies_for_pilot
from core.services.event_bus import EventBus, PilotCreated
from core.services.explanation_service import ExplanationService
from core.services.global_stats_service import GlobalStatsTracker
from core.services.pilot_locks import PilotLocks
from core.services.strategy_catalog import StrategyCatalog
from core.services.trade_factory import TradeFactory

from ..repositories.pilot_repository import PilotRepository
from ..repositories.watch_stream_repository import WatchStreamRepository
from .execute_trade_use_case import ExecuteTradeUseCase


class CreatePilotUseCase:
    """
    Registers a new pilot with its watch stream, then deploys the opening
    allocation: one trade for each of the top `initial_allocation_n` ranked
    strategies, executed right away without the admission gate.
    """

    def __init__(
        self,
        pilot_repo: PilotRepository,
        watch_repo: WatchStreamRepository,
        catalog: StrategyCatalog,
        trade_factory: TradeFactory,
        executor: ExecuteTradeUseCase,
        explanations: ExplanationService,
        locks: PilotLocks,
        event_bus: EventBus,
        stats: GlobalStatsTracker,
        clock: Clock,
        initial_allocation_n: int = 5,
        logger: Optional[logging.Logger] = None,
    ):
        self._pilot_repo = pilot_repo
        self._watch_repo = watch_repo
        self._catalog = catalog
        self._factory = trade_factory
        self._executor = executor
        self._explanations = explanations
        self._locks = locks
        self._bus = event_bus
        self._stats = stats
        self._clock = clock
        self._initial_n = initial_allocation_n
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def execute(
        self,
        user_id: str,
        initial_deposit: float,
        preferences: Optional[PilotPreferences] = None,
    ) -> PilotEntity:
        if initial_deposit <= 0:
            raise ValueError("initial_deposit must be positive")

        prefs = (preferences or PilotPreferences()).chosen()
        now = self._clock.now()
        pilot_no = await self._pilot_repo.count() + 1

        pilot = PilotEntity(
            id=f"pilot_{uuid.uuid4().hex[:16]}",
            user_id=user_id,
            name=f"Pilot #{pilot_no}",
            initial_deposit=initial_deposit,
            total_deposited=initial_deposit,
            current_value=initial_deposit,
            start_date=now,
            last_deposit=now,
            last_activity=now,
            best_day=DayReturn(date=now, return_=0.0),
            worst_day=DayReturn(date=now, return_=0.0),
            **prefs,
        )
        pilot.risk_score = risk_dna_to_score(pilot.risk_dna)

        stream = WatchStreamEntity(pilot_id=pilot.id)
        stream.add_commentary(
            now, self._explanations.welcome_message(pilot, len(self._catalog)), CommentaryType.INFO
        )

        async with self._locks.for_pilot(pilot.id):
            await self._pilot_repo.save(pilot)
            await self._watch_repo.save(stream)
            self._stats.pilot_created(initial_deposit)
            opening = await self._opening_trades(pilot, stream)

        for trade in opening:
            await self._executor.execute(pilot.id, trade)

        self._logger.info(
            "Created %s (%s) for user %s: deposit=%.2f risk=%s opening_trades=%d",
            pilot.id, pilot.name, user_id, initial_deposit, pilot.risk_dna, len(opening),
        )
        await self._bus.publish(PilotCreated(pilot=pilot))
        return (await self._pilot_repo.get_by_id(pilot.id)) or pilot

    async def _opening_trades(self, pilot: PilotEntity, stream: WatchStreamEntity) -> List[TradeEntity]:
        if self._initial_n <= 0:
            return []
        trades: List[TradeEntity] = []
        for strategy in select_strategies_for_pilot(pilot, self._catalog.all())[: self._initial_n]:
            trade = await self._factory.generate(pilot, strategy)
            if trade is None:
                continue
            stream.pending_trades.append(trade)
            trades.append(trade)
        if trades:
            await self._watch_repo.save(stream)
        return trades
