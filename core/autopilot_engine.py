import logging
import random
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from core.common.errors import PilotNotFoundError
from core.common.utils import Clock
from core.domain.entities.exit_ramp_entity import ExitRampEntity
from core.domain.entities.global_stats_entity import GlobalStats
from core.domain.entities.pilot_entity import PilotEntity, PilotPreferences
from core.domain.entities.risk_discovery_entity import RiskDNADiscoveryEntity
from core.domain.entities.skim_entity import AutoSkimConfig, AutoSkimStats, SkimOpportunity, SkimResult
from core.domain.entities.snapshot_entity import SnapshotEntity
from core.domain.entities.social_proof_entity import SocialProofEntity
from core.domain.entities.strategy_entity import StrategyEntity
from core.domain.entities.time_travel_entity import TimeTravelResult
from core.domain.entities.trade_entity import TradeEntity
from core.domain.entities.watch_stream_entity import WatchStreamEntity
from core.domain.entities.withdrawal_entity import AvailableBalance, WithdrawalResult
from core.domain.enums.pilot_enums import ExitStrategy, TimeTravelScenario
from core.domain.enums.skim_enums import SkimMode
from core.repositories.exit_ramp_repository import ExitRampRepository
from core.repositories.pilot_repository import PilotRepository
from core.repositories.risk_discovery_repository import RiskDiscoveryRepository
from core.repositories.snapshot_repository import SnapshotRepository
from core.repositories.trade_repository import TradeRepository
from core.repositories.watch_stream_repository import WatchStreamRepository
from core.services.allocation_selector import select_strategies_for_pilot
from core.services.event_bus import EventBus, Initialized
from core.services.execution_scheduler import ExecutionScheduler
from core.services.explanation_service import ExplanationService
from core.services.global_stats_service import GlobalStatsTracker
from core.services.pilot_locks import PilotLocks
from core.services.trade_id_generator import TradeIdGenerator
from core.services.price_oracle import PriceOracle, StaticPriceOracle
from core.services.risk_discovery_service import RiskDiscoveryService
from core.services.signal_evaluator import (
    LongBiasedSideSelector,
    ReturnSource,
    SideSelector,
    SignalEvaluator,
    SimulatedReturnSource,
    WinRateSignalEvaluator,
)
from core.services.snapshot_service import SnapshotService
from core.services.social_proof_service import SocialProofService
from core.services.strategy_catalog import StrategyCatalog
from core.services.trade_factory import TradeFactory
from core.usecases.aggregate_social_proof_use_case import AggregateSocialProofUseCase
from core.usecases.auto_skim_use_case import AutoSkimUseCase
from core.usecases.create_pilot_use_case import CreatePilotUseCase
from core.usecases.execute_trade_use_case import ExecuteTradeUseCase
from core.usecases.initiate_exit_ramp_use_case import InitiateExitRampUseCase
from core.usecases.pilot_controls_use_case import PilotControlsUseCase
from core.usecases.run_learning_loop_use_case import RunLearningLoopUseCase
from core.usecases.run_trading_cycle_use_case import RunTradingCycleUseCase
from core.usecases.time_travel_use_case import TimeTravelUseCase


class AutoPilotEngine:
    """
    Facade over the pilot registry, the periodic loops and the on-demand
    operations.

    Every collaborator is injected; nothing here is a process-wide singleton,
    so tests can build as many isolated engines as they like. The periodic
    loops are driven from outside (see workers/autopilot_supervisor.py) through
    `run_trading_cycle`, `run_learning_loop` and `run_social_proof`.
    """

    def __init__(
        self,
        pilot_repo: PilotRepository,
        trade_repo: TradeRepository,
        watch_repo: WatchStreamRepository,
        discovery_repo: RiskDiscoveryRepository,
        exit_repo: ExitRampRepository,
        snapshot_repo: SnapshotRepository,
        catalog: Optional[StrategyCatalog] = None,
        price_oracle: Optional[PriceOracle] = None,
        signal_evaluator: Optional[SignalEvaluator] = None,
        side_selector: Optional[SideSelector] = None,
        return_source: Optional[ReturnSource] = None,
        event_bus: Optional[EventBus] = None,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
        execution_delay_sec: float = 2.0,
        top_n: int = 10,
        initial_allocation_n: int = 5,
        admission_factor: float = 0.1,
        recent_capacity: int = 20,
        logger: Optional[logging.Logger] = None,
    ):
        self._logger = logger or logging.getLogger(self.__class__.__name__)
        rng = rng or random.Random()

        self._pilot_repo = pilot_repo
        self._trade_repo = trade_repo
        self._watch_repo = watch_repo
        self._discovery_repo = discovery_repo
        self._exit_repo = exit_repo
        self._snapshot_repo = snapshot_repo

        self.catalog = catalog or StrategyCatalog()
        self.event_bus = event_bus or EventBus()
        self.clock = clock or Clock()
        self._locks = PilotLocks()
        self._stats = GlobalStatsTracker()
        self._explanations = ExplanationService()
        self._snapshots = SnapshotService()

        factory = TradeFactory(
            price_oracle=price_oracle or StaticPriceOracle(rng=rng),
            side_selector=side_selector or LongBiasedSideSelector(rng=rng),
            explanations=self._explanations,
            id_generator=TradeIdGenerator(trade_repo),
            clock=self.clock,
        )
        self._executor = ExecuteTradeUseCase(
            pilot_repo, trade_repo, watch_repo, self._locks, self.event_bus, self._stats, self.clock,
            recent_capacity=recent_capacity,
        )
        self._scheduler = ExecutionScheduler(self._executor.execute, execution_delay_sec)

        self._create = CreatePilotUseCase(
            pilot_repo, watch_repo, self.catalog, factory, self._executor, self._explanations,
            self._locks, self.event_bus, self._stats, self.clock,
            initial_allocation_n=initial_allocation_n,
        )
        self._trading = RunTradingCycleUseCase(
            pilot_repo, watch_repo, self.catalog,
            signal_evaluator or WinRateSignalEvaluator(factor=admission_factor, rng=rng),
            factory, self._scheduler, self._locks, self.clock,
            top_n=top_n,
        )
        self._learning = RunLearningLoopUseCase(
            pilot_repo, trade_repo, discovery_repo, snapshot_repo,
            RiskDiscoveryService(), self._snapshots,
            return_source or SimulatedReturnSource(rng=rng),
            self._locks, self._stats, self.clock,
        )
        self._social = AggregateSocialProofUseCase(
            pilot_repo, trade_repo, self.catalog, SocialProofService(), self.event_bus,
        )
        self._time_travel = TimeTravelUseCase(pilot_repo, trade_repo, self.clock, rng=rng)
        self._exit_ramp = InitiateExitRampUseCase(
            pilot_repo, trade_repo, watch_repo, exit_repo, self._scheduler,
            self._locks, self.event_bus, self.clock,
        )
        self._controls = PilotControlsUseCase(
            pilot_repo, trade_repo, watch_repo, self._scheduler,
            self._locks, self.event_bus, self._stats, self.clock,
        )
        self._skim = AutoSkimUseCase(pilot_repo, self._locks, self.event_bus, self.clock, rng=rng)

    # ---------- lifecycle ----------

    async def initialize(self) -> None:
        for repo in (
            self._pilot_repo,
            self._trade_repo,
            self._watch_repo,
            self._discovery_repo,
            self._exit_repo,
            self._snapshot_repo,
        ):
            await repo.ensure_indexes()
        self._logger.info("AutoPilot engine ready with %d strategies", len(self.catalog))
        await self.event_bus.publish(Initialized(strategy_count=len(self.catalog)))

    async def shutdown(self) -> None:
        await self._scheduler.cancel_all()

    # ---------- pilots ----------

    async def create_pilot(
        self,
        user_id: str,
        initial_deposit: float,
        preferences: Union[PilotPreferences, Dict[str, Any], None] = None,
    ) -> PilotEntity:
        if isinstance(preferences, dict):
            preferences = PilotPreferences.model_validate(preferences)
        return await self._create.execute(user_id, initial_deposit, preferences)

    async def get_pilot(self, pilot_id: str, record_view: bool = False) -> Optional[PilotEntity]:
        """`record_view=True` counts a user view, which feeds risk discovery."""
        pilot = await self._pilot_repo.get_by_id(pilot_id)
        if pilot is None or not record_view:
            return pilot
        async with self._locks.for_pilot(pilot_id):
            pilot = await self._pilot_repo.get_by_id(pilot_id)
            if pilot is not None:
                pilot.view_count += 1
                await self._pilot_repo.save(pilot)
            return pilot

    async def get_pilot_trades(self, pilot_id: str) -> List[TradeEntity]:
        return await self._trade_repo.list_for_pilot(pilot_id)

    async def get_watch_stream(self, pilot_id: str) -> Optional[WatchStreamEntity]:
        return await self._watch_repo.get_by_pilot(pilot_id)

    async def get_snapshot(self, pilot_id: str) -> Optional[SnapshotEntity]:
        pilot = await self._pilot_repo.get_by_id(pilot_id)
        if pilot is None:
            return None
        history = await self._snapshot_repo.list_for_pilot(pilot_id)
        trades = await self._trade_repo.list_for_pilot(pilot_id)
        return self._snapshots.build(pilot, self.clock.now(), history=history, trades=trades)

    async def get_snapshot_history(self, pilot_id: str, limit: int = 100) -> List[SnapshotEntity]:
        return await self._snapshot_repo.list_for_pilot(pilot_id, limit=limit)

    async def enable_watch_mode(self, pilot_id: str) -> bool:
        return await self._controls.set_watch_mode(pilot_id, True)

    async def disable_watch_mode(self, pilot_id: str) -> bool:
        return await self._controls.set_watch_mode(pilot_id, False)

    async def select_strategies_for_pilot(self, pilot_id: str) -> List[StrategyEntity]:
        pilot = await self._pilot_repo.get_by_id(pilot_id)
        if pilot is None:
            raise PilotNotFoundError(pilot_id)
        return select_strategies_for_pilot(pilot, self.catalog.all())

    async def get_risk_discovery(self, pilot_id: str) -> Optional[RiskDNADiscoveryEntity]:
        return await self._discovery_repo.get_by_pilot(pilot_id)

    def get_social_proof(self, pilot_id: str) -> Optional[SocialProofEntity]:
        return self._social.latest(pilot_id)

    # ---------- on-demand workflows ----------

    async def time_travel(
        self,
        pilot_id: str,
        scenario: Union[TimeTravelScenario, str],
        custom_start_date: Optional[datetime] = None,
    ) -> TimeTravelResult:
        return await self._time_travel.execute(pilot_id, scenario, custom_start_date)

    async def initiate_exit_ramp(self, pilot_id: str, strategy: Union[ExitStrategy, str]) -> ExitRampEntity:
        return await self._exit_ramp.execute(pilot_id, strategy)

    async def get_exit_ramp(self, pilot_id: str) -> Optional[ExitRampEntity]:
        return await self._exit_repo.get_by_pilot(pilot_id)

    async def pause_trading(self, pilot_id: str) -> PilotEntity:
        return await self._controls.pause(pilot_id)

    async def resume_trading(self, pilot_id: str) -> PilotEntity:
        return await self._controls.resume(pilot_id)

    async def withdraw_all(self, pilot_id: str) -> WithdrawalResult:
        return await self._controls.withdraw_all(pilot_id)

    async def withdraw_partial(self, pilot_id: str, amount: float) -> WithdrawalResult:
        return await self._controls.withdraw_partial(pilot_id, amount)

    async def get_available_balance(self, pilot_id: str) -> AvailableBalance:
        return await self._controls.available_balance(pilot_id)

    # ---------- auto-skim ----------

    async def enable_auto_skim(
        self,
        pilot_id: str,
        config: Union[AutoSkimConfig, Dict[str, Any], None] = None,
    ) -> AutoSkimConfig:
        return await self._skim.enable(pilot_id, config)

    async def disable_auto_skim(self, pilot_id: str) -> bool:
        return await self._skim.disable(pilot_id)

    def set_skim_mode(self, pilot_id: str, mode: Union[SkimMode, str]) -> bool:
        return self._skim.set_mode(pilot_id, mode)

    def get_skim_config(self, pilot_id: str) -> Optional[AutoSkimConfig]:
        return self._skim.get_config(pilot_id)

    def get_active_skims(self, pilot_id: str) -> List[SkimOpportunity]:
        return self._skim.get_active_skims(pilot_id)

    def get_skim_results(self, pilot_id: str, limit: int = 50) -> List[SkimResult]:
        return self._skim.get_results(pilot_id, limit)

    def get_skim_stats(self, pilot_id: str) -> Optional[AutoSkimStats]:
        return self._skim.get_stats(pilot_id)

    # ---------- catalog & stats ----------

    def get_global_stats(self) -> GlobalStats:
        return self._stats.snapshot()

    def get_absorbed_strategies(self) -> List[StrategyEntity]:
        return self.catalog.all()

    # ---------- ticks ----------

    async def run_trading_cycle(self) -> int:
        return await self._trading.execute_once()

    async def run_learning_loop(self) -> int:
        return await self._learning.execute_once()

    async def run_social_proof(self) -> List[SocialProofEntity]:
        return await self._social.execute_once()

    async def run_skim_scan(self) -> int:
        return await self._skim.execute_once()

    async def drain_pending(self) -> None:
        """Wait for every delayed execution scheduled so far."""
        await self._scheduler.drain()
