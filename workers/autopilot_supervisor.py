import logging
import random
from typing import Any, List, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from adapters.external.database.exit_ramp_repository_mongodb import ExitRampRepositoryMongoDB
from adapters.external.database.mongodb_client import get_database, get_mongo_client
from adapters.external.database.pilot_repository_mongodb import PilotRepositoryMongoDB
from adapters.external.database.risk_discovery_repository_mongodb import RiskDiscoveryRepositoryMongoDB
from adapters.external.database.snapshot_repository_mongodb import SnapshotRepositoryMongoDB
from adapters.external.database.trade_repository_mongodb import TradeRepositoryMongoDB
from adapters.external.database.watch_stream_repository_mongodb import WatchStreamRepositoryMongoDB
from adapters.external.market_data.price_oracle_http_client import PriceOracleHttpClient
from adapters.external.memory.in_memory_repositories import (
    InMemoryExitRampRepository,
    InMemoryPilotRepository,
    InMemoryRiskDiscoveryRepository,
    InMemorySnapshotRepository,
    InMemoryTradeRepository,
    InMemoryWatchStreamRepository,
)
from adapters.external.notify.event_log_subscriber import EventLogSubscriber
from adapters.external.notify.telegram_notifier import TelegramNotifier
from config.settings import settings
from core.autopilot_engine import AutoPilotEngine
from core.services.price_oracle import PriceOracle, StaticPriceOracle
from workers.periodic_task import PeriodicTask


def build_in_memory_engine(**overrides: Any) -> AutoPilotEngine:
    """Engine over in-memory repositories. Keyword overrides go straight to AutoPilotEngine."""
    return AutoPilotEngine(
        pilot_repo=InMemoryPilotRepository(),
        trade_repo=InMemoryTradeRepository(),
        watch_repo=InMemoryWatchStreamRepository(),
        discovery_repo=InMemoryRiskDiscoveryRepository(),
        exit_repo=InMemoryExitRampRepository(),
        snapshot_repo=InMemorySnapshotRepository(),
        **overrides,
    )


def build_mongo_engine(db: AsyncIOMotorDatabase, **overrides: Any) -> AutoPilotEngine:
    return AutoPilotEngine(
        pilot_repo=PilotRepositoryMongoDB(db),
        trade_repo=TradeRepositoryMongoDB(db),
        watch_repo=WatchStreamRepositoryMongoDB(db),
        discovery_repo=RiskDiscoveryRepositoryMongoDB(db),
        exit_repo=ExitRampRepositoryMongoDB(db),
        snapshot_repo=SnapshotRepositoryMongoDB(db),
        **overrides,
    )


def _price_oracle(rng: random.Random) -> PriceOracle:
    if settings.PRICE_ORACLE_BASE_URL:
        return PriceOracleHttpClient(
            settings.PRICE_ORACLE_BASE_URL,
            timeout_sec=settings.PRICE_ORACLE_TIMEOUT_SEC,
        )
    return StaticPriceOracle(rng=rng)


class AutoPilotSupervisor:
    """
    High-level supervisor for the api-autopilot process.

    Responsibilities:
    - Connect to Mongo (or use the in-memory store), ensure indexes.
    - Wire repositories, collaborators and the engine.
    - Subscribe event sinks (log always, Telegram when configured).
    - Start the background loops: trading cycle, learning loop, social proof
      and the Auto-Skim scanner.
    """

    def __init__(self, mongo_db: Optional[AsyncIOMotorDatabase] = None, backend: Optional[str] = None):
        self._logger = logging.getLogger(self.__class__.__name__)
        self._backend = (backend or settings.STORE_BACKEND).lower()
        self._db = mongo_db
        self._mongo_client: AsyncIOMotorClient | None = None
        self._telegram: TelegramNotifier | None = None

        self.engine: AutoPilotEngine | None = None
        self.tasks: List[PeriodicTask] = []

    async def start(self, start_loops: bool = True) -> AutoPilotEngine:
        rng = random.Random()
        options = dict(
            price_oracle=_price_oracle(rng),
            rng=rng,
            execution_delay_sec=settings.EXECUTION_DELAY_SEC,
            top_n=settings.TRADING_TOP_N,
            initial_allocation_n=settings.INITIAL_ALLOCATION_N,
            admission_factor=settings.ADMISSION_FACTOR,
            recent_capacity=settings.RECENT_TRADES_CAPACITY,
        )

        if self._backend == "memory":
            self.engine = build_in_memory_engine(**options)
        else:
            if self._db is None:
                self._mongo_client = get_mongo_client()
                self._db = get_database(self._mongo_client)
            await self._db.command("ping")
            self._logger.info("MongoDB ping ok.")
            self.engine = build_mongo_engine(self._db, **options)

        self.engine.event_bus.subscribe(EventLogSubscriber())
        if settings.TELEGRAM_BOT_TOKEN and settings.TELEGRAM_CHAT_ID:
            self._telegram = TelegramNotifier(
                bot_token=settings.TELEGRAM_BOT_TOKEN,
                chat_id=settings.TELEGRAM_CHAT_ID,
            )
            self.engine.event_bus.subscribe(self._telegram)

        await self.engine.initialize()

        self.tasks = [
            PeriodicTask("trading-cycle", self.engine.run_trading_cycle, settings.TRADING_CYCLE_INTERVAL_SEC),
            PeriodicTask("learning-loop", self.engine.run_learning_loop, settings.LEARNING_INTERVAL_SEC),
            PeriodicTask("social-proof", self.engine.run_social_proof, settings.SOCIAL_PROOF_INTERVAL_SEC),
            PeriodicTask("auto-skim", self.engine.run_skim_scan, settings.SKIM_SCAN_INTERVAL_SEC),
        ]
        if start_loops:
            for task in self.tasks:
                task.start()

        self._logger.info("AutoPilot supervisor started (backend=%s, loops=%s)", self._backend, start_loops)
        return self.engine

    async def stop(self) -> None:
        """
        Gracefully stop the loops, pending executions and owned connections.
        """
        for task in self.tasks:
            await task.stop()

        if self.engine is not None:
            await self.engine.shutdown()

        if self._telegram is not None:
            await self._telegram.aclose()

        # only close what we opened
        if self._mongo_client is not None:
            self._mongo_client.close()
        self._logger.info("AutoPilot supervisor stopped")
