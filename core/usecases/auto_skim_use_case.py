import itertools
import logging
import random
from datetime import timedelta
from typing import Any, Dict, List, Optional, Union

from core.common.errors import InvalidPilotStateError, PilotNotFoundError
from core.common.utils import Clock
from core.domain.entities.skim_entity import AutoSkimConfig, AutoSkimStats, SkimOpportunity, SkimResult
from core.domain.enums.pilot_enums import PilotStatus
from core.domain.enums.skim_enums import SkimMode
from core.services.event_bus import EventBus, SkimCompleted, SkimDisabled, SkimEnabled, SkimExecuted
from core.services.pilot_locks import PilotLocks
from core.services.skim_scanner import BPS, SkimMarket, SkimScanner
from core.services.skim_stats_service import SkimStatsService

from ..repositories.pilot_repository import PilotRepository

SKIM_FEE = 0.10
WIN_SHARE_LOW, WIN_SHARE_HIGH = 0.5, 1.2
LOSS_SHARE_LOW, LOSS_SHARE_HIGH = 0.3, 0.7


class AutoSkimUseCase:
    """
    Micro-profit skimming alongside a pilot's regular trading.

    Each tick settles the skims whose hold time has elapsed, then scans once
    per enabled pilot and opens the best opportunity found. A skim wins with
    probability confidence/100; winners return 50-120% of the expected bps,
    losers give back 30-70%. Position size is `max_position_size`% of the
    pilot's value, and with `compound_profits` the net result is booked into
    the pilot's value.

    Scanning pauses for a pilot that is not trading, that already runs
    `max_concurrent_skims`, or that lost more than `max_daily_loss`% today.
    """

    def __init__(
        self,
        pilot_repo: PilotRepository,
        locks: PilotLocks,
        event_bus: EventBus,
        clock: Clock,
        rng: Optional[random.Random] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._pilot_repo = pilot_repo
        self._locks = locks
        self._bus = event_bus
        self._clock = clock
        self._rng = rng or random.Random()
        self._logger = logger or logging.getLogger(self.__class__.__name__)

        self._market = SkimMarket(self._rng)
        self._scanner = SkimScanner(self._market, self._rng)
        self._stats_service = SkimStatsService()
        self._result_ids = itertools.count(1)

        self._configs: Dict[str, AutoSkimConfig] = {}
        self._active: Dict[str, List[SkimOpportunity]] = {}
        self._results: Dict[str, List[SkimResult]] = {}
        self._stats: Dict[str, AutoSkimStats] = {}

    # ---------- pilot management ----------

    async def enable(
        self,
        pilot_id: str,
        config: Union[AutoSkimConfig, Dict[str, Any], None] = None,
    ) -> AutoSkimConfig:
        pilot = await self._pilot_repo.get_by_id(pilot_id)
        if pilot is None:
            raise PilotNotFoundError(pilot_id)
        if pilot.status == PilotStatus.CLOSED:
            raise InvalidPilotStateError(pilot_id, pilot.status, "Cannot enable Auto-Skim: pilot is closed")

        if isinstance(config, AutoSkimConfig):
            config = config.model_dump()
        final = AutoSkimConfig.model_validate({**(config or {}), "enabled": True})

        self._configs[pilot_id] = final
        self._active.setdefault(pilot_id, [])
        self._results.setdefault(pilot_id, [])
        self._stats.setdefault(pilot_id, AutoSkimStats(pilot_id=pilot_id))

        self._logger.info("Auto-Skim enabled for pilot %s in %s mode", pilot_id, final.mode)
        await self._bus.publish(SkimEnabled(pilot_id=pilot_id, config=final))
        return final.model_copy()

    async def disable(self, pilot_id: str) -> bool:
        """Stops new skims; open ones still settle. False if never enabled."""
        config = self._configs.get(pilot_id)
        if config is None:
            return False
        config.enabled = False
        self._logger.info("Auto-Skim disabled for pilot %s", pilot_id)
        await self._bus.publish(SkimDisabled(pilot_id=pilot_id))
        return True

    def set_mode(self, pilot_id: str, mode: Union[SkimMode, str]) -> bool:
        config = self._configs.get(pilot_id)
        if config is None:
            return False
        config.mode = SkimMode(mode)
        self._logger.info("Skim mode changed to %s for pilot %s", config.mode, pilot_id)
        return True

    # ---------- accessors ----------

    def get_config(self, pilot_id: str) -> Optional[AutoSkimConfig]:
        config = self._configs.get(pilot_id)
        return config.model_copy() if config else None

    def get_active_skims(self, pilot_id: str) -> List[SkimOpportunity]:
        return list(self._active.get(pilot_id, []))

    def get_results(self, pilot_id: str, limit: int = 50) -> List[SkimResult]:
        """Most recent `limit` results, oldest first."""
        results = self._results.get(pilot_id, [])
        return list(results[-limit:]) if limit > 0 else []

    def get_stats(self, pilot_id: str) -> Optional[AutoSkimStats]:
        stats = self._stats.get(pilot_id)
        return stats.model_copy(deep=True) if stats else None

    # ---------- tick ----------

    async def execute_once(self) -> int:
        """Settle due skims, then scan. Returns how many skims were opened."""
        now = self._clock.now()
        await self._settle_due(now)

        if not any(c.enabled for c in self._configs.values()):
            return 0

        quotes = self._market.tick()
        opened = 0
        for pilot_id, config in list(self._configs.items()):
            if not config.enabled:
                continue
            try:
                opp = await self._scan_pilot(pilot_id, config, quotes, now)
            except Exception as exc:
                self._logger.exception("Skim scan failed for pilot %s: %s", pilot_id, exc)
                continue
            if opp is None:
                continue
            opened += 1
            self._logger.info("Skim opened: %s on %s for pilot %s", opp.type, opp.asset, pilot_id)
            await self._bus.publish(SkimExecuted(pilot_id=pilot_id, opportunity=opp))
        return opened

    async def _scan_pilot(self, pilot_id, config: AutoSkimConfig, quotes, now) -> Optional[SkimOpportunity]:
        pilot = await self._pilot_repo.get_by_id(pilot_id)
        if pilot is None or not pilot.is_tradeable:
            return None

        active = self._active.setdefault(pilot_id, [])
        if len(active) >= config.max_concurrent_skims:
            return None

        stats = self._stats[pilot_id]
        loss_limit = pilot.current_value * config.max_daily_loss / 100
        if stats.day is not None and stats.day.date() == now.date() and stats.today_profit <= -loss_limit:
            self._logger.debug("Pilot %s hit the daily skim loss limit", pilot_id)
            return None

        opp = self._scanner.scan(config, quotes, now)
        if opp is not None:
            active.append(opp)
        return opp

    async def _settle_due(self, now) -> None:
        for pilot_id, active in list(self._active.items()):
            due = [o for o in active if o.timestamp + timedelta(seconds=o.expected_hold_seconds) <= now]
            for opp in due:
                active.remove(opp)
                try:
                    result = await self._settle(pilot_id, opp, now)
                except Exception as exc:
                    self._logger.exception("Settling skim %s failed: %s", opp.id, exc)
                    continue
                if result is not None:
                    await self._bus.publish(SkimCompleted(pilot_id=pilot_id, result=result))

    async def _settle(self, pilot_id: str, opp: SkimOpportunity, now) -> Optional[SkimResult]:
        config = self._configs[pilot_id]
        async with self._locks.for_pilot(pilot_id):
            pilot = await self._pilot_repo.get_by_id(pilot_id)
            if pilot is None:
                return None

            won = self._rng.random() < opp.confidence / 100
            if won:
                bps = opp.expected_profit_bps * self._rng.uniform(WIN_SHARE_LOW, WIN_SHARE_HIGH)
            else:
                bps = -opp.expected_profit_bps * self._rng.uniform(LOSS_SHARE_LOW, LOSS_SHARE_HIGH)

            position = pilot.current_value * config.max_position_size / 100
            gross = bps / BPS * position
            net = gross - SKIM_FEE

            if config.compound_profits and pilot.status != PilotStatus.CLOSED:
                pilot.current_value = max(0.0, pilot.current_value + net)
                pilot.recompute_returns()
                pilot.last_activity = now
                await self._pilot_repo.save(pilot)

        result = SkimResult(
            id=f"skimres_{next(self._result_ids):012d}",
            opportunity_id=opp.id,
            pilot_id=pilot_id,
            timestamp=now,
            asset=opp.asset,
            side=opp.side,
            entry_price=opp.entry_price,
            exit_price=opp.entry_price * (1 + bps / BPS),
            position_value=position,
            gross_profit=gross,
            fees=SKIM_FEE,
            net_profit=net,
            profit_bps=bps,
            hold_time_ms=opp.expected_hold_seconds * 1000,
            skim_type=opp.type,
            successful=won,
            what_worked=opp.edge_source if won else "",
            what_didnt="" if won else "Market moved against expectation",
        )
        results = self._results.setdefault(pilot_id, [])
        results.append(result)
        stats = self._stats.setdefault(pilot_id, AutoSkimStats(pilot_id=pilot_id))
        self._stats_service.record(stats, results, result)

        self._logger.info(
            "Skim %s: %.1f bps on %s for pilot %s", "won" if won else "lost", bps, opp.asset, pilot_id
        )
        return result
