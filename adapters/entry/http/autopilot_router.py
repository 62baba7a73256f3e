import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field, field_validator

from core.autopilot_engine import AutoPilotEngine
from core.common.errors import InsufficientFundsError, InvalidPilotStateError, PilotNotFoundError
from core.common.utils import ensure_utc
from core.domain.entities.exit_ramp_entity import ExitRampEntity
from core.domain.entities.global_stats_entity import GlobalStats
from core.domain.entities.pilot_entity import PilotEntity, PilotPreferences
from core.domain.entities.risk_discovery_entity import RiskDNADiscoveryEntity
from core.domain.entities.skim_entity import AutoSkimConfig, AutoSkimStats, SkimOpportunity, SkimResult
from core.domain.entities.snapshot_entity import SnapshotEntity
from core.domain.entities.strategy_entity import StrategyEntity
from core.domain.entities.time_travel_entity import TimeTravelResult
from core.domain.entities.trade_entity import TradeEntity
from core.domain.entities.watch_stream_entity import WatchStreamEntity
from core.domain.entities.withdrawal_entity import AvailableBalance, WithdrawalResult
from core.domain.enums.pilot_enums import ExitStrategy, TimeTravelScenario
from core.domain.enums.skim_enums import SkimMode

from .deps import get_engine

router = APIRouter(prefix="/autopilot", tags=["autopilot"])
logger = logging.getLogger("AutoPilotRouter")


@contextmanager
def _domain_errors():
    try:
        yield
    except PilotNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except (InvalidPilotStateError, InsufficientFundsError) as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


# =========================
# DTOs
# =========================

class CreatePilotDTO(BaseModel):
    user_id: str = Field(..., examples=["user_123"])
    initial_deposit: float = Field(..., gt=0.0)
    preferences: PilotPreferences = Field(default_factory=PilotPreferences)

    @field_validator("user_id")
    @classmethod
    def _strip_user(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("user_id is required")
        return v


class TimeTravelDTO(BaseModel):
    scenario: TimeTravelScenario = TimeTravelScenario.LAST_MONTH
    custom_start_date: Optional[datetime] = None

    @field_validator("custom_start_date")
    @classmethod
    def _utc_start(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else None


class ExitRampDTO(BaseModel):
    strategy: ExitStrategy = ExitStrategy.OPTIMAL


class WithdrawDTO(BaseModel):
    amount: Optional[float] = Field(None, gt=0.0, description="Omit to withdraw everything and close the pilot.")


class SkimModeDTO(BaseModel):
    mode: SkimMode


# =========================
# Pilots
# =========================

@router.post("/pilots", response_model=PilotEntity, status_code=201)
async def create_pilot(dto: CreatePilotDTO, engine: AutoPilotEngine = Depends(get_engine)):
    with _domain_errors():
        return await engine.create_pilot(dto.user_id, dto.initial_deposit, dto.preferences)


async def _require_pilot(engine: AutoPilotEngine, pilot_id: str, record_view: bool = False) -> PilotEntity:
    pilot = await engine.get_pilot(pilot_id, record_view=record_view)
    if pilot is None:
        raise HTTPException(status_code=404, detail=f"Pilot not found: {pilot_id}")
    return pilot


@router.get("/pilots/{pilot_id}", response_model=PilotEntity)
async def get_pilot(pilot_id: str, engine: AutoPilotEngine = Depends(get_engine)):
    return await _require_pilot(engine, pilot_id, record_view=True)


@router.get("/pilots/{pilot_id}/trades", response_model=List[TradeEntity])
async def get_pilot_trades(pilot_id: str, engine: AutoPilotEngine = Depends(get_engine)):
    await _require_pilot(engine, pilot_id)
    return await engine.get_pilot_trades(pilot_id)


@router.get("/pilots/{pilot_id}/watch", response_model=WatchStreamEntity)
async def get_watch_stream(pilot_id: str, engine: AutoPilotEngine = Depends(get_engine)):
    stream = await engine.get_watch_stream(pilot_id)
    if stream is None:
        raise HTTPException(status_code=404, detail=f"Pilot not found: {pilot_id}")
    return stream


@router.post("/pilots/{pilot_id}/watch")
async def enable_watch_mode(pilot_id: str, engine: AutoPilotEngine = Depends(get_engine)) -> Dict[str, Any]:
    if not await engine.enable_watch_mode(pilot_id):
        raise HTTPException(status_code=404, detail=f"Pilot not found: {pilot_id}")
    return {"pilot_id": pilot_id, "enabled": True}


@router.delete("/pilots/{pilot_id}/watch")
async def disable_watch_mode(pilot_id: str, engine: AutoPilotEngine = Depends(get_engine)) -> Dict[str, Any]:
    if not await engine.disable_watch_mode(pilot_id):
        raise HTTPException(status_code=404, detail=f"Pilot not found: {pilot_id}")
    return {"pilot_id": pilot_id, "enabled": False}


@router.get("/pilots/{pilot_id}/snapshot", response_model=SnapshotEntity)
async def get_snapshot(pilot_id: str, engine: AutoPilotEngine = Depends(get_engine)):
    snapshot = await engine.get_snapshot(pilot_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail=f"Pilot not found: {pilot_id}")
    return snapshot


@router.get("/pilots/{pilot_id}/snapshots", response_model=List[SnapshotEntity])
async def get_snapshot_history(
    pilot_id: str,
    limit: int = Query(100, ge=1, le=1000),
    engine: AutoPilotEngine = Depends(get_engine),
):
    await _require_pilot(engine, pilot_id)
    return await engine.get_snapshot_history(pilot_id, limit=limit)


@router.get("/pilots/{pilot_id}/strategies", response_model=List[StrategyEntity])
async def get_pilot_strategies(
    pilot_id: str,
    limit: int = Query(10, ge=1, le=100),
    engine: AutoPilotEngine = Depends(get_engine),
):
    with _domain_errors():
        ranked = await engine.select_strategies_for_pilot(pilot_id)
    return ranked[:limit]


@router.get("/pilots/{pilot_id}/risk-dna", response_model=Optional[RiskDNADiscoveryEntity])
async def get_risk_discovery(pilot_id: str, engine: AutoPilotEngine = Depends(get_engine)):
    """Null until the pilot has enough trades for a discovery."""
    await _require_pilot(engine, pilot_id)
    return await engine.get_risk_discovery(pilot_id)


# =========================
# Workflows
# =========================

@router.post("/pilots/{pilot_id}/time-travel", response_model=TimeTravelResult)
async def time_travel(pilot_id: str, dto: TimeTravelDTO, engine: AutoPilotEngine = Depends(get_engine)):
    with _domain_errors():
        return await engine.time_travel(pilot_id, dto.scenario, dto.custom_start_date)


@router.post("/pilots/{pilot_id}/exit-ramp", response_model=ExitRampEntity)
async def initiate_exit_ramp(pilot_id: str, dto: ExitRampDTO, engine: AutoPilotEngine = Depends(get_engine)):
    with _domain_errors():
        return await engine.initiate_exit_ramp(pilot_id, dto.strategy)


@router.post("/pilots/{pilot_id}/pause", response_model=PilotEntity)
async def pause_trading(pilot_id: str, engine: AutoPilotEngine = Depends(get_engine)):
    with _domain_errors():
        return await engine.pause_trading(pilot_id)


@router.post("/pilots/{pilot_id}/resume", response_model=PilotEntity)
async def resume_trading(pilot_id: str, engine: AutoPilotEngine = Depends(get_engine)):
    with _domain_errors():
        return await engine.resume_trading(pilot_id)


@router.post("/pilots/{pilot_id}/withdraw", response_model=WithdrawalResult)
async def withdraw(pilot_id: str, dto: WithdrawDTO, engine: AutoPilotEngine = Depends(get_engine)):
    with _domain_errors():
        if dto.amount is None:
            result = await engine.withdraw_all(pilot_id)
        else:
            result = await engine.withdraw_partial(pilot_id, dto.amount)
    logger.info("Withdrawal for %s: requested=%.2f net=%.2f", pilot_id, result.amount_requested, result.net_amount)
    return result


@router.get("/pilots/{pilot_id}/balance", response_model=AvailableBalance)
async def get_available_balance(pilot_id: str, engine: AutoPilotEngine = Depends(get_engine)):
    with _domain_errors():
        return await engine.get_available_balance(pilot_id)


# =========================
# Auto-Skim
# =========================

@router.post("/pilots/{pilot_id}/skim", response_model=AutoSkimConfig)
async def enable_auto_skim(
    pilot_id: str,
    dto: Optional[AutoSkimConfig] = None,
    engine: AutoPilotEngine = Depends(get_engine),
):
    """Body fields override the defaults; an empty body takes them all."""
    with _domain_errors():
        return await engine.enable_auto_skim(pilot_id, dto.model_dump(exclude_unset=True) if dto else None)


@router.delete("/pilots/{pilot_id}/skim")
async def disable_auto_skim(pilot_id: str, engine: AutoPilotEngine = Depends(get_engine)) -> Dict[str, Any]:
    if not await engine.disable_auto_skim(pilot_id):
        raise HTTPException(status_code=404, detail=f"Auto-Skim not enabled for pilot: {pilot_id}")
    return {"pilot_id": pilot_id, "enabled": False}


@router.get("/pilots/{pilot_id}/skim", response_model=AutoSkimConfig)
async def get_skim_config(pilot_id: str, engine: AutoPilotEngine = Depends(get_engine)):
    config = engine.get_skim_config(pilot_id)
    if config is None:
        raise HTTPException(status_code=404, detail=f"Auto-Skim not enabled for pilot: {pilot_id}")
    return config


@router.put("/pilots/{pilot_id}/skim/mode", response_model=AutoSkimConfig)
async def set_skim_mode(pilot_id: str, dto: SkimModeDTO, engine: AutoPilotEngine = Depends(get_engine)):
    if not engine.set_skim_mode(pilot_id, dto.mode):
        raise HTTPException(status_code=404, detail=f"Auto-Skim not enabled for pilot: {pilot_id}")
    return engine.get_skim_config(pilot_id)


@router.get("/pilots/{pilot_id}/skim/active", response_model=List[SkimOpportunity])
async def get_active_skims(pilot_id: str, engine: AutoPilotEngine = Depends(get_engine)):
    return engine.get_active_skims(pilot_id)


@router.get("/pilots/{pilot_id}/skim/results", response_model=List[SkimResult])
async def get_skim_results(
    pilot_id: str,
    limit: int = Query(50, ge=1, le=500),
    engine: AutoPilotEngine = Depends(get_engine),
):
    return engine.get_skim_results(pilot_id, limit=limit)


@router.get("/pilots/{pilot_id}/skim/stats", response_model=AutoSkimStats)
async def get_skim_stats(pilot_id: str, engine: AutoPilotEngine = Depends(get_engine)):
    stats = engine.get_skim_stats(pilot_id)
    if stats is None:
        raise HTTPException(status_code=404, detail=f"Auto-Skim not enabled for pilot: {pilot_id}")
    return stats


# =========================
# Engine-wide
# =========================

@router.get("/stats", response_model=GlobalStats)
async def get_global_stats(engine: AutoPilotEngine = Depends(get_engine)):
    return engine.get_global_stats()


@router.get("/strategies", response_model=List[StrategyEntity])
async def get_absorbed_strategies(engine: AutoPilotEngine = Depends(get_engine)):
    return engine.get_absorbed_strategies()
