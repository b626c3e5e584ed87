from datetime import datetime, timezone
from fastapi import APIRouter, HTTPException, Request, Depends, Query
from .schemas import (
    ProcessEventRequest,
    ProcessEventResponse,
    ExecutionListResponse,
    EffectsResponse,
    AlertListResponse,
)
from ..actions.alerts import RecentAlerts
from ..actions.effects import EFFECT_KEYS
from ..rules.engine import WorkflowEngine
from ..rules.models import WorkflowStats
from ..services.engine_factory import EngineHandle

router = APIRouter(prefix="/v1")


def get_handle(request: Request) -> EngineHandle:
    return request.app.state.handle


def get_engine(handle: EngineHandle = Depends(get_handle)) -> WorkflowEngine:
    return handle.engine


def get_recent_alerts(request: Request) -> RecentAlerts:
    return request.app.state.recent_alerts


@router.post("/events", response_model=ProcessEventResponse)
async def process_event(req: ProcessEventRequest, engine: WorkflowEngine = Depends(get_engine)):
    event = req.to_inbound().stamp()
    executions = await engine.process_event(event)
    return ProcessEventResponse(event_id=event.id, status="processed", executions=executions)


@router.get("/executions", response_model=ExecutionListResponse)
async def list_executions(
    limit: int = Query(50, ge=1, le=1000),
    engine: WorkflowEngine = Depends(get_engine),
):
    executions = await engine.get_executions()
    recent = list(reversed(executions))[:limit]
    return ExecutionListResponse(total=len(executions), executions=recent)


@router.get("/stats", response_model=WorkflowStats)
async def get_stats(engine: WorkflowEngine = Depends(get_engine)):
    return await engine.get_stats()


@router.get("/stats/period", response_model=WorkflowStats)
async def get_stats_for_period(
    start: datetime,
    end: datetime,
    engine: WorkflowEngine = Depends(get_engine),
):
    start, end = (d if d.tzinfo else d.replace(tzinfo=timezone.utc) for d in (start, end))
    if end < start:
        raise HTTPException(400, detail="end must not be before start")
    return await engine.get_stats_for_period(start, end)


@router.get("/effects/{kind}", response_model=EffectsResponse)
async def read_effects(kind: str, handle: EngineHandle = Depends(get_handle)):
    key = EFFECT_KEYS.get(kind)
    if key is None:
        raise HTTPException(404, detail=f"Unknown effect collection {kind}")
    return EffectsResponse(kind=kind, records=await handle.effects.read(key))


@router.get("/alerts", response_model=AlertListResponse)
async def list_alerts(
    limit: int = Query(50, ge=1, le=200),
    recent: RecentAlerts = Depends(get_recent_alerts),
):
    alerts = recent.list_recent(limit=limit)
    return AlertListResponse(total=len(alerts), alerts=alerts)
