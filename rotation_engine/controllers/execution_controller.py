# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Execution lifecycle, alerts, sessions, history and stats endpoints.
Thin HTTP layer: delegates ALL logic to ExecutionService.
"""

from typing import Callable, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from rotation_engine.controllers.schedule_controller import validation_error_detail
from rotation_engine.core.dependencies import get_execution_service, get_history_repo
from rotation_engine.core.exceptions import (
    AlertNotFound,
    InvalidStateTransition,
    ScheduleValidationError,
)
from rotation_engine.models.domain import Alert, ExecutionState, RotationSchedule
from rotation_engine.repositories.history_repository import HistoryRepository
from rotation_engine.schemas.rotation import (
    AbortResponse,
    ExecutionSummary,
    SessionsResponse,
    StatsResponse,
)
from rotation_engine.services.execution_service import ExecutionService

router = APIRouter(prefix="/api/v1", tags=["Executions"])


def _run_command(command: Callable[[str], ExecutionState], execution_id: str):
    try:
        return command(execution_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=e.args[0])
    except InvalidStateTransition as e:
        raise HTTPException(status_code=409, detail=str(e))


# ── Lifecycle ──

@router.post("/executions", status_code=201, response_model=ExecutionState)
def create_execution(
    payload: RotationSchedule,
    service: ExecutionService = Depends(get_execution_service),
):
    """Validate a schedule and prepare its first rotation."""
    try:
        return service.create_execution(payload)
    except ScheduleValidationError as e:
        raise HTTPException(status_code=422, detail=validation_error_detail(e))


@router.get("/executions", response_model=list[ExecutionSummary])
def list_executions(
    service: ExecutionService = Depends(get_execution_service),
):
    """List all registered executions."""
    return service.list_executions()


@router.get("/executions/{execution_id}", response_model=ExecutionState)
def get_execution(
    execution_id: str,
    service: ExecutionService = Depends(get_execution_service),
):
    """Current state snapshot of an execution."""
    return _run_command(service.get_state, execution_id)


@router.delete("/executions/{execution_id}", response_model=AbortResponse)
def abort_execution(
    execution_id: str,
    service: ExecutionService = Depends(get_execution_service),
):
    """Stop an execution's clock and remove it."""
    return _run_command(service.abort, execution_id)


# ── Commands ──

@router.post("/executions/{execution_id}/start", response_model=ExecutionState)
def start_execution(
    execution_id: str,
    service: ExecutionService = Depends(get_execution_service),
):
    return _run_command(service.start, execution_id)


@router.post("/executions/{execution_id}/pause", response_model=ExecutionState)
def pause_execution(
    execution_id: str,
    service: ExecutionService = Depends(get_execution_service),
):
    return _run_command(service.pause, execution_id)


@router.post("/executions/{execution_id}/resume", response_model=ExecutionState)
def resume_execution(
    execution_id: str,
    service: ExecutionService = Depends(get_execution_service),
):
    return _run_command(service.resume, execution_id)


@router.post("/executions/{execution_id}/emergency-stop", response_model=ExecutionState)
def emergency_stop(
    execution_id: str,
    service: ExecutionService = Depends(get_execution_service),
):
    """Halt every group immediately, keeping progress."""
    return _run_command(service.emergency_stop, execution_id)


# ── Alerts ──

@router.get("/executions/{execution_id}/alerts", response_model=list[Alert])
def list_alerts(
    execution_id: str,
    unacknowledged: bool = Query(default=False, description="Only unacknowledged alerts"),
    service: ExecutionService = Depends(get_execution_service),
):
    return _run_command(
        lambda eid: service.list_alerts(eid, unacknowledged_only=unacknowledged),
        execution_id,
    )


@router.post(
    "/executions/{execution_id}/alerts/{alert_id}/acknowledge",
    response_model=Alert,
)
def acknowledge_alert(
    execution_id: str,
    alert_id: str,
    service: ExecutionService = Depends(get_execution_service),
):
    try:
        return service.acknowledge(execution_id, alert_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=e.args[0])
    except AlertNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidStateTransition as e:
        raise HTTPException(status_code=409, detail=str(e))


# ── Sessions / History ──

@router.get("/executions/{execution_id}/sessions", response_model=SessionsResponse)
def get_sessions(
    execution_id: str,
    service: ExecutionService = Depends(get_execution_service),
):
    """Current rotation's sessions plus every archived rotation."""
    return _run_command(service.get_sessions, execution_id)


@router.get("/executions/{execution_id}/history")
def get_execution_history(
    execution_id: str,
    event_type: Optional[str] = None,
    limit: int = Query(default=None, ge=1, description="Max results"),
    history_repo: HistoryRepository = Depends(get_history_repo),
):
    """Audit log for one execution (kept after the execution is aborted)."""
    return history_repo.get_all(execution_id=execution_id, event_type=event_type, limit=limit)


# ── Stats ──

@router.get("/stats", response_model=StatsResponse)
def get_stats(
    service: ExecutionService = Depends(get_execution_service),
):
    """Aggregated operational statistics."""
    return service.get_stats()
