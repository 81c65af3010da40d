# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Schedule tooling endpoints (validate, timeline, starting stations).
Thin HTTP layer: delegates ALL logic to ScheduleService.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from rotation_engine.core.dependencies import get_schedule_service
from rotation_engine.core.exceptions import ScheduleValidationError
from rotation_engine.models.domain import (
    RotationSchedule,
    RotationStrategy,
    ValidationResult,
)
from rotation_engine.schemas.rotation import TimelineResponse
from rotation_engine.services.schedule_service import ScheduleService

router = APIRouter(prefix="/api/v1", tags=["Schedules"])


def validation_error_detail(exc: ScheduleValidationError) -> dict:
    return {
        "message": str(exc),
        "errors": [issue.model_dump() for issue in exc.result.errors],
        "warnings": [issue.model_dump() for issue in exc.result.warnings],
    }


@router.post("/schedules/validate", response_model=ValidationResult)
def validate_schedule(
    payload: RotationSchedule,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Check a schedule's structure and capacity without running it."""
    return service.validate(payload)


@router.post("/schedules/timeline", response_model=TimelineResponse)
def preview_timeline(
    payload: RotationSchedule,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Lay out when each rotation and transition happens."""
    try:
        return service.timeline(payload)
    except ScheduleValidationError as e:
        raise HTTPException(status_code=422, detail=validation_error_detail(e))


@router.post("/schedules/starting-stations", response_model=RotationSchedule)
def assign_starting_stations(
    payload: RotationSchedule,
    strategy: Optional[RotationStrategy] = Query(
        default=None, description="Overrides the schedule's own strategy"
    ),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Spread groups over starting stations using a distribution strategy."""
    return service.assign_starting_stations(payload, strategy)
