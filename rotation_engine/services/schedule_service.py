# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Schedule tooling for authoring-time checks and previews.
Stateless: schedules are owned by the caller until handed to an execution.
"""

from typing import Any, Optional

from rotation_engine.core.exceptions import ScheduleValidationError
from rotation_engine.core.logging import get_logger
from rotation_engine.metrics.prometheus import SCHEDULE_VALIDATIONS
from rotation_engine.models.domain import (
    RotationSchedule,
    RotationStrategy,
    ValidationResult,
)
from rotation_engine.services import rotation
from rotation_engine.services.validator import validate_schedule

logger = get_logger(__name__)


class ScheduleService:
    """Business logic for authoring-time schedule checks."""

    def validate(self, schedule: RotationSchedule) -> ValidationResult:
        result = validate_schedule(schedule)
        SCHEDULE_VALIDATIONS.labels(result="valid" if result.is_valid else "invalid").inc()
        logger.info(
            "Schedule validated: id=%s, valid=%s, errors=%d, warnings=%d",
            schedule.id, result.is_valid, len(result.errors), len(result.warnings),
        )
        return result

    def timeline(self, schedule: RotationSchedule) -> dict[str, Any]:
        """Preview the session timeline. Raises ScheduleValidationError."""
        result = self.validate(schedule)
        if not result.is_valid:
            raise ScheduleValidationError(result)
        return {
            "schedule_id": schedule.id,
            "total_rotations": rotation.total_rotations(schedule),
            "total_duration": rotation.total_duration(schedule),
            "entries": rotation.build_timeline(schedule),
        }

    def assign_starting_stations(
        self,
        schedule: RotationSchedule,
        strategy: Optional[RotationStrategy] = None,
    ) -> RotationSchedule:
        updated = rotation.assign_starting_stations(schedule, strategy)
        logger.info(
            "Starting stations assigned: schedule=%s, strategy=%s",
            schedule.id, updated.strategy.value,
        )
        return updated
