# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Execution orchestration.
Creates one coordinator per schedule run, dispatches commands by execution id,
and wires engine events into the audit log, metrics and alert forwarding.
Alerts are forwarded on a small worker pool so the coordinator lock is never
held across a network call.
"""

import uuid
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any, Callable, Optional

from rotation_engine.core.config import settings
from rotation_engine.core.exceptions import ScheduleValidationError
from rotation_engine.core.logging import get_logger
from rotation_engine.metrics.prometheus import (
    ACTIVE_EXECUTIONS,
    ALERTS_RAISED,
    EXECUTIONS_CREATED,
    EXECUTIONS_FINISHED,
    ROTATION_CHANGES,
    SCHEDULE_VALIDATIONS,
    SESSIONS_PROJECTED,
)
from rotation_engine.models.domain import (
    Alert,
    AlertType,
    ExecutionState,
    RotationSchedule,
)
from rotation_engine.repositories.execution_repository import ExecutionRepository
from rotation_engine.repositories.history_repository import HistoryRepository
from rotation_engine.services import events
from rotation_engine.services.clock import IntervalTickSource, TickSource
from rotation_engine.services.coordinator import ExecutionCoordinator
from rotation_engine.services.notification_client import NotificationClient

logger = get_logger(__name__)

ClockFactory = Callable[[str], TickSource]


def _interval_clock(execution_id: str) -> TickSource:
    return IntervalTickSource(name=f"rotation-clock-{execution_id[:8]}")


class ExecutionService:
    """Business logic for running rotation schedules."""

    def __init__(
        self,
        execution_repo: ExecutionRepository,
        history_repo: HistoryRepository,
        notification_client: NotificationClient,
        clock_factory: Optional[ClockFactory] = None,
        notification_executor: Optional[Executor] = None,
    ) -> None:
        self._executions = execution_repo
        self._history = history_repo
        self._notifications = notification_client
        self._clock_factory = clock_factory or _interval_clock
        self._forwarder = notification_executor or ThreadPoolExecutor(
            max_workers=settings.NOTIFICATION_WORKERS,
            thread_name_prefix="alert-forwarder",
        )

    # ── Lifecycle ──

    def create_execution(self, schedule: RotationSchedule) -> ExecutionState:
        """Validate and prepare a schedule. Raises ScheduleValidationError."""
        execution_id = str(uuid.uuid4())
        coordinator = ExecutionCoordinator(
            clock=self._clock_factory(execution_id),
            execution_id=execution_id,
        )
        self._wire(coordinator)

        result = coordinator.initialize(schedule)
        SCHEDULE_VALIDATIONS.labels(result="valid" if result.is_valid else "invalid").inc()
        if not result.is_valid:
            raise ScheduleValidationError(result)

        self._executions.save(coordinator)
        EXECUTIONS_CREATED.inc()
        ACTIVE_EXECUTIONS.set(self._executions.count())
        self._history.record_event(
            "execution_created",
            execution_id,
            {
                "schedule_id": schedule.id,
                "groups": len(schedule.groups),
                "stations": len(schedule.stations),
                "warnings": [w.message for w in result.warnings],
            },
        )
        logger.info(
            "Execution created: id=%s, schedule=%s", execution_id, schedule.id,
        )
        return coordinator.snapshot()

    def start(self, execution_id: str) -> ExecutionState:
        return self._command(execution_id, "start", lambda c: c.start())

    def pause(self, execution_id: str) -> ExecutionState:
        return self._command(execution_id, "pause", lambda c: c.pause())

    def resume(self, execution_id: str) -> ExecutionState:
        return self._command(execution_id, "resume", lambda c: c.resume())

    def emergency_stop(self, execution_id: str) -> ExecutionState:
        return self._command(execution_id, "emergency_stop", lambda c: c.emergency_stop())

    def acknowledge(self, execution_id: str, alert_id: str) -> Alert:
        """Raises KeyError (execution) or AlertNotFound (alert)."""
        alert = self._get(execution_id).acknowledge(alert_id)
        self._history.record_event(
            "alert_acknowledged", execution_id, {"alert_id": alert_id, "type": alert.type.value},
        )
        return alert

    def abort(self, execution_id: str) -> dict[str, str]:
        """Stop the execution's clock and drop it from the registry."""
        coordinator = self._get(execution_id)
        coordinator.abort()
        self._executions.delete(execution_id)
        ACTIVE_EXECUTIONS.set(self._executions.count())
        EXECUTIONS_FINISHED.labels(outcome="aborted").inc()
        self._history.record_event("execution_aborted", execution_id, {})
        logger.info("Execution aborted: id=%s", execution_id)
        return {"status": "aborted", "execution_id": execution_id}

    def shutdown(self) -> None:
        """Release every clock and drain pending alert forwards; used on process shutdown."""
        coordinators = self._executions.get_all()
        for coordinator in coordinators:
            coordinator.abort()
        self._executions.clear()
        ACTIVE_EXECUTIONS.set(0)
        self._forwarder.shutdown(wait=True)
        if coordinators:
            logger.info("Stopped %d execution clock(s) on shutdown", len(coordinators))

    # ── Queries ──

    def get_state(self, execution_id: str) -> ExecutionState:
        return self._get(execution_id).snapshot()

    def list_executions(self) -> list[dict[str, Any]]:
        summaries = []
        for coordinator in self._executions.get_all():
            state = coordinator.snapshot()
            summaries.append({
                "execution_id": state.execution_id,
                "schedule_id": state.schedule_id,
                "schedule_name": coordinator.schedule.name,
                "status": state.status.value,
                "current_rotation_index": state.current_rotation_index,
                "total_rotations": state.total_rotations,
                "time_remaining": state.time_remaining,
                "progress": state.progress,
                "unacknowledged_alerts": sum(1 for a in state.alerts if not a.acknowledged),
            })
        return summaries

    def list_alerts(self, execution_id: str, unacknowledged_only: bool = False) -> list[Alert]:
        alerts = self._get(execution_id).snapshot().alerts
        if unacknowledged_only:
            return [a for a in alerts if not a.acknowledged]
        return alerts

    def get_sessions(self, execution_id: str) -> dict[str, Any]:
        state = self._get(execution_id).snapshot()
        return {
            "execution_id": execution_id,
            "current": state.current_sessions,
            "active_session_ids": state.active_session_ids,
            "history": state.session_history,
        }

    def get_stats(self) -> dict[str, Any]:
        statuses: dict[str, int] = {}
        for coordinator in self._executions.get_all():
            status = coordinator.status.value
            statuses[status] = statuses.get(status, 0) + 1
        return {
            "total_executions": self._executions.count(),
            "executions_by_status": statuses,
            "total_history_events": self._history.count(),
            "event_types": self._history.count_by_type(),
        }

    # ── Internal ──

    def _get(self, execution_id: str) -> ExecutionCoordinator:
        coordinator = self._executions.get(execution_id)
        if coordinator is None:
            raise KeyError(f"No execution found with id '{execution_id}'")
        return coordinator

    def _command(
        self,
        execution_id: str,
        name: str,
        action: Callable[[ExecutionCoordinator], ExecutionState],
    ) -> ExecutionState:
        """Run a coordinator command. InvalidStateTransition propagates untouched."""
        state = action(self._get(execution_id))
        self._history.record_event(
            name,
            execution_id,
            {
                "status": state.status.value,
                "rotation_index": state.current_rotation_index,
                "time_remaining": state.time_remaining,
            },
        )
        return state

    def _forward_alert(self, execution_id: str, alert: Alert) -> None:
        try:
            self._notifications.send_alert(execution_id, alert)
        except Exception:
            logger.exception(
                "Alert forwarding crashed: alert=%s", alert.id, extra={"execution_id": execution_id},
            )

    def _wire(self, coordinator: ExecutionCoordinator) -> None:
        execution_id = coordinator.execution_id
        bus = coordinator.events

        def on_sessions_created(sessions: list) -> None:
            SESSIONS_PROJECTED.inc(len(sessions))
            self._history.record_event(
                events.SESSIONS_CREATED,
                execution_id,
                {"session_ids": [s.id for s in sessions]},
            )

        def on_rotation_started(state: ExecutionState) -> None:
            self._history.record_event(
                events.ROTATION_STARTED,
                execution_id,
                {"rotation_index": state.current_rotation_index},
            )

        def on_rotation_transition(state: ExecutionState) -> None:
            ROTATION_CHANGES.inc()
            self._history.record_event(
                events.ROTATION_TRANSITION,
                execution_id,
                {
                    "rotation_index": state.current_rotation_index,
                    "group_positions": dict(state.group_positions),
                },
            )

        def on_rotation_complete(state: ExecutionState) -> None:
            EXECUTIONS_FINISHED.labels(outcome="completed").inc()
            self._history.record_event(
                events.ROTATION_COMPLETE,
                execution_id,
                {"rotations": len(state.session_history)},
            )

        def on_alert(alert: Alert) -> None:
            ALERTS_RAISED.labels(type=alert.type.value, priority=alert.priority.value).inc()
            if alert.type == AlertType.ERROR:
                EXECUTIONS_FINISHED.labels(outcome="errored").inc()
            self._history.record_event(
                events.ALERT,
                execution_id,
                {
                    "alert_id": alert.id,
                    "type": alert.type.value,
                    "priority": alert.priority.value,
                    "message": alert.message,
                },
            )
            if self._notifications.should_forward(alert):
                self._forwarder.submit(self._forward_alert, execution_id, alert)

        bus.subscribe(events.SESSIONS_CREATED, on_sessions_created)
        bus.subscribe(events.ROTATION_STARTED, on_rotation_started)
        bus.subscribe(events.ROTATION_TRANSITION, on_rotation_transition)
        bus.subscribe(events.ROTATION_COMPLETE, on_rotation_complete)
        bus.subscribe(events.ALERT, on_alert)
