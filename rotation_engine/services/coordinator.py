# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Execution coordinator, the rotation state machine.

    preparing ─► active ─► transitioning ─► active ─► ... ─► completed
                   ▲  │          │
                   │  ▼          ▼
                   paused ◄──────┘        (emergency stop: any non-terminal ─► paused)

One coordinator owns one ExecutionState and one tick source. Every mutation
happens under a single re-entrant lock, and events are emitted while it is
held so observers see them in commit order. Commands only signal the clock
while holding the lock; abort() joins the clock thread after releasing it.
"""

import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from rotation_engine.core.config import settings
from rotation_engine.core.exceptions import (
    AlertNotFound,
    InvalidStateTransition,
    RotationEngineError,
)
from rotation_engine.core.logging import get_logger
from rotation_engine.models.domain import (
    Alert,
    AlertPriority,
    AlertType,
    CollectionStatus,
    ExecutionState,
    ExecutionStatus,
    RotationSchedule,
    SessionCollection,
    SessionStatus,
    ValidationResult,
)
from rotation_engine.services import rotation, session_projector
from rotation_engine.services.clock import IntervalTickSource, TickSource
from rotation_engine.services.events import (
    ALERT,
    ROTATION_COMPLETE,
    ROTATION_STARTED,
    ROTATION_TRANSITION,
    SESSIONS_CREATED,
    EventBus,
)
from rotation_engine.services.validator import validate_schedule

logger = get_logger(__name__)

RUNNING = (ExecutionStatus.ACTIVE, ExecutionStatus.TRANSITIONING)
TERMINAL = (ExecutionStatus.COMPLETED, ExecutionStatus.ERRORED)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExecutionCoordinator:
    """Drives one rotation schedule from preparation to completion."""

    def __init__(
        self,
        clock: Optional[TickSource] = None,
        events: Optional[EventBus] = None,
        execution_id: Optional[str] = None,
        warning_seconds: Optional[int] = None,
        now: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.execution_id = execution_id or str(uuid.uuid4())
        self.events = events or EventBus()
        self._clock = clock or IntervalTickSource(name=f"rotation-clock-{self.execution_id[:8]}")
        self._warning_seconds = (
            settings.TRANSITION_WARNING_SECONDS if warning_seconds is None else warning_seconds
        )
        self._now = now or _utcnow
        self._lock = threading.RLock()
        self._schedule: Optional[RotationSchedule] = None
        self._state: Optional[ExecutionState] = None
        self._warned_rotations: set[int] = set()
        self._aborted = False
        self._clock_run = 0
        self._log_extra = {"execution_id": self.execution_id}

    # ── Read-only views ──

    @property
    def schedule(self) -> Optional[RotationSchedule]:
        return self._schedule

    @property
    def clock(self) -> TickSource:
        return self._clock

    @property
    def status(self) -> Optional[ExecutionStatus]:
        with self._lock:
            return self._state.status if self._state else None

    @property
    def aborted(self) -> bool:
        return self._aborted

    def snapshot(self) -> ExecutionState:
        """Deep copy of the current state, safe to hand to other threads."""
        with self._lock:
            if self._state is None:
                raise InvalidStateTransition("read state", "uninitialized")
            return self._snapshot()

    # ── Commands ──

    def initialize(self, schedule: RotationSchedule) -> ValidationResult:
        """
        Validate the schedule and prepare rotation 0.
        An invalid schedule leaves the coordinator uninitialized.
        """
        with self._lock:
            if self._aborted or self._state is not None:
                raise InvalidStateTransition("initialize", self._status_label())

            result = validate_schedule(schedule)
            if not result.is_valid:
                logger.warning(
                    "Schedule %s rejected with %d error(s)",
                    schedule.id, len(result.errors), extra=self._log_extra,
                )
                return result

            schedule = schedule.model_copy(deep=True)
            sessions = session_projector.project_rotation(schedule, 0)
            self._schedule = schedule
            self._state = ExecutionState(
                execution_id=self.execution_id,
                schedule_id=schedule.id,
                status=ExecutionStatus.PREPARING,
                current_rotation_index=0,
                total_rotations=rotation.total_rotations(schedule),
                time_remaining=schedule.rotation_duration,
                group_positions=rotation.group_positions(schedule.groups, 0),
                current_sessions=sessions,
            )
            logger.info(
                "Execution prepared: schedule=%s, groups=%d, rotations=%d",
                schedule.id, len(schedule.groups), self._state.total_rotations,
                extra=self._log_extra,
            )
            self._emit(SESSIONS_CREATED, self._session_copies())
            return result

    def start(self) -> ExecutionState:
        with self._lock:
            self._require("start", ExecutionStatus.PREPARING)
            now = self._now()
            self._state.started_at = now
            self._state.status = ExecutionStatus.ACTIVE
            self._activate_sessions(now)
            logger.info("Execution started", extra=self._log_extra)
            self._emit(ROTATION_STARTED, self._snapshot())
            self._start_clock()
            return self._snapshot()

    def tick(self) -> ExecutionState:
        """Advance the logical clock by one second."""
        with self._lock:
            self._require("tick", *RUNNING)
            self._step()
            return self._snapshot()

    def advance_rotation(self) -> ExecutionState:
        """End the current rotation now and move every group on (or complete)."""
        with self._lock:
            self._require("advance rotation", ExecutionStatus.ACTIVE)
            self._advance()
            return self._snapshot()

    def pause(self) -> ExecutionState:
        with self._lock:
            self._require("pause", *RUNNING)
            self._halt_clock()
            self._state.paused_phase = self._state.status
            self._state.status = ExecutionStatus.PAUSED
            logger.info(
                "Execution paused during %s with %ds remaining",
                self._state.paused_phase.value, self._state.time_remaining,
                extra=self._log_extra,
            )
            return self._snapshot()

    def resume(self) -> ExecutionState:
        with self._lock:
            self._require("resume", ExecutionStatus.PAUSED)
            phase = self._state.paused_phase or ExecutionStatus.ACTIVE
            self._state.status = phase
            self._state.paused_phase = None
            if phase in RUNNING:
                self._start_clock()
            logger.info(
                "Execution resumed into %s with %ds remaining",
                phase.value, self._state.time_remaining, extra=self._log_extra,
            )
            return self._snapshot()

    def emergency_stop(self) -> ExecutionState:
        """Halt immediately; progress is preserved for resume or post-mortem."""
        with self._lock:
            self._require(
                "emergency stop",
                ExecutionStatus.PREPARING,
                ExecutionStatus.PAUSED,
                *RUNNING,
            )
            self._halt_clock()
            if self._state.status != ExecutionStatus.PAUSED:
                self._state.paused_phase = self._state.status
                self._state.status = ExecutionStatus.PAUSED
            logger.warning(
                "Emergency stop at rotation %d",
                self._state.current_rotation_index, extra=self._log_extra,
            )
            self._raise_alert(
                AlertType.EMERGENCY_STOP,
                AlertPriority.CRITICAL,
                "Emergency stop - all groups halt immediately",
            )
            return self._snapshot()

    def complete(self) -> ExecutionState:
        with self._lock:
            self._require("complete", *RUNNING)
            self._complete()
            return self._snapshot()

    def acknowledge(self, alert_id: str) -> Alert:
        """Mark one alert acknowledged. Nothing else changes."""
        with self._lock:
            if self._state is None:
                raise InvalidStateTransition("acknowledge", "uninitialized")
            for index, alert in enumerate(self._state.alerts):
                if alert.id == alert_id:
                    if not alert.acknowledged:
                        self._state.alerts[index] = alert.model_copy(update={"acknowledged": True})
                    return self._state.alerts[index]
            raise AlertNotFound(alert_id)

    def abort(self) -> None:
        """Stop and release the clock; every later command is rejected."""
        with self._lock:
            if self._aborted:
                return
            self._halt_clock()
            self._aborted = True
            logger.info("Execution aborted (%s)", self._status_label(), extra=self._log_extra)
        self._clock.join()

    # ── Clock callback ──

    def _on_clock_tick(self, run: int) -> None:
        with self._lock:
            # A tick from a clock run stopped since it fired
            if run != self._clock_run:
                logger.debug("Discarding tick from stopped clock run %d", run, extra=self._log_extra)
                return
            if self._aborted or self._state is None or self._state.status not in RUNNING:
                logger.debug("Discarding clock tick (%s)", self._status_label(), extra=self._log_extra)
                return
            self._step()

    # ── Transitions (lock held) ──

    def _step(self) -> None:
        state = self._state
        if state.time_remaining > 0:
            state.time_remaining -= 1

        if state.status == ExecutionStatus.TRANSITIONING:
            if state.time_remaining == 0:
                self._begin_rotation()
            return

        for session in state.current_sessions.sessions:
            session.rotation_context.time_until_rotation = state.time_remaining

        index = state.current_rotation_index
        if state.time_remaining == self._warning_seconds and index not in self._warned_rotations:
            self._warned_rotations.add(index)
            self._raise_alert(
                AlertType.TRANSITION_WARNING,
                AlertPriority.HIGH,
                f"{rotation.format_clock(state.time_remaining)} until groups rotate",
            )
        if state.time_remaining == 0:
            self._advance()

    def _advance(self) -> None:
        state = self._state
        next_index = state.current_rotation_index + 1
        if next_index >= state.total_rotations:
            self._complete()
            return

        # Compute everything first so a failure never leaves groups half-moved
        try:
            positions = rotation.group_positions(self._schedule.groups, next_index)
            next_sessions = session_projector.project_rotation(self._schedule, next_index)
        except RotationEngineError as exc:
            self._fail(exc)
            return

        now = self._now()
        elapsed = self._schedule.rotation_duration - state.time_remaining
        state.session_history.append(self._archive(state.current_sessions, now, elapsed))
        state.group_positions = positions
        state.current_rotation_index = next_index
        state.current_sessions = next_sessions
        state.active_session_ids = []
        state.status = ExecutionStatus.TRANSITIONING
        state.time_remaining = self._schedule.transition_time

        logger.info(
            "Transition to rotation %d/%d (%ds)",
            next_index + 1, state.total_rotations, state.time_remaining,
            extra=self._log_extra,
        )
        self._raise_alert(
            AlertType.TRANSITION_NOW,
            AlertPriority.CRITICAL,
            f"Rotate now - move to rotation {next_index + 1}",
        )
        self._emit(ROTATION_TRANSITION, self._snapshot())
        self._emit(SESSIONS_CREATED, self._session_copies())

        if state.time_remaining == 0:
            self._begin_rotation()

    def _begin_rotation(self) -> None:
        state = self._state
        state.status = ExecutionStatus.ACTIVE
        state.time_remaining = self._schedule.rotation_duration
        self._activate_sessions(self._now())
        logger.info(
            "Rotation %d/%d started",
            state.current_rotation_index + 1, state.total_rotations,
            extra=self._log_extra,
        )
        self._emit(ROTATION_STARTED, self._snapshot())

    def _complete(self) -> None:
        state = self._state
        self._halt_clock()
        now = self._now()
        if state.current_sessions.status == CollectionStatus.ACTIVE:
            elapsed = self._schedule.rotation_duration - state.time_remaining
            state.current_sessions = self._archive(state.current_sessions, now, elapsed)
            state.session_history.append(state.current_sessions.model_copy(deep=True))
        state.active_session_ids = []
        state.paused_phase = None
        state.status = ExecutionStatus.COMPLETED
        state.completed_at = now
        logger.info(
            "Execution completed after %d rotation(s)",
            len(state.session_history), extra=self._log_extra,
        )
        self._raise_alert(
            AlertType.COMPLETION,
            AlertPriority.MEDIUM,
            "All rotations complete",
        )
        self._emit(ROTATION_COMPLETE, self._snapshot())

    def _fail(self, exc: Exception) -> None:
        state = self._state
        self._halt_clock()
        state.paused_phase = None
        state.status = ExecutionStatus.ERRORED
        state.error = str(exc)
        logger.error("Execution halted: %s", exc, extra=self._log_extra)
        self._raise_alert(
            AlertType.ERROR,
            AlertPriority.CRITICAL,
            f"Rotation halted: {exc}",
        )

    # ── Helpers (lock held) ──

    def _start_clock(self) -> None:
        self._clock_run += 1
        run = self._clock_run
        self._clock.start(lambda: self._on_clock_tick(run))

    def _halt_clock(self) -> None:
        self._clock_run += 1
        self._clock.stop(wait=False)

    def _require(self, operation: str, *allowed: ExecutionStatus) -> None:
        if self._aborted or self._state is None or self._state.status not in allowed:
            raise InvalidStateTransition(operation, self._status_label())

    def _status_label(self) -> str:
        if self._aborted:
            return "aborted"
        if self._state is None:
            return "uninitialized"
        return self._state.status.value

    def _activate_sessions(self, now: datetime) -> None:
        collection = self._state.current_sessions
        collection.status = CollectionStatus.ACTIVE
        collection.start_time = now
        for session in collection.sessions:
            session.status = SessionStatus.ACTIVE
            session.start_time = now
            session.rotation_context.time_until_rotation = self._schedule.rotation_duration
        self._state.active_session_ids = [s.id for s in collection.sessions]

    @staticmethod
    def _archive(collection: SessionCollection, now: datetime, elapsed: int) -> SessionCollection:
        archived = collection.model_copy(deep=True)
        archived.status = CollectionStatus.COMPLETED
        archived.end_time = now
        for session in archived.sessions:
            session.status = SessionStatus.COMPLETED
            session.end_time = now
            session.actual_duration = elapsed
        return archived

    def _raise_alert(self, alert_type: AlertType, priority: AlertPriority, message: str) -> Alert:
        alert = Alert(
            id=str(uuid.uuid4()),
            type=alert_type,
            message=message,
            timestamp=self._now(),
            priority=priority,
        )
        self._state.alerts.append(alert)
        self._emit(ALERT, alert)
        return alert

    def _progress(self) -> int:
        state = self._state
        if state.status == ExecutionStatus.COMPLETED:
            return 100
        phase = state.paused_phase if state.status == ExecutionStatus.PAUSED else state.status
        time_remaining = (
            state.time_remaining
            if phase == ExecutionStatus.ACTIVE
            else self._schedule.rotation_duration
        )
        return rotation.overall_progress(state.current_rotation_index, time_remaining, self._schedule)

    def _snapshot(self) -> ExecutionState:
        self._state.progress = self._progress()
        return self._state.model_copy(deep=True)

    def _session_copies(self) -> list:
        return [s.model_copy(deep=True) for s in self._state.current_sessions.sessions]

    def _emit(self, event_type: str, payload: Any) -> None:
        self.events.emit(event_type, payload)
