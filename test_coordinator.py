# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false

"""
Tests for the execution coordinator state machine.
Ticks are driven through ManualTickSource; the last few tests run on real threads.
"""

import threading
import time

import pytest
from pydantic import ValidationError

from conftest import make_schedule
from rotation_engine.core.exceptions import (
    AlertNotFound,
    InvalidStateTransition,
    StationNotFound,
)
from rotation_engine.models.domain import (
    AlertPriority,
    AlertType,
    CollectionStatus,
    ExecutionStatus,
    SessionStatus,
)
from rotation_engine.services import session_projector
from rotation_engine.services.clock import IntervalTickSource, ManualTickSource
from rotation_engine.services.coordinator import ExecutionCoordinator
from rotation_engine.services.events import (
    ALERT,
    ROTATION_COMPLETE,
    ROTATION_STARTED,
    ROTATION_TRANSITION,
    SESSIONS_CREATED,
)


def _types(recorded):
    return [event_type for event_type, _ in recorded]


class _CallbackKeepingClock(ManualTickSource):
    """Manual clock that remembers every callback it was started with."""

    def __init__(self):
        super().__init__()
        self.callbacks = []

    def start(self, callback):
        self.callbacks.append(callback)
        super().start(callback)


class _FirstRunClock(IntervalTickSource):
    """Real ticking thread for the first start only; later starts stay idle."""

    def __init__(self, interval):
        super().__init__(interval=interval, name="first-run-clock")
        self.starts = 0

    def start(self, callback):
        self.starts += 1
        if self.starts == 1:
            super().start(callback)


def _quick_schedule(**kwargs):
    """One group over two stations, four short rotations, no transition gap."""
    options = dict(
        station_ids=["A", "B"],
        starts=["A"],
        rotation_duration=5,
        transition_time=0,
        rotation_order=["A", "B", "A", "B"],
    )
    options.update(kwargs)
    return make_schedule(**options)


# ============================================
# Initialize
# ============================================
class TestInitialize:
    def test_prepares_first_rotation(self, coordinator, schedule):
        result = coordinator.initialize(schedule)
        state = coordinator.snapshot()

        assert result.is_valid is True
        assert state.status == ExecutionStatus.PREPARING
        assert state.current_rotation_index == 0
        assert state.total_rotations == 4
        assert state.time_remaining == 900
        assert state.progress == 0
        assert state.group_positions == {"g1": "A", "g2": "B", "g3": "C", "g4": "D"}
        assert state.current_sessions.status == CollectionStatus.PENDING
        assert len(state.current_sessions.sessions) == 4
        assert state.active_session_ids == []

    def test_emits_sessions_created(self, coordinator, recorded, schedule):
        coordinator.initialize(schedule)
        assert _types(recorded) == [SESSIONS_CREATED]
        assert len(recorded[0][1]) == 4

    def test_invalid_schedule_keeps_nothing(self, coordinator, recorded):
        result = coordinator.initialize(make_schedule(station_ids=["A"], starts=["A"]))
        assert result.is_valid is False
        assert coordinator.status is None
        assert recorded == []
        with pytest.raises(InvalidStateTransition):
            coordinator.snapshot()

    def test_second_initialize_rejected(self, coordinator, schedule):
        coordinator.initialize(schedule)
        with pytest.raises(InvalidStateTransition):
            coordinator.initialize(schedule)

    def test_holds_its_own_copy(self, coordinator, schedule):
        coordinator.initialize(schedule)
        assert coordinator.schedule == schedule
        assert coordinator.schedule is not schedule

    def test_commands_rejected_before_initialize(self, coordinator):
        with pytest.raises(InvalidStateTransition, match="uninitialized"):
            coordinator.start()
        with pytest.raises(InvalidStateTransition):
            coordinator.tick()


# ============================================
# Start
# ============================================
class TestStart:
    def test_activates_sessions_and_clock(self, coordinator, clock, recorded, schedule):
        coordinator.initialize(schedule)
        state = coordinator.start()

        assert state.status == ExecutionStatus.ACTIVE
        assert state.started_at is not None
        assert state.current_sessions.status == CollectionStatus.ACTIVE
        assert all(s.status == SessionStatus.ACTIVE for s in state.current_sessions.sessions)
        assert state.active_session_ids == [s.id for s in state.current_sessions.sessions]
        assert clock.running is True
        assert clock.start_count == 1
        assert _types(recorded) == [SESSIONS_CREATED, ROTATION_STARTED]

    def test_start_twice_rejected(self, coordinator, schedule):
        coordinator.initialize(schedule)
        coordinator.start()
        with pytest.raises(InvalidStateTransition, match="active"):
            coordinator.start()


# ============================================
# Countdown & transitions
# ============================================
class TestCountdown:
    def test_tick_counts_down(self, coordinator, schedule):
        coordinator.initialize(schedule)
        coordinator.start()
        state = coordinator.tick()
        assert state.time_remaining == 899
        assert all(
            s.rotation_context.time_until_rotation == 899
            for s in state.current_sessions.sessions
        )

    def test_no_advance_before_zero(self, coordinator, clock, recorded, schedule):
        coordinator.initialize(schedule)
        coordinator.start()
        clock.advance(899)
        state = coordinator.snapshot()
        assert state.status == ExecutionStatus.ACTIVE
        assert state.current_rotation_index == 0
        assert state.time_remaining == 1
        assert ROTATION_TRANSITION not in _types(recorded)

    def test_exactly_one_advance_at_zero(self, coordinator, clock, recorded, schedule):
        coordinator.initialize(schedule)
        coordinator.start()
        clock.advance(900)
        state = coordinator.snapshot()

        assert _types(recorded).count(ROTATION_TRANSITION) == 1
        assert state.status == ExecutionStatus.TRANSITIONING
        assert state.current_rotation_index == 1
        assert state.time_remaining == 120
        assert state.group_positions == {"g1": "B", "g2": "C", "g3": "D", "g4": "A"}

    def test_warning_raised_once_per_rotation(self, coordinator, clock, schedule):
        coordinator.initialize(schedule)
        coordinator.start()
        clock.advance(870)
        alerts = coordinator.snapshot().alerts
        assert len(alerts) == 1
        assert alerts[0].type == AlertType.TRANSITION_WARNING
        assert alerts[0].priority == AlertPriority.HIGH
        assert alerts[0].message == "0:30 until groups rotate"

        clock.advance(30)
        types = [a.type for a in coordinator.snapshot().alerts]
        assert types == [AlertType.TRANSITION_WARNING, AlertType.TRANSITION_NOW]

    def test_rotate_now_alert_is_critical(self, coordinator, clock, schedule):
        coordinator.initialize(schedule)
        coordinator.start()
        clock.advance(900)
        alert = coordinator.snapshot().alerts[-1]
        assert alert.type == AlertType.TRANSITION_NOW
        assert alert.priority == AlertPriority.CRITICAL
        assert alert.message == "Rotate now - move to rotation 2"

    def test_previous_rotation_archived(self, coordinator, clock, schedule):
        coordinator.initialize(schedule)
        coordinator.start()
        clock.advance(900)
        state = coordinator.snapshot()

        assert len(state.session_history) == 1
        archived = state.session_history[0]
        assert archived.rotation_index == 0
        assert archived.status == CollectionStatus.COMPLETED
        assert archived.end_time is not None
        assert all(s.status == SessionStatus.COMPLETED for s in archived.sessions)
        assert all(s.actual_duration == 900 for s in archived.sessions)

        assert state.current_sessions.rotation_index == 1
        assert state.current_sessions.status == CollectionStatus.PENDING
        assert state.active_session_ids == []

    def test_transition_countdown_begins_next_rotation(self, coordinator, clock, recorded, schedule):
        coordinator.initialize(schedule)
        coordinator.start()
        clock.advance(900 + 119)
        assert coordinator.status == ExecutionStatus.TRANSITIONING

        clock.advance(1)
        state = coordinator.snapshot()
        assert state.status == ExecutionStatus.ACTIVE
        assert state.time_remaining == 900
        assert state.current_rotation_index == 1
        assert state.current_sessions.status == CollectionStatus.ACTIVE
        assert len(state.active_session_ids) == 4
        assert _types(recorded).count(ROTATION_STARTED) == 2

    def test_full_session(self, coordinator, clock, recorded, schedule):
        coordinator.initialize(schedule)
        coordinator.start()
        delivered = clock.advance(10_000)
        state = coordinator.snapshot()

        assert delivered == 4 * 900 + 3 * 120
        assert state.status == ExecutionStatus.COMPLETED
        assert state.progress == 100
        assert state.completed_at is not None
        assert state.current_rotation_index == 3
        assert state.group_positions == {"g1": "D", "g2": "A", "g3": "B", "g4": "C"}
        assert len(state.session_history) == 4
        assert clock.running is False

        types = _types(recorded)
        assert types.count(ROTATION_TRANSITION) == 3
        assert types.count(ROTATION_COMPLETE) == 1
        alert_types = [a.type for a in state.alerts]
        assert alert_types.count(AlertType.TRANSITION_WARNING) == 4
        assert alert_types.count(AlertType.TRANSITION_NOW) == 3
        assert alert_types[-1] == AlertType.COMPLETION

    def test_zero_transition_moves_straight_on(self, coordinator, clock, recorded):
        coordinator.initialize(_quick_schedule())
        coordinator.start()
        clock.advance(10)
        state = coordinator.snapshot()
        assert state.status == ExecutionStatus.ACTIVE
        assert state.current_rotation_index == 2
        assert state.time_remaining == 5
        # A full pass over the group's order lands back on the start
        assert state.group_positions == {"g1": "A"}

    def test_completes_exactly_once(self, coordinator, clock, recorded):
        coordinator.initialize(_quick_schedule())
        coordinator.start()
        assert clock.advance(100) == 20
        assert coordinator.status == ExecutionStatus.COMPLETED
        assert _types(recorded).count(ROTATION_COMPLETE) == 1
        assert _types(recorded).count(ROTATION_TRANSITION) == 3

        before = coordinator.snapshot()
        with pytest.raises(InvalidStateTransition, match="completed"):
            coordinator.tick()
        assert coordinator.snapshot() == before
        assert _types(recorded).count(ROTATION_COMPLETE) == 1


# ============================================
# Manual advance & completion
# ============================================
class TestAdvanceRotation:
    def test_records_elapsed_time(self, coordinator, clock, schedule):
        coordinator.initialize(schedule)
        coordinator.start()
        clock.advance(100)
        state = coordinator.advance_rotation()
        assert state.status == ExecutionStatus.TRANSITIONING
        assert state.current_rotation_index == 1
        assert state.session_history[0].sessions[0].actual_duration == 100

    def test_rejected_while_transitioning(self, coordinator, schedule):
        coordinator.initialize(schedule)
        coordinator.start()
        coordinator.advance_rotation()
        with pytest.raises(InvalidStateTransition):
            coordinator.advance_rotation()

    def test_last_rotation_completes(self, coordinator):
        coordinator.initialize(_quick_schedule(rotation_order=["A", "B"]))
        coordinator.start()
        assert coordinator.advance_rotation().current_rotation_index == 1
        state = coordinator.advance_rotation()
        assert state.status == ExecutionStatus.COMPLETED
        assert len(state.session_history) == 2

    def test_complete_early(self, coordinator, clock, schedule):
        coordinator.initialize(schedule)
        coordinator.start()
        clock.advance(10)
        state = coordinator.complete()
        assert state.status == ExecutionStatus.COMPLETED
        assert state.session_history[-1].sessions[0].actual_duration == 10
        assert clock.running is False


# ============================================
# Pause / resume
# ============================================
class TestPauseResume:
    def test_pause_freezes_state(self, coordinator, clock, schedule):
        coordinator.initialize(schedule)
        coordinator.start()
        clock.advance(10)
        paused = coordinator.pause()

        assert paused.status == ExecutionStatus.PAUSED
        assert paused.paused_phase == ExecutionStatus.ACTIVE
        assert clock.running is False
        assert clock.advance(50) == 0
        with pytest.raises(InvalidStateTransition, match="paused"):
            coordinator.tick()
        assert coordinator.snapshot().time_remaining == 890

    def test_resume_restores_countdown(self, coordinator, clock, schedule):
        coordinator.initialize(schedule)
        coordinator.start()
        clock.advance(10)
        coordinator.pause()
        state = coordinator.resume()

        assert state.status == ExecutionStatus.ACTIVE
        assert state.time_remaining == 890
        assert state.current_rotation_index == 0
        assert state.paused_phase is None
        assert clock.running is True
        assert clock.start_count == 2

    def test_pause_during_transition(self, coordinator, clock, schedule):
        coordinator.initialize(schedule)
        coordinator.start()
        clock.advance(950)
        coordinator.pause()
        state = coordinator.resume()
        assert state.status == ExecutionStatus.TRANSITIONING
        assert state.time_remaining == 70

    def test_tick_from_stopped_run_is_dropped(self, schedule):
        clock = _CallbackKeepingClock()
        coordinator = ExecutionCoordinator(clock=clock)
        coordinator.initialize(schedule)
        coordinator.start()
        clock.advance(10)
        coordinator.pause()
        coordinator.resume()

        first_run = clock.callbacks[0]
        first_run()
        assert coordinator.snapshot().time_remaining == 890

        clock.advance(1)
        assert coordinator.snapshot().time_remaining == 889
        coordinator.abort()

    def test_invalid_pause_and_resume(self, coordinator, schedule):
        coordinator.initialize(schedule)
        with pytest.raises(InvalidStateTransition):
            coordinator.pause()
        coordinator.start()
        with pytest.raises(InvalidStateTransition):
            coordinator.resume()
        coordinator.pause()
        with pytest.raises(InvalidStateTransition):
            coordinator.pause()


# ============================================
# Emergency stop
# ============================================
class TestEmergencyStop:
    def test_halts_running_execution(self, coordinator, clock, schedule):
        coordinator.initialize(schedule)
        coordinator.start()
        clock.advance(100)
        state = coordinator.emergency_stop()

        assert state.status == ExecutionStatus.PAUSED
        assert state.paused_phase == ExecutionStatus.ACTIVE
        assert state.time_remaining == 800
        assert state.group_positions == {"g1": "A", "g2": "B", "g3": "C", "g4": "D"}
        assert clock.running is False
        alert = state.alerts[-1]
        assert alert.type == AlertType.EMERGENCY_STOP
        assert alert.priority == AlertPriority.CRITICAL
        assert alert.message == "Emergency stop - all groups halt immediately"

    def test_resume_after_emergency_stop(self, coordinator, clock, schedule):
        coordinator.initialize(schedule)
        coordinator.start()
        coordinator.emergency_stop()
        assert coordinator.resume().status == ExecutionStatus.ACTIVE
        assert clock.running is True

    def test_from_preparing_returns_to_preparing(self, coordinator, clock, schedule):
        coordinator.initialize(schedule)
        coordinator.emergency_stop()
        state = coordinator.resume()
        assert state.status == ExecutionStatus.PREPARING
        assert clock.running is False
        assert coordinator.start().status == ExecutionStatus.ACTIVE

    def test_while_paused_keeps_phase(self, coordinator, schedule):
        coordinator.initialize(schedule)
        coordinator.start()
        coordinator.pause()
        state = coordinator.emergency_stop()
        assert state.status == ExecutionStatus.PAUSED
        assert state.paused_phase == ExecutionStatus.ACTIVE
        assert state.alerts[-1].type == AlertType.EMERGENCY_STOP

    def test_rejected_after_completion(self, coordinator, clock):
        coordinator.initialize(_quick_schedule())
        coordinator.start()
        clock.advance(100)
        with pytest.raises(InvalidStateTransition):
            coordinator.emergency_stop()


# ============================================
# Alerts
# ============================================
class TestAlerts:
    def test_acknowledge_marks_only_that_alert(self, coordinator, schedule):
        coordinator.initialize(schedule)
        coordinator.emergency_stop()
        coordinator.emergency_stop()
        first, second = coordinator.snapshot().alerts

        acknowledged = coordinator.acknowledge(first.id)
        assert acknowledged.acknowledged is True
        alerts = coordinator.snapshot().alerts
        assert alerts[0].acknowledged is True
        assert alerts[1].acknowledged is False
        assert alerts[1] == second

    def test_acknowledge_changes_nothing_else(self, coordinator, schedule):
        coordinator.initialize(schedule)
        coordinator.emergency_stop()
        before = coordinator.snapshot()
        coordinator.acknowledge(before.alerts[0].id)
        after = coordinator.snapshot()
        assert after.status == before.status
        assert after.time_remaining == before.time_remaining
        assert after.alerts[0].message == before.alerts[0].message

    def test_acknowledge_twice(self, coordinator, schedule):
        coordinator.initialize(schedule)
        coordinator.emergency_stop()
        alert_id = coordinator.snapshot().alerts[0].id
        coordinator.acknowledge(alert_id)
        assert coordinator.acknowledge(alert_id).acknowledged is True

    def test_unknown_alert(self, coordinator, schedule):
        coordinator.initialize(schedule)
        with pytest.raises(AlertNotFound):
            coordinator.acknowledge("missing")

    def test_acknowledge_before_initialize(self, coordinator):
        with pytest.raises(InvalidStateTransition):
            coordinator.acknowledge("anything")

    def test_acknowledge_after_completion(self, coordinator, clock):
        coordinator.initialize(_quick_schedule())
        coordinator.start()
        clock.advance(100)
        completion = coordinator.snapshot().alerts[-1]
        assert coordinator.acknowledge(completion.id).acknowledged is True

    def test_alerts_are_immutable(self, coordinator, schedule):
        coordinator.initialize(schedule)
        coordinator.emergency_stop()
        alert = coordinator.snapshot().alerts[0]
        with pytest.raises(ValidationError):
            alert.message = "changed"


# ============================================
# Failure handling
# ============================================
class TestFailure:
    def test_missing_station_halts_without_partial_move(
        self, coordinator, clock, recorded, schedule, monkeypatch,
    ):
        coordinator.initialize(schedule)
        coordinator.start()
        clock.advance(10)

        def broken(schedule, rotation_index):
            raise StationNotFound("Z")

        monkeypatch.setattr(session_projector, "project_rotation", broken)
        state = coordinator.advance_rotation()

        assert state.status == ExecutionStatus.ERRORED
        assert "Z" in state.error
        assert state.current_rotation_index == 0
        assert state.group_positions == {"g1": "A", "g2": "B", "g3": "C", "g4": "D"}
        assert state.session_history == []
        assert state.alerts[-1].type == AlertType.ERROR
        assert state.alerts[-1].priority == AlertPriority.CRITICAL
        assert clock.running is False
        assert ROTATION_TRANSITION not in _types(recorded)

        with pytest.raises(InvalidStateTransition, match="errored"):
            coordinator.tick()


# ============================================
# Abort
# ============================================
class TestAbort:
    def test_abort_stops_clock_and_rejects_commands(self, coordinator, clock, schedule):
        coordinator.initialize(schedule)
        coordinator.start()
        coordinator.abort()

        assert coordinator.aborted is True
        assert clock.running is False
        assert clock.advance(5) == 0
        with pytest.raises(InvalidStateTransition, match="aborted"):
            coordinator.resume()

    def test_abort_is_idempotent(self, coordinator, clock, schedule):
        coordinator.initialize(schedule)
        coordinator.start()
        coordinator.abort()
        coordinator.abort()
        assert clock.stop_count == 1


# ============================================
# Snapshots & observers
# ============================================
class TestSnapshots:
    def test_snapshot_is_independent(self, coordinator, schedule):
        coordinator.initialize(schedule)
        state = coordinator.snapshot()
        state.group_positions["g1"] = "Z"
        state.current_sessions.sessions.clear()
        fresh = coordinator.snapshot()
        assert fresh.group_positions["g1"] == "A"
        assert len(fresh.current_sessions.sessions) == 4

    def test_progress_mid_rotation(self, coordinator, clock):
        coordinator.initialize(_quick_schedule(rotation_duration=10, rotation_order=["A", "B"]))
        coordinator.start()
        clock.advance(5)
        assert coordinator.snapshot().progress == 25

    def test_progress_during_transition(self, coordinator, clock, schedule):
        coordinator.initialize(schedule)
        coordinator.start()
        clock.advance(900)
        assert coordinator.snapshot().progress == 25

    def test_transition_event_order(self, coordinator, clock, recorded, schedule):
        coordinator.initialize(schedule)
        coordinator.start()
        clock.advance(900)
        assert _types(recorded)[-3:] == [ALERT, ROTATION_TRANSITION, SESSIONS_CREATED]
        transition_state = recorded[-2][1]
        assert transition_state.status == ExecutionStatus.TRANSITIONING
        assert transition_state.current_rotation_index == 1

    def test_observer_can_read_state(self, coordinator, clock, schedule):
        coordinator.initialize(schedule)
        seen = []
        coordinator.events.subscribe(
            ROTATION_TRANSITION, lambda _: seen.append(coordinator.snapshot().status),
        )
        coordinator.start()
        clock.advance(900)
        assert seen == [ExecutionStatus.TRANSITIONING]


# ============================================
# Real clock
# ============================================
class TestIntervalClock:
    def test_runs_to_completion_on_thread(self):
        coordinator = ExecutionCoordinator(clock=IntervalTickSource(interval=0.005))
        try:
            coordinator.initialize(_quick_schedule(rotation_duration=3, rotation_order=["A", "B"]))
            coordinator.start()
            deadline = time.monotonic() + 5.0
            while coordinator.status != ExecutionStatus.COMPLETED and time.monotonic() < deadline:
                time.sleep(0.01)
            assert coordinator.status == ExecutionStatus.COMPLETED
            assert coordinator.clock.running is False
        finally:
            coordinator.abort()

    def test_tick_waiting_on_lock_dropped_after_pause_and_resume(self):
        clock = _FirstRunClock(interval=0.01)
        coordinator = ExecutionCoordinator(clock=clock)
        latencies = []

        def pause_and_resume(_state):
            # The clock thread is blocked on the coordinator lock meanwhile
            time.sleep(0.1)
            started = time.monotonic()
            coordinator.pause()
            latencies.append(time.monotonic() - started)
            coordinator.resume()

        try:
            coordinator.initialize(_quick_schedule(rotation_duration=900, transition_time=120))
            coordinator.start()
            time.sleep(0.05)
            unsubscribe = coordinator.events.subscribe(ROTATION_TRANSITION, pause_and_resume)
            coordinator.advance_rotation()
            unsubscribe()
            clock.join()

            state = coordinator.snapshot()
            assert latencies and latencies[0] < 0.5
            assert state.status == ExecutionStatus.TRANSITIONING
            assert state.time_remaining == 120
        finally:
            coordinator.abort()

    def test_abort_joins_clock_thread(self):
        coordinator = ExecutionCoordinator(
            clock=IntervalTickSource(interval=0.005, name="abort-join-clock"),
        )
        coordinator.initialize(_quick_schedule(rotation_duration=900))
        coordinator.start()
        time.sleep(0.02)
        coordinator.abort()
        assert not any(t.name == "abort-join-clock" for t in threading.enumerate())
