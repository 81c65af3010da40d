# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Shared fixtures: schedule builders and a coordinator wired to a manual clock.
"""

from typing import Optional, Sequence

import pytest

from rotation_engine.models.domain import (
    Group,
    RotationSchedule,
    Station,
    StationWorkout,
    WorkoutType,
)
from rotation_engine.services.clock import ManualTickSource
from rotation_engine.services.coordinator import ExecutionCoordinator


def make_station(station_id: str, capacity: int = 6, **kwargs) -> Station:
    return Station(
        id=station_id,
        name=kwargs.pop("name", f"Station {station_id}"),
        equipment=kwargs.pop("equipment", "bike"),
        capacity=capacity,
        workout=kwargs.pop(
            "workout",
            StationWorkout(type=WorkoutType.INTERVAL, payload={"intervals": [30, 30, 60]}),
        ),
        **kwargs,
    )


def make_group(
    group_id: str,
    starting_station: str,
    rotation_order: Sequence[str],
    players: Optional[Sequence[str]] = None,
) -> Group:
    return Group(
        id=group_id,
        name=f"Group {group_id}",
        players=list(players) if players is not None else [f"{group_id}-p1", f"{group_id}-p2", f"{group_id}-p3"],
        starting_station=starting_station,
        rotation_order=list(rotation_order),
    )


def make_schedule(
    station_ids: Sequence[str] = ("A", "B", "C", "D"),
    starts: Optional[Sequence[str]] = None,
    rotation_duration: int = 900,
    transition_time: int = 120,
    rotation_order: Optional[Sequence[str]] = None,
    capacity: int = 6,
    players: Optional[Sequence[str]] = None,
) -> RotationSchedule:
    """One group per entry in `starts`, each cycling through all stations."""
    station_ids = list(station_ids)
    starts = list(starts) if starts is not None else list(station_ids)
    return RotationSchedule(
        id="sched-1",
        name="Monday circuit",
        stations=[make_station(sid, capacity=capacity) for sid in station_ids],
        groups=[
            make_group(f"g{i + 1}", start, station_ids, players=players)
            for i, start in enumerate(starts)
        ],
        rotation_duration=rotation_duration,
        transition_time=transition_time,
        rotation_order=list(rotation_order) if rotation_order is not None else list(station_ids),
    )


@pytest.fixture
def schedule() -> RotationSchedule:
    return make_schedule()


@pytest.fixture
def clock() -> ManualTickSource:
    return ManualTickSource()


@pytest.fixture
def coordinator(clock):
    coord = ExecutionCoordinator(clock=clock, execution_id="exec-1")
    yield coord
    coord.abort()


@pytest.fixture
def recorded(coordinator):
    """List of (event_type, payload) tuples emitted by the coordinator."""
    events: list = []
    coordinator.events.subscribe_all(lambda event_type, payload: events.append((event_type, payload)))
    return events
