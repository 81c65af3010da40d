# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Rotation logic. Pure computation.
Maps (group, rotation index) to a station with cyclic index arithmetic,
plus the builder helpers that lay groups and rotations out in time.
"""

from typing import Iterable, Optional

from rotation_engine.core.exceptions import InvalidRotationOrder
from rotation_engine.models.domain import (
    Group,
    RotationSchedule,
    RotationStrategy,
    TimelineEntry,
)


# ── Station assignment ──

def _starting_index(group: Group) -> int:
    if not group.rotation_order:
        raise InvalidRotationOrder(group.id, "rotation order is empty")
    try:
        return group.rotation_order.index(group.starting_station)
    except ValueError:
        raise InvalidRotationOrder(
            group.id,
            f"starting station '{group.starting_station}' is not in the rotation order",
        ) from None


def station_for(group: Group, rotation_index: int) -> str:
    """
    Return the station a group occupies at the given rotation index.
    Negative indices walk the cycle backwards.
    """
    start = _starting_index(group)
    size = len(group.rotation_order)
    # Python's % already yields a non-negative result for a positive divisor
    return group.rotation_order[(start + rotation_index) % size]


def next_station_for(group: Group, rotation_index: int) -> str:
    return station_for(group, rotation_index + 1)


def previous_station_for(group: Group, rotation_index: int) -> str:
    return station_for(group, rotation_index - 1)


def group_positions(groups: Iterable[Group], rotation_index: int) -> dict[str, str]:
    """Return group id -> station id for every group at the rotation index."""
    return {group.id: station_for(group, rotation_index) for group in groups}


def total_rotations(schedule: RotationSchedule) -> int:
    return len(schedule.rotation_order)


# ── Builder helpers ──

def assign_starting_stations(
    schedule: RotationSchedule,
    strategy: Optional[RotationStrategy] = None,
) -> RotationSchedule:
    """
    Return a copy of the schedule with starting stations spread over groups.

    sequential: group i starts at station i mod S
    staggered:  group i starts at station floor(i * S / G)
    custom:     starting stations are left as authored

    Groups without a rotation order inherit the schedule's global order.
    """
    strategy = strategy or schedule.strategy
    station_ids = list(schedule.rotation_order) or [s.id for s in schedule.stations]
    group_count = len(schedule.groups)

    groups: list[Group] = []
    for index, group in enumerate(schedule.groups):
        rotation_order = list(group.rotation_order) or list(station_ids)
        starting_station = group.starting_station
        if station_ids and strategy == RotationStrategy.SEQUENTIAL:
            starting_station = station_ids[index % len(station_ids)]
        elif station_ids and strategy == RotationStrategy.STAGGERED:
            starting_station = station_ids[(index * len(station_ids)) // group_count]
        groups.append(
            group.model_copy(
                update={
                    "starting_station": starting_station,
                    "rotation_order": rotation_order,
                }
            )
        )

    return schedule.model_copy(update={"groups": groups, "strategy": strategy})


def total_duration(schedule: RotationSchedule) -> int:
    """Whole session length in seconds: every rotation plus the gaps between."""
    rotations = total_rotations(schedule)
    if rotations == 0:
        return 0
    return rotations * schedule.rotation_duration + (rotations - 1) * schedule.transition_time


def build_timeline(schedule: RotationSchedule) -> list[TimelineEntry]:
    """Lay out start, transition, rotation and end markers in session time."""
    rotations = total_rotations(schedule)
    if rotations == 0 or not schedule.groups:
        return []

    entries = [
        TimelineEntry(
            time=0,
            type="start",
            description="Session begins - groups at starting stations",
            positions=group_positions(schedule.groups, 0),
        )
    ]
    step = schedule.rotation_duration + schedule.transition_time
    for rotation in range(rotations):
        positions = group_positions(schedule.groups, rotation)
        rotation_start = rotation * step
        if rotation > 0:
            entries.append(
                TimelineEntry(
                    time=rotation_start - schedule.transition_time,
                    type="transition",
                    description=f"Transition to rotation {rotation + 1}",
                    positions=positions,
                )
            )
        entries.append(
            TimelineEntry(
                time=rotation_start,
                type="rotation",
                description=f"Rotation {rotation + 1} begins",
                positions=positions,
            )
        )

    entries.append(
        TimelineEntry(
            time=total_duration(schedule),
            type="end",
            description="Session complete",
        )
    )
    return entries


def overall_progress(
    rotation_index: int, time_remaining: int, schedule: RotationSchedule
) -> int:
    """Percentage of the whole session done, counting the current rotation's elapsed time."""
    rotations = total_rotations(schedule)
    if rotations == 0 or schedule.rotation_duration <= 0:
        return 0
    elapsed = schedule.rotation_duration - time_remaining
    elapsed_fraction = min(max(elapsed / schedule.rotation_duration, 0.0), 1.0)
    return round((rotation_index / rotations + elapsed_fraction / rotations) * 100)


def format_clock(seconds: int) -> str:
    """Format seconds as m:ss."""
    minutes, secs = divmod(max(seconds, 0), 60)
    return f"{minutes}:{secs:02d}"
