# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Session projection: pure mapping, no engine-state mutation.
Turns a station's workout plus a group's assignment into session records.
Status changes (active / completed) belong to the coordinator.
"""

from rotation_engine.core.exceptions import StationNotFound
from rotation_engine.models.domain import (
    CollectionStatus,
    Group,
    RotationContext,
    RotationSchedule,
    SessionCollection,
    SessionRecord,
    SessionStatus,
    Station,
)
from rotation_engine.services import rotation


def session_id(schedule_id: str, rotation_index: int, group_id: str, station_id: str) -> str:
    return f"rotation-{schedule_id}-{rotation_index}-{group_id}-{station_id}"


def build_context(
    schedule: RotationSchedule, group: Group, rotation_index: int
) -> RotationContext:
    return RotationContext(
        schedule_id=schedule.id,
        station_id=rotation.station_for(group, rotation_index),
        group_id=group.id,
        rotation_index=rotation_index,
        next_station_id=rotation.next_station_for(group, rotation_index),
        previous_station_id=rotation.previous_station_for(group, rotation_index),
        time_until_rotation=schedule.rotation_duration,
    )


def project(group: Group, station: Station, context: RotationContext) -> SessionRecord:
    """Build a pending session record for one group at one station."""
    return SessionRecord(
        id=session_id(context.schedule_id, context.rotation_index, group.id, station.id),
        rotation_context=context.model_copy(),
        station_workout=station.workout.model_copy(deep=True),
        assigned_players=list(group.players),
        status=SessionStatus.PENDING,
        duration=context.time_until_rotation,
    )


def project_rotation(schedule: RotationSchedule, rotation_index: int) -> SessionCollection:
    """
    Project every group's session for a rotation.
    Raises StationNotFound if a computed station is missing from the schedule.
    """
    sessions: list[SessionRecord] = []
    positions: dict[str, str] = {}
    for group in schedule.groups:
        context = build_context(schedule, group, rotation_index)
        station = schedule.get_station(context.station_id)
        if station is None:
            raise StationNotFound(context.station_id)
        sessions.append(project(group, station, context))
        positions[group.id] = station.id

    return SessionCollection(
        schedule_id=schedule.id,
        rotation_index=rotation_index,
        sessions=sessions,
        group_positions=positions,
        status=CollectionStatus.PENDING,
    )
