# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Schedule validation. Pure and deterministic.
Errors block execution; warnings and recommendations never do.
"""

from rotation_engine.models.domain import (
    RotationSchedule,
    ValidationIssue,
    ValidationResult,
)
from rotation_engine.services.rotation import station_for

# Rotations longer than this tend to lose player engagement
RECOMMENDED_MAX_ROTATION_SECONDS = 20 * 60
# Allowed gap between average group size and average station capacity
BALANCE_TOLERANCE = 2


def validate_schedule(schedule: RotationSchedule) -> ValidationResult:
    """Check a schedule's structure and capacity before it is executed."""
    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []
    recommendations: list[ValidationIssue] = []

    # ── Schedule-level ──
    if len(schedule.stations) < 2:
        errors.append(ValidationIssue(
            field="stations",
            message="At least 2 stations are required for rotation",
        ))
    if not schedule.groups:
        errors.append(ValidationIssue(
            field="groups", message="At least one group is required",
        ))
    if schedule.rotation_duration <= 0:
        errors.append(ValidationIssue(
            field="rotation_duration",
            message=f"Rotation duration must be positive, got {schedule.rotation_duration}",
        ))
    if schedule.transition_time < 0:
        errors.append(ValidationIssue(
            field="transition_time",
            message=f"Transition time cannot be negative, got {schedule.transition_time}",
        ))
    elif schedule.rotation_duration > 0 and schedule.transition_time >= schedule.rotation_duration:
        warnings.append(ValidationIssue(
            field="transition_time",
            message=(
                f"Transition time ({schedule.transition_time}s) is not shorter than "
                f"the rotation duration ({schedule.rotation_duration}s)"
            ),
        ))

    # ── Stations ──
    capacities: dict[str, int] = {}
    for index, station in enumerate(schedule.stations):
        if station.id in capacities:
            errors.append(ValidationIssue(
                field=f"station-{index}",
                message=f"Duplicate station id '{station.id}'",
            ))
        capacities[station.id] = station.capacity
        if station.capacity <= 0:
            errors.append(ValidationIssue(
                field=f"station-{index}",
                message=f"Station '{station.name}' must have capacity > 0",
            ))

    # ── Global rotation order ──
    if not schedule.rotation_order:
        errors.append(ValidationIssue(
            field="rotation_order", message="Schedule rotation order is empty",
        ))
    else:
        unknown = [sid for sid in schedule.rotation_order if sid not in capacities]
        if unknown:
            errors.append(ValidationIssue(
                field="rotation_order",
                message=f"Rotation order references unknown stations: {', '.join(unknown)}",
            ))
        if len(schedule.rotation_order) != len(schedule.stations):
            warnings.append(ValidationIssue(
                field="rotation_order",
                message=(
                    f"Rotation order has {len(schedule.rotation_order)} steps "
                    f"for {len(schedule.stations)} stations"
                ),
            ))

    # ── Groups ──
    for index, group in enumerate(schedule.groups):
        field = f"group-{index}"
        player_count = len(group.players)

        if player_count == 0:
            warnings.append(ValidationIssue(
                field=field, message=f"Group '{group.name}' has no players assigned",
            ))
        elif player_count == 1:
            warnings.append(ValidationIssue(
                field=field,
                message=f"Group '{group.name}' has only one player - consider combining groups",
            ))

        if not group.rotation_order:
            errors.append(ValidationIssue(
                field=field, message=f"Group '{group.name}' has an empty rotation order",
            ))
            continue

        if group.starting_station not in capacities:
            errors.append(ValidationIssue(
                field=field,
                message=(
                    f"Group '{group.name}' starts at unknown station "
                    f"'{group.starting_station}'"
                ),
            ))
        unknown = [sid for sid in group.rotation_order if sid not in capacities]
        if unknown:
            errors.append(ValidationIssue(
                field=field,
                message=(
                    f"Group '{group.name}' rotation order references unknown stations: "
                    f"{', '.join(unknown)}"
                ),
            ))
        if group.starting_station not in group.rotation_order:
            errors.append(ValidationIssue(
                field=field,
                message=f"Group '{group.name}' rotation order does not contain its starting station",
            ))
        if len(set(group.rotation_order)) != len(group.rotation_order):
            errors.append(ValidationIssue(
                field=field,
                message=f"Group '{group.name}' rotation order visits a station more than once",
            ))
        if len(group.rotation_order) < 2:
            errors.append(ValidationIssue(
                field=field,
                message=f"Group '{group.name}' rotation order must contain at least 2 stations",
            ))

        if group.starting_station not in group.rotation_order:
            continue
        # Only stations the group reaches within the schedule's rotations
        visited = dict.fromkeys(
            station_for(group, k) for k in range(len(schedule.rotation_order))
        )
        over = [
            sid for sid in visited
            if sid in capacities and 0 < capacities[sid] < player_count
        ]
        for sid in over:
            warnings.append(ValidationIssue(
                field=field,
                message=(
                    f"Group '{group.name}' has too many players for station '{sid}' "
                    f"({player_count}/{capacities[sid]})"
                ),
            ))

    # ── Capacity ──
    total_capacity = sum(c for c in capacities.values() if c > 0)
    total_players = sum(len(g.players) for g in schedule.groups)
    if total_players > total_capacity:
        warnings.append(ValidationIssue(
            field="capacity",
            message=(
                f"Total players ({total_players}) exceed total station "
                f"capacity ({total_capacity})"
            ),
        ))

    # ── Recommendations ──
    if schedule.stations and schedule.groups:
        avg_group = total_players / len(schedule.groups)
        avg_capacity = total_capacity / len(schedule.stations)
        if abs(avg_group - avg_capacity) > BALANCE_TOLERANCE:
            recommendations.append(ValidationIssue(
                field="balance",
                message="Consider balancing group sizes with station capacities for optimal flow",
            ))
    if schedule.rotation_duration > RECOMMENDED_MAX_ROTATION_SECONDS:
        recommendations.append(ValidationIssue(
            field="rotation_duration",
            message="Consider shorter rotations (15-20 min) to maintain player engagement",
        ))

    return ValidationResult(
        is_valid=not errors,
        errors=errors,
        warnings=warnings,
        recommendations=recommendations,
    )
