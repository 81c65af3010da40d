# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Request / Response schemas: API contract definitions.
These are Pydantic models used ONLY at the controller (HTTP) boundary.
"""

from pydantic import BaseModel

from rotation_engine.models.domain import (
    ExecutionStatus,
    SessionCollection,
    TimelineEntry,
)


# ── Schedule Schemas ──

class TimelineResponse(BaseModel):
    schedule_id: str
    total_rotations: int
    total_duration: int
    entries: list[TimelineEntry]


# ── Execution Schemas ──

class ExecutionSummary(BaseModel):
    execution_id: str
    schedule_id: str
    schedule_name: str
    status: ExecutionStatus
    current_rotation_index: int
    total_rotations: int
    time_remaining: int
    progress: int
    unacknowledged_alerts: int


class SessionsResponse(BaseModel):
    execution_id: str
    current: SessionCollection
    active_session_ids: list[str]
    history: list[SessionCollection]


class AbortResponse(BaseModel):
    status: str
    execution_id: str


class StatsResponse(BaseModel):
    total_executions: int
    executions_by_status: dict[str, int]
    total_history_events: int
    event_types: dict[str, int]
