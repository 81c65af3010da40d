# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain models: pure data structures, NO FastAPI dependency.
All durations are whole seconds.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# ── Enums ──

class WorkoutType(str, Enum):
    INTERVAL = "interval"
    STRENGTH = "strength"
    FREEFORM = "freeform"
    REST = "rest"


class RotationStrategy(str, Enum):
    SEQUENTIAL = "sequential"
    STAGGERED = "staggered"
    CUSTOM = "custom"


class ExecutionStatus(str, Enum):
    PREPARING = "preparing"
    ACTIVE = "active"
    TRANSITIONING = "transitioning"
    PAUSED = "paused"
    COMPLETED = "completed"
    ERRORED = "errored"


class AlertType(str, Enum):
    TRANSITION_WARNING = "transition_warning"
    TRANSITION_NOW = "transition_now"
    COMPLETION = "completion"
    EMERGENCY_STOP = "emergency_stop"
    ERROR = "error"


class AlertPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return list(AlertPriority).index(self)


class SessionStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"


class CollectionStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    TRANSITIONING = "transitioning"
    COMPLETED = "completed"


# ── Schedule (authored externally, immutable once handed to the engine) ──

class StationWorkout(BaseModel):
    """Workout attached to a station. The payload is opaque to the engine."""
    model_config = ConfigDict(frozen=True)

    type: WorkoutType = WorkoutType.FREEFORM
    payload: dict[str, Any] = Field(default_factory=dict)


class Station(BaseModel):
    """A fixed physical/equipment slot groups rotate through."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, max_length=255)
    name: str = Field(..., min_length=1, max_length=255)
    equipment: str = Field(default="none", description="Equipment tag")
    capacity: int = Field(..., description="Max players at the station")
    workout: StationWorkout = Field(default_factory=StationWorkout)
    duration: Optional[int] = Field(default=None, description="Informational only")
    color: Optional[str] = Field(default=None, description="Display only")


class Group(BaseModel):
    """A set of players that moves together between stations."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, max_length=255)
    name: str = Field(..., min_length=1, max_length=255)
    players: list[str] = Field(default_factory=list, description="Player ids")
    starting_station: str = Field(default="")
    rotation_order: list[str] = Field(default_factory=list)
    color: Optional[str] = None


class RotationSchedule(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, max_length=255)
    name: str = Field(..., min_length=1, max_length=255)
    stations: list[Station] = Field(default_factory=list)
    groups: list[Group] = Field(default_factory=list)
    rotation_duration: int = Field(..., description="Seconds per rotation")
    transition_time: int = Field(default=0, description="Seconds between rotations")
    rotation_order: list[str] = Field(
        default_factory=list, description="Global station order, one entry per rotation"
    )
    start_time: Optional[datetime] = None
    strategy: RotationStrategy = RotationStrategy.SEQUENTIAL

    def get_station(self, station_id: str) -> Optional[Station]:
        for station in self.stations:
            if station.id == station_id:
                return station
        return None


# ── Validation ──

class ValidationIssue(BaseModel):
    field: str
    message: str


class ValidationResult(BaseModel):
    is_valid: bool
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)
    recommendations: list[ValidationIssue] = Field(default_factory=list)


# ── Timeline ──

class TimelineEntry(BaseModel):
    time: int = Field(..., description="Seconds from session start")
    type: str = Field(..., pattern="^(start|transition|rotation|end)$")
    description: str
    positions: dict[str, str] = Field(default_factory=dict)


# ── Alerts ──

class Alert(BaseModel):
    """Immutable notification; acknowledgment replaces it with a flagged copy."""
    model_config = ConfigDict(frozen=True)

    id: str
    type: AlertType
    message: str
    timestamp: datetime
    priority: AlertPriority
    acknowledged: bool = False


# ── Sessions ──

class RotationContext(BaseModel):
    schedule_id: str
    station_id: str
    group_id: str
    rotation_index: int
    next_station_id: str
    previous_station_id: str
    time_until_rotation: int


class SessionRecord(BaseModel):
    id: str
    rotation_context: RotationContext
    station_workout: StationWorkout
    assigned_players: list[str]
    status: SessionStatus = SessionStatus.PENDING
    duration: int
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    actual_duration: Optional[int] = None


class SessionCollection(BaseModel):
    schedule_id: str
    rotation_index: int
    sessions: list[SessionRecord] = Field(default_factory=list)
    group_positions: dict[str, str] = Field(default_factory=dict)
    status: CollectionStatus = CollectionStatus.PENDING
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


# ── Execution ──

class ExecutionState(BaseModel):
    execution_id: str
    schedule_id: str
    status: ExecutionStatus = ExecutionStatus.PREPARING
    current_rotation_index: int = 0
    total_rotations: int
    time_remaining: int
    group_positions: dict[str, str] = Field(default_factory=dict)
    alerts: list[Alert] = Field(default_factory=list)
    current_sessions: SessionCollection
    session_history: list[SessionCollection] = Field(default_factory=list)
    active_session_ids: list[str] = Field(default_factory=list)
    paused_phase: Optional[ExecutionStatus] = None
    progress: int = 0
    error: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
