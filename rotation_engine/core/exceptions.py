# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain exceptions: raised by the engine, translated to HTTP by controllers.
"""


class RotationEngineError(Exception):
    """Base class for every rotation engine error."""
    pass


# ── Schedule errors ──

class ScheduleValidationError(RotationEngineError):
    """The schedule failed validation and cannot be executed."""

    def __init__(self, result):
        self.result = result
        messages = "; ".join(issue.message for issue in result.errors)
        super().__init__(f"Schedule is invalid: {messages}")


class InvalidRotationOrder(RotationEngineError):
    """A group's rotation order is empty or does not contain its starting station."""

    def __init__(self, group_id: str, reason: str):
        self.group_id = group_id
        self.reason = reason
        super().__init__(f"Invalid rotation order for group '{group_id}': {reason}")


class StationNotFound(RotationEngineError):
    """A station id referenced at runtime is not part of the schedule."""

    def __init__(self, station_id: str):
        self.station_id = station_id
        super().__init__(f"Station '{station_id}' not found in schedule")


# ── Execution errors ──

class InvalidStateTransition(RotationEngineError):
    """The command is not allowed from the current execution status."""

    def __init__(self, operation: str, status: str):
        self.operation = operation
        self.status = status
        super().__init__(f"Cannot {operation} while execution is '{status}'")


class AlertNotFound(RotationEngineError):
    """No alert with the given id exists on the execution."""

    def __init__(self, alert_id: str):
        self.alert_id = alert_id
        super().__init__(f"Alert '{alert_id}' not found")
