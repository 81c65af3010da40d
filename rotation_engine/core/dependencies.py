# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
FastAPI dependency injection: wire repositories and services.
"""

from rotation_engine.repositories.execution_repository import ExecutionRepository
from rotation_engine.repositories.history_repository import HistoryRepository
from rotation_engine.services.execution_service import ExecutionService
from rotation_engine.services.notification_client import NotificationClient
from rotation_engine.services.schedule_service import ScheduleService

# ── Singleton repository instances (in-memory stores) ──
_execution_repo = ExecutionRepository()
_history_repo = HistoryRepository()
_notification_client = NotificationClient()

# ── Service instances (with injected dependencies) ──
_schedule_service = ScheduleService()
_execution_service = ExecutionService(
    execution_repo=_execution_repo,
    history_repo=_history_repo,
    notification_client=_notification_client,
)


# ── FastAPI dependency functions ──
def get_schedule_service() -> ScheduleService:
    return _schedule_service


def get_execution_service() -> ExecutionService:
    return _execution_service


def get_execution_repo() -> ExecutionRepository:
    return _execution_repo


def get_history_repo() -> HistoryRepository:
    return _history_repo
