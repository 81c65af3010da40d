# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Execution registry.
Holds one coordinator per running schedule, keyed by execution id.
NO business rules here: pure CRUD.
"""

import threading
from typing import Optional

from rotation_engine.services.coordinator import ExecutionCoordinator


class ExecutionRepository:
    """In-memory coordinator storage."""

    def __init__(self) -> None:
        self._store: dict[str, ExecutionCoordinator] = {}
        self._lock = threading.Lock()

    # ── Read ──

    def get_all(self) -> list[ExecutionCoordinator]:
        with self._lock:
            return list(self._store.values())

    def get(self, execution_id: str) -> Optional[ExecutionCoordinator]:
        with self._lock:
            return self._store.get(execution_id)

    def exists(self, execution_id: str) -> bool:
        with self._lock:
            return execution_id in self._store

    def count(self) -> int:
        with self._lock:
            return len(self._store)

    # ── Write ──

    def save(self, coordinator: ExecutionCoordinator) -> None:
        with self._lock:
            self._store[coordinator.execution_id] = coordinator

    def delete(self, execution_id: str) -> Optional[ExecutionCoordinator]:
        with self._lock:
            return self._store.pop(execution_id, None)

    # ── Bulk / internal ──

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
