# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Execution audit log.
One shared append-only log; the oldest entries fall off once it is full.
Entries outlive the execution that produced them.
"""

import itertools
import threading
import uuid
from collections import Counter, deque
from datetime import datetime, timezone
from typing import Any, Optional

from rotation_engine.core.config import settings


class HistoryRepository:
    """In-memory bounded event log keyed by execution id."""

    def __init__(self, max_size: Optional[int] = None) -> None:
        self._events: deque[dict[str, Any]] = deque(maxlen=max_size or settings.MAX_HISTORY_SIZE)
        self._sequence = itertools.count(1)
        self._lock = threading.Lock()

    # ── Read ──

    def get_all(
        self,
        execution_id: Optional[str] = None,
        event_type: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """Most recent matching events, oldest first."""
        limit = limit or settings.DEFAULT_HISTORY_LIMIT
        with self._lock:
            matching = [
                event for event in self._events
                if (execution_id is None or event["execution_id"] == execution_id)
                and (event_type is None or event["event_type"] == event_type)
            ]
        return matching[-limit:]

    def count(self, execution_id: Optional[str] = None) -> int:
        with self._lock:
            if execution_id is None:
                return len(self._events)
            return sum(1 for event in self._events if event["execution_id"] == execution_id)

    def count_by_type(self) -> dict[str, int]:
        with self._lock:
            return dict(Counter(event["event_type"] for event in self._events))

    # ── Write ──

    def record_event(
        self, event_type: str, execution_id: str, details: dict[str, Any]
    ) -> dict[str, Any]:
        with self._lock:
            event = {
                "sequence": next(self._sequence),
                "event_id": str(uuid.uuid4()),
                "event_type": event_type,
                "execution_id": execution_id,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "details": dict(details),
            }
            self._events.append(event)
        return event

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
