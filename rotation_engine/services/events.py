# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Event emission: observer list between the engine and its consumers.
"""

from collections import defaultdict
from typing import Any, Callable

from rotation_engine.core.logging import get_logger

logger = get_logger(__name__)

SESSIONS_CREATED = "sessions_created"
ROTATION_STARTED = "rotation_started"
ROTATION_TRANSITION = "rotation_transition"
ROTATION_COMPLETE = "rotation_complete"
ALERT = "alert"

EVENT_TYPES: tuple[str, ...] = (
    SESSIONS_CREATED,
    ROTATION_STARTED,
    ROTATION_TRANSITION,
    ROTATION_COMPLETE,
    ALERT,
)

Handler = Callable[[Any], None]


class EventBus:
    """Ordered observer list per event type."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: str, handler: Handler) -> Callable[[], None]:
        """Register a handler; returns a callable that unsubscribes it."""
        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type '{event_type}'")
        self._handlers[event_type].append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers[event_type]:
                self._handlers[event_type].remove(handler)

        return unsubscribe

    def subscribe_all(self, handler: Callable[[str, Any], None]) -> None:
        for event_type in EVENT_TYPES:
            self._handlers[event_type].append(
                lambda payload, _type=event_type: handler(_type, payload)
            )

    def emit(self, event_type: str, payload: Any) -> None:
        """
        Deliver the payload to every handler in registration order.
        A failing handler is logged and does not stop the remaining ones.
        """
        for handler in list(self._handlers[event_type]):
            try:
                handler(payload)
            except Exception:
                logger.exception("Event handler failed for %s", event_type)

    def handler_count(self, event_type: str) -> int:
        return len(self._handlers[event_type])
