# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Tick sources, the single logical clock behind each execution.

A tick source calls one callback once per time unit between start() and
stop(). stop(wait=False) only signals the clock; join() then waits for the
stopped runs to exit, so callers can signal under a lock and join after
releasing it. The coordinator never sleeps or reads wall-clock time itself, so
tests drive it with ManualTickSource and production uses IntervalTickSource.
"""

import threading
import time
from typing import Callable, Optional, Protocol

from rotation_engine.core.config import settings
from rotation_engine.core.logging import get_logger

logger = get_logger(__name__)

TickCallback = Callable[[], None]


class TickSource(Protocol):
    """Clock abstraction injected into the coordinator."""

    @property
    def running(self) -> bool: ...

    def start(self, callback: TickCallback) -> None: ...

    def stop(self, wait: bool = True) -> None: ...

    def join(self, timeout: Optional[float] = None) -> None: ...


class ManualTickSource:
    """Deterministic clock: ticks only when advance() is called."""

    def __init__(self) -> None:
        self._callback: Optional[TickCallback] = None
        self.start_count = 0
        self.stop_count = 0

    @property
    def running(self) -> bool:
        return self._callback is not None

    def start(self, callback: TickCallback) -> None:
        self._callback = callback
        self.start_count += 1

    def stop(self, wait: bool = True) -> None:
        if self._callback is not None:
            self.stop_count += 1
        self._callback = None

    def join(self, timeout: Optional[float] = None) -> None:
        pass

    def advance(self, ticks: int = 1) -> int:
        """Deliver up to `ticks` ticks; stops early once the clock is stopped."""
        delivered = 0
        for _ in range(ticks):
            if self._callback is None:
                break
            self._callback()
            delivered += 1
        return delivered


class IntervalTickSource:
    """
    Thread-backed clock: one daemon thread per running execution.

    Deadlines are scheduled from a monotonic base, so a slow callback does not
    push every later tick back. stop() is safe from inside the callback (the
    thread exits after the callback returns). A stopped thread may still be
    delivering one last tick; join() waits for it.
    """

    def __init__(
        self,
        interval: Optional[float] = None,
        name: str = "rotation-clock",
    ) -> None:
        self._interval = interval if interval is not None else settings.TICK_INTERVAL_SECONDS
        self._name = name
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None
        self._stopped: list[threading.Thread] = []

    @property
    def running(self) -> bool:
        with self._lock:
            return self._stop_event is not None and not self._stop_event.is_set()

    def start(self, callback: TickCallback) -> None:
        with self._lock:
            if self._stop_event is not None and not self._stop_event.is_set():
                raise RuntimeError(f"Clock '{self._name}' is already running")
            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._run,
                args=(callback, stop_event),
                name=self._name,
                daemon=True,
            )
            self._stop_event = stop_event
            self._thread = thread
        thread.start()

    def stop(self, wait: bool = True) -> None:
        with self._lock:
            stop_event, thread = self._stop_event, self._thread
            self._stop_event = None
            self._thread = None
            if thread is not None:
                self._stopped.append(thread)
        if stop_event is None:
            return
        stop_event.set()
        if wait:
            self.join()

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for stopped threads to exit. The calling clock thread is skipped."""
        timeout = settings.CLOCK_JOIN_TIMEOUT if timeout is None else timeout
        with self._lock:
            stopped, self._stopped = self._stopped, []
        current = threading.current_thread()
        for thread in stopped:
            if thread is current:
                continue
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning("Clock thread %s did not stop within timeout", self._name)

    def _run(self, callback: TickCallback, stop_event: threading.Event) -> None:
        deadline = time.monotonic() + self._interval
        while not stop_event.wait(max(deadline - time.monotonic(), 0.0)):
            deadline += self._interval
            try:
                callback()
            except Exception:
                logger.exception("Tick callback failed on clock %s", self._name)
