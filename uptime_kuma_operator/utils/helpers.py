"""Helper utility functions."""
import contextvars
import threading
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def build_monitor_name(service_name: str) -> str:
    """Name of the UptimeKumaMonitor derived from a Service."""
    return f"{service_name}-monitor"


def get_annotation(annotations: Optional[Mapping[str, str]], key: str, default: str = "") -> str:
    """Get an annotation value, falling back to a default when absent."""
    if not annotations:
        return default
    return annotations.get(key, default)


def parse_int(value: Optional[str]) -> Optional[int]:
    """Parse a decimal integer, returning None for anything else."""
    if value is None:
        return None
    try:
        return int(value.strip())
    except (TypeError, ValueError):
        return None


class KeyedLocks:
    """One lock per object uid, so an object never reconciles twice at once."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = defaultdict(threading.Lock)

    def get(self, key: str) -> threading.Lock:
        with self._guard:
            return self._locks[key]

    def discard(self, key: str) -> None:
        with self._guard:
            self._locks.pop(key, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class StripedLocks:
    """A fixed pool of locks shared out by key hash."""

    def __init__(self, size: int = 64):
        self._locks = [threading.Lock() for _ in range(size)]

    def get(self, key: str) -> threading.Lock:
        return self._locks[hash(key) % len(self._locks)]


class RetryTimers:
    """At most one pending retry per key, each fired from a background timer.

    Callbacks run in a copy of the scheduling context, so kopf posting helpers
    keep working from the timer thread.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._timers: Dict[str, threading.Timer] = {}

    def schedule(self, key: str, delay: float, fn: Callable[..., Any], *args: Any) -> None:
        """Run ``fn(*args)`` after ``delay`` seconds, replacing any retry already pending for the key."""
        context = contextvars.copy_context()
        timer = threading.Timer(delay, context.run, args=(self._fire, key, fn) + args)
        timer.daemon = True
        with self._guard:
            previous = self._timers.get(key)
            self._timers[key] = timer
        if previous is not None:
            previous.cancel()
        timer.start()

    def _fire(self, key: str, fn: Callable[..., Any], *args: Any) -> None:
        with self._guard:
            if self._timers.get(key) is threading.current_thread():
                del self._timers[key]
        fn(*args)

    def cancel(self, key: str) -> None:
        with self._guard:
            timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()

    def cancel_all(self) -> None:
        with self._guard:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()

    def __len__(self) -> int:
        with self._guard:
            return len(self._timers)
