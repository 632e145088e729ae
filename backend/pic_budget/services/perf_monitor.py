"""Performance monitoring utilities for the budget export path."""
import time
import logging
import threading
import functools
from typing import Any, Callable, Dict

logger = logging.getLogger("pic-budget.perf")


def timed(func: Callable) -> Callable:
    """
    Decorator that measures and logs execution time for synchronous functions.

    Usage::

        @timed
        def build_layout(...):
            ...
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            logger.debug(
                "function timed",
                extra={
                    "function": func.__qualname__,
                    "duration_ms": duration_ms,
                },
            )
    return wrapper


def timed_async(func: Callable) -> Callable:
    """Same as :func:`timed` for coroutines."""
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        start = time.perf_counter()
        try:
            return await func(*args, **kwargs)
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            logger.debug(
                "async function timed",
                extra={
                    "function": func.__qualname__,
                    "duration_ms": duration_ms,
                },
            )
    return wrapper


class ExportTracker:
    """
    Thread-safe in-memory tracker for workbook exports.

    Tracks:
    - Exports generated and their cumulative / slowest duration
    - Exports rejected because another one was in flight
    - Failed exports
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._exports_generated: int = 0
        self._total_duration_ms: float = 0.0
        self._slowest_ms: float = 0.0
        self._rejected: int = 0
        self._failed: int = 0

    def record_export(self, duration_ms: float) -> None:
        with self._lock:
            self._exports_generated += 1
            self._total_duration_ms += duration_ms
            self._slowest_ms = max(self._slowest_ms, duration_ms)

    def record_rejected(self) -> None:
        with self._lock:
            self._rejected += 1

    def record_failure(self) -> None:
        with self._lock:
            self._failed += 1

    def get_metrics(self) -> Dict[str, Any]:
        with self._lock:
            avg = (
                round(self._total_duration_ms / self._exports_generated, 2)
                if self._exports_generated > 0
                else 0.0
            )
            return {
                "exports_generated": self._exports_generated,
                "avg_export_duration_ms": avg,
                "slowest_export_ms": round(self._slowest_ms, 2),
                "exports_rejected": self._rejected,
                "exports_failed": self._failed,
            }

    def reset(self) -> None:
        """Reset all counters (useful in tests)."""
        with self._lock:
            self._exports_generated = 0
            self._total_duration_ms = 0.0
            self._slowest_ms = 0.0
            self._rejected = 0
            self._failed = 0


# Module-level singleton; import this instance everywhere else.
tracker = ExportTracker()
