"""Timing hook for core operations.

Wraps sync and async callables, measures wall-clock duration on both the
success and the failure path, and reports a ``TimingRecord`` to a sink.
The wrapped callable's return value and exceptions pass through untouched.
"""

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional
import functools
import inspect
import time
import structlog

logger = structlog.get_logger(__name__)

OUTCOME_SUCCESS = "success"
OUTCOME_ERROR = "error"


@dataclass(frozen=True)
class TimingRecord:
    """Single timed invocation."""

    operation: str
    duration_ms: float
    outcome: str
    error_type: Optional[str] = None


TimingSink = Callable[[TimingRecord], None]
FailureClassifier = Callable[[Any], Optional[str]]


class OperationMetrics:
    """In-memory per-operation duration aggregates."""

    def __init__(self):
        self._operations: Dict[str, Dict[str, Any]] = defaultdict(
            lambda: {
                "count": 0,
                "errors": 0,
                "total_duration_ms": 0.0,
                "min_duration_ms": float("inf"),
                "max_duration_ms": 0.0,
                "avg_duration_ms": 0.0,
            }
        )

    def record(self, record: TimingRecord) -> None:
        """Fold one timing record into the aggregates."""
        stats = self._operations[record.operation]
        stats["count"] += 1
        if record.outcome == OUTCOME_ERROR:
            stats["errors"] += 1

        stats["total_duration_ms"] += record.duration_ms
        stats["min_duration_ms"] = min(stats["min_duration_ms"], record.duration_ms)
        stats["max_duration_ms"] = max(stats["max_duration_ms"], record.duration_ms)
        stats["avg_duration_ms"] = stats["total_duration_ms"] / stats["count"]

    __call__ = record

    def get_summary(self) -> Dict[str, Dict[str, Any]]:
        """Get a snapshot of the aggregates, keyed by operation name."""
        return {
            operation: {
                "count": stats["count"],
                "errors": stats["errors"],
                "min_duration_ms": round(stats["min_duration_ms"], 3),
                "max_duration_ms": round(stats["max_duration_ms"], 3),
                "avg_duration_ms": round(stats["avg_duration_ms"], 3),
            }
            for operation, stats in sorted(self._operations.items())
        }

    def reset(self) -> None:
        self._operations.clear()


_metrics = OperationMetrics()


def _default_sink(record: TimingRecord) -> None:
    _metrics.record(record)
    logger.info(
        "operation timed",
        operation=record.operation,
        duration_ms=round(record.duration_ms, 3),
        outcome=record.outcome,
        error_type=record.error_type,
    )


_sink: TimingSink = _default_sink


def get_operation_metrics() -> OperationMetrics:
    """Get the process-wide metrics fed by the default sink."""
    return _metrics


def set_timing_sink(sink: Optional[TimingSink]) -> TimingSink:
    """Replace the process-wide sink. ``None`` restores the default.

    Returns:
        The previously installed sink.
    """
    global _sink
    previous = _sink
    _sink = sink or _default_sink
    return previous


def _report(
    sink: Optional[TimingSink],
    operation: str,
    start: float,
    error_type: Optional[str],
) -> None:
    record = TimingRecord(
        operation=operation,
        duration_ms=(time.perf_counter() - start) * 1000,
        outcome=OUTCOME_ERROR if error_type is not None else OUTCOME_SUCCESS,
        error_type=error_type,
    )
    try:
        (sink or _sink)(record)
    except Exception as e:
        # A broken sink must not affect the timed operation
        logger.warning("timing sink failed", operation=operation, error=str(e))


def timed(
    operation: str,
    sink: Optional[TimingSink] = None,
    failure: Optional[FailureClassifier] = None,
) -> Callable:
    """Decorator that reports the duration of every call.

    Args:
        operation: Name attached to each ``TimingRecord``
        sink: Receiver for records; defaults to the process-wide sink
            resolved at call time (see ``set_timing_sink``)
        failure: Maps a returned value to an error type, or ``None`` when
            the value is a success. Raised exceptions are always errors.

    Example:
        ```python
        @timed("query_characters")
        async def query_characters(filters, *, cache, store): ...
        ```
    """

    def classify(result: Any) -> Optional[str]:
        return failure(result) if failure is not None else None

    def decorator(func: Callable) -> Callable:
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                start = time.perf_counter()
                error_type: Optional[str] = None
                try:
                    result = await func(*args, **kwargs)
                    error_type = classify(result)
                    return result
                except BaseException as e:
                    error_type = type(e).__name__
                    raise
                finally:
                    _report(sink, operation, start, error_type)

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            error_type: Optional[str] = None
            try:
                result = func(*args, **kwargs)
                error_type = classify(result)
                return result
            except BaseException as e:
                error_type = type(e).__name__
                raise
            finally:
                _report(sink, operation, start, error_type)

        return wrapper

    return decorator
