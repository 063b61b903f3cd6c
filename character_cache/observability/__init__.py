"""관측성 모듈 (작업 시간 측정, 로깅 설정)"""

from .timing import (
    OperationMetrics,
    TimingRecord,
    get_operation_metrics,
    set_timing_sink,
    timed,
)

__all__ = [
    "OperationMetrics",
    "TimingRecord",
    "get_operation_metrics",
    "set_timing_sink",
    "timed",
]
