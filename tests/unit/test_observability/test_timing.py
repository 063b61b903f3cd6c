"""Unit tests for the timing hook."""

import asyncio
import inspect

import pytest
from unittest.mock import Mock

from character_cache.exceptions import StoreUnavailableError
from character_cache.observability.timing import (
    OperationMetrics,
    TimingRecord,
    get_operation_metrics,
    set_timing_sink,
    timed,
)


@pytest.fixture
def records():
    return []


@pytest.fixture
def sink(records):
    return records.append


class TestTimedAsync:
    """Test the decorator on coroutine functions."""

    @pytest.mark.asyncio
    async def test_success_record(self, sink, records):
        @timed("fetch", sink=sink)
        async def fetch(value):
            await asyncio.sleep(0.01)
            return value * 2

        assert await fetch(21) == 42

        assert len(records) == 1
        record = records[0]
        assert record.operation == "fetch"
        assert record.outcome == "success"
        assert record.error_type is None
        assert record.duration_ms >= 5

    @pytest.mark.asyncio
    async def test_error_record_and_exception_unchanged(self, sink, records):
        error = StoreUnavailableError("Query failed", operation="find_all")

        @timed("fetch", sink=sink)
        async def fetch():
            raise error

        with pytest.raises(StoreUnavailableError) as exc_info:
            await fetch()

        assert exc_info.value is error
        assert records[0].outcome == "error"
        assert records[0].error_type == "StoreUnavailableError"

    @pytest.mark.asyncio
    async def test_wraps_preserves_metadata(self, sink):
        @timed("fetch", sink=sink)
        async def fetch_characters():
            """Fetch docstring."""

        assert fetch_characters.__name__ == "fetch_characters"
        assert fetch_characters.__doc__ == "Fetch docstring."
        assert inspect.iscoroutinefunction(fetch_characters)

    @pytest.mark.asyncio
    async def test_failure_classifier_marks_returned_value(self, sink, records):
        @timed("job", sink=sink, failure=lambda r: "JobFailed" if r == "failed" else None)
        async def job(result):
            return result

        assert await job("failed") == "failed"
        assert await job("done") == "done"

        assert [(r.outcome, r.error_type) for r in records] == [
            ("error", "JobFailed"),
            ("success", None),
        ]


class TestTimedSync:
    """Test the decorator on plain functions."""

    def test_success(self, sink, records):
        @timed("add", sink=sink)
        def add(a, b):
            return a + b

        assert add(1, b=2) == 3
        assert records == [
            TimingRecord(
                operation="add",
                duration_ms=records[0].duration_ms,
                outcome="success",
            )
        ]

    def test_failure_classifier(self, sink, records):
        @timed("parse", sink=sink, failure=lambda r: None if r else "EmptyResult")
        def parse(text):
            return text.split()

        assert parse("") == []

        assert records[0].outcome == "error"
        assert records[0].error_type == "EmptyResult"

    def test_error(self, sink, records):
        @timed("divide", sink=sink)
        def divide(a, b):
            return a / b

        with pytest.raises(ZeroDivisionError):
            divide(1, 0)

        assert records[0].outcome == "error"
        assert records[0].error_type == "ZeroDivisionError"


class TestSinkHandling:
    """Test sink resolution and failures."""

    def test_failing_sink_does_not_break_operation(self):
        broken = Mock(side_effect=RuntimeError("sink down"))

        @timed("op", sink=broken)
        def op():
            return "ok"

        assert op() == "ok"
        broken.assert_called_once()

    def test_failing_sink_does_not_mask_operation_error(self):
        @timed("op", sink=Mock(side_effect=RuntimeError("sink down")))
        def op():
            raise KeyError("original")

        with pytest.raises(KeyError, match="original"):
            op()

    def test_process_sink_resolved_at_call_time(self, records):
        @timed("late")
        def late():
            return None

        set_timing_sink(records.append)
        late()

        assert [r.operation for r in records] == ["late"]

    def test_default_sink_feeds_operation_metrics(self):
        @timed("default_op")
        def op(fail=False):
            if fail:
                raise ValueError("bad")

        op()
        with pytest.raises(ValueError):
            op(fail=True)

        summary = get_operation_metrics().get_summary()
        assert summary["default_op"]["count"] == 2
        assert summary["default_op"]["errors"] == 1

    def test_set_timing_sink_returns_previous(self, records):
        first = set_timing_sink(records.append)
        second = set_timing_sink(None)

        assert second == records.append
        assert first is not second


class TestOperationMetrics:
    """Test aggregation."""

    def test_aggregates_per_operation(self):
        metrics = OperationMetrics()
        metrics.record(TimingRecord("query", 10.0, "success"))
        metrics.record(TimingRecord("query", 30.0, "error", "StoreUnavailableError"))
        metrics(TimingRecord("refresh", 5.0, "success"))

        summary = metrics.get_summary()

        assert summary["query"] == {
            "count": 2,
            "errors": 1,
            "min_duration_ms": 10.0,
            "max_duration_ms": 30.0,
            "avg_duration_ms": 20.0,
        }
        assert summary["refresh"]["count"] == 1

    def test_reset(self):
        metrics = OperationMetrics()
        metrics.record(TimingRecord("query", 1.0, "success"))
        metrics.reset()

        assert metrics.get_summary() == {}
