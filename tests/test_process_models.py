"""Tests for process model helpers."""

from datetime import datetime, timedelta, timezone

import pytest

from procwatch.core.errors import InvalidInputError
from procwatch.models.execution import ExecutionRecord, ExecutionStatus
from procwatch.models.process import (
    ProcessStep,
    bump_minor_version,
    compute_metrics,
    normalize_steps,
)

START = datetime(2026, 2, 1, 9, 0, tzinfo=timezone.utc)


def test_steps_without_order_get_their_position() -> None:
    steps = normalize_steps([ProcessStep(step_id="s1"), ProcessStep(step_id="s2")])

    assert [s.order for s in steps] == [1, 2]
    assert [s.name for s in steps] == ["Step 1", "Step 2"]


def test_missing_step_ids_are_generated() -> None:
    steps = normalize_steps([ProcessStep(name="a"), ProcessStep(name="b", order=5)])

    assert all(s.step_id for s in steps)
    assert steps[0].step_id != steps[1].step_id
    assert steps[1].order == 5


def test_duplicate_step_ids_are_rejected() -> None:
    with pytest.raises(InvalidInputError):
        normalize_steps([ProcessStep(step_id="s1"), ProcessStep(step_id="s1")])


def test_bump_minor_version() -> None:
    assert bump_minor_version("1.0.0") == "1.1.0"
    assert bump_minor_version("2.9.3") == "2.10.3"
    assert bump_minor_version("3") == "3.1.0"


def record(offset_minutes: int, status: ExecutionStatus, duration_s: int | None) -> ExecutionRecord:
    start = START + timedelta(minutes=offset_minutes)
    return ExecutionRecord(
        execution_id=f"e{offset_minutes}",
        process_id="p1",
        start_time=start,
        end_time=start + timedelta(seconds=duration_s) if duration_s is not None else None,
        status=status,
    )


def test_compute_metrics_from_records() -> None:
    metrics = compute_metrics([
        record(10, ExecutionStatus.COMPLETED, 4),
        record(0, ExecutionStatus.COMPLETED, 2),
        record(20, ExecutionStatus.FAILED, 1),
        record(30, ExecutionStatus.RUNNING, None),
    ])

    assert metrics.total_executions == 4
    assert metrics.successful_executions == 2
    assert metrics.failed_executions == 1
    assert metrics.average_execution_time == 3000
    assert metrics.last_execution_time == START + timedelta(minutes=30)
    assert metrics.last_success_time == START + timedelta(minutes=10, seconds=4)
    assert metrics.last_failure_time == START + timedelta(minutes=20, seconds=1)


def test_compute_metrics_empty() -> None:
    assert compute_metrics([]).total_executions == 0
