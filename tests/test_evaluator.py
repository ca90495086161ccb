"""Tests for threshold evaluation."""

import pytest

from procwatch.engine.evaluator import (
    evaluate_consecutive_failures,
    evaluate_thresholds,
    success_rate,
)
from procwatch.models.alert import AlertType, Severity
from procwatch.models.monitor import HealthStatus, MetricsSample, Thresholds


def test_execution_time_over_threshold_raises_one_timeout() -> None:
    alerts = evaluate_thresholds(MetricsSample(execution_time=301000), Thresholds())

    assert len(alerts) == 1
    assert alerts[0].alert_type is AlertType.EXECUTION_TIMEOUT
    assert alerts[0].severity is Severity.HIGH
    assert alerts[0].metadata == {"executionTime": 301000, "threshold": 300000}


def test_execution_time_within_threshold_raises_nothing() -> None:
    assert evaluate_thresholds(MetricsSample(execution_time=100000), Thresholds()) == []


def test_value_equal_to_threshold_is_not_a_breach() -> None:
    sample = MetricsSample(execution_time=300000, memory_usage=512, cpu_usage=80)
    assert evaluate_thresholds(sample, Thresholds()) == []


def test_each_breached_threshold_raises_its_own_alert() -> None:
    sample = MetricsSample(
        execution_time=400000,
        memory_usage=1024,
        cpu_usage=97,
        success_count=10,
        error_count=10,
    )

    alerts = evaluate_thresholds(sample, Thresholds())

    assert [a.alert_type for a in alerts] == [
        AlertType.EXECUTION_TIMEOUT,
        AlertType.MEMORY_THRESHOLD,
        AlertType.CPU_THRESHOLD,
        AlertType.HIGH_ERROR_RATE,
    ]
    assert [a.severity for a in alerts] == [
        Severity.HIGH,
        Severity.MEDIUM,
        Severity.MEDIUM,
        Severity.HIGH,
    ]


def test_low_success_rate_raises_high_error_rate() -> None:
    sample = MetricsSample(success_count=18, error_count=2)

    alerts = evaluate_thresholds(sample, Thresholds(min_success_rate=95))

    assert len(alerts) == 1
    alert = alerts[0]
    assert alert.alert_type is AlertType.HIGH_ERROR_RATE
    assert alert.severity is Severity.HIGH
    assert alert.metadata["successRate"] == pytest.approx(90.0)
    assert alert.metadata["errorRate"] == pytest.approx(10.0)
    assert alert.metadata["threshold"] == 95


@pytest.mark.parametrize(
    "sample",
    [
        MetricsSample(),
        MetricsSample(success_count=5),
        MetricsSample(error_count=5),
        MetricsSample(success_count=0, error_count=0),
    ],
)
def test_success_rate_undefined_without_both_counts(sample: MetricsSample) -> None:
    assert success_rate(sample) is None
    assert evaluate_thresholds(sample, Thresholds()) == []


def test_evaluation_is_pure() -> None:
    sample = MetricsSample(cpu_usage=95)
    thresholds = Thresholds()

    first = evaluate_thresholds(sample, thresholds)
    second = evaluate_thresholds(sample, thresholds)

    assert first == second
    assert sample == MetricsSample(cpu_usage=95)


def test_consecutive_failures_needs_a_full_run() -> None:
    thresholds = Thresholds(max_consecutive_failures=3)

    assert evaluate_consecutive_failures([HealthStatus.CRITICAL] * 2, thresholds) is None
    assert evaluate_consecutive_failures(
        [HealthStatus.DOWN, HealthStatus.HEALTHY, HealthStatus.CRITICAL],
        thresholds,
    ) is None

    alert = evaluate_consecutive_failures(
        [HealthStatus.CRITICAL, HealthStatus.DOWN, HealthStatus.CRITICAL, HealthStatus.HEALTHY],
        thresholds,
    )
    assert alert is not None
    assert alert.alert_type is AlertType.CONSECUTIVE_FAILURES
    assert alert.severity is Severity.CRITICAL
