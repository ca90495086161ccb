"""Threshold evaluation for performance samples.

Both functions are pure: they only describe the alerts to raise. Callers
persist the results.
"""

from collections.abc import Sequence

from procwatch.models.alert import AlertIntent, AlertType, Severity
from procwatch.models.monitor import HealthStatus, MetricsSample, Thresholds

FAILURE_STATUSES = frozenset({HealthStatus.CRITICAL, HealthStatus.DOWN})


def success_rate(sample: MetricsSample) -> float | None:
    """Success percentage of a sample, or None when it cannot be computed."""
    if sample.success_count is None or sample.error_count is None:
        return None
    total = sample.success_count + sample.error_count
    if total == 0:
        return None
    return sample.success_count / total * 100


def evaluate_thresholds(sample: MetricsSample, thresholds: Thresholds) -> list[AlertIntent]:
    """Return one alert intent per breached threshold.

    Args:
        sample: Performance observation; absent fields are not checked
        thresholds: Monitor thresholds

    Returns:
        Alert intents in a fixed order (timeout, memory, cpu, error rate)
    """
    alerts: list[AlertIntent] = []

    if sample.execution_time is not None and sample.execution_time > thresholds.max_execution_time:
        alerts.append(
            AlertIntent(
                alert_type=AlertType.EXECUTION_TIMEOUT,
                severity=Severity.HIGH,
                message=(
                    f"Execution time ({sample.execution_time:g}ms) exceeded "
                    f"threshold ({thresholds.max_execution_time:g}ms)"
                ),
                metadata={
                    "executionTime": sample.execution_time,
                    "threshold": thresholds.max_execution_time,
                },
            )
        )

    if sample.memory_usage is not None and sample.memory_usage > thresholds.max_memory_usage:
        alerts.append(
            AlertIntent(
                alert_type=AlertType.MEMORY_THRESHOLD,
                severity=Severity.MEDIUM,
                message=(
                    f"Memory usage ({sample.memory_usage:g}MB) exceeded "
                    f"threshold ({thresholds.max_memory_usage:g}MB)"
                ),
                metadata={
                    "memoryUsage": sample.memory_usage,
                    "threshold": thresholds.max_memory_usage,
                },
            )
        )

    if sample.cpu_usage is not None and sample.cpu_usage > thresholds.max_cpu_usage:
        alerts.append(
            AlertIntent(
                alert_type=AlertType.CPU_THRESHOLD,
                severity=Severity.MEDIUM,
                message=(
                    f"CPU usage ({sample.cpu_usage:g}%) exceeded "
                    f"threshold ({thresholds.max_cpu_usage:g}%)"
                ),
                metadata={
                    "cpuUsage": sample.cpu_usage,
                    "threshold": thresholds.max_cpu_usage,
                },
            )
        )

    rate = success_rate(sample)
    if rate is not None and rate < thresholds.min_success_rate:
        alerts.append(
            AlertIntent(
                alert_type=AlertType.HIGH_ERROR_RATE,
                severity=Severity.HIGH,
                message=(
                    f"Success rate ({rate:.2f}%) below "
                    f"threshold ({thresholds.min_success_rate:g}%)"
                ),
                metadata={
                    "successRate": round(rate, 2),
                    "errorRate": round(100 - rate, 2),
                    "threshold": thresholds.min_success_rate,
                },
            )
        )

    return alerts


def evaluate_consecutive_failures(
    statuses: Sequence[HealthStatus],
    thresholds: Thresholds,
) -> AlertIntent | None:
    """Check the newest samples for a run of failures.

    Args:
        statuses: Sample statuses, newest first
        thresholds: Monitor thresholds

    Returns:
        A Consecutive_Failures intent when the newest
        ``max_consecutive_failures`` samples are all Critical or Down
    """
    limit = thresholds.max_consecutive_failures
    recent = list(statuses[:limit])
    if len(recent) < limit or not all(status in FAILURE_STATUSES for status in recent):
        return None

    return AlertIntent(
        alert_type=AlertType.CONSECUTIVE_FAILURES,
        severity=Severity.CRITICAL,
        message=f"{limit} consecutive failed health samples",
        metadata={"consecutiveFailures": limit, "threshold": limit},
    )
