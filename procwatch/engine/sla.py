"""Health score and SLA calculations."""

from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta

from procwatch.models.alert import Alert, Severity
from procwatch.models.monitor import (
    HealthStatus,
    PerformanceSample,
    SlaStatus,
    SlaTargets,
)

STATUS_PENALTY = {
    HealthStatus.WARNING: 25,
    HealthStatus.CRITICAL: 50,
}
ALERT_PENALTY = {
    Severity.CRITICAL: 20,
    Severity.HIGH: 10,
}


def health_score(status: HealthStatus, active_alerts: Iterable[Alert]) -> int:
    """Score a monitor from 0 to 100.

    Down is always 0. Otherwise start at 100, subtract the status penalty and
    20/10 points per open Critical/High alert.
    """
    if status is HealthStatus.DOWN:
        return 0
    score = 100 - STATUS_PENALTY.get(status, 0)
    for alert in active_alerts:
        score -= ALERT_PENALTY.get(alert.severity, 0)
    return max(0, score)


def alert_counts(active_alerts: Iterable[Alert]) -> dict[str, int]:
    """Count open alerts per severity."""
    counts = {severity.value.lower(): 0 for severity in Severity}
    total = 0
    for alert in active_alerts:
        counts[alert.severity.value.lower()] += 1
        total += 1
    counts["total"] = total
    return counts


def calculate_sla_status(
    samples: Sequence[PerformanceSample],
    now: datetime,
    window_hours: int = 24,
    previous: SlaStatus | None = None,
) -> SlaStatus:
    """Derive SLA status from samples inside the window.

    Args:
        samples: Performance history (any order)
        now: End of the window
        window_hours: Window length
        previous: Returned unchanged when the window holds no samples

    Returns:
        Fresh SLA status
    """
    start = now - timedelta(hours=window_hours)
    recent = [s for s in samples if s.timestamp >= start]
    if not recent:
        return previous or SlaStatus(last_calculated=now)

    down = sum(1 for s in recent if s.status is HealthStatus.DOWN)
    availability = (len(recent) - down) / len(recent) * 100

    response_times = [s.metrics.response_time for s in recent if s.metrics.response_time]
    avg_response = sum(response_times) / len(response_times) if response_times else 0.0

    throughputs = [s.metrics.throughput for s in recent if s.metrics.throughput]
    avg_throughput = sum(throughputs) / len(throughputs) if throughputs else 0.0

    counted = [
        s for s in recent
        if s.metrics.error_count is not None or s.metrics.success_count is not None
    ]
    errors = sum(s.metrics.error_count or 0 for s in counted)
    successes = sum(s.metrics.success_count or 0 for s in counted)
    error_rate = errors / (errors + successes) * 100 if errors + successes else 0.0

    return SlaStatus(
        current_availability=availability,
        current_response_time=avg_response,
        current_throughput=avg_throughput,
        current_error_rate=error_rate,
        last_calculated=now,
    )


def sla_compliance(targets: SlaTargets, status: SlaStatus) -> float:
    """Percentage of SLA targets currently met."""
    checks = [
        status.current_availability >= targets.availability,
        status.current_response_time <= targets.response_time,
        status.current_throughput >= targets.throughput,
        status.current_error_rate <= targets.error_rate,
    ]
    return sum(checks) / len(checks) * 100
