"""Read-only dashboard rollups over monitors and processes.

The aggregators only read from the stores. Given the same stored data and the
same ``now`` they return identical results.
"""

from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta
from typing import Any

from procwatch.core.logging import get_logger
from procwatch.engine.sla import health_score
from procwatch.models.alert import Alert, Severity
from procwatch.models.base import to_millis, utcnow
from procwatch.models.execution import ExecutionRecord
from procwatch.models.monitor import HealthStatus, PerformanceSample, ProcessMonitor
from procwatch.models.process import AutomatedProcess, ProcessStatus
from procwatch.storage.monitor_store import MonitorStore
from procwatch.storage.process_store import ProcessStore

logger = get_logger(__name__)

MONITOR_TIMEFRAMES = {
    "1h": timedelta(hours=1),
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}
DEFAULT_MONITOR_TIMEFRAME = "24h"

PROCESS_TIMEFRAMES = {
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
}
DEFAULT_PROCESS_TIMEFRAME = "30d"

TOP_ALERT_PROCESSES = 10
RECENT_ALERTS = 20
RECENT_EXECUTIONS = 50


def _average(values: Iterable[float | None]) -> float:
    present = [v for v in values if v is not None]
    return sum(present) / len(present) if present else 0


def resolve_timeframe(timeframe: str | None, choices: dict[str, timedelta], default: str) -> str:
    """Known timeframe key, or ``default`` for anything else."""
    return timeframe if timeframe in choices else default


def monitor_summary(monitors: Sequence[ProcessMonitor], alerts: dict[str, list[Alert]]) -> dict[str, Any]:
    """Status counts, alert totals and averages over active monitors."""
    total = len(monitors)
    statuses = [m.current_metrics.status for m in monitors]
    healthy = statuses.count(HealthStatus.HEALTHY)
    scores = [health_score(m.current_metrics.status, alerts.get(m.id, [])) for m in monitors]
    return {
        "totalMonitors": total,
        "healthyProcesses": healthy,
        "warningProcesses": statuses.count(HealthStatus.WARNING),
        "criticalProcesses": statuses.count(HealthStatus.CRITICAL),
        "downProcesses": statuses.count(HealthStatus.DOWN),
        "totalActiveAlerts": sum(len(alerts.get(m.id, [])) for m in monitors),
        "avgResponseTime": _average(m.current_metrics.response_time for m in monitors),
        "avgMemoryUsage": _average(m.current_metrics.memory_usage for m in monitors),
        "avgCpuUsage": _average(m.current_metrics.cpu_usage for m in monitors),
        "avgHealthScore": round(sum(scores) / total, 2) if total else 0,
        "healthPercentage": round(healthy / total * 100, 2) if total else 0,
    }


def alert_breakdown(alerts: Iterable[Alert]) -> dict[str, int]:
    """Active alerts per severity; every severity is present."""
    breakdown = {severity.value: 0 for severity in Severity}
    for alert in alerts:
        breakdown[alert.severity.value] += 1
    return breakdown


def performance_trends(
    samples: Iterable[PerformanceSample],
    start: datetime,
    end: datetime | None = None,
) -> list[dict[str, Any]]:
    """Hourly buckets of samples between ``start`` and ``end``, oldest first."""
    buckets: dict[tuple[str, int], list[PerformanceSample]] = defaultdict(list)
    for sample in samples:
        if sample.timestamp < start or (end is not None and sample.timestamp > end):
            continue
        buckets[(sample.timestamp.strftime("%Y-%m-%d"), sample.timestamp.hour)].append(sample)

    trends = []
    for (day, hour), bucket in sorted(buckets.items()):
        trends.append({
            "date": day,
            "hour": hour,
            "samples": len(bucket),
            "avgResponseTime": _average(s.metrics.response_time for s in bucket),
            "avgMemoryUsage": _average(s.metrics.memory_usage for s in bucket),
            "avgCpuUsage": _average(s.metrics.cpu_usage for s in bucket),
            "errorCount": sum(s.metrics.error_count or 0 for s in bucket),
            "successCount": sum(s.metrics.success_count or 0 for s in bucket),
        })
    return trends


def top_alert_processes(
    monitors: Sequence[ProcessMonitor],
    alerts: dict[str, list[Alert]],
    limit: int = TOP_ALERT_PROCESSES,
) -> list[dict[str, Any]]:
    ranked = [
        {
            "monitorId": m.id,
            "processId": m.process_id,
            "processName": m.process_name,
            "alertCount": len(alerts.get(m.id, [])),
            "currentStatus": m.current_metrics.status.value,
        }
        for m in monitors
        if alerts.get(m.id)
    ]
    ranked.sort(key=lambda row: (-row["alertCount"], row["processName"], row["monitorId"]))
    return ranked[:limit]


def sla_averages(monitors: Sequence[ProcessMonitor]) -> dict[str, float]:
    if not monitors:
        return {}
    return {
        "avgAvailability": _average(m.sla_status.current_availability for m in monitors),
        "avgResponseTime": _average(m.sla_status.current_response_time for m in monitors),
        "avgThroughput": _average(m.sla_status.current_throughput for m in monitors),
        "avgErrorRate": _average(m.sla_status.current_error_rate for m in monitors),
    }


def recent_alerts(
    monitors: Sequence[ProcessMonitor],
    alerts: dict[str, list[Alert]],
    limit: int = RECENT_ALERTS,
) -> list[dict[str, Any]]:
    rows = [
        (alert, monitor)
        for monitor in monitors
        for alert in alerts.get(monitor.id, [])
    ]
    rows.sort(key=lambda row: (row[0].triggered_at, row[0].alert_id), reverse=True)
    return [
        {
            "processId": monitor.process_id,
            "processName": monitor.process_name,
            "alert": alert.model_dump(mode="json", by_alias=True),
        }
        for alert, monitor in rows[:limit]
    ]


class MonitoringDashboardAggregator:
    """Builds the monitoring dashboard from the monitor store."""

    def __init__(self, store: MonitorStore | None = None):
        self._store = store or MonitorStore()

    async def build(self, timeframe: str | None = None, now: datetime | None = None) -> dict[str, Any]:
        """Aggregate active monitors.

        Args:
            timeframe: ``1h``, ``24h``, ``7d`` or ``30d``; anything else means 24h
            now: End of the window (defaults to the current time)

        Returns:
            Dashboard payload with camelCase keys
        """
        now = now or utcnow()
        timeframe = resolve_timeframe(timeframe, MONITOR_TIMEFRAMES, DEFAULT_MONITOR_TIMEFRAME)
        start = now - MONITOR_TIMEFRAMES[timeframe]

        monitors = [m for m in await self._store.list_all() if m.is_active]
        alerts: dict[str, list[Alert]] = {}
        samples: list[PerformanceSample] = []
        for monitor in monitors:
            alerts[monitor.id] = await self._store.list_active_alerts(monitor.id)
            samples.extend(
                await self._store.list_performance(
                    monitor.id,
                    since_ms=to_millis(start),
                    until_ms=to_millis(now),
                )
            )

        logger.debug("Monitoring dashboard built", timeframe=timeframe, monitors=len(monitors))
        return {
            "summary": monitor_summary(monitors, alerts),
            "alertBreakdown": alert_breakdown(a for group in alerts.values() for a in group),
            "performanceTrends": performance_trends(samples, start, now),
            "topAlertProcesses": top_alert_processes(monitors, alerts),
            "slaCompliance": sla_averages(monitors),
            "recentAlerts": recent_alerts(monitors, alerts),
            "timeframe": timeframe,
        }


def process_summary(processes: Sequence[AutomatedProcess]) -> dict[str, Any]:
    """Totals over a set of live processes."""
    total_executions = sum(p.metrics.total_executions for p in processes)
    successful = sum(p.metrics.successful_executions for p in processes)
    return {
        "totalProcesses": len(processes),
        "activeProcesses": sum(1 for p in processes if p.status is ProcessStatus.ACTIVE),
        "scheduledProcesses": sum(1 for p in processes if p.schedule.enabled),
        "totalExecutions": total_executions,
        "totalSuccessful": successful,
        "totalFailed": sum(p.metrics.failed_executions for p in processes),
        "avgExecutionTime": _average(p.metrics.average_execution_time for p in processes),
        "successRate": round(successful / total_executions * 100, 2) if total_executions else 0,
    }


def category_breakdown(processes: Iterable[AutomatedProcess]) -> list[dict[str, Any]]:
    counts: dict[str, list[int]] = defaultdict(lambda: [0, 0])
    for process in processes:
        row = counts[process.category.value]
        row[0] += 1
        if process.status is ProcessStatus.ACTIVE:
            row[1] += 1
    rows = [
        {"category": category, "count": count, "activeCount": active}
        for category, (count, active) in counts.items()
    ]
    rows.sort(key=lambda row: (-row["count"], row["category"]))
    return rows


def status_breakdown(processes: Iterable[AutomatedProcess]) -> list[dict[str, Any]]:
    counts: dict[str, int] = defaultdict(int)
    for process in processes:
        counts[process.status.value] += 1
    return [{"status": status, "count": count} for status, count in sorted(counts.items())]


class ProcessDashboardAggregator:
    """Builds the automated process dashboard from the process store."""

    def __init__(self, store: ProcessStore | None = None):
        self._store = store or ProcessStore()

    async def build(self, timeframe: str | None = None, now: datetime | None = None) -> dict[str, Any]:
        """Aggregate live processes and their executions in the window."""
        now = now or utcnow()
        timeframe = resolve_timeframe(timeframe, PROCESS_TIMEFRAMES, DEFAULT_PROCESS_TIMEFRAME)
        start = now - PROCESS_TIMEFRAMES[timeframe]

        processes = [p for p in await self._store.list_all() if p.is_active]
        executions: list[tuple[ExecutionRecord, AutomatedProcess]] = []
        for process in processes:
            for record in await self._store.list_executions(process.id):
                if start <= record.start_time <= now:
                    executions.append((record, process))
        executions.sort(key=lambda row: (row[0].start_time, row[0].execution_id), reverse=True)

        return {
            "summary": process_summary(processes),
            "categoryBreakdown": category_breakdown(processes),
            "statusBreakdown": status_breakdown(processes),
            "recentExecutions": [
                {
                    "processId": process.id,
                    "name": process.name,
                    "category": process.category.value,
                    "execution": record.model_dump(mode="json", by_alias=True),
                }
                for record, process in executions[:RECENT_EXECUTIONS]
            ],
            "timeframe": timeframe,
        }
