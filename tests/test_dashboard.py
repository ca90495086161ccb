"""Tests for dashboard rollups."""

from datetime import datetime, timedelta, timezone

import pytest

from procwatch.analytics.dashboard import (
    MonitoringDashboardAggregator,
    ProcessDashboardAggregator,
    alert_breakdown,
    performance_trends,
)
from procwatch.models.alert import AlertType, Severity
from procwatch.models.base import utcnow
from procwatch.models.monitor import HealthStatus, MetricsSample, PerformanceSample
from procwatch.schemas.monitor import AlertCreate

START = datetime(2026, 4, 1, 8, 0, tzinfo=timezone.utc)


def test_performance_trends_bucket_by_hour():
    samples = [
        PerformanceSample(
            timestamp=START - timedelta(minutes=5),
            metrics=MetricsSample(response_time=999),
        ),
        PerformanceSample(
            timestamp=START + timedelta(minutes=10),
            metrics=MetricsSample(response_time=100, error_count=1, success_count=9),
        ),
        PerformanceSample(
            timestamp=START + timedelta(minutes=50),
            metrics=MetricsSample(response_time=300, cpu_usage=20),
            status=HealthStatus.WARNING,
        ),
        PerformanceSample(
            timestamp=START + timedelta(hours=1, minutes=1),
            metrics=MetricsSample(memory_usage=256),
        ),
    ]

    trends = performance_trends(samples, START)

    assert [(t["date"], t["hour"], t["samples"]) for t in trends] == [
        ("2026-04-01", 8, 2),
        ("2026-04-01", 9, 1),
    ]
    assert trends[0]["avgResponseTime"] == 200
    assert trends[0]["avgCpuUsage"] == 20
    assert trends[0]["errorCount"] == 1
    assert trends[0]["successCount"] == 9
    assert trends[1]["avgResponseTime"] == 0


def test_alert_breakdown_lists_every_severity():
    assert alert_breakdown([]) == {"Critical": 0, "High": 0, "Medium": 0, "Low": 0}


@pytest.mark.asyncio
async def test_monitoring_dashboard_is_repeatable(monitor_service, monitor_store, monitor):
    await monitor_service.add_performance_data(
        monitor.id,
        MetricsSample(response_time=250, cpu_usage=92),
        HealthStatus.WARNING,
    )
    await monitor_service.trigger_alert(
        monitor.id,
        AlertCreate(alert_type=AlertType.QUEUE_BACKUP, severity=Severity.LOW, message="Queue growing"),
    )
    aggregator = MonitoringDashboardAggregator(monitor_store)
    now = utcnow() + timedelta(seconds=1)

    first = await aggregator.build("24h", now)
    second = await aggregator.build("24h", now)

    assert first == second
    assert first["timeframe"] == "24h"
    assert first["summary"]["totalMonitors"] == 1
    assert first["summary"]["warningProcesses"] == 1
    assert first["summary"]["totalActiveAlerts"] == 2
    assert first["alertBreakdown"] == {"Critical": 0, "High": 0, "Medium": 1, "Low": 1}
    assert sum(t["samples"] for t in first["performanceTrends"]) == 1
    assert first["topAlertProcesses"][0]["alertCount"] == 2
    assert first["recentAlerts"][0]["alert"]["message"] == "Queue growing"


@pytest.mark.asyncio
async def test_unknown_timeframe_falls_back(monitor_store, process_store):
    monitoring = await MonitoringDashboardAggregator(monitor_store).build("1y")
    processes = await ProcessDashboardAggregator(process_store).build("1y")

    assert monitoring["timeframe"] == "24h"
    assert monitoring["summary"]["totalMonitors"] == 0
    assert monitoring["slaCompliance"] == {}
    assert processes["timeframe"] == "30d"
    assert processes["summary"]["totalProcesses"] == 0


@pytest.mark.asyncio
async def test_process_dashboard(process_service, process_store, runner, active_process):
    started = await process_service.start_execution(active_process.id, "u-ops")
    await runner.wait(started.execution_id)

    dashboard = await ProcessDashboardAggregator(process_store).build("7d")

    assert dashboard["summary"]["totalExecutions"] == 1
    assert dashboard["summary"]["successRate"] == 100
    assert dashboard["categoryBreakdown"] == [
        {"category": "Data Quality", "count": 1, "activeCount": 1}
    ]
    assert dashboard["statusBreakdown"] == [{"status": "Active", "count": 1}]
    execution = dashboard["recentExecutions"][0]
    assert execution["processId"] == active_process.id
    assert execution["execution"]["executionId"] == started.execution_id
    assert execution["execution"]["status"] == "Completed"


@pytest.mark.asyncio
async def test_dashboards_ignore_data_after_now(
    monitor_service,
    monitor_store,
    monitor,
    process_service,
    process_store,
    runner,
    active_process,
):
    await monitor_service.add_performance_data(monitor.id, MetricsSample(response_time=120))
    started = await process_service.start_execution(active_process.id, "u-ops")
    await runner.wait(started.execution_id)
    earlier = utcnow() - timedelta(hours=1)

    monitoring = await MonitoringDashboardAggregator(monitor_store).build("24h", earlier)
    processes = await ProcessDashboardAggregator(process_store).build("7d", earlier)

    assert monitoring["performanceTrends"] == []
    assert processes["recentExecutions"] == []
