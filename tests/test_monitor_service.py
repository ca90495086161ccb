"""Tests for monitors, performance data, alerts and SLA targets."""

import pytest

from procwatch.core.errors import ConflictError, InvalidInputError, NotFoundError
from procwatch.models.alert import AlertSource, AlertState, AlertType, Severity
from procwatch.models.monitor import HealthStatus, MetricsSample, Thresholds
from procwatch.schemas.common import PaginationParams
from procwatch.schemas.monitor import AlertCreate, MonitorCreate
from procwatch.storage.notification_queue import NotificationQueue


def manual_alert(message: str = "Disk almost full") -> AlertCreate:
    return AlertCreate(
        alert_type=AlertType.CUSTOM_METRIC,
        severity=Severity.HIGH,
        message=message,
    )


@pytest.mark.asyncio
async def test_create_monitor_defaults(monitor, active_process):
    assert monitor.process_id == active_process.id
    assert monitor.process_name == active_process.name
    assert monitor.thresholds == Thresholds()
    assert monitor.health_score == 100
    assert monitor.alert_counts["total"] == 0


@pytest.mark.asyncio
async def test_default_alert_settings_email_the_creator(monitor_service, active_process):
    created = await monitor_service.create_monitor(
        MonitorCreate(process_id=active_process.id),
        user_id="u-owner",
        user_email="owner@example.com",
    )

    channel = created.alert_settings.channels[0]
    assert channel.type.value == "Email"
    assert channel.configuration["recipients"] == ["owner@example.com"]
    assert created.alert_settings.escalation_rules[0].delay_minutes == 15


@pytest.mark.asyncio
async def test_second_monitor_for_process_conflicts(monitor_service, monitor, active_process):
    with pytest.raises(ConflictError):
        await monitor_service.create_monitor(
            MonitorCreate(process_id=active_process.id),
            user_id="u-admin",
        )


@pytest.mark.asyncio
async def test_monitor_for_missing_process_is_not_found(monitor_service):
    with pytest.raises(NotFoundError):
        await monitor_service.create_monitor(
            MonitorCreate(process_id="nope"),
            user_id="u-admin",
        )


@pytest.mark.asyncio
async def test_delete_releases_process_for_new_monitor(monitor_service, monitor, active_process):
    await monitor_service.delete_monitor(monitor.id, "u-admin")

    replacement = await monitor_service.create_monitor(
        MonitorCreate(process_id=active_process.id),
        user_id="u-admin",
    )

    assert replacement.id != monitor.id
    page = await monitor_service.list_monitors(PaginationParams())
    assert [m.id for m in page.items] == [replacement.id]
    # Deleted monitors stay readable by id
    assert (await monitor_service.get_monitor(monitor.id)).is_active is False


@pytest.mark.asyncio
async def test_performance_data_requires_metrics(monitor_service, monitor):
    with pytest.raises(InvalidInputError, match="Performance metrics are required"):
        await monitor_service.add_performance_data(monitor.id, None)


@pytest.mark.asyncio
async def test_performance_data_updates_current_metrics(monitor_service, monitor):
    result = await monitor_service.add_performance_data(
        monitor.id,
        MetricsSample(execution_time=1200, cpu_usage=40, success_count=99, error_count=1),
        HealthStatus.WARNING,
    )

    assert result.alerts == []
    assert result.current_metrics.status is HealthStatus.WARNING
    assert result.current_metrics.execution_time == 1200
    assert result.current_metrics.error_rate == 1.0
    assert result.health_score == 75


@pytest.mark.asyncio
async def test_threshold_breach_raises_and_notifies(monitor_service, monitor, redis):
    result = await monitor_service.add_performance_data(
        monitor.id,
        MetricsSample(execution_time=301000),
    )

    assert len(result.alerts) == 1
    alert = result.alerts[0]
    assert alert.alert_type is AlertType.EXECUTION_TIMEOUT
    assert alert.source is AlertSource.EVALUATOR
    assert result.health_score == 90
    assert await NotificationQueue(redis).queue_length() == 1


@pytest.mark.asyncio
async def test_repeated_breach_coalesces_into_open_alert(monitor_service, monitor, redis):
    first = await monitor_service.add_performance_data(monitor.id, MetricsSample(cpu_usage=95))
    second = await monitor_service.add_performance_data(monitor.id, MetricsSample(cpu_usage=97))

    assert second.alerts[0].alert_id == first.alerts[0].alert_id
    assert second.alerts[0].occurrences == 2
    view = await monitor_service.get_monitor(monitor.id)
    assert len(view.active_alerts) == 1
    # Only the first occurrence is announced
    assert await NotificationQueue(redis).queue_length() == 1


@pytest.mark.asyncio
async def test_consecutive_failures_raise_critical_alert(monitor_service, monitor):
    results = [
        await monitor_service.add_performance_data(
            monitor.id,
            MetricsSample(response_time=100 + i),
            HealthStatus.CRITICAL,
        )
        for i in range(3)
    ]

    assert results[1].alerts == []
    assert [a.alert_type for a in results[2].alerts] == [AlertType.CONSECUTIVE_FAILURES]
    assert results[2].alerts[0].severity is Severity.CRITICAL


@pytest.mark.asyncio
async def test_manual_alert_requires_fields(monitor_service, monitor):
    with pytest.raises(InvalidInputError, match="Alert type, severity, and message are required"):
        await monitor_service.trigger_alert(monitor.id, AlertCreate(severity=Severity.LOW))


@pytest.mark.asyncio
async def test_acknowledge_then_resolve(monitor_service, monitor):
    alert = await monitor_service.trigger_alert(monitor.id, manual_alert())
    assert alert.state is AlertState.TRIGGERED

    acknowledged = await monitor_service.acknowledge_alert(monitor.id, alert.alert_id, "u-ops")
    assert acknowledged.state is AlertState.ACKNOWLEDGED
    assert acknowledged.acknowledged_by == "u-ops"

    again = await monitor_service.acknowledge_alert(monitor.id, alert.alert_id, "u-other")
    assert again.acknowledged_by == "u-ops"
    assert again.acknowledged_at == acknowledged.acknowledged_at

    resolved = await monitor_service.resolve_alert(monitor.id, alert.alert_id, "u-ops")
    assert resolved.state is AlertState.RESOLVED
    assert resolved.resolved_by == "u-ops"
    assert resolved.duration is not None

    view = await monitor_service.get_monitor(monitor.id)
    assert view.active_alerts == []


@pytest.mark.asyncio
async def test_resolve_without_acknowledge(monitor_service, monitor):
    alert = await monitor_service.trigger_alert(monitor.id, manual_alert())

    resolved = await monitor_service.resolve_alert(monitor.id, alert.alert_id, "u-ops")

    assert resolved.state is AlertState.RESOLVED
    assert resolved.acknowledged_at is None


@pytest.mark.asyncio
async def test_resolved_alert_cannot_change_again(monitor_service, monitor):
    alert = await monitor_service.trigger_alert(monitor.id, manual_alert())
    await monitor_service.resolve_alert(monitor.id, alert.alert_id, "u-ops")

    with pytest.raises(NotFoundError):
        await monitor_service.resolve_alert(monitor.id, alert.alert_id, "u-ops")
    with pytest.raises(NotFoundError):
        await monitor_service.acknowledge_alert(monitor.id, alert.alert_id, "u-ops")


@pytest.mark.asyncio
async def test_unknown_alert_is_not_found(monitor_service, monitor):
    with pytest.raises(NotFoundError, match="Alert not found"):
        await monitor_service.acknowledge_alert(monitor.id, "missing", "u-ops")
    with pytest.raises(NotFoundError, match="Alert not found"):
        await monitor_service.resolve_alert(monitor.id, "missing", "u-ops")


@pytest.mark.asyncio
async def test_history_keeps_resolved_alerts(monitor_service, monitor):
    kept = await monitor_service.trigger_alert(monitor.id, manual_alert("first"))
    await monitor_service.trigger_alert(
        monitor.id,
        AlertCreate(alert_type=AlertType.QUEUE_BACKUP, severity=Severity.LOW, message="second"),
    )
    await monitor_service.resolve_alert(monitor.id, kept.alert_id, "u-ops")

    history = await monitor_service.alert_history(monitor.id, PaginationParams())
    assert history.total == 2
    resolved = next(a for a in history.items if a.alert_id == kept.alert_id)
    assert resolved.state is AlertState.RESOLVED

    low_only = await monitor_service.alert_history(monitor.id, PaginationParams(), severity="Low")
    assert [a.message for a in low_only.items] == ["second"]


@pytest.mark.asyncio
async def test_list_filters_by_alert_severity(monitor_service, monitor):
    await monitor_service.trigger_alert(monitor.id, manual_alert())

    high = await monitor_service.list_monitors(PaginationParams(), severity="High")
    critical = await monitor_service.list_monitors(PaginationParams(), severity="Critical")

    assert high.total == 1
    assert critical.total == 0
    assert high.summary["totalActiveAlerts"] == 1
    assert high.summary["avgHealthScore"] == 90


@pytest.mark.asyncio
async def test_sla_targets_merge_and_recompute(monitor_service, monitor):
    await monitor_service.add_performance_data(
        monitor.id,
        MetricsSample(response_time=800, throughput=150, success_count=100, error_count=0),
    )

    result = await monitor_service.update_sla_targets(
        monitor.id,
        {"responseTime": 1000, "availability": 99.0},
        "u-admin",
    )

    assert result.sla_targets.response_time == 1000
    assert result.sla_targets.availability == 99.0
    assert result.sla_targets.throughput == 100
    assert result.sla_status.current_availability == 100.0
    assert result.sla_status.current_response_time == 800
    assert result.sla_compliance == 100.0


@pytest.mark.asyncio
async def test_sla_targets_are_validated(monitor_service, monitor):
    with pytest.raises(InvalidInputError, match="SLA targets are required"):
        await monitor_service.update_sla_targets(monitor.id, {}, "u-admin")
    with pytest.raises(InvalidInputError):
        await monitor_service.update_sla_targets(monitor.id, {"availability": 150}, "u-admin")


@pytest.mark.asyncio
async def test_history_trim_keeps_open_alerts(monkeypatch, monitor_service, monitor_store, monitor):
    monkeypatch.setattr(monitor_store._settings, "max_alert_history", 2)

    first = await monitor_service.trigger_alert(monitor.id, manual_alert("first"))
    closed = await monitor_service.trigger_alert(monitor.id, manual_alert("closed"))
    await monitor_service.resolve_alert(monitor.id, closed.alert_id, "u-ops")
    third = await monitor_service.trigger_alert(monitor.id, manual_alert("third"))
    fourth = await monitor_service.trigger_alert(monitor.id, manual_alert("fourth"))

    await monitor_service.resolve_alert(monitor.id, first.alert_id, "u-ops")

    history = await monitor_service.alert_history(monitor.id, PaginationParams())
    assert {a.alert_id for a in history.items} == {first.alert_id, third.alert_id, fourth.alert_id}
    resolved = next(a for a in history.items if a.alert_id == first.alert_id)
    assert resolved.state is AlertState.RESOLVED
    assert await monitor_store.get_alert(monitor.id, closed.alert_id) is None
