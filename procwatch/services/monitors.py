"""Process monitoring: monitors, performance samples, alerts and SLA."""

import uuid
from collections.abc import Callable

from pydantic import ValidationError
from pydantic.alias_generators import to_snake

from procwatch.analytics.dashboard import monitor_summary
from procwatch.core.config import get_settings
from procwatch.core.errors import InvalidInputError, NotFoundError
from procwatch.core.logging import get_logger
from procwatch.engine.evaluator import evaluate_consecutive_failures, evaluate_thresholds
from procwatch.engine.sla import (
    alert_counts,
    calculate_sla_status,
    health_score,
    sla_compliance,
)
from procwatch.models.alert import (
    Alert,
    AlertIntent,
    AlertSource,
    AlertState,
)
from procwatch.models.base import to_millis, utcnow
from procwatch.models.monitor import (
    AlertSettings,
    HealthStatus,
    MetricsSample,
    PerformanceSample,
    ProcessMonitor,
    SlaTargets,
    Thresholds,
)
from procwatch.notification.dispatcher import NotificationDispatcher
from procwatch.observability.metrics import (
    ALERT_TRANSITIONS,
    ALERTS_COALESCED,
    ALERTS_TRIGGERED,
    PERFORMANCE_SAMPLES,
)
from procwatch.schemas.common import Page, PaginationParams
from procwatch.schemas.monitor import (
    AlertCreate,
    MonitorCreate,
    MonitorUpdate,
    MonitorView,
    PerformanceDataResult,
    SlaResult,
)
from procwatch.storage.monitor_store import MonitorStore
from procwatch.storage.process_store import ProcessStore
from procwatch.storage.redis_client import RedisKeys

logger = get_logger(__name__)

NOT_FOUND = "Process monitor not found"
ALERT_NOT_FOUND = "Alert not found"
SORTABLE_FIELDS: dict[str, Callable[[MonitorView], object]] = {
    "updatedAt": lambda m: m.updated_at,
    "createdAt": lambda m: m.created_at,
    "processName": lambda m: m.process_name.lower(),
    "healthScore": lambda m: m.health_score,
    "status": lambda m: m.current_metrics.status.value,
}


def build_view(monitor: ProcessMonitor, active_alerts: list[Alert]) -> MonitorView:
    """Attach derived fields to a monitor document."""
    return MonitorView(
        **monitor.model_dump(),
        health_score=health_score(monitor.current_metrics.status, active_alerts),
        sla_compliance=sla_compliance(monitor.sla_targets, monitor.sla_status),
        alert_counts=alert_counts(active_alerts),
        active_alerts=active_alerts,
    )


class MonitorService:
    """Use cases for process monitors and their alerts."""

    def __init__(
        self,
        store: MonitorStore | None = None,
        process_store: ProcessStore | None = None,
        dispatcher: NotificationDispatcher | None = None,
    ):
        self._store = store or MonitorStore()
        self._process_store = process_store or ProcessStore()
        self._dispatcher = dispatcher or NotificationDispatcher()
        self._settings = get_settings()

    async def _require(self, monitor_id: str, include_deleted: bool = False) -> ProcessMonitor:
        monitor = await self._store.get(monitor_id)
        if monitor is None or (not include_deleted and not monitor.is_active):
            raise NotFoundError(NOT_FOUND)
        return monitor

    async def _modify(self, monitor_id: str, mutate) -> ProcessMonitor:
        updated = await self._store.modify(monitor_id, mutate)
        if updated is None:
            raise NotFoundError(NOT_FOUND)
        return updated

    async def _view(self, monitor: ProcessMonitor) -> MonitorView:
        return build_view(monitor, await self._store.list_active_alerts(monitor.id))

    # Monitors

    async def create_monitor(
        self,
        data: MonitorCreate,
        user_id: str,
        user_email: str | None = None,
    ) -> MonitorView:
        """Attach a monitor to an existing process.

        Raises:
            NotFoundError: If the process does not exist
            ConflictError: If the process already has an active monitor
        """
        process = await self._process_store.get(data.process_id)
        if process is None:
            raise NotFoundError("Automated process not found")

        now = utcnow()
        monitor = ProcessMonitor(
            id=uuid.uuid4().hex,
            process_id=process.id,
            process_name=process.name,
            monitoring_enabled=data.monitoring_enabled,
            monitoring_level=data.monitoring_level,
            thresholds=data.thresholds or Thresholds(),
            alert_settings=data.alert_settings or AlertSettings.default_for(user_email),
            sla_targets=data.sla_targets or SlaTargets(),
            created_by=user_id,
            created_at=now,
            updated_at=now,
        )
        created = await self._store.create(monitor)
        logger.info("Monitor created", monitor_id=created.id, process_id=process.id)
        return build_view(created, [])

    async def update_monitor(
        self,
        monitor_id: str,
        data: MonitorUpdate,
        user_id: str,
    ) -> MonitorView:
        changes = {
            field: getattr(data, field)
            for field in data.model_fields_set
            if getattr(data, field) is not None
        }
        now = utcnow()

        def apply(monitor: ProcessMonitor) -> ProcessMonitor:
            for field, value in changes.items():
                setattr(monitor, field, value)
            monitor.updated_by = user_id
            monitor.updated_at = now
            return monitor

        updated = await self._modify(monitor_id, apply)
        logger.info("Monitor updated", monitor_id=monitor_id, fields=sorted(changes))
        return await self._view(updated)

    async def get_monitor(self, monitor_id: str) -> MonitorView:
        return await self._view(await self._require(monitor_id, include_deleted=True))

    async def list_monitors(
        self,
        pagination: PaginationParams,
        status: str | None = None,
        severity: str | None = None,
        process_id: str | None = None,
        search: str | None = None,
        sort_by: str = "updatedAt",
        sort_order: str = "desc",
    ) -> Page[MonitorView]:
        """Filter, sort and page the active monitors."""
        views = [
            await self._view(m)
            for m in await self._store.list_all()
            if m.is_active
        ]

        matched = views
        if status:
            matched = [v for v in matched if v.current_metrics.status.value == status]
        if process_id:
            matched = [v for v in matched if v.process_id == process_id]
        if severity:
            matched = [
                v for v in matched
                if any(a.severity.value == severity for a in v.active_alerts)
            ]
        if search:
            needle = search.lower()
            matched = [
                v for v in matched
                if needle in v.process_name.lower()
                or any(needle in a.message.lower() for a in v.active_alerts)
            ]

        key = SORTABLE_FIELDS.get(sort_by, SORTABLE_FIELDS["updatedAt"])
        matched.sort(key=key, reverse=sort_order == "desc")
        summary = monitor_summary(views, {v.id: v.active_alerts for v in views})
        return Page.build(matched, pagination, summary=summary)

    async def delete_monitor(self, monitor_id: str, user_id: str) -> None:
        """Soft delete, releasing the process for a new monitor."""
        deleted = await self._store.soft_delete(monitor_id, user_id)
        if deleted is None:
            raise NotFoundError(NOT_FOUND)
        logger.info("Monitor deactivated", monitor_id=monitor_id, process_id=deleted.process_id)

    # Performance

    async def add_performance_data(
        self,
        monitor_id: str,
        metrics: MetricsSample | None,
        status: HealthStatus = HealthStatus.HEALTHY,
    ) -> PerformanceDataResult:
        """Record a sample, refresh current metrics and raise threshold alerts.

        Raises:
            InvalidInputError: If metrics are missing
            NotFoundError: If the monitor does not exist
        """
        if metrics is None:
            raise InvalidInputError("Performance metrics are required")
        await self._require(monitor_id)

        sample = PerformanceSample(timestamp=utcnow(), metrics=metrics, status=status)
        await self._store.add_performance(monitor_id, sample)
        PERFORMANCE_SAMPLES.labels(status=status.value).inc()

        def merge(monitor: ProcessMonitor) -> ProcessMonitor:
            current = monitor.current_metrics.model_copy(deep=True)
            current.merge(metrics)
            current.status = status
            current.last_check_time = sample.timestamp
            monitor.current_metrics = current
            return monitor

        monitor = await self._modify(monitor_id, merge)

        intents = evaluate_thresholds(metrics, monitor.thresholds)
        statuses = await self._store.recent_statuses(
            monitor_id,
            monitor.thresholds.max_consecutive_failures,
        )
        failures = evaluate_consecutive_failures(statuses, monitor.thresholds)
        if failures is not None:
            intents.append(failures)

        alerts = [
            await self._raise(monitor, intent, AlertSource.EVALUATOR)
            for intent in intents
        ]
        active = await self._store.list_active_alerts(monitor_id)
        return PerformanceDataResult(
            current_metrics=monitor.current_metrics,
            health_score=health_score(monitor.current_metrics.status, active),
            alerts=alerts,
        )

    # Alerts

    async def _raise(
        self,
        monitor: ProcessMonitor,
        intent: AlertIntent,
        source: AlertSource,
    ) -> Alert:
        """Persist an alert intent, folding evaluator repeats into an open alert."""
        now = utcnow()
        if source is AlertSource.EVALUATOR and self._settings.alert_coalesce_open:
            existing = await self._store.find_open_alert(monitor.id, intent.alert_type)
            if existing is not None:

                def repeat(alert: Alert) -> Alert | None:
                    if not alert.is_open:
                        return None
                    alert.occurrences += 1
                    alert.last_triggered_at = now
                    alert.metadata = intent.metadata
                    alert.message = intent.message
                    return alert

                coalesced = await self._store.modify_alert(monitor.id, existing.alert_id, repeat)
                if coalesced is not None and coalesced.is_open:
                    ALERTS_COALESCED.labels(alert_type=intent.alert_type.value).inc()
                    logger.debug(
                        "Alert coalesced",
                        alert_id=coalesced.alert_id,
                        occurrences=coalesced.occurrences,
                    )
                    return coalesced

        alert = Alert(
            alert_id=str(uuid.uuid4()),
            monitor_id=monitor.id,
            alert_type=intent.alert_type,
            severity=intent.severity,
            message=intent.message,
            metadata=intent.metadata,
            source=source,
            triggered_at=now,
            last_triggered_at=now,
        )
        await self._store.add_alert(alert)
        ALERTS_TRIGGERED.labels(
            alert_type=alert.alert_type.value,
            severity=alert.severity.value,
            source=source.value,
        ).inc()
        logger.info(
            "Alert triggered",
            monitor_id=monitor.id,
            alert_id=alert.alert_id,
            alert_type=alert.alert_type.value,
            severity=alert.severity.value,
        )
        await self._dispatcher.dispatch(monitor, alert)
        return alert

    async def trigger_alert(self, monitor_id: str, data: AlertCreate) -> Alert:
        """Raise a manual alert.

        Raises:
            InvalidInputError: If type, severity or message is missing
        """
        if data.alert_type is None or data.severity is None or not data.message:
            raise InvalidInputError("Alert type, severity, and message are required")
        monitor = await self._require(monitor_id)
        intent = AlertIntent(
            alert_type=data.alert_type,
            severity=data.severity,
            message=data.message,
            metadata=data.metadata,
        )
        return await self._raise(monitor, intent, AlertSource.MANUAL)

    async def _require_active_alert(self, monitor_id: str, alert_id: str) -> None:
        await self._require(monitor_id, include_deleted=True)
        if not await self._store.is_active_alert(monitor_id, alert_id):
            raise NotFoundError(ALERT_NOT_FOUND)

    async def acknowledge_alert(self, monitor_id: str, alert_id: str, user_id: str) -> Alert:
        """Acknowledge an open alert. Repeating it changes nothing.

        Raises:
            NotFoundError: If the alert is not active
        """
        await self._require_active_alert(monitor_id, alert_id)
        now = utcnow()

        def acknowledge(alert: Alert) -> Alert | None:
            if alert.state is not AlertState.TRIGGERED:
                return None
            alert.state = AlertState.ACKNOWLEDGED
            alert.acknowledged_at = now
            alert.acknowledged_by = user_id
            return alert

        updated = await self._store.modify_alert(monitor_id, alert_id, acknowledge)
        if updated is None or updated.state is AlertState.RESOLVED:
            raise NotFoundError(ALERT_NOT_FOUND)
        if updated.acknowledged_at == now:
            ALERT_TRANSITIONS.labels(transition="acknowledge").inc()
            logger.info("Alert acknowledged", monitor_id=monitor_id, alert_id=alert_id, by=user_id)
        return updated

    async def resolve_alert(self, monitor_id: str, alert_id: str, user_id: str) -> Alert:
        """Resolve an open alert and drop it from the active index.

        Raises:
            NotFoundError: If the alert is not active
        """
        await self._require_active_alert(monitor_id, alert_id)
        now = utcnow()

        def resolve(alert: Alert) -> Alert | None:
            if alert.state is AlertState.RESOLVED:
                return None
            alert.state = AlertState.RESOLVED
            alert.resolved_at = now
            alert.resolved_by = user_id
            return alert

        def deactivate(pipe, alert: Alert) -> None:
            pipe.zrem(RedisKeys.alert_active(monitor_id), alert.alert_id)

        updated = await self._store.modify_alert(monitor_id, alert_id, resolve, after=deactivate)
        if updated is None or updated.resolved_at != now:
            raise NotFoundError(ALERT_NOT_FOUND)

        ALERT_TRANSITIONS.labels(transition="resolve").inc()
        logger.info(
            "Alert resolved",
            monitor_id=monitor_id,
            alert_id=alert_id,
            by=user_id,
            duration_ms=updated.duration,
        )
        return updated

    async def alert_history(
        self,
        monitor_id: str,
        pagination: PaginationParams,
        severity: str | None = None,
        alert_type: str | None = None,
    ) -> Page[Alert]:
        await self._require(monitor_id, include_deleted=True)
        history = await self._store.list_alert_history(monitor_id)
        if severity:
            history = [a for a in history if a.severity.value == severity]
        if alert_type:
            history = [a for a in history if a.alert_type.value == alert_type]
        return Page.build(history, pagination)

    # SLA

    async def update_sla_targets(
        self,
        monitor_id: str,
        targets: dict | None,
        user_id: str,
    ) -> SlaResult:
        """Merge SLA targets and recompute SLA status over the recent window.

        Raises:
            InvalidInputError: If targets are missing or out of range
        """
        if not targets:
            raise InvalidInputError("SLA targets are required")
        await self._require(monitor_id)

        now = utcnow()
        window_ms = self._settings.sla_window_hours * 3600 * 1000
        samples = await self._store.list_performance(monitor_id, since_ms=to_millis(now) - window_ms)

        def apply(monitor: ProcessMonitor) -> ProcessMonitor:
            merged = {**monitor.sla_targets.model_dump(), **_snake_keys(targets)}
            try:
                monitor.sla_targets = SlaTargets.model_validate(merged)
            except ValidationError as e:
                raise InvalidInputError(f"Invalid SLA targets: {e.errors()[0]['msg']}") from e
            monitor.sla_status = calculate_sla_status(
                samples,
                now,
                window_hours=self._settings.sla_window_hours,
                previous=monitor.sla_status,
            )
            monitor.updated_by = user_id
            monitor.updated_at = now
            return monitor

        updated = await self._modify(monitor_id, apply)
        compliance = sla_compliance(updated.sla_targets, updated.sla_status)
        logger.info("SLA targets updated", monitor_id=monitor_id, compliance=compliance)
        return SlaResult(
            sla_targets=updated.sla_targets,
            sla_status=updated.sla_status,
            sla_compliance=compliance,
        )


def _snake_keys(targets: dict) -> dict:
    return {to_snake(key): value for key, value in targets.items()}
