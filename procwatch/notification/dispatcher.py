"""Notification dispatcher for queuing alert notifications."""

import uuid

from redis.asyncio import Redis

from procwatch.core.logging import get_logger
from procwatch.models.alert import Alert
from procwatch.models.monitor import ProcessMonitor
from procwatch.models.notification import NotificationTask
from procwatch.observability.metrics import NOTIFICATIONS_QUEUED
from procwatch.storage.notification_queue import NotificationQueue

logger = get_logger(__name__)


class NotificationDispatcher:
    """Dispatcher for queuing alert notifications."""

    def __init__(self, redis: Redis | None = None):
        """Initialize dispatcher.

        Args:
            redis: Redis client (defaults to the shared pool)
        """
        self._queue = NotificationQueue(redis)

    async def dispatch(self, monitor: ProcessMonitor, alert: Alert) -> bool:
        """Queue a notification for a newly raised alert.

        Args:
            monitor: Monitor owning the alert
            alert: The alert

        Returns:
            True if a notification was queued
        """
        settings = monitor.alert_settings
        if not settings.enabled:
            logger.debug("Alerting disabled", monitor_id=monitor.id)
            return False

        channels = [c for c in settings.channels if c.is_active]
        if not channels:
            logger.debug("No active alert channels", monitor_id=monitor.id)
            return False

        task = NotificationTask(
            task_id=f"notify_{uuid.uuid4().hex[:12]}",
            monitor_id=monitor.id,
            alert_id=alert.alert_id,
            channels=channels,
            subject=f"[{alert.severity.value}] {alert.alert_type.value}: {monitor.process_name}",
            message=self._build_message(monitor, alert),
            metadata={
                "processId": monitor.process_id,
                "severity": alert.severity.value,
                "alertType": alert.alert_type.value,
            },
        )
        await self._queue.enqueue(task)
        NOTIFICATIONS_QUEUED.inc()

        logger.info(
            "Notification queued",
            task_id=task.task_id,
            alert_id=alert.alert_id,
            channels=len(channels),
        )
        return True

    def _build_message(self, monitor: ProcessMonitor, alert: Alert) -> str:
        lines = [
            f"**{monitor.process_name}**",
            "",
            f"**Alert:** {alert.alert_type.value}",
            f"**Severity:** {alert.severity.value}",
            f"**Triggered:** {alert.triggered_at.strftime('%Y-%m-%d %H:%M:%S')} UTC",
            "",
            alert.message,
        ]
        if alert.metadata:
            lines.append("")
            lines.append("**Details:**")
            for key, value in list(alert.metadata.items())[:5]:
                lines.append(f"- {key}: {value}")
        return "\n".join(lines)
