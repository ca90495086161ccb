"""HTTP webhook channels (Slack, Teams and generic webhooks)."""

import httpx

from procwatch.core.config import get_settings
from procwatch.core.logging import get_logger
from procwatch.models.monitor import AlertChannel, ChannelType
from procwatch.models.notification import NotificationTask
from procwatch.notification.channels.base import NotificationChannel

logger = get_logger(__name__)


class WebhookChannel(NotificationChannel):
    """POSTs the alert to ``configuration.url``.

    Slack and Teams incoming webhooks both accept a ``text`` field; generic
    webhooks get the full task as JSON.
    """

    def __init__(self, client: httpx.AsyncClient | None = None):
        """Initialize HTTP client."""
        self._client = client or httpx.AsyncClient(timeout=get_settings().webhook_timeout)

    @property
    def channel_type(self) -> str:
        return "Webhook"

    def _payload(self, channel: AlertChannel, task: NotificationTask) -> dict:
        if channel.type in (ChannelType.SLACK, ChannelType.TEAMS):
            return {"text": f"{task.subject}\n\n{task.message}"}
        return {
            "taskId": task.task_id,
            "monitorId": task.monitor_id,
            "alertId": task.alert_id,
            "subject": task.subject,
            "message": task.message,
            "metadata": task.metadata,
        }

    async def send(self, channel: AlertChannel, task: NotificationTask) -> bool:
        """Send message via webhook.

        Args:
            channel: Channel whose configuration holds ``url``
            task: Notification task

        Returns:
            True on a 2xx response
        """
        url = channel.configuration.get("url")
        if not url:
            logger.warning("Webhook channel missing url", channel=channel.type.value)
            return False

        try:
            response = await self._client.post(url, json=self._payload(channel, task))
            if response.is_success:
                logger.info("Webhook delivered", channel=channel.type.value, task_id=task.task_id)
                return True
            logger.warning(
                "Webhook rejected",
                channel=channel.type.value,
                status_code=response.status_code,
            )
            return False

        except httpx.HTTPError as e:
            logger.error("Webhook send error", channel=channel.type.value, error=str(e))
            return False

    async def close(self) -> None:
        """Close HTTP client."""
        await self._client.aclose()
