"""Notification worker for processing the alert notification queue."""

import asyncio

from redis.asyncio import Redis

from procwatch.core.config import get_settings
from procwatch.core.logging import get_logger
from procwatch.models.monitor import ChannelType
from procwatch.models.notification import NotificationStatus, NotificationTask
from procwatch.notification.channels.base import DashboardChannel, NotificationChannel
from procwatch.notification.channels.email import EmailChannel
from procwatch.notification.channels.webhook import WebhookChannel
from procwatch.observability.metrics import NOTIFICATIONS_SENT
from procwatch.storage.notification_queue import NotificationQueue

logger = get_logger(__name__)


def default_channels() -> dict[ChannelType, NotificationChannel]:
    webhook = WebhookChannel()
    return {
        ChannelType.EMAIL: EmailChannel(),
        ChannelType.SLACK: webhook,
        ChannelType.TEAMS: webhook,
        ChannelType.WEBHOOK: webhook,
        ChannelType.DASHBOARD: DashboardChannel(),
    }


class NotificationWorker:
    """Worker for processing notification tasks from queue."""

    def __init__(
        self,
        redis: Redis | None = None,
        channels: dict[ChannelType, NotificationChannel] | None = None,
    ):
        """Initialize worker.

        Args:
            redis: Redis client (defaults to the shared pool)
            channels: Senders per channel type; SMS has none and is skipped
        """
        self._settings = get_settings()
        self._queue = NotificationQueue(redis)
        self._should_stop = False
        self._channels = channels if channels is not None else default_channels()

    async def start(self) -> None:
        """Start processing notification queue."""
        logger.info("Notification worker started")

        while not self._should_stop:
            try:
                task = await self._queue.dequeue(timeout=5)
                if task:
                    await self.process_task(task)
            except Exception as e:
                logger.error("Worker error", error=str(e), exc_info=True)
                await asyncio.sleep(1)

        logger.info("Notification worker stopped")

    def stop(self) -> None:
        """Signal worker to stop."""
        self._should_stop = True

    async def close(self) -> None:
        """Clean up resources."""
        for channel in set(self._channels.values()):
            await channel.close()

    async def process_task(self, task: NotificationTask) -> NotificationStatus:
        """Deliver one task to all its channels.

        Args:
            task: Task to process

        Returns:
            Outcome of this attempt
        """
        logger.debug("Processing notification", task_id=task.task_id)

        success_count = 0
        fail_count = 0

        for channel in task.channels:
            sender = self._channels.get(channel.type)
            if sender is None:
                logger.info("Unsupported channel skipped", channel=channel.type.value)
                NOTIFICATIONS_SENT.labels(channel=channel.type.value, status="skipped").inc()
                continue

            try:
                success = await sender.send(channel, task)
            except Exception as e:
                logger.error("Channel send error", channel=channel.type.value, error=str(e))
                success = False

            NOTIFICATIONS_SENT.labels(
                channel=channel.type.value,
                status="sent" if success else "failed",
            ).inc()
            if success:
                success_count += 1
            else:
                fail_count += 1

        if fail_count > 0 and success_count == 0:
            if task.should_retry(self._settings.notification_max_retry):
                await self._queue.requeue(task)
                logger.info(
                    "Notification requeued for retry",
                    task_id=task.task_id,
                    retry_count=task.retry_count,
                )
                return NotificationStatus.FAILED

            await self._queue.move_to_dead_letter(task)
            logger.warning("Notification moved to dead letter", task_id=task.task_id)
            return NotificationStatus.DEAD

        logger.info(
            "Notification processed",
            task_id=task.task_id,
            success=success_count,
            failed=fail_count,
        )
        return NotificationStatus.SENT
