"""Base class for notification channels."""

from abc import ABC, abstractmethod

from procwatch.models.monitor import AlertChannel
from procwatch.models.notification import NotificationTask


class NotificationChannel(ABC):
    """Abstract base class for notification channels."""

    @property
    @abstractmethod
    def channel_type(self) -> str:
        """Return channel type identifier."""
        pass

    @abstractmethod
    async def send(self, channel: AlertChannel, task: NotificationTask) -> bool:
        """Deliver a notification.

        Args:
            channel: Monitor channel configuration
            task: Notification task with message

        Returns:
            True if sent successfully
        """
        pass

    async def close(self) -> None:
        """Clean up resources. Override if needed."""
        pass


class DashboardChannel(NotificationChannel):
    """Alerts already show on the dashboard; nothing to deliver."""

    @property
    def channel_type(self) -> str:
        return "Dashboard"

    async def send(self, channel: AlertChannel, task: NotificationTask) -> bool:
        return True
