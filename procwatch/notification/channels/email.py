"""Email notification channel."""

import re
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import aiosmtplib

from procwatch.core.config import get_settings
from procwatch.core.logging import get_logger
from procwatch.models.monitor import AlertChannel
from procwatch.models.notification import NotificationTask
from procwatch.notification.channels.base import NotificationChannel

logger = get_logger(__name__)


class EmailChannel(NotificationChannel):
    """Email notification channel using SMTP."""

    def __init__(self):
        """Initialize with settings."""
        self._settings = get_settings()

    @property
    def channel_type(self) -> str:
        return "Email"

    async def send(self, channel: AlertChannel, task: NotificationTask) -> bool:
        """Send email notification.

        Args:
            channel: Channel whose configuration lists ``recipients``
            task: Notification task

        Returns:
            True if sent successfully
        """
        recipients = [r for r in channel.configuration.get("recipients", []) if r]
        if not recipients:
            logger.warning("Email channel missing recipients", monitor_id=task.monitor_id)
            return False

        if not self._settings.smtp_host:
            logger.warning("SMTP not configured")
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = task.subject[:100]
        msg["From"] = self._settings.smtp_from or self._settings.smtp_user
        msg["To"] = ", ".join(recipients)
        msg.attach(MIMEText(task.message, "plain", "utf-8"))
        msg.attach(MIMEText(self._to_html(task.message), "html", "utf-8"))

        try:
            await aiosmtplib.send(
                msg,
                hostname=self._settings.smtp_host,
                port=self._settings.smtp_port,
                username=self._settings.smtp_user or None,
                password=self._settings.smtp_password or None,
                use_tls=not self._settings.smtp_use_tls,
                start_tls=self._settings.smtp_use_tls,
            )
            logger.info("Email sent", recipients=recipients, task_id=task.task_id)
            return True

        except Exception as e:
            logger.error("Email send failed", error=str(e))
            return False

    def _to_html(self, message: str) -> str:
        """Convert markdown-like message to basic HTML."""
        html = message.replace("\n", "<br>")
        html = re.sub(r"\*\*(.+?)\*\*", r"<strong>\1</strong>", html)
        return f"<html><body>{html}</body></html>"
