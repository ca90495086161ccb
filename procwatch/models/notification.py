"""Notification task domain models."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from procwatch.models.base import utcnow
from procwatch.models.monitor import AlertChannel


class NotificationStatus(str, Enum):
    """Notification task status."""

    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"
    DEAD = "dead"  # Exceeded max retries


class NotificationTask(BaseModel):
    """Alert notification awaiting delivery by the worker."""

    task_id: str = Field(..., description="Task unique identifier")
    monitor_id: str = Field(..., description="Monitor that raised the alert")
    alert_id: str = Field(..., description="Alert being announced")
    channels: list[AlertChannel] = Field(..., description="Delivery channels")
    subject: str = Field(..., description="Short summary line")
    message: str = Field(..., description="Notification message content")
    retry_count: int = Field(default=0, ge=0, description="Current retry count")
    created_at: datetime = Field(default_factory=utcnow)
    metadata: dict[str, Any] = Field(default_factory=dict)

    def should_retry(self, max_retry: int) -> bool:
        """Check if task should be retried."""
        return self.retry_count < max_retry
