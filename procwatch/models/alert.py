"""Alert domain models."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field

from procwatch.models.base import CamelModel, utcnow


class AlertType(str, Enum):
    PERFORMANCE_DEGRADATION = "Performance_Degradation"
    HIGH_ERROR_RATE = "High_Error_Rate"
    EXECUTION_TIMEOUT = "Execution_Timeout"
    MEMORY_THRESHOLD = "Memory_Threshold"
    CPU_THRESHOLD = "CPU_Threshold"
    CONSECUTIVE_FAILURES = "Consecutive_Failures"
    PROCESS_DOWN = "Process_Down"
    QUEUE_BACKUP = "Queue_Backup"
    CUSTOM_METRIC = "Custom_Metric"


class Severity(str, Enum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class AlertState(str, Enum):
    """Triggered -> Acknowledged (optional) -> Resolved."""

    TRIGGERED = "Triggered"
    ACKNOWLEDGED = "Acknowledged"
    RESOLVED = "Resolved"


class AlertSource(str, Enum):
    EVALUATOR = "evaluator"
    MANUAL = "manual"


class AlertIntent(CamelModel):
    """An alert to raise, before it is persisted."""

    alert_type: AlertType
    severity: Severity
    message: str = Field(..., min_length=1)
    metadata: dict[str, Any] = Field(default_factory=dict)


class Alert(CamelModel):
    """A persisted alert owned by a process monitor."""

    alert_id: str
    monitor_id: str
    alert_type: AlertType
    severity: Severity
    message: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    state: AlertState = AlertState.TRIGGERED
    source: AlertSource = AlertSource.MANUAL
    triggered_at: datetime = Field(default_factory=utcnow)
    last_triggered_at: datetime = Field(default_factory=utcnow)
    occurrences: int = Field(default=1, ge=1)
    acknowledged_at: datetime | None = None
    acknowledged_by: str | None = None
    resolved_at: datetime | None = None
    resolved_by: str | None = None
    escalation_level: int = 0
    version: int = 1

    @property
    def is_open(self) -> bool:
        return self.state is not AlertState.RESOLVED

    @property
    def duration(self) -> int | None:
        """Milliseconds from trigger to resolution."""
        if self.resolved_at is None:
            return None
        return int((self.resolved_at - self.triggered_at).total_seconds() * 1000)
