"""Process monitor domain models."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field

from procwatch.models.base import CamelModel, utcnow


class HealthStatus(str, Enum):
    HEALTHY = "Healthy"
    WARNING = "Warning"
    CRITICAL = "Critical"
    DOWN = "Down"
    UNKNOWN = "Unknown"


class MonitoringLevel(str, Enum):
    BASIC = "Basic"
    STANDARD = "Standard"
    ADVANCED = "Advanced"
    CRITICAL = "Critical"


class ChannelType(str, Enum):
    EMAIL = "Email"
    SMS = "SMS"
    SLACK = "Slack"
    TEAMS = "Teams"
    WEBHOOK = "Webhook"
    DASHBOARD = "Dashboard"


class EscalationLevel(str, Enum):
    WARNING = "Warning"
    CRITICAL = "Critical"
    EMERGENCY = "Emergency"


class Thresholds(CamelModel):
    """Alerting thresholds. Defaults: 5 min, 512 MB, 80 %, 95 %, 3 failures."""

    max_execution_time: float = Field(default=300000, ge=1000, description="Milliseconds")
    max_memory_usage: float = Field(default=512, ge=1, description="MB")
    max_cpu_usage: float = Field(default=80, ge=1, le=100, description="Percent")
    min_success_rate: float = Field(default=95, ge=0, le=100, description="Percent")
    max_consecutive_failures: int = Field(default=3, ge=1)


class AlertChannel(CamelModel):
    type: ChannelType
    configuration: dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True


class EscalationRule(CamelModel):
    level: EscalationLevel
    delay_minutes: int = Field(default=15, ge=1)
    recipients: list[str] = Field(default_factory=list)
    actions: list[str] = Field(default_factory=list)


class AlertSettings(CamelModel):
    enabled: bool = True
    channels: list[AlertChannel] = Field(default_factory=list)
    escalation_rules: list[EscalationRule] = Field(default_factory=list)

    @classmethod
    def default_for(cls, email: str | None) -> "AlertSettings":
        """Email the creating user; escalate at Warning after 15 minutes."""
        recipients = [email] if email else []
        return cls(
            enabled=True,
            channels=[
                AlertChannel(
                    type=ChannelType.EMAIL,
                    configuration={"recipients": recipients},
                )
            ],
            escalation_rules=[
                EscalationRule(
                    level=EscalationLevel.WARNING,
                    delay_minutes=15,
                    recipients=recipients,
                    actions=["Send_Email"],
                )
            ],
        )


class MetricsSample(CamelModel):
    """One performance observation. Every field is optional."""

    execution_time: float | None = Field(default=None, ge=0, description="Milliseconds")
    memory_usage: float | None = Field(default=None, ge=0, description="MB")
    cpu_usage: float | None = Field(default=None, ge=0, description="Percent")
    response_time: float | None = Field(default=None, ge=0, description="Milliseconds")
    throughput: float | None = Field(default=None, ge=0, description="Operations per minute")
    error_count: int | None = Field(default=None, ge=0)
    success_count: int | None = Field(default=None, ge=0)


class CurrentMetrics(CamelModel):
    status: HealthStatus = HealthStatus.UNKNOWN
    last_check_time: datetime = Field(default_factory=utcnow)
    execution_time: float = 0
    response_time: float = 0
    memory_usage: float = 0
    cpu_usage: float = 0
    active_connections: int = 0
    queue_size: int = 0
    error_rate: float = 0

    def merge(self, sample: MetricsSample) -> None:
        """Overwrite fields present in ``sample``."""
        for name in ("execution_time", "response_time", "memory_usage", "cpu_usage"):
            value = getattr(sample, name)
            if value is not None:
                setattr(self, name, value)
        if sample.error_count is not None and sample.success_count is not None:
            total = sample.error_count + sample.success_count
            if total > 0:
                self.error_rate = round(sample.error_count / total * 100, 2)


class PerformanceSample(CamelModel):
    timestamp: datetime = Field(default_factory=utcnow)
    metrics: MetricsSample
    status: HealthStatus = HealthStatus.HEALTHY


class SlaTargets(CamelModel):
    availability: float = Field(default=99.9, ge=0, le=100)
    response_time: float = Field(default=5000, ge=100)
    throughput: float = Field(default=100, ge=1)
    error_rate: float = Field(default=1, ge=0, le=100)


class SlaStatus(CamelModel):
    current_availability: float = 0
    current_response_time: float = 0
    current_throughput: float = 0
    current_error_rate: float = 0
    last_calculated: datetime = Field(default_factory=utcnow)


class ProcessMonitor(CamelModel):
    """Health and alerting record attached 1:1 to an automated process."""

    id: str
    process_id: str
    process_name: str
    monitoring_enabled: bool = True
    monitoring_level: MonitoringLevel = MonitoringLevel.STANDARD
    thresholds: Thresholds = Field(default_factory=Thresholds)
    alert_settings: AlertSettings = Field(default_factory=AlertSettings)
    current_metrics: CurrentMetrics = Field(default_factory=CurrentMetrics)
    sla_targets: SlaTargets = Field(default_factory=SlaTargets)
    sla_status: SlaStatus = Field(default_factory=SlaStatus)
    is_active: bool = True
    created_by: str
    updated_by: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    revision: int = 1
