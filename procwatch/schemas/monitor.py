"""Process monitoring API schemas."""

from typing import Any

from pydantic import Field

from procwatch.models.alert import Alert, AlertType, Severity
from procwatch.models.base import CamelModel
from procwatch.models.monitor import (
    AlertSettings,
    CurrentMetrics,
    HealthStatus,
    MetricsSample,
    MonitoringLevel,
    ProcessMonitor,
    SlaStatus,
    SlaTargets,
    Thresholds,
)


class MonitorCreate(CamelModel):
    """Schema for attaching a monitor to a process."""

    process_id: str = Field(..., min_length=1)
    monitoring_enabled: bool = True
    monitoring_level: MonitoringLevel = MonitoringLevel.STANDARD
    thresholds: Thresholds | None = None
    alert_settings: AlertSettings | None = None
    sla_targets: SlaTargets | None = None


class MonitorUpdate(CamelModel):
    """Schema for updating monitor configuration."""

    monitoring_enabled: bool | None = None
    monitoring_level: MonitoringLevel | None = None
    thresholds: Thresholds | None = None
    alert_settings: AlertSettings | None = None
    sla_targets: SlaTargets | None = None


class PerformanceDataRequest(CamelModel):
    metrics: MetricsSample | None = None
    status: HealthStatus = HealthStatus.HEALTHY


class PerformanceDataResult(CamelModel):
    current_metrics: CurrentMetrics
    health_score: int
    alerts: list[Alert] = Field(default_factory=list)


class AlertCreate(CamelModel):
    """Manual alert payload. Presence is checked by the service."""

    alert_type: AlertType | None = None
    severity: Severity | None = None
    message: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class SlaUpdate(CamelModel):
    sla_targets: dict[str, Any] | None = None


class SlaResult(CamelModel):
    sla_targets: SlaTargets
    sla_status: SlaStatus
    sla_compliance: float


class MonitorView(ProcessMonitor):
    """Monitor document with derived read-side fields."""

    health_score: int = 100
    sla_compliance: float = 0
    alert_counts: dict[str, int] = Field(default_factory=dict)
    active_alerts: list[Alert] = Field(default_factory=list)
