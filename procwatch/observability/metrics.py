"""Prometheus metrics definitions."""

from prometheus_client import Counter, Gauge, Histogram

# Execution metrics
EXECUTIONS_STARTED = Counter(
    "procwatch_executions_started_total",
    "Total number of process executions started",
    ["category"],
)

EXECUTIONS_FINISHED = Counter(
    "procwatch_executions_finished_total",
    "Total number of process executions reaching a terminal status",
    ["status"],
)

EXECUTION_DURATION = Histogram(
    "procwatch_execution_duration_seconds",
    "Wall-clock duration of completed executions",
    buckets=(0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0),
)

PENDING_EXECUTIONS = Gauge(
    "procwatch_pending_executions",
    "Executions waiting for their scheduled completion",
)

# Monitoring metrics
PERFORMANCE_SAMPLES = Counter(
    "procwatch_performance_samples_total",
    "Performance samples recorded",
    ["status"],
)

ALERTS_TRIGGERED = Counter(
    "procwatch_alerts_triggered_total",
    "Alerts raised",
    ["alert_type", "severity", "source"],
)

ALERTS_COALESCED = Counter(
    "procwatch_alerts_coalesced_total",
    "Threshold breaches folded into an already open alert",
    ["alert_type"],
)

ALERT_TRANSITIONS = Counter(
    "procwatch_alert_transitions_total",
    "Alert acknowledge/resolve transitions",
    ["transition"],
)

# Notification metrics
NOTIFICATIONS_QUEUED = Counter(
    "procwatch_notifications_queued_total",
    "Alert notifications queued",
)

NOTIFICATIONS_SENT = Counter(
    "procwatch_notifications_sent_total",
    "Alert notification deliveries",
    ["channel", "status"],
)
