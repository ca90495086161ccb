"""Automated process domain models."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field

from procwatch.core.errors import InvalidInputError
from procwatch.models.base import CamelModel, utcnow
from procwatch.models.execution import ExecutionRecord, ExecutionStatus


class ProcessCategory(str, Enum):
    """Process category."""

    DATA_QUALITY = "Data Quality"
    DATA_GOVERNANCE = "Data Governance"
    COMPLIANCE = "Compliance"
    REPORTING = "Reporting"
    ETL_INTEGRATION = "ETL/Integration"
    MONITORING = "Monitoring"
    BACKUP_RECOVERY = "Backup/Recovery"
    SECURITY = "Security"
    WORKFLOW = "Workflow"
    NOTIFICATION = "Notification"
    ANALYTICS = "Analytics"
    OTHER = "Other"


class ProcessType(str, Enum):
    """How a process gets started."""

    SCHEDULED = "Scheduled"
    EVENT_DRIVEN = "Event-Driven"
    MANUAL = "Manual"
    CONTINUOUS = "Continuous"
    ON_DEMAND = "On-Demand"


class ProcessStatus(str, Enum):
    """Process lifecycle status."""

    ACTIVE = "Active"
    INACTIVE = "Inactive"
    DRAFT = "Draft"
    PAUSED = "Paused"
    ERROR = "Error"
    ARCHIVED = "Archived"


class StepType(str, Enum):
    """Kind of work a step performs."""

    API_CALL = "API_Call"
    DATABASE_QUERY = "Database_Query"
    FILE_OPERATION = "File_Operation"
    EMAIL_NOTIFICATION = "Email_Notification"
    DATA_VALIDATION = "Data_Validation"
    DATA_TRANSFORM = "Data_Transform"
    CONDITIONAL_LOGIC = "Conditional_Logic"
    WAIT_DELAY = "Wait_Delay"
    SCRIPT_EXECUTION = "Script_Execution"
    HUMAN_APPROVAL = "Human_Approval"


class DependencyType(str, Enum):
    SUCCESS = "Success"
    COMPLETION = "Completion"
    FAILURE = "Failure"


class TriggerType(str, Enum):
    FILE_CREATED = "File_Created"
    FILE_MODIFIED = "File_Modified"
    DATABASE_CHANGE = "Database_Change"
    API_WEBHOOK = "API_Webhook"
    TIME_BASED = "Time_Based"
    MANUAL = "Manual"
    PROCESS_COMPLETION = "Process_Completion"


class RetryConfig(CamelModel):
    max_retries: int = Field(default=3, ge=0)
    retry_delay: int = Field(default=5000, ge=0, description="Milliseconds")


class ProcessStep(CamelModel):
    """A single step of a process workflow."""

    step_id: str | None = Field(default=None, description="Unique step identifier")
    name: str | None = Field(default=None, max_length=200)
    description: str = ""
    step_type: StepType = StepType.SCRIPT_EXECUTION
    configuration: dict[str, Any] = Field(default_factory=dict)
    order: int | None = Field(default=None, ge=1)
    is_active: bool = True
    retry_config: RetryConfig = Field(default_factory=RetryConfig)


class Schedule(CamelModel):
    enabled: bool = False
    cron_expression: str | None = None
    timezone: str = "America/New_York"
    next_run: datetime | None = None
    last_run: datetime | None = None


class Dependency(CamelModel):
    process_id: str
    dependency_type: DependencyType = DependencyType.SUCCESS


class Trigger(CamelModel):
    trigger_type: TriggerType
    configuration: dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True


class Permissions(CamelModel):
    can_view: list[str] = Field(default_factory=lambda: ["admin", "data-steward"])
    can_edit: list[str] = Field(default_factory=lambda: ["admin", "data-steward"])
    can_execute: list[str] = Field(default_factory=lambda: ["admin", "data-steward"])
    can_delete: list[str] = Field(default_factory=lambda: ["admin"])


class ProcessMetrics(CamelModel):
    """Aggregate execution counters, recomputed from execution records."""

    total_executions: int = 0
    successful_executions: int = 0
    failed_executions: int = 0
    average_execution_time: float = 0.0
    last_execution_time: datetime | None = None
    last_success_time: datetime | None = None
    last_failure_time: datetime | None = None


class ChangeLogEntry(CamelModel):
    version: str
    changes: str
    changed_by: str
    change_date: datetime = Field(default_factory=utcnow)


class AutomatedProcess(CamelModel):
    """Complete automated process document."""

    id: str
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=1000)
    category: ProcessCategory
    process_type: ProcessType
    status: ProcessStatus = ProcessStatus.DRAFT
    steps: list[ProcessStep] = Field(default_factory=list)
    schedule: Schedule = Field(default_factory=Schedule)
    dependencies: list[Dependency] = Field(default_factory=list)
    triggers: list[Trigger] = Field(default_factory=list)
    permissions: Permissions = Field(default_factory=Permissions)
    owner: str
    team: str
    tags: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    metrics: ProcessMetrics = Field(default_factory=ProcessMetrics)
    version: str = "1.0.0"
    change_log: list[ChangeLogEntry] = Field(default_factory=list)
    is_active: bool = True
    created_by: str
    updated_by: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    revision: int = 1

    @property
    def success_rate(self) -> float:
        if self.metrics.total_executions == 0:
            return 0.0
        return round(self.metrics.successful_executions / self.metrics.total_executions * 100, 2)


SIGNIFICANT_FIELDS = ("steps", "schedule", "triggers", "dependencies")


def normalize_steps(steps: list[ProcessStep]) -> list[ProcessStep]:
    """Fill missing step ids, orders and names.

    ``order`` defaults to the step's 1-based position in the list.

    Raises:
        InvalidInputError: If two steps share a step id
    """
    seen: set[str] = set()
    for index, step in enumerate(steps):
        if not step.step_id:
            step.step_id = str(uuid.uuid4())
        if step.step_id in seen:
            raise InvalidInputError(f"Duplicate stepId: {step.step_id}")
        seen.add(step.step_id)
        if not step.order:
            step.order = index + 1
        if not step.name:
            step.name = f"Step {step.order}"
    return steps


def compute_metrics(executions: list[ExecutionRecord]) -> ProcessMetrics:
    """Aggregate counters over execution records (any order)."""
    if not executions:
        return ProcessMetrics()

    ordered = sorted(executions, key=lambda e: e.start_time)
    completed = [e for e in ordered if e.status is ExecutionStatus.COMPLETED]
    failed = [e for e in ordered if e.status is ExecutionStatus.FAILED]
    durations = [e.duration_ms for e in completed if e.duration_ms is not None]

    return ProcessMetrics(
        total_executions=len(ordered),
        successful_executions=len(completed),
        failed_executions=len(failed),
        average_execution_time=sum(durations) / len(durations) if durations else 0.0,
        last_execution_time=ordered[-1].start_time,
        last_success_time=(completed[-1].end_time or completed[-1].start_time) if completed else None,
        last_failure_time=(failed[-1].end_time or failed[-1].start_time) if failed else None,
    )


def bump_minor_version(version: str) -> str:
    """``1.0.0`` -> ``1.1.0``."""
    parts = version.split(".")
    while len(parts) < 3:
        parts.append("0")
    try:
        parts[1] = str(int(parts[1]) + 1)
    except ValueError:
        parts[1] = "1"
    return ".".join(parts)
