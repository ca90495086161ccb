"""Automated process API schemas."""

from datetime import datetime
from typing import Any

from pydantic import Field

from procwatch.models.base import CamelModel
from procwatch.models.execution import ExecutionStatus
from procwatch.models.process import (
    Dependency,
    Permissions,
    ProcessCategory,
    ProcessStatus,
    ProcessStep,
    ProcessType,
    Schedule,
    Trigger,
)


class ProcessCreate(CamelModel):
    """Schema for creating a new process."""

    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=1000)
    category: ProcessCategory
    process_type: ProcessType
    status: ProcessStatus = ProcessStatus.DRAFT
    steps: list[ProcessStep] = Field(default_factory=list)
    schedule: Schedule | None = None
    dependencies: list[Dependency] = Field(default_factory=list)
    triggers: list[Trigger] = Field(default_factory=list)
    permissions: Permissions | None = None
    owner: str | None = Field(default=None, description="Defaults to the requesting user")
    team: str = Field(..., min_length=1)
    tags: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class ProcessUpdate(CamelModel):
    """Schema for updating a process. Only fields sent are changed."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    category: ProcessCategory | None = None
    process_type: ProcessType | None = None
    status: ProcessStatus | None = None
    steps: list[ProcessStep] | None = None
    schedule: Schedule | None = None
    dependencies: list[Dependency] | None = None
    triggers: list[Trigger] | None = None
    permissions: Permissions | None = None
    owner: str | None = None
    team: str | None = Field(default=None, min_length=1)
    tags: list[str] | None = None
    metadata: dict[str, Any] | None = None
    change_description: str | None = Field(
        default=None,
        description="Change log text used when the version is bumped",
    )


class ScheduleUpdate(CamelModel):
    schedule: Schedule


class CronValidationRequest(CamelModel):
    cron_expression: str | None = None
    timezone: str = "America/New_York"


class CronValidation(CamelModel):
    valid: bool
    next_runs: list[datetime] = Field(default_factory=list)
    description: str | None = None
    error: str | None = None


class ProcessStatusView(CamelModel):
    id: str
    name: str
    status: ProcessStatus


class ExecutionStarted(CamelModel):
    execution_id: str
    status: ExecutionStatus
    start_time: datetime


class CalendarEntry(CamelModel):
    process_id: str
    process_name: str
    category: ProcessCategory
    next_run: datetime | None
    cron_expression: str | None
    timezone: str
    status: ProcessStatus
