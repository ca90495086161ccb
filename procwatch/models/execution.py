"""Execution record domain models."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field

from procwatch.models.base import CamelModel, utcnow


class ExecutionStatus(str, Enum):
    """Execution lifecycle status."""

    RUNNING = "Running"
    COMPLETED = "Completed"
    FAILED = "Failed"
    CANCELLED = "Cancelled"
    TIMEOUT = "Timeout"

    @property
    def is_terminal(self) -> bool:
        return self is not ExecutionStatus.RUNNING


class StepResult(CamelModel):
    """Outcome of one step within an execution."""

    step_id: str
    status: str
    duration: int = Field(default=0, ge=0, description="Milliseconds")
    result: dict[str, Any] = Field(default_factory=dict)
    error_message: str | None = None


class ExecutionRecord(CamelModel):
    """One run of an automated process."""

    execution_id: str = Field(..., description="Execution unique identifier")
    process_id: str = Field(..., description="Process that was executed")
    start_time: datetime = Field(default_factory=utcnow)
    end_time: datetime | None = None
    status: ExecutionStatus = ExecutionStatus.RUNNING
    executed_by: str = Field(default="System")
    result: dict[str, Any] = Field(default_factory=dict)
    error_message: str | None = None
    step_results: list[StepResult] = Field(default_factory=list)
    version: int = Field(default=1, ge=1, description="Bumped on every write")

    @property
    def duration_ms(self) -> int | None:
        if self.end_time is None:
            return None
        return int((self.end_time - self.start_time).total_seconds() * 1000)
