"""Automated process orchestration: CRUD, scheduling and execution."""

import uuid
from datetime import datetime

from procwatch.analytics.dashboard import process_summary
from procwatch.core.errors import InvalidInputError, InvalidStateError, NotFoundError
from procwatch.core.logging import get_logger
from procwatch.engine import cron
from procwatch.execution.runner import ExecutionRunner, get_execution_runner
from procwatch.models.base import utcnow
from procwatch.models.execution import ExecutionRecord, ExecutionStatus
from procwatch.models.process import (
    SIGNIFICANT_FIELDS,
    AutomatedProcess,
    ChangeLogEntry,
    Permissions,
    ProcessStatus,
    Schedule,
    bump_minor_version,
    normalize_steps,
)
from procwatch.observability.metrics import EXECUTIONS_STARTED
from procwatch.schemas.common import Page, PaginationParams
from procwatch.schemas.process import (
    CalendarEntry,
    CronValidation,
    ExecutionStarted,
    ProcessCreate,
    ProcessUpdate,
)
from procwatch.storage.process_store import ProcessStore

logger = get_logger(__name__)

NOT_FOUND = "Automated process not found"
SORTABLE_FIELDS = {
    "updatedAt": lambda p: p.updated_at,
    "createdAt": lambda p: p.created_at,
    "name": lambda p: p.name.lower(),
    "status": lambda p: p.status.value,
    "category": lambda p: p.category.value,
    "successRate": lambda p: p.success_rate,
    "totalExecutions": lambda p: p.metrics.total_executions,
}


def _matches_search(process: AutomatedProcess, needle: str) -> bool:
    return (
        needle in process.name.lower()
        or needle in process.description.lower()
        or any(needle in tag.lower() for tag in process.tags)
    )


def _dump(value):
    if isinstance(value, list):
        return [_dump(v) for v in value]
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    return value


def _next_run_for(schedule: Schedule, now: datetime) -> datetime | None:
    if not (schedule.enabled and schedule.cron_expression):
        return None
    return cron.next_run(schedule.cron_expression, now, tz=schedule.timezone)


class ProcessService:
    """Use cases for automated processes."""

    def __init__(
        self,
        store: ProcessStore | None = None,
        runner: ExecutionRunner | None = None,
    ):
        self._store = store or ProcessStore()
        self._runner = runner

    @property
    def runner(self) -> ExecutionRunner:
        if self._runner is None:
            self._runner = get_execution_runner()
        return self._runner

    async def _require(self, process_id: str, include_deleted: bool = False) -> AutomatedProcess:
        process = await self._store.get(process_id)
        if process is None or (not include_deleted and not process.is_active):
            raise NotFoundError(NOT_FOUND)
        return process

    async def _modify(self, process_id: str, mutate) -> AutomatedProcess:
        updated = await self._store.modify(process_id, mutate)
        if updated is None:
            raise NotFoundError(NOT_FOUND)
        return updated

    # Queries

    async def list_processes(
        self,
        pagination: PaginationParams,
        category: str | None = None,
        status: str | None = None,
        process_type: str | None = None,
        team: str | None = None,
        owner: str | None = None,
        search: str | None = None,
        sort_by: str = "updatedAt",
        sort_order: str = "desc",
    ) -> Page[AutomatedProcess]:
        """Filter, sort and page the live processes."""
        live = [p for p in await self._store.list_all() if p.is_active]

        matched = live
        if category:
            matched = [p for p in matched if p.category.value == category]
        if status:
            matched = [p for p in matched if p.status.value == status]
        if process_type:
            matched = [p for p in matched if p.process_type.value == process_type]
        if team:
            matched = [p for p in matched if p.team == team]
        if owner:
            matched = [p for p in matched if p.owner == owner]
        if search:
            needle = search.lower()
            matched = [p for p in matched if _matches_search(p, needle)]

        key = SORTABLE_FIELDS.get(sort_by, SORTABLE_FIELDS["updatedAt"])
        matched.sort(key=key, reverse=sort_order == "desc")
        return Page.build(matched, pagination, summary=process_summary(live))

    async def get_process(self, process_id: str) -> AutomatedProcess:
        return await self._require(process_id, include_deleted=True)

    async def list_scheduled(
        self,
        pagination: PaginationParams,
        sort_order: str = "asc",
    ) -> Page[AutomatedProcess]:
        """Live processes with an enabled schedule, ordered by next run."""
        scheduled = [
            p for p in await self._store.list_all()
            if p.is_active and p.schedule.enabled
        ]
        descending = sort_order == "desc"
        # Processes without a next run always go last
        with_next = sorted(
            (p for p in scheduled if p.schedule.next_run),
            key=lambda p: p.schedule.next_run,
            reverse=descending,
        )
        without_next = [p for p in scheduled if not p.schedule.next_run]
        return Page.build(with_next + without_next, pagination, summary=process_summary(scheduled))

    async def schedule_calendar(self) -> list[CalendarEntry]:
        """Active scheduled processes ordered by next run."""
        entries = [
            CalendarEntry(
                process_id=p.id,
                process_name=p.name,
                category=p.category,
                next_run=p.schedule.next_run,
                cron_expression=p.schedule.cron_expression,
                timezone=p.schedule.timezone,
                status=p.status,
            )
            for p in await self._store.list_all()
            if p.is_active and p.schedule.enabled and p.status is ProcessStatus.ACTIVE
        ]
        with_next = sorted((e for e in entries if e.next_run), key=lambda e: e.next_run)
        return with_next + [e for e in entries if not e.next_run]

    @staticmethod
    def validate_cron(
        expression: str | None,
        tz: str = "America/New_York",
        now: datetime | None = None,
    ) -> CronValidation:
        """Check a cron expression and preview its next five runs.

        Raises:
            InvalidInputError: If no expression is given
        """
        if not expression:
            raise InvalidInputError("Cron expression is required")
        try:
            runs = cron.next_runs(expression.strip(), now or utcnow(), count=5, tz=tz)
        except InvalidInputError as e:
            return CronValidation(valid=False, error=e.message)
        return CronValidation(valid=True, next_runs=runs, description=cron.describe(expression))

    # Commands

    async def create_process(self, data: ProcessCreate, user_id: str) -> AutomatedProcess:
        """Create a process with generated step ids and default permissions."""
        now = utcnow()
        schedule = data.schedule or Schedule()
        if schedule.enabled and schedule.cron_expression:
            schedule.next_run = _next_run_for(schedule, now)

        process = AutomatedProcess(
            id=uuid.uuid4().hex,
            name=data.name,
            description=data.description,
            category=data.category,
            process_type=data.process_type,
            status=data.status,
            steps=normalize_steps(data.steps),
            schedule=schedule,
            dependencies=data.dependencies,
            triggers=data.triggers,
            permissions=data.permissions or Permissions(),
            owner=data.owner or user_id,
            team=data.team,
            tags=data.tags,
            metadata=data.metadata,
            created_by=user_id,
            created_at=now,
            updated_at=now,
        )
        created = await self._store.create(process)
        logger.info("Process created", process_id=created.id, name=created.name)
        return created

    async def update_process(
        self,
        process_id: str,
        data: ProcessUpdate,
        user_id: str,
    ) -> AutomatedProcess:
        """Apply a partial update.

        Changes to steps, schedule, triggers or dependencies bump the minor
        version and append a change log entry.
        """
        changes = data.model_dump(exclude_unset=True, exclude={"change_description"})
        if data.steps is not None:
            changes["steps"] = normalize_steps(data.steps)
        for field in ("schedule", "permissions"):
            if getattr(data, field) is not None:
                changes[field] = getattr(data, field)
        for field in ("dependencies", "triggers"):
            if getattr(data, field) is not None:
                changes[field] = list(getattr(data, field))
        now = utcnow()

        def apply(process: AutomatedProcess) -> AutomatedProcess:
            significant = any(
                field in changes
                and changes[field] is not None
                and _dump(changes[field]) != _dump(getattr(process, field))
                for field in SIGNIFICANT_FIELDS
            )
            for field, value in changes.items():
                if value is not None:
                    setattr(process, field, value)
            if "schedule" in changes and changes["schedule"] is not None:
                process.schedule.next_run = _next_run_for(process.schedule, now)
            if significant:
                process.version = bump_minor_version(process.version)
                process.change_log.append(
                    ChangeLogEntry(
                        version=process.version,
                        changes=data.change_description or "Process configuration updated",
                        changed_by=user_id,
                        change_date=now,
                    )
                )
            process.updated_by = user_id
            process.updated_at = now
            return process

        updated = await self._modify(process_id, apply)
        if changes.get("status") is not None and updated.status is not ProcessStatus.ACTIVE:
            await self.runner.cancel_process(process_id)
        logger.info("Process updated", process_id=process_id, version=updated.version)
        return updated

    async def delete_process(self, process_id: str, user_id: str) -> None:
        """Soft delete: archive the process and cancel pending executions."""
        now = utcnow()

        def archive(process: AutomatedProcess) -> AutomatedProcess:
            process.is_active = False
            process.status = ProcessStatus.ARCHIVED
            process.updated_by = user_id
            process.updated_at = now
            return process

        await self._modify(process_id, archive)
        cancelled = await self.runner.cancel_process(process_id, reason="Process deleted")
        logger.info("Process archived", process_id=process_id, cancelled_executions=cancelled)

    async def toggle_status(self, process_id: str, user_id: str) -> AutomatedProcess:
        """Flip between Active and Inactive."""
        now = utcnow()

        def toggle(process: AutomatedProcess) -> AutomatedProcess:
            process.status = (
                ProcessStatus.INACTIVE
                if process.status is ProcessStatus.ACTIVE
                else ProcessStatus.ACTIVE
            )
            process.updated_by = user_id
            process.updated_at = now
            return process

        updated = await self._modify(process_id, toggle)
        if updated.status is not ProcessStatus.ACTIVE:
            await self.runner.cancel_process(process_id)
        logger.info("Process status toggled", process_id=process_id, status=updated.status.value)
        return updated

    async def update_schedule(
        self,
        process_id: str,
        schedule: Schedule,
        user_id: str,
    ) -> AutomatedProcess:
        """Replace the schedule and recompute its next run.

        Raises:
            InvalidInputError: If the schedule is enabled with a bad expression
        """
        now = utcnow()
        new_schedule = Schedule(
            enabled=schedule.enabled,
            cron_expression=schedule.cron_expression,
            timezone=schedule.timezone or "America/New_York",
            last_run=None,
        )
        new_schedule.next_run = _next_run_for(new_schedule, now)
        state = "enabled" if new_schedule.enabled else "disabled"

        def apply(process: AutomatedProcess) -> AutomatedProcess:
            new_schedule.last_run = process.schedule.last_run
            process.schedule = new_schedule
            process.updated_by = user_id
            process.updated_at = now
            process.change_log.append(
                ChangeLogEntry(
                    version=process.version,
                    changes=f"Schedule {state}: {new_schedule.cron_expression or 'N/A'}",
                    changed_by=user_id,
                    change_date=now,
                )
            )
            return process

        updated = await self._modify(process_id, apply)
        logger.info(
            "Process schedule updated",
            process_id=process_id,
            enabled=new_schedule.enabled,
            next_run=new_schedule.next_run,
        )
        return updated

    # Executions

    async def start_execution(self, process_id: str, user_id: str) -> ExecutionStarted:
        """Record a Running execution and hand it to the runner.

        Raises:
            NotFoundError: If the process is missing or deleted
            InvalidStateError: If the process is not Active
        """
        process = await self._require(process_id)
        if process.status is not ProcessStatus.ACTIVE:
            raise InvalidStateError("Process must be active to execute")

        record = ExecutionRecord(
            execution_id=str(uuid.uuid4()),
            process_id=process.id,
            executed_by=user_id,
        )
        await self._store.add_execution(record)
        await self._store.refresh_metrics(process.id)
        self.runner.submit(process, record)

        EXECUTIONS_STARTED.labels(category=process.category.value).inc()
        logger.info("Execution started", process_id=process.id, execution_id=record.execution_id)
        return ExecutionStarted(
            execution_id=record.execution_id,
            status=ExecutionStatus.RUNNING,
            start_time=record.start_time,
        )

    async def list_executions(
        self,
        process_id: str,
        pagination: PaginationParams,
    ) -> Page[ExecutionRecord]:
        await self._require(process_id, include_deleted=True)
        return Page.build(await self._store.list_executions(process_id), pagination)

    async def get_execution(self, process_id: str, execution_id: str) -> ExecutionRecord:
        await self._require(process_id, include_deleted=True)
        record = await self._store.get_execution(process_id, execution_id)
        if record is None:
            raise NotFoundError("Execution not found")
        return record
