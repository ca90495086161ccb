"""Automated process API routes."""

from typing import Any

from fastapi import APIRouter, Query

from procwatch.api.deps import (
    CurrentUserDep,
    PaginationDep,
    ProcessDashboardDep,
    ProcessServiceDep,
)
from procwatch.models.execution import ExecutionRecord
from procwatch.models.process import AutomatedProcess
from procwatch.schemas.common import APIResponse, PaginatedResponse
from procwatch.schemas.process import (
    CalendarEntry,
    CronValidation,
    CronValidationRequest,
    ExecutionStarted,
    ProcessCreate,
    ProcessStatusView,
    ProcessUpdate,
    ScheduleUpdate,
)

router = APIRouter(prefix="/automated-processes", tags=["automated-processes"])


@router.get("", response_model=PaginatedResponse[AutomatedProcess])
async def list_processes(
    service: ProcessServiceDep,
    pagination: PaginationDep,
    category: str | None = Query(default=None),
    status: str | None = Query(default=None),
    process_type: str | None = Query(default=None, alias="processType"),
    team: str | None = Query(default=None),
    owner: str | None = Query(default=None),
    search: str | None = Query(default=None, description="Matches name, description or tags"),
    sort_by: str = Query(default="updatedAt", alias="sortBy"),
    sort_order: str = Query(default="desc", alias="sortOrder", pattern="^(asc|desc)$"),
) -> PaginatedResponse[AutomatedProcess]:
    """List live processes with filters and a summary."""
    page = await service.list_processes(
        pagination,
        category=category,
        status=status,
        process_type=process_type,
        team=team,
        owner=owner,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return page.to_response()


@router.post("", status_code=201, response_model=APIResponse[AutomatedProcess])
async def create_process(
    data: ProcessCreate,
    service: ProcessServiceDep,
    user: CurrentUserDep,
) -> APIResponse[AutomatedProcess]:
    """Create a new automated process."""
    return APIResponse(data=await service.create_process(data, user.id))


@router.get("/analytics/dashboard", response_model=APIResponse[dict[str, Any]])
async def process_dashboard(
    dashboard: ProcessDashboardDep,
    timeframe: str = Query(default="30d", description="7d, 30d or 90d"),
) -> APIResponse[dict[str, Any]]:
    """Process counts, breakdowns and recent executions."""
    return APIResponse(data=await dashboard.build(timeframe))


@router.get("/scheduled", response_model=PaginatedResponse[AutomatedProcess])
async def list_scheduled(
    service: ProcessServiceDep,
    pagination: PaginationDep,
    sort_order: str = Query(default="asc", alias="sortOrder", pattern="^(asc|desc)$"),
) -> PaginatedResponse[AutomatedProcess]:
    """Processes with an enabled schedule, ordered by next run."""
    page = await service.list_scheduled(pagination, sort_order=sort_order)
    return page.to_response()


@router.get("/schedule/calendar", response_model=APIResponse[list[CalendarEntry]])
async def schedule_calendar(service: ProcessServiceDep) -> APIResponse[list[CalendarEntry]]:
    """Upcoming runs of active scheduled processes."""
    return APIResponse(data=await service.schedule_calendar())


@router.post("/schedule/validate-cron", response_model=APIResponse[CronValidation])
async def validate_cron(
    data: CronValidationRequest,
    service: ProcessServiceDep,
) -> APIResponse[CronValidation]:
    """Check a cron expression and preview its next runs."""
    return APIResponse(data=service.validate_cron(data.cron_expression, data.timezone))


@router.get("/{process_id}", response_model=APIResponse[AutomatedProcess])
async def get_process(
    process_id: str,
    service: ProcessServiceDep,
) -> APIResponse[AutomatedProcess]:
    """Get a single process by ID."""
    return APIResponse(data=await service.get_process(process_id))


@router.put("/{process_id}", response_model=APIResponse[AutomatedProcess])
async def update_process(
    process_id: str,
    data: ProcessUpdate,
    service: ProcessServiceDep,
    user: CurrentUserDep,
) -> APIResponse[AutomatedProcess]:
    """Update a process; workflow changes bump its version."""
    return APIResponse(data=await service.update_process(process_id, data, user.id))


@router.delete("/{process_id}", response_model=APIResponse[dict[str, Any]])
async def delete_process(
    process_id: str,
    service: ProcessServiceDep,
    user: CurrentUserDep,
) -> APIResponse[dict[str, Any]]:
    """Archive a process and cancel its pending executions."""
    await service.delete_process(process_id, user.id)
    return APIResponse(data={})


@router.post("/{process_id}/execute", response_model=APIResponse[ExecutionStarted])
async def execute_process(
    process_id: str,
    service: ProcessServiceDep,
    user: CurrentUserDep,
) -> APIResponse[ExecutionStarted]:
    """Start an execution; it completes in the background."""
    started = await service.start_execution(process_id, user.id)
    return APIResponse(message="Process execution started", data=started)


@router.get("/{process_id}/executions", response_model=PaginatedResponse[ExecutionRecord])
async def list_executions(
    process_id: str,
    service: ProcessServiceDep,
    pagination: PaginationDep,
) -> PaginatedResponse[ExecutionRecord]:
    """Execution history, newest first."""
    page = await service.list_executions(process_id, pagination)
    return page.to_response()


@router.get(
    "/{process_id}/executions/{execution_id}",
    response_model=APIResponse[ExecutionRecord],
)
async def get_execution(
    process_id: str,
    execution_id: str,
    service: ProcessServiceDep,
) -> APIResponse[ExecutionRecord]:
    return APIResponse(data=await service.get_execution(process_id, execution_id))


@router.patch("/{process_id}/toggle-status", response_model=APIResponse[ProcessStatusView])
async def toggle_status(
    process_id: str,
    service: ProcessServiceDep,
    user: CurrentUserDep,
) -> APIResponse[ProcessStatusView]:
    """Switch a process between Active and Inactive."""
    process = await service.toggle_status(process_id, user.id)
    return APIResponse(
        message=f"Process {process.status.value.lower()} successfully",
        data=ProcessStatusView(id=process.id, name=process.name, status=process.status),
    )


@router.patch("/{process_id}/schedule", response_model=APIResponse[AutomatedProcess])
async def update_schedule(
    process_id: str,
    data: ScheduleUpdate,
    service: ProcessServiceDep,
    user: CurrentUserDep,
) -> APIResponse[AutomatedProcess]:
    """Replace a process schedule."""
    process = await service.update_schedule(process_id, data.schedule, user.id)
    state = "enabled" if process.schedule.enabled else "disabled"
    return APIResponse(
        message=f'Schedule {state} for process "{process.name}"',
        data=process,
    )
