"""Process monitoring API routes."""

from typing import Any

from fastapi import APIRouter, Query

from procwatch.api.deps import (
    CurrentUserDep,
    MonitorDashboardDep,
    MonitorServiceDep,
    PaginationDep,
)
from procwatch.models.alert import Alert
from procwatch.schemas.common import APIResponse, PaginatedResponse
from procwatch.schemas.monitor import (
    AlertCreate,
    MonitorCreate,
    MonitorUpdate,
    MonitorView,
    PerformanceDataRequest,
    PerformanceDataResult,
    SlaResult,
    SlaUpdate,
)

router = APIRouter(prefix="/process-monitoring", tags=["process-monitoring"])


@router.get("", response_model=PaginatedResponse[MonitorView])
async def list_monitors(
    service: MonitorServiceDep,
    pagination: PaginationDep,
    status: str | None = Query(default=None, description="Current health status"),
    severity: str | None = Query(default=None, description="Has an active alert of this severity"),
    process_id: str | None = Query(default=None, alias="processId"),
    search: str | None = Query(default=None, description="Matches process name or alert message"),
    sort_by: str = Query(default="updatedAt", alias="sortBy"),
    sort_order: str = Query(default="desc", alias="sortOrder", pattern="^(asc|desc)$"),
) -> PaginatedResponse[MonitorView]:
    """List active monitors with a health summary."""
    page = await service.list_monitors(
        pagination,
        status=status,
        severity=severity,
        process_id=process_id,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return page.to_response()


@router.post("", status_code=201, response_model=APIResponse[MonitorView])
async def create_monitor(
    data: MonitorCreate,
    service: MonitorServiceDep,
    user: CurrentUserDep,
) -> APIResponse[MonitorView]:
    """Attach a monitor to a process."""
    return APIResponse(data=await service.create_monitor(data, user.id, user.email))


@router.get("/analytics/dashboard", response_model=APIResponse[dict[str, Any]])
async def monitoring_dashboard(
    dashboard: MonitorDashboardDep,
    timeframe: str = Query(default="24h", description="1h, 24h, 7d or 30d"),
) -> APIResponse[dict[str, Any]]:
    """Health summary, alert breakdown, trends and SLA averages."""
    return APIResponse(data=await dashboard.build(timeframe))


@router.get("/{monitor_id}", response_model=APIResponse[MonitorView])
async def get_monitor(
    monitor_id: str,
    service: MonitorServiceDep,
) -> APIResponse[MonitorView]:
    """Get a monitor with its health score and active alerts."""
    return APIResponse(data=await service.get_monitor(monitor_id))


@router.put("/{monitor_id}", response_model=APIResponse[MonitorView])
async def update_monitor(
    monitor_id: str,
    data: MonitorUpdate,
    service: MonitorServiceDep,
    user: CurrentUserDep,
) -> APIResponse[MonitorView]:
    return APIResponse(data=await service.update_monitor(monitor_id, data, user.id))


@router.delete("/{monitor_id}", response_model=APIResponse[dict[str, Any]])
async def delete_monitor(
    monitor_id: str,
    service: MonitorServiceDep,
    user: CurrentUserDep,
) -> APIResponse[dict[str, Any]]:
    """Deactivate a monitor; its alert history is kept."""
    await service.delete_monitor(monitor_id, user.id)
    return APIResponse(data={})


@router.post("/{monitor_id}/performance", response_model=APIResponse[PerformanceDataResult])
async def add_performance_data(
    monitor_id: str,
    data: PerformanceDataRequest,
    service: MonitorServiceDep,
) -> APIResponse[PerformanceDataResult]:
    """Record a performance sample and evaluate thresholds."""
    result = await service.add_performance_data(monitor_id, data.metrics, data.status)
    return APIResponse(message="Performance data added successfully", data=result)


@router.post("/{monitor_id}/alerts", status_code=201, response_model=APIResponse[Alert])
async def trigger_alert(
    monitor_id: str,
    data: AlertCreate,
    service: MonitorServiceDep,
) -> APIResponse[Alert]:
    """Raise a manual alert."""
    alert = await service.trigger_alert(monitor_id, data)
    return APIResponse(message="Alert triggered successfully", data=alert)


@router.patch(
    "/{monitor_id}/alerts/{alert_id}/acknowledge",
    response_model=APIResponse[Alert],
)
async def acknowledge_alert(
    monitor_id: str,
    alert_id: str,
    service: MonitorServiceDep,
    user: CurrentUserDep,
) -> APIResponse[Alert]:
    alert = await service.acknowledge_alert(monitor_id, alert_id, user.id)
    return APIResponse(message="Alert acknowledged successfully", data=alert)


@router.patch(
    "/{monitor_id}/alerts/{alert_id}/resolve",
    response_model=APIResponse[Alert],
)
async def resolve_alert(
    monitor_id: str,
    alert_id: str,
    service: MonitorServiceDep,
    user: CurrentUserDep,
) -> APIResponse[Alert]:
    alert = await service.resolve_alert(monitor_id, alert_id, user.id)
    return APIResponse(message="Alert resolved successfully", data=alert)


@router.get("/{monitor_id}/alerts/history", response_model=PaginatedResponse[Alert])
async def alert_history(
    monitor_id: str,
    service: MonitorServiceDep,
    pagination: PaginationDep,
    severity: str | None = Query(default=None),
    alert_type: str | None = Query(default=None, alias="alertType"),
) -> PaginatedResponse[Alert]:
    """Every alert raised on the monitor, newest first."""
    page = await service.alert_history(
        monitor_id,
        pagination,
        severity=severity,
        alert_type=alert_type,
    )
    return page.to_response()


@router.patch("/{monitor_id}/sla", response_model=APIResponse[SlaResult])
async def update_sla(
    monitor_id: str,
    data: SlaUpdate,
    service: MonitorServiceDep,
    user: CurrentUserDep,
) -> APIResponse[SlaResult]:
    """Merge SLA targets and recompute SLA status."""
    result = await service.update_sla_targets(monitor_id, data.sla_targets, user.id)
    return APIResponse(message="SLA targets updated successfully", data=result)
