"""API dependency injection."""

from typing import Annotated

from fastapi import Depends, Header, Query
from pydantic import BaseModel

from procwatch.analytics.dashboard import MonitoringDashboardAggregator, ProcessDashboardAggregator
from procwatch.execution.runner import get_execution_runner
from procwatch.notification.dispatcher import NotificationDispatcher
from procwatch.schemas.common import PaginationParams
from procwatch.services.monitors import MonitorService
from procwatch.services.processes import ProcessService
from procwatch.storage.monitor_store import MonitorStore
from procwatch.storage.process_store import ProcessStore
from procwatch.storage.redis_client import get_redis


class CurrentUser(BaseModel):
    """Authenticated caller as forwarded by the auth proxy."""

    id: str
    email: str | None = None


def get_current_user(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_email: Annotated[str | None, Header()] = None,
) -> CurrentUser:
    """Read the caller from ``X-User-Id`` / ``X-User-Email``."""
    return CurrentUser(id=x_user_id or "system", email=x_user_email)


def get_process_service() -> ProcessService:
    """Get process service instance."""
    return ProcessService(ProcessStore(get_redis()), get_execution_runner())


def get_monitor_service() -> MonitorService:
    """Get monitor service instance."""
    redis = get_redis()
    return MonitorService(MonitorStore(redis), ProcessStore(redis), NotificationDispatcher(redis))


def get_monitor_dashboard() -> MonitoringDashboardAggregator:
    return MonitoringDashboardAggregator(MonitorStore(get_redis()))


def get_process_dashboard() -> ProcessDashboardAggregator:
    return ProcessDashboardAggregator(ProcessStore(get_redis()))


# Type aliases for dependency injection
CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]
ProcessServiceDep = Annotated[ProcessService, Depends(get_process_service)]
MonitorServiceDep = Annotated[MonitorService, Depends(get_monitor_service)]
MonitorDashboardDep = Annotated[MonitoringDashboardAggregator, Depends(get_monitor_dashboard)]
ProcessDashboardDep = Annotated[ProcessDashboardAggregator, Depends(get_process_dashboard)]


def get_pagination(
    page: int = Query(default=1, ge=1, description="Page number"),
    limit: int = Query(default=20, ge=1, le=100, description="Items per page"),
) -> PaginationParams:
    """Get pagination parameters from query."""
    return PaginationParams(page=page, limit=limit)


PaginationDep = Annotated[PaginationParams, Depends(get_pagination)]
