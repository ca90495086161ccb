"""Tests for API error response formats."""

from fastapi.testclient import TestClient

import procwatch.api.app as app_module
from procwatch.api.app import create_app
from procwatch.api.deps import get_monitor_service, get_process_service
from procwatch.core.errors import (
    ConcurrentModificationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
)


class FakeProcessService:
    """Process service failing in known ways."""

    async def get_process(self, process_id: str):
        raise NotFoundError("Automated process not found")

    async def start_execution(self, process_id: str, user_id: str):
        raise InvalidStateError("Process must be active to execute")

    async def toggle_status(self, process_id: str, user_id: str):
        raise ConcurrentModificationError("process is at revision 3, expected 2")

    async def list_processes(self, pagination, **filters):
        raise RuntimeError("connection reset")


class FakeMonitorService:
    async def create_monitor(self, data, user_id: str, user_email: str | None = None):
        raise ConflictError("Monitor already exists for this process")


def _make_client(monkeypatch, raise_server_exceptions: bool = True) -> TestClient:
    async def _noop() -> None:
        return None

    monkeypatch.setattr(app_module, "init_redis_pool", _noop)
    monkeypatch.setattr(app_module, "close_redis_pool", _noop)

    app = create_app()
    app.dependency_overrides[get_process_service] = lambda: FakeProcessService()
    app.dependency_overrides[get_monitor_service] = lambda: FakeMonitorService()
    return TestClient(app, raise_server_exceptions=raise_server_exceptions)


def test_not_found_response_format(monkeypatch) -> None:
    client = _make_client(monkeypatch)

    response = client.get("/api/v1/automated-processes/missing")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Automated process not found"}


def test_invalid_state_is_bad_request(monkeypatch) -> None:
    client = _make_client(monkeypatch)

    response = client.post("/api/v1/automated-processes/p1/execute")

    assert response.status_code == 400
    assert response.json()["error"] == "Process must be active to execute"


def test_conflict_is_bad_request(monkeypatch) -> None:
    client = _make_client(monkeypatch)

    response = client.post("/api/v1/process-monitoring", json={"processId": "p1"})

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Monitor already exists for this process"}


def test_concurrent_modification_is_conflict(monkeypatch) -> None:
    client = _make_client(monkeypatch)

    response = client.patch("/api/v1/automated-processes/p1/toggle-status")

    assert response.status_code == 409
    assert response.json()["success"] is False


def test_validation_error_response_format(monkeypatch) -> None:
    client = _make_client(monkeypatch)

    response = client.post("/api/v1/automated-processes", json={"name": ""})

    assert response.status_code == 400
    payload = response.json()
    assert payload["success"] is False
    assert payload["error"]
    assert isinstance(payload["details"], list)
    assert payload["details"]


def test_unknown_route_response_format(monkeypatch) -> None:
    client = _make_client(monkeypatch)

    response = client.get("/api/v1/nothing-here")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Not Found"}


def test_unexpected_error_hides_details(monkeypatch) -> None:
    client = _make_client(monkeypatch, raise_server_exceptions=False)

    response = client.get("/api/v1/automated-processes")

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Server Error"}


def test_trace_id_is_echoed(monkeypatch) -> None:
    client = _make_client(monkeypatch)

    response = client.get("/health", headers={"X-Trace-Id": "trace-123"})

    assert response.status_code == 200
    assert response.headers["X-Trace-Id"] == "trace-123"
