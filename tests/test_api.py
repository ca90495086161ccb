"""End-to-end API flows over an in-memory Redis."""

from typing import AsyncIterator

import httpx
import pytest
import pytest_asyncio

from procwatch.analytics.dashboard import MonitoringDashboardAggregator, ProcessDashboardAggregator
from procwatch.api.app import create_app
from procwatch.api.deps import (
    get_monitor_dashboard,
    get_monitor_service,
    get_process_dashboard,
    get_process_service,
)

ADMIN = {"X-User-Id": "u-admin", "X-User-Email": "admin@example.com"}
PROCESSES = "/api/v1/automated-processes"
MONITORS = "/api/v1/process-monitoring"


@pytest_asyncio.fixture
async def client(
    process_service,
    monitor_service,
    process_store,
    monitor_store,
) -> AsyncIterator[httpx.AsyncClient]:
    app = create_app()
    app.dependency_overrides[get_process_service] = lambda: process_service
    app.dependency_overrides[get_monitor_service] = lambda: monitor_service
    app.dependency_overrides[get_monitor_dashboard] = lambda: MonitoringDashboardAggregator(monitor_store)
    app.dependency_overrides[get_process_dashboard] = lambda: ProcessDashboardAggregator(process_store)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.mark.asyncio
async def test_process_lifecycle(client, runner, process_payload):
    created = await client.post(PROCESSES, json=process_payload, headers=ADMIN)
    assert created.status_code == 201
    process = created.json()["data"]
    assert process["createdBy"] == "u-admin"
    assert process["processType"] == "Scheduled"
    assert process["steps"][0]["order"] == 1
    process_id = process["id"]

    started = await client.post(f"{PROCESSES}/{process_id}/execute", headers=ADMIN)
    assert started.status_code == 200
    assert started.json()["message"] == "Process execution started"
    execution_id = started.json()["data"]["executionId"]
    assert started.json()["data"]["status"] == "Running"

    await runner.wait(execution_id)

    executions = (await client.get(f"{PROCESSES}/{process_id}/executions")).json()
    assert executions["total"] == 1
    assert executions["data"][0]["status"] == "Completed"

    execution = await client.get(f"{PROCESSES}/{process_id}/executions/{execution_id}")
    assert execution.json()["data"]["result"]["stepsCompleted"] == 2

    toggled = await client.patch(f"{PROCESSES}/{process_id}/toggle-status", headers=ADMIN)
    assert toggled.json()["message"] == "Process inactive successfully"
    assert toggled.json()["data"]["status"] == "Inactive"

    rejected = await client.post(f"{PROCESSES}/{process_id}/execute", headers=ADMIN)
    assert rejected.status_code == 400
    assert rejected.json() == {"success": False, "error": "Process must be active to execute"}

    listing = (await client.get(PROCESSES, params={"status": "Inactive"})).json()
    assert listing["count"] == 1
    assert listing["summary"]["totalExecutions"] == 1

    dashboard = (await client.get(f"{PROCESSES}/analytics/dashboard", params={"timeframe": "7d"})).json()
    assert dashboard["data"]["timeframe"] == "7d"
    assert dashboard["data"]["summary"]["totalProcesses"] == 1

    deleted = await client.delete(f"{PROCESSES}/{process_id}", headers=ADMIN)
    assert deleted.json()["success"] is True
    archived = (await client.get(f"{PROCESSES}/{process_id}")).json()["data"]
    assert archived["status"] == "Archived"
    assert archived["isActive"] is False


@pytest.mark.asyncio
async def test_schedule_endpoints(client, active_process):
    validation = await client.post(
        f"{PROCESSES}/schedule/validate-cron",
        json={"cronExpression": "0 0 * * *", "timezone": "UTC"},
    )
    assert validation.json()["data"]["valid"] is True
    assert validation.json()["data"]["description"] == "Daily at midnight"
    assert len(validation.json()["data"]["nextRuns"]) == 5

    invalid = await client.post(f"{PROCESSES}/schedule/validate-cron", json={"cronExpression": "0 0 *"})
    assert invalid.status_code == 200
    assert invalid.json()["data"]["valid"] is False

    missing = await client.post(f"{PROCESSES}/schedule/validate-cron", json={})
    assert missing.status_code == 400
    assert missing.json()["error"] == "Cron expression is required"

    scheduled = await client.patch(
        f"{PROCESSES}/{active_process.id}/schedule",
        json={"schedule": {"enabled": True, "cronExpression": "0 6 * * 1", "timezone": "UTC"}},
        headers=ADMIN,
    )
    assert scheduled.json()["message"] == f'Schedule enabled for process "{active_process.name}"'
    assert scheduled.json()["data"]["schedule"]["nextRun"] is not None

    upcoming = (await client.get(f"{PROCESSES}/scheduled")).json()
    assert [p["id"] for p in upcoming["data"]] == [active_process.id]

    calendar = (await client.get(f"{PROCESSES}/schedule/calendar")).json()
    assert calendar["data"][0]["processId"] == active_process.id
    assert calendar["data"][0]["cronExpression"] == "0 6 * * 1"


@pytest.mark.asyncio
async def test_monitoring_and_alert_flow(client, active_process):
    created = await client.post(
        MONITORS,
        json={"processId": active_process.id, "monitoringLevel": "Advanced"},
        headers=ADMIN,
    )
    assert created.status_code == 201
    monitor = created.json()["data"]
    assert monitor["alertSettings"]["channels"][0]["configuration"]["recipients"] == ["admin@example.com"]
    monitor_id = monitor["id"]

    duplicate = await client.post(MONITORS, json={"processId": active_process.id}, headers=ADMIN)
    assert duplicate.status_code == 400
    assert duplicate.json()["error"] == "Monitor already exists for this process"

    no_metrics = await client.post(f"{MONITORS}/{monitor_id}/performance", json={})
    assert no_metrics.status_code == 400
    assert no_metrics.json()["error"] == "Performance metrics are required"

    performance = await client.post(
        f"{MONITORS}/{monitor_id}/performance",
        json={"metrics": {"executionTime": 301000, "cpuUsage": 40}},
    )
    assert performance.json()["message"] == "Performance data added successfully"
    alerts = performance.json()["data"]["alerts"]
    assert [a["alertType"] for a in alerts] == ["Execution_Timeout"]
    alert_id = alerts[0]["alertId"]

    acknowledged = await client.patch(
        f"{MONITORS}/{monitor_id}/alerts/{alert_id}/acknowledge",
        headers=ADMIN,
    )
    assert acknowledged.json()["data"]["state"] == "Acknowledged"
    assert acknowledged.json()["data"]["acknowledgedBy"] == "u-admin"

    resolved = await client.patch(f"{MONITORS}/{monitor_id}/alerts/{alert_id}/resolve", headers=ADMIN)
    assert resolved.json()["message"] == "Alert resolved successfully"

    again = await client.patch(f"{MONITORS}/{monitor_id}/alerts/{alert_id}/resolve", headers=ADMIN)
    assert again.status_code == 404
    assert again.json() == {"success": False, "error": "Alert not found"}

    manual = await client.post(
        f"{MONITORS}/{monitor_id}/alerts",
        json={"alertType": "Custom_Metric", "severity": "Critical", "message": "Manual page"},
    )
    assert manual.status_code == 201

    incomplete = await client.post(f"{MONITORS}/{monitor_id}/alerts", json={"severity": "Low"})
    assert incomplete.status_code == 400

    history = (await client.get(f"{MONITORS}/{monitor_id}/alerts/history")).json()
    assert history["total"] == 2
    assert history["data"][0]["message"] == "Manual page"

    detail = (await client.get(f"{MONITORS}/{monitor_id}")).json()["data"]
    assert detail["healthScore"] == 80
    assert detail["alertCounts"]["critical"] == 1

    sla = await client.patch(
        f"{MONITORS}/{monitor_id}/sla",
        json={"slaTargets": {"responseTime": 2000}},
        headers=ADMIN,
    )
    assert sla.json()["data"]["slaTargets"]["responseTime"] == 2000

    dashboard = (await client.get(f"{MONITORS}/analytics/dashboard")).json()["data"]
    assert dashboard["timeframe"] == "24h"
    assert dashboard["alertBreakdown"]["Critical"] == 1

    listing = (await client.get(MONITORS, params={"severity": "Critical"})).json()
    assert listing["total"] == 1

    removed = await client.delete(f"{MONITORS}/{monitor_id}", headers=ADMIN)
    assert removed.status_code == 200
    assert (await client.get(MONITORS)).json()["total"] == 0
