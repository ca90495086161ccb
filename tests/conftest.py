"""Pytest configuration and fixtures."""

import random
from typing import AsyncIterator

import fakeredis
import pytest
import pytest_asyncio
from redis.asyncio import Redis

from procwatch.execution.runner import ExecutionRunner
from procwatch.models.monitor import AlertChannel, AlertSettings, ChannelType
from procwatch.models.process import ProcessCategory, ProcessStatus, ProcessType
from procwatch.notification.dispatcher import NotificationDispatcher
from procwatch.schemas.monitor import MonitorCreate
from procwatch.schemas.process import ProcessCreate
from procwatch.services.monitors import MonitorService
from procwatch.services.processes import ProcessService
from procwatch.storage.monitor_store import MonitorStore
from procwatch.storage.process_store import ProcessStore


@pytest_asyncio.fixture
async def redis() -> AsyncIterator[Redis]:
    """In-memory Redis shared by the stores of one test."""
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


@pytest.fixture
def process_store(redis: Redis) -> ProcessStore:
    return ProcessStore(redis)


@pytest.fixture
def monitor_store(redis: Redis) -> MonitorStore:
    return MonitorStore(redis)


@pytest.fixture
def runner(process_store: ProcessStore) -> ExecutionRunner:
    """Runner completing executions immediately with fixed step durations."""
    return ExecutionRunner(store=process_store, delay=0, rng=random.Random(7))


@pytest.fixture
def process_service(process_store: ProcessStore, runner: ExecutionRunner) -> ProcessService:
    return ProcessService(process_store, runner)


@pytest.fixture
def monitor_service(
    redis: Redis,
    monitor_store: MonitorStore,
    process_store: ProcessStore,
) -> MonitorService:
    return MonitorService(monitor_store, process_store, NotificationDispatcher(redis))


@pytest.fixture
def process_payload() -> dict:
    """Sample process payload as a client would send it."""
    return {
        "name": "Nightly customer data quality checks",
        "description": "Validates customer records loaded by the nightly ETL",
        "category": ProcessCategory.DATA_QUALITY.value,
        "processType": ProcessType.SCHEDULED.value,
        "status": ProcessStatus.ACTIVE.value,
        "team": "data-platform",
        "tags": ["customers", "nightly"],
        "steps": [
            {"stepId": "s1", "name": "Extract", "stepType": "Database_Query"},
            {"stepId": "s2", "name": "Validate", "stepType": "Data_Validation"},
        ],
    }


@pytest_asyncio.fixture
async def active_process(process_service: ProcessService, process_payload: dict):
    return await process_service.create_process(
        ProcessCreate.model_validate(process_payload),
        user_id="u-admin",
    )


@pytest_asyncio.fixture
async def monitor(monitor_service: MonitorService, active_process):
    return await monitor_service.create_monitor(
        MonitorCreate(
            process_id=active_process.id,
            alert_settings=AlertSettings(
                channels=[AlertChannel(type=ChannelType.DASHBOARD)],
            ),
        ),
        user_id="u-admin",
        user_email="admin@example.com",
    )
