"""Process monitor, alert and performance history storage."""

import json

from redis.asyncio import Redis
from redis.exceptions import WatchError

from procwatch.core.errors import ConcurrentModificationError, ConflictError
from procwatch.core.logging import get_logger
from procwatch.models.alert import Alert, AlertType
from procwatch.models.base import to_millis
from procwatch.models.monitor import HealthStatus, PerformanceSample, ProcessMonitor
from procwatch.storage.documents import AfterWrite, DocumentStore, Mutator
from procwatch.storage.redis_client import RedisKeys

logger = get_logger(__name__)


class MonitorStore(DocumentStore):
    """Monitor documents with alert and performance child data.

    Layout per monitor:
        detail hash          monitor document
        alert hashes         one per alert, keyed by (monitor id, alert id)
        alerts:active zset   open alert ids scored by trigger time
        alerts:history zset  retained alert ids, scored by trigger time
        performance zset     JSON samples scored by timestamp
    """

    def __init__(self, redis: Redis | None = None):
        super().__init__(redis)

    async def create(self, monitor: ProcessMonitor) -> ProcessMonitor:
        """Persist a monitor and claim its process.

        Raises:
            ConflictError: If an active monitor already exists for the process
        """
        await self._claim_process(monitor.process_id, monitor.id)
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.hset(
                RedisKeys.monitor_detail(monitor.id),
                mapping=self._mapping(monitor, "revision"),
            )
            pipe.sadd(RedisKeys.MONITOR_ALL, monitor.id)
            await pipe.execute()
        return monitor

    async def _claim_process(self, process_id: str, monitor_id: str) -> None:
        claim_key = RedisKeys.monitor_by_process(process_id)
        if await self.redis.set(claim_key, monitor_id, nx=True):
            return

        # A claim left by a deleted or missing monitor may be taken over
        for _ in range(self._settings.store_cas_retries):
            async with self.redis.pipeline(transaction=True) as pipe:
                try:
                    await pipe.watch(claim_key)
                    holder = await pipe.get(claim_key)
                    if holder:
                        existing = await self.get(holder)
                        if existing is not None and existing.is_active:
                            raise ConflictError("Monitor already exists for this process")
                    pipe.multi()
                    pipe.set(claim_key, monitor_id)
                    await pipe.execute()
                    logger.info("Replaced stale monitor claim", process_id=process_id, stale=holder)
                    return
                except WatchError:
                    continue
        raise ConcurrentModificationError(f"Could not claim process {process_id}")

    async def get(self, monitor_id: str) -> ProcessMonitor | None:
        """Get a monitor by ID, including soft-deleted ones."""
        return await self._read(RedisKeys.monitor_detail(monitor_id), ProcessMonitor)

    async def get_for_process(self, process_id: str) -> ProcessMonitor | None:
        """Active monitor attached to a process, if any."""
        monitor_id = await self.redis.get(RedisKeys.monitor_by_process(process_id))
        if not monitor_id:
            return None
        monitor = await self.get(monitor_id)
        return monitor if monitor and monitor.is_active else None

    async def list_all(self) -> list[ProcessMonitor]:
        monitor_ids = sorted(await self.redis.smembers(RedisKeys.MONITOR_ALL))
        keys = [RedisKeys.monitor_detail(mid) for mid in monitor_ids]
        return await self._read_many(keys, ProcessMonitor)

    async def modify(
        self,
        monitor_id: str,
        mutate: Mutator,
        after: AfterWrite | None = None,
    ) -> ProcessMonitor | None:
        return await self._modify(
            RedisKeys.monitor_detail(monitor_id),
            ProcessMonitor,
            mutate,
            after=after,
        )

    async def soft_delete(self, monitor_id: str, user_id: str) -> ProcessMonitor | None:
        """Deactivate a monitor, keeping its alerts and history.

        Returns:
            Updated monitor, or None if not found
        """

        def deactivate(monitor: ProcessMonitor) -> ProcessMonitor | None:
            if not monitor.is_active:
                return None
            monitor.is_active = False
            monitor.updated_by = user_id
            return monitor

        def release_claim(pipe, monitor: ProcessMonitor) -> None:
            pipe.delete(RedisKeys.monitor_by_process(monitor.process_id))

        return await self.modify(monitor_id, deactivate, after=release_claim)

    # Performance history

    async def add_performance(self, monitor_id: str, sample: PerformanceSample) -> None:
        """Append a sample, keeping the newest ``max_performance_history``."""
        key = RedisKeys.performance(monitor_id)
        keep = self._settings.max_performance_history
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.zadd(key, {sample.model_dump_json(): to_millis(sample.timestamp)})
            pipe.zremrangebyrank(key, 0, -(keep + 1))
            await pipe.execute()

    async def list_performance(
        self,
        monitor_id: str,
        since_ms: int | None = None,
        until_ms: int | None = None,
    ) -> list[PerformanceSample]:
        """Samples in chronological order, optionally within ``[since_ms, until_ms]``."""
        key = RedisKeys.performance(monitor_id)
        low = since_ms if since_ms is not None else "-inf"
        high = until_ms if until_ms is not None else "+inf"
        entries = await self.redis.zrangebyscore(key, min=low, max=high)
        samples = []
        for entry in entries:
            try:
                samples.append(PerformanceSample.model_validate_json(entry))
            except ValueError:
                logger.warning("Skipping unreadable performance sample", monitor_id=monitor_id)
        return samples

    async def recent_statuses(self, monitor_id: str, limit: int) -> list[HealthStatus]:
        """Statuses of the newest ``limit`` samples, newest first."""
        entries = await self.redis.zrevrange(RedisKeys.performance(monitor_id), 0, limit - 1)
        return [HealthStatus(json.loads(entry)["status"]) for entry in entries]

    # Alerts

    async def add_alert(self, alert: Alert) -> Alert:
        """Store a new alert as active and record it in the history log."""
        mid = alert.monitor_id
        score = to_millis(alert.triggered_at)
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.hset(
                RedisKeys.alert_detail(mid, alert.alert_id),
                mapping=self._mapping(alert, "version"),
            )
            pipe.zadd(RedisKeys.alert_active(mid), {alert.alert_id: score})
            pipe.zadd(RedisKeys.alert_history(mid), {alert.alert_id: score})
            await pipe.execute()

        await self._trim_history(mid)
        return alert

    async def _trim_history(self, monitor_id: str) -> None:
        history_key = RedisKeys.alert_history(monitor_id)
        excess = await self.redis.zcard(history_key) - self._settings.max_alert_history
        if excess <= 0:
            return

        active = set(await self.redis.zrange(RedisKeys.alert_active(monitor_id), 0, -1))
        # Open alerts stay in history until resolved; only closed ones are dropped
        closed = [
            alert_id
            for alert_id in await self.redis.zrange(history_key, 0, -1)
            if alert_id not in active
        ][:excess]
        if not closed:
            return
        async with self.redis.pipeline(transaction=True) as pipe:
            for alert_id in closed:
                pipe.delete(RedisKeys.alert_detail(monitor_id, alert_id))
            pipe.zrem(history_key, *closed)
            await pipe.execute()

    async def get_alert(self, monitor_id: str, alert_id: str) -> Alert | None:
        return await self._read(RedisKeys.alert_detail(monitor_id, alert_id), Alert)

    async def is_active_alert(self, monitor_id: str, alert_id: str) -> bool:
        return await self.redis.zscore(RedisKeys.alert_active(monitor_id), alert_id) is not None

    async def list_active_alerts(self, monitor_id: str) -> list[Alert]:
        """Open alerts, newest first."""
        alert_ids = await self.redis.zrevrange(RedisKeys.alert_active(monitor_id), 0, -1)
        keys = [RedisKeys.alert_detail(monitor_id, aid) for aid in alert_ids]
        return await self._read_many(keys, Alert)

    async def list_alert_history(self, monitor_id: str) -> list[Alert]:
        """Every retained alert, newest first."""
        alert_ids = await self.redis.zrevrange(RedisKeys.alert_history(monitor_id), 0, -1)
        keys = [RedisKeys.alert_detail(monitor_id, aid) for aid in alert_ids]
        return await self._read_many(keys, Alert)

    async def find_open_alert(self, monitor_id: str, alert_type: AlertType) -> Alert | None:
        for alert in await self.list_active_alerts(monitor_id):
            if alert.alert_type is alert_type and alert.is_open:
                return alert
        return None

    async def modify_alert(
        self,
        monitor_id: str,
        alert_id: str,
        mutate: Mutator,
        after: AfterWrite | None = None,
    ) -> Alert | None:
        return await self._modify(
            RedisKeys.alert_detail(monitor_id, alert_id),
            Alert,
            mutate,
            counter="version",
            after=after,
        )
