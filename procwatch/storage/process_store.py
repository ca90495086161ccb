"""Automated process and execution record storage."""

from redis.asyncio import Redis

from procwatch.models.base import to_millis
from procwatch.models.execution import ExecutionRecord
from procwatch.models.process import AutomatedProcess, compute_metrics
from procwatch.storage.documents import AfterWrite, DocumentStore, Mutator
from procwatch.storage.redis_client import RedisKeys


class ProcessStore(DocumentStore):
    """Process documents plus their execution records.

    Executions are separate hashes indexed by a per-process sorted set scored
    by start time, so completing one execution never rewrites the process.
    """

    def __init__(self, redis: Redis | None = None):
        super().__init__(redis)

    async def create(self, process: AutomatedProcess) -> AutomatedProcess:
        """Persist a new process.

        Args:
            process: Process to create

        Returns:
            Created process
        """
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.hset(
                RedisKeys.process_detail(process.id),
                mapping=self._mapping(process, "revision"),
            )
            pipe.sadd(RedisKeys.PROCESS_ALL, process.id)
            await pipe.execute()
        return process

    async def get(self, process_id: str) -> AutomatedProcess | None:
        """Get a process by ID, including soft-deleted ones."""
        return await self._read(RedisKeys.process_detail(process_id), AutomatedProcess)

    async def list_all(self) -> list[AutomatedProcess]:
        """List every stored process."""
        process_ids = sorted(await self.redis.smembers(RedisKeys.PROCESS_ALL))
        keys = [RedisKeys.process_detail(pid) for pid in process_ids]
        return await self._read_many(keys, AutomatedProcess)

    async def modify(
        self,
        process_id: str,
        mutate: Mutator,
        after: AfterWrite | None = None,
    ) -> AutomatedProcess | None:
        """Apply ``mutate`` to a process under optimistic locking.

        Returns:
            Updated process, or None if not found
        """
        return await self._modify(
            RedisKeys.process_detail(process_id),
            AutomatedProcess,
            mutate,
            after=after,
        )

    async def add_execution(self, record: ExecutionRecord) -> ExecutionRecord:
        """Store a new execution record and trim old ones.

        Args:
            record: Execution record (usually Running)

        Returns:
            Stored record
        """
        index_key = RedisKeys.execution_index(record.process_id)
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.hset(
                RedisKeys.execution_detail(record.process_id, record.execution_id),
                mapping=self._mapping(record, "version"),
            )
            pipe.zadd(index_key, {record.execution_id: to_millis(record.start_time)})
            await pipe.execute()

        await self._trim_executions(record.process_id)
        return record

    async def _trim_executions(self, process_id: str) -> None:
        index_key = RedisKeys.execution_index(process_id)
        excess = await self.redis.zcard(index_key) - self._settings.max_execution_history
        if excess <= 0:
            return

        stale_ids = await self.redis.zrange(index_key, 0, excess - 1)
        async with self.redis.pipeline(transaction=True) as pipe:
            for execution_id in stale_ids:
                pipe.delete(RedisKeys.execution_detail(process_id, execution_id))
            pipe.zrem(index_key, *stale_ids)
            await pipe.execute()

    async def get_execution(self, process_id: str, execution_id: str) -> ExecutionRecord | None:
        return await self._read(
            RedisKeys.execution_detail(process_id, execution_id),
            ExecutionRecord,
        )

    async def list_executions(self, process_id: str) -> list[ExecutionRecord]:
        """List execution records, newest first."""
        execution_ids = await self.redis.zrevrange(RedisKeys.execution_index(process_id), 0, -1)
        keys = [RedisKeys.execution_detail(process_id, eid) for eid in execution_ids]
        return await self._read_many(keys, ExecutionRecord)

    async def count_executions(self, process_id: str) -> int:
        return await self.redis.zcard(RedisKeys.execution_index(process_id))

    async def refresh_metrics(self, process_id: str) -> AutomatedProcess | None:
        """Recompute the process's execution counters from its records."""
        metrics = compute_metrics(await self.list_executions(process_id))

        def apply(process: AutomatedProcess) -> AutomatedProcess | None:
            if process.metrics == metrics:
                return None
            process.metrics = metrics
            return process

        return await self.modify(process_id, apply)

    async def modify_execution(
        self,
        process_id: str,
        execution_id: str,
        mutate: Mutator,
        expected_version: int | None = None,
    ) -> ExecutionRecord | None:
        """Apply ``mutate`` to an execution record.

        Args:
            process_id: Owning process
            execution_id: Execution to update
            mutate: Change to apply
            expected_version: Version the caller last saw, if it must match

        Returns:
            Updated record, or None if not found
        """
        return await self._modify(
            RedisKeys.execution_detail(process_id, execution_id),
            ExecutionRecord,
            mutate,
            counter="version",
            expected=expected_version,
        )
