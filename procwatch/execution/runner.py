"""Deferred completion of started executions.

Each started execution gets one asyncio task that waits for the configured
delay and then finalizes the execution record. Finalization is a
compare-and-swap on the record version, so a completion never overwrites a
record that was cancelled or finished in the meantime. If the process is no
longer Active when the delay ends, the execution is cancelled instead.
"""

import asyncio
import random
from collections import defaultdict

from procwatch.core.config import get_settings
from procwatch.core.errors import ConcurrentModificationError
from procwatch.core.logging import get_logger
from procwatch.models.base import utcnow
from procwatch.models.execution import ExecutionRecord, ExecutionStatus, StepResult
from procwatch.models.process import AutomatedProcess, ProcessStatus
from procwatch.observability.metrics import (
    EXECUTION_DURATION,
    EXECUTIONS_FINISHED,
    PENDING_EXECUTIONS,
)
from procwatch.storage.process_store import ProcessStore

logger = get_logger(__name__)


class ExecutionRunner:
    """Schedules, cancels and awaits simulated execution completions."""

    def __init__(
        self,
        store: ProcessStore | None = None,
        delay: float | None = None,
        rng: random.Random | None = None,
    ):
        """Initialize runner.

        Args:
            store: Process store (defaults to one on the shared pool)
            delay: Seconds before completion (defaults to settings)
            rng: Random source for synthetic step durations
        """
        self._settings = get_settings()
        self._store = store
        self._delay = self._settings.execution_delay_seconds if delay is None else delay
        self._rng = rng or random.Random()
        self._tasks: dict[str, asyncio.Task] = {}
        self._by_process: dict[str, set[str]] = defaultdict(set)

    @property
    def store(self) -> ProcessStore:
        if self._store is None:
            self._store = ProcessStore()
        return self._store

    def submit(self, process: AutomatedProcess, record: ExecutionRecord) -> asyncio.Task:
        """Schedule completion of a Running execution.

        Args:
            process: Process snapshot taken when the execution started
            record: Freshly stored execution record

        Returns:
            The task finalizing the execution
        """
        execution_id = record.execution_id
        task = asyncio.create_task(
            self._run(process, record),
            name=f"execution:{execution_id}",
        )
        self._tasks[execution_id] = task
        self._by_process[process.id].add(execution_id)
        PENDING_EXECUTIONS.inc()
        task.add_done_callback(lambda _: self._forget(process.id, execution_id))
        logger.debug("Execution scheduled", execution_id=execution_id, delay=self._delay)
        return task

    def _forget(self, process_id: str, execution_id: str) -> None:
        if self._tasks.pop(execution_id, None) is not None:
            PENDING_EXECUTIONS.dec()
        pending = self._by_process.get(process_id)
        if pending is not None:
            pending.discard(execution_id)
            if not pending:
                del self._by_process[process_id]

    def pending(self, process_id: str | None = None) -> list[str]:
        """IDs of executions still waiting for completion."""
        if process_id is None:
            return list(self._tasks)
        return list(self._by_process.get(process_id, ()))

    async def wait(self, execution_id: str) -> None:
        """Wait until a scheduled execution has been finalized or cancelled."""
        task = self._tasks.get(execution_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def _run(self, process: AutomatedProcess, record: ExecutionRecord) -> None:
        await asyncio.sleep(self._delay)
        try:
            await self._complete(process, record)
        except ConcurrentModificationError as e:
            logger.warning(
                "Execution changed concurrently, completion dropped",
                execution_id=record.execution_id,
                error=str(e),
            )
        except Exception as e:
            logger.error(
                "Execution completion failed",
                execution_id=record.execution_id,
                error=str(e),
                exc_info=True,
            )
            await self._finalize(
                process.id,
                record.execution_id,
                ExecutionStatus.FAILED,
                error_message=str(e),
            )

    def _step_results(self, process: AutomatedProcess) -> list[StepResult]:
        low = self._settings.step_duration_min_ms
        high = max(low, self._settings.step_duration_max_ms)
        steps = sorted(process.steps, key=lambda s: s.order or 0)
        return [
            StepResult(
                step_id=step.step_id or "",
                status=ExecutionStatus.COMPLETED.value,
                duration=self._rng.randint(low, high),
                result={"message": f"Step {step.name} completed successfully"},
            )
            for step in steps
        ]

    async def _complete(self, process: AutomatedProcess, record: ExecutionRecord) -> None:
        current_process = await self.store.get(process.id)
        if (
            current_process is None
            or not current_process.is_active
            or current_process.status is not ProcessStatus.ACTIVE
        ):
            deleted = current_process is None or not current_process.is_active
            await self._finalize(
                process.id,
                record.execution_id,
                ExecutionStatus.CANCELLED,
                error_message="Process deleted" if deleted else "Process deactivated",
            )
            logger.info(
                "Process no longer active, execution cancelled",
                process_id=process.id,
                execution_id=record.execution_id,
            )
            return

        step_results = self._step_results(process)

        def complete(current: ExecutionRecord) -> ExecutionRecord | None:
            if current.status.is_terminal:
                return None
            current.end_time = utcnow()
            current.status = ExecutionStatus.COMPLETED
            current.step_results = step_results
            current.result = {
                "message": "Process executed successfully",
                "stepsCompleted": len(step_results),
                "duration": current.duration_ms,
            }
            return current

        updated = await self.store.modify_execution(
            process.id,
            record.execution_id,
            complete,
            expected_version=record.version,
        )
        if updated is None or updated.version == record.version:
            logger.info(
                "Execution already finalized, skipping completion",
                execution_id=record.execution_id,
            )
            return

        EXECUTIONS_FINISHED.labels(status=updated.status.value).inc()
        if updated.duration_ms is not None:
            EXECUTION_DURATION.observe(updated.duration_ms / 1000)
        await self.store.refresh_metrics(process.id)
        logger.info(
            "Execution completed",
            process_id=process.id,
            execution_id=record.execution_id,
            duration_ms=updated.duration_ms,
        )

    async def _finalize(
        self,
        process_id: str,
        execution_id: str,
        status: ExecutionStatus,
        error_message: str | None = None,
    ) -> ExecutionRecord | None:
        """Move a Running execution to a terminal status if nobody else did."""

        def finish(current: ExecutionRecord) -> ExecutionRecord | None:
            if current.status.is_terminal:
                return None
            current.end_time = utcnow()
            current.status = status
            current.error_message = error_message
            return current

        updated = await self.store.modify_execution(process_id, execution_id, finish)
        if updated is not None and updated.status is status:
            EXECUTIONS_FINISHED.labels(status=status.value).inc()
            await self.store.refresh_metrics(process_id)
        return updated

    async def cancel_process(self, process_id: str, reason: str = "Process deactivated") -> int:
        """Cancel every pending completion of a process.

        Returns:
            Number of executions cancelled
        """
        execution_ids = self.pending(process_id)
        tasks = [self._tasks[eid] for eid in execution_ids if eid in self._tasks]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        cancelled = 0
        for execution_id in execution_ids:
            updated = await self._finalize(
                process_id,
                execution_id,
                ExecutionStatus.CANCELLED,
                error_message=reason,
            )
            if updated is not None and updated.status is ExecutionStatus.CANCELLED:
                cancelled += 1

        if cancelled:
            logger.info("Cancelled pending executions", process_id=process_id, count=cancelled)
        return cancelled

    async def shutdown(self) -> None:
        """Cancel everything still pending."""
        for process_id in list(self._by_process):
            await self.cancel_process(process_id, reason="Service shutdown")


# Singleton instance
_runner: ExecutionRunner | None = None


def get_execution_runner() -> ExecutionRunner:
    """Get execution runner singleton."""
    global _runner
    if _runner is None:
        _runner = ExecutionRunner()
    return _runner
