"""Worker process entry point for alert notification delivery."""

import asyncio
import signal

from procwatch.core.logging import get_logger, setup_logging
from procwatch.notification.worker import NotificationWorker
from procwatch.storage.redis_client import (
    close_redis_pool,
    get_redis,
    init_redis_pool,
)

logger = get_logger(__name__)


class WorkerManager:
    """Runs the notification worker until asked to stop."""

    def __init__(self):
        self._notification_worker: NotificationWorker | None = None

    async def start(self) -> None:
        """Start the notification worker."""
        setup_logging()
        logger.info("Starting worker manager")

        await init_redis_pool()
        self._notification_worker = NotificationWorker(get_redis())

        try:
            await self._run_notification_worker()
        finally:
            await self._cleanup()

    async def _run_notification_worker(self) -> None:
        if self._notification_worker:
            try:
                await self._notification_worker.start()
            except asyncio.CancelledError:
                logger.info("Notification worker cancelled")
            except Exception as e:
                logger.error("Notification worker error", error=str(e), exc_info=True)

    def stop(self) -> None:
        """Signal the worker to stop after its current poll."""
        logger.info("Stopping workers")
        if self._notification_worker:
            self._notification_worker.stop()

    async def _cleanup(self) -> None:
        logger.info("Cleaning up resources")
        if self._notification_worker:
            await self._notification_worker.close()
        await close_redis_pool()
        logger.info("Cleanup complete")


async def main() -> None:
    """Main entry point for worker process."""
    manager = WorkerManager()

    loop = asyncio.get_running_loop()

    def signal_handler():
        logger.info("Received shutdown signal")
        manager.stop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    await manager.start()


if __name__ == "__main__":
    asyncio.run(main())
