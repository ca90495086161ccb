"""Alert notification queue."""

from redis.asyncio import Redis

from procwatch.models.notification import NotificationTask
from procwatch.storage.redis_client import RedisKeys, get_redis


class NotificationQueue:
    """Notification task queue backed by a Redis list."""

    def __init__(self, redis: Redis | None = None):
        self._redis = redis

    @property
    def redis(self) -> Redis:
        return self._redis or get_redis()

    async def enqueue(self, task: NotificationTask) -> None:
        """Add task to notification queue.

        Args:
            task: Notification task to enqueue
        """
        await self.redis.lpush(RedisKeys.NOTIFY_QUEUE, task.model_dump_json())

    async def dequeue(self, timeout: int = 5) -> NotificationTask | None:
        """Get next task from queue.

        Args:
            timeout: Blocking timeout in seconds

        Returns:
            Next task if available
        """
        result = await self.redis.brpop(RedisKeys.NOTIFY_QUEUE, timeout=timeout)
        if result:
            _, data = result
            return NotificationTask.model_validate_json(data)
        return None

    async def requeue(self, task: NotificationTask) -> None:
        """Requeue a failed task with its retry count incremented."""
        task.retry_count += 1
        await self.enqueue(task)

    async def move_to_dead_letter(self, task: NotificationTask) -> None:
        """Move task to dead letter queue.

        Args:
            task: Failed task
        """
        await self.redis.lpush(RedisKeys.NOTIFY_DEAD_LETTER, task.model_dump_json())

    async def queue_length(self) -> int:
        return await self.redis.llen(RedisKeys.NOTIFY_QUEUE)
