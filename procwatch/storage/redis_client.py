"""Redis client management."""

import redis.asyncio as redis
from redis.asyncio import Redis

from procwatch.core.config import get_settings

# Global connection pool
_pool: redis.ConnectionPool | None = None


async def init_redis_pool() -> None:
    """Initialize Redis connection pool."""
    global _pool
    if _pool is None:
        settings = get_settings()
        _pool = redis.ConnectionPool.from_url(
            settings.redis_url,
            decode_responses=True,
            max_connections=20,
        )


async def close_redis_pool() -> None:
    """Close Redis connection pool."""
    global _pool
    if _pool is not None:
        await _pool.disconnect()
        _pool = None


def get_redis() -> Redis:
    """Get Redis client from pool.

    Returns:
        Redis client instance

    Raises:
        RuntimeError: If pool not initialized
    """
    if _pool is None:
        raise RuntimeError("Redis pool not initialized. Call init_redis_pool() first.")
    return redis.Redis(connection_pool=_pool)


class RedisKeys:
    """Redis key patterns.

    Child entities (executions, alerts) live under their own keys and are
    addressed by (parent id, child id).
    """

    # Processes
    PROCESS_DETAIL = "procwatch:process:{process_id}"
    PROCESS_ALL = "procwatch:processes:all"
    EXECUTION_DETAIL = "procwatch:process:{process_id}:execution:{execution_id}"
    EXECUTION_INDEX = "procwatch:process:{process_id}:executions"

    # Monitors
    MONITOR_DETAIL = "procwatch:monitor:{monitor_id}"
    MONITOR_ALL = "procwatch:monitors:all"
    MONITOR_BY_PROCESS = "procwatch:monitors:by_process:{process_id}"
    ALERT_DETAIL = "procwatch:monitor:{monitor_id}:alert:{alert_id}"
    ALERT_ACTIVE = "procwatch:monitor:{monitor_id}:alerts:active"
    ALERT_HISTORY = "procwatch:monitor:{monitor_id}:alerts:history"
    PERFORMANCE = "procwatch:monitor:{monitor_id}:performance"

    # Notifications
    NOTIFY_QUEUE = "procwatch:notify:queue"
    NOTIFY_DEAD_LETTER = "procwatch:notify:dead_letter"

    @classmethod
    def process_detail(cls, process_id: str) -> str:
        return cls.PROCESS_DETAIL.format(process_id=process_id)

    @classmethod
    def execution_detail(cls, process_id: str, execution_id: str) -> str:
        return cls.EXECUTION_DETAIL.format(process_id=process_id, execution_id=execution_id)

    @classmethod
    def execution_index(cls, process_id: str) -> str:
        return cls.EXECUTION_INDEX.format(process_id=process_id)

    @classmethod
    def monitor_detail(cls, monitor_id: str) -> str:
        return cls.MONITOR_DETAIL.format(monitor_id=monitor_id)

    @classmethod
    def monitor_by_process(cls, process_id: str) -> str:
        return cls.MONITOR_BY_PROCESS.format(process_id=process_id)

    @classmethod
    def alert_detail(cls, monitor_id: str, alert_id: str) -> str:
        return cls.ALERT_DETAIL.format(monitor_id=monitor_id, alert_id=alert_id)

    @classmethod
    def alert_active(cls, monitor_id: str) -> str:
        return cls.ALERT_ACTIVE.format(monitor_id=monitor_id)

    @classmethod
    def alert_history(cls, monitor_id: str) -> str:
        return cls.ALERT_HISTORY.format(monitor_id=monitor_id)

    @classmethod
    def performance(cls, monitor_id: str) -> str:
        return cls.PERFORMANCE.format(monitor_id=monitor_id)
