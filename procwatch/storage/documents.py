"""JSON document storage on Redis hashes with optimistic updates."""

from collections.abc import Callable
from typing import TypeVar

from pydantic import BaseModel
from redis.asyncio import Redis
from redis.asyncio.client import Pipeline
from redis.exceptions import WatchError

from procwatch.core.config import get_settings
from procwatch.core.errors import ConcurrentModificationError
from procwatch.core.logging import get_logger
from procwatch.storage.redis_client import get_redis

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)

# Receives the stored document; returns the changed document, or None to skip the write
Mutator = Callable[[M], M | None]
# Queues extra commands inside the same MULTI block
AfterWrite = Callable[[Pipeline, M], None]


class DocumentStore:
    """Base class for stores keeping one pydantic document per hash.

    Each hash holds the JSON document under ``doc`` and a write counter
    (``revision`` for parent documents, ``version`` for child records).
    """

    def __init__(self, redis: Redis | None = None):
        self._redis = redis
        self._settings = get_settings()

    @property
    def redis(self) -> Redis:
        return self._redis or get_redis()

    @staticmethod
    def _mapping(doc: BaseModel, counter: str) -> dict[str, str]:
        return {
            "doc": doc.model_dump_json(),
            counter: str(getattr(doc, counter)),
        }

    async def _read(self, key: str, model: type[M]) -> M | None:
        data = await self.redis.hget(key, "doc")
        if not data:
            return None
        return model.model_validate_json(data)

    async def _read_many(self, keys: list[str], model: type[M]) -> list[M]:
        if not keys:
            return []
        async with self.redis.pipeline(transaction=False) as pipe:
            for key in keys:
                pipe.hget(key, "doc")
            results = await pipe.execute()
        return [model.model_validate_json(data) for data in results if data]

    async def _modify(
        self,
        key: str,
        model: type[M],
        mutate: Mutator,
        *,
        counter: str = "revision",
        expected: int | None = None,
        after: AfterWrite | None = None,
    ) -> M | None:
        """Read-modify-write a document under WATCH.

        Args:
            key: Hash key
            model: Document model
            mutate: Applies the change; may raise to abort
            counter: Name of the write counter attribute
            expected: Required counter value, if any
            after: Extra commands to queue with the write

        Returns:
            The stored document after the update, or None if the key is missing

        Raises:
            ConcurrentModificationError: On counter mismatch or when retries run out
        """
        attempts = self._settings.store_cas_retries
        for attempt in range(attempts):
            async with self.redis.pipeline(transaction=True) as pipe:
                try:
                    await pipe.watch(key)
                    data = await pipe.hget(key, "doc")
                    if not data:
                        return None
                    current = model.model_validate_json(data)
                    if expected is not None and getattr(current, counter) != expected:
                        raise ConcurrentModificationError(
                            f"{key} is at {counter} {getattr(current, counter)}, expected {expected}"
                        )

                    updated = mutate(current)
                    if updated is None:
                        return current
                    setattr(updated, counter, getattr(current, counter) + 1)

                    pipe.multi()
                    pipe.hset(key, mapping=self._mapping(updated, counter))
                    if after is not None:
                        after(pipe, updated)
                    await pipe.execute()
                    return updated
                except WatchError:
                    logger.debug("Concurrent write detected, retrying", key=key, attempt=attempt + 1)

        raise ConcurrentModificationError(f"Gave up updating {key} after {attempts} attempts")
