from __future__ import annotations

from collections.abc import Sequence

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from promo_allocator.storage.errors import StorageError, StorageUnavailableError

logger = structlog.get_logger(__name__)

SCAN_BATCH_SIZE = 500


class RedisKeyValueStore:
    """Key-value store on a Redis database with string values.

    ``key_pattern`` bounds what ``list_all_keys`` enumerates, so a shared
    database only yields this application's keys.
    """

    def __init__(self, client: Redis, *, key_pattern: str = "*") -> None:
        self._client = client
        self._key_pattern = key_pattern

    @classmethod
    def from_url(cls, url: str, *, key_pattern: str = "*") -> RedisKeyValueStore:
        client = Redis.from_url(url, encoding="utf-8", decode_responses=True)
        return cls(client, key_pattern=key_pattern)

    async def get(self, key: str) -> str | None:
        try:
            return await self._client.get(key)
        except RedisError as exc:
            raise StorageError(f"redis get failed: {exc}") from exc

    async def set(self, key: str, value: str) -> None:
        try:
            await self._client.set(key, value)
        except RedisError as exc:
            raise StorageError(f"redis set failed: {exc}") from exc

    async def remove_many(self, keys: Sequence[str]) -> None:
        if not keys:
            return
        try:
            await self._client.delete(*keys)
        except RedisError as exc:
            raise StorageError(f"redis delete failed: {exc}") from exc

    async def list_all_keys(self) -> list[str]:
        try:
            scanned = [
                key
                async for key in self._client.scan_iter(
                    match=self._key_pattern,
                    count=SCAN_BATCH_SIZE,
                )
            ]
        except RedisError as exc:
            raise StorageError(f"redis scan failed: {exc}") from exc
        # SCAN may yield a key more than once
        return list(dict.fromkeys(scanned))

    async def multi_get(self, keys: Sequence[str]) -> list[tuple[str, str | None]]:
        if not keys:
            return []
        try:
            values = await self._client.mget(list(keys))
        except RedisError as exc:
            raise StorageError(f"redis mget failed: {exc}") from exc
        return list(zip(keys, values))

    async def ping(self) -> bool:
        try:
            pong = await self._client.ping()
        except RedisError as exc:
            raise StorageUnavailableError(f"redis ping failed: {exc}") from exc
        return pong is True

    async def close(self) -> None:
        try:
            await self._client.aclose()
        except RedisError:
            logger.warning("redis_store_close_failed", exc_info=True)
