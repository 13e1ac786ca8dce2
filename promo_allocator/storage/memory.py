from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence

from promo_allocator.storage.errors import StorageUnavailableError


class InMemoryKeyValueStore:
    """Process-local store backed by a dict.

    Every call yields to the event loop before touching the data, so
    concurrent callers interleave the same way they would against a
    networked backend.
    """

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self._closed = False

    async def _checkpoint(self) -> None:
        await asyncio.sleep(0)
        if self._closed:
            raise StorageUnavailableError("store is closed")

    async def get(self, key: str) -> str | None:
        await self._checkpoint()
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        await self._checkpoint()
        self._data[key] = value

    async def remove_many(self, keys: Sequence[str]) -> None:
        await self._checkpoint()
        for key in keys:
            self._data.pop(key, None)

    async def list_all_keys(self) -> list[str]:
        await self._checkpoint()
        return list(self._data)

    async def multi_get(self, keys: Sequence[str]) -> list[tuple[str, str | None]]:
        await self._checkpoint()
        return [(key, self._data.get(key)) for key in keys]

    async def ping(self) -> bool:
        return not self._closed

    async def close(self) -> None:
        self._closed = True

    def snapshot(self) -> dict[str, str]:
        return dict(self._data)
