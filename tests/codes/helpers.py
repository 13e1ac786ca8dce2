from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone

from promo_allocator.storage.errors import StorageError
from promo_allocator.storage.memory import InMemoryKeyValueStore

NOW_UTC = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FailingStore(InMemoryKeyValueStore):
    """In-memory store whose selected operations raise ``StorageError``."""

    def __init__(self, *, fail_on: Sequence[str] = ()) -> None:
        super().__init__()
        self.fail_on = set(fail_on)

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise StorageError(f"{operation} unavailable")

    async def get(self, key: str) -> str | None:
        self._maybe_fail("get")
        return await super().get(key)

    async def set(self, key: str, value: str) -> None:
        self._maybe_fail("set")
        await super().set(key, value)

    async def remove_many(self, keys: Sequence[str]) -> None:
        self._maybe_fail("remove_many")
        await super().remove_many(keys)

    async def list_all_keys(self) -> list[str]:
        self._maybe_fail("list_all_keys")
        return await super().list_all_keys()

    async def multi_get(self, keys: Sequence[str]) -> list[tuple[str, str | None]]:
        self._maybe_fail("multi_get")
        return await super().multi_get(keys)
