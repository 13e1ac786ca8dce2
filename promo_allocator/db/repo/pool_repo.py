from __future__ import annotations

from promo_allocator.codes.keys import CodeStorageKeys
from promo_allocator.codes.types import PoolEntry
from promo_allocator.db.records import dump_pool, load_pool
from promo_allocator.storage.base import KeyValueStore


class PoolRepo:
    @staticmethod
    async def list_entries(store: KeyValueStore, *, keys: CodeStorageKeys) -> list[PoolEntry]:
        return load_pool(await store.get(keys.available_codes))

    @staticmethod
    async def replace_entries(
        store: KeyValueStore,
        *,
        keys: CodeStorageKeys,
        entries: list[PoolEntry],
    ) -> None:
        await store.set(keys.available_codes, dump_pool(entries))
