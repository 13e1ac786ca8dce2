from __future__ import annotations

import pytest

from promo_allocator.storage.base import KeyValueStore
from promo_allocator.storage.errors import StorageUnavailableError
from promo_allocator.storage.memory import InMemoryKeyValueStore


@pytest.mark.asyncio
async def test_memory_store_supports_the_full_contract() -> None:
    store = InMemoryKeyValueStore({"seed": "1"})
    assert isinstance(store, KeyValueStore)

    await store.set("a", "alpha")
    await store.set("b", "beta")

    assert await store.get("a") == "alpha"
    assert await store.get("missing") is None
    assert sorted(await store.list_all_keys()) == ["a", "b", "seed"]
    assert await store.multi_get(["b", "missing"]) == [("b", "beta"), ("missing", None)]

    await store.remove_many(["a", "seed", "missing"])
    assert await store.list_all_keys() == ["b"]


@pytest.mark.asyncio
async def test_memory_store_rejects_calls_after_close() -> None:
    store = InMemoryKeyValueStore()
    assert await store.ping() is True

    await store.close()

    assert await store.ping() is False
    with pytest.raises(StorageUnavailableError):
        await store.get("a")
