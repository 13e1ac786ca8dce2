from __future__ import annotations

from promo_allocator.core.config import Settings
from promo_allocator.storage.base import KeyValueStore
from promo_allocator.storage.memory import InMemoryKeyValueStore
from promo_allocator.storage.redis_store import RedisKeyValueStore

STORAGE_BACKENDS = ("memory", "redis")
REDIS_GLOB_SPECIAL = frozenset("\\*?[]")


def escape_redis_glob(value: str) -> str:
    return "".join(f"\\{char}" if char in REDIS_GLOB_SPECIAL else char for char in value)


def build_key_value_store(settings: Settings) -> KeyValueStore:
    backend = settings.storage_backend.strip().lower()
    if backend == "memory":
        return InMemoryKeyValueStore()
    if backend == "redis":
        return RedisKeyValueStore.from_url(
            settings.redis_url,
            key_pattern=f"{escape_redis_glob(settings.storage_namespace)}_*",
        )
    raise ValueError(f"unsupported storage backend: {settings.storage_backend!r}")
