from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """Flat async string store the promo code ledger is persisted in.

    Implementations give no transactions and no locking: every call is an
    independent read or write, and calls issued by concurrent tasks may
    interleave in any order. Failures surface as ``StorageError``.
    """

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def remove_many(self, keys: Sequence[str]) -> None: ...

    async def list_all_keys(self) -> list[str]: ...

    async def multi_get(self, keys: Sequence[str]) -> list[tuple[str, str | None]]: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...
