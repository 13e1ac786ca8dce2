from __future__ import annotations

from promo_allocator.codes.keys import CodeStorageKeys
from promo_allocator.codes.types import LedgerEntry
from promo_allocator.db.records import dump_ledger, load_ledger
from promo_allocator.storage.base import KeyValueStore


class LedgerRepo:
    @staticmethod
    async def list_entries(store: KeyValueStore, *, keys: CodeStorageKeys) -> list[LedgerEntry]:
        return load_ledger(await store.get(keys.assigned_codes))

    @staticmethod
    async def replace_entries(
        store: KeyValueStore,
        *,
        keys: CodeStorageKeys,
        entries: list[LedgerEntry],
    ) -> None:
        await store.set(keys.assigned_codes, dump_ledger(entries))

    @staticmethod
    async def append(
        store: KeyValueStore,
        *,
        keys: CodeStorageKeys,
        entry: LedgerEntry,
    ) -> list[LedgerEntry]:
        entries = await LedgerRepo.list_entries(store, keys=keys)
        entries.append(entry)
        await LedgerRepo.replace_entries(store, keys=keys, entries=entries)
        return entries

    @staticmethod
    async def mark_used(
        store: KeyValueStore,
        *,
        keys: CodeStorageKeys,
        user_id: str,
        offer_id: str,
    ) -> int:
        entries = await LedgerRepo.list_entries(store, keys=keys)
        updated = 0
        for entry in entries:
            if entry.matches(user_id=user_id, offer_id=offer_id) and not entry.is_used:
                entry.is_used = True
                updated += 1
        if updated:
            await LedgerRepo.replace_entries(store, keys=keys, entries=entries)
        return updated
