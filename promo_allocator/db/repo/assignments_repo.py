from __future__ import annotations

from promo_allocator.codes.errors import PromoRecordCorruptError
from promo_allocator.codes.keys import CodeStorageKeys
from promo_allocator.codes.types import UserAssignment
from promo_allocator.db.records import dump_assignment, load_assignment
from promo_allocator.storage.base import KeyValueStore


class AssignmentsRepo:
    @staticmethod
    async def get(
        store: KeyValueStore,
        *,
        keys: CodeStorageKeys,
        user_id: str,
        offer_id: str,
    ) -> UserAssignment | None:
        key = keys.user_code(user_id, offer_id)
        assignment = load_assignment(await store.get(key))
        if assignment is None:
            return None
        if (assignment.user_id, assignment.offer_id) != (user_id, offer_id):
            raise PromoRecordCorruptError(f"assignment under {key} belongs to another pair")
        return assignment

    @staticmethod
    async def save(
        store: KeyValueStore,
        *,
        keys: CodeStorageKeys,
        assignment: UserAssignment,
    ) -> None:
        await store.set(
            keys.user_code(assignment.user_id, assignment.offer_id),
            dump_assignment(assignment),
        )

    @staticmethod
    async def list_for_user(
        store: KeyValueStore,
        *,
        keys: CodeStorageKeys,
        user_id: str,
    ) -> list[UserAssignment]:
        scope_prefix = keys.user_scope_prefix(user_id)
        user_keys = [key for key in await store.list_all_keys() if key.startswith(scope_prefix)]
        if not user_keys:
            return []

        assignments: list[UserAssignment] = []
        for _, raw in await store.multi_get(user_keys):
            assignment = load_assignment(raw)
            # "u1" prefix also covers "u1_x" keys; the stored owner decides
            if assignment is not None and assignment.user_id == user_id:
                assignments.append(assignment)
        return assignments

    @staticmethod
    async def remove_all(store: KeyValueStore, *, keys: CodeStorageKeys) -> int:
        user_keys = [key for key in await store.list_all_keys() if keys.is_user_code(key)]
        if user_keys:
            await store.remove_many(user_keys)
        return len(user_keys)
