from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import structlog

from promo_allocator.codes.constants import BUILTIN_PROMO_CODES, DEFAULT_CODE_VALIDITY
from promo_allocator.codes.errors import (
    PromoAssignmentNotFoundError,
    PromoCodeError,
    PromoInvalidExpiryError,
    PromoPoolExhaustedError,
)
from promo_allocator.codes.keys import CodeStorageKeys
from promo_allocator.codes.types import CodeDatabaseStats, LedgerEntry, PoolEntry, UserAssignment
from promo_allocator.db.repo import AssignmentsRepo, LedgerRepo, PoolRepo
from promo_allocator.services.promo_codes import normalize_promo_code_batch
from promo_allocator.storage.base import KeyValueStore
from promo_allocator.storage.errors import StorageError

logger = structlog.get_logger(__name__)

OPERATION_ERRORS = (StorageError, PromoCodeError)


def build_pool_entry_id(*, position: int, now_utc: datetime) -> str:
    epoch_ms = int(now_utc.timestamp() * 1000)
    return f"code_{position}_{epoch_ms}_{uuid4().hex[:8]}"


def build_pool_entries(
    codes: Sequence[str],
    *,
    offset: int,
    now_utc: datetime,
) -> list[PoolEntry]:
    return [
        PoolEntry(
            id=build_pool_entry_id(position=offset + index, now_utc=now_utc),
            code=code,
            created_at=now_utc,
        )
        for index, code in enumerate(codes)
    ]


class PromoCodeManager:
    """Hands out unique promo codes from a pool kept in a flat key-value store.

    State lives in three places: the pool of unassigned codes, one
    assignment record per (user, offer) and the append-only ledger of every
    assignment. The store has no transactions, so each mutating operation
    holds ``_write_lock`` from its first read to its last write; this keeps
    the three views consistent as long as this manager is the only writer.

    Allocation is FIFO: the oldest-ingested code in the pool goes first.

    Public operations never raise for expected conditions or backend
    failures. Exhaustion, unknown assignments and storage errors all come
    back as ``None``, ``False`` or an empty collection, and are logged.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        keys: CodeStorageKeys | None = None,
        default_validity: timedelta = DEFAULT_CODE_VALIDITY,
        builtin_codes: Iterable[str] = BUILTIN_PROMO_CODES,
    ) -> None:
        self._store = store
        self._keys = keys or CodeStorageKeys()
        self._default_validity = default_validity
        self._builtin_codes = tuple(builtin_codes)
        self._write_lock = asyncio.Lock()

    async def _initialize(self, codes: Iterable[str], *, now_utc: datetime) -> int:
        ledger = await LedgerRepo.list_entries(self._store, keys=self._keys)
        consumed = {entry.code for entry in ledger}
        normalized = [code for code in normalize_promo_code_batch(codes) if code not in consumed]
        entries = build_pool_entries(normalized, offset=0, now_utc=now_utc)
        await PoolRepo.replace_entries(self._store, keys=self._keys, entries=entries)
        return len(entries)

    async def initialize_code_database(
        self,
        codes: Iterable[str],
        *,
        now_utc: datetime | None = None,
    ) -> bool:
        """Replace the pool with ``codes``.

        Blank and repeated values are dropped, as are codes the ledger shows
        were already handed out.
        """
        now_utc = now_utc or datetime.now(timezone.utc)
        try:
            async with self._write_lock:
                codes_total = await self._initialize(codes, now_utc=now_utc)
        except OPERATION_ERRORS as exc:
            logger.error("promo_code_database_initialize_failed", error=str(exc))
            return False

        logger.info("promo_code_database_initialized", codes_total=codes_total)
        return True

    async def add_codes_to_database(
        self,
        codes: Iterable[str],
        *,
        now_utc: datetime | None = None,
    ) -> bool:
        now_utc = now_utc or datetime.now(timezone.utc)
        try:
            async with self._write_lock:
                pool = await PoolRepo.list_entries(self._store, keys=self._keys)
                ledger = await LedgerRepo.list_entries(self._store, keys=self._keys)
                taken = {entry.code for entry in pool} | {entry.code for entry in ledger}
                fresh = [code for code in normalize_promo_code_batch(codes) if code not in taken]
                pool.extend(build_pool_entries(fresh, offset=len(pool), now_utc=now_utc))
                await PoolRepo.replace_entries(self._store, keys=self._keys, entries=pool)
        except OPERATION_ERRORS as exc:
            logger.error("promo_codes_add_failed", error=str(exc))
            return False

        logger.info("promo_codes_added", codes_added=len(fresh), pool_size=len(pool))
        return True

    async def get_available_codes(self) -> list[PoolEntry]:
        try:
            return await PoolRepo.list_entries(self._store, keys=self._keys)
        except OPERATION_ERRORS as exc:
            logger.error("promo_available_codes_read_failed", error=str(exc))
            return []

    async def get_available_codes_count(self) -> int:
        return len(await self.get_available_codes())

    async def auto_initialize_your_codes(self, *, now_utc: datetime | None = None) -> bool:
        now_utc = now_utc or datetime.now(timezone.utc)
        try:
            async with self._write_lock:
                pool = await PoolRepo.list_entries(self._store, keys=self._keys)
                ledger = await LedgerRepo.list_entries(self._store, keys=self._keys)
                if pool or ledger:
                    logger.info(
                        "promo_codes_already_initialized",
                        available_count=len(pool),
                        assigned_count=len(ledger),
                    )
                    return True

                codes_total = await self._initialize(self._builtin_codes, now_utc=now_utc)
        except OPERATION_ERRORS as exc:
            logger.error("promo_codes_auto_initialize_failed", error=str(exc))
            return False

        logger.info("promo_codes_auto_initialized", codes_total=codes_total)
        return True

    async def get_user_promo_code_for_offer(
        self,
        user_id: str,
        offer_id: str,
    ) -> UserAssignment | None:
        try:
            return await AssignmentsRepo.get(
                self._store,
                keys=self._keys,
                user_id=user_id,
                offer_id=offer_id,
            )
        except OPERATION_ERRORS as exc:
            logger.error(
                "promo_user_code_read_failed",
                user_id=user_id,
                offer_id=offer_id,
                error=str(exc),
            )
            return None

    async def get_all_user_promo_codes(self, user_id: str) -> list[UserAssignment]:
        try:
            return await AssignmentsRepo.list_for_user(
                self._store,
                keys=self._keys,
                user_id=user_id,
            )
        except OPERATION_ERRORS as exc:
            logger.error("promo_user_codes_read_failed", user_id=user_id, error=str(exc))
            return []

    async def _assign(
        self,
        *,
        user_id: str,
        offer_id: str,
        expires_at: datetime | None,
        now_utc: datetime,
    ) -> UserAssignment:
        existing = await AssignmentsRepo.get(
            self._store,
            keys=self._keys,
            user_id=user_id,
            offer_id=offer_id,
        )
        if existing is not None:
            logger.info(
                "promo_code_assignment_replayed",
                user_id=user_id,
                offer_id=offer_id,
                code=existing.code,
            )
            return existing

        resolved_expires_at = expires_at or now_utc + self._default_validity
        if resolved_expires_at < now_utc:
            raise PromoInvalidExpiryError(f"expires_at {resolved_expires_at} precedes {now_utc}")

        pool = await PoolRepo.list_entries(self._store, keys=self._keys)
        if not pool:
            raise PromoPoolExhaustedError

        selected, remaining = pool[0], pool[1:]
        await PoolRepo.replace_entries(self._store, keys=self._keys, entries=remaining)

        assignment = UserAssignment(
            user_id=user_id,
            offer_id=offer_id,
            code=selected.code,
            assigned_at=now_utc,
            expires_at=resolved_expires_at,
            is_used=False,
        )
        await AssignmentsRepo.save(self._store, keys=self._keys, assignment=assignment)
        await LedgerRepo.append(
            self._store,
            keys=self._keys,
            entry=LedgerEntry(
                id=selected.id,
                user_id=user_id,
                offer_id=offer_id,
                code=selected.code,
                assigned_at=assignment.assigned_at,
                expires_at=assignment.expires_at,
                is_used=False,
            ),
        )

        logger.info(
            "promo_code_assigned",
            user_id=user_id,
            offer_id=offer_id,
            code=selected.code,
            pool_remaining=len(remaining),
        )
        return assignment

    async def assign_promo_code_to_user(
        self,
        user_id: str,
        offer_id: str,
        expires_at: datetime | None = None,
        *,
        now_utc: datetime | None = None,
    ) -> UserAssignment | None:
        """Return the pair's code, taking the head of the pool on first request."""
        now_utc = now_utc or datetime.now(timezone.utc)
        if expires_at is not None and expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        try:
            async with self._write_lock:
                return await self._assign(
                    user_id=user_id,
                    offer_id=offer_id,
                    expires_at=expires_at,
                    now_utc=now_utc,
                )
        except PromoPoolExhaustedError:
            logger.warning("promo_pool_exhausted", user_id=user_id, offer_id=offer_id)
            return None
        except OPERATION_ERRORS as exc:
            logger.error(
                "promo_code_assign_failed",
                user_id=user_id,
                offer_id=offer_id,
                error=str(exc),
            )
            return None

    async def _mark_used(self, *, user_id: str, offer_id: str) -> UserAssignment:
        assignment = await AssignmentsRepo.get(
            self._store,
            keys=self._keys,
            user_id=user_id,
            offer_id=offer_id,
        )
        if assignment is None:
            raise PromoAssignmentNotFoundError

        assignment.is_used = True
        await AssignmentsRepo.save(self._store, keys=self._keys, assignment=assignment)
        await LedgerRepo.mark_used(
            self._store,
            keys=self._keys,
            user_id=user_id,
            offer_id=offer_id,
        )
        return assignment

    async def mark_user_promo_code_as_used(self, user_id: str, offer_id: str) -> bool:
        try:
            async with self._write_lock:
                assignment = await self._mark_used(user_id=user_id, offer_id=offer_id)
        except PromoAssignmentNotFoundError:
            logger.info("promo_code_mark_used_not_found", user_id=user_id, offer_id=offer_id)
            return False
        except OPERATION_ERRORS as exc:
            logger.error(
                "promo_code_mark_used_failed",
                user_id=user_id,
                offer_id=offer_id,
                error=str(exc),
            )
            return False

        logger.info(
            "promo_code_marked_used",
            user_id=user_id,
            offer_id=offer_id,
            code=assignment.code,
        )
        return True

    async def get_assigned_codes(self) -> list[LedgerEntry]:
        try:
            return await LedgerRepo.list_entries(self._store, keys=self._keys)
        except OPERATION_ERRORS as exc:
            logger.error("promo_assigned_codes_read_failed", error=str(exc))
            return []

    async def get_code_database_stats(self) -> CodeDatabaseStats:
        try:
            pool = await PoolRepo.list_entries(self._store, keys=self._keys)
            ledger = await LedgerRepo.list_entries(self._store, keys=self._keys)
        except OPERATION_ERRORS as exc:
            logger.error("promo_code_stats_read_failed", error=str(exc))
            return CodeDatabaseStats()

        return CodeDatabaseStats(
            available_count=len(pool),
            assigned_count=len(ledger),
            used_count=sum(1 for entry in ledger if entry.is_used),
        )

    async def clear_all_code_data(self) -> bool:
        try:
            async with self._write_lock:
                await self._store.remove_many(
                    [self._keys.available_codes, self._keys.assigned_codes]
                )
                removed_assignments = await AssignmentsRepo.remove_all(
                    self._store,
                    keys=self._keys,
                )
        except OPERATION_ERRORS as exc:
            logger.error("promo_code_data_clear_failed", error=str(exc))
            return False

        logger.warning("promo_code_data_cleared", removed_assignments=removed_assignments)
        return True
