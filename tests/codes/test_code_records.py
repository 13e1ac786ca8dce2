from __future__ import annotations

import json

import pytest

from promo_allocator.codes.keys import CodeStorageKeys
from tests.codes.helpers import NOW_UTC

KEYS = CodeStorageKeys()


@pytest.mark.asyncio
async def test_records_are_stored_as_camel_case_json(manager, store) -> None:
    await manager.initialize_code_database(["A1", "B2"], now_utc=NOW_UTC)
    await manager.assign_promo_code_to_user("u1", "o1", now_utc=NOW_UTC)

    snapshot = store.snapshot()
    pool = json.loads(snapshot["@digitox_available_codes"])
    assignment = json.loads(snapshot["@digitox_user_codes_u1_o1"])
    [ledger_entry] = json.loads(snapshot["@digitox_assigned_codes"])

    assert set(pool[0]) == {"id", "code", "createdAt"}
    assert pool[0]["code"] == "B2"
    assert pool[0]["createdAt"] == "2026-03-01T12:00:00Z"
    assert assignment == {
        "userId": "u1",
        "offerId": "o1",
        "code": "A1",
        "assignedAt": "2026-03-01T12:00:00Z",
        "expiresAt": "2026-03-31T12:00:00Z",
        "isUsed": False,
    }
    assert {key: ledger_entry[key] for key in assignment} == assignment
    assert ledger_entry["id"].startswith("code_0_")


@pytest.mark.asyncio
async def test_reads_records_written_with_millisecond_timestamps(manager, store) -> None:
    await store.set(
        KEYS.user_code("u1", "o1"),
        json.dumps(
            {
                "userId": "u1",
                "offerId": "o1",
                "code": "DIGI34",
                "assignedAt": "2025-07-01T10:00:00.123Z",
                "expiresAt": "2025-07-31T10:00:00.123Z",
                "isUsed": False,
            }
        ),
    )

    assignment = await manager.get_user_promo_code_for_offer("u1", "o1")

    assert assignment is not None
    assert assignment.code == "DIGI34"
    assert assignment.assigned_at.microsecond == 123000


@pytest.mark.asyncio
async def test_corrupt_pool_record_is_reported_as_empty_and_blocks_assignment(
    manager,
    store,
) -> None:
    await store.set(KEYS.available_codes, "{not json")

    assert await manager.get_available_codes() == []
    assert await manager.assign_promo_code_to_user("u1", "o1") is None
    assert store.snapshot()[KEYS.available_codes] == "{not json"


@pytest.mark.asyncio
async def test_malformed_ledger_entry_fails_stats_read(manager, store) -> None:
    await store.set(KEYS.assigned_codes, json.dumps([{"id": "x"}]))

    stats = await manager.get_code_database_stats()

    assert (stats.available_count, stats.assigned_count, stats.used_count) == (0, 0, 0)


def test_user_code_keys_escape_separator_inside_ids() -> None:
    assert KEYS.user_code("u1", "o1") == "@digitox_user_codes_u1_o1"
    assert KEYS.user_code("a", "b_c") == "@digitox_user_codes_a_b%5Fc"
    assert KEYS.user_code("a_b", "c") == "@digitox_user_codes_a%5Fb_c"
    assert KEYS.user_code("100%", "o1") == "@digitox_user_codes_100%25_o1"
    assert KEYS.user_code("a%5Fb", "c") != KEYS.user_code("a_b", "c")
    assert not KEYS.user_code("u1_x", "o1").startswith(KEYS.user_scope_prefix("u1"))
