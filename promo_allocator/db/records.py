from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from promo_allocator.codes.errors import PromoRecordCorruptError
from promo_allocator.codes.types import LedgerEntry, PoolEntry, UserAssignment


def json_dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _load_json(raw: str, *, kind: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise PromoRecordCorruptError(f"{kind} record is not valid JSON") from exc


def _load_list(raw: str | None, *, kind: str) -> list[dict[str, Any]]:
    if raw is None:
        return []
    payload = _load_json(raw, kind=kind)
    if not isinstance(payload, list):
        raise PromoRecordCorruptError(f"{kind} record must be a JSON array")
    return payload


def pool_entry_to_record(entry: PoolEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "code": entry.code,
        "createdAt": format_timestamp(entry.created_at),
    }


def pool_entry_from_record(record: dict[str, Any]) -> PoolEntry:
    try:
        return PoolEntry(
            id=str(record["id"]),
            code=str(record["code"]),
            created_at=parse_timestamp(record["createdAt"]),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise PromoRecordCorruptError("malformed pool entry") from exc


def assignment_to_record(assignment: UserAssignment) -> dict[str, Any]:
    return {
        "userId": assignment.user_id,
        "offerId": assignment.offer_id,
        "code": assignment.code,
        "assignedAt": format_timestamp(assignment.assigned_at),
        "expiresAt": format_timestamp(assignment.expires_at),
        "isUsed": assignment.is_used,
    }


def assignment_from_record(record: dict[str, Any]) -> UserAssignment:
    try:
        return UserAssignment(
            user_id=str(record["userId"]),
            offer_id=str(record["offerId"]),
            code=str(record["code"]),
            assigned_at=parse_timestamp(record["assignedAt"]),
            expires_at=parse_timestamp(record["expiresAt"]),
            is_used=bool(record.get("isUsed", False)),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise PromoRecordCorruptError("malformed user assignment") from exc


def ledger_entry_to_record(entry: LedgerEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "userId": entry.user_id,
        "code": entry.code,
        "offerId": entry.offer_id,
        "assignedAt": format_timestamp(entry.assigned_at),
        "expiresAt": format_timestamp(entry.expires_at),
        "isUsed": entry.is_used,
    }


def ledger_entry_from_record(record: dict[str, Any]) -> LedgerEntry:
    try:
        return LedgerEntry(
            id=str(record["id"]),
            user_id=str(record["userId"]),
            offer_id=str(record["offerId"]),
            code=str(record["code"]),
            assigned_at=parse_timestamp(record["assignedAt"]),
            expires_at=parse_timestamp(record["expiresAt"]),
            is_used=bool(record.get("isUsed", False)),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise PromoRecordCorruptError("malformed ledger entry") from exc


def dump_pool(entries: list[PoolEntry]) -> str:
    return json_dumps([pool_entry_to_record(entry) for entry in entries])


def load_pool(raw: str | None) -> list[PoolEntry]:
    return [pool_entry_from_record(record) for record in _load_list(raw, kind="pool")]


def dump_ledger(entries: list[LedgerEntry]) -> str:
    return json_dumps([ledger_entry_to_record(entry) for entry in entries])


def load_ledger(raw: str | None) -> list[LedgerEntry]:
    return [ledger_entry_from_record(record) for record in _load_list(raw, kind="ledger")]


def dump_assignment(assignment: UserAssignment) -> str:
    return json_dumps(assignment_to_record(assignment))


def load_assignment(raw: str | None) -> UserAssignment | None:
    if raw is None:
        return None
    payload = _load_json(raw, kind="assignment")
    if not isinstance(payload, dict):
        raise PromoRecordCorruptError("assignment record must be a JSON object")
    return assignment_from_record(payload)
