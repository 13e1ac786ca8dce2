from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from promo_allocator.codes.types import CodeDatabaseStats, LedgerEntry, PoolEntry, UserAssignment
from promo_allocator.services.promo_codes import parse_promo_code_lines


class CodeBatchRequest(BaseModel):
    codes: list[str] = Field(default_factory=list, max_length=50_000)
    codes_text: str | None = Field(default=None, max_length=1_000_000)

    def resolve_codes(self) -> list[str]:
        resolved = [code.strip() for code in self.codes if code.strip()]
        if self.codes_text:
            resolved.extend(parse_promo_code_lines(self.codes_text))
        return resolved


class AssignRequest(BaseModel):
    user_id: str = Field(min_length=1, max_length=128)
    offer_id: str = Field(min_length=1, max_length=128)
    expires_at: datetime | None = None


class MarkUsedRequest(BaseModel):
    user_id: str = Field(min_length=1, max_length=128)
    offer_id: str = Field(min_length=1, max_length=128)


class StatsResponse(BaseModel):
    available_count: int = Field(ge=0)
    assigned_count: int = Field(ge=0)
    used_count: int = Field(ge=0)


class OperationResponse(BaseModel):
    success: bool
    error: str | None = None
    stats: StatsResponse | None = None


class PoolEntryResponse(BaseModel):
    id: str
    code: str
    created_at: datetime


class PoolResponse(BaseModel):
    count: int = Field(ge=0)
    codes: list[PoolEntryResponse]


class AssignmentResponse(BaseModel):
    user_id: str
    offer_id: str
    code: str
    assigned_at: datetime
    expires_at: datetime
    is_used: bool
    is_expired: bool


class UserAssignmentsResponse(BaseModel):
    user_id: str
    assignments: list[AssignmentResponse]


class LedgerEntryResponse(BaseModel):
    id: str
    user_id: str
    offer_id: str
    code: str
    assigned_at: datetime
    expires_at: datetime
    is_used: bool


class LedgerResponse(BaseModel):
    count: int = Field(ge=0)
    entries: list[LedgerEntryResponse]


def stats_as_response(stats: CodeDatabaseStats) -> StatsResponse:
    return StatsResponse(
        available_count=stats.available_count,
        assigned_count=stats.assigned_count,
        used_count=stats.used_count,
    )


def pool_entry_as_response(entry: PoolEntry) -> PoolEntryResponse:
    return PoolEntryResponse(id=entry.id, code=entry.code, created_at=entry.created_at)


def assignment_as_response(assignment: UserAssignment, *, now_utc: datetime) -> AssignmentResponse:
    return AssignmentResponse(
        user_id=assignment.user_id,
        offer_id=assignment.offer_id,
        code=assignment.code,
        assigned_at=assignment.assigned_at,
        expires_at=assignment.expires_at,
        is_used=assignment.is_used,
        is_expired=assignment.is_expired(now_utc),
    )


def ledger_entry_as_response(entry: LedgerEntry) -> LedgerEntryResponse:
    return LedgerEntryResponse(
        id=entry.id,
        user_id=entry.user_id,
        offer_id=entry.offer_id,
        code=entry.code,
        assigned_at=entry.assigned_at,
        expires_at=entry.expires_at,
        is_used=entry.is_used,
    )
