from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True)
class PoolEntry:
    id: str
    code: str
    created_at: datetime


@dataclass(slots=True)
class UserAssignment:
    user_id: str
    offer_id: str
    code: str
    assigned_at: datetime
    expires_at: datetime
    is_used: bool = False

    def is_expired(self, now_utc: datetime) -> bool:
        return now_utc >= self.expires_at


@dataclass(slots=True)
class LedgerEntry:
    id: str
    user_id: str
    offer_id: str
    code: str
    assigned_at: datetime
    expires_at: datetime
    is_used: bool = False

    def matches(self, *, user_id: str, offer_id: str) -> bool:
        return self.user_id == user_id and self.offer_id == offer_id


@dataclass(slots=True, frozen=True)
class CodeDatabaseStats:
    available_count: int = 0
    assigned_count: int = 0
    used_count: int = 0
