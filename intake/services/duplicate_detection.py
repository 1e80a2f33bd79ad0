# intake/services/duplicate_detection.py
"""
Recent-duplicate lookup for lead submissions.

A submission is a duplicate when a lead with the same phone number and the
same case type was created inside the trailing window. This is a heuristic:
phone numbers are compared verbatim, and email-only or cross-case-type
matches are never considered.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

DEFAULT_WINDOW_HOURS = 24


class DuplicateDetectionError(Exception):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


@dataclass(frozen=True)
class DuplicateMatch:
    lead_id: int
    created_at: datetime


_SQL_RECENT_DUPLICATE = text(
    """
    SELECT
      l.id AS lead_id,
      l.created_at AS created_at
    FROM leads l
    WHERE l.phone = :phone
      AND l.case_type_id = :case_type_id
      AND l.created_at >= :since
    ORDER BY l.created_at DESC, l.id DESC
    LIMIT 1
"""
)

# Transaction-scoped; released on commit or rollback.
_SQL_DUPLICATE_LOCK = text("SELECT pg_advisory_xact_lock(:case_type_id, hashtext(:phone))")


def window_start(now: datetime, window_hours: int) -> datetime:
    window_hours = int(window_hours)
    if window_hours <= 0 or window_hours > 24 * 365:
        raise DuplicateDetectionError("invalid_window_hours", "window_hours must be within (0, 8760]")
    return now - timedelta(hours=window_hours)


async def acquire_duplicate_lock(session: AsyncSession, *, phone: str, case_type_id: int) -> None:
    """Serialize check-then-insert for one (case type, phone) pair until the transaction ends."""
    await session.execute(_SQL_DUPLICATE_LOCK, {"case_type_id": int(case_type_id), "phone": phone})


async def find_recent_duplicate(
    session: AsyncSession,
    *,
    phone: str,
    case_type_id: int,
    now: datetime,
    window_hours: int = DEFAULT_WINDOW_HOURS,
) -> Optional[DuplicateMatch]:
    since = window_start(now, window_hours)
    res = await session.execute(
        _SQL_RECENT_DUPLICATE,
        {"phone": phone, "case_type_id": int(case_type_id), "since": since},
    )
    row = res.first()
    if row is None:
        return None
    return DuplicateMatch(lead_id=int(row.lead_id), created_at=row.created_at)
