# intake/services/case_type_resolver.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession


@dataclass(frozen=True)
class ResolvedCaseType:
    id: int
    brand_id: int
    slug: str
    name: str


# brand_id is always part of the predicate; slugs are only unique per brand.
_SQL_CASE_TYPE_BY_SLUG = text(
    """
    SELECT
      ct.id AS id,
      ct.brand_id AS brand_id,
      ct.slug AS slug,
      ct.name AS name
    FROM case_types ct
    WHERE ct.brand_id = :brand_id
      AND ct.slug = :slug
      AND ct.status = 'active'
    LIMIT 1
"""
)


async def resolve_case_type(
    session: AsyncSession,
    *,
    brand_id: int,
    slug: Optional[str],
) -> Optional[ResolvedCaseType]:
    s = (slug or "").strip()
    if not s:
        return None

    res = await session.execute(_SQL_CASE_TYPE_BY_SLUG, {"brand_id": int(brand_id), "slug": s})
    row = res.first()
    if row is None:
        return None
    return ResolvedCaseType(
        id=int(row.id),
        brand_id=int(row.brand_id),
        slug=str(row.slug),
        name=str(row.name),
    )
