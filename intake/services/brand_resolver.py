# intake/services/brand_resolver.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession


@dataclass(frozen=True)
class ResolvedBrand:
    id: int
    slug: str
    domain: str
    name: str


def normalize_host(host: Optional[str]) -> Optional[str]:
    """Lower-case and trim the Host header. The port is kept: brands may differ only by port."""
    if not host:
        return None
    h = host.strip().lower()
    return h or None


_SQL_BRAND_BY_DOMAIN = text(
    """
    SELECT
      b.id AS id,
      b.slug AS slug,
      b.domain AS domain,
      b.name AS name
    FROM brands b
    WHERE b.domain = :domain
      AND b.active = TRUE
    LIMIT 1
"""
)


def _row_to_brand(row: Any) -> ResolvedBrand:
    return ResolvedBrand(
        id=int(row.id),
        slug=str(row.slug),
        domain=str(row.domain),
        name=str(row.name),
    )


async def resolve_brand(session: AsyncSession, host: Optional[str]) -> Optional[ResolvedBrand]:
    domain = normalize_host(host)
    if domain is None:
        return None

    res = await session.execute(_SQL_BRAND_BY_DOMAIN, {"domain": domain})
    row = res.first()
    if row is None:
        return None
    return _row_to_brand(row)
