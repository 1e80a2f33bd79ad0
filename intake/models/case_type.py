# intake/models/case_type.py
from __future__ import annotations

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from intake.db.base import Base, TimestampMixin

CASE_TYPE_STATUSES = ("active", "paused", "archived")


class CaseType(TimestampMixin, Base):
    __tablename__ = "case_types"
    __table_args__ = (
        UniqueConstraint("brand_id", "slug", name="uq_case_types_brand_id_slug"),
        CheckConstraint("status IN ('active','paused','archived')", name="status_valid"),
        Index("idx_case_types_brand_slug_status", "brand_id", "slug", "status"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    brand_id: Mapped[int] = mapped_column(ForeignKey("brands.id", ondelete="RESTRICT"), nullable=False, index=True)

    slug: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, server_default="other")

    pillar_slug: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state_slug: Mapped[str | None] = mapped_column(String(100), nullable=True)
    city_slug: Mapped[str | None] = mapped_column(String(100), nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, server_default="active")
