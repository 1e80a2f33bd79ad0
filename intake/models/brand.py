# intake/models/brand.py
from __future__ import annotations

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from intake.db.base import Base, TimestampMixin


class Brand(TimestampMixin, Base):
    """A tenant site. Leads and case types are partitioned by brand."""

    __tablename__ = "brands"

    id: Mapped[int] = mapped_column(primary_key=True)
    slug: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    # Routing key; includes the port for non-production hosts (e.g. localhost:3002)
    domain: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true")
