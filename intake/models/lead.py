# intake/models/lead.py
from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    event,
    inspect,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from intake.db.base import Base, TimestampMixin


class ConsentSnapshotImmutableError(Exception):
    """Raised when a flush would modify a lead's consent snapshot."""


class Lead(TimestampMixin, Base):
    __tablename__ = "leads"

    id: Mapped[int] = mapped_column(primary_key=True)
    brand_id: Mapped[int] = mapped_column(ForeignKey("brands.id", ondelete="RESTRICT"), nullable=False, index=True)
    source: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, server_default="web_form")

    case_type_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("case_types.id", ondelete="RESTRICT"), nullable=True, index=True
    )
    # Injury and geo catalogs live in the content store; no foreign keys here.
    injury_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    geo_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    qualifiers: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONB, nullable=True)
    payload: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONB, nullable=True)

    phone: Mapped[str] = mapped_column(String(32), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    zip_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    # TCPA evidence captured at submission time; never modified afterwards.
    consent_snapshot: Mapped[Dict[str, Any]] = mapped_column(JSONB, nullable=False)

    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    fingerprint_data: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONB, nullable=True)
    page_context: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONB, nullable=True)
    session_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    status: Mapped[str] = mapped_column(String(32), nullable=False, server_default="new")
    form_provider: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    form_version: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    __table_args__ = (
        Index("idx_leads_phone_case_type_created", "phone", "case_type_id", "created_at"),
        Index("idx_leads_brand_created", "brand_id", "created_at"),
        Index("idx_leads_status", "status"),
        CheckConstraint("length(phone) > 0", name="phone_not_empty"),
        CheckConstraint("length(email) > 0", name="email_not_empty"),
    )


@event.listens_for(Lead, "before_update")
def reject_consent_snapshot_change(mapper, connection, target):
    history = inspect(target).attrs.consent_snapshot.history
    if history.has_changes():
        raise ConsentSnapshotImmutableError(f"consent_snapshot of lead {target.id} cannot be modified")
