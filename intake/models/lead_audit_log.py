# intake/models/lead_audit_log.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, func
from sqlalchemy.dialects.postgresql import INET, JSONB
from sqlalchemy.orm import Mapped, mapped_column

from intake.db.base import Base


class LeadAuditLog(Base):
    """Append-only event log for leads. Rows are never updated or deleted."""

    __tablename__ = "lead_audit_log"
    __table_args__ = (
        Index("idx_lead_audit_log_lead_created", "lead_id", "created_at"),
        Index("idx_lead_audit_log_event_type", "event_type"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    lead_id: Mapped[int] = mapped_column(ForeignKey("leads.id", ondelete="RESTRICT"), nullable=False)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    actor: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    # "metadata" is reserved on declarative classes
    event_metadata: Mapped[Optional[Dict[str, Any]]] = mapped_column("metadata", JSONB, nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(INET, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
