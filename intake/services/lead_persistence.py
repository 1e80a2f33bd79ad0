# intake/services/lead_persistence.py
"""
Single-row inserts for leads and their audit log.

Both tables are append-only: this module defines no update or delete
statements. Transaction boundaries belong to the caller.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import bindparam, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from intake.core.exceptions import LeadPersistenceError
from intake.core.logging import get_structlog_logger
from intake.services.consent import parse_ip
from intake.services.lead_record import AuditLogEntry, LeadRecord

logger = get_structlog_logger(__name__)


@dataclass(frozen=True)
class PersistedLead:
    id: int
    status: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class PersistedAuditLogEntry:
    id: int
    lead_id: int
    event_type: str
    created_at: datetime


_INSERT_LEAD = text(
    """
    INSERT INTO leads (
      brand_id, source, case_type_id, injury_id, geo_id,
      qualifiers, payload,
      phone, email, first_name, last_name, zip_code,
      consent_snapshot, user_agent, fingerprint_data, page_context, session_id,
      status, form_provider, form_version,
      created_at, updated_at
    )
    VALUES (
      :brand_id, :source, :case_type_id, :injury_id, :geo_id,
      :qualifiers, :payload,
      :phone, :email, :first_name, :last_name, :zip_code,
      :consent_snapshot, :user_agent, :fingerprint_data, :page_context, :session_id,
      :status, :form_provider, :form_version,
      :created_at, :created_at
    )
    RETURNING id, status, created_at, updated_at
"""
).bindparams(
    bindparam("qualifiers", type_=JSONB),
    bindparam("payload", type_=JSONB),
    bindparam("consent_snapshot", type_=JSONB),
    bindparam("fingerprint_data", type_=JSONB),
    bindparam("page_context", type_=JSONB),
)

_INSERT_AUDIT_LOG = text(
    """
    INSERT INTO lead_audit_log (lead_id, event_type, actor, metadata, ip_address, created_at)
    VALUES (:lead_id, :event_type, :actor, :metadata, CAST(CAST(:ip_address AS TEXT) AS INET), COALESCE(:created_at, CURRENT_TIMESTAMP))
    RETURNING id, lead_id, event_type, created_at
"""
).bindparams(bindparam("metadata", type_=JSONB))


async def create_lead(session: AsyncSession, record: LeadRecord) -> PersistedLead:
    params: Dict[str, Any] = asdict(record)
    try:
        res = await session.execute(_INSERT_LEAD, params)
        row = res.first()
    except SQLAlchemyError as e:
        logger.error(
            "lead_persistence.insert_lead_failed",
            brand_id=record.brand_id,
            case_type_id=record.case_type_id,
            error_type=type(e).__name__,
            error=str(e),
        )
        raise LeadPersistenceError(details={"error": str(e)}) from e

    if row is None:
        raise LeadPersistenceError("Lead insert returned no row")

    return PersistedLead(
        id=int(row.id),
        status=str(row.status),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


async def create_audit_log_entry(session: AsyncSession, entry: AuditLogEntry) -> PersistedAuditLogEntry:
    params = {
        "lead_id": int(entry.lead_id),
        "event_type": entry.event_type,
        "actor": entry.actor,
        "metadata": dict(entry.metadata),
        "ip_address": parse_ip(entry.ip_address),
        "created_at": entry.created_at,
    }
    try:
        res = await session.execute(_INSERT_AUDIT_LOG, params)
        row = res.first()
    except SQLAlchemyError as e:
        logger.error(
            "lead_persistence.insert_audit_failed",
            lead_id=entry.lead_id,
            event_type=entry.event_type,
            error_type=type(e).__name__,
            error=str(e),
        )
        raise LeadPersistenceError("Failed to write audit log entry", details={"error": str(e)}) from e

    if row is None:
        raise LeadPersistenceError("Audit log insert returned no row")

    return PersistedAuditLogEntry(
        id=int(row.id),
        lead_id=int(row.lead_id),
        event_type=str(row.event_type),
        created_at=row.created_at,
    )
