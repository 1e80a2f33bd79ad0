# intake/services/lead_intake.py
"""
Lead intake pipeline.

validate -> resolve brand -> resolve case type -> duplicate check ->
(audit duplicate) | (snapshot -> insert lead -> audit created) -> commit.

Validation happens before the session opens a connection. Every write of
one submission shares the caller's transaction and is committed only once
the pipeline succeeds. Failures after validation are logged in full and
re-raised as IntakeProcessingError so the caller never sees internal detail.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from intake.core.config import settings
from intake.core.exceptions import (
    BaseAPIException,
    BusinessRuleError,
    IntakeProcessingError,
    InvalidDomainError,
)
from intake.core.logging import get_structlog_logger
from intake.db.session import apply_statement_timeout
from intake.services.brand_resolver import resolve_brand
from intake.services.case_type_resolver import resolve_case_type
from intake.services.consent import build_consent_snapshot, extract_client_ip, isoformat_utc
from intake.services.duplicate_detection import acquire_duplicate_lock, find_recent_duplicate
from intake.services.lead_persistence import create_audit_log_entry, create_lead
from intake.services.lead_record import AuditLogEntry, build_lead_record
from intake.services.request_context import RequestContext

logger = get_structlog_logger(__name__)

EVENT_CREATED = "created"
EVENT_DUPLICATE_SUBMISSION = "duplicate_submission"
AUDIT_ACTOR = "system"

MESSAGE_CREATED = "Thank you! An attorney will contact you within 24 hours."
MESSAGE_DUPLICATE = "Your information has been received."

ERROR_CONTACT_REQUIRED = "Phone and email are required"
ERROR_CONSENT_REQUIRED = "TCPA consent is required"


@dataclass(frozen=True)
class IntakeOutcome:
    lead_id: int
    duplicate: bool
    message: str
    brand_id: int
    case_type_id: Optional[int] = None


def validate_submission(ctx: RequestContext) -> None:
    body = ctx.body
    contact = body.contact
    if contact is None or not contact.phone or not contact.email:
        raise BusinessRuleError(ERROR_CONTACT_REQUIRED, code="contact_required")
    if body.consent is None or not body.consent.checked:
        raise BusinessRuleError(ERROR_CONSENT_REQUIRED, code="consent_required")


async def process_lead_intake(
    session: AsyncSession,
    ctx: RequestContext,
    *,
    window_hours: Optional[int] = None,
    serialize_duplicates: Optional[bool] = None,
) -> IntakeOutcome:
    validate_submission(ctx)

    window_hours = window_hours or settings.duplicate_window_hours
    if serialize_duplicates is None:
        serialize_duplicates = settings.duplicate_lock_enabled

    log = logger.bind(host=ctx.host, case_slug=ctx.body.case_slug)

    try:
        await apply_statement_timeout(session)
        brand = await resolve_brand(session, ctx.host)
        if brand is None:
            log.warning("lead_intake.brand_not_found")
            raise InvalidDomainError()
        log = log.bind(brand=brand.slug, brand_id=brand.id)

        case_type_id: Optional[int] = None
        if ctx.body.case_slug:
            case_type = await resolve_case_type(session, brand_id=brand.id, slug=ctx.body.case_slug)
            if case_type is None:
                log.info("lead_intake.case_type_not_found")
            else:
                case_type_id = case_type.id
        log = log.bind(case_type_id=case_type_id)

        phone = ctx.body.contact.phone
        client_ip = extract_client_ip(ctx.headers)

        if case_type_id is not None:
            if serialize_duplicates:
                await acquire_duplicate_lock(session, phone=phone, case_type_id=case_type_id)
            duplicate = await find_recent_duplicate(
                session,
                phone=phone,
                case_type_id=case_type_id,
                now=ctx.now,
                window_hours=window_hours,
            )
            if duplicate is not None:
                await create_audit_log_entry(
                    session,
                    AuditLogEntry(
                        lead_id=duplicate.lead_id,
                        event_type=EVENT_DUPLICATE_SUBMISSION,
                        actor=AUDIT_ACTOR,
                        metadata={
                            "original_lead_id": duplicate.lead_id,
                            "duplicate_attempt_at": isoformat_utc(ctx.now),
                            "brand_id": brand.id,
                            "case_type_id": case_type_id,
                        },
                        ip_address=client_ip,
                        created_at=ctx.now,
                    ),
                )
                await session.commit()
                log.info("lead_intake.duplicate_submission", lead_id=duplicate.lead_id)
                return IntakeOutcome(
                    lead_id=duplicate.lead_id,
                    duplicate=True,
                    message=MESSAGE_DUPLICATE,
                    brand_id=brand.id,
                    case_type_id=case_type_id,
                )

        snapshot = build_consent_snapshot(ctx)
        record = build_lead_record(ctx, brand_id=brand.id, case_type_id=case_type_id, snapshot=snapshot)
        lead = await create_lead(session, record)

        consent_text_provided = bool(ctx.body.consent.text)
        await create_audit_log_entry(
            session,
            AuditLogEntry(
                lead_id=lead.id,
                event_type=EVENT_CREATED,
                actor=AUDIT_ACTOR,
                metadata={
                    "source": record.source,
                    "brand_id": brand.id,
                    "case_type_id": case_type_id,
                    "consent_text_provided": consent_text_provided,
                },
                ip_address=client_ip,
                created_at=ctx.now,
            ),
        )
        await session.commit()

        if not consent_text_provided:
            log.warning("lead_intake.consent_text_missing", lead_id=lead.id)
        # TODO: enqueue lead.id for buyer routing once the routing service exposes an intake queue
        log.info("lead_intake.created", lead_id=lead.id)

        return IntakeOutcome(
            lead_id=lead.id,
            duplicate=False,
            message=MESSAGE_CREATED,
            brand_id=brand.id,
            case_type_id=case_type_id,
        )

    except BaseAPIException as exc:
        await session.rollback()
        if exc.status_code >= 500:
            log.error("lead_intake.failed", code=exc.code, error=exc.message, details=exc.details)
            raise IntakeProcessingError() from exc
        raise

    except Exception as exc:
        log.error(
            "lead_intake.failed",
            error_type=type(exc).__name__,
            error=str(exc),
            exc_info=True,
        )
        await session.rollback()
        raise IntakeProcessingError() from exc
