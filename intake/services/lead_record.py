# intake/services/lead_record.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from intake.services.consent import (
    DEFAULT_FORM_PROVIDER,
    DEFAULT_FORM_VERSION,
    ConsentSnapshot,
    resolve_page_url,
)
from intake.services.request_context import RequestContext

DEFAULT_LEAD_SOURCE = "web_form"
DEFAULT_PAGE_TYPE = "T1"
LEAD_STATUS_NEW = "new"


@dataclass(frozen=True)
class LeadRecord:
    brand_id: int
    case_type_id: Optional[int]
    phone: str
    email: str
    consent_snapshot: Dict[str, Any]
    created_at: datetime
    source: str = DEFAULT_LEAD_SOURCE
    injury_id: Optional[int] = None
    geo_id: Optional[int] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    zip_code: Optional[str] = None
    qualifiers: Dict[str, Any] = field(default_factory=dict)
    payload: Dict[str, Any] = field(default_factory=dict)
    user_agent: Optional[str] = None
    fingerprint_data: Dict[str, Any] = field(default_factory=dict)
    page_context: Dict[str, Any] = field(default_factory=dict)
    session_id: Optional[str] = None
    status: str = LEAD_STATUS_NEW
    form_provider: str = DEFAULT_FORM_PROVIDER
    form_version: str = DEFAULT_FORM_VERSION


@dataclass(frozen=True)
class AuditLogEntry:
    lead_id: int
    event_type: str
    actor: str = "system"
    metadata: Dict[str, Any] = field(default_factory=dict)
    ip_address: Optional[str] = None
    created_at: Optional[datetime] = None


def _page_path(ctx: RequestContext, url: str) -> str:
    if ctx.body.page_path:
        return ctx.body.page_path
    if url:
        try:
            path = urlparse(url).path
        except ValueError:
            path = ""
        if path:
            return path
    return "/"


def build_page_context(ctx: RequestContext) -> Dict[str, Any]:
    body = ctx.body
    client = body.page_context or {}
    url = resolve_page_url(ctx)

    return {
        "url": url,
        "path": _page_path(ctx, url),
        "pillarSlug": client.get("pillarSlug") or body.case_slug or None,
        "injurySlug": client.get("injurySlug") or None,
        "stateSlug": client.get("stateSlug") or None,
        "citySlug": client.get("citySlug") or None,
        "pageType": client.get("pageType") or DEFAULT_PAGE_TYPE,
        "pageTitle": client.get("pageTitle") or "",
        "scrollDepth": client.get("scrollDepth") or 0,
        "timeOnPage": client.get("timeOnPage") or 0,
        "clicksBeforeSubmit": client.get("clicksBeforeSubmit") or 0,
        "formProvider": body.form_provider or DEFAULT_FORM_PROVIDER,
        "formVersion": body.form_version or DEFAULT_FORM_VERSION,
    }


def build_payload(ctx: RequestContext) -> Dict[str, Any]:
    body = ctx.body
    contact = body.contact.model_dump(by_alias=True, exclude_none=True) if body.contact else {}
    return {
        "contact": contact,
        "utm": body.utm or {},
        "referrer": ctx.header("referer"),
        "landingPage": body.landing_page or body.page_url,
        "sessionId": body.session_id,
    }


def build_lead_record(
    ctx: RequestContext,
    *,
    brand_id: int,
    case_type_id: Optional[int],
    snapshot: ConsentSnapshot,
) -> LeadRecord:
    body = ctx.body
    contact = body.contact
    return LeadRecord(
        brand_id=brand_id,
        case_type_id=case_type_id,
        source=body.source or DEFAULT_LEAD_SOURCE,
        phone=contact.phone,
        email=contact.email,
        first_name=contact.first_name,
        last_name=contact.last_name,
        zip_code=contact.zip_code,
        qualifiers=body.qualifiers or {},
        payload=build_payload(ctx),
        consent_snapshot=snapshot.as_record(),
        user_agent=ctx.headers.get("user-agent"),
        fingerprint_data=body.fingerprint or {},
        page_context=build_page_context(ctx),
        session_id=body.session_id,
        form_provider=body.form_provider or DEFAULT_FORM_PROVIDER,
        form_version=body.form_version or DEFAULT_FORM_VERSION,
        created_at=ctx.now,
    )
