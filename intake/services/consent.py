# intake/services/consent.py
"""
TCPA consent snapshot construction.

The snapshot is the evidentiary record of what the claimant saw and agreed
to. IP address and timestamp come from the server side of the request only;
nothing in the body can override them.
"""
from __future__ import annotations

import ipaddress
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from intake.services.request_context import RequestContext

DEFAULT_CONSENT_TEXT = "Consent text not provided"
DEFAULT_LOCALE = "en"
DEFAULT_FORM_VERSION = "1.0.0"
DEFAULT_FORM_PROVIDER = "native"
DEFAULT_CONSENT_METHOD = "checkbox"
DEFAULT_CHECKBOX_POSITION = "above_submit"

# Proxy-chain precedence for recovering the original client address.
CLIENT_IP_HEADERS = ("x-forwarded-for", "x-real-ip", "cf-connecting-ip")


class ConsentSnapshot(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    text: str
    timestamp: str
    ip_address: Optional[str]
    user_agent: Optional[str]
    locale: str
    form_version: str
    provider: str
    checkbox_checked: bool
    url: str
    method: str
    privacy_policy_url: str
    terms_of_service_url: str
    checkbox_position: str
    consent_language: str

    def as_record(self) -> Dict[str, Any]:
        """JSON-ready dict with camelCase keys, as stored on the lead."""
        return self.model_dump(by_alias=True)


def isoformat_utc(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def extract_client_ip(headers: Mapping[str, str]) -> Optional[str]:
    for name in CLIENT_IP_HEADERS:
        value = headers.get(name)
        if not value:
            continue
        if name == "x-forwarded-for":
            value = value.split(",")[0]
        value = value.strip()
        if value:
            return value
    return None


def parse_ip(value: Optional[str]) -> Optional[str]:
    """Return value if it is a valid IPv4/IPv6 address, else None."""
    if not value:
        return None
    try:
        return str(ipaddress.ip_address(value))
    except ValueError:
        return None


def resolve_page_url(ctx: RequestContext) -> str:
    return ctx.body.page_url or ctx.header("referer") or ""


def build_consent_snapshot(ctx: RequestContext) -> ConsentSnapshot:
    body = ctx.body
    consent = body.consent
    if consent is None or not consent.checked:
        raise ValueError("consent snapshot requires affirmative consent")

    origin = (ctx.header("origin") or "").rstrip("/")
    locale = body.locale or DEFAULT_LOCALE

    return ConsentSnapshot(
        text=consent.text or DEFAULT_CONSENT_TEXT,
        timestamp=isoformat_utc(ctx.now),
        ip_address=extract_client_ip(ctx.headers),
        user_agent=ctx.headers.get("user-agent"),
        locale=locale,
        form_version=body.form_version or DEFAULT_FORM_VERSION,
        provider=body.form_provider or DEFAULT_FORM_PROVIDER,
        checkbox_checked=bool(consent.checked),
        url=resolve_page_url(ctx),
        method=consent.method or DEFAULT_CONSENT_METHOD,
        privacy_policy_url=consent.privacy_policy_url or f"{origin}/privacy",
        terms_of_service_url=consent.terms_of_service_url or f"{origin}/terms",
        checkbox_position=consent.checkbox_position or DEFAULT_CHECKBOX_POSITION,
        consent_language=locale,
    )
