# intake/schemas/lead_intake.py
from __future__ import annotations

import json
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from intake.core.config import settings


class _IntakeModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )


class ContactIn(_IntakeModel):
    phone: Optional[str] = Field(default=None, max_length=32)
    email: Optional[str] = Field(default=None, max_length=320)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    zip_code: Optional[str] = Field(default=None, max_length=10)


class ConsentIn(_IntakeModel):
    # Consent fields are evidence and are stored exactly as submitted.
    model_config = ConfigDict(str_strip_whitespace=False)

    # Forms send true, "on", "yes" or 1; any truthy scalar counts as consent.
    checked: Optional[Union[bool, int, float, str]] = None
    text: Optional[str] = Field(default=None, max_length=10000)
    method: Optional[str] = Field(default=None, max_length=64)
    privacy_policy_url: Optional[str] = Field(default=None, max_length=2048)
    terms_of_service_url: Optional[str] = Field(default=None, max_length=2048)
    checkbox_position: Optional[str] = Field(default=None, max_length=64)


class LeadIntakeRequest(_IntakeModel):
    """Body of POST /intake/lead. Unknown keys are dropped."""

    contact: Optional[ContactIn] = None
    consent: Optional[ConsentIn] = None
    case_slug: Optional[str] = Field(default=None, max_length=100)

    qualifiers: Optional[Dict[str, Any]] = None
    source: Optional[str] = Field(default=None, max_length=100)
    utm: Optional[Dict[str, Any]] = None
    landing_page: Optional[str] = Field(default=None, max_length=2048)
    page_url: Optional[str] = Field(default=None, max_length=2048)
    page_path: Optional[str] = Field(default=None, max_length=2048)
    session_id: Optional[str] = Field(default=None, max_length=128)
    fingerprint: Optional[Dict[str, Any]] = None
    page_context: Optional[Dict[str, Any]] = None

    form_provider: Optional[str] = Field(default=None, max_length=64)
    form_version: Optional[str] = Field(default=None, max_length=32)
    locale: Optional[str] = Field(default=None, max_length=16)

    @field_validator("qualifiers", "utm", "fingerprint", "page_context")
    def validate_free_form_size(cls, v):
        if v and len(json.dumps(v, default=str)) > settings.max_free_form_bytes:
            raise ValueError(f"object too large (max {settings.max_free_form_bytes} bytes)")
        return v


class LeadIntakeResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    lead_id: int
    message: str


class IntakeStatusResponse(BaseModel):
    service: str
    status: str
    timestamp: str
