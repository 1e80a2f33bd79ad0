# intake/services/request_context.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Mapping, Optional

from fastapi import Request

from intake.schemas.lead_intake import LeadIntakeRequest


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RequestContext:
    """Everything one intake request needs: headers, parsed body and the server clock."""

    body: LeadIntakeRequest
    headers: Mapping[str, str] = field(default_factory=dict)
    now: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        normalized = {str(k).lower(): v for k, v in self.headers.items()}
        object.__setattr__(self, "headers", MappingProxyType(normalized))
        if self.now.tzinfo is None:
            object.__setattr__(self, "now", self.now.replace(tzinfo=timezone.utc))

    def header(self, name: str) -> Optional[str]:
        value = self.headers.get(name.lower())
        if value is None:
            return None
        value = value.strip()
        return value or None

    @property
    def host(self) -> Optional[str]:
        return self.header("host")

    @classmethod
    def from_request(
        cls,
        request: Request,
        body: LeadIntakeRequest,
        now: Optional[datetime] = None,
    ) -> "RequestContext":
        return cls(
            body=body,
            headers=dict(request.headers.items()),
            now=now or utcnow(),
        )
