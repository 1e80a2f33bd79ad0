# intake/schemas/__init__.py
"""
Pydantic schemas for request/response validation and serialization.
"""

from intake.schemas.lead_intake import (
    ConsentIn,
    ContactIn,
    IntakeStatusResponse,
    LeadIntakeRequest,
    LeadIntakeResponse,
)

__all__ = [
    "ConsentIn",
    "ContactIn",
    "IntakeStatusResponse",
    "LeadIntakeRequest",
    "LeadIntakeResponse",
]
