# intake/models/__init__.py
"""
SQLAlchemy ORM models for database entities.
"""

from intake.models.brand import Brand
from intake.models.case_type import CASE_TYPE_STATUSES, CaseType
from intake.models.lead import ConsentSnapshotImmutableError, Lead
from intake.models.lead_audit_log import LeadAuditLog

__all__ = [
    "Brand",
    "CASE_TYPE_STATUSES",
    "CaseType",
    "ConsentSnapshotImmutableError",
    "Lead",
    "LeadAuditLog",
]
