# intake/services/__init__.py
"""
Business logic services for lead intake.
"""

from intake.services.brand_resolver import ResolvedBrand, resolve_brand
from intake.services.case_type_resolver import ResolvedCaseType, resolve_case_type
from intake.services.consent import ConsentSnapshot, build_consent_snapshot, extract_client_ip
from intake.services.duplicate_detection import DuplicateMatch, find_recent_duplicate
from intake.services.lead_intake import IntakeOutcome, process_lead_intake
from intake.services.lead_persistence import create_audit_log_entry, create_lead
from intake.services.request_context import RequestContext

__all__ = [
    # Resolution
    "ResolvedBrand",
    "resolve_brand",
    "ResolvedCaseType",
    "resolve_case_type",
    # Consent
    "ConsentSnapshot",
    "build_consent_snapshot",
    "extract_client_ip",
    # Duplicates
    "DuplicateMatch",
    "find_recent_duplicate",
    # Persistence
    "create_lead",
    "create_audit_log_entry",
    # Pipeline
    "IntakeOutcome",
    "RequestContext",
    "process_lead_intake",
]
