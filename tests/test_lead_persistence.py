# tests/test_lead_persistence.py
import asyncio
from datetime import datetime, timezone

import pytest

from intake.core.exceptions import GENERIC_ERROR_MESSAGE, LeadPersistenceError
from intake.services.lead_persistence import create_audit_log_entry, create_lead
from intake.services.lead_record import AuditLogEntry, LeadRecord

from fakes import FakeDatabase, FakeSession

NOW = datetime(2025, 3, 4, 12, 0, tzinfo=timezone.utc)


def _record(**overrides):
    data = dict(
        brand_id=1,
        case_type_id=10,
        phone="5551234567",
        email="a@b.com",
        consent_snapshot={"checkboxChecked": True},
        created_at=NOW,
    )
    data.update(overrides)
    return LeadRecord(**data)


def test_create_lead_returns_generated_fields():
    db = FakeDatabase()
    s = FakeSession(db)
    lead = asyncio.run(create_lead(s, _record()))

    assert lead.id == 1
    assert lead.status == "new"
    assert lead.created_at == NOW
    assert lead.updated_at == NOW
    row = s.pending_leads[0]
    assert row["source"] == "web_form"
    assert row["consent_snapshot"] == {"checkboxChecked": True}
    assert row["qualifiers"] == {}


def test_create_lead_wraps_driver_errors():
    s = FakeSession(FakeDatabase(fail_on="insert into leads"))
    with pytest.raises(LeadPersistenceError) as exc:
        asyncio.run(create_lead(s, _record()))
    assert exc.value.status_code == 500
    assert exc.value.public_message == GENERIC_ERROR_MESSAGE
    assert "connection reset" not in exc.value.public_message


def test_audit_entry_keeps_valid_ip():
    s = FakeSession(FakeDatabase())
    entry = asyncio.run(create_audit_log_entry(s, AuditLogEntry(
        lead_id=4,
        event_type="created",
        metadata={"source": "web_form"},
        ip_address="203.0.113.7",
        created_at=NOW,
    )))

    assert entry.lead_id == 4
    assert entry.event_type == "created"
    row = s.pending_audit[0]
    assert row["actor"] == "system"
    assert row["ip_address"] == "203.0.113.7"
    assert row["metadata"] == {"source": "web_form"}


def test_audit_entry_drops_unparseable_ip():
    s = FakeSession(FakeDatabase())
    asyncio.run(create_audit_log_entry(s, AuditLogEntry(lead_id=4, event_type="created", ip_address="unknown")))
    assert s.pending_audit[0]["ip_address"] is None


def test_audit_entry_wraps_driver_errors():
    s = FakeSession(FakeDatabase(fail_on="insert into lead_audit_log"))
    with pytest.raises(LeadPersistenceError):
        asyncio.run(create_audit_log_entry(s, AuditLogEntry(lead_id=4, event_type="created")))
