# tests/test_lead_intake.py
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from intake.core.exceptions import (
    GENERIC_ERROR_MESSAGE,
    BusinessRuleError,
    IntakeProcessingError,
    InvalidDomainError,
)
from intake.schemas.lead_intake import LeadIntakeRequest
from intake.services.lead_intake import MESSAGE_CREATED, MESSAGE_DUPLICATE, process_lead_intake
from intake.services.request_context import RequestContext

from fakes import FakeDatabase, FakeSession

NOW = datetime(2025, 3, 4, 12, 0, tzinfo=timezone.utc)

BODY = {
    "contact": {"phone": "5551234567", "email": "a@b.com"},
    "consent": {"checked": True, "text": "I agree to be contacted."},
    "caseSlug": "roundup",
}


def _ctx(body=None, host="peoplesjustice.com", headers=None, now=NOW):
    payload = dict(BODY)
    payload.update(body or {})
    all_headers = {"host": host} if host else {}
    all_headers.update(headers or {})
    return RequestContext(body=LeadIntakeRequest.model_validate(payload), headers=all_headers, now=now)


def _run(db, ctx, **kwargs):
    return asyncio.run(process_lead_intake(FakeSession(db), ctx, **kwargs))


def test_creates_lead_and_audit_entry(fake_db):
    out = _run(fake_db, _ctx(headers={"x-forwarded-for": "203.0.113.7"}))

    assert out.duplicate is False
    assert out.message == MESSAGE_CREATED
    assert out.brand_id == 1
    assert out.case_type_id == 10

    assert len(fake_db.leads) == 1
    lead = fake_db.leads[0]
    assert lead["id"] == out.lead_id
    assert lead["status"] == "new"
    assert lead["phone"] == "5551234567"
    assert lead["consent_snapshot"]["ipAddress"] == "203.0.113.7"
    assert lead["consent_snapshot"]["text"] == "I agree to be contacted."

    assert len(fake_db.audit_log) == 1
    audit = fake_db.audit_log[0]
    assert audit["event_type"] == "created"
    assert audit["lead_id"] == out.lead_id
    assert audit["actor"] == "system"
    assert audit["ip_address"] == "203.0.113.7"
    assert audit["metadata"]["consent_text_provided"] is True
    assert fake_db.commits == 1


@pytest.mark.parametrize("contact", [
    {"email": "a@b.com"},
    {"phone": "5551234567"},
    {"phone": "", "email": "a@b.com"},
    {"phone": "   ", "email": "a@b.com"},
])
def test_missing_contact_fields(fake_db, contact):
    with pytest.raises(BusinessRuleError) as exc:
        _run(fake_db, _ctx(body={"contact": contact}))
    assert exc.value.message == "Phone and email are required"
    assert fake_db.leads == [] and fake_db.audit_log == []


@pytest.mark.parametrize("consent", [{"checked": False}, {}, None])
def test_missing_consent(fake_db, consent):
    with pytest.raises(BusinessRuleError) as exc:
        _run(fake_db, _ctx(body={"consent": consent}))
    assert exc.value.message == "TCPA consent is required"
    assert fake_db.leads == [] and fake_db.audit_log == []


def test_validation_runs_before_any_query(fake_db):
    fake_db.fail_on = "select"
    with pytest.raises(BusinessRuleError):
        _run(fake_db, _ctx(body={"consent": {"checked": False}}))


@pytest.mark.parametrize("host", ["unknown.example", "retired.com", None])
def test_unknown_or_inactive_brand(fake_db, host):
    with pytest.raises(InvalidDomainError) as exc:
        _run(fake_db, _ctx(host=host))
    assert exc.value.message == "Invalid domain"
    assert exc.value.status_code == 400
    assert fake_db.leads == [] and fake_db.audit_log == []


def test_unresolved_slug_still_creates_lead(fake_db):
    out = _run(fake_db, _ctx(body={"caseSlug": "asbestos"}))
    assert out.duplicate is False
    assert out.case_type_id is None
    assert fake_db.leads[0]["case_type_id"] is None
    assert fake_db.locks == []


def test_case_type_from_other_brand_is_not_used(fake_db):
    out = _run(fake_db, _ctx(host="claimhelp.com"))
    assert out.brand_id == 2
    assert out.case_type_id == 20


def test_duplicate_within_window(fake_db):
    first = _run(fake_db, _ctx())
    second = _run(fake_db, _ctx(now=NOW + timedelta(hours=2), headers={"x-real-ip": "198.51.100.2"}))

    assert second.duplicate is True
    assert second.lead_id == first.lead_id
    assert second.message == MESSAGE_DUPLICATE
    assert len(fake_db.leads) == 1

    events = [a["event_type"] for a in fake_db.audit_log]
    assert events == ["created", "duplicate_submission"]
    dup = fake_db.audit_log[1]
    assert dup["lead_id"] == first.lead_id
    assert dup["ip_address"] == "198.51.100.2"
    assert dup["metadata"]["original_lead_id"] == first.lead_id
    assert dup["metadata"]["duplicate_attempt_at"] == "2025-03-04T14:00:00.000Z"


def test_resubmission_after_window_creates_new_lead(fake_db):
    first = _run(fake_db, _ctx())
    second = _run(fake_db, _ctx(now=NOW + timedelta(hours=25)))

    assert second.duplicate is False
    assert second.lead_id != first.lead_id
    assert len(fake_db.leads) == 2


def test_same_phone_different_case_type_is_not_duplicate(fake_db):
    first = _run(fake_db, _ctx())
    out = _run(fake_db, _ctx(body={"caseSlug": "mesothelioma"}))

    assert first.case_type_id == 10
    assert out.case_type_id == 12
    assert out.duplicate is False
    assert out.lead_id != first.lead_id
    assert len(fake_db.leads) == 2
    assert [a["event_type"] for a in fake_db.audit_log] == ["created", "created"]


def test_without_case_type_duplicates_are_not_checked(fake_db):
    _run(fake_db, _ctx(body={"caseSlug": None}))
    out = _run(fake_db, _ctx(body={"caseSlug": None}))
    assert out.duplicate is False
    assert len(fake_db.leads) == 2


def test_duplicate_check_takes_lock_when_enabled(fake_db):
    _run(fake_db, _ctx(), serialize_duplicates=True)
    assert fake_db.locks == [(10, "5551234567")]


def test_duplicate_check_without_lock(fake_db):
    _run(fake_db, _ctx(), serialize_duplicates=False)
    assert fake_db.locks == []


def test_consent_text_default_recorded(fake_db):
    _run(fake_db, _ctx(body={"consent": {"checked": True}}))
    assert fake_db.leads[0]["consent_snapshot"]["text"] == "Consent text not provided"
    assert fake_db.audit_log[0]["metadata"]["consent_text_provided"] is False


def test_body_cannot_spoof_consent_ip(fake_db):
    _run(fake_db, _ctx(body={"ipAddress": "6.6.6.6"}, headers={"x-forwarded-for": "203.0.113.7"}))
    assert fake_db.leads[0]["consent_snapshot"]["ipAddress"] == "203.0.113.7"


def test_persistence_failure_is_generic_and_rolled_back(fake_db):
    fake_db.fail_on = "insert into lead_audit_log"
    with pytest.raises(IntakeProcessingError) as exc:
        _run(fake_db, _ctx())

    assert exc.value.status_code == 500
    assert exc.value.public_message == GENERIC_ERROR_MESSAGE
    assert fake_db.leads == []
    assert fake_db.audit_log == []
    assert fake_db.rollbacks == 1
    assert fake_db.commits == 0


def test_lookup_failure_is_generic(fake_db):
    fake_db.fail_on = "from brands"
    with pytest.raises(IntakeProcessingError):
        _run(fake_db, _ctx())
    assert fake_db.rollbacks == 1


def test_non_ip_forwarded_for_kept_in_snapshot_only(fake_db):
    _run(fake_db, _ctx(headers={"x-forwarded-for": "unknown, 10.0.0.1"}))
    assert fake_db.leads[0]["consent_snapshot"]["ipAddress"] == "unknown"
    assert fake_db.audit_log[0]["ip_address"] is None


def test_statement_timeout_set_after_validation(fake_db):
    s = FakeSession(fake_db)
    asyncio.run(process_lead_intake(s, _ctx()))
    assert s.executed[0].startswith("set statement_timeout")


@pytest.mark.parametrize("body", [
    {"contact": {"email": "a@b.com"}},
    {"consent": {"checked": False}},
])
def test_invalid_submission_never_touches_database(body):
    db = FakeDatabase(unreachable=True)
    s = FakeSession(db)
    with pytest.raises(BusinessRuleError):
        asyncio.run(process_lead_intake(s, _ctx(body=body)))
    assert s.executed == []


def test_unreachable_database_is_generic_error():
    db = FakeDatabase(unreachable=True)
    with pytest.raises(IntakeProcessingError) as exc:
        _run(db, _ctx())
    assert exc.value.public_message == GENERIC_ERROR_MESSAGE


@pytest.mark.parametrize("checked", [True, 1, "on", "agreed"])
def test_truthy_consent_values_accepted(fake_db, checked):
    out = _run(fake_db, _ctx(body={"consent": {"checked": checked}}))
    assert out.duplicate is False
    assert fake_db.leads[0]["consent_snapshot"]["checkboxChecked"] is True


@pytest.mark.parametrize("checked", [False, 0, ""])
def test_falsy_consent_values_rejected(fake_db, checked):
    with pytest.raises(BusinessRuleError) as exc:
        _run(fake_db, _ctx(body={"consent": {"checked": checked}}))
    assert exc.value.message == "TCPA consent is required"
