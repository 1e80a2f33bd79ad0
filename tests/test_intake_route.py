# tests/test_intake_route.py
from intake.core.exceptions import GENERIC_ERROR_MESSAGE

HEADERS = {"host": "peoplesjustice.com"}

VALID_LEAD = {
    "contact": {"phone": "5551234567", "email": "a@b.com"},
    "consent": {"checked": True},
    "caseSlug": "roundup",
}


def test_submit_lead_success(client, fake_db):
    response = client.post("/api/intake/lead", json=VALID_LEAD, headers=HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert isinstance(body["leadId"], int)
    assert body["message"].startswith("Thank you!")

    assert len(fake_db.leads) == 1
    assert fake_db.leads[0]["status"] == "new"
    assert fake_db.leads[0]["phone"] == "5551234567"
    assert [a["event_type"] for a in fake_db.audit_log] == ["created"]


def test_duplicate_submission_returns_original_lead(client, fake_db):
    first = client.post("/api/intake/lead", json=VALID_LEAD, headers=HEADERS).json()
    second = client.post("/api/intake/lead", json=VALID_LEAD, headers=HEADERS)

    assert second.status_code == 200
    assert second.json() == {
        "success": True,
        "leadId": first["leadId"],
        "message": "Your information has been received.",
    }
    assert len(fake_db.leads) == 1
    assert [a["event_type"] for a in fake_db.audit_log] == ["created", "duplicate_submission"]


def test_missing_phone(client, fake_db):
    payload = dict(VALID_LEAD, contact={"email": "a@b.com"})
    response = client.post("/api/intake/lead", json=payload, headers=HEADERS)

    assert response.status_code == 400
    assert response.json() == {"error": "Phone and email are required"}
    assert fake_db.leads == [] and fake_db.audit_log == []


def test_missing_consent(client, fake_db):
    payload = dict(VALID_LEAD, consent={"checked": False})
    response = client.post("/api/intake/lead", json=payload, headers=HEADERS)

    assert response.status_code == 400
    assert response.json() == {"error": "TCPA consent is required"}
    assert fake_db.leads == []


def test_unknown_domain(client, fake_db):
    response = client.post("/api/intake/lead", json=VALID_LEAD, headers={"host": "evil.example"})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid domain"}
    assert fake_db.leads == [] and fake_db.audit_log == []


def test_malformed_body(client, fake_db):
    response = client.post(
        "/api/intake/lead",
        content=b"{not json",
        headers=dict(HEADERS, **{"content-type": "application/json"}),
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid request body"}


def test_oversized_qualifiers_rejected(client, fake_db):
    payload = dict(VALID_LEAD, qualifiers={"notes": "x" * 20000})
    response = client.post("/api/intake/lead", json=payload, headers=HEADERS)
    assert response.status_code == 400
    assert fake_db.leads == []


def test_persistence_failure_is_generic(client, fake_db):
    fake_db.fail_on = "insert into leads"
    response = client.post("/api/intake/lead", json=VALID_LEAD, headers=HEADERS)

    assert response.status_code == 500
    assert response.json() == {"error": GENERIC_ERROR_MESSAGE}
    assert "connection reset" not in response.text
    assert fake_db.leads == []


def test_status_probe(client):
    response = client.get("/api/intake/lead")

    assert response.status_code == 200
    body = response.json()
    assert body["service"] == "lead-intake"
    assert body["status"] == "ok"
    assert body["timestamp"].endswith("Z")


def test_response_carries_request_id_and_security_headers(client):
    response = client.get("/api/intake/lead", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert "X-Response-Time" in response.headers


def test_validation_precedes_database_connection():
    from fastapi.testclient import TestClient

    from intake.main import app

    app.dependency_overrides.clear()
    unconnected = TestClient(app, raise_server_exceptions=False)

    response = unconnected.post(
        "/api/intake/lead",
        json={"contact": {"email": "a@b.com"}, "consent": {"checked": True}},
        headers=HEADERS,
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Phone and email are required"}


def test_unreachable_database_still_validates(client, fake_db):
    fake_db.unreachable = True

    missing = client.post("/api/intake/lead", json=dict(VALID_LEAD, consent={"checked": False}), headers=HEADERS)
    assert missing.status_code == 400
    assert missing.json() == {"error": "TCPA consent is required"}

    valid = client.post("/api/intake/lead", json=VALID_LEAD, headers=HEADERS)
    assert valid.status_code == 500
    assert valid.json() == {"error": GENERIC_ERROR_MESSAGE}


def test_truthy_consent_string_accepted(client, fake_db):
    payload = dict(VALID_LEAD, consent={"checked": "agreed"})
    response = client.post("/api/intake/lead", json=payload, headers=HEADERS)
    assert response.status_code == 200
    assert len(fake_db.leads) == 1


def test_non_scalar_consent_rejected(client, fake_db):
    payload = dict(VALID_LEAD, consent={"checked": {"value": True}})
    response = client.post("/api/intake/lead", json=payload, headers=HEADERS)
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid request body"}
