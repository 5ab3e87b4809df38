import pytest
from fastapi.testclient import TestClient

from conftest import FakeProvider, analytics_payload

from app.db import get_db
from app.main import app
from app.routes import monitoring
from app.services.breach import manager
from app.services.breach.errors import ErrorKind, ProviderError

OWNER = "owner@example.com"
HEADERS = {"user-id": OWNER}


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def client(db_session, provider):
    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[monitoring.get_provider] = lambda: provider
    manager.set_breach_provider(provider)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        manager.set_breach_provider(None)


def test_owner_header_is_required(client):
    response = client.get("/api/emails")
    assert response.status_code == 401


def test_list_auto_adds_owner_identity(client):
    response = client.get("/api/emails", headers=HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert body["emails"][0]["email"] == OWNER
    assert response.headers["X-Request-ID"]


def test_add_email_checks_immediately(client, provider):
    provider.responses["new@example.com"] = analytics_payload({"breach": "Adobe"}, risk_score=80)

    response = client.post("/api/emails", json={"email": " New@Example.com"}, headers=HEADERS)

    assert response.status_code == 201
    email = response.json()["email"]
    assert email["email"] == "new@example.com"
    assert email["status"] == "breached"
    assert email["riskScore"] == 80
    assert email["riskBand"] == "high"


def test_add_email_rejects_bad_and_duplicate(client, provider):
    assert client.post("/api/emails", json={"email": "nope"}, headers=HEADERS).status_code == 400

    provider.responses["dup@example.com"] = None
    assert client.post("/api/emails", json={"email": "dup@example.com"}, headers=HEADERS).status_code == 201
    assert client.post("/api/emails", json={"email": "DUP@example.com"}, headers=HEADERS).status_code == 409


def test_cannot_delete_primary_account(client):
    own = client.get("/api/emails", headers=HEADERS).json()["emails"][0]

    response = client.delete(f"/api/emails/{own['id']}", headers=HEADERS)
    assert response.status_code == 403


@pytest.mark.parametrize(
    "kind,status",
    [
        (ErrorKind.PROVIDER_BLOCKED, 503),
        (ErrorKind.RATE_LIMITED, 429),
        (ErrorKind.TIMEOUT, 504),
        (ErrorKind.TRANSIENT_PROVIDER_ERROR, 502),
    ],
)
def test_check_maps_error_kinds_to_http(client, provider, kind, status):
    own = client.get("/api/emails", headers=HEADERS).json()["emails"][0]
    provider.responses[OWNER] = ProviderError(kind, "provider trouble")

    response = client.put(f"/api/emails/{own['id']}/check", headers=HEADERS)

    assert response.status_code == status
    assert response.json()["detail"]["error"]["code"] == kind.value


def test_check_reports_result(client, provider):
    own = client.get("/api/emails", headers=HEADERS).json()["emails"][0]
    provider.responses[OWNER] = analytics_payload({"breach": "Adobe"}, {"breach": "Canva"})

    response = client.put(f"/api/emails/{own['id']}/check", headers=HEADERS)

    assert response.status_code == 200
    result = response.json()["result"]
    assert result["breachCount"] == 2
    assert result["isNew"] is True
    assert result["newBreachNames"] == ["Adobe", "Canva"]


def test_check_unknown_email_is_404(client):
    response = client.put("/api/emails/6f1c1f0e-3a5b-4c55-9d0e-2b8c1c7a9f10/check", headers=HEADERS)
    assert response.status_code == 404


def test_adhoc_breach_lookup(client, provider):
    provider.responses["look@example.com"] = {"breaches": [["Adobe", "LinkedIn"]]}

    response = client.get("/api/breach/check", params={"email": "look@example.com"}, headers=HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["breached"] is True
    assert body["sites"] == ["Adobe", "LinkedIn"]


def test_owner_header_is_case_insensitive(client):
    first = client.get("/api/emails", headers={"user-id": "Owner@Example.COM"}).json()
    second = client.get("/api/emails", headers=HEADERS).json()

    assert first["count"] == 1
    assert second["count"] == 1
    assert first["emails"][0]["id"] == second["emails"][0]["id"]
    assert second["emails"][0]["email"] == OWNER


def test_auto_check_lock_released_when_session_cannot_open(monkeypatch):
    def broken_session():
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(monitoring, "SessionLocal", broken_session)
    assert monitoring.auto_check_lock.acquire(blocking=False)

    with pytest.raises(RuntimeError):
        monitoring._run_auto_check_in_background()

    assert not monitoring.auto_check_lock.locked()


def test_trigger_rejects_concurrent_run(client):
    assert monitoring.auto_check_lock.acquire(blocking=False)
    try:
        response = client.post("/api/emails/auto-check/trigger", headers=HEADERS)
        assert response.status_code == 423
    finally:
        monitoring.auto_check_lock.release()
