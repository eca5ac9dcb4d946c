from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from smartbills.core.config import Settings
from smartbills.notifications.config import NotificationSettings
from smartbills.notifications.identity import ApiKeyIdentityVerifier, JWTIdentityVerifier
from smartbills.notifications.repository import Outcome
from smartbills.notifications.service import create_app

from .conftest import FailingMailer, issue_token


SECRET = "test-secret"


def _parse(ts: str) -> datetime:
    return datetime.fromisoformat(ts.replace("Z", "+00:00"))


@pytest.fixture
def verifier():
    return JWTIdentityVerifier(SECRET)


@pytest.fixture
def build_client(store, clock, verifier):
    def _build(mailer, identity_verifier=None):
        app = create_app(
            settings=Settings(SECRET_KEY=SECRET, SQLALCHEMY_DATABASE_URI="sqlite://"),
            config=NotificationSettings(SCHEDULER_ENABLED=False, METRICS_ENABLED=False),
            store=store,
            mailer=mailer,
            clock=clock,
            identity_verifier=identity_verifier or verifier,
        )
        return TestClient(app)

    return _build


@pytest.fixture
def client(build_client, mailer):
    return build_client(mailer)


def auth(verifier, email="alice@example.com"):
    return {"Authorization": f"Bearer {issue_token(email, verifier.secret_key)}"}


def test_create_returns_inserted_id_and_derived_schedule(client, verifier, store):
    response = client.post(
        "/notifications",
        json={"email": "alice@example.com", "title": "Water bill", "dueDate": "2025-11-15T00:00:00Z", "billId": 42},
        headers=auth(verifier),
    )

    assert response.status_code == 201
    body = response.json()
    assert _parse(body["scheduledFor"]) == datetime(2025, 11, 14, tzinfo=timezone.utc)
    created = store.get(body["insertedId"])
    assert created.bill_id == "42"
    assert created.status == "pending"


def test_create_defaults_recipient_to_verified_identity(client, verifier, store):
    response = client.post("/notifications", json={"title": "Gas bill"}, headers=auth(verifier))

    assert response.status_code == 201
    assert store.get(response.json()["insertedId"]).recipient_email == "alice@example.com"


def test_create_with_invalid_send_at_is_400(client, verifier):
    response = client.post(
        "/notifications",
        json={"email": "alice@example.com", "sendAt": "not-a-date"},
        headers=auth(verifier),
    )

    assert response.status_code == 400


def test_create_for_someone_else_is_403(client, verifier):
    response = client.post("/notifications", json={"email": "bob@example.com"}, headers=auth(verifier))

    assert response.status_code == 403


def test_requests_without_credentials_are_401(client):
    assert client.get("/notifications").status_code == 401
    assert client.get("/notifications", headers={"Authorization": "Bearer garbage"}).status_code == 401


def test_list_is_sorted_by_send_at_descending(client, verifier):
    for send_at in ["2025-11-02T00:00:00Z", "2025-11-20T00:00:00Z", "2025-11-10T00:00:00Z"]:
        client.post("/notifications", json={"sendAt": send_at, "title": send_at}, headers=auth(verifier))
    client.post("/notifications", json={"title": "bob's"}, headers=auth(verifier, "bob@example.com"))

    response = client.get("/notifications", params={"email": "alice@example.com"}, headers=auth(verifier))

    assert response.status_code == 200
    items = response.json()
    assert [i["title"] for i in items] == ["2025-11-20T00:00:00Z", "2025-11-10T00:00:00Z", "2025-11-02T00:00:00Z"]
    assert items[0]["recipientEmail"] == "alice@example.com"
    assert items[0]["status"] == "pending"
    assert items[0]["attempts"] == 0
    assert items[0]["channels"] == ["email"]


def test_list_for_another_email_is_403(client, verifier):
    response = client.get("/notifications", params={"email": "bob@example.com"}, headers=auth(verifier))

    assert response.status_code == 403


def test_delete_cancels_notification(client, verifier, store):
    created = client.post("/notifications", json={"title": "Internet"}, headers=auth(verifier)).json()

    response = client.delete(f"/notifications/{created['insertedId']}", headers=auth(verifier))

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert store.get(created["insertedId"]).status == "cancelled"


def test_delete_unknown_is_404(client, verifier):
    assert client.delete("/notifications/nope", headers=auth(verifier)).status_code == 404


def test_delete_by_other_user_is_403_and_keeps_notification(client, verifier, store):
    created = client.post("/notifications", json={"title": "Internet"}, headers=auth(verifier)).json()

    response = client.delete(f"/notifications/{created['insertedId']}", headers=auth(verifier, "bob@example.com"))

    assert response.status_code == 403
    assert store.get(created["insertedId"]).status == "pending"


def test_preview_sends_immediately_without_persisting(client, verifier, mailer, store):
    response = client.post(
        "/notifications/preview",
        json={"title": "Water bill", "providerName": "DWASA", "amount": 300, "dueDate": "2025-11-15"},
        headers=auth(verifier),
    )

    assert response.status_code == 200
    assert response.json() == {"success": True, "id": "<msg-1@smartbills.test>"}
    assert mailer.sent[0][0] == "alice@example.com"
    assert "DWASA" in mailer.sent[0][2]
    assert store.list_for("alice@example.com") == []


def test_preview_delivery_failure_is_500(build_client, verifier):
    client = build_client(FailingMailer("SMTP not configured"))

    response = client.post("/notifications/preview", json={"title": "Water bill"}, headers=auth(verifier))

    assert response.status_code == 500
    assert "SMTP not configured" in response.json()["detail"]


def test_preview_unexpected_mailer_error_keeps_json_envelope(build_client, verifier):
    class BrokenMailer:
        def send(self, to, subject, html):
            raise ConnectionResetError("connection reset by peer")

    client = build_client(BrokenMailer())

    response = client.post("/notifications/preview", json={"title": "Water bill"}, headers=auth(verifier))

    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to send preview email: connection reset by peer"}


def test_preview_with_blank_due_date_is_400(client, verifier, mailer):
    response = client.post("/notifications/preview", json={"dueDate": "  "}, headers=auth(verifier))

    assert response.status_code == 400
    assert mailer.sent == []


def test_attempts_endpoint_lists_log_for_owner(client, verifier, store, attempt_log):
    created = client.post("/notifications", json={"title": "Internet"}, headers=auth(verifier)).json()
    store.record_outcome(created["insertedId"], Outcome.failure("SMTP timeout"), max_attempts=3)
    attempt_log.record_failed(created["insertedId"], "email", "SMTP timeout")

    response = client.get(f"/notifications/{created['insertedId']}/attempts", headers=auth(verifier))
    other = client.get(f"/notifications/{created['insertedId']}/attempts", headers=auth(verifier, "bob@example.com"))

    assert response.status_code == 200
    [entry] = response.json()
    assert entry["notificationId"] == created["insertedId"]
    assert entry["outcome"] == "failed"
    assert entry["detail"] == "SMTP timeout"
    assert other.status_code == 403


def test_api_key_identity_mode(build_client, mailer):
    client = build_client(mailer, identity_verifier=ApiKeyIdentityVerifier(["svc-key"]))
    headers = {"X-API-Key": "svc-key", "X-User-Email": "carol@example.com"}

    created = client.post("/notifications", json={"title": "Rent"}, headers=headers)
    rejected = client.get("/notifications", headers={"X-API-Key": "wrong", "X-User-Email": "carol@example.com"})

    assert created.status_code == 201
    assert rejected.status_code == 401
    assert len(client.get("/notifications", headers=headers).json()) == 1


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy", "service": "notifications"}
