import pytest
from google.auth import exceptions as google_exceptions
from google.oauth2 import id_token

from app.dependencies import get_optional_email
from app.main import app
from app.models.claim_history import ClaimHistory
from tests.conftest import ADMIN_EMAIL

IP_A = {"X-Forwarded-For": "203.0.113.10"}


def bearer(token="google-id-token"):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def real_auth(client, monkeypatch):
    """Run the real token checks; only Google's verifier is replaced."""
    app.dependency_overrides.pop(get_optional_email, None)
    monkeypatch.setenv("GOOGLE_CLIENT_ID", "client-id.apps.googleusercontent.com")
    calls = []

    def verify_as(result):
        def fake_verify(token, request, audience):
            calls.append((token, audience))
            if isinstance(result, Exception):
                raise result
            return {"email": result}
        monkeypatch.setattr(id_token, "verify_oauth2_token", fake_verify)

    verify_as(ADMIN_EMAIL)
    return verify_as, calls


def test_admin_with_valid_token(client, real_auth):
    _, calls = real_auth

    response = client.get("/api/coupons", headers=bearer("good-token"))

    assert response.status_code == 200
    assert calls == [("good-token", "client-id.apps.googleusercontent.com")]


def test_admin_with_rejected_token(client, real_auth):
    verify_as, _ = real_auth
    verify_as(ValueError("Token expired"))

    response = client.get("/api/coupons", headers=bearer())

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Not authorized, token failed"}


def test_admin_when_google_is_unreachable(client, real_auth):
    verify_as, _ = real_auth
    verify_as(google_exceptions.TransportError("certs unavailable"))

    response = client.get("/api/coupons", headers=bearer())

    assert response.status_code == 401
    assert response.json()["message"] == "Authentication failed"


def test_admin_without_client_id_configured(client, real_auth, monkeypatch):
    monkeypatch.delenv("GOOGLE_CLIENT_ID")

    response = client.get("/api/coupons", headers=bearer())

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Server Configuration Error"}


def test_verified_non_admin_is_forbidden(client, real_auth):
    verify_as, _ = real_auth
    verify_as("visitor@example.com")

    assert client.get("/api/coupons", headers=bearer()).status_code == 403


def test_claim_with_valid_token_records_user(client, db_session, real_auth, make_coupon):
    verify_as, _ = real_auth
    verify_as("member@example.com")
    make_coupon("MEMBER")

    response = client.post("/api/coupons/claim", headers={**IP_A, **bearer()})

    assert response.status_code == 200
    assert db_session.query(ClaimHistory).one().user_email == "member@example.com"


@pytest.mark.parametrize(
    "failure",
    [ValueError("Token expired"), google_exceptions.TransportError("certs unavailable")],
)
def test_claim_with_bad_token_is_anonymous(client, db_session, real_auth, make_coupon, failure):
    verify_as, _ = real_auth
    verify_as(failure)
    make_coupon("ANYONE")

    response = client.post("/api/coupons/claim", headers={**IP_A, **bearer()})

    assert response.status_code == 200
    assert response.json()["coupon"]["code"] == "ANYONE"
    assert db_session.query(ClaimHistory).one().user_email is None


def test_claim_with_token_but_no_client_id(client, db_session, real_auth, make_coupon, monkeypatch):
    monkeypatch.delenv("GOOGLE_CLIENT_ID")
    make_coupon("ANYONE")

    response = client.post("/api/coupons/claim", headers={**IP_A, **bearer()})

    assert response.status_code == 200
    assert db_session.query(ClaimHistory).one().user_email is None


def test_last_claimed_ignores_authorization_header(client, real_auth):
    verify_as, calls = real_auth
    verify_as(ValueError("Token expired"))

    response = client.get("/api/coupons/last-claimed", headers={**IP_A, **bearer()})

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert calls == []


def test_last_claimed_without_client_id(client, real_auth, monkeypatch):
    monkeypatch.delenv("GOOGLE_CLIENT_ID")

    response = client.get("/api/coupons/last-claimed", headers={**IP_A, **bearer()})

    assert response.status_code == 200
    assert response.json()["cooldownRemaining"] == 0
