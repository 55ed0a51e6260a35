"""Tests for the FastAPI endpoints: envelope, auth and profile routes."""

from datetime import timedelta
from urllib.parse import parse_qs, urlparse

from jobguard.config import settings
from jobguard.errors import ProviderError
from jobguard.models.account import Account

API = "/api/v1"

REGISTRATION = {
    "first_name": "Ada",
    "last_name": "Lovelace",
    "email": "Ada@Acme-Corp.com",
    "password": "Password1",
}


class TestHealthEndpoint:
    """Tests for /health endpoint."""

    def test_health_returns_ok(self, client):
        """Test health endpoint returns OK status."""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["status"] == "ok"
        assert "version" in data

    def test_request_id_header(self, client):
        response = client.get("/health", headers={"X-Request-ID": "abc-123"})
        assert response.headers["X-Request-ID"] == "abc-123"

    def test_security_headers(self, client):
        response = client.get("/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"


class TestErrorEnvelope:
    """Tests for the error response shapes."""

    def test_unknown_route(self, client):
        response = client.get(f"{API}/nope")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": f"Not Found - {API}/nope"}

    def test_validation_errors_list_fields(self, client):
        response = client.post(f"{API}/auth/register", json={"email": "not-an-email"})
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        fields = {error["field"] for error in body["errors"]}
        assert {"email", "password", "first_name", "last_name"} <= fields

    def test_missing_token(self, client):
        response = client.get(f"{API}/auth/me")
        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Not authorized to access this route"}


class TestRegisterAndLogin:
    """Tests for /auth/register and /auth/login."""

    def test_register_returns_token_and_user(self, client):
        response = client.post(f"{API}/auth/register", json=REGISTRATION)
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["token"]
        assert data["user"]["email"] == "ada@acme-corp.com"
        assert data["user"]["role"] == "user"
        assert "password_hash" not in data["user"]
        assert response.cookies.get(settings.cookie_name) == data["token"]

    def test_register_duplicate_email(self, client, user):
        response = client.post(f"{API}/auth/register", json={**REGISTRATION, "email": "USER@acme-corp.com"})
        assert response.status_code == 400
        assert response.json()["error"] == "User already exists with this email"

    def test_register_weak_password(self, client):
        response = client.post(f"{API}/auth/register", json={**REGISTRATION, "password": "password"})
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "password"

    def test_register_name_with_digits(self, client):
        response = client.post(f"{API}/auth/register", json={**REGISTRATION, "first_name": "Ada2"})
        assert response.status_code == 400
        assert response.json()["errors"][0]["message"] == "First name can only contain letters"

    def test_login(self, client, user):
        response = client.post(f"{API}/auth/login", json={"email": user.email, "password": "Password1"})
        assert response.status_code == 200
        assert response.json()["data"]["user"]["id"] == user.id

    def test_login_wrong_password(self, client, user):
        response = client.post(f"{API}/auth/login", json={"email": user.email, "password": "WrongPass1"})
        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Invalid credentials"}

    def test_login_locks_after_five_failures(self, client, user):
        for _ in range(5):
            client.post(f"{API}/auth/login", json={"email": user.email, "password": "WrongPass1"})

        response = client.post(f"{API}/auth/login", json={"email": user.email, "password": "Password1"})
        assert response.status_code == 423
        assert "locked" in response.json()["error"]


class TestSession:
    """Tests for token transport and session routes."""

    def test_cookie_session(self, client, user):
        client.post(f"{API}/auth/login", json={"email": user.email, "password": "Password1"})
        response = client.get(f"{API}/auth/me")
        assert response.status_code == 200
        assert response.json()["data"]["user"]["email"] == user.email

    def test_bearer_session(self, client, user, user_headers):
        response = client.get(f"{API}/auth/me", headers=user_headers)
        assert response.status_code == 200
        assert response.json()["data"]["user"]["id"] == user.id

    def test_expired_token(self, client, user, headers_for):
        response = client.get(f"{API}/auth/me", headers=headers_for(user, timedelta(seconds=-5)))
        assert response.status_code == 401
        assert response.json()["error"] == "Token expired, please login again"

    def test_suspended_account(self, client, db, user, user_headers):
        user.account_status = "suspended"
        db.commit()
        response = client.get(f"{API}/auth/me", headers=user_headers)
        assert response.status_code == 403

    def test_logout_clears_cookie(self, client, user, user_headers):
        response = client.post(f"{API}/auth/logout", headers=user_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "User logged out successfully"
        assert f"{settings.cookie_name}=" in response.headers["set-cookie"]


class TestPasswordFlows:
    """Tests for forgot/reset/update password."""

    def test_forgot_password_sends_mail(self, client, user, mailer):
        response = client.post(f"{API}/auth/forgotpassword", json={"email": user.email})
        assert response.status_code == 200
        assert response.json()["message"] == "Email sent"
        assert len(mailer.sent) == 1
        assert mailer.sent[0].to == user.email
        assert f"{API}/auth/resetpassword/" in mailer.sent[0].body

    def test_forgot_password_unknown_email(self, client, mailer):
        response = client.post(f"{API}/auth/forgotpassword", json={"email": "nobody@acme-corp.com"})
        assert response.status_code == 404
        assert mailer.sent == []

    def test_reset_password_with_mailed_link(self, client, user, mailer):
        client.post(f"{API}/auth/forgotpassword", json={"email": user.email})
        reset_url = next(line for line in mailer.sent[0].body.splitlines() if "/resetpassword/" in line)
        token = reset_url.rsplit("/", 1)[1]

        payload = {"password": "NewPassword2", "confirm_password": "NewPassword2"}
        response = client.put(f"{API}/auth/resetpassword/{token}", json=payload)
        assert response.status_code == 200
        assert response.json()["data"]["token"]

        again = client.put(f"{API}/auth/resetpassword/{token}", json=payload)
        assert again.status_code == 400
        assert again.json()["error"] == "Invalid or expired reset token"

    def test_reset_password_mismatch(self, client):
        response = client.put(
            f"{API}/auth/resetpassword/abc",
            json={"password": "NewPassword2", "confirm_password": "NewPassword3"},
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["message"] == "Passwords do not match"

    def test_update_password(self, client, user, user_headers):
        response = client.put(
            f"{API}/auth/updatepassword",
            json={"current_password": "WrongPass1", "new_password": "NewPassword2"},
            headers=user_headers,
        )
        assert response.status_code == 401

        response = client.put(
            f"{API}/auth/updatepassword",
            json={"current_password": "Password1", "new_password": "NewPassword2"},
            headers=user_headers,
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Password updated successfully"


class TestGoogleSignIn:
    """Tests for /auth/google and its callback."""

    def start(self, client):
        response = client.get(f"{API}/auth/google", follow_redirects=False)
        assert response.status_code == 302
        return parse_qs(urlparse(response.headers["location"]).query)

    def test_redirects_to_google(self, client):
        params = self.start(client)
        assert params["client_id"] == ["test-client-id"]
        assert params["response_type"] == ["code"]
        assert params["state"]

    def test_callback_signs_in(self, client, db, oauth):
        state = self.start(client)["state"][0]
        response = client.get(
            f"{API}/auth/google/callback",
            params={"code": "auth-code", "state": state},
            follow_redirects=False,
        )
        assert response.status_code == 302
        assert response.headers["location"].startswith(f"{settings.client_url}/auth/callback?token=")
        assert oauth.codes == ["auth-code"]

        account = db.query(Account).filter(Account.external_id == "google-123").one()
        assert account.is_verified is True

    def test_callback_rejects_bad_state(self, client, oauth):
        self.start(client)
        response = client.get(
            f"{API}/auth/google/callback",
            params={"code": "auth-code", "state": "forged"},
            follow_redirects=False,
        )
        assert response.status_code == 302
        assert response.headers["location"] == f"{settings.client_url}/login?error=google_auth_failed"
        assert oauth.codes == []

    def test_callback_provider_failure(self, client, oauth):
        oauth.error = ProviderError("Google authentication failed")
        state = self.start(client)["state"][0]
        response = client.get(
            f"{API}/auth/google/callback",
            params={"code": "auth-code", "state": state},
            follow_redirects=False,
        )
        assert response.headers["location"].endswith("/login?error=google_auth_failed")

    def test_not_configured(self, client, oauth):
        oauth.client_secret = ""
        response = client.get(f"{API}/auth/google", follow_redirects=False)
        assert response.status_code == 400


class TestProfile:
    """Tests for /users routes."""

    def test_profile_with_stats(self, client, user, user_headers, make_submission):
        make_submission(user)
        response = client.get(f"{API}/users/profile", headers=user_headers)
        assert response.status_code == 200
        stats = response.json()["data"]["user"]["stats"]
        assert stats == {"total_scans": 1, "high_risk_scans": 0}

    def test_update_profile(self, client, user_headers):
        response = client.put(
            f"{API}/users/profile",
            json={"first_name": "Grace", "email": "Grace@Acme-Corp.com"},
            headers=user_headers,
        )
        assert response.status_code == 200
        user = response.json()["data"]["user"]
        assert user["first_name"] == "Grace"
        assert user["email"] == "grace@acme-corp.com"
        assert user["last_name"] == "User"

    def test_update_profile_email_taken(self, client, user_headers, other_user):
        response = client.put(
            f"{API}/users/profile",
            json={"email": other_user.email},
            headers=user_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Email is already in use"

    def test_delete_account_is_soft(self, client, db, user, user_headers):
        response = client.delete(f"{API}/users/account", headers=user_headers)
        assert response.status_code == 200

        db.expire_all()
        assert db.get(Account, user.id).account_status == "deleted"
        assert client.get(f"{API}/auth/me", headers=user_headers).status_code == 403
