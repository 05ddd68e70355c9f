"""Tests for the login, callback, status and logout routes."""

import asyncio
from unittest.mock import AsyncMock

import httpx
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from conftest import error_from_location, sign_in, state_from_location
from weather_news.auth.github import GitHubOAuth
from weather_news.auth.google import GOOGLE_TOKEN_URL, GoogleOAuth
from weather_news.auth.oauth import OAuthError
from weather_news.config import get_settings
from weather_news.models.profile import ProfileError, Provider


class TestLoginRedirect:
    """Tests for starting the OAuth flow."""

    def test_google_redirect(self, client: TestClient, app: FastAPI):
        """Login redirects to Google with a state the server remembers."""
        response = client.get("/auth/google", follow_redirects=False)

        assert response.status_code == 302
        location = httpx.URL(response.headers["location"])
        assert location.host == "accounts.google.com"
        assert location.params["redirect_uri"] == "http://localhost:3000/auth/google/callback"
        assert len(app.state.oauth_states) == 1

    def test_github_redirect(self, client: TestClient):
        response = client.get("/auth/github", follow_redirects=False)

        assert response.status_code == 302
        assert httpx.URL(response.headers["location"]).host == "github.com"

    def test_unknown_provider(self, client: TestClient):
        """Unsupported providers are a plain 404."""
        response = client.get("/auth/twitter", follow_redirects=False)

        assert response.status_code == 404
        assert response.json()["error"] == "Not Found"

    def test_unconfigured_provider(self, client: TestClient, app: FastAPI):
        """A provider without credentials sends the user back to login."""
        app.state.oauth_providers[Provider.GITHUB] = GitHubOAuth(
            None, None, "http://localhost:3000/auth/github/callback"
        )

        response = client.get("/auth/github", follow_redirects=False)

        assert response.status_code == 302
        assert "not available" in error_from_location(response.headers["location"])


class TestCallback:
    """Tests for the OAuth callback."""

    def test_successful_login(self, client: TestClient, app: FastAPI, google_profile, monkeypatch):
        """A valid callback creates the user, a session and the cookie."""
        response = sign_in(client, app, google_profile, monkeypatch)

        assert response.status_code == 302
        assert response.headers["location"] == "/"

        set_cookie = response.headers["set-cookie"]
        assert get_settings().session_cookie_name in set_cookie
        assert "httponly" in set_cookie.lower()
        assert "samesite=lax" in set_cookie.lower()

        assert len(app.state.session_store) == 1

    def test_code_passed_to_provider(self, client: TestClient, app: FastAPI, google_profile, monkeypatch):
        sign_in(client, app, google_profile, monkeypatch)

        provider = app.state.oauth_providers[Provider.GOOGLE]
        provider.authenticate.assert_awaited_once_with("test-code")

    def test_repeat_login_reuses_user(
        self, client: TestClient, app: FastAPI, google_profile, monkeypatch
    ):
        """Logging in twice with the same account creates one user."""
        sign_in(client, app, google_profile, monkeypatch)
        first = client.get("/auth/status").json()["user"]["id"]

        updated = google_profile.model_copy(update={"name": "New Name"})
        sign_in(client, app, updated, monkeypatch)
        status = client.get("/auth/status").json()

        users = app.state.user_store
        assert status["user"]["id"] == first
        assert status["user"]["name"] == "New Name"

        assert asyncio.run(users.count()) == 1

    def test_both_providers_create_separate_users(
        self, client: TestClient, app: FastAPI, google_profile, github_profile, monkeypatch
    ):
        sign_in(client, app, google_profile, monkeypatch)
        google_id = client.get("/auth/status").json()["user"]["id"]

        sign_in(client, app, github_profile, monkeypatch)
        github_user = client.get("/auth/status").json()["user"]

        assert github_user["id"] != google_id
        assert github_user["provider"] == "github"

    def test_missing_state(self, client: TestClient):
        """A callback without a known state is rejected."""
        response = client.get(
            "/auth/google/callback",
            params={"code": "abc", "state": "forged"},
            follow_redirects=False,
        )

        assert response.status_code == 302
        assert "expired" in error_from_location(response.headers["location"])
        assert get_settings().session_cookie_name not in response.headers.get("set-cookie", "")

    def test_state_from_other_provider(self, client: TestClient):
        """A state issued for Google cannot complete a GitHub login."""
        start = client.get("/auth/google", follow_redirects=False)
        state = state_from_location(start.headers["location"])

        response = client.get(
            "/auth/github/callback",
            params={"code": "abc", "state": state},
            follow_redirects=False,
        )

        assert response.status_code == 302
        assert response.headers["location"].startswith("/login?error=")

    def test_user_cancelled(self, client: TestClient):
        """access_denied from the provider shows a cancellation message."""
        response = client.get(
            "/auth/google/callback",
            params={"error": "access_denied"},
            follow_redirects=False,
        )

        assert response.status_code == 302
        assert error_from_location(response.headers["location"]) == "Sign-in was cancelled"

    def test_provider_error(self, client: TestClient, app: FastAPI, monkeypatch):
        """A failed code exchange redirects with a generic message."""
        provider = app.state.oauth_providers[Provider.GOOGLE]
        monkeypatch.setattr(
            provider,
            "authenticate",
            AsyncMock(side_effect=OAuthError("Token exchange failed", Provider.GOOGLE)),
        )
        start = client.get("/auth/google", follow_redirects=False)
        state = state_from_location(start.headers["location"])

        response = client.get(
            "/auth/google/callback",
            params={"code": "abc", "state": state},
            follow_redirects=False,
        )

        assert error_from_location(response.headers["location"]) == "Authentication failed"

    def test_profile_without_email(self, client: TestClient, app: FastAPI, monkeypatch):
        """A profile missing its email redirects with an explanation."""
        provider = app.state.oauth_providers[Provider.GITHUB]
        monkeypatch.setattr(
            provider,
            "authenticate",
            AsyncMock(
                side_effect=ProfileError("missing email", Provider.GITHUB, fields=("email",))
            ),
        )
        start = client.get("/auth/github", follow_redirects=False)
        state = state_from_location(start.headers["location"])

        response = client.get(
            "/auth/github/callback",
            params={"code": "abc", "state": state},
            follow_redirects=False,
        )

        message = error_from_location(response.headers["location"])
        assert "Github" in message
        assert "email" in message
        assert len(app.state.session_store) == 0

    def test_profile_without_id(self, client: TestClient, app: FastAPI, monkeypatch):
        """A profile missing its id is not blamed on the email address."""
        provider = app.state.oauth_providers[Provider.GITHUB]
        monkeypatch.setattr(
            provider,
            "authenticate",
            AsyncMock(
                side_effect=ProfileError("missing id", Provider.GITHUB, fields=("provider_id",))
            ),
        )
        start = client.get("/auth/github", follow_redirects=False)
        state = state_from_location(start.headers["location"])

        response = client.get(
            "/auth/github/callback",
            params={"code": "abc", "state": state},
            follow_redirects=False,
        )

        message = error_from_location(response.headers["location"])
        assert message == "Github returned an incomplete profile"
        assert len(app.state.session_store) == 0

    def test_malformed_userinfo(self, client: TestClient, app: FastAPI):
        """A userinfo body that is not a JSON object redirects to login."""

        def handler(request: httpx.Request) -> httpx.Response:
            if str(request.url) == GOOGLE_TOKEN_URL:
                return httpx.Response(
                    200, json={"access_token": "access-123", "token_type": "Bearer"}
                )
            return httpx.Response(200, json=["unexpected"])

        app.state.oauth_providers[Provider.GOOGLE] = GoogleOAuth(
            "client-id",
            "client-secret",
            "http://localhost:3000/auth/google/callback",
            transport=httpx.MockTransport(handler),
        )
        start = client.get("/auth/google", follow_redirects=False)
        state = state_from_location(start.headers["location"])

        response = client.get(
            "/auth/google/callback",
            params={"code": "abc", "state": state},
            follow_redirects=False,
        )

        assert response.status_code == 302
        assert error_from_location(response.headers["location"]) == "Authentication failed"
        assert len(app.state.session_store) == 0

    def test_state_is_single_use(self, client: TestClient, app: FastAPI, google_profile, monkeypatch):
        """Replaying a completed callback does not log in again."""
        provider = app.state.oauth_providers[Provider.GOOGLE]
        monkeypatch.setattr(provider, "authenticate", AsyncMock(return_value=google_profile))
        start = client.get("/auth/google", follow_redirects=False)
        params = {"code": "abc", "state": state_from_location(start.headers["location"])}

        first = client.get("/auth/google/callback", params=params, follow_redirects=False)
        replay = client.get("/auth/google/callback", params=params, follow_redirects=False)

        assert first.headers["location"] == "/"
        assert replay.headers["location"].startswith("/login?error=")


class TestStatus:
    """Tests for GET /auth/status."""

    def test_anonymous(self, client: TestClient):
        response = client.get("/auth/status")

        assert response.status_code == 200
        assert response.json() == {"authenticated": False, "user": None}

    def test_logged_in(self, logged_in_client: TestClient):
        data = logged_in_client.get("/auth/status").json()

        assert data["authenticated"] is True
        assert data["user"]["email"] == "test@example.com"
        assert data["user"]["name"] == "Test User"
        assert data["user"]["avatar_url"] == "https://example.com/photo.jpg"
        assert data["user"]["provider"] == "google"

    def test_forged_cookie(self, client: TestClient):
        """A cookie not signed by the server is ignored."""
        client.cookies.set(get_settings().session_cookie_name, "forged.cookie.value")

        assert client.get("/auth/status").json()["authenticated"] is False


class TestLogout:
    """Tests for POST /auth/logout."""

    def test_logout(self, logged_in_client: TestClient, app: FastAPI):
        """Logout destroys the session and clears the cookie."""
        response = logged_in_client.post("/auth/logout")

        assert response.status_code == 200
        assert response.json() == {"message": "Logged out successfully"}
        assert len(app.state.session_store) == 0
        assert logged_in_client.get("/auth/status").json()["authenticated"] is False

    def test_old_cookie_rejected_after_logout(self, logged_in_client: TestClient):
        """A copy of the cookie kept from before logout no longer works."""
        name = get_settings().session_cookie_name
        old_cookie = logged_in_client.cookies.get(name)
        assert old_cookie

        logged_in_client.post("/auth/logout")
        logged_in_client.cookies.set(name, old_cookie)

        assert logged_in_client.get("/auth/status").json()["authenticated"] is False
        assert logged_in_client.get("/api/weather/London").status_code == 401

    def test_logout_without_session(self, client: TestClient):
        """Logging out when not logged in still succeeds."""
        response = client.post("/auth/logout")

        assert response.status_code == 200
        assert response.json() == {"message": "Logged out successfully"}

    def test_store_failure(self, logged_in_client: TestClient, app: FastAPI, monkeypatch):
        """A session store error is reported and the cookie is kept."""
        monkeypatch.setattr(
            app.state.session_store,
            "destroy",
            AsyncMock(side_effect=OperationalError("DELETE", {}, Exception("db down"))),
        )

        response = logged_in_client.post("/auth/logout")

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to logout"}
        assert "set-cookie" not in response.headers


class TestSessionCookie:
    """Tests for the session cookie attributes."""

    def test_development_cookie(self, client: TestClient, app: FastAPI, google_profile, monkeypatch):
        response = sign_in(client, app, google_profile, monkeypatch)
        cookie = response.headers["set-cookie"].lower()

        assert "httponly" in cookie
        assert "samesite=lax" in cookie
        assert "max-age=86400" in cookie
        assert "secure" not in cookie

    def test_secure_in_production(self, google_profile, monkeypatch):
        """Production cookies are only sent over HTTPS."""
        monkeypatch.setenv("ENVIRONMENT", "production")
        get_settings.cache_clear()

        from weather_news.api import create_app

        app = create_app()
        with TestClient(app, base_url="https://testserver") as client:
            response = sign_in(client, app, google_profile, monkeypatch)

        assert response.headers["location"] == "/"
        cookie = response.headers["set-cookie"].lower()
        assert "secure" in cookie
        assert "httponly" in cookie
