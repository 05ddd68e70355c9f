"""Pytest fixtures for weather & news portal tests.

This module provides test fixtures that ensure:
1. No external API calls are made (OAuth providers, weather, news)
2. No real database connections unless a test opens an in-memory one
3. Isolated test environment with controlled configuration
"""

import os
from unittest.mock import AsyncMock
from urllib.parse import parse_qs, urlparse

import pytest

# Set test environment BEFORE importing application modules
# This ensures no real services are contacted during test collection
os.environ.setdefault("SECRET_KEY", "test-secret-key-at-least-32-characters-long")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-google-client-id")
os.environ.setdefault("GOOGLE_CLIENT_SECRET", "test-google-client-secret")
os.environ.setdefault("GITHUB_CLIENT_ID", "test-github-client-id")
os.environ.setdefault("GITHUB_CLIENT_SECRET", "test-github-client-secret")
os.environ.setdefault("WEATHER_API_KEY", "test-weather-key")
os.environ.setdefault("NEWS_API_KEY", "test-news-key")
os.environ.setdefault("RATE_LIMIT_REQUESTS", "0")
os.environ.setdefault("ENVIRONMENT", "development")

from fastapi import FastAPI
from fastapi.testclient import TestClient

from weather_news.models.profile import Provider, ProviderProfile


# =============================================================================
# Test Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Reset settings and cipher caches before each test to ensure clean state."""
    from weather_news.config import get_settings
    from weather_news.database.encryption import reset_cipher

    get_settings.cache_clear()
    reset_cipher()
    yield
    get_settings.cache_clear()
    reset_cipher()


@pytest.fixture
def app() -> FastAPI:
    """A fresh application using in-memory stores."""
    from weather_news.api import create_app

    return create_app()


@pytest.fixture
def client(app: FastAPI):
    """Test client with the application lifespan running."""
    with TestClient(app) as test_client:
        yield test_client


# =============================================================================
# Profiles and Login
# =============================================================================


@pytest.fixture
def google_profile() -> ProviderProfile:
    """Profile as returned by a successful Google sign-in."""
    return ProviderProfile(
        provider=Provider.GOOGLE,
        provider_id="google-123",
        email="test@example.com",
        name="Test User",
        avatar_url="https://example.com/photo.jpg",
    )


@pytest.fixture
def github_profile() -> ProviderProfile:
    """Profile as returned by a successful GitHub sign-in."""
    return ProviderProfile(
        provider=Provider.GITHUB,
        provider_id="42",
        email="octo@example.com",
        name="octocat",
        avatar_url="https://avatars.example.com/u/42",
    )


def state_from_location(location: str) -> str:
    """Extract the OAuth state parameter from a provider redirect."""
    return parse_qs(urlparse(location).query)["state"][0]


def error_from_location(location: str) -> str:
    """Extract the error message from a /login?error=... redirect."""
    parsed = urlparse(location)
    assert parsed.path == "/login"
    return parse_qs(parsed.query)["error"][0]


def sign_in(client: TestClient, app: FastAPI, profile: ProviderProfile, monkeypatch):
    """Run the full OAuth round trip with the provider exchange stubbed out.

    Returns the callback response; the session cookie is left in the client.
    """
    provider = app.state.oauth_providers[profile.provider]
    monkeypatch.setattr(provider, "authenticate", AsyncMock(return_value=profile))

    start = client.get(f"/auth/{profile.provider.value}", follow_redirects=False)
    assert start.status_code == 302
    state = state_from_location(start.headers["location"])

    return client.get(
        f"/auth/{profile.provider.value}/callback",
        params={"code": "test-code", "state": state},
        follow_redirects=False,
    )


@pytest.fixture
def logged_in_client(client: TestClient, app: FastAPI, google_profile, monkeypatch):
    """Test client holding a valid session cookie for the Google test user."""
    response = sign_in(client, app, google_profile, monkeypatch)
    assert response.status_code == 302
    assert response.headers["location"] == "/"
    return client
