"""Identity provider registry."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from weather_news.auth.github import GitHubOAuth
from weather_news.auth.google import GoogleOAuth
from weather_news.auth.oauth import OAuthProvider
from weather_news.config import Settings
from weather_news.models.profile import Provider


def build_oauth_providers(settings: Settings) -> dict[Provider, OAuthProvider]:
    """Create one OAuth client per supported provider."""
    return {
        Provider.GOOGLE: GoogleOAuth(
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
            redirect_uri=settings.google_redirect_uri,
        ),
        Provider.GITHUB: GitHubOAuth(
            client_id=settings.github_client_id,
            client_secret=settings.github_client_secret,
            redirect_uri=settings.github_redirect_uri,
        ),
    }


def get_oauth_provider(provider: str, request: Request) -> OAuthProvider:
    """FastAPI dependency resolving the `{provider}` path parameter."""
    providers: dict[Provider, OAuthProvider] = request.app.state.oauth_providers
    try:
        return providers[Provider(provider)]
    except (ValueError, KeyError):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown provider: {provider}",
        )
