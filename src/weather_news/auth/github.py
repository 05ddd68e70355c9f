"""GitHub OAuth authentication.

## Required Setup

1. Register an OAuth App under GitHub Developer settings
2. Set the callback URL to `<BASE_URL>/auth/github/callback`
3. Set GITHUB_CLIENT_ID and GITHUB_CLIENT_SECRET environment variables

## OAuth Endpoints

- Authorization: https://github.com/login/oauth/authorize
- Token: https://github.com/login/oauth/access_token
- User: https://api.github.com/user
- Emails: https://api.github.com/user/emails

## Email Resolution

`/user` only reports an email the user made public. When it is empty, the
`user:email` scope lets us read `/user/emails`; the primary verified address
wins, then any verified address.
"""

from __future__ import annotations

from typing import Any

from authlib.integrations.httpx_client import AsyncOAuth2Client

from weather_news.auth.oauth import OAuthProvider
from weather_news.models.profile import Provider, ProviderProfile

GITHUB_AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
GITHUB_TOKEN_URL = "https://github.com/login/oauth/access_token"
GITHUB_USER_URL = "https://api.github.com/user"
GITHUB_EMAILS_URL = "https://api.github.com/user/emails"

GITHUB_API_HEADERS = {"Accept": "application/vnd.github+json"}


def pick_email(emails: list[dict[str, Any]]) -> str | None:
    """Choose the best address from a `/user/emails` response."""
    verified = [e for e in emails if isinstance(e, dict) and e.get("verified")]
    for entry in verified:
        if entry.get("primary"):
            return entry.get("email")
    if verified:
        return verified[0].get("email")
    return None


class GitHubOAuth(OAuthProvider):
    """GitHub sign-in."""

    name = Provider.GITHUB
    authorize_url = GITHUB_AUTHORIZE_URL
    token_url = GITHUB_TOKEN_URL
    scopes = ["user:email"]

    async def _load_profile(self, client: AsyncOAuth2Client) -> ProviderProfile:
        data = await self._get_json(client, GITHUB_USER_URL, headers=GITHUB_API_HEADERS)

        email = data.get("email")
        if not email:
            emails = await self._get_json(
                client, GITHUB_EMAILS_URL, headers=GITHUB_API_HEADERS, expected=list
            )
            email = pick_email(emails)

        return ProviderProfile.from_provider(
            self.name,
            provider_id=data.get("id"),
            email=email,
            name=data.get("name") or data.get("login"),
            avatar_url=data.get("avatar_url"),
        )
