"""Google OAuth authentication.

## Required Setup

1. Create a project in Google Cloud Console
2. Create OAuth 2.0 credentials (Web application)
3. Add `<BASE_URL>/auth/google/callback` as an authorized redirect URI
4. Set GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET environment variables

## OAuth Endpoints

- Authorization: https://accounts.google.com/o/oauth2/v2/auth
- Token: https://oauth2.googleapis.com/token
- User Info: https://www.googleapis.com/oauth2/v2/userinfo

## Scopes Used

- profile: Get user's name and picture
- email: Get user's email address
"""

from __future__ import annotations

from authlib.integrations.httpx_client import AsyncOAuth2Client

from weather_news.auth.oauth import OAuthProvider
from weather_news.models.profile import Provider, ProviderProfile

# Google OAuth endpoints
GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"


class GoogleOAuth(OAuthProvider):
    """Google sign-in.

    Example:
        ```python
        oauth = GoogleOAuth(client_id, client_secret, redirect_uri)
        url = oauth.get_authorization_url(state="random-state")
        # ...user consents, Google redirects back with ?code=...
        profile = await oauth.authenticate(code)
        ```
    """

    name = Provider.GOOGLE
    authorize_url = GOOGLE_AUTHORIZE_URL
    token_url = GOOGLE_TOKEN_URL
    scopes = ["profile", "email"]

    async def _load_profile(self, client: AsyncOAuth2Client) -> ProviderProfile:
        data = await self._get_json(client, GOOGLE_USERINFO_URL)

        return ProviderProfile.from_provider(
            self.name,
            provider_id=data.get("id"),
            email=data.get("email"),
            name=data.get("name"),
            avatar_url=data.get("picture"),
        )
