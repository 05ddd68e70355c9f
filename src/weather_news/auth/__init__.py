"""Authentication module for the weather & news portal.

Provides Google and GitHub OAuth sign-in and session management.

## OAuth Flow

1. User clicks "Login with Google" or "Login with GitHub"
2. Redirect to the provider's consent screen
3. Provider redirects back with an authorization code
4. Exchange the code for an access token and load the profile
5. Find or create the user
6. Create a session and set the cookie

## Scopes

We request minimal scopes:
- Google: profile, email
- GitHub: user:email

## Security

- Session cookies are signed JWTs wrapping an opaque server-side token
- Session payloads are encrypted at rest
- Cookies are HTTP-only, and Secure in production
"""

from weather_news.auth.dependencies import (
    get_current_user,
    get_current_user_optional,
    get_session_data,
)
from weather_news.auth.github import GitHubOAuth
from weather_news.auth.google import GoogleOAuth
from weather_news.auth.oauth import OAuthError, OAuthProvider, OAuthStateStore
from weather_news.auth.providers import build_oauth_providers
from weather_news.auth.session import (
    DatabaseSessionStore,
    MemorySessionStore,
    SessionData,
    SessionStore,
    read_session_cookie,
    sign_session_cookie,
)

__all__ = [
    "GoogleOAuth",
    "GitHubOAuth",
    "OAuthError",
    "OAuthProvider",
    "OAuthStateStore",
    "build_oauth_providers",
    "SessionData",
    "SessionStore",
    "MemorySessionStore",
    "DatabaseSessionStore",
    "sign_session_cookie",
    "read_session_cookie",
    "get_current_user",
    "get_current_user_optional",
    "get_session_data",
]
