"""Authentication routes.

Handles the Google and GitHub OAuth login flows and session management.

## OAuth Flow

1. GET /auth/{provider} - Redirect to the provider consent screen
2. GET /auth/{provider}/callback - Handle the OAuth callback
3. POST /auth/logout - Destroy the session
4. GET /auth/status - Current user info

Failures anywhere in the flow redirect to `/login?error=<message>`; the
underlying error is only logged.

## Session Management

The session cookie is a signed JWT wrapping an opaque server-side session
token. Logging out destroys the server-side session, so the old cookie stops
working even if a copy of it survives.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from weather_news.auth.dependencies import (
    get_current_user_optional,
    get_oauth_states,
    get_session_store,
    get_user_store,
)
from weather_news.auth.oauth import OAuthError, OAuthProvider, OAuthStateStore
from weather_news.auth.providers import get_oauth_provider
from weather_news.auth.session import SessionStore, read_session_cookie, sign_session_cookie
from weather_news.config import get_settings
from weather_news.database.models import User
from weather_news.database.users import UserStore
from weather_news.models.profile import ProfileError

logger = logging.getLogger(__name__)

router = APIRouter()


class UserResponse(BaseModel):
    """User information response."""

    id: uuid.UUID
    provider: str | None
    email: str
    name: str | None
    avatar_url: str | None
    created_at: datetime | None = None

    @classmethod
    def from_user(cls, user: User) -> UserResponse:
        return cls(
            id=user.id,
            provider=user.provider,
            email=user.email,
            name=user.name,
            avatar_url=user.avatar_url,
            created_at=user.created_at,
        )


class AuthStatusResponse(BaseModel):
    """Authentication status response."""

    authenticated: bool
    user: UserResponse | None = None


def login_error(message: str) -> RedirectResponse:
    """Send the browser back to the login page with an error message."""
    return RedirectResponse(
        url=f"/login?{urlencode({'error': message})}",
        status_code=status.HTTP_302_FOUND,
    )


@router.get("/status", response_model=AuthStatusResponse)
async def get_auth_status(
    user: User | None = Depends(get_current_user_optional),
) -> AuthStatusResponse:
    """Get the current authentication status and user info."""
    if user:
        return AuthStatusResponse(authenticated=True, user=UserResponse.from_user(user))

    return AuthStatusResponse(authenticated=False)


@router.post("/logout")
async def logout(
    request: Request,
    sessions: SessionStore = Depends(get_session_store),
) -> JSONResponse:
    """Log out the current user.

    Destroys the server-side session and clears the session cookie.
    """
    settings = get_settings()

    cookie = request.cookies.get(settings.session_cookie_name)
    token = read_session_cookie(cookie, settings.secret_key) if cookie else None

    if token:
        try:
            removed = await sessions.destroy(token)
        except SQLAlchemyError as e:
            logger.error(f"Session destruction failed: {e}")
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"error": "Failed to logout"},
            )
        if removed:
            logger.info("Session destroyed on logout")

    response = JSONResponse(content={"message": "Logged out successfully"})
    response.delete_cookie(
        key=settings.session_cookie_name,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    return response


@router.get("/{provider}")
async def login(
    oauth: OAuthProvider = Depends(get_oauth_provider),
    states: OAuthStateStore = Depends(get_oauth_states),
) -> RedirectResponse:
    """Initiate OAuth login.

    Redirects the user to the provider's consent screen. After consent, the
    provider redirects back to /auth/{provider}/callback.
    """
    if not oauth.is_configured:
        logger.warning(f"Login attempted with unconfigured provider {oauth.name.value}")
        return login_error(f"{oauth.name.value.title()} sign-in is not available")

    state = states.issue(oauth.name)
    return RedirectResponse(
        url=oauth.get_authorization_url(state),
        status_code=status.HTTP_302_FOUND,
    )


@router.get("/{provider}/callback")
async def oauth_callback(
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    oauth: OAuthProvider = Depends(get_oauth_provider),
    states: OAuthStateStore = Depends(get_oauth_states),
    users: UserStore = Depends(get_user_store),
    sessions: SessionStore = Depends(get_session_store),
) -> RedirectResponse:
    """Handle the OAuth callback.

    Exchanges the authorization code for a profile, finds or creates the
    user, and sets the session cookie.
    """
    settings = get_settings()
    provider = oauth.name.value

    if error:
        logger.warning(f"{provider} returned an error: {error}")
        if error == "access_denied":
            return login_error("Sign-in was cancelled")
        return login_error("Authentication failed")

    if not states.consume(state, oauth.name):
        logger.warning(f"{provider} callback with invalid or expired state")
        return login_error("Login attempt expired, please try again")

    if not code:
        logger.warning(f"{provider} callback without an authorization code")
        return login_error("Authentication failed")

    try:
        profile = await oauth.authenticate(code)
    except ProfileError as e:
        logger.warning(f"Rejected {provider} profile: {e}")
        if "email" in e.fields:
            return login_error(
                f"Your {provider.title()} account did not provide an email address"
            )
        return login_error(f"{provider.title()} returned an incomplete profile")
    except OAuthError as e:
        logger.error(f"{provider} authentication error: {e}")
        return login_error("Authentication failed")

    try:
        user, created = await users.resolve(profile)
        session = await sessions.create(user.id)
    except SQLAlchemyError as e:
        logger.error(f"Login failed while storing {provider} user: {e}")
        return login_error("Login failed")

    redirect = RedirectResponse(url="/", status_code=status.HTTP_302_FOUND)
    redirect.set_cookie(
        key=settings.session_cookie_name,
        value=sign_session_cookie(session, settings.secret_key),
        max_age=settings.session_max_age_seconds,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )

    logger.info(f"User {user.id} logged in with {provider}{' (new account)' if created else ''}")

    return redirect
