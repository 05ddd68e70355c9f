"""FastAPI dependencies for authentication.

Requests pass through explicit stages, each one a dependency that builds on
the previous stage's result:

1. `get_session_data` - signed cookie -> live session (or None)
2. `get_current_user_optional` - session -> user record (or None)
3. `get_current_user` - the auth gate: user, or 401

## Usage

```python
from fastapi import Depends
from weather_news.auth import get_current_user
from weather_news.database import User

@router.get("/profile")
async def get_profile(user: User = Depends(get_current_user)):
    return {"email": user.email, "name": user.name}

# Gate a whole router
router = APIRouter(dependencies=[Depends(get_current_user)])
```
"""

from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, Request, status

from weather_news.auth.oauth import OAuthStateStore
from weather_news.auth.session import SessionData, SessionStore, read_session_cookie
from weather_news.config import get_settings
from weather_news.database.models import User
from weather_news.database.users import UserStore

logger = logging.getLogger(__name__)


def get_session_store(request: Request) -> SessionStore:
    """The session store chosen at startup."""
    return request.app.state.session_store


def get_user_store(request: Request) -> UserStore:
    """The user store chosen at startup."""
    return request.app.state.user_store


def get_oauth_states(request: Request) -> OAuthStateStore:
    return request.app.state.oauth_states


async def get_session_data(
    request: Request,
    sessions: SessionStore = Depends(get_session_store),
) -> SessionData | None:
    """Extract and verify the session behind the session cookie.

    Returns None if there is no cookie, the cookie is forged or expired, or
    the session was destroyed.
    """
    settings = get_settings()

    cookie = request.cookies.get(settings.session_cookie_name)
    if not cookie:
        return None

    token = read_session_cookie(cookie, settings.secret_key)
    if token is None:
        return None

    return await sessions.get(token)


async def get_current_user_optional(
    session: SessionData | None = Depends(get_session_data),
    users: UserStore = Depends(get_user_store),
) -> User | None:
    """Get the current user if logged in, or None.

    Use this for routes that work with or without authentication.
    """
    if session is None:
        return None

    user = await users.get(session.user_id)
    if user is None:
        logger.warning(f"Session for non-existent user: {session.user_id}")
        return None

    return user


async def get_current_user(
    user: User | None = Depends(get_current_user_optional),
) -> User:
    """Get the current authenticated user.

    Raises 401 if not authenticated.
    Use this for routes that require authentication.
    """
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    return user
