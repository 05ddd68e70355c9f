"""Session management.

A session is a server-side record tying an opaque random token to a user.
The browser only ever holds a signed JWT wrapping that token, so a forged or
altered cookie is rejected before any store lookup, and a session destroyed
on the server can no longer authenticate even though its cookie still
verifies.

## Lifetime

Sessions expire a fixed period after issuance (default: 1 day). Activity does
not extend them.

## Stores

- `DatabaseSessionStore`: `sessions` table, payload encrypted at rest.
  Survives restarts.
- `MemorySessionStore`: per-process dict. Used when the database is not
  configured or not reachable; every session is lost on restart.

The application picks one store at startup and keeps it on
`app.state.session_store`.

## Cookie Token Structure

```json
{
  "sid": "opaque-session-token",
  "iat": 1234567890,
  "exp": 1234654290,
  "type": "session"
}
```
"""

from __future__ import annotations

import json
import logging
import secrets
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from sqlalchemy import delete, select

from weather_news.database.connection import Database
from weather_news.database.encryption import DecryptionError, decrypt_value, encrypt_value
from weather_news.database.models import SessionRecord

logger = logging.getLogger(__name__)

# JWT configuration
ALGORITHM = "HS256"
TOKEN_TYPE = "session"

DEFAULT_SESSION_LIFETIME = timedelta(days=1)


def _as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; every stored time is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class SessionData:
    """A live session."""

    token: str
    user_id: uuid.UUID
    created_at: datetime
    expires_at: datetime

    @property
    def is_expired(self) -> bool:
        """Check if the session has expired."""
        return datetime.now(timezone.utc) >= self.expires_at


def sign_session_cookie(session: SessionData, secret_key: str) -> str:
    """Wrap a session token in a signed JWT for the cookie."""
    payload = {
        "sid": session.token,
        "iat": int(session.created_at.timestamp()),
        "exp": int(session.expires_at.timestamp()),
        "type": TOKEN_TYPE,
    }
    return jwt.encode(payload, secret_key, algorithm=ALGORITHM)


def read_session_cookie(cookie: str, secret_key: str) -> str | None:
    """Verify a session cookie and return the session token inside it.

    Returns:
        The opaque session token, or None if the cookie is forged, expired
        or malformed
    """
    try:
        payload = jwt.decode(cookie, secret_key, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.debug(f"Session cookie verification failed: {e}")
        return None

    if payload.get("type") != TOKEN_TYPE:
        logger.debug("Invalid token type")
        return None

    token = payload.get("sid")
    if not isinstance(token, str) or not token:
        logger.debug("Session cookie carries no session id")
        return None

    return token


class SessionStore(ABC):
    """Interface for issuing, resolving and destroying sessions."""

    def __init__(self, lifetime: timedelta = DEFAULT_SESSION_LIFETIME):
        self.lifetime = lifetime

    def _new_session(self, user_id: uuid.UUID) -> SessionData:
        now = datetime.now(timezone.utc)
        return SessionData(
            token=secrets.token_urlsafe(32),
            user_id=user_id,
            created_at=now,
            expires_at=now + self.lifetime,
        )

    @abstractmethod
    async def create(self, user_id: uuid.UUID) -> SessionData:
        """Issue a new session for a user."""

    @abstractmethod
    async def get(self, token: str) -> SessionData | None:
        """Resolve a token to its session, or None if unknown or expired."""

    @abstractmethod
    async def destroy(self, token: str) -> bool:
        """Destroy a session.

        Returns:
            True if a session was removed
        """

    @abstractmethod
    async def purge_expired(self) -> int:
        """Remove expired sessions and return how many were removed."""


class MemorySessionStore(SessionStore):
    """Sessions held in process memory. Lost on restart."""

    def __init__(self, lifetime: timedelta = DEFAULT_SESSION_LIFETIME):
        super().__init__(lifetime)
        self._sessions: dict[str, SessionData] = {}

    async def create(self, user_id: uuid.UUID) -> SessionData:
        await self.purge_expired()
        session = self._new_session(user_id)
        self._sessions[session.token] = session
        return session

    async def get(self, token: str) -> SessionData | None:
        session = self._sessions.get(token)
        if session is None:
            return None
        if session.is_expired:
            del self._sessions[token]
            return None
        return session

    async def destroy(self, token: str) -> bool:
        return self._sessions.pop(token, None) is not None

    async def purge_expired(self) -> int:
        expired = [token for token, s in self._sessions.items() if s.is_expired]
        for token in expired:
            del self._sessions[token]
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)


class DatabaseSessionStore(SessionStore):
    """Sessions persisted in the `sessions` table."""

    def __init__(
        self,
        database: Database,
        lifetime: timedelta = DEFAULT_SESSION_LIFETIME,
    ):
        super().__init__(lifetime)
        self.database = database

    async def create(self, user_id: uuid.UUID) -> SessionData:
        session = self._new_session(user_id)
        record = SessionRecord(
            token=session.token,
            payload_encrypted=encrypt_value(json.dumps({"user_id": str(user_id)})),
            created_at=session.created_at,
            expires_at=session.expires_at,
        )

        async with self.database.session() as db:
            await db.execute(
                delete(SessionRecord).where(SessionRecord.expires_at <= session.created_at)
            )
            db.add(record)
            await db.commit()

        return session

    async def get(self, token: str) -> SessionData | None:
        async with self.database.session() as db:
            result = await db.execute(
                select(SessionRecord).where(SessionRecord.token == token)
            )
            record = result.scalar_one_or_none()
            if record is None:
                return None

            expires_at = _as_utc(record.expires_at)
            if datetime.now(timezone.utc) >= expires_at:
                await db.delete(record)
                await db.commit()
                return None

            try:
                payload = json.loads(decrypt_value(record.payload_encrypted))
                user_id = uuid.UUID(payload["user_id"])
            except (DecryptionError, KeyError, ValueError, TypeError) as e:
                logger.warning(f"Discarding unreadable session record: {e}")
                await db.delete(record)
                await db.commit()
                return None

        return SessionData(
            token=token,
            user_id=user_id,
            created_at=_as_utc(record.created_at),
            expires_at=expires_at,
        )

    async def destroy(self, token: str) -> bool:
        async with self.database.session() as db:
            result = await db.execute(
                delete(SessionRecord).where(SessionRecord.token == token)
            )
            await db.commit()
        return result.rowcount > 0

    async def purge_expired(self) -> int:
        async with self.database.session() as db:
            result = await db.execute(
                delete(SessionRecord).where(
                    SessionRecord.expires_at <= datetime.now(timezone.utc)
                )
            )
            await db.commit()
        return result.rowcount
