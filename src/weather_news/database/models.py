"""Database models for the weather & news portal.

## Security Notes

- Session payloads are encrypted at rest using Fernet symmetric encryption
- The encryption key is derived from the application secret
- Session tokens are random and carry no user data themselves

## Schema Overview

```
users
sessions - payload (owning user id) encrypted
```
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, String, Text, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all database models."""


class User(Base):
    """User account model.

    Users are created on their first OAuth login. Exactly one of google_id or
    github_id is set, depending on which provider the account came from; each
    is unique within its provider namespace.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    google_id: Mapped[str | None] = mapped_column(String(255), unique=True)
    github_id: Mapped[str | None] = mapped_column(String(255), unique=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str | None] = mapped_column(String(255))
    avatar_url: Mapped[str | None] = mapped_column(String(512))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    @property
    def provider(self) -> str | None:
        """Name of the identity provider this account belongs to."""
        if self.google_id:
            return "google"
        if self.github_id:
            return "github"
        return None

    def __repr__(self) -> str:
        return f"<User {self.email}>"


class SessionRecord(Base):
    """A login session.

    The token is the opaque identifier carried (signed) in the session cookie.
    The payload holds the session owner and is encrypted at rest.
    """

    __tablename__ = "sessions"

    token: Mapped[str] = mapped_column(String(128), primary_key=True)
    payload_encrypted: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("ix_sessions_expires_at", "expires_at"),)

    def __repr__(self) -> str:
        return f"<SessionRecord expires_at={self.expires_at}>"
