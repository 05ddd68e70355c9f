"""User store.

A user is identified by (provider, provider id). The first login with a given
provider id creates the account; later logins find the same row and refresh
its email, name and avatar from the provider profile.

Two implementations share the `UserStore` interface:

- `DatabaseUserStore`: SQL-backed, used when the database is available
- `MemoryUserStore`: per-process dict, used when it is not (and in tests)
"""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from weather_news.database.connection import Database
from weather_news.database.models import User
from weather_news.models.profile import Provider, ProviderProfile

logger = logging.getLogger(__name__)

_PROVIDER_COLUMNS = {
    Provider.GOOGLE: "google_id",
    Provider.GITHUB: "github_id",
}


def _apply_profile(user: User, profile: ProviderProfile, now: datetime) -> None:
    user.email = profile.email
    user.name = profile.name
    user.avatar_url = profile.avatar_url
    user.last_login_at = now


class UserStore(ABC):
    """Interface for looking up and creating users."""

    @abstractmethod
    async def get(self, user_id: uuid.UUID) -> User | None:
        """Get a user by internal id."""

    @abstractmethod
    async def find_by_provider(self, provider: Provider, provider_id: str) -> User | None:
        """Find the user registered under a provider id."""

    @abstractmethod
    async def resolve(self, profile: ProviderProfile) -> tuple[User, bool]:
        """Find or create the user for a provider profile.

        Returns:
            (user, created) where created is True for a first login
        """

    @abstractmethod
    async def count(self) -> int:
        """Number of stored users."""


class MemoryUserStore(UserStore):
    """User store held in process memory. Lost on restart."""

    def __init__(self) -> None:
        self._users: dict[uuid.UUID, User] = {}
        self._by_provider: dict[tuple[Provider, str], uuid.UUID] = {}

    async def get(self, user_id: uuid.UUID) -> User | None:
        return self._users.get(user_id)

    async def find_by_provider(self, provider: Provider, provider_id: str) -> User | None:
        user_id = self._by_provider.get((provider, provider_id))
        if user_id is None:
            return None
        return self._users.get(user_id)

    async def resolve(self, profile: ProviderProfile) -> tuple[User, bool]:
        now = datetime.now(timezone.utc)
        user = await self.find_by_provider(profile.provider, profile.provider_id)
        if user is not None:
            _apply_profile(user, profile, now)
            user.updated_at = now
            return user, False

        # ORM defaults only fire on flush, so fill them in by hand
        user = User(id=uuid.uuid4(), created_at=now, updated_at=now)
        setattr(user, _PROVIDER_COLUMNS[profile.provider], profile.provider_id)
        _apply_profile(user, profile, now)

        self._users[user.id] = user
        self._by_provider[(profile.provider, profile.provider_id)] = user.id
        logger.info(f"Created {profile.provider.value} user {user.id}")
        return user, True

    async def count(self) -> int:
        return len(self._users)


class DatabaseUserStore(UserStore):
    """User store backed by the `users` table."""

    def __init__(self, database: Database):
        self.database = database

    async def get(self, user_id: uuid.UUID) -> User | None:
        async with self.database.session() as session:
            return await session.get(User, user_id)

    async def find_by_provider(self, provider: Provider, provider_id: str) -> User | None:
        column = getattr(User, _PROVIDER_COLUMNS[provider])
        async with self.database.session() as session:
            result = await session.execute(select(User).where(column == provider_id))
            return result.scalar_one_or_none()

    async def resolve(self, profile: ProviderProfile) -> tuple[User, bool]:
        attribute = _PROVIDER_COLUMNS[profile.provider]
        column = getattr(User, attribute)
        now = datetime.now(timezone.utc)

        async with self.database.session() as session:
            result = await session.execute(
                select(User).where(column == profile.provider_id)
            )
            user = result.scalar_one_or_none()
            created = user is None

            if user is None:
                user = User(created_at=now)
                setattr(user, attribute, profile.provider_id)
                session.add(user)
            _apply_profile(user, profile, now)

            try:
                await session.commit()
            except IntegrityError:
                # A concurrent first login for the same id won the insert
                await session.rollback()
                result = await session.execute(
                    select(User).where(column == profile.provider_id)
                )
                user = result.scalar_one()
                _apply_profile(user, profile, now)
                await session.commit()
                created = False

        if created:
            logger.info(f"Created {profile.provider.value} user {user.id}")
        return user, created

    async def count(self) -> int:
        async with self.database.session() as session:
            result = await session.execute(select(func.count()).select_from(User))
            return result.scalar_one()
