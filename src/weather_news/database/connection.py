"""Database connection management.

Provides async database access using SQLAlchemy. PostgreSQL (asyncpg) is the
production target; SQLite (aiosqlite) works for local development and tests.

## Configuration

Database connection is configured via environment variables:
- DATABASE_URL: Full connection string
- DATABASE_POOL_SIZE: Connection pool size (default: 5)
- DATABASE_MAX_OVERFLOW: Max overflow connections (default: 10)

## Usage

```python
from weather_news.database import Database

database = Database(settings.database_url)
await database.connect()
await database.create_tables()

async with database.session() as session:
    user = await session.get(User, user_id)
```

The application creates one `Database` during startup and keeps it on
`app.state.database`; nothing here is a module-level singleton.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from weather_news.database.models import Base

logger = logging.getLogger(__name__)


class Database:
    """Async engine plus session factory for one database."""

    def __init__(
        self,
        url: str,
        pool_size: int = 5,
        max_overflow: int = 10,
        echo: bool = False,
    ):
        self.url = url
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.echo = echo
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    async def connect(self) -> None:
        """Create the engine and verify the database answers.

        Raises:
            SQLAlchemyError or OSError: If the database is unreachable
        """
        logger.info("Initializing database connection")

        engine_kwargs: dict = {"echo": self.echo, "pool_pre_ping": True}
        if not self.is_sqlite:
            # SQLite uses a static/null pool that takes no sizing arguments
            engine_kwargs["pool_size"] = self.pool_size
            engine_kwargs["max_overflow"] = self.max_overflow

        engine = create_async_engine(self.url, **engine_kwargs)
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception:
            await engine.dispose()
            raise

        self._engine = engine
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

        logger.info("Database connection initialized")

    async def close(self) -> None:
        """Dispose of the engine. Safe to call when not connected."""
        if self._engine:
            logger.info("Closing database connection")
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    async def create_tables(self) -> None:
        """Create all database tables that do not exist yet."""
        if self._engine is None:
            raise RuntimeError("Database not initialized. Call connect() first.")

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info("Database tables ready")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get a database session.

        The session is rolled back on error and always closed on exit.
        Transactions are not committed automatically; call commit() explicitly.
        """
        if self._session_factory is None:
            raise RuntimeError("Database not initialized. Call connect() first.")

        session = self._session_factory()
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
