"""FastAPI application factory.

Creates and configures the FastAPI application with all routes and middleware.

## Usage

```python
from weather_news.api import create_app

app = create_app()

# Run with uvicorn
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=3000)
```

Or use the CLI, which also steps past occupied ports:

```
weather-news serve --port 3000
```

## Configuration

The app is configured via environment variables. See `weather_news.config`
for available settings.

## Storage Selection

With `STORAGE_BACKEND=database` the app connects to `DATABASE_URL` on startup.
If that fails, the error is logged and the app keeps running on in-memory
user and session stores; logins then last only until the process restarts.
`STORAGE_BACKEND=memory` skips the database entirely.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from weather_news.api.errors import register_exception_handlers
from weather_news.api.middleware import RateLimitMiddleware, SecurityHeadersMiddleware
from weather_news.auth.oauth import OAuthStateStore
from weather_news.auth.providers import build_oauth_providers
from weather_news.auth.session import DatabaseSessionStore, MemorySessionStore, SessionStore
from weather_news.config import Settings, get_settings
from weather_news.database.connection import Database
from weather_news.database.users import DatabaseUserStore, MemoryUserStore, UserStore
from weather_news.proxy.news import NewsClient
from weather_news.proxy.weather import WeatherClient

logger = logging.getLogger(__name__)


async def open_storage(settings: Settings) -> tuple[Database | None, UserStore, SessionStore]:
    """Choose user and session stores for this process.

    Returns:
        (database or None, user store, session store)
    """
    lifetime = timedelta(seconds=settings.session_max_age_seconds)

    if settings.storage_backend == "database":
        database = Database(
            settings.database_url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            echo=settings.database_echo,
        )
        try:
            await database.connect()
            await database.create_tables()
        except Exception as e:
            logger.error(f"Database unavailable ({e.__class__.__name__}: {e})")
            logger.warning("Falling back to in-memory session store; sessions will not survive a restart")
            await database.close()
        else:
            logger.info("Using database session store")
            return database, DatabaseUserStore(database), DatabaseSessionStore(database, lifetime)

    logger.info("Using memory store for sessions")
    return None, MemoryUserStore(), MemorySessionStore(lifetime)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown tasks:
    - Choose and open the user/session stores
    - Create the shared upstream HTTP client
    - Clean up on shutdown
    """
    settings = get_settings()

    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Base URL: {settings.public_base_url}")
    logger.info(f"Google callback: {settings.google_redirect_uri}")
    logger.info(f"GitHub callback: {settings.github_redirect_uri}")

    database, user_store, session_store = await open_storage(settings)
    app.state.database = database
    app.state.user_store = user_store
    app.state.session_store = session_store

    app.state.oauth_providers = build_oauth_providers(settings)
    app.state.oauth_states = OAuthStateStore()

    http_client = httpx.AsyncClient()
    app.state.weather_client = WeatherClient(
        settings.weather_api_key,
        units=settings.weather_units,
        base_url=settings.weather_api_url,
        client=http_client,
    )
    app.state.news_client = NewsClient(
        settings.news_api_key,
        country=settings.news_country,
        base_url=settings.news_api_url,
        client=http_client,
    )

    yield

    # Shutdown
    logger.info("Shutting down")
    await http_client.aclose()
    if database is not None:
        await database.close()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Weather and news dashboard behind Google/GitHub sign-in",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    register_exception_handlers(app)

    # Middleware (last added runs first)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # Include routers
    from weather_news.api.routes import auth, pages, proxy
    from weather_news.api.routes.pages import STATIC_DIR

    app.include_router(pages.router, tags=["Pages"])
    app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
    app.include_router(proxy.router, prefix="/api", tags=["Proxy"])
    app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    # Health check endpoint
    @app.get("/healthz", tags=["Health"])
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok"}

    return app
