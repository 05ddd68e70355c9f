"""FastAPI application and routes.

This module provides the HTTP surface of the weather & news portal.

## API Structure

- / and /login - Browser UI
- /auth - Authentication endpoints (Google and GitHub OAuth)
- /api/weather/{city} - Current weather (authenticated)
- /api/news/{category} - Top headlines (authenticated)
- /healthz - Health check

## Authentication

The /api endpoints require a session cookie. Sessions are created during
OAuth login.

## Security

- HTTPS required in production (Secure cookies)
- Security headers on every response
- Per-client rate limiting
"""

from weather_news.api.app import create_app

__all__ = ["create_app"]
