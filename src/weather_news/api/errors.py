"""Exception handlers.

Every error leaves the API as JSON with an `error` key:

| Failure | Status | Body |
|---------|--------|------|
| Unmatched route | 404 | `{"error": "Not Found", "message": ...}` |
| Other HTTPException | its status | `{"error": detail}` |
| Database failure | 503 | `{"error": "Database service unavailable", ...}` |
| Anything else | 500 | `{"error": "Something went wrong", "message": ...}` |

Exception detail is only exposed outside production.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from weather_news.config import get_settings

logger = logging.getLogger(__name__)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        content = {
            "error": "Not Found",
            "message": "The requested resource was not found",
        }
    else:
        content = {"error": exc.detail}

    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "error": "Database service unavailable",
            "message": "Please try again later",
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    settings = get_settings()
    message = "An unexpected error occurred" if settings.is_production else str(exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Something went wrong", "message": message},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
