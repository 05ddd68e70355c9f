"""Weather and news proxy routes.

Both routes sit behind the auth gate: the router-level dependency rejects
unauthenticated requests with 401 before a handler runs.

Each request makes exactly one upstream call with the server-held API key and
relays the upstream JSON body unchanged. Any upstream failure becomes the
same generic 500 so nothing about the cause leaks to the browser.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from weather_news.auth.dependencies import get_current_user
from weather_news.proxy.base import UpstreamError
from weather_news.proxy.news import NewsClient
from weather_news.proxy.weather import WeatherClient

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(get_current_user)])

WEATHER_ERROR = "Failed to fetch weather data"
NEWS_ERROR = "Failed to fetch news data"


def get_weather_client(request: Request) -> WeatherClient:
    return request.app.state.weather_client


def get_news_client(request: Request) -> NewsClient:
    return request.app.state.news_client


@router.get("/weather/{city}")
async def get_weather(
    city: str,
    client: WeatherClient = Depends(get_weather_client),
) -> JSONResponse:
    """Current weather for a city, straight from the weather provider."""
    try:
        data = await client.get_current(city)
    except UpstreamError as e:
        logger.error(f"Weather lookup for {city!r} failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": WEATHER_ERROR},
        )

    return JSONResponse(content=data)


@router.get("/news/{category}")
async def get_news(
    category: str,
    client: NewsClient = Depends(get_news_client),
) -> JSONResponse:
    """Top headlines for a category, straight from the news provider."""
    try:
        data = await client.top_headlines(category)
    except UpstreamError as e:
        logger.error(f"News lookup for {category!r} failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": NEWS_ERROR},
        )

    return JSONResponse(content=data)
