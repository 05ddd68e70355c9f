"""Upstream API clients behind the proxy endpoints."""

from weather_news.proxy.base import UpstreamClient, UpstreamError
from weather_news.proxy.news import NewsClient
from weather_news.proxy.weather import WeatherClient

__all__ = [
    "UpstreamClient",
    "UpstreamError",
    "NewsClient",
    "WeatherClient",
]
