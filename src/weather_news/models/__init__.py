"""Data models for the weather & news portal."""

from weather_news.models.profile import Provider, ProfileError, ProviderProfile

__all__ = [
    "Provider",
    "ProfileError",
    "ProviderProfile",
]
