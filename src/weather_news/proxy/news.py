"""NewsAPI top-headlines client.

## Endpoint
- URL: https://newsapi.org/v2/top-headlines
- Auth: API key in the `apiKey` query parameter

## Request Parameters
| Parameter | Description |
|-----------|-------------|
| country | Two-letter country code |
| category | business, entertainment, general, health, science, sports, technology |
| apiKey | API key |

## Response Format (abridged)
```json
{
  "status": "ok",
  "totalResults": 38,
  "articles": [
    {"source": {"name": "..."}, "title": "...", "description": "...",
     "url": "...", "urlToImage": "...", "publishedAt": "2024-01-01T12:00:00Z"}
  ]
}
```
"""

from __future__ import annotations

from typing import Any

import httpx

from weather_news.proxy.base import UpstreamClient

NEWSAPI_URL = "https://newsapi.org/v2/top-headlines"


class NewsClient(UpstreamClient):
    """Top headlines for a category, in a fixed country."""

    name = "newsapi"
    base_url = NEWSAPI_URL

    def __init__(
        self,
        api_key: str | None,
        client: httpx.AsyncClient,
        country: str = "us",
        base_url: str | None = None,
    ):
        super().__init__(api_key=api_key, client=client, base_url=base_url)
        self.country = country

    async def top_headlines(self, category: str) -> Any:
        """Fetch top headlines for a category."""
        return await self._fetch_json(
            {"country": self.country, "category": category, "apiKey": self.api_key}
        )
