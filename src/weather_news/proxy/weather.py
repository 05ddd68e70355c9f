"""OpenWeatherMap current-weather client.

## Endpoint
- URL: https://api.openweathermap.org/data/2.5/weather
- Auth: API key in the `appid` query parameter

## Request Parameters
| Parameter | Description |
|-----------|-------------|
| q | City name, optionally "city,country" |
| appid | API key |
| units | metric (Celsius, m/s), imperial, standard |

## Response Format (abridged)
```json
{
  "name": "London",
  "sys": {"country": "GB", "sunrise": 1704096000, "sunset": 1704124800},
  "weather": [{"description": "light rain", "icon": "10d"}],
  "main": {"temp": 7.2, "feels_like": 4.1, "temp_min": 6.0, "temp_max": 8.3,
           "humidity": 81, "pressure": 1012},
  "wind": {"speed": 4.6},
  "visibility": 10000,
  "clouds": {"all": 75},
  "timezone": 0
}
```

The body is relayed to the browser as-is; the client does all formatting.
"""

from __future__ import annotations

from typing import Any

import httpx

from weather_news.proxy.base import UpstreamClient

OPENWEATHER_URL = "https://api.openweathermap.org/data/2.5/weather"


class WeatherClient(UpstreamClient):
    """Current conditions for a city, in a fixed unit system."""

    name = "openweathermap"
    base_url = OPENWEATHER_URL

    def __init__(
        self,
        api_key: str | None,
        client: httpx.AsyncClient,
        units: str = "metric",
        base_url: str | None = None,
    ):
        super().__init__(api_key=api_key, client=client, base_url=base_url)
        self.units = units

    async def get_current(self, city: str) -> Any:
        """Fetch current weather for a city."""
        return await self._fetch_json(
            {"q": city, "appid": self.api_key, "units": self.units}
        )
