"""Base upstream API client.

Every proxy endpoint forwards its request to one upstream JSON API through a
subclass of `UpstreamClient`. Responses are relayed untouched; nothing is
translated, cached or retried.

## Failure Handling

Any failure - an HTTP error status, a network error, a body that is not JSON -
is raised as `UpstreamError`. Callers collapse all of them into one generic
message for the browser, so the details only ever reach the log.
"""

from __future__ import annotations

from typing import Any

import httpx


class UpstreamError(Exception):
    """Base exception for upstream API failures."""

    def __init__(
        self,
        message: str,
        upstream: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.upstream = upstream
        self.status_code = status_code
        self.response_body = response_body


class UpstreamClient:
    """Client for one upstream JSON API.

    Attributes:
        name: Human-readable upstream name
        base_url: Endpoint the client calls

    Example:
        ```python
        class MyClient(UpstreamClient):
            name = "my_api"

            async def lookup(self, key: str) -> dict:
                return await self._fetch_json({"q": key, "key": self.api_key})
        ```
    """

    name: str
    base_url: str

    def __init__(
        self,
        api_key: str | None,
        client: httpx.AsyncClient,
        base_url: str | None = None,
        user_agent: str | None = None,
    ):
        """Initialize the client.

        Args:
            api_key: Server-held API key for the upstream
            client: Shared HTTP client; its owner closes it
            base_url: Override the endpoint URL
            user_agent: User-Agent string for requests
        """
        self.api_key = api_key
        if base_url:
            self.base_url = base_url
        self.user_agent = user_agent or "weather-news-portal/0.1.0"
        self._client = client

    def _get_default_headers(self) -> dict[str, str]:
        """Get default headers for requests."""
        return {
            "User-Agent": self.user_agent,
            "Accept": "application/json",
        }

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _fetch_json(self, params: dict[str, Any]) -> Any:
        """Make exactly one GET request and return the decoded JSON body.

        Raises:
            UpstreamError: On any failure
        """
        if not self.is_configured:
            raise UpstreamError(f"{self.name} API key not configured", upstream=self.name)

        try:
            response = await self._client.get(
                self.base_url, params=params, headers=self._get_default_headers()
            )
        except httpx.HTTPError as e:
            raise UpstreamError(
                f"Request to {self.name} failed: {e.__class__.__name__}",
                upstream=self.name,
            ) from e

        if response.status_code >= 400:
            raise UpstreamError(
                f"{self.name} request failed: {response.status_code}",
                upstream=self.name,
                status_code=response.status_code,
                response_body=response.text,
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(
                f"{self.name} returned a non-JSON body",
                upstream=self.name,
                status_code=response.status_code,
            ) from e
