"""OAuth 2.0 authorization-code flow shared by all identity providers.

Each provider subclass supplies its endpoints, scopes and a profile loader
that turns the provider's user-info response into a `ProviderProfile`.

## Flow

1. `get_authorization_url(state)` - where to send the browser
2. Provider redirects back with `code` and `state`
3. `authenticate(code)` - exchange the code for an access token, then load
   and validate the user's profile

Token exchange and profile requests go through authlib's httpx client, so
tests can pass an `httpx.MockTransport` instead of reaching the provider.
"""

from __future__ import annotations

import logging
import secrets
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
from authlib.common.errors import AuthlibBaseError
from authlib.integrations.httpx_client import AsyncOAuth2Client

from weather_news.models.profile import ProfileError, Provider, ProviderProfile

logger = logging.getLogger(__name__)

STATE_TTL = timedelta(minutes=10)


class OAuthError(Exception):
    """Raised when a provider rejects or fails the authorization flow."""

    def __init__(self, message: str, provider: Provider | str):
        super().__init__(message)
        self.provider = provider


class OAuthStateStore:
    """Single-use OAuth `state` values, bound to the provider that issued them."""

    def __init__(self, ttl: timedelta = STATE_TTL):
        self.ttl = ttl
        self._states: dict[str, tuple[Provider, datetime]] = {}

    def issue(self, provider: Provider) -> str:
        """Generate and remember a random state token."""
        self._prune()
        state = secrets.token_urlsafe(32)
        self._states[state] = (provider, datetime.now(timezone.utc))
        return state

    def consume(self, state: str | None, provider: Provider) -> bool:
        """Verify and forget a state token."""
        if not state or state not in self._states:
            return False

        issued_for, created = self._states.pop(state)
        if issued_for != provider:
            return False
        return datetime.now(timezone.utc) - created < self.ttl

    def _prune(self) -> None:
        cutoff = datetime.now(timezone.utc) - self.ttl
        stale = [s for s, (_, created) in self._states.items() if created < cutoff]
        for state in stale:
            del self._states[state]

    def __len__(self) -> int:
        return len(self._states)


class OAuthProvider(ABC):
    """OAuth 2.0 client for one identity provider.

    Attributes:
        name: Provider identifier
        authorize_url: Authorization endpoint the browser is sent to
        token_url: Token endpoint for the code exchange
        scopes: Scopes requested at authorization time
    """

    name: Provider
    authorize_url: str
    token_url: str
    scopes: list[str]

    def __init__(
        self,
        client_id: str | None,
        client_secret: str | None,
        redirect_uri: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the provider client.

        Args:
            client_id: OAuth client ID
            client_secret: OAuth client secret
            redirect_uri: Callback URL registered with the provider
            transport: Optional httpx transport (tests)
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.transport = transport

        if not self.is_configured:
            logger.warning(
                f"{self.name.value} OAuth not configured; "
                f"set {self.name.value.upper()}_CLIENT_ID and "
                f"{self.name.value.upper()}_CLIENT_SECRET"
            )

    @property
    def is_configured(self) -> bool:
        """Check if the provider has client credentials."""
        return bool(self.client_id and self.client_secret)

    def _client(self) -> AsyncOAuth2Client:
        kwargs: dict[str, Any] = {}
        if self.transport is not None:
            kwargs["transport"] = self.transport
        return AsyncOAuth2Client(
            client_id=self.client_id,
            client_secret=self.client_secret,
            scope=" ".join(self.scopes),
            redirect_uri=self.redirect_uri,
            **kwargs,
        )

    def get_authorization_url(self, state: str) -> str:
        """Build the provider authorization URL for a state token."""
        if not self.is_configured:
            raise OAuthError(f"{self.name.value} OAuth not configured", self.name)

        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.scopes),
            "state": state,
            **self._authorization_params(),
        }
        return str(httpx.URL(self.authorize_url, params=params))

    def _authorization_params(self) -> dict[str, str]:
        """Extra provider-specific authorization parameters."""
        return {}

    async def authenticate(self, code: str) -> ProviderProfile:
        """Exchange an authorization code and load the user's profile.

        Raises:
            OAuthError: If the code exchange or a profile request fails
            ProfileError: If the profile lacks required fields
        """
        if not self.is_configured:
            raise OAuthError(f"{self.name.value} OAuth not configured", self.name)

        async with self._client() as client:
            try:
                await client.fetch_token(self.token_url, code=code)
            except (AuthlibBaseError, httpx.HTTPError, ValueError, KeyError) as e:
                logger.error(f"{self.name.value} token exchange failed: {e}")
                raise OAuthError("Token exchange failed", self.name) from e

            try:
                return await self._load_profile(client)
            except ProfileError:
                raise
            except (httpx.HTTPError, ValueError) as e:
                logger.error(f"{self.name.value} profile request failed: {e}")
                raise OAuthError("Failed to load user profile", self.name) from e

    async def _get_json(
        self,
        client: AsyncOAuth2Client,
        url: str,
        headers: dict[str, str] | None = None,
        expected: type = dict,
    ) -> Any:
        """GET a JSON resource with the access token attached.

        Raises:
            OAuthError: On a non-200 status or a body that is not `expected`
        """
        response = await client.get(url, headers=headers)
        if response.status_code != 200:
            logger.error(
                f"{self.name.value} request to {url} failed: {response.status_code}"
            )
            raise OAuthError(
                f"Profile request failed: {response.status_code}", self.name
            )

        data = response.json()
        if not isinstance(data, expected):
            logger.error(
                f"{self.name.value} request to {url} returned "
                f"{type(data).__name__}, expected {expected.__name__}"
            )
            raise OAuthError("Unexpected profile response", self.name)
        return data

    @abstractmethod
    async def _load_profile(self, client: AsyncOAuth2Client) -> ProviderProfile:
        """Load and validate the signed-in user's profile."""
