"""Identity provider profile schema.

Every OAuth adapter translates its provider's user-info response into a
`ProviderProfile` before anything touches the user store. Validation happens
here, so a provider response missing a required field becomes a handled
`ProfileError` instead of a KeyError deep inside a request.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator


class Provider(str, Enum):
    """Supported identity providers."""

    GOOGLE = "google"
    GITHUB = "github"


class ProfileError(ValueError):
    """Raised when a provider profile lacks a required field."""

    def __init__(
        self,
        message: str,
        provider: Provider | str,
        fields: tuple[str, ...] = (),
    ):
        super().__init__(message)
        self.provider = provider
        self.fields = fields


class ProviderProfile(BaseModel):
    """A user profile as reported by an identity provider."""

    provider: Provider
    provider_id: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    name: str | None = None
    avatar_url: str | None = None

    @field_validator("provider_id", mode="before")
    @classmethod
    def coerce_provider_id(cls, v: Any) -> Any:
        """GitHub reports numeric ids; store every id as text."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        if "@" not in v:
            raise ValueError("email address is malformed")
        return v.strip()

    @classmethod
    def from_provider(cls, provider: Provider, **fields: Any) -> ProviderProfile:
        """Build a profile, converting validation failures to ProfileError."""
        try:
            return cls(provider=provider, **fields)
        except ValidationError as e:
            invalid = tuple(
                ".".join(str(part) for part in err["loc"]) for err in e.errors()
            )
            raise ProfileError(
                f"{provider.value} profile is missing or has invalid fields: "
                f"{', '.join(invalid)}",
                provider=provider,
                fields=invalid,
            ) from e
