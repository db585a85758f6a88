"""Expo push provider configuration schema."""

from __future__ import annotations

from typing import Annotated, Final
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator

DEFAULT_EXPO_API_URL: Final[str] = "https://exp.host/--/api/v2/push/send"
MAX_EXPO_BATCH_SIZE: Final[int] = 100


class ExpoConfig(BaseModel):
    """Pydantic schema for the Expo push service."""

    api_url: Annotated[
        str,
        Field(description="Expo push send endpoint"),
    ] = DEFAULT_EXPO_API_URL
    batch_size: Annotated[
        int,
        Field(
            description="Messages per request; Expo accepts at most 100",
            ge=1,
            le=MAX_EXPO_BATCH_SIZE,
        ),
    ] = MAX_EXPO_BATCH_SIZE
    access_token: Annotated[
        str | None,
        Field(description="Optional Expo access token for enhanced push security"),
    ] = None
    channel_id: Annotated[
        str,
        Field(description="Android notification channel for urgent messages", min_length=1),
    ] = "emergency"

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, value: str) -> str:
        """Require an absolute http(s) URL."""
        cleaned = value.strip()
        parsed = urlparse(cleaned)
        if parsed.scheme.lower() not in ("https", "http") or not parsed.hostname:
            msg = "Expo api_url must be an absolute http(s) URL"
            raise ValueError(msg)
        return cleaned

    @field_validator("access_token")
    @classmethod
    def normalize_access_token(cls, value: str | None) -> str | None:
        """Treat blank tokens (unset env vars) as absent."""
        if value is None:
            return None
        trimmed = value.strip()
        return trimmed or None
