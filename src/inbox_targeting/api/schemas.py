"""Request models and response serializers for the HTTP API.

Request bodies are validated with Pydantic before anything reaches a store;
platform, locale and municipality are closed value sets and are never
coerced. Responses never carry a raw push token.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Annotated, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictBool, field_validator

from inbox_targeting.core.taxonomy import is_urgent
from inbox_targeting.storage.device_tokens import mask_token
from inbox_targeting.types import DeviceRegistration, Message, PushLogEntry


class PushTokenRequest(BaseModel):
    """Body of ``POST /device/push-token``."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    push_token: Annotated[
        str,
        Field(
            validation_alias=AliasChoices("pushToken", "expoPushToken", "push_token"),
            min_length=1,
            max_length=512,
            description="Delivery token issued to the device by the push service",
        ),
    ]
    platform: Annotated[Literal["ios", "android"], Field(description="Mobile platform")]
    locale: Annotated[
        Literal["hr", "en"] | None,
        Field(description="Onboarding language; falls back to Accept-Language"),
    ] = None
    municipality: Annotated[
        Literal["vis", "komiza"] | None,
        Field(description="Municipality chosen by a local user"),
    ] = None

    @field_validator("push_token")
    @classmethod
    def strip_token(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            msg = "Push token cannot be blank"
            raise ValueError(msg)
        return stripped


class OptInRequest(BaseModel):
    """Body of ``PATCH /device/push-opt-in``."""

    opt_in: Annotated[StrictBool, Field(validation_alias=AliasChoices("optIn", "opt_in"))]


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def message_to_response(message: Message, language: Literal["hr", "en"]) -> dict[str, object]:
    """Render a message in one language with no fallback to the other."""
    if language == "en":
        title = message.title_en or ""
        body = message.body_en or ""
    else:
        title = message.title_hr
        body = message.body_hr
    return {
        "id": message.id,
        "title": title,
        "body": body,
        "tags": list(message.tags),
        "active_from": _iso(message.active_from),
        "active_to": _iso(message.active_to),
        "created_at": _iso(message.created_at),
        "is_urgent": is_urgent(message.tags),
    }


def registration_to_response(registration: DeviceRegistration) -> dict[str, object]:
    return {
        "device_id": registration.device_id,
        "platform": registration.platform,
        "locale": registration.locale,
        "municipality": registration.municipality,
        "push_opt_in": registration.push_opt_in,
        "registered_at": _iso(registration.created_at),
    }


def push_log_summary(entry: PushLogEntry | None) -> dict[str, object] | None:
    if entry is None:
        return None
    return {
        "inbox_message_id": entry.inbox_message_id,
        "sent_at": _iso(entry.sent_at),
        "target_count": entry.target_count,
        "included_count": entry.included_count,
        "success_count": entry.success_count,
        "failure_count": entry.failure_count,
        "provider": entry.provider,
    }


def push_debug_response(
    device_id: str,
    registration: DeviceRegistration | None,
    latest: PushLogEntry | None,
) -> dict[str, object]:
    """Registration details with a masked token plus the last global push."""
    if registration is None:
        return {
            "registered": False,
            "device_id": device_id,
            "message": "Device not registered for push notifications",
            "last_global_push": push_log_summary(latest),
        }
    return {
        "registered": True,
        "device_id": registration.device_id,
        "platform": registration.platform,
        "locale": registration.locale,
        "municipality": registration.municipality,
        "push_opt_in": registration.push_opt_in,
        "push_token_masked": mask_token(registration.push_token),
        "registered_at": _iso(registration.created_at),
        "updated_at": _iso(registration.updated_at),
        "last_global_push": push_log_summary(latest),
    }


def validation_errors(errors: list[Mapping[str, object]]) -> list[dict[str, object]]:
    """Reduce pydantic error dicts to field and message, dropping input values."""
    reduced: list[dict[str, object]] = []
    for error in errors:
        location = error.get("loc", ())
        field = ".".join(str(part) for part in location) if isinstance(location, tuple) else str(location)  # pyright: ignore[reportUnknownVariableType, reportUnknownArgumentType]
        reduced.append({"field": field, "message": error.get("msg", "invalid value")})
    return reduced
