"""Data models for the inbox targeting engine.

This module defines the dataclasses used for type-safe data transfer between
the evaluators, the device store, the dispatcher and the delivery providers.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime

from inbox_targeting.types.aliases import DeviceLocale, DevicePlatform, UserMode


@dataclass(slots=True)
class Message:
    """Inbox message as consumed by the engine.

    Titles and bodies come in two locale variants. Croatian is required,
    English is optional and never substituted by Croatian. Lifecycle fields
    (lock, soft delete, push timestamp) are owned by the authoring side; the
    engine only reads their effect.
    """

    id: str
    title_hr: str
    body_hr: str
    tags: list[str]
    created_at: datetime
    title_en: str | None = None
    body_en: str | None = None
    active_from: datetime | None = None
    active_to: datetime | None = None
    updated_at: datetime | None = None
    is_locked: bool = False
    deleted_at: datetime | None = None
    pushed_at: datetime | None = None

    @property
    def has_english_content(self) -> bool:
        """Return True when both English title and body are present."""
        return bool(self.title_en) and bool(self.body_en)

    @property
    def is_deleted(self) -> bool:
        """Return True when the message has been soft-deleted."""
        return self.deleted_at is not None


@dataclass(slots=True, frozen=True)
class UserContext:
    """Identity of the requester for eligibility decisions.

    The municipality is only meaningful for locals; visitors carrying one
    are treated as having none.
    """

    device_id: str
    user_mode: UserMode
    municipality: str | None = None

    @property
    def effective_municipality(self) -> str | None:
        """Municipality honored for municipal gating."""
        if self.user_mode != "local":
            return None
        return self.municipality


@dataclass(slots=True)
class DeviceRegistration:
    """Registered push-capable device."""

    device_id: str
    push_token: str
    platform: DevicePlatform
    locale: DeviceLocale
    created_at: datetime
    updated_at: datetime
    push_opt_in: bool = True
    municipality: str | None = None


@dataclass(slots=True, frozen=True)
class PushContent:
    """Localized push notification content."""

    title: str
    body: str
    data: Mapping[str, str] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class PushTarget:
    """Device address considered for a send."""

    token: str
    locale: DeviceLocale


@dataclass(slots=True, frozen=True)
class OutboundPush:
    """A single (token, content) pair handed to a delivery provider."""

    token: str
    content: PushContent


@dataclass(slots=True, frozen=True)
class RecipientOutcome:
    """Per-recipient delivery outcome reported by a provider."""

    token: str
    success: bool
    error_message: str | None = None


@dataclass(slots=True, frozen=True)
class BatchDeliveryReport:
    """Result of one provider batch call."""

    outcomes: tuple[RecipientOutcome, ...]
    provider_response: Mapping[str, object] = field(default_factory=dict)

    @property
    def success_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.success)

    @property
    def failure_count(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.success)


@dataclass(slots=True, frozen=True)
class DispatchResult:
    """Outcome of a dispatch request.

    ``target_count`` is the number of targets considered, ``included_count``
    the number actually addressed after locale matching.
    """

    target_count: int
    included_count: int
    success_count: int
    failure_count: int
    provider_name: str
    outcomes: tuple[RecipientOutcome, ...] = ()
    provider_response: Mapping[str, object] = field(default_factory=dict)
    correlation_id: str | None = None

    @property
    def excluded_count(self) -> int:
        return self.target_count - self.included_count


@dataclass(slots=True, frozen=True)
class PushLogEntry:
    """Audit record of a push sent for an inbox message."""

    id: str
    inbox_message_id: str
    admin_id: str | None
    sent_at: datetime
    target_count: int
    included_count: int
    success_count: int
    failure_count: int
    provider: str
    provider_response: Mapping[str, object] = field(default_factory=dict)


@dataclass(slots=True)
class Response:
    """HTTP response.

    Represents an HTTP response with status code, body, and headers.
    """

    status: int
    body: Mapping[str, object]
    headers: Mapping[str, str]
