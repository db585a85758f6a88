"""Protocol definitions for component interfaces.

This module defines structural subtyping protocols that establish
contracts for the engine's collaborators without requiring inheritance:
delivery providers, the device token repository, the message source and
the shared HTTP client.
"""

from collections.abc import Mapping, Sequence
from typing import Protocol, runtime_checkable

from inbox_targeting.types.aliases import DeviceLocale, DevicePlatform, JSONPayload
from inbox_targeting.types.models import (
    BatchDeliveryReport,
    DeviceRegistration,
    Message,
    OutboundPush,
    PushLogEntry,
    Response,
)


@runtime_checkable
class DeliveryProvider(Protocol):
    """Protocol for push delivery transports.

    A provider transmits a batch of (token, content) pairs to a push service
    and reports per-recipient success or failure. Transport-level failures
    (service unreachable) are raised, recipient-level failures are reported.
    """

    @property
    def name(self) -> str:
        """Provider name used in logs and push audit records."""
        ...

    async def send_batch(self, messages: Sequence[OutboundPush]) -> BatchDeliveryReport:
        """Send a batch of push messages.

        Args:
            messages: Token and localized content for every recipient

        Returns:
            Per-recipient outcomes plus a provider response summary
        """
        ...

    def is_valid_token(self, token: str) -> bool:
        """Return True when the token has the provider's expected format."""
        ...


@runtime_checkable
class DeviceTokenRepository(Protocol):
    """Protocol for device registration storage.

    Implementations may be backed by any store; callers await each operation
    to completion before reading derived eligibility.
    """

    async def get(self, device_id: str) -> DeviceRegistration | None:
        """Return the registration for a device, or None if unknown."""
        ...

    async def upsert(
        self,
        device_id: str,
        token: str,
        platform: DevicePlatform,
        locale: DeviceLocale,
        *,
        municipality: str | None = None,
    ) -> DeviceRegistration:
        """Create or refresh a registration, preserving opt-in state."""
        ...

    async def set_opt_in(self, device_id: str, value: bool) -> DeviceRegistration | None:
        """Update opt-in for a known device; None signals an unknown device."""
        ...

    async def list_eligible(
        self,
        tags: Sequence[str],
        has_english_content: bool,
    ) -> list[DeviceRegistration]:
        """Return opted-in devices passing municipal and locale gating."""
        ...

    async def clear(self) -> None:
        """Remove every registration (maintenance and tests only)."""
        ...


@runtime_checkable
class PushLogRepository(Protocol):
    """Protocol for the push audit log."""

    async def record(
        self,
        *,
        inbox_message_id: str,
        admin_id: str | None,
        target_count: int,
        included_count: int,
        success_count: int,
        failure_count: int,
        provider: str,
        provider_response: Mapping[str, object] | None = None,
    ) -> PushLogEntry:
        """Append an entry stamped with the current time."""
        ...

    async def for_message(self, inbox_message_id: str) -> list[PushLogEntry]:
        """Return entries for one message, newest first."""
        ...

    async def latest(self) -> PushLogEntry | None:
        """Return the most recent entry across all messages."""
        ...

    async def recent(self, limit: int = 50) -> list[PushLogEntry]:
        """Return up to ``limit`` entries, newest first."""
        ...


@runtime_checkable
class MessageSource(Protocol):
    """Protocol for the read side of the authoring collaborator."""

    async def list_messages(self) -> list[Message]:
        """Return all non-deleted messages, newest first."""
        ...

    async def get_message(self, message_id: str) -> Message | None:
        """Return a non-deleted message by id, or None."""
        ...

    async def save(self, message: Message) -> None:
        """Insert or replace a message by id."""
        ...


@runtime_checkable
class HTTPClient(Protocol):
    """Protocol for HTTP client operations.

    Defines the interface for making HTTP requests with timeout
    and retry capabilities for reliable push delivery.
    """

    async def post(
        self,
        url: str,
        payload: JSONPayload,
        *,
        timeout: float,
        headers: dict[str, str] | None = None,
    ) -> Response:
        """Send HTTP POST request with timeout."""
        ...

    async def post_with_retry(
        self,
        url: str,
        payload: JSONPayload,
        *,
        headers: dict[str, str] | None = None,
    ) -> Response:
        """Send HTTP POST with exponential backoff retry.

        Raises:
            Exception: If all retry attempts are exhausted
        """
        ...
