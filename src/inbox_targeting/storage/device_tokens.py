"""In-memory device registration and push audit stores.

Both stores satisfy the async repository contracts in
``inbox_targeting.types.protocols`` and are created per application, never
as module-level singletons. Production deployments swap in a durable store
behind the same interface.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime
from typing import Final
from uuid import uuid4

from inbox_targeting.core.push_rules import is_device_eligible_for_message, matches_locale
from inbox_targeting.types.aliases import DeviceLocale, DevicePlatform
from inbox_targeting.types.models import DeviceRegistration, PushLogEntry
from inbox_targeting.utils.logging import log_with_context
from inbox_targeting.utils.sanitization import sanitize_mapping

__all__ = [
    "MASKED_TOKEN_PLACEHOLDER",
    "InMemoryDeviceTokenStore",
    "InMemoryPushLogStore",
    "mask_token",
]

logger = logging.getLogger(__name__)

MASKED_TOKEN_PLACEHOLDER: Final[str] = "***masked***"
_MASK_PREFIX_LEN: Final[int] = 8
_MASK_SUFFIX_LEN: Final[int] = 6
_MASK_MIN_LENGTH: Final[int] = 20

type Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(UTC)


def mask_token(token: str | None) -> str:
    """Render a push token safe for display and logs.

    Examples:
        >>> mask_token("ExponentPushToken[abcdefghijklmnop]")
        'Exponent...klmnop]'
        >>> mask_token("short")
        '***masked***'
    """
    if not token or len(token) < _MASK_MIN_LENGTH:
        return MASKED_TOKEN_PLACEHOLDER
    return f"{token[:_MASK_PREFIX_LEN]}...{token[-_MASK_SUFFIX_LEN:]}"


class InMemoryDeviceTokenStore:
    """Device registrations keyed by device id, in registration order."""

    def __init__(self, *, clock: Clock | None = None) -> None:
        self._devices: dict[str, DeviceRegistration] = {}
        self._clock: Clock = clock or _utc_now

    def __len__(self) -> int:
        return len(self._devices)

    async def get(self, device_id: str) -> DeviceRegistration | None:
        return self._devices.get(device_id)

    async def upsert(
        self,
        device_id: str,
        token: str,
        platform: DevicePlatform,
        locale: DeviceLocale,
        *,
        municipality: str | None = None,
    ) -> DeviceRegistration:
        """Create a registration, or refresh token, platform and locale in place.

        A refresh keeps the stored opt-in value and creation time. The
        municipality is only overwritten when a new value is supplied.
        """
        now = self._clock()
        existing = self._devices.get(device_id)

        if existing is None:
            registration = DeviceRegistration(
                device_id=device_id,
                push_token=token,
                platform=platform,
                locale=locale,
                created_at=now,
                updated_at=now,
                push_opt_in=True,
                municipality=municipality,
            )
            self._devices[device_id] = registration
            log_with_context(
                logger,
                logging.INFO,
                "Registered device for push",
                extra={
                    "device_id": device_id,
                    "platform": platform,
                    "locale": locale,
                },
            )
            return registration

        existing.push_token = token
        existing.platform = platform
        existing.locale = locale
        if municipality is not None:
            existing.municipality = municipality
        existing.updated_at = now
        log_with_context(
            logger,
            logging.INFO,
            "Refreshed device registration",
            extra={
                "device_id": device_id,
                "platform": platform,
                "locale": locale,
                "push_opt_in": existing.push_opt_in,
            },
        )
        return existing

    async def set_opt_in(self, device_id: str, value: bool) -> DeviceRegistration | None:
        """Set opt-in for a known device; returns None for unknown devices."""
        registration = self._devices.get(device_id)
        if registration is None:
            logger.info("Opt-in update for unregistered device %s", device_id)
            return None

        registration.push_opt_in = value
        registration.updated_at = self._clock()
        logger.info("Device %s push opt-in set to %s", device_id, value)
        return registration

    async def list_eligible(
        self,
        tags: Sequence[str],
        has_english_content: bool,
    ) -> list[DeviceRegistration]:
        """Return opted-in devices passing municipal gating and locale matching."""
        eligible = [
            registration
            for registration in self._devices.values()
            if registration.push_opt_in
            and is_device_eligible_for_message(tags, registration.municipality)
            and matches_locale(registration.locale, has_english_content)
        ]
        logger.debug(
            "%d of %d registered devices eligible (tags=%s, english=%s)",
            len(eligible),
            len(self._devices),
            list(tags),
            has_english_content,
        )
        return eligible

    async def clear(self) -> None:
        """Drop every registration. Maintenance and tests only."""
        self._devices.clear()


class InMemoryPushLogStore:
    """Append-only audit log of pushes sent for inbox messages."""

    def __init__(self, *, clock: Clock | None = None) -> None:
        self._entries: list[PushLogEntry] = []
        self._clock: Clock = clock or _utc_now

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
        entry = PushLogEntry(
            id=uuid4().hex,
            inbox_message_id=inbox_message_id,
            admin_id=admin_id,
            sent_at=self._clock(),
            target_count=target_count,
            included_count=included_count,
            success_count=success_count,
            failure_count=failure_count,
            provider=provider,
            provider_response=sanitize_mapping(provider_response or {}),
        )
        self._entries.append(entry)
        return entry

    async def for_message(self, inbox_message_id: str) -> list[PushLogEntry]:
        """Return log entries for one message, newest first."""
        return [entry for entry in reversed(self._entries) if entry.inbox_message_id == inbox_message_id]

    async def latest(self) -> PushLogEntry | None:
        return self._entries[-1] if self._entries else None

    async def recent(self, limit: int = 50) -> list[PushLogEntry]:
        """Return up to ``limit`` entries, newest first."""
        if limit <= 0:
            return []
        return list(reversed(self._entries[-limit:]))
