"""Urgent push orchestration for message activations.

Ties the rule layers together when a message is activated: trigger check,
device gating, locale-strict dispatch and the push audit record.
"""

from __future__ import annotations

import logging
from datetime import datetime

from inbox_targeting.core.dispatcher import PushDispatcher
from inbox_targeting.core.push_rules import should_trigger_push
from inbox_targeting.core.taxonomy import normalize_tags
from inbox_targeting.types import (
    DeviceTokenRepository,
    Message,
    PushContent,
    PushLogEntry,
    PushLogRepository,
    PushTarget,
)
from inbox_targeting.utils.logging import get_logger, log_with_context

__all__ = ["PushNotificationService", "build_push_content"]


def build_push_content(message: Message) -> tuple[PushContent, PushContent | None]:
    """Return the Croatian content and, when present, the English content."""
    data = {"inbox_message_id": message.id}
    content_hr = PushContent(title=message.title_hr, body=message.body_hr, data=data)
    if not message.has_english_content:
        return content_hr, None
    content_en = PushContent(
        title=message.title_en or "",
        body=message.body_en or "",
        data=data,
    )
    return content_hr, content_en


class PushNotificationService:
    """Decide and send the urgent push for one message activation."""

    def __init__(
        self,
        devices: DeviceTokenRepository,
        dispatcher: PushDispatcher,
        push_logs: PushLogRepository,
        *,
        logger_obj: logging.Logger | None = None,
    ) -> None:
        self._devices: DeviceTokenRepository = devices
        self._dispatcher: PushDispatcher = dispatcher
        self._push_logs: PushLogRepository = push_logs
        self._logger: logging.Logger = logger_obj or get_logger(__name__)

    async def notify_activation(
        self,
        message: Message,
        now: datetime,
        *,
        admin_id: str | None = None,
    ) -> PushLogEntry | None:
        """Send the urgent push for ``message`` if it triggers at ``now``.

        Returns:
            The recorded push log entry, or None when no push was sent

        Raises:
            DispatchError: If the delivery provider was unreachable
        """
        if message.is_deleted or message.pushed_at is not None or message.is_locked:
            log_with_context(
                self._logger,
                logging.DEBUG,
                "Skipping push for message already pushed, locked or deleted",
                extra={"inbox_message_id": message.id},
            )
            return None

        tags = normalize_tags(message.tags)
        if not should_trigger_push(tags, message.active_from, message.active_to, now):
            log_with_context(
                self._logger,
                logging.DEBUG,
                "Message does not trigger a push",
                extra={"inbox_message_id": message.id, "tags": tags},
            )
            return None

        content_hr, content_en = build_push_content(message)
        devices = await self._devices.list_eligible(tags, content_en is not None)
        targets = [PushTarget(token=device.push_token, locale=device.locale) for device in devices]

        result = await self._dispatcher.send(targets, content_hr, content_en)

        entry = await self._push_logs.record(
            inbox_message_id=message.id,
            admin_id=admin_id,
            target_count=result.target_count,
            included_count=result.included_count,
            success_count=result.success_count,
            failure_count=result.failure_count,
            provider=result.provider_name,
            provider_response=result.provider_response,
        )
        message.pushed_at = entry.sent_at
        message.is_locked = True

        log_with_context(
            self._logger,
            logging.INFO,
            "Urgent push sent for message",
            extra={
                "inbox_message_id": message.id,
                "target_count": result.target_count,
                "success_count": result.success_count,
                "failure_count": result.failure_count,
            },
        )
        return entry
