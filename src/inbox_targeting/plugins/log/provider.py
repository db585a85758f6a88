"""Logging-only delivery provider for development and staging.

Writes each outbound push to the log instead of a push service and reports
every recipient as delivered. Tokens are masked before logging. Registration
accepts the same token shape the mobile client obtains from the Expo service,
so switching providers never admits tokens the real service would refuse.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Final

from inbox_targeting.plugins.expo.provider import is_valid_expo_token
from inbox_targeting.storage.device_tokens import mask_token
from inbox_targeting.types import BatchDeliveryReport, HTTPClient, OutboundPush, RecipientOutcome

__all__ = ["LoggingPushProvider", "create_provider"]

_PROVIDER_NAME: Final[str] = "log"


@dataclass(slots=True)
class LoggingPushProvider:
    """DeliveryProvider that logs pushes and always succeeds."""

    sent: list[OutboundPush] = field(default_factory=list, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    @property
    def name(self) -> str:
        return _PROVIDER_NAME

    def is_valid_token(self, token: str) -> bool:
        return is_valid_expo_token(token)

    async def send_batch(self, messages: Sequence[OutboundPush]) -> BatchDeliveryReport:
        for push in messages:
            self._logger.info(
                "[push] to=%s title=%r body=%r",
                mask_token(push.token),
                push.content.title,
                push.content.body,
            )
        self.sent.extend(messages)
        return BatchDeliveryReport(
            outcomes=tuple(RecipientOutcome(token=push.token, success=True) for push in messages),
            provider_response={"logged": len(messages)},
        )


def create_provider(
    *,
    http_client: HTTPClient | None = None,
    settings: Mapping[str, object] | None = None,
) -> LoggingPushProvider:
    """Factory called by the plugin loader; needs neither HTTP nor settings."""
    del http_client, settings
    return LoggingPushProvider()
