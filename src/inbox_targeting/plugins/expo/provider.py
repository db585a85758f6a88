"""Expo push provider implementation.

Implements the DeliveryProvider protocol against the Expo push HTTP API.
Messages go out in chunks of at most 100; every chunk yields one push ticket
per recipient, in request order. A chunk whose request fails is reported as
failed for all of its recipients. Only when no chunk reaches Expo at all is
the failure raised, so the dispatcher can surface the service as
unreachable.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Final

from inbox_targeting.plugins.expo.config import ExpoConfig
from inbox_targeting.types import BatchDeliveryReport, HTTPClient, OutboundPush, RecipientOutcome
from inbox_targeting.utils.sanitization import sanitize_exception

__all__ = ["EXPO_TOKEN_PATTERN", "ExpoDeliveryError", "ExpoPushProvider", "create_provider", "is_valid_expo_token"]

EXPO_TOKEN_PATTERN: Final[re.Pattern[str]] = re.compile(r"^ExponentPushToken\[.+\]$")

_PROVIDER_NAME: Final[str] = "expo"
_MAX_SAMPLE_ERRORS: Final[int] = 10


class ExpoDeliveryError(RuntimeError):
    """Raised when no request of a send reached the Expo push service."""


def is_valid_expo_token(token: str) -> bool:
    """Return True for ``ExponentPushToken[...]`` shaped tokens.

    Examples:
        >>> is_valid_expo_token("ExponentPushToken[xxxxxxxxxxxxxxxxxxxxxx]")
        True
        >>> is_valid_expo_token("not-a-token")
        False
    """
    return bool(EXPO_TOKEN_PATTERN.match(token))


def _ticket_outcome(token: str, ticket: object) -> RecipientOutcome:
    if not isinstance(ticket, Mapping):
        return RecipientOutcome(token=token, success=False, error_message="Malformed push ticket")
    status = ticket.get("status")  # pyright: ignore[reportUnknownMemberType, reportUnknownVariableType]
    if status == "ok":
        return RecipientOutcome(token=token, success=True)

    message = ticket.get("message")  # pyright: ignore[reportUnknownMemberType, reportUnknownVariableType]
    details = ticket.get("details")  # pyright: ignore[reportUnknownMemberType, reportUnknownVariableType]
    if not isinstance(message, str) or not message:
        detail_error = details.get("error") if isinstance(details, Mapping) else None  # pyright: ignore[reportUnknownMemberType, reportUnknownVariableType]
        message = detail_error if isinstance(detail_error, str) else "Unknown error"
    return RecipientOutcome(token=token, success=False, error_message=message)


@dataclass(slots=True)
class ExpoPushProvider:
    """Expo push provider implementing the DeliveryProvider protocol.

    Attributes:
        config: Expo endpoint, chunk size and optional access token
        http_client: Shared HTTP client (injected dependency)
    """

    config: ExpoConfig
    http_client: HTTPClient
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    @property
    def name(self) -> str:
        return _PROVIDER_NAME

    def is_valid_token(self, token: str) -> bool:
        return is_valid_expo_token(token)

    def build_payload(self, push: OutboundPush) -> dict[str, object]:
        """Render one Expo push message."""
        return {
            "to": push.token,
            "title": push.content.title,
            "body": push.content.body,
            "data": dict(push.content.data),
            "sound": "default",
            "priority": "high",
            "channelId": self.config.channel_id,
        }

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Accept-Encoding": "gzip, deflate",
        }
        if self.config.access_token:
            headers["Authorization"] = f"Bearer {self.config.access_token}"
        return headers

    async def send_batch(self, messages: Sequence[OutboundPush]) -> BatchDeliveryReport:
        """Send ``messages`` to Expo in chunks and collect per-ticket outcomes.

        Raises:
            ExpoDeliveryError: If every chunk failed at the transport level
        """
        if not messages:
            return BatchDeliveryReport(outcomes=(), provider_response={"message": "No targets"})

        outcomes: list[RecipientOutcome] = []
        chunk_errors: list[str] = []
        batch_count = 0

        for start in range(0, len(messages), self.config.batch_size):
            chunk = messages[start : start + self.config.batch_size]
            batch_count += 1
            try:
                response = await self.http_client.post_with_retry(
                    self.config.api_url,
                    [self.build_payload(push) for push in chunk],
                    headers=self._headers(),
                )
            except Exception as exc:
                error = sanitize_exception(exc)
                chunk_errors.append(error)
                self._logger.warning(
                    "Expo batch %d of %d recipients failed: %s",
                    batch_count,
                    len(chunk),
                    error,
                )
                outcomes.extend(RecipientOutcome(token=push.token, success=False, error_message=error) for push in chunk)
                continue

            tickets = response.body.get("data")
            if not isinstance(tickets, list):
                tickets = []
            for index, push in enumerate(chunk):
                ticket: object = tickets[index] if index < len(tickets) else None  # pyright: ignore[reportUnknownVariableType]
                outcomes.append(_ticket_outcome(push.token, ticket))

        if len(chunk_errors) == batch_count:
            msg = f"Expo push service unreachable: {chunk_errors[-1]}"
            raise ExpoDeliveryError(msg)

        report = BatchDeliveryReport(
            outcomes=tuple(outcomes),
            provider_response=self._summarize(outcomes, batch_count),
        )
        self._logger.info(
            "Expo accepted %d of %d push tickets in %d batch(es)",
            report.success_count,
            len(outcomes),
            batch_count,
        )
        return report

    @staticmethod
    def _summarize(outcomes: Sequence[RecipientOutcome], batch_count: int) -> dict[str, object]:
        errors = [outcome.error_message or "Unknown error" for outcome in outcomes if not outcome.success]
        return {
            "total_tickets": len(outcomes),
            "success_tickets": len(outcomes) - len(errors),
            "error_tickets": len(errors),
            "sample_errors": errors[:_MAX_SAMPLE_ERRORS],
            "batch_count": batch_count,
        }


def create_provider(
    *,
    http_client: HTTPClient,
    settings: Mapping[str, object] | None = None,
) -> ExpoPushProvider:
    """Factory called by the plugin loader with dependencies injected.

    Raises:
        pydantic.ValidationError: If ``settings`` is not a valid ExpoConfig
    """
    config = ExpoConfig.model_validate(dict(settings or {}))
    return ExpoPushProvider(config=config, http_client=http_client)
