"""Message visibility rules for a requesting user.

Eligibility answers "can this identity ever see this message". It ignores the
activation window, banner shape and push state.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from inbox_targeting.core.taxonomy import municipality_from_tags, normalize_tags
from inbox_targeting.types.models import Message, UserContext

__all__ = ["filter_eligible_messages", "is_message_eligible"]

logger = logging.getLogger(__name__)


def is_message_eligible(message: Message, context: UserContext) -> bool:
    """Return True when ``context`` may see ``message``.

    Messages without a municipal tag are visible to everyone, urgent ones
    included. A municipal message is visible only to a local of exactly
    that municipality.
    """
    municipality = municipality_from_tags(normalize_tags(message.tags))
    if municipality is None:
        return True

    eligible = context.effective_municipality == municipality
    if not eligible:
        logger.debug(
            "Message %s scoped to %s hidden from %s user (municipality=%s)",
            message.id,
            municipality,
            context.user_mode,
            context.municipality,
        )
    return eligible


def filter_eligible_messages(messages: Iterable[Message], context: UserContext) -> list[Message]:
    """Keep the messages ``context`` may see, preserving input order."""
    return [message for message in messages if is_message_eligible(message, context)]
