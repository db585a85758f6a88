"""Banner candidacy, screen placement and ranking.

A banner is an urgent message with exactly one context tag, an open
activation window and a requester allowed to see it. Which screens show a
banner is decided by one closed table; a context tag missing from a
screen's allow-list never appears there.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from typing import Final

from inbox_targeting.core.eligibility import is_message_eligible
from inbox_targeting.core.taxonomy import (
    BANNER_CONTEXT_TAGS,
    EMERGENCY_TAG,
    TRANSPORT_TAG,
    context_tags,
    normalize_tags,
)
from inbox_targeting.core.window import is_within_active_window
from inbox_targeting.types.aliases import ScreenContext
from inbox_targeting.types.models import Message, UserContext

__all__ = [
    "BANNER_CAP",
    "SCREEN_CONTEXT_TAGS",
    "is_banner_eligible",
    "is_banner_for_screen",
    "is_valid_banner_tag_combination",
    "parse_screen_context",
    "rank_banners",
    "select_banners",
]

logger = logging.getLogger(__name__)

BANNER_CAP: Final[int] = 3

# Adding a screen is a change to this table only
SCREEN_CONTEXT_TAGS: Final[Mapping[ScreenContext, frozenset[str]]] = {
    "home": frozenset({"opcenito", "vis", "komiza"}),
    "events": frozenset({"kultura"}),
    "transport": frozenset({TRANSPORT_TAG}),
    # legacy split transport screens
    "transport_road": frozenset({TRANSPORT_TAG}),
    "transport_sea": frozenset({TRANSPORT_TAG}),
}


def is_valid_banner_tag_combination(tags: Sequence[str]) -> bool:
    """Return True for exactly ``{hitno, <one context tag>}`` after normalization.

    Examples:
        >>> is_valid_banner_tag_combination(["hitno", "promet"])
        True
        >>> is_valid_banner_tag_combination(["hitno", "cestovni_promet", "pomorski_promet"])
        True
        >>> is_valid_banner_tag_combination(["hitno"])
        False
        >>> is_valid_banner_tag_combination(["promet", "kultura"])
        False
    """
    normalized = normalize_tags(tags)
    if len(normalized) != 2 or EMERGENCY_TAG not in normalized:
        return False
    other = normalized[1] if normalized[0] == EMERGENCY_TAG else normalized[0]
    return other in BANNER_CONTEXT_TAGS


def is_banner_eligible(message: Message, context: UserContext, now: datetime) -> bool:
    """Apply tag shape, activation window and visibility checks in order."""
    if not is_valid_banner_tag_combination(message.tags):
        return False
    if not is_within_active_window(message, now):
        return False
    return is_message_eligible(message, context)


def is_banner_for_screen(message: Message, screen: ScreenContext) -> bool:
    """Return True when the message's context tag is allowed on ``screen``."""
    allowed = SCREEN_CONTEXT_TAGS.get(screen)
    if allowed is None:
        return False
    return any(tag in allowed for tag in context_tags(message.tags))


def rank_banners(messages: Iterable[Message]) -> list[Message]:
    """Order banners by ``active_from`` then ``created_at``, newest first.

    The sort is stable, so exact ties keep their input order. Messages
    reaching this point always have ``active_from`` set; a missing value
    sorts last.
    """

    def _sort_key(message: Message) -> tuple[bool, datetime, datetime]:
        has_start = message.active_from is not None
        return (has_start, message.active_from or message.created_at, message.created_at)

    return sorted(messages, key=_sort_key, reverse=True)


def select_banners(
    messages: Iterable[Message],
    context: UserContext,
    screen: ScreenContext,
    now: datetime,
    *,
    cap: int = BANNER_CAP,
) -> list[Message]:
    """Return the ranked, capped banners for one screen request.

    Filtering happens before ranking, and the cap applies last.
    """
    candidates = [
        message
        for message in messages
        if is_banner_eligible(message, context, now) and is_banner_for_screen(message, screen)
    ]
    ranked = rank_banners(candidates)
    if len(ranked) > cap:
        logger.debug("Truncating %d banners to %d for screen %s", len(ranked), cap, screen)
    return ranked[:cap]


def parse_screen_context(value: str | None) -> ScreenContext | None:
    """Map a raw query value onto the closed screen set; None when unknown."""
    if value is None:
        return None
    for screen in SCREEN_CONTEXT_TAGS:
        if screen == value:
            return screen
    return None
