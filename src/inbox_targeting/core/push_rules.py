"""Push triggering, device gating and locale matching rules.

These rules are deliberately independent of banner validity: an urgent
message with a fully specified, open window triggers a push even when its
tag set would not qualify it as a banner.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from inbox_targeting.core.taxonomy import is_urgent, municipality_from_tags, normalize_tags
from inbox_targeting.core.window import window_contains

__all__ = ["is_device_eligible_for_message", "matches_locale", "should_trigger_push"]


def should_trigger_push(
    tags: Sequence[str],
    active_from: datetime | None,
    active_to: datetime | None,
    now: datetime,
) -> bool:
    """Return True when an urgent push should fire at ``now``.

    Requires the emergency tag, both window bounds and ``now`` inside the
    closed window. Other tags are irrelevant.
    """
    return is_urgent(normalize_tags(tags)) and window_contains(active_from, active_to, now)


def is_device_eligible_for_message(tags: Sequence[str], municipality: str | None) -> bool:
    """Municipal gating from the device side.

    Args:
        tags: Message tags (raw or normalized)
        municipality: Municipality the device registered with, if any

    Returns:
        True for every device when the message has no municipal tag,
        otherwise only for devices registered to that municipality
    """
    scoped_to = municipality_from_tags(normalize_tags(tags))
    return scoped_to is None or scoped_to == municipality


def matches_locale(locale: str, has_english_content: bool) -> bool:
    """Strict locale matching: Croatian always, English only with English content."""
    if locale == "hr":
        return True
    return locale == "en" and has_english_content
