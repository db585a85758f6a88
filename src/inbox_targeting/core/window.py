"""Activation window evaluation."""

from __future__ import annotations

from datetime import datetime

from inbox_targeting.types.models import Message

__all__ = ["is_within_active_window", "window_contains"]


def window_contains(
    active_from: datetime | None,
    active_to: datetime | None,
    now: datetime,
) -> bool:
    """Return True when ``now`` lies in the closed window ``[active_from, active_to]``.

    A window with either bound missing is never active; a single bound is not
    a partial activation.
    """
    if active_from is None or active_to is None:
        return False
    return active_from <= now <= active_to


def is_within_active_window(message: Message, now: datetime) -> bool:
    """Return True when the message's activation window contains ``now``.

    Examples:
        >>> from datetime import UTC, timedelta
        >>> now = datetime(2025, 7, 1, 12, tzinfo=UTC)
        >>> msg = Message("m1", "t", "b", ["hitno", "promet"], now,
        ...               active_from=now, active_to=now + timedelta(hours=1))
        >>> is_within_active_window(msg, now)
        True
    """
    return window_contains(message.active_from, message.active_to, now)
