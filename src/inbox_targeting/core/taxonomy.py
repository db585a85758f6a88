"""Inbox tag taxonomy, normalization and authoring validation.

The taxonomy is fixed. Two deprecated transport aliases (road and sea) are
still accepted on read and collapse into the unified ``promet`` tag; new
messages must use canonical tags only.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Final

__all__ = [
    "BANNER_CONTEXT_TAGS",
    "CANONICAL_TAGS",
    "DEPRECATED_TRANSPORT_TAGS",
    "EMERGENCY_TAG",
    "KNOWN_TAGS",
    "MUNICIPAL_TAGS",
    "TRANSPORT_TAG",
    "TagValidationResult",
    "coerce_tags",
    "context_tags",
    "is_municipal",
    "is_urgent",
    "municipality_from_tags",
    "normalize_tags",
    "validate_single_municipality",
    "validate_tags_canonical",
    "validate_urgent_rules",
]

logger = logging.getLogger(__name__)

EMERGENCY_TAG: Final[str] = "hitno"
TRANSPORT_TAG: Final[str] = "promet"

DEPRECATED_TRANSPORT_TAGS: Final[frozenset[str]] = frozenset({"cestovni_promet", "pomorski_promet"})
MUNICIPAL_TAGS: Final[tuple[str, ...]] = ("vis", "komiza")
BANNER_CONTEXT_TAGS: Final[frozenset[str]] = frozenset(
    {TRANSPORT_TAG, "kultura", "opcenito", *MUNICIPAL_TAGS}
)
CANONICAL_TAGS: Final[frozenset[str]] = BANNER_CONTEXT_TAGS | {EMERGENCY_TAG}
KNOWN_TAGS: Final[frozenset[str]] = CANONICAL_TAGS | DEPRECATED_TRANSPORT_TAGS

MAX_TAGS_PER_MESSAGE: Final[int] = 2


def normalize_tags(tags: Iterable[str]) -> list[str]:
    """Canonicalize a raw tag list.

    Deprecated transport aliases map to ``promet``; duplicates are dropped
    while first-occurrence order is kept.

    Examples:
        >>> normalize_tags(["hitno", "cestovni_promet", "pomorski_promet"])
        ['hitno', 'promet']
        >>> normalize_tags(["promet", "cestovni_promet"])
        ['promet']
    """
    normalized: list[str] = []
    seen: set[str] = set()
    for tag in tags:
        canonical = TRANSPORT_TAG if tag in DEPRECATED_TRANSPORT_TAGS else tag
        if canonical in seen:
            continue
        seen.add(canonical)
        normalized.append(canonical)
    return normalized


def coerce_tags(raw: object) -> list[str]:
    """Coerce an untyped upstream ``tags`` field into a normalized tag list.

    This is the single ingestion boundary for tags: anything that is not a
    list or tuple becomes an empty list, and entries that are not known tag
    strings are dropped.
    """
    if not isinstance(raw, (list, tuple)):
        if raw is not None:
            logger.debug("Discarding non-list tags field of type %s", type(raw).__name__)
        return []

    accepted: list[str] = []
    for item in raw:  # pyright: ignore[reportUnknownVariableType]  # upstream boundary
        if isinstance(item, str) and item in KNOWN_TAGS:
            accepted.append(item)
        else:
            logger.debug("Discarding unknown tag %r", item)
    return normalize_tags(accepted)


def is_urgent(tags: Sequence[str]) -> bool:
    """Return True when the emergency tag is present."""
    return EMERGENCY_TAG in tags


def is_municipal(tags: Sequence[str]) -> bool:
    """Return True when any municipal tag is present."""
    return any(tag in MUNICIPAL_TAGS for tag in tags)


def municipality_from_tags(tags: Sequence[str]) -> str | None:
    """Return the municipality a message is scoped to, if any."""
    for municipality in MUNICIPAL_TAGS:
        if municipality in tags:
            return municipality
    return None


def context_tags(tags: Iterable[str]) -> list[str]:
    """Return the non-emergency canonical tags after normalization."""
    return [tag for tag in normalize_tags(tags) if tag in BANNER_CONTEXT_TAGS]


@dataclass(slots=True, frozen=True)
class TagValidationResult:
    """Outcome of an authoring-side tag rule check."""

    valid: bool
    code: str | None = None
    error: str | None = None

    @classmethod
    def ok(cls) -> TagValidationResult:
        return cls(valid=True)

    @classmethod
    def fail(cls, code: str, error: str) -> TagValidationResult:
        return cls(valid=False, code=code, error=error)


def validate_tags_canonical(tags: object) -> TagValidationResult:
    """Validate tags submitted for a new or edited message.

    Rules: 1 to 2 tags, no duplicates, only canonical tags. Deprecated
    aliases get their own error code so editors know what to use instead.
    """
    if not isinstance(tags, (list, tuple)):
        return TagValidationResult.fail("TAG_INVALID", "Tags must be an array.")
    if len(tags) == 0:  # pyright: ignore[reportUnknownArgumentType]
        return TagValidationResult.fail("TAGS_EMPTY", "At least one tag is required.")
    if len(tags) > MAX_TAGS_PER_MESSAGE:  # pyright: ignore[reportUnknownArgumentType]
        return TagValidationResult.fail(
            "TAGS_TOO_MANY", f"Maximum {MAX_TAGS_PER_MESSAGE} tags allowed."
        )
    if not all(isinstance(tag, str) for tag in tags):  # pyright: ignore[reportUnknownVariableType]
        return TagValidationResult.fail("TAG_INVALID", "Tags must be strings.")
    if len(set(tags)) != len(tags):  # pyright: ignore[reportUnknownArgumentType]
        return TagValidationResult.fail("TAGS_DUPLICATE", "Duplicate tags are not allowed.")

    for tag in tags:  # pyright: ignore[reportUnknownVariableType]
        if tag in DEPRECATED_TRANSPORT_TAGS:
            return TagValidationResult.fail(
                "TAG_DEPRECATED", f"Tag '{tag}' is deprecated. Use '{TRANSPORT_TAG}' instead."
            )
        if tag not in CANONICAL_TAGS:
            return TagValidationResult.fail("TAG_INVALID", f"Tag '{tag}' is not a valid tag.")

    return TagValidationResult.ok()


def validate_urgent_rules(
    tags: Sequence[str],
    active_from: datetime | None,
    active_to: datetime | None,
) -> TagValidationResult:
    """Validate the extra rules for emergency messages.

    An emergency message needs exactly one context tag and a fully
    specified activation window.
    """
    normalized = normalize_tags(tags)
    if EMERGENCY_TAG not in normalized:
        return TagValidationResult.ok()

    contexts = [tag for tag in normalized if tag in BANNER_CONTEXT_TAGS]
    if not contexts:
        return TagValidationResult.fail(
            "HITNO_MISSING_CONTEXT",
            "Hitno messages require exactly one context tag "
            "(promet, kultura, opcenito, vis, or komiza).",
        )
    if len(contexts) > 1:
        return TagValidationResult.fail(
            "HITNO_MULTIPLE_CONTEXT", "Hitno messages can only have one context tag."
        )
    if active_from is None or active_to is None:
        return TagValidationResult.fail(
            "HITNO_MISSING_DATES", "Hitno messages require both active_from and active_to dates."
        )
    return TagValidationResult.ok()


def validate_single_municipality(tags: Sequence[str]) -> TagValidationResult:
    """Reject messages scoped to both municipalities at once."""
    if all(municipality in tags for municipality in MUNICIPAL_TAGS):
        return TagValidationResult.fail(
            "DUAL_MUNICIPAL_TAGS",
            "Poruka ne smije imati obje općinske oznake (vis i komiza).",
        )
    return TagValidationResult.ok()
