"""Message ingestion boundary and in-memory message source.

Upstream producers hand over loosely shaped records. ``parse_message`` is the
one place where those records are coerced into ``Message`` objects: tags go
through ``coerce_tags`` here and nowhere else, so evaluators can assume
normalized, canonical tag lists.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from pathlib import Path

import yaml

from inbox_targeting.core.taxonomy import coerce_tags
from inbox_targeting.types.models import Message

__all__ = ["InMemoryMessageSource", "MessageParseError", "load_messages_file", "parse_message"]

logger = logging.getLogger(__name__)


class MessageParseError(ValueError):
    """Raised when an upstream record cannot be turned into a Message."""


def _parse_instant(raw: object, field_name: str) -> datetime | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        parsed = raw
    elif isinstance(raw, str):
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError as exc:
            msg = f"Field '{field_name}' is not an ISO-8601 instant: {raw!r}"
            raise MessageParseError(msg) from exc
    else:
        msg = f"Field '{field_name}' must be a string or datetime, got {type(raw).__name__}"
        raise MessageParseError(msg)
    # naive instants are taken as UTC so they compare with aware ones
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)


def _required_text(raw: Mapping[str, object], field_name: str) -> str:
    value = raw.get(field_name)
    if not isinstance(value, str) or not value:
        msg = f"Field '{field_name}' is required"
        raise MessageParseError(msg)
    return value


def _optional_text(raw: Mapping[str, object], field_name: str) -> str | None:
    value = raw.get(field_name)
    return value if isinstance(value, str) and value else None


def _optional_flag(raw: Mapping[str, object], field_name: str) -> bool:
    value = raw.get(field_name)
    if value is None:
        return False
    if not isinstance(value, bool):
        msg = f"Field '{field_name}' must be a boolean, got {type(value).__name__}"
        raise MessageParseError(msg)
    return value


def parse_message(raw: Mapping[str, object]) -> Message:
    """Build a Message from an upstream record.

    Raises:
        MessageParseError: When id, Croatian content or created_at is missing,
            a timestamp is malformed or a flag is not a boolean
    """
    message_id = raw.get("id")
    if message_id is None or message_id == "":
        raise MessageParseError("Field 'id' is required")

    created_at = _parse_instant(raw.get("created_at"), "created_at")
    if created_at is None:
        raise MessageParseError("Field 'created_at' is required")

    return Message(
        id=str(message_id),
        title_hr=_required_text(raw, "title_hr"),
        body_hr=_required_text(raw, "body_hr"),
        tags=coerce_tags(raw.get("tags")),
        created_at=created_at,
        title_en=_optional_text(raw, "title_en"),
        body_en=_optional_text(raw, "body_en"),
        active_from=_parse_instant(raw.get("active_from"), "active_from"),
        active_to=_parse_instant(raw.get("active_to"), "active_to"),
        updated_at=_parse_instant(raw.get("updated_at"), "updated_at"),
        is_locked=_optional_flag(raw, "is_locked"),
        deleted_at=_parse_instant(raw.get("deleted_at"), "deleted_at"),
        pushed_at=_parse_instant(raw.get("pushed_at"), "pushed_at"),
    )


class InMemoryMessageSource:
    """Message source backed by a dict, fed by the authoring collaborator."""

    def __init__(self, messages: Iterable[Message] = ()) -> None:
        self._messages: dict[str, Message] = {message.id: message for message in messages}

    async def save(self, message: Message) -> None:
        """Insert or replace a message by id."""
        self._messages[message.id] = message

    async def list_messages(self) -> list[Message]:
        visible = [message for message in self._messages.values() if not message.is_deleted]
        return sorted(visible, key=lambda message: message.created_at, reverse=True)

    async def get_message(self, message_id: str) -> Message | None:
        message = self._messages.get(message_id)
        if message is None or message.is_deleted:
            return None
        return message


def load_messages_file(path: Path) -> list[Message]:
    """Load seed messages from a YAML list of records.

    Raises:
        FileNotFoundError: If the file does not exist
        MessageParseError: If the document is not a list or a record is invalid
    """
    with path.open(encoding="utf-8") as handle:
        document: object = yaml.safe_load(handle)  # pyright: ignore[reportAny]

    if document is None:
        return []
    if not isinstance(document, list):
        msg = f"Seed file {path} must contain a list of messages"
        raise MessageParseError(msg)

    messages: list[Message] = []
    for index, record in enumerate(document):  # pyright: ignore[reportUnknownVariableType, reportUnknownArgumentType]
        if not isinstance(record, Mapping):
            msg = f"Seed record #{index} in {path} is not a mapping"
            raise MessageParseError(msg)
        messages.append(parse_message(record))  # pyright: ignore[reportUnknownArgumentType]

    logger.info("Loaded %d seed messages from %s", len(messages), path)
    return messages
