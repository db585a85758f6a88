"""Requester identity and language extraction from HTTP headers."""

from __future__ import annotations

from typing import Final, Literal

from aiohttp import web

from inbox_targeting.types import UserContext

DEVICE_ID_HEADER: Final[str] = "X-Device-ID"
USER_MODE_HEADER: Final[str] = "X-User-Mode"
MUNICIPALITY_HEADER: Final[str] = "X-Municipality"

ANONYMOUS_DEVICE: Final[str] = "anonymous"


def user_context_from_request(request: web.Request) -> UserContext:
    """Build the requester's context; unknown values degrade to a visitor.

    The municipality header is only honored for locals and only for known
    municipalities.
    """
    device_id = request.headers.get(DEVICE_ID_HEADER) or ANONYMOUS_DEVICE
    raw_mode = (request.headers.get(USER_MODE_HEADER) or "").strip().lower()
    raw_municipality = (request.headers.get(MUNICIPALITY_HEADER) or "").strip().lower()

    if raw_mode == "local":
        municipality: Literal["vis", "komiza"] | None = None
        if raw_municipality == "vis":
            municipality = "vis"
        elif raw_municipality == "komiza":
            municipality = "komiza"
        return UserContext(device_id=device_id, user_mode="local", municipality=municipality)
    return UserContext(device_id=device_id, user_mode="visitor")


def language_from_request(request: web.Request) -> Literal["hr", "en"]:
    """Pick the response language from Accept-Language; Croatian by default."""
    header = (request.headers.get("Accept-Language") or "").strip().lower()
    primary = header.split(",", maxsplit=1)[0].split("-", maxsplit=1)[0].split(";", maxsplit=1)[0].strip()
    return "en" if primary == "en" else "hr"


def device_id_from_request(request: web.Request) -> str | None:
    """Return the X-Device-ID header, or None when missing or blank."""
    value = (request.headers.get(DEVICE_ID_HEADER) or "").strip()
    return value or None
