"""HTTP handlers for inbox, banner and device endpoints.

Handlers pull their collaborators from the application via typed keys, so
tests can build an app around in-memory stores and a fixed clock.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from datetime import datetime
from typing import Final

from aiohttp import web
from pydantic import ValidationError

from inbox_targeting.api.context import (
    device_id_from_request,
    language_from_request,
    user_context_from_request,
)
from inbox_targeting.api.schemas import (
    OptInRequest,
    PushTokenRequest,
    message_to_response,
    push_debug_response,
    push_log_summary,
    registration_to_response,
    validation_errors,
)
from inbox_targeting.core.banners import parse_screen_context, select_banners
from inbox_targeting.core.dispatcher import DispatchError
from inbox_targeting.core.eligibility import filter_eligible_messages, is_message_eligible
from inbox_targeting.core.push_service import PushNotificationService
from inbox_targeting.core.taxonomy import (
    TagValidationResult,
    validate_single_municipality,
    validate_tags_canonical,
    validate_urgent_rules,
)
from inbox_targeting.storage.device_tokens import Clock
from inbox_targeting.storage.messages import MessageParseError, parse_message
from inbox_targeting.types import (
    DeliveryProvider,
    DeviceTokenRepository,
    MessageSource,
    PushLogRepository,
)
from inbox_targeting.utils.logging import get_logger, log_with_context

__all__ = [
    "CLOCK_KEY",
    "DEVICES_KEY",
    "MESSAGES_KEY",
    "PROVIDER_KEY",
    "PUSH_LOGS_KEY",
    "PUSH_SERVICE_KEY",
    "error_middleware",
    "setup_routes",
]

logger = get_logger(__name__)

DEVICES_KEY: Final = web.AppKey("devices", DeviceTokenRepository)
PUSH_LOGS_KEY: Final = web.AppKey("push_logs", PushLogRepository)
MESSAGES_KEY: Final = web.AppKey("messages", MessageSource)
PROVIDER_KEY: Final = web.AppKey("provider", DeliveryProvider)
PUSH_SERVICE_KEY: Final = web.AppKey("push_service", PushNotificationService)
CLOCK_KEY: Final = web.AppKey[Clock]("clock")

DEFAULT_PAGE_SIZE: Final[int] = 20
MAX_PAGE_SIZE: Final[int] = 50

type Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def _error(message: str, status: int, **extra: object) -> web.Response:
    return web.json_response({"error": message, **extra}, status=status)


def _int_query(request: web.Request, name: str, default: int) -> int:
    raw = request.query.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


async def _json_body(request: web.Request) -> Mapping[str, object]:
    """Read a JSON object body; anything else is a 400."""
    try:
        body: object = await request.json()
    except json.JSONDecodeError as exc:
        raise web.HTTPBadRequest(
            text=json.dumps({"error": "Request body is not valid JSON"}),
            content_type="application/json",
        ) from exc
    if not isinstance(body, dict):
        raise web.HTTPBadRequest(
            text=json.dumps({"error": "Request body must be a JSON object"}),
            content_type="application/json",
        )
    return body  # pyright: ignore[reportUnknownVariableType]  # JSON boundary


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Turn unexpected failures into a JSON 500 without leaking details."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception:
        logger.exception("Unhandled error in %s %s", request.method, request.path)
        return _error("Internal server error", 500)


# --- Inbox -----------------------------------------------------------------


async def list_inbox(request: web.Request) -> web.Response:
    """``GET /inbox``: eligible messages, newest first, paginated."""
    context = user_context_from_request(request)
    language = language_from_request(request)
    page = max(1, _int_query(request, "page", 1))
    page_size = min(MAX_PAGE_SIZE, max(1, _int_query(request, "page_size", DEFAULT_PAGE_SIZE)))

    messages = await request.app[MESSAGES_KEY].list_messages()
    eligible = filter_eligible_messages(messages, context)
    start = (page - 1) * page_size
    page_items = eligible[start : start + page_size]

    logger.info(
        "GET /inbox page=%d page_size=%d mode=%s returned=%d of %d",
        page,
        page_size,
        context.user_mode,
        len(page_items),
        len(eligible),
    )
    return web.json_response(
        {
            "messages": [message_to_response(message, language) for message in page_items],
            "total": len(eligible),
            "page": page,
            "page_size": page_size,
            "has_more": page * page_size < len(eligible),
        }
    )


async def get_inbox_message(request: web.Request) -> web.Response:
    """``GET /inbox/{id}``: ineligible messages are indistinguishable from missing ones."""
    message_id = request.match_info["id"]
    context = user_context_from_request(request)
    message = await request.app[MESSAGES_KEY].get_message(message_id)
    if message is None or not is_message_eligible(message, context):
        return _error("Message not found", 404)
    return web.json_response(message_to_response(message, language_from_request(request)))


async def list_active_banners(request: web.Request) -> web.Response:
    """``GET /banners/active?screen=``: ranked, capped banners for one screen."""
    raw_screen = request.query.get("screen")
    if not raw_screen:
        return _error("Query parameter 'screen' is required", 400)
    screen = parse_screen_context(raw_screen)
    if screen is None:
        return _error(f"Unknown screen context: {raw_screen}", 400)

    context = user_context_from_request(request)
    language = language_from_request(request)
    now = request.app[CLOCK_KEY]()
    messages = await request.app[MESSAGES_KEY].list_messages()
    banners = select_banners(messages, context, screen, now)

    logger.debug("GET /banners/active screen=%s returned=%d", screen, len(banners))
    return web.json_response({"banners": [message_to_response(message, language) for message in banners]})


# --- Device registration -----------------------------------------------------


async def register_push_token(request: web.Request) -> web.Response:
    """``POST /device/push-token``: register or refresh a device."""
    device_id = device_id_from_request(request)
    if device_id is None:
        return _error("X-Device-ID header is required", 400)

    body = await _json_body(request)
    try:
        payload = PushTokenRequest.model_validate(body)
    except ValidationError as exc:
        return _error("Invalid request body", 400, details=validation_errors(exc.errors()))  # pyright: ignore[reportArgumentType]

    provider = request.app[PROVIDER_KEY]
    if not provider.is_valid_token(payload.push_token):
        return _error("Invalid push token format", 400)

    locale = payload.locale or language_from_request(request)
    registration = await request.app[DEVICES_KEY].upsert(
        device_id,
        payload.push_token,
        payload.platform,
        locale,
        municipality=payload.municipality,
    )
    return web.json_response(registration_to_response(registration))


async def update_push_opt_in(request: web.Request) -> web.Response:
    """``PATCH /device/push-opt-in``: toggle delivery for a registered device."""
    device_id = device_id_from_request(request)
    if device_id is None:
        return _error("X-Device-ID header is required", 400)

    body = await _json_body(request)
    try:
        payload = OptInRequest.model_validate(body)
    except ValidationError as exc:
        return _error("Invalid request body", 400, details=validation_errors(exc.errors()))  # pyright: ignore[reportArgumentType]

    registration = await request.app[DEVICES_KEY].set_opt_in(device_id, payload.opt_in)
    if registration is None:
        return _error("Device not registered. Register push token first.", 404)
    return web.json_response(
        {
            "device_id": registration.device_id,
            "push_opt_in": registration.push_opt_in,
            "updated_at": registration.updated_at.isoformat(),
        }
    )


async def get_push_status(request: web.Request) -> web.Response:
    """``GET /device/push-status``."""
    device_id = device_id_from_request(request)
    if device_id is None:
        return _error("X-Device-ID header is required", 400)

    registration = await request.app[DEVICES_KEY].get(device_id)
    if registration is None:
        return web.json_response({"registered": False, "push_opt_in": None})
    return web.json_response(
        {
            "registered": True,
            "push_opt_in": registration.push_opt_in,
            "locale": registration.locale,
            "platform": registration.platform,
        }
    )


async def get_push_debug(request: web.Request) -> web.Response:
    """``GET /device/push-debug``: masked registration plus the last global push."""
    device_id = device_id_from_request(request)
    if device_id is None:
        return _error("X-Device-ID header is required", 400)

    registration = await request.app[DEVICES_KEY].get(device_id)
    latest = await request.app[PUSH_LOGS_KEY].latest()
    return web.json_response(push_debug_response(device_id, registration, latest))


# --- Internal ingestion ------------------------------------------------------


def _first_failure(*results: TagValidationResult) -> TagValidationResult | None:
    for result in results:
        if not result.valid:
            return result
    return None


def _window_is_ordered(active_from: datetime | None, active_to: datetime | None) -> bool:
    if active_from is None or active_to is None:
        return True
    return active_to > active_from


async def ingest_message(request: web.Request) -> web.Response:
    """``POST /internal/messages``: accept an authored message and push if urgent.

    Tags must already be canonical here; deprecated aliases are rejected for
    new content even though stored content still tolerates them.
    """
    body = await _json_body(request)

    canonical = validate_tags_canonical(body.get("tags"))
    if not canonical.valid:
        return _error(canonical.error or "Invalid tags", 400, code=canonical.code)

    try:
        message = parse_message(body)
    except MessageParseError as exc:
        return _error(str(exc), 400, code="INVALID_MESSAGE")

    failure = _first_failure(
        validate_urgent_rules(message.tags, message.active_from, message.active_to),
        validate_single_municipality(message.tags),
    )
    if failure is not None:
        return _error(failure.error or "Invalid tags", 400, code=failure.code)
    if not _window_is_ordered(message.active_from, message.active_to):
        return _error("active_to must be after active_from", 400, code="INVALID_WINDOW")

    source = request.app[MESSAGES_KEY]
    existing = await source.get_message(message.id)
    if existing is not None and existing.is_locked:
        return _error("Message is locked and cannot be modified", 409, code="MESSAGE_LOCKED")

    await source.save(message)

    admin_id = request.headers.get("X-Admin-ID") or None
    try:
        entry = await request.app[PUSH_SERVICE_KEY].notify_activation(
            message, request.app[CLOCK_KEY](), admin_id=admin_id
        )
    except DispatchError as exc:
        log_with_context(
            logger,
            logging.ERROR,
            "Push delivery failed for ingested message",
            extra={
                "inbox_message_id": message.id,
                "provider": exc.provider_name,
                "included_count": exc.included_count,
            },
        )
        return _error(
            "Push delivery failed",
            502,
            inbox_message_id=message.id,
            provider=exc.provider_name,
        )

    if entry is not None:
        await source.save(message)

    return web.json_response(
        {"message": message_to_response(message, "hr"), "push": push_log_summary(entry)},
        status=201 if existing is None else 200,
    )


def setup_routes(app: web.Application) -> None:
    """Register every endpoint on ``app``."""
    app.router.add_get("/inbox", list_inbox)
    app.router.add_get("/inbox/{id}", get_inbox_message)
    app.router.add_get("/banners/active", list_active_banners)
    app.router.add_post("/device/push-token", register_push_token)
    app.router.add_patch("/device/push-opt-in", update_push_opt_in)
    app.router.add_get("/device/push-status", get_push_status)
    app.router.add_get("/device/push-debug", get_push_debug)
    app.router.add_post("/internal/messages", ingest_message)
