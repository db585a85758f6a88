"""Application factory wiring stores, provider and dispatcher into aiohttp."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable
from datetime import UTC, datetime

from aiohttp import web

from inbox_targeting.api.routes import (
    CLOCK_KEY,
    DEVICES_KEY,
    MESSAGES_KEY,
    PROVIDER_KEY,
    PUSH_LOGS_KEY,
    PUSH_SERVICE_KEY,
    error_middleware,
    setup_routes,
)
from inbox_targeting.core.config import MainConfig
from inbox_targeting.core.dispatcher import PushDispatcher
from inbox_targeting.core.push_service import PushNotificationService
from inbox_targeting.plugins import load_provider
from inbox_targeting.storage import (
    InMemoryDeviceTokenStore,
    InMemoryMessageSource,
    InMemoryPushLogStore,
    load_messages_file,
)
from inbox_targeting.storage.device_tokens import Clock
from inbox_targeting.types import (
    DeliveryProvider,
    DeviceTokenRepository,
    MessageSource,
    PushLogRepository,
)
from inbox_targeting.utils.http_client import AIOHTTPClient

__all__ = ["create_app"]

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _install_provider(app: web.Application, provider: DeliveryProvider, config: MainConfig) -> None:
    dispatcher = PushDispatcher(provider, dry_run_enabled=config.push.dry_run)
    app[PROVIDER_KEY] = provider
    app[PUSH_SERVICE_KEY] = PushNotificationService(app[DEVICES_KEY], dispatcher, app[PUSH_LOGS_KEY])
    logger.info(
        "Push delivery via provider '%s'%s",
        provider.name,
        " (dry-run)" if config.push.dry_run else "",
    )


def _provider_context(
    config: MainConfig,
) -> Callable[[web.Application], AsyncIterator[None]]:
    """Cleanup context owning the HTTP client for the configured provider."""

    async def provider_context(app: web.Application) -> AsyncIterator[None]:
        http = config.push.http
        async with AIOHTTPClient(
            max_retries=http.max_retries,
            max_backoff_seconds=http.max_backoff_seconds,
            default_timeout_seconds=http.timeout_seconds,
        ) as client:
            provider = load_provider(
                config.push.provider,
                {"http_client": client, "settings": config.push.settings_for(config.push.provider)},
            )
            _install_provider(app, provider, config)
            yield
        logger.info("Push provider '%s' shut down", config.push.provider)

    return provider_context


def create_app(
    config: MainConfig,
    *,
    devices: DeviceTokenRepository | None = None,
    messages: MessageSource | None = None,
    push_logs: PushLogRepository | None = None,
    provider: DeliveryProvider | None = None,
    clock: Clock | None = None,
) -> web.Application:
    """Build the web application.

    Collaborators default to in-memory stores. When no provider is passed,
    the configured plugin is loaded at startup with a shared HTTP client.

    Raises:
        MessageParseError: If the configured seed file holds an invalid record
    """
    app_clock: Clock = clock or _utc_now
    app = web.Application(middlewares=[error_middleware])

    if messages is None:
        seed_file = config.inbox.seed_file
        messages = InMemoryMessageSource(load_messages_file(seed_file) if seed_file is not None else ())

    app[CLOCK_KEY] = app_clock
    app[DEVICES_KEY] = devices if devices is not None else InMemoryDeviceTokenStore(clock=app_clock)
    app[PUSH_LOGS_KEY] = push_logs if push_logs is not None else InMemoryPushLogStore(clock=app_clock)
    app[MESSAGES_KEY] = messages

    if provider is not None:
        _install_provider(app, provider, config)
    else:
        app.cleanup_ctx.append(_provider_context(config))

    setup_routes(app)
    return app
