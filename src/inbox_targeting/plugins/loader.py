"""Delivery provider loader.

Resolves the configured provider identifier to its plugin package, calls the
package's ``create_provider`` factory with injected dependencies and checks
that the result satisfies the DeliveryProvider protocol.
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Callable, Mapping
from typing import TypeIs

from inbox_targeting.plugins.discovery import PluginMetadata, discover_plugins, get_plugin
from inbox_targeting.types import DeliveryProvider
from inbox_targeting.utils.sanitization import sanitize_exception

__all__ = ["PluginLoaderError", "load_provider"]

logger = logging.getLogger(__name__)

_DEFAULT_FACTORY = "create_provider"


class PluginLoaderError(Exception):
    """Raised when a provider plugin cannot be loaded or validated."""

    def __init__(self, message: str, *, metadata: PluginMetadata | None = None) -> None:
        super().__init__(message)
        self.metadata: PluginMetadata | None = metadata


def _is_callable_object(value: object) -> TypeIs[Callable[..., object]]:
    return callable(value)


def _resolve_entrypoint(metadata: PluginMetadata) -> tuple[str, str]:
    if metadata.entrypoint and ":" in metadata.entrypoint:
        module_name, attr = metadata.entrypoint.split(":", maxsplit=1)
        return module_name.strip(), attr.strip()
    if metadata.entrypoint:
        return metadata.entrypoint.strip(), _DEFAULT_FACTORY
    return f"{metadata.package}.provider", _DEFAULT_FACTORY


def load_provider(identifier: str, factory_kwargs: Mapping[str, object] | None = None) -> DeliveryProvider:
    """Instantiate the delivery provider registered under ``identifier``.

    Raises:
        PluginLoaderError: If the plugin is unknown, its factory is missing
            or fails, or the result is not a DeliveryProvider
    """
    metadata = get_plugin(identifier)
    if metadata is None:
        available = ", ".join(meta.identifier for meta in discover_plugins()) or "none"
        msg = f"Unknown push provider '{identifier}' (available: {available})"
        raise PluginLoaderError(msg)

    module_name, attr = _resolve_entrypoint(metadata)
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        msg = f"Unable to import plugin module '{module_name}' for provider '{identifier}': {exc}"
        raise PluginLoaderError(msg, metadata=metadata) from exc

    factory: object = getattr(module, attr, None)
    if not _is_callable_object(factory):
        msg = f"Entrypoint '{attr}' not found in module '{module_name}' for provider '{identifier}'"
        raise PluginLoaderError(msg, metadata=metadata)

    try:
        candidate = factory(**dict(factory_kwargs or {}))
    except Exception as exc:
        msg = f"Plugin factory failed for provider '{identifier}': {sanitize_exception(exc)}"
        raise PluginLoaderError(msg, metadata=metadata) from exc

    if not isinstance(candidate, DeliveryProvider):
        msg = (
            "Plugin factory did not return a DeliveryProvider instance "
            f"(provider='{identifier}', object={type(candidate).__name__})"
        )
        raise PluginLoaderError(msg, metadata=metadata)

    logger.info("Loaded push provider plugin %s %s", metadata.name, metadata.version)
    return candidate
