"""Delivery provider plugin discovery and metadata registration.

Provider packages under ``inbox_targeting.plugins`` register metadata when
imported. The application enumerates them to validate the configured
provider identifier and to locate its factory.
"""

from __future__ import annotations

import importlib
import logging
import re
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

_PLUGIN_ROOT = Path(__file__).resolve().parent
_PLUGIN_PACKAGE = __name__.rsplit(".", maxsplit=1)[0]
_IDENTIFIER_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")


@dataclass(slots=True, frozen=True)
class PluginMetadata:
    """Describes a delivery provider plugin package."""

    identifier: str
    name: str
    package: str
    version: str
    description: str = ""
    entrypoint: str | None = None


_PLUGIN_REGISTRY: dict[str, PluginMetadata] = {}
_SCANNED_PACKAGES: set[str] = set()


def register_plugin(metadata: PluginMetadata) -> None:
    """Register plugin metadata; called by plugin packages at import time.

    Raises:
        ValueError: If the identifier is malformed, already taken, or does
            not match the package name
    """
    identifier = metadata.identifier.strip()
    if not _IDENTIFIER_PATTERN.match(identifier):
        msg = f"Plugin identifier must be lowercase alphanumeric with optional underscores: {identifier!r}"
        raise ValueError(msg)

    existing = _PLUGIN_REGISTRY.get(identifier)
    if existing is not None:
        if existing == metadata:
            return
        msg = f"Plugin identifier already registered: {identifier}"
        raise ValueError(msg)

    if metadata.package.rsplit(".", maxsplit=1)[-1] != identifier:
        msg = f"Plugin identifier must match package name (identifier={identifier}, package={metadata.package})"
        raise ValueError(msg)

    _PLUGIN_REGISTRY[identifier] = metadata


def discover_plugins(*, force_rescan: bool = False) -> tuple[PluginMetadata, ...]:
    """Return registered plugin metadata sorted by identifier."""
    _scan_plugin_packages(force_rescan=force_rescan)
    return tuple(sorted(_PLUGIN_REGISTRY.values(), key=lambda meta: meta.identifier))


def get_plugin(identifier: str) -> PluginMetadata | None:
    """Retrieve metadata for a plugin identifier, scanning on first use."""
    _scan_plugin_packages(force_rescan=False)
    return _PLUGIN_REGISTRY.get(identifier)


def _scan_plugin_packages(*, force_rescan: bool) -> None:
    for entry in _PLUGIN_ROOT.iterdir():
        if not entry.is_dir() or entry.name.startswith("_"):
            continue
        if not (entry / "__init__.py").exists():
            continue

        module_name = f"{_PLUGIN_PACKAGE}.{entry.name}"
        if not force_rescan and module_name in _SCANNED_PACKAGES:
            continue

        try:
            _ = importlib.import_module(module_name)
        except Exception:
            logger.exception("Failed to import plugin package", extra={"plugin_module": module_name})
            continue

        # identifiers must equal package names, see register_plugin
        if entry.name not in _PLUGIN_REGISTRY:
            logger.warning(
                "Plugin package imported but did not register metadata",
                extra={"plugin_module": module_name},
            )
        _SCANNED_PACKAGES.add(module_name)
