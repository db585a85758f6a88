"""Plugin system public API exports."""

from inbox_targeting.plugins.discovery import (
    PluginMetadata,
    discover_plugins,
    get_plugin,
    register_plugin,
)
from inbox_targeting.plugins.loader import PluginLoaderError, load_provider

__all__ = [
    "PluginLoaderError",
    "PluginMetadata",
    "discover_plugins",
    "get_plugin",
    "load_provider",
    "register_plugin",
]
