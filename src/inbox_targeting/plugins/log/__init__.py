"""Logging provider plugin metadata registration."""

from inbox_targeting.plugins.discovery import PluginMetadata, register_plugin

register_plugin(
    PluginMetadata(
        identifier="log",
        name="Log",
        package=__name__,
        version="0.1.0",
        description="Writes pushes to the application log instead of a push service.",
    )
)
