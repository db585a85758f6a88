"""Expo push provider plugin metadata registration."""

from inbox_targeting.plugins.discovery import PluginMetadata, register_plugin

register_plugin(
    PluginMetadata(
        identifier="expo",
        name="Expo",
        package=__name__,
        version="0.1.0",
        description="Delivers urgent inbox pushes through the Expo push service.",
    )
)
