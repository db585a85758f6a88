"""HTTP surface: application factory, handlers and request schemas."""

from inbox_targeting.api.app import create_app
from inbox_targeting.api.routes import setup_routes

__all__ = ["create_app", "setup_routes"]
