"""Inbox targeting - eligibility, banner selection and urgent push for the MOJ VIS app.

This package decides which inbox messages a requester may see, which banners
appear on each app screen, and which registered devices receive an urgent
push when a message becomes active. Push delivery goes through pluggable
providers.
"""

from inbox_targeting.__main__ import main

__version__ = "0.1.0"

__all__ = ["__version__", "main"]
