"""Type aliases using modern PEP 695 syntax.

This module defines the closed value sets shared across the engine.
"""

from collections.abc import Mapping
from typing import Literal

# Who is asking: a visitor sees general content only, a local also sees
# content scoped to their municipality
type UserMode = Literal["visitor", "local"]

# Municipalities on the island; each doubles as a municipal tag
type Municipality = Literal["vis", "komiza"]

# Device locale chosen during onboarding
type DeviceLocale = Literal["hr", "en"]

# Mobile platform reported on token registration
type DevicePlatform = Literal["ios", "android"]

# Render surfaces that request banners
type ScreenContext = Literal["home", "events", "transport", "transport_road", "transport_sea"]

# JSON body accepted by the HTTP client (push services may take a list of messages)
type JSONPayload = Mapping[str, object] | list[Mapping[str, object]]
