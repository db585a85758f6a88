"""Type definitions and protocols for the inbox targeting engine.

This package provides:
- Data models (dataclasses)
- Protocol definitions (structural subtyping interfaces)
- Type aliases (PEP 695 modern syntax)
"""

from inbox_targeting.types.aliases import (
    DeviceLocale,
    DevicePlatform,
    JSONPayload,
    Municipality,
    ScreenContext,
    UserMode,
)
from inbox_targeting.types.models import (
    BatchDeliveryReport,
    DeviceRegistration,
    DispatchResult,
    Message,
    OutboundPush,
    PushContent,
    PushLogEntry,
    PushTarget,
    RecipientOutcome,
    Response,
    UserContext,
)
from inbox_targeting.types.protocols import (
    DeliveryProvider,
    DeviceTokenRepository,
    HTTPClient,
    MessageSource,
    PushLogRepository,
)

__all__ = [
    # Type aliases
    "DeviceLocale",
    "DevicePlatform",
    "JSONPayload",
    "Municipality",
    "ScreenContext",
    "UserMode",
    # Data models
    "BatchDeliveryReport",
    "DeviceRegistration",
    "DispatchResult",
    "Message",
    "OutboundPush",
    "PushContent",
    "PushLogEntry",
    "PushTarget",
    "RecipientOutcome",
    "Response",
    "UserContext",
    # Protocols
    "DeliveryProvider",
    "DeviceTokenRepository",
    "HTTPClient",
    "MessageSource",
    "PushLogRepository",
]
