"""Storage adapters for device registrations, push logs and messages."""

from inbox_targeting.storage.device_tokens import (
    MASKED_TOKEN_PLACEHOLDER,
    InMemoryDeviceTokenStore,
    InMemoryPushLogStore,
    mask_token,
)
from inbox_targeting.storage.messages import (
    InMemoryMessageSource,
    MessageParseError,
    load_messages_file,
    parse_message,
)

__all__ = [
    "MASKED_TOKEN_PLACEHOLDER",
    "InMemoryDeviceTokenStore",
    "InMemoryMessageSource",
    "InMemoryPushLogStore",
    "MessageParseError",
    "load_messages_file",
    "mask_token",
    "parse_message",
]
