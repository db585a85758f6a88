"""Targeting rules, dispatch orchestration and configuration."""

from inbox_targeting.core.banners import (
    BANNER_CAP,
    SCREEN_CONTEXT_TAGS,
    is_banner_eligible,
    is_banner_for_screen,
    is_valid_banner_tag_combination,
    parse_screen_context,
    rank_banners,
    select_banners,
)
from inbox_targeting.core.dispatcher import DispatchError, PushDispatcher
from inbox_targeting.core.eligibility import filter_eligible_messages, is_message_eligible
from inbox_targeting.core.push_rules import (
    is_device_eligible_for_message,
    matches_locale,
    should_trigger_push,
)
from inbox_targeting.core.push_service import PushNotificationService
from inbox_targeting.core.taxonomy import (
    TagValidationResult,
    coerce_tags,
    normalize_tags,
    validate_single_municipality,
    validate_tags_canonical,
    validate_urgent_rules,
)
from inbox_targeting.core.window import is_within_active_window

__all__ = [
    "BANNER_CAP",
    "SCREEN_CONTEXT_TAGS",
    "DispatchError",
    "PushDispatcher",
    "PushNotificationService",
    "TagValidationResult",
    "coerce_tags",
    "filter_eligible_messages",
    "is_banner_eligible",
    "is_banner_for_screen",
    "is_device_eligible_for_message",
    "is_message_eligible",
    "is_valid_banner_tag_combination",
    "is_within_active_window",
    "matches_locale",
    "normalize_tags",
    "parse_screen_context",
    "rank_banners",
    "select_banners",
    "should_trigger_push",
    "validate_single_municipality",
    "validate_tags_canonical",
    "validate_urgent_rules",
]
