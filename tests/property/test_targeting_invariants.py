"""Property-based tests for the targeting rules.

Tests cover:
- Tag normalization idempotence and uniqueness
- Banner tag shape, window closure and municipal gating
- Banner ranking order and the per-screen cap
- Push triggering and locale-strict dispatch
- Opt-in preservation and token masking
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from inbox_targeting.core.banners import (
    BANNER_CAP,
    is_valid_banner_tag_combination,
    rank_banners,
    select_banners,
)
from inbox_targeting.core.dispatcher import build_outbound
from inbox_targeting.core.eligibility import is_message_eligible
from inbox_targeting.core.push_rules import should_trigger_push
from inbox_targeting.core.taxonomy import (
    BANNER_CONTEXT_TAGS,
    EMERGENCY_TAG,
    KNOWN_TAGS,
    MUNICIPAL_TAGS,
    normalize_tags,
)
from inbox_targeting.core.window import window_contains
from inbox_targeting.storage.device_tokens import (
    MASKED_TOKEN_PLACEHOLDER,
    InMemoryDeviceTokenStore,
    mask_token,
)
from inbox_targeting.types import PushContent, PushTarget, UserContext
from tests.fixtures.factories import build_message

pytestmark = pytest.mark.property

BASE = datetime(2026, 7, 15, tzinfo=UTC)

tag_lists = st.lists(st.sampled_from(sorted(KNOWN_TAGS)), max_size=8)
offsets = st.integers(min_value=-10_000, max_value=10_000).map(lambda minutes: BASE + timedelta(minutes=minutes))
optional_instants = st.none() | offsets
contexts = st.builds(
    UserContext,
    device_id=st.just("device"),
    user_mode=st.sampled_from(["visitor", "local"]),
    municipality=st.none() | st.sampled_from(list(MUNICIPAL_TAGS)),
)


@given(tag_lists)
def test_normalization_is_idempotent_and_unique(tags: list[str]) -> None:
    once = normalize_tags(tags)
    assert normalize_tags(once) == once
    assert len(once) == len(set(once))


@given(tag_lists)
def test_banner_shape_is_exactly_emergency_plus_one_context(tags: list[str]) -> None:
    normalized = normalize_tags(tags)
    expected = (
        len(normalized) == 2
        and EMERGENCY_TAG in normalized
        and any(tag in BANNER_CONTEXT_TAGS for tag in normalized)
    )
    assert is_valid_banner_tag_combination(tags) is expected


@given(optional_instants, optional_instants, offsets)
def test_window_needs_both_bounds_and_is_closed(
    active_from: datetime | None, active_to: datetime | None, now: datetime
) -> None:
    result = window_contains(active_from, active_to, now)
    if active_from is None or active_to is None:
        assert result is False
    else:
        assert result is (active_from <= now <= active_to)
        assert window_contains(active_from, active_to, active_from) is (active_from <= active_to)
        assert window_contains(active_from, active_to, active_to) is (active_from <= active_to)


@given(tag_lists, contexts)
def test_municipal_gating(tags: list[str], context: UserContext) -> None:
    normalized = normalize_tags(tags)
    municipal = [tag for tag in MUNICIPAL_TAGS if tag in normalized]
    eligible = is_message_eligible(build_message(tags=tags), context)
    if not municipal:
        assert eligible is True
    elif eligible:
        assert context.user_mode == "local"
        assert context.municipality == municipal[0]


@given(tag_lists, optional_instants, optional_instants, offsets)
def test_push_trigger_requires_all_three_conditions(
    tags: list[str], active_from: datetime | None, active_to: datetime | None, now: datetime
) -> None:
    expected = (
        EMERGENCY_TAG in tags
        and active_from is not None
        and active_to is not None
        and active_from <= now <= active_to
    )
    assert should_trigger_push(tags, active_from, active_to, now) is expected


@given(st.lists(st.tuples(offsets, offsets), max_size=12))
def test_ranking_is_ordered_by_start_then_creation(pairs: list[tuple[datetime, datetime]]) -> None:
    messages = [
        build_message(id=f"m{index}", active_from=start, created_at=created)
        for index, (start, created) in enumerate(pairs)
    ]
    ranked = rank_banners(messages)
    keys = [(message.active_from, message.created_at) for message in ranked]
    assert keys == sorted(keys, reverse=True)  # pyright: ignore[reportArgumentType, reportCallIssue]


@given(
    st.lists(
        st.tuples(st.sampled_from(sorted(BANNER_CONTEXT_TAGS)), offsets, offsets),
        max_size=15,
    ),
    contexts,
    st.sampled_from(["home", "events", "transport", "transport_road", "transport_sea"]),
)
def test_screen_results_never_exceed_cap(
    specs: list[tuple[str, datetime, datetime]],
    context: UserContext,
    screen: str,
) -> None:
    messages = [
        build_message(id=f"m{index}", tags=[EMERGENCY_TAG, tag], active_from=start, active_to=end)
        for index, (tag, start, end) in enumerate(specs)
    ]
    result = select_banners(messages, context, screen, BASE)  # pyright: ignore[reportArgumentType]
    assert len(result) <= BANNER_CAP
    if screen == "events":
        assert all("kultura" in message.tags for message in result)
    if screen.startswith("transport"):
        assert all("promet" in message.tags for message in result)


@given(st.lists(st.tuples(st.text(min_size=1, max_size=12), st.sampled_from(["hr", "en"])), max_size=20))
def test_locale_matching_has_no_fallback(raw_targets: list[tuple[str, str]]) -> None:
    targets = [PushTarget(token=token, locale=locale) for token, locale in raw_targets]  # pyright: ignore[reportArgumentType]
    content_hr = PushContent(title="HR", body="HR")
    content_en = PushContent(title="EN", body="EN")

    hr_only = build_outbound(targets, content_hr, None)
    bilingual = build_outbound(targets, content_hr, content_en)

    assert len(hr_only) == sum(1 for target in targets if target.locale == "hr")
    assert all(push.content is content_hr for push in hr_only)
    assert len(bilingual) == len(targets)
    for target, push in zip(targets, bilingual, strict=True):
        assert push.content is (content_en if target.locale == "en" else content_hr)


@pytest.mark.asyncio
@settings(max_examples=50)
@given(st.booleans(), st.text(min_size=1, max_size=40), st.sampled_from(["ios", "android"]), st.sampled_from(["hr", "en"]))
async def test_opt_in_survives_refresh(opt_in: bool, new_token: str, platform: str, locale: str) -> None:
    store = InMemoryDeviceTokenStore()
    _ = await store.upsert("device", "first-token", "ios", "hr")
    _ = await store.set_opt_in("device", opt_in)

    refreshed = await store.upsert("device", new_token, platform, locale)  # pyright: ignore[reportArgumentType]

    assert refreshed.push_opt_in is opt_in
    assert refreshed.push_token == new_token


@given(st.text(max_size=60))
def test_mask_never_leaks_middle(token: str) -> None:
    masked = mask_token(token)
    if len(token) < 20:
        assert masked == MASKED_TOKEN_PLACEHOLDER
    else:
        assert masked == f"{token[:8]}...{token[-6:]}"
        assert len(masked) == 8 + len("...") + 6
