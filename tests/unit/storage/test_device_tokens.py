"""Unit tests for the in-memory device and push log stores."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest

from inbox_targeting.storage.device_tokens import (
    MASKED_TOKEN_PLACEHOLDER,
    InMemoryDeviceTokenStore,
    InMemoryPushLogStore,
    mask_token,
)
from inbox_targeting.types import DeviceTokenRepository, PushLogRepository
from inbox_targeting.utils.sanitization import REDACTED


class SteppingClock:
    """Clock advancing one minute per call."""

    def __init__(self, start: datetime) -> None:
        self.current: datetime = start

    def __call__(self) -> datetime:
        self.current += timedelta(minutes=1)
        return self.current


@pytest.mark.unit
class TestMaskToken:
    """Test the display-safe token transform."""

    def test_long_token(self) -> None:
        token = "ExponentPushToken[abcdefghijklmnopqrstuv]"
        assert mask_token(token) == "Exponent...qrstuv]"

    @pytest.mark.parametrize("token", [None, "", "short", "x" * 19])
    def test_short_or_empty_is_placeholder(self, token: str | None) -> None:
        assert mask_token(token) == MASKED_TOKEN_PLACEHOLDER

    def test_middle_never_leaks(self) -> None:
        token = "AAAAAAAA" + "SECRETMIDDLE" + "BBBBBB"
        masked = mask_token(token)
        assert "SECRET" not in masked
        assert "MIDDLE" not in masked


@pytest.mark.unit
def test_stores_satisfy_repository_protocols() -> None:
    assert isinstance(InMemoryDeviceTokenStore(), DeviceTokenRepository)
    assert isinstance(InMemoryPushLogStore(), PushLogRepository)


@pytest.mark.asyncio
async def test_upsert_creates_opted_in_registration(clock: Callable[[], datetime], now: datetime) -> None:
    store = InMemoryDeviceTokenStore(clock=clock)

    registration = await store.upsert("d1", "tok-1", "ios", "hr")

    assert registration.push_opt_in is True
    assert registration.created_at == now
    assert await store.get("d1") is registration
    assert len(store) == 1


@pytest.mark.asyncio
async def test_refresh_preserves_opt_in_and_created_at() -> None:
    """Opt-out must survive a token, platform and locale refresh."""
    clock = SteppingClock(datetime(2026, 1, 1, tzinfo=UTC))
    store = InMemoryDeviceTokenStore(clock=clock)
    created = await store.upsert("d1", "tok-1", "ios", "hr", municipality="vis")
    created_at = created.created_at
    _ = await store.set_opt_in("d1", False)

    refreshed = await store.upsert("d1", "tok-2", "android", "en")

    assert refreshed.push_opt_in is False
    assert refreshed.push_token == "tok-2"
    assert refreshed.platform == "android"
    assert refreshed.locale == "en"
    assert refreshed.municipality == "vis"
    assert refreshed.created_at == created_at
    assert refreshed.updated_at > created_at
    assert len(store) == 1


@pytest.mark.asyncio
async def test_refresh_can_change_municipality() -> None:
    store = InMemoryDeviceTokenStore()
    _ = await store.upsert("d1", "tok-1", "ios", "hr", municipality="vis")
    refreshed = await store.upsert("d1", "tok-1", "ios", "hr", municipality="komiza")
    assert refreshed.municipality == "komiza"


@pytest.mark.asyncio
async def test_set_opt_in_unknown_device_returns_none() -> None:
    store = InMemoryDeviceTokenStore()
    assert await store.set_opt_in("ghost", True) is None
    assert len(store) == 0


@pytest.mark.asyncio
async def test_list_eligible_combines_opt_in_gating_and_locale() -> None:
    store = InMemoryDeviceTokenStore()
    _ = await store.upsert("hr", "tok-hr", "ios", "hr")
    _ = await store.upsert("en", "tok-en", "ios", "en")
    _ = await store.upsert("vis", "tok-vis", "android", "hr", municipality="vis")
    _ = await store.upsert("muted", "tok-muted", "android", "hr")
    _ = await store.set_opt_in("muted", False)

    general_hr_only = await store.list_eligible(["hitno", "promet"], False)
    general_bilingual = await store.list_eligible(["hitno", "promet"], True)
    municipal = await store.list_eligible(["hitno", "vis"], True)

    assert {device.device_id for device in general_hr_only} == {"hr", "vis"}
    assert {device.device_id for device in general_bilingual} == {"hr", "en", "vis"}
    assert {device.device_id for device in municipal} == {"vis"}


@pytest.mark.asyncio
async def test_clear() -> None:
    store = InMemoryDeviceTokenStore()
    _ = await store.upsert("d1", "tok-1", "ios", "hr")
    await store.clear()
    assert len(store) == 0


@pytest.mark.asyncio
async def test_push_log_ordering_and_lookup() -> None:
    clock = SteppingClock(datetime(2026, 1, 1, tzinfo=UTC))
    logs = InMemoryPushLogStore(clock=clock)
    common = {"admin_id": None, "target_count": 2, "included_count": 2, "success_count": 2, "failure_count": 0}

    first = await logs.record(inbox_message_id="m1", provider="log", **common)  # pyright: ignore[reportArgumentType]
    second = await logs.record(inbox_message_id="m2", provider="log", **common)  # pyright: ignore[reportArgumentType]
    third = await logs.record(inbox_message_id="m1", provider="log", **common)  # pyright: ignore[reportArgumentType]

    assert await logs.latest() == third
    assert await logs.for_message("m1") == [third, first]
    assert await logs.recent(2) == [third, second]
    assert await logs.recent(0) == []
    assert len({first.id, second.id, third.id}) == 3


@pytest.mark.asyncio
async def test_push_log_scrubs_provider_response() -> None:
    logs = InMemoryPushLogStore()

    entry = await logs.record(
        inbox_message_id="m1",
        admin_id="admin-1",
        target_count=1,
        included_count=1,
        success_count=0,
        failure_count=1,
        provider="expo",
        provider_response={"error": "DeviceNotRegistered: ExponentPushToken[abcdef]", "access_token": "secret"},
    )

    assert entry.provider_response == {
        "error": f"DeviceNotRegistered: ExponentPushToken[{REDACTED}]",
        "access_token": REDACTED,
    }
