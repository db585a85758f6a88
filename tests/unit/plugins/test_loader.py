"""Tests for plugin discovery and provider loading."""

from __future__ import annotations

import logging

import pytest
from _pytest.logging import LogCaptureFixture

from inbox_targeting.plugins import (
    PluginLoaderError,
    PluginMetadata,
    discover_plugins,
    get_plugin,
    load_provider,
    register_plugin,
)
from inbox_targeting.plugins.expo.provider import ExpoPushProvider
from inbox_targeting.plugins.log.provider import LoggingPushProvider
from inbox_targeting.types import DeliveryProvider, OutboundPush, PushContent
from tests.fixtures.factories import FakeHTTPClient


@pytest.mark.unit
class TestDiscovery:
    """Test metadata registration and scanning."""

    def test_bundled_plugins_discovered(self) -> None:
        identifiers = [meta.identifier for meta in discover_plugins()]
        assert identifiers == sorted(identifiers)
        assert {"expo", "log"} <= set(identifiers)

    def test_get_plugin(self) -> None:
        metadata = get_plugin("expo")
        assert metadata is not None
        assert metadata.package == "inbox_targeting.plugins.expo"
        assert get_plugin("pigeon") is None

    def test_re_registering_identical_metadata_is_a_no_op(self) -> None:
        metadata = get_plugin("log")
        assert metadata is not None
        register_plugin(metadata)
        assert get_plugin("log") == metadata

    def test_conflicting_registration_rejected(self) -> None:
        with pytest.raises(ValueError, match="already registered"):
            register_plugin(
                PluginMetadata(identifier="expo", name="Other", package="elsewhere.expo", version="9")
            )

    @pytest.mark.parametrize(
        ("identifier", "package"),
        [("Expo", "pkg.Expo"), ("sms", "pkg.text_messages")],
    )
    def test_invalid_registration(self, identifier: str, package: str) -> None:
        with pytest.raises(ValueError, match="Plugin identifier"):
            register_plugin(PluginMetadata(identifier=identifier, name="x", package=package, version="1"))


@pytest.mark.unit
class TestLoadProvider:
    """Test factory resolution and result checking."""

    def test_load_expo_with_settings(self) -> None:
        provider = load_provider("expo", {"http_client": FakeHTTPClient(), "settings": {"batch_size": 25}})
        assert isinstance(provider, ExpoPushProvider)
        assert provider.config.batch_size == 25

    def test_load_log_provider(self) -> None:
        provider = load_provider("log")
        assert isinstance(provider, DeliveryProvider)
        assert provider.name == "log"

    def test_unknown_identifier(self) -> None:
        with pytest.raises(PluginLoaderError, match="Unknown push provider 'pigeon'"):
            _ = load_provider("pigeon")

    def test_factory_failure_is_wrapped(self) -> None:
        with pytest.raises(PluginLoaderError, match="Plugin factory failed"):
            _ = load_provider("expo", {"http_client": FakeHTTPClient(), "settings": {"batch_size": 0}})

    def test_missing_dependency_is_wrapped(self) -> None:
        with pytest.raises(PluginLoaderError, match="Plugin factory failed"):
            _ = load_provider("expo", {"settings": {}})


@pytest.mark.asyncio
async def test_logging_provider_masks_tokens(caplog: LogCaptureFixture) -> None:
    provider = LoggingPushProvider()
    token = "ExponentPushToken[abcdefghijklmnopqrstuv]"
    caplog.set_level(logging.INFO)

    report = await provider.send_batch([OutboundPush(token=token, content=PushContent(title="T", body="B"))])

    assert report.success_count == 1
    assert report.provider_response == {"logged": 1}
    assert len(provider.sent) == 1
    assert "abcdefghijklmnop" not in caplog.text


@pytest.mark.unit
@pytest.mark.parametrize(
    ("token", "expected"),
    [
        ("ExponentPushToken[abcdefghijklmnopqrstuv]", True),
        ("garbage", False),
        ("   ", False),
        ("ExponentPushToken[]", False),
    ],
)
def test_logging_provider_accepts_only_device_token_shape(token: str, expected: bool) -> None:
    assert LoggingPushProvider().is_valid_token(token) is expected
