"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from collections.abc import Callable, Generator
from datetime import datetime

import pytest

from inbox_targeting.types import UserContext
from inbox_targeting.utils.logging import clear_correlation_id
from tests.fixtures.factories import NOW, MessageFactory, build_message


@pytest.fixture
def now() -> datetime:
    """Fixed evaluation instant."""
    return NOW


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """Clock returning the fixed evaluation instant."""
    return lambda: NOW


@pytest.fixture
def make_message() -> MessageFactory:
    """Factory for test messages."""
    return build_message


@pytest.fixture
def visitor() -> UserContext:
    return UserContext(device_id="device-visitor", user_mode="visitor")


@pytest.fixture
def vis_local() -> UserContext:
    return UserContext(device_id="device-vis", user_mode="local", municipality="vis")


@pytest.fixture
def komiza_local() -> UserContext:
    return UserContext(device_id="device-komiza", user_mode="local", municipality="komiza")


@pytest.fixture(autouse=True)
def reset_correlation_id() -> Generator[None]:
    """Keep correlation IDs from leaking between tests."""
    clear_correlation_id()
    yield
    clear_correlation_id()
