"""Tests for logging configuration, correlation IDs and redaction filters."""

from __future__ import annotations

import logging
from collections.abc import Generator

import pytest

from inbox_targeting.utils.logging import (
    CorrelationIDFilter,
    SecretRedactingFilter,
    clear_correlation_id,
    configure_logging,
    get_correlation_id,
    log_with_context,
    set_correlation_id,
)
from inbox_targeting.utils.sanitization import REDACTED


class CapturingHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@pytest.fixture
def captured() -> Generator[tuple[logging.Logger, CapturingHandler]]:
    logger = logging.getLogger("tests.logging.capture")
    handler = CapturingHandler()
    handler.addFilter(CorrelationIDFilter())
    handler.addFilter(SecretRedactingFilter())
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    yield logger, handler
    logger.removeHandler(handler)


@pytest.mark.unit
def test_correlation_id_lifecycle() -> None:
    assert get_correlation_id() is None
    set_correlation_id("abc")
    assert get_correlation_id() == "abc"
    clear_correlation_id()
    assert get_correlation_id() is None


@pytest.mark.unit
def test_correlation_filter_fills_placeholder(captured: tuple[logging.Logger, CapturingHandler]) -> None:
    logger, handler = captured
    logger.info("without id")
    set_correlation_id("push-42")
    logger.info("with id")

    assert [getattr(record, "correlation_id") for record in handler.records] == ["N/A", "push-42"]


@pytest.mark.unit
def test_redacting_filter_scrubs_message_args_and_extra(
    captured: tuple[logging.Logger, CapturingHandler],
) -> None:
    logger, handler = captured
    logger.info(
        "Registered %s",
        "ExponentPushToken[abcdefgh]",
        extra={"push_token": "ExponentPushToken[abcdefgh]", "device_id": "d1"},
    )

    record = handler.records[0]
    assert record.getMessage() == f"Registered ExponentPushToken[{REDACTED}]"
    assert getattr(record, "push_token") == REDACTED
    assert getattr(record, "device_id") == "d1"


@pytest.mark.unit
def test_log_with_context_attaches_correlation_id(
    captured: tuple[logging.Logger, CapturingHandler],
) -> None:
    logger, handler = captured
    set_correlation_id("ctx-1")

    log_with_context(logger, logging.WARNING, "Push dispatched", extra={"included_count": 3})

    record = handler.records[0]
    assert record.levelno == logging.WARNING
    assert getattr(record, "included_count") == 3
    assert getattr(record, "correlation_id") == "ctx-1"


@pytest.mark.unit
def test_configure_logging_installs_filtered_console_handler() -> None:
    root = logging.getLogger()
    previous_handlers = list(root.handlers)
    previous_level = root.level
    try:
        configure_logging(log_level="DEBUG", enable_syslog=False, enable_console=True)
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        filters = {type(item) for item in root.handlers[0].filters}
        assert filters == {CorrelationIDFilter, SecretRedactingFilter}
    finally:
        root.handlers[:] = previous_handlers
        root.setLevel(previous_level)


@pytest.mark.unit
def test_configure_logging_survives_missing_syslog(capsys: pytest.CaptureFixture[str]) -> None:
    root = logging.getLogger()
    previous_handlers = list(root.handlers)
    previous_level = root.level
    try:
        configure_logging(
            enable_syslog=True,
            syslog_address="/nonexistent/inbox-targeting.sock",
            enable_console=False,
        )
        assert "Could not connect to syslog" in capsys.readouterr().err
    finally:
        root.handlers[:] = previous_handlers
        root.setLevel(previous_level)
