"""
Tests for logging_setup module.

Verifies:
- JSON structured logging format
- Component tagging and session correlation
- PII-aware logging helpers
- Log level configuration
"""
import json
import logging
from datetime import datetime
from io import StringIO

import pytest

from logging_setup import (
    setup_logging,
    get_logger,
    Component,
    JSONFormatter,
)


@pytest.fixture
def capture_logs():
    """Capture log output to a string buffer."""
    buffer = StringIO()
    handler = logging.StreamHandler(buffer)
    handler.setFormatter(JSONFormatter())

    logger = logging.getLogger()
    logger.handlers = []
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)

    yield buffer

    logger.handlers = []


@pytest.fixture
def restore_root_logger():
    root_logger = logging.getLogger()
    handlers, level = root_logger.handlers[:], root_logger.level
    yield root_logger
    root_logger.handlers = handlers
    root_logger.setLevel(level)


def _entries(buffer):
    return [json.loads(line) for line in buffer.getvalue().strip().split("\n") if line]


def test_json_formatter_basic(capture_logs):
    logger = get_logger(Component.CHAT_SESSION)
    logger.info("Combo changed", language="en-US")

    log_entry = _entries(capture_logs)[0]

    assert log_entry["severity"] == "info"
    assert log_entry["component"] == "chat_session"
    assert log_entry["message"] == "Combo changed"
    assert log_entry["language"] == "en-US"
    datetime.fromisoformat(log_entry["timestamp"].replace("Z", "+00:00"))


def test_session_id_correlation(capture_logs):
    get_logger(Component.CHAT_SESSION, session_id="sess_123").info("Session test")
    get_logger(Component.DISPATCHER).info("No session")

    with_session, without_session = _entries(capture_logs)
    assert with_session["session_id"] == "sess_123"
    assert "session_id" not in without_session


def test_with_session_creates_new_logger(capture_logs):
    base_logger = get_logger(Component.CHAT_SERVER)
    base_logger.with_session("sess_456").info("With session")

    assert _entries(capture_logs)[0]["session_id"] == "sess_456"
    assert base_logger.session_id is None


def test_pii_logging(capture_logs):
    logger = get_logger(Component.CHAT_SESSION, session_id="sess_789")
    logger.info_pii("Utterance received", text="how are you")
    logger.debug_pii("Suggestion chosen", text="i'm okay")

    received, chosen = _entries(capture_logs)
    assert received["pii"] == {"text": "how are you"}
    assert "text" not in received
    assert chosen["severity"] == "debug"
    assert chosen["pii"]["text"] == "i'm okay"


def test_severity_levels(capture_logs):
    logger = get_logger(Component.REWRITERS)

    logger.debug("Debug message")
    logger.info("Info message")
    logger.warning("Warning message")
    logger.error("Error message")

    severities = [e["severity"] for e in _entries(capture_logs)]
    assert severities == ["debug", "info", "warning", "error"]


def test_component_string_fallback(capture_logs):
    get_logger("custom_component").info("Test")
    assert _entries(capture_logs)[0]["component"] == "custom_component"


def test_non_json_values_are_stringified(capture_logs):
    get_logger(Component.DISPATCHER).info("Outcome", status=Component.DISPATCHER, ids={"a": 1})

    log_entry = _entries(capture_logs)[0]
    assert log_entry["status"] == "dispatcher"
    assert log_entry["ids"] == {"a": 1}


def test_exception_logging(capture_logs):
    logger = get_logger(Component.ACTIONS)

    try:
        raise ValueError("Test exception")
    except ValueError:
        logger.exception("Action handler failed")

    log_entry = _entries(capture_logs)[0]
    assert log_entry["severity"] == "error"
    assert "ValueError: Test exception" in log_entry["exception"]


def test_setup_logging_json(restore_root_logger):
    setup_logging(level="DEBUG", use_json=True)

    assert restore_root_logger.level == logging.DEBUG
    assert len(restore_root_logger.handlers) == 1
    assert isinstance(restore_root_logger.handlers[0].formatter, JSONFormatter)


def test_setup_logging_text(restore_root_logger):
    setup_logging(level="warning", use_json=False)

    assert restore_root_logger.level == logging.WARNING
    assert not isinstance(restore_root_logger.handlers[0].formatter, JSONFormatter)
