"""Unit tests for structured logging configuration."""

import json
import logging

import pytest
import structlog

from ucp_payment_handler.logging_config import (
    configure_logging,
    mask_card_numbers,
    redact_card_numbers,
)


@pytest.fixture
def reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.mark.parametrize(
    "raw,masked",
    [
        ("4111111111111111", "************1111"),
        ("card 4111 1111 1111 1111 declined", "card ************1111 declined"),
        ("378282246310005", "***********0005"),
        ("5555-5555-5555-4444", "************4444"),
    ],
)
def test_mask_card_numbers(raw, masked):
    assert mask_card_numbers(raw) == masked


@pytest.mark.parametrize(
    "text",
    ["checkout_123", "tok_abc", "12345678901", "2026-01-15T12:00:00", "ttl 900"],
)
def test_non_card_values_untouched(text):
    assert mask_card_numbers(text) == text


def test_processor_masks_only_strings():
    event_dict = {"event": "tokenize_started", "pan": "4111111111111111", "attempt": 3}

    result = redact_card_numbers(None, "info", event_dict)

    assert result == {"event": "tokenize_started", "pan": "************1111", "attempt": 3}


def test_processor_masks_nested_values():
    event_dict = {
        "event": "tokenize_started",
        "metadata": {"note": "card 4111111111111111", "tags": ["5555555555554444", 7]},
        "pair": ("4111111111111111", "ok"),
    }

    result = redact_card_numbers(None, "info", event_dict)

    assert result["metadata"] == {
        "note": "card ************1111",
        "tags": ["************4444", 7],
    }
    assert result["pair"] == ("************1111", "ok")


def test_configured_json_output_is_redacted(caplog, reset_structlog):
    caplog.set_level(logging.INFO)
    configure_logging(log_level="INFO", format_as_json=True)
    logger = structlog.get_logger("ucp_payment_handler.test")

    logger.info("provider_response", body="card 4111111111111111 rejected")

    record = json.loads(caplog.messages[-1])
    assert record["event"] == "provider_response"
    assert record["body"] == "card ************1111 rejected"
    assert record["level"] == "info"
    assert record["logger"] == "ucp_payment_handler.test"
    assert "4111111111111111" not in caplog.messages[-1]


def test_redaction_can_be_disabled(caplog, reset_structlog):
    caplog.set_level(logging.INFO)
    configure_logging(format_as_json=True, redact_card_numbers_in_logs=False)
    logger = structlog.get_logger("ucp_payment_handler.test")

    logger.info("raw_event", value="4111111111111111")

    assert "4111111111111111" in caplog.messages[-1]
