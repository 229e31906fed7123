"""Structured logging configuration using structlog."""

import logging
import re
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

# Any run of 12-19 digits, optionally separated by single spaces or dashes
_CARD_NUMBER_PATTERN = re.compile(r"(?<!\d)(?:\d[ -]?){11,18}\d(?!\d)")


def _mask_card_number(match: re.Match) -> str:
    digits = re.sub(r"\D", "", match.group(0))
    return "*" * (len(digits) - 4) + digits[-4:]


def mask_card_numbers(value: str) -> str:
    """Replace card-number-like digit runs with a masked form keeping the last 4."""
    return _CARD_NUMBER_PATTERN.sub(_mask_card_number, value)


def _redact_value(value: Any) -> Any:
    if isinstance(value, str):
        return mask_card_numbers(value)
    if isinstance(value, dict):
        return {key: _redact_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_redact_value(item) for item in value]
    if isinstance(value, tuple):
        return tuple(_redact_value(item) for item in value)
    return value


def redact_card_numbers(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask card-number-like values in event fields, including nested containers."""
    for key, value in event_dict.items():
        event_dict[key] = _redact_value(value)
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    format_as_json: bool = True,
    redact_card_numbers_in_logs: bool = True,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_as_json: If True, output logs as JSON; otherwise use console format
        redact_card_numbers_in_logs: If True, mask card-number-like values
    """
    # Configure standard logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    # Build processor chain
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]

    if redact_card_numbers_in_logs:
        processors.append(redact_card_numbers)

    # Add appropriate renderer
    if format_as_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

