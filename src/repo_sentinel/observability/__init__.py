"""Logging configuration shared by the CLI and tests."""

from repo_sentinel.observability.logging import (
    LOG_FORMATS,
    LOGGER_NAME,
    configure_logging,
    redact_text,
    redact_value,
)

__all__ = [
    "LOGGER_NAME",
    "LOG_FORMATS",
    "configure_logging",
    "redact_text",
    "redact_value",
]
