"""Output module for encoding hardware reports."""

from .formatters import (
    JsonOutputFormatter,
    OutputFormatter,
    PlainTextOutputFormatter,
    get_formatter,
    sanitize_key,
)

__all__ = [
    "OutputFormatter",
    "JsonOutputFormatter",
    "PlainTextOutputFormatter",
    "get_formatter",
    "sanitize_key",
]
