# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Handler setup for the ``unsus`` logger tree.

Scan logs quote install output, command lines and intel requests, so the
handler carries a filter that masks credentials before any formatter runs.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from typing import IO, Any

LOGGER_NAME = "unsus"
TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
MASK = "[REDACTED]"
LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Group 1 is the part left visible.
SECRET_RULES: tuple[re.Pattern[str], ...] = (
    re.compile(r"(npm_[A-Za-z0-9]{4})[A-Za-z0-9]{32}"),
    re.compile(r"(gh[pousr]_[A-Za-z0-9]{4})[A-Za-z0-9_]{32,}"),
    re.compile(r"(AKIA[A-Z0-9]{4})[A-Z0-9]{12}"),
    re.compile(r"(_auth(?:Token)?\s*=\s*)[^\s\"']+"),
    re.compile(r"(://[^/\s:@]+:)[^/\s@]+(?=@)"),
    re.compile(r"(x-apikey:\s*[a-f0-9]{6})[a-f0-9]*", re.IGNORECASE),
    re.compile(r"(Bearer\s+[A-Za-z0-9._~+/-]{10})[A-Za-z0-9._~+/-]*"),
)


def redact_sensitive(text: str) -> str:
    for rule in SECRET_RULES:
        text = rule.sub(rf"\g<1>{MASK}", text)
    return text


class RedactionFilter(logging.Filter):
    """Render the message once and mask it, along with any traceback."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = redact_sensitive(record.getMessage())
        record.args = None
        if record.exc_info and not record.exc_text:
            record.exc_text = redact_sensitive(
                logging.Formatter().formatException(record.exc_info)
            )
        return True


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_text:
            entry["traceback"] = record.exc_text
        elif record.exc_info:
            entry["traceback"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def setup_logging(
    level: str = "WARNING", fmt: str = "text", stream: IO[str] | None = None
) -> logging.Handler:
    """Replace the handlers on the ``unsus`` logger with a single redacting one."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(LEVELS.get(level.upper(), logging.WARNING))
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.addFilter(RedactionFilter())
    handler.setFormatter(JsonLineFormatter() if fmt == "json" else logging.Formatter(TEXT_FORMAT))
    logger.addHandler(handler)
    return handler
