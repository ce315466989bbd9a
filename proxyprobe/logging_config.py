"""Structured JSON logging configuration.

Configures Python logging to emit JSON-formatted log entries with the
fields timestamp, level, logger and message. Probe-specific fields are added
contextually through ``extra`` (stage, attempt, max_attempts, outcome,
endpoint, protocol for stage transitions; duration_ms and cert_expiry for
completed chains; error_reason for failures).

SECURITY: share links carry credentials. User-info segments and
password/uuid style pairs are redacted before anything is written.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone

# scheme://<user-info>@ in share links
_USERINFO_PATTERN = re.compile(r"([a-z][a-z0-9+.-]*://)[^@\s/]+@", re.IGNORECASE)

# key=value / key: value pairs that hold secrets
_SENSITIVE_PATTERNS = re.compile(
    r"(password|passwd|secret|token|credential|uuid|\bid)"
    r"[\s]*[=:]\s*[^\s&,]+",
    re.IGNORECASE,
)

_CONTEXT_FIELDS = (
    "stage",
    "attempt",
    "max_attempts",
    "outcome",
    "endpoint",
    "protocol",
    "duration_ms",
    "cert_expiry",
)

_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def sanitize(text: str) -> str:
    """Remove credential material from log text."""
    text = _USERINFO_PATTERN.sub(r"\1[REDACTED]@", text)
    return _SENSITIVE_PATTERNS.sub("[REDACTED]", text)


class JsonFormatter(logging.Formatter):
    """Formats log records as JSON with structured fields.

    Each entry contains at minimum: timestamp, level, logger, message.
    Additional fields can be attached via the ``extra`` dict on log calls.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": sanitize(record.getMessage()),
        }

        for name in _CONTEXT_FIELDS:
            if hasattr(record, name):
                value = getattr(record, name)
                # Enum members serialize by value
                entry[name] = getattr(value, "value", value)

        if hasattr(record, "error_reason"):
            entry["error_reason"] = sanitize(str(getattr(record, "error_reason")))

        if record.exc_info and record.exc_info[1]:
            entry["exception"] = sanitize(self.formatException(record.exc_info))

        return json.dumps(entry, default=str, ensure_ascii=False)


class RedactingFormatter(logging.Formatter):
    """Plain-text formatter that applies the same redaction as JsonFormatter."""

    def format(self, record: logging.LogRecord) -> str:
        return sanitize(super().format(record))


def configure_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Configure the root logger.

    Parameters
    ----------
    level:
        Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    fmt:
        ``json`` for one JSON object per line, ``text`` for a human format.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Remove existing handlers to avoid duplicates
    root.handlers.clear()

    handler = logging.StreamHandler()
    if fmt == "text":
        handler.setFormatter(RedactingFormatter(_TEXT_FORMAT))
    else:
        handler.setFormatter(JsonFormatter())
    root.addHandler(handler)
