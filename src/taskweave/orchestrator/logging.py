"""Structured logging configuration.

Uses standard library logging. Engine records carry run context through
``extra=`` (``workflow``, ``workflow_id``, ``component``, ``step`` ...); both
formatters surface those fields so interleaved runs stay distinguishable.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

_RESERVED_LOG_RECORD_ATTRS: frozenset[str] = frozenset(
    logging.makeLogRecord({}).__dict__
) | {"message", "asctime", "taskName"}

# Promoted to top-level keys of the JSON payload, in this order.
CONTEXT_FIELDS: tuple[str, ...] = ("workflow", "workflow_id", "component", "kind", "step")

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def record_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Fields passed via ``extra=`` on a record."""

    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED_LOG_RECORD_ATTRS and not key.startswith("_")
    }


class JsonFormatter(logging.Formatter):
    """One JSON object per record; run context fields sit at the top level."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        fields = record_fields(record)
        for key in CONTEXT_FIELDS:
            if key in fields:
                payload[key] = fields.pop(key)
        if fields:
            payload["extra"] = fields

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable lines with ``key=value`` context appended."""

    def __init__(self) -> None:
        super().__init__(TEXT_FORMAT)

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        line = super().format(record)
        fields = record_fields(record)
        if not fields:
            return line

        ordered = [k for k in CONTEXT_FIELDS if k in fields]
        ordered += sorted(k for k in fields if k not in CONTEXT_FIELDS)
        context = " ".join(f"{key}={fields[key]}" for key in ordered)

        head, sep, tail = line.partition("\n")
        return f"{head} [{context}]{sep}{tail}"


def configure_logging(level: str, fmt: str = "json") -> None:
    """Configure root logging with JSON (default) or plain text output."""

    root = logging.getLogger()

    # Remove any existing handlers to avoid duplicate logs when re-configuring.
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(TextFormatter() if fmt == "text" else JsonFormatter())

    root.addHandler(handler)
    root.setLevel(level.upper())

    # Keep third-party loggers reasonably quiet unless explicitly configured.
    logging.getLogger("asyncio").setLevel(max(root.level, logging.INFO))
