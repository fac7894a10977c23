"""Logging setup: plain or JSON-lines output, optional PII redaction."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .pii import PIIRedactionFilter

TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

# Attributes every LogRecord carries; anything else came in through ``extra=``
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "asctime"}

# Chatty third-party loggers kept at WARNING unless running at DEBUG
_NOISY_LOGGERS = ("aiohttp.access", "aiohttp.client", "asyncio")


class JsonFormatter(logging.Formatter):
    """One JSON object per line.

    Values passed with ``logger.info(..., extra={"task_id": ...})`` are
    collected under ``"context"``.
    """

    def __init__(self, include_context: bool = True):
        super().__init__()
        self.include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "lineno": record.lineno,
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        if self.include_context:
            context = {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS}
            if context:
                entry["context"] = context
        return json.dumps(entry, default=str)


def _handler(handler: logging.Handler, formatter: logging.Formatter, pii_redact: bool) -> logging.Handler:
    handler.setFormatter(formatter)
    if pii_redact:
        handler.addFilter(PIIRedactionFilter())
    return handler


def setup_logging(
    level: str = "INFO",
    json_format: bool = False,
    pii_redact: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """Replace the root handlers with a stderr handler and, optionally, a file handler.

    Prompts, on-screen text and provider error bodies all reach the logs, so
    ``pii_redact`` should stay on outside development.
    """
    root = logging.getLogger()
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root.setLevel(numeric_level)
    for existing in root.handlers[:]:
        root.removeHandler(existing)

    formatter = JsonFormatter() if json_format else logging.Formatter(TEXT_FORMAT)
    root.addHandler(_handler(logging.StreamHandler(sys.stderr), formatter, pii_redact))
    if log_file:
        root.addHandler(
            _handler(logging.FileHandler(log_file, encoding="utf-8"), formatter, pii_redact)
        )

    if numeric_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
