"""PII detection and redaction for logs.

Prompts, mail bodies and on-screen text flow through the pipeline and the
perception loop, so anything they log goes through this filter first.
"""

import logging
import re

PII_REDACTED = "[REDACTED]"

_PII_PATTERNS = [
    # Email
    re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"),
    # Credit card (4 groups of 4 digits); before phone so the groups stay whole
    re.compile(r"\b(?:\d{4}[-.\s]?){3}\d{4}\b"),
    # Phone
    re.compile(r"\b\d{3}[-.\s]?\d{3}[-.\s]?\d{4}\b"),
    re.compile(r"\(\d{3}\)\s*\d{3}[-.\s]?\d{4}\b"),
    # API keys and bearer tokens
    re.compile(r"\bsk-[a-zA-Z0-9_-]{20,}\b"),
    re.compile(r"\bya29\.[a-zA-Z0-9_-]{20,}"),
    re.compile(r"(?i)\bbearer\s+[a-zA-Z0-9._-]{16,}"),
]


def redact_pii(text: str, replacement: str = PII_REDACTED) -> str:
    """Redact PII from text. Returns text with matches replaced."""
    if not text:
        return text
    result = text
    for pattern in _PII_PATTERNS:
        result = pattern.sub(replacement, result)
    return result


class PIIRedactionFilter(logging.Filter):
    """Filter that redacts PII from log messages before they are emitted."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = redact_pii(str(record.msg))
        if record.args:
            if isinstance(record.args, dict):
                record.args = {k: _redact_arg(v) for k, v in record.args.items()}
            else:
                record.args = tuple(_redact_arg(a) for a in record.args)
        return True


def _redact_arg(value):
    # Numbers stay numbers so %d and %.1f placeholders still format
    if isinstance(value, (int, float)):
        return value
    return redact_pii(str(value))
