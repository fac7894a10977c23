"""Observability: structured logging, PII redaction, optional tracing, metrics."""

from .logging_config import setup_logging, JsonFormatter
from .metrics import MetricsCollector, get_metrics
from .pii import PIIRedactionFilter, redact_pii

__all__ = [
    "setup_logging",
    "JsonFormatter",
    "MetricsCollector",
    "get_metrics",
    "PIIRedactionFilter",
    "redact_pii",
]
