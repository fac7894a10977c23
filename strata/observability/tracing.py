"""OpenTelemetry spans around LLM and vision calls.

Install the ``tracing`` extra to enable it; without opentelemetry every span
helper is a no-op context manager.
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

try:
    from opentelemetry import trace
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
except ImportError:
    trace = None

logger = logging.getLogger(__name__)

_provider = None
_tracer = None


def is_available() -> bool:
    return trace is not None


def init_tracing(service_name: str = "strata", export_console: bool = False) -> bool:
    """Install a tracer provider. Returns False when opentelemetry is missing."""
    global _provider, _tracer
    if trace is None:
        logger.debug("opentelemetry not installed; spans are disabled")
        return False
    from strata import __version__

    _provider = TracerProvider()
    if export_console:
        _provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(_provider)
    _tracer = trace.get_tracer(service_name, __version__)
    logger.info("Tracing enabled for %s", service_name)
    return True


def shutdown_tracing() -> None:
    """Flush pending spans. Safe to call when tracing was never enabled."""
    global _provider, _tracer
    if _provider is not None:
        _provider.shutdown()
    _provider = None
    _tracer = None


def _attribute(value: Any):
    return value if isinstance(value, (bool, int, float, str)) else str(value)


@contextmanager
def span(name: str, **attributes: Any) -> Iterator[Optional[Any]]:
    if _tracer is None:
        yield None
        return
    with _tracer.start_as_current_span(name) as current:
        for key, value in attributes.items():
            current.set_attribute(key, _attribute(value))
        yield current


def trace_llm_call(fingerprint: str, has_attachment: bool):
    # Only a prefix of the fingerprint; the full key is not needed to correlate calls
    return span("llm.call", **{"llm.fingerprint": fingerprint[:16], "llm.attachment": has_attachment})


def trace_vision_call(forced: bool):
    return span("perception.vision", **{"perception.forced": forced})
