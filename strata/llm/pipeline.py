"""Guarded LLM call path: usage guard, response cache, call, outcome recording.

Order per call is fixed: guard check -> cache lookup -> outbound call ->
record outcome -> cache write (success only). The network call runs outside
every lock held by the guard and the cache.
"""

import hashlib
import logging
import time
from typing import Awaitable, Callable, Optional, Union

from strata.llm import (
    LLMAuthenticationError,
    LLMBlockedError,
    LLMCallFailed,
    LLMExecutor,
    LLMRateLimitError,
    LLMTransientError,
)
from strata.llm.cache import ResponseCache
from strata.llm.usage_guard import FailureKind, UsageGuard
from strata.observability.metrics import MetricsCollector, get_metrics
from strata.observability.tracing import trace_llm_call

logger = logging.getLogger(__name__)

ExecutorFn = Callable[[str, Optional[bytes]], Awaitable[str]]

_ERRORS_BY_KIND = {
    FailureKind.INVALID_CREDENTIAL: LLMAuthenticationError,
    FailureKind.QUOTA: LLMRateLimitError,
    FailureKind.TRANSIENT: LLMTransientError,
}


def fingerprint(prompt: str, has_attachment: bool = False) -> str:
    """Cache key for a request: prompt digest plus whether a screen/image is attached."""
    digest = hashlib.sha256(prompt.encode("utf-8")).hexdigest()
    key = f"chat:{digest}"
    return f"{key}:screen" if has_attachment else key


class AgentCallPipeline:
    """Single entry point for LLM calls made on the agent's behalf."""

    def __init__(
        self,
        executor: Union[LLMExecutor, ExecutorFn],
        guard: Optional[UsageGuard] = None,
        cache: Optional[ResponseCache] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self._call = executor.complete if isinstance(executor, LLMExecutor) else executor
        self.guard = guard or UsageGuard()
        self.cache = cache or ResponseCache()
        self.metrics = metrics or get_metrics()

    async def call(self, prompt: str, attachment: Optional[bytes] = None) -> str:
        """Return the model's response for ``prompt``.

        Raises:
            ValueError: the prompt is blank.
            LLMBlockedError: the usage guard refused the call.
            LLMCallFailed: the call failed; the subclass tells the failure kind.
        """
        if not prompt or not prompt.strip():
            raise ValueError("Prompt is blank")

        has_attachment = attachment is not None
        key = fingerprint(prompt, has_attachment)

        reason = self.guard.request_block_reason()
        if reason is not None:
            self.metrics.record_blocked()
            logger.info("LLM call blocked: %s", reason.message)
            raise LLMBlockedError(reason)

        cached = self.cache.get(key)
        if cached is not None:
            self.metrics.record_cache_hit()
            logger.debug("LLM cache hit")
            return cached

        t0 = time.perf_counter()
        try:
            with trace_llm_call(key, has_attachment):
                response = await self._call(prompt, attachment)
        except Exception as e:
            self.metrics.record_llm_call(0, error=True)
            kind = self.guard.record_failure(e)
            error_cls = _ERRORS_BY_KIND[kind]
            logger.error("LLM call failed (%s): %s", kind.value, e)
            raise error_cls(str(e) or type(e).__name__, kind) from e

        self.metrics.record_llm_call(time.perf_counter() - t0)
        self.guard.record_success()
        self.cache.put(key, response)
        return response


def describe_error(error: Exception) -> str:
    """Short user-facing text for a pipeline failure.

    Credential problems need user action, so they read differently from
    waits that will clear on their own.
    """
    if isinstance(error, LLMBlockedError):
        return error.reason.message
    if isinstance(error, LLMAuthenticationError):
        return f"The assistant's API key was rejected ({error}). Update it in settings; waiting will not help."
    if isinstance(error, LLMRateLimitError):
        return f"The model provider is rate limiting requests ({error}). Try again in a couple of minutes."
    if isinstance(error, LLMCallFailed):
        return f"The model call failed ({error}). You can retry."
    return str(error)
