"""LLM usage guard: daily quota, failure cooldowns and failure classification.

The guard is consulted before every outbound call and told about every
outcome. It never raises; a refused call is described by a ``BlockReason``.

Cooldowns by failure kind:
- invalid credential ("invalid_api_key", "expired", ...): 10 minutes
- quota / rate limit ("rate_limit", "quota", "resource_exhausted", HTTP 429): 2 minutes
- anything else: 30 seconds once 3 such failures happen in a row

A new cooldown never shortens an existing one. All counters and cooldowns
are dropped when the local calendar date changes.
"""

import logging
import math
import re
import threading
from dataclasses import dataclass, replace
from datetime import date
from enum import Enum
from typing import Optional, Union

from strata.utils.clock import Clock, SYSTEM_CLOCK

logger = logging.getLogger(__name__)

DEFAULT_TRANSIENT_THRESHOLD = 3
DEFAULT_TRANSIENT_COOLDOWN = 30.0
DEFAULT_RATE_LIMIT_COOLDOWN = 2 * 60.0
DEFAULT_CREDENTIAL_COOLDOWN = 10 * 60.0

_CREDENTIAL_TERMS = ("invalid_api_key", "invalid api key", "invalid key", "expired")
_QUOTA_TERMS = (
    "rate_limit",
    "rate limit",
    "quota",
    "resource_exhausted",
    "resource exhausted",
)
_HTTP_429 = re.compile(r"(?<!\d)429(?!\d)")


class FailureKind(str, Enum):
    INVALID_CREDENTIAL = "invalid_credential"
    QUOTA = "quota"
    TRANSIENT = "transient"


class BlockKind(str, Enum):
    DAILY_LIMIT = "daily_limit"
    COOLDOWN = "cooldown"
    CREDENTIAL = "credential"


def classify_failure(message: Optional[str]) -> FailureKind:
    """Map a provider error message to a failure kind.

    Heuristic substring matching; unknown messages are transient.
    """
    text = (message or "").lower()
    if any(term in text for term in _CREDENTIAL_TERMS):
        return FailureKind.INVALID_CREDENTIAL
    if any(term in text for term in _QUOTA_TERMS) or _HTTP_429.search(text):
        return FailureKind.QUOTA
    return FailureKind.TRANSIENT


@dataclass(frozen=True)
class BlockReason:
    kind: BlockKind
    message: str
    retry_after_seconds: Optional[int] = None

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class UsageStatus:
    used_requests: int = 0
    daily_limit: Optional[int] = None
    exhausted: bool = False
    last_error: Optional[str] = None


class UsageGuard:
    """Process-wide LLM request accounting with cooldowns."""

    def __init__(
        self,
        daily_limit: Optional[int] = None,
        clock: Clock = SYSTEM_CLOCK,
        transient_threshold: int = DEFAULT_TRANSIENT_THRESHOLD,
        transient_cooldown: float = DEFAULT_TRANSIENT_COOLDOWN,
        rate_limit_cooldown: float = DEFAULT_RATE_LIMIT_COOLDOWN,
        credential_cooldown: float = DEFAULT_CREDENTIAL_COOLDOWN,
    ):
        self._clock = clock
        self._lock = threading.Lock()
        self._status = UsageStatus(daily_limit=daily_limit)
        self._consecutive_failures = 0
        self._blocked_until = 0.0
        self._blocked_kind: Optional[FailureKind] = None
        self._last_reset_date: Optional[date] = None
        self.transient_threshold = transient_threshold
        self._cooldowns = {
            FailureKind.INVALID_CREDENTIAL: credential_cooldown,
            FailureKind.QUOTA: rate_limit_cooldown,
            FailureKind.TRANSIENT: transient_cooldown,
        }

    @classmethod
    def from_settings(cls, settings, clock: Clock = SYSTEM_CLOCK) -> "UsageGuard":
        return cls(
            daily_limit=settings.daily_quota,
            clock=clock,
            transient_threshold=settings.transient_failure_threshold,
            transient_cooldown=settings.transient_cooldown_seconds,
            rate_limit_cooldown=settings.rate_limit_cooldown_seconds,
            credential_cooldown=settings.credential_cooldown_seconds,
        )

    def status(self) -> UsageStatus:
        with self._lock:
            self._ensure_daily_reset()
            return self._status

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    def set_daily_limit(self, limit: Optional[int]) -> None:
        with self._lock:
            self._status = replace(self._status, daily_limit=limit)

    def request_block_reason(self) -> Optional[BlockReason]:
        with self._lock:
            self._ensure_daily_reset()
            now = self._clock.time()
            limit = self._status.daily_limit
            if limit is not None and self._status.used_requests >= limit:
                self._status = replace(self._status, exhausted=True)
                return BlockReason(BlockKind.DAILY_LIMIT, "Daily LLM limit reached.")
            if self._blocked_until > now:
                seconds = math.ceil(self._blocked_until - now)
                if self._blocked_kind == FailureKind.INVALID_CREDENTIAL:
                    return BlockReason(
                        BlockKind.CREDENTIAL,
                        f"LLM credentials were rejected; check the API key. "
                        f"Retrying in {seconds}s.",
                        seconds,
                    )
                return BlockReason(
                    BlockKind.COOLDOWN, f"LLM cooldown active for {seconds}s.", seconds
                )
            return None

    def record_success(self) -> None:
        with self._lock:
            self._ensure_daily_reset()
            self._consecutive_failures = 0
            self._blocked_until = 0.0
            self._blocked_kind = None
            self._status = replace(
                self._status,
                used_requests=self._status.used_requests + 1,
                exhausted=False,
                last_error=None,
            )

    def record_failure(self, error: Union[BaseException, str, None]) -> FailureKind:
        """Record a failed call and return how it was classified."""
        message = str(error) if error is not None else ""
        kind = classify_failure(message)
        with self._lock:
            self._ensure_daily_reset()
            now = self._clock.time()
            cooldown_until = None
            if kind == FailureKind.TRANSIENT:
                self._consecutive_failures += 1
                if self._consecutive_failures >= self.transient_threshold:
                    cooldown_until = now + self._cooldowns[kind]
            else:
                cooldown_until = now + self._cooldowns[kind]

            if cooldown_until is not None and cooldown_until > self._blocked_until:
                self._blocked_until = cooldown_until
                self._blocked_kind = kind

            self._status = replace(
                self._status,
                used_requests=self._status.used_requests + 1,
                exhausted=self._status.exhausted or kind != FailureKind.TRANSIENT,
                last_error=message or None,
            )
            consecutive = self._consecutive_failures
        logger.warning(
            "LLM failure classified as %s (consecutive transient failures: %d)",
            kind.value,
            consecutive,
        )
        return kind

    def _ensure_daily_reset(self) -> None:
        today = self._clock.today()
        if self._last_reset_date != today:
            if self._last_reset_date is not None:
                logger.info("New day %s, resetting LLM usage counters", today.isoformat())
            self._last_reset_date = today
            self._consecutive_failures = 0
            self._blocked_until = 0.0
            self._blocked_kind = None
            self._status = replace(
                self._status, used_requests=0, exhausted=False, last_error=None
            )
