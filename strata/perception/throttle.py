"""Vision-call throttling driven by a digest of the extracted screen text.

A vision-model summary is expensive, so it is requested only when the
screen content actually changed and the last summary is old enough, or when
the user explicitly asks (``force``), subject to a much shorter floor.
Otherwise the last accepted summary is reused.
"""

import hashlib
import logging
import threading
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, List, Optional

from strata.observability.metrics import MetricsCollector, get_metrics
from strata.observability.tracing import trace_vision_call
from strata.utils.clock import Clock, SYSTEM_CLOCK
from .models import OcrBlock, UiElement

logger = logging.getLogger(__name__)

MIN_VISION_INTERVAL = 60.0
FORCE_MIN_INTERVAL = 5.0
MAX_OCR_SPANS = 160
MAX_UI_SPANS = 80
DIGEST_SEPARATOR = "|"


def _normalized(spans: Iterable[Optional[str]], limit: int) -> List[str]:
    out = []
    for span in spans:
        if span is None:
            continue
        text = span.strip().lower()
        if not text:
            continue
        out.append(text)
        if len(out) >= limit:
            break
    return out


def compute_digest(ocr_blocks: Iterable[OcrBlock], ui_elements: Iterable[UiElement]) -> str:
    """Fingerprint of the visible text; insensitive to case and surrounding whitespace."""
    ocr_lines = _normalized((b.text for b in ocr_blocks), MAX_OCR_SPANS)
    ui_lines = _normalized((e.label for e in ui_elements), MAX_UI_SPANS)
    combined = DIGEST_SEPARATOR.join(ocr_lines + ui_lines)
    return hashlib.sha1(combined.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class PerceptionOutcome:
    digest: str
    digest_changed: bool
    vision_called: bool
    vision_summary: Optional[str]
    vision_updated_at: Optional[float]


class PerceptionThrottle:
    def __init__(
        self,
        min_interval: float = MIN_VISION_INTERVAL,
        force_min_interval: float = FORCE_MIN_INTERVAL,
        clock: Clock = SYSTEM_CLOCK,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.min_interval = min_interval
        self.force_min_interval = force_min_interval
        self._clock = clock
        self.metrics = metrics or get_metrics()
        self._lock = threading.Lock()
        self.last_digest: Optional[str] = None
        self.last_vision_at: Optional[float] = None
        self.last_vision_summary: Optional[str] = None

    @classmethod
    def from_settings(cls, settings, clock: Clock = SYSTEM_CLOCK) -> "PerceptionThrottle":
        return cls(
            min_interval=settings.vision_min_interval_seconds,
            force_min_interval=settings.vision_force_min_interval_seconds,
            clock=clock,
        )

    def _allowed(self, digest: str, force: bool, now: float) -> bool:
        last = self.last_vision_at
        if force:
            return last is None or now - last >= self.force_min_interval
        return digest != self.last_digest and (last is None or now - last >= self.min_interval)

    def decide(self, digest: str, force: bool = False) -> bool:
        """Decide for one frame and record it.

        Accepting claims the vision slot (``last_vision_at`` = now) so two
        overlapping frames cannot both trigger a call. ``last_digest`` is
        updated either way.
        """
        with self._lock:
            now = self._clock.time()
            allowed = self._allowed(digest, force, now)
            if allowed:
                self.last_vision_at = now
            self.last_digest = digest
        return allowed

    def accept_summary(self, summary: Optional[str]) -> None:
        if not summary or not summary.strip():
            return
        with self._lock:
            self.last_vision_summary = summary.strip()

    async def observe(
        self,
        ocr_blocks: List[OcrBlock],
        ui_elements: List[UiElement],
        vision: Callable[[], Awaitable[str]],
        force: bool = False,
    ) -> PerceptionOutcome:
        """Run the full per-frame step: digest, decide, maybe call ``vision``."""
        digest = compute_digest(ocr_blocks, ui_elements)
        changed = digest != self.last_digest
        called = self.decide(digest, force)
        self.metrics.record_vision(called)
        if called:
            logger.debug("Vision call allowed (force=%s, digest_changed=%s)", force, changed)
            try:
                with trace_vision_call(force):
                    summary = await vision()
            except Exception as e:
                logger.warning("Vision summary failed, keeping previous summary: %s", e)
            else:
                self.accept_summary(summary)
        else:
            logger.debug("Vision call skipped (force=%s, digest_changed=%s)", force, changed)
        return PerceptionOutcome(
            digest=digest,
            digest_changed=changed,
            vision_called=called,
            vision_summary=self.last_vision_summary,
            vision_updated_at=self.last_vision_at,
        )
