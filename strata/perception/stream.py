"""Periodic screen sampling loop feeding the perception throttle."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from strata.events import Event, EventBus, EventTypes
from strata.utils.clock import Clock, SYSTEM_CLOCK
from .models import Frame, ScreenPerceptionResult
from .throttle import PerceptionThrottle

logger = logging.getLogger(__name__)

DEFAULT_STREAM_INTERVAL = 1.2

CaptureFn = Callable[[], Awaitable[Frame]]
VisionFn = Callable[[Frame], Awaitable[str]]


class ScreenPerception:
    """Samples the screen, throttles vision summaries and keeps the latest result.

    ``capture`` and ``vision`` are the platform collaborators: the first grabs
    a frame with its OCR/accessibility text, the second asks a vision model to
    summarise it.
    """

    def __init__(
        self,
        capture: CaptureFn,
        vision: VisionFn,
        throttle: Optional[PerceptionThrottle] = None,
        event_bus: Optional[EventBus] = None,
        clock: Clock = SYSTEM_CLOCK,
    ):
        self._capture = capture
        self._vision = vision
        self.throttle = throttle or PerceptionThrottle(clock=clock)
        self.events = event_bus or EventBus()
        self._clock = clock
        self._latest: Optional[ScreenPerceptionResult] = None
        self._stream_task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None

    def latest(self) -> Optional[ScreenPerceptionResult]:
        return self._latest

    async def record(self, force_vision: bool = False) -> ScreenPerceptionResult:
        """Capture one frame. ``force_vision`` is used right before the user sends a prompt."""
        frame = await self._capture()
        outcome = await self.throttle.observe(
            frame.ocr_blocks,
            frame.ui_elements,
            lambda: self._vision(frame),
            force=force_vision,
        )
        result = ScreenPerceptionResult(
            captured_at=self._clock.time(),
            app_context=frame.app_context,
            ocr_blocks=frame.ocr_blocks,
            ui_elements=frame.ui_elements,
            vision_summary=outcome.vision_summary,
            frame_digest=outcome.digest,
            vision_updated_at=outcome.vision_updated_at,
            screen_width=frame.screen_width,
            screen_height=frame.screen_height,
            image_jpeg=frame.image_jpeg,
        )
        self._latest = result
        await self.events.emit(Event(type=EventTypes.PERCEPTION_UPDATED, data={"result": result}))
        return result

    def is_streaming(self) -> bool:
        return self._stream_task is not None and not self._stream_task.done()

    def start_stream(self, interval: float = DEFAULT_STREAM_INTERVAL) -> None:
        """Start sampling every ``interval`` seconds. No-op when already running."""
        if self.is_streaming():
            return
        self._stop_event = asyncio.Event()
        self._stream_task = asyncio.create_task(self._run_loop(interval, self._stop_event))
        logger.info("Screen perception stream started (every %.1fs)", interval)

    async def stop_stream(self) -> None:
        """Stop sampling. A sample already in progress is allowed to finish."""
        if self._stop_event is not None:
            self._stop_event.set()
        task, self._stream_task = self._stream_task, None
        if task is not None:
            await task
            logger.info("Screen perception stream stopped")

    async def _run_loop(self, interval: float, stop: asyncio.Event) -> None:
        while not stop.is_set():
            try:
                await self.record()
            except Exception as e:
                logger.warning(f"Screen sample failed: {e}")
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
