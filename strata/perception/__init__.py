"""Screen perception: frame models, vision throttling, sampling loop, prompt formatting"""

from .models import (
    AppContextInfo,
    Frame,
    OcrBlock,
    Rect,
    ScreenPerceptionResult,
    UiElement,
    UiElementType,
    elements_from_ocr,
)
from .throttle import PerceptionThrottle, PerceptionOutcome, compute_digest
from .stream import ScreenPerception
from .formatter import format_for_prompt

__all__ = [
    "AppContextInfo", "Frame", "OcrBlock", "Rect", "ScreenPerceptionResult",
    "UiElement", "UiElementType", "elements_from_ocr",
    "PerceptionThrottle", "PerceptionOutcome", "compute_digest",
    "ScreenPerception", "format_for_prompt",
]
