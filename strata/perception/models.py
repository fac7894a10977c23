"""Screen perception data: what the capture/OCR/accessibility layer hands us per frame."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


@dataclass(frozen=True)
class Rect:
    left: int
    top: int
    right: int
    bottom: int

    @property
    def center(self) -> tuple:
        return (self.left + self.right) // 2, (self.top + self.bottom) // 2


class UiElementType(str, Enum):
    BUTTON = "button"
    FIELD = "field"
    LINK = "link"
    TEXT = "text"
    OTHER = "other"


@dataclass(frozen=True)
class OcrBlock:
    text: str
    bounds: Rect


@dataclass(frozen=True)
class UiElement:
    type: UiElementType
    label: Optional[str]
    bounds: Rect


@dataclass(frozen=True)
class AppContextInfo:
    app_name: Optional[str] = None
    window_title: Optional[str] = None
    package_name: Optional[str] = None


@dataclass
class Frame:
    """One captured screen sample after text extraction."""
    ocr_blocks: List[OcrBlock] = field(default_factory=list)
    ui_elements: List[UiElement] = field(default_factory=list)
    app_context: Optional[AppContextInfo] = None
    image_jpeg: Optional[bytes] = None
    screen_width: int = 0
    screen_height: int = 0


@dataclass
class ScreenPerceptionResult:
    captured_at: float
    app_context: Optional[AppContextInfo]
    ocr_blocks: List[OcrBlock]
    ui_elements: List[UiElement]
    vision_summary: Optional[str] = None
    frame_digest: str = ""
    vision_updated_at: Optional[float] = None
    screen_width: int = 0
    screen_height: int = 0
    image_jpeg: Optional[bytes] = None


def guess_element_type(text: str) -> UiElementType:
    """Rough element type for OCR-only captures with no accessibility tree."""
    lowered = text.lower()
    if lowered.startswith("http") or ".com" in lowered:
        return UiElementType.LINK
    if lowered.endswith(":"):
        return UiElementType.FIELD
    if len(text) <= 18 and text.isalpha() and text == text.upper():
        return UiElementType.BUTTON
    return UiElementType.TEXT


def elements_from_ocr(blocks: List[OcrBlock]) -> List[UiElement]:
    return [UiElement(guess_element_type(b.text), b.text, b.bounds) for b in blocks]
