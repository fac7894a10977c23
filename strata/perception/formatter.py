"""Render a perception result as plain text for inclusion in an agent prompt."""

from typing import List, Optional

from .models import ScreenPerceptionResult

MAX_TEXT_LINES = 120
MAX_UI_LINES = 80
MAX_TARGETS = 40
TARGET_LABEL_CHARS = 48


def _distinct(items, limit: int) -> List[str]:
    seen = []
    for item in items:
        if item in seen:
            continue
        seen.append(item)
        if len(seen) >= limit:
            break
    return seen


def _app_line(result: ScreenPerceptionResult) -> str:
    ctx = result.app_context
    line = "App: " + ((ctx.app_name if ctx else None) or "Unknown")
    if ctx and ctx.window_title and ctx.window_title.strip():
        line += f" ({ctx.window_title})"
    if ctx and ctx.package_name and ctx.package_name.strip():
        line += f" [{ctx.package_name}]"
    if result.screen_width > 0 and result.screen_height > 0:
        line += f" | Screen: {result.screen_width}x{result.screen_height}"
    return line


def _targets(result: ScreenPerceptionResult) -> List[str]:
    targets = []
    for element in result.ui_elements:
        label = (element.label or "").strip()
        if not label:
            continue
        cx, cy = element.bounds.center
        targets.append(f"{label[:TARGET_LABEL_CHARS]} @ ({cx},{cy})")
        if len(targets) >= MAX_TARGETS:
            return targets
    ui_targets = set(targets)
    for block in result.ocr_blocks:
        if len(targets) >= MAX_TARGETS:
            break
        label = block.text.strip()
        if not label:
            continue
        cx, cy = block.bounds.center
        line = f"{label[:TARGET_LABEL_CHARS]} @ ({cx},{cy})"
        if line not in ui_targets:
            targets.append(line)
    return targets


def format_for_prompt(result: ScreenPerceptionResult, now: Optional[float] = None) -> str:
    lines = [_app_line(result)]

    summary = (result.vision_summary or "").strip()
    if summary:
        age = ""
        if result.vision_updated_at is not None and now is not None:
            age = f" (updated {max(0, int(now - result.vision_updated_at))}s ago)"
        lines.append(f"Vision summary{age}:")
        lines.append(summary)

    text_lines = _distinct(
        (b.text.strip() for b in result.ocr_blocks if b.text.strip()), MAX_TEXT_LINES
    )
    if text_lines:
        lines.append("Visible text:")
        lines.extend(f"- {t}" for t in text_lines)
    else:
        lines.append("Visible text: none detected")

    ui_lines = _distinct(
        (f"{e.type.value}: {e.label}" for e in result.ui_elements if e.label and e.label.strip()),
        MAX_UI_LINES,
    )
    if ui_lines:
        lines.append("UI elements:")
        lines.extend(f"- {u}" for u in ui_lines)
    else:
        lines.append("UI elements: none detected")

    targets = _targets(result)
    if targets:
        lines.append("Targets (center x,y):")
        lines.extend(f"- {t}" for t in targets)

    return "\n".join(lines)
