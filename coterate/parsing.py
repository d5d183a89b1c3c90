"""Heuristic parsing of model output.

Everything here is pure and never raises on bad model text. Malformed
detection output yields no components. Anything else that cannot be parsed
falls back to a default.
"""

import json
import math
import re
from typing import Any

from loguru import logger

from coterate.models.response import (
    BoundingBox,
    ComponentAttributes,
    ComponentImprovement,
    DetectedComponent,
)

DATA_URI_PREFIX = re.compile(r"^data:image/[a-zA-Z0-9.+-]+;base64,")
_FENCED_BLOCK = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)```", re.DOTALL)
_BULLET = re.compile(r"^(?:-|\d+\.)\s*")

DEFAULT_IMPROVEMENTS = "Improve visual hierarchy, color scheme, typography, layout, and usability"
DEFAULT_CONFIDENCE = 0.9
_STATES = ("default", "hover", "active", "disabled")


def strip_data_uri(image: str) -> str:
    """Return the bare base64 payload of an image, with or without a data-URI prefix."""
    return DATA_URI_PREFIX.sub("", image.strip())


def to_data_uri(image: str, media_type: str = "image/png") -> str:
    if DATA_URI_PREFIX.match(image):
        return image
    return f"data:{media_type};base64,{image}"


def _first_json_span(text: str) -> Any | None:
    """Decode the first balanced top-level object or array found in ``text``."""
    decoder = json.JSONDecoder()
    for idx, char in enumerate(text):
        if char not in "{[":
            continue
        try:
            value, _ = decoder.raw_decode(text, idx)
        except json.JSONDecodeError:
            continue
        return value
    return None


def extract_json(text: str) -> Any | None:
    """Best-effort JSON extraction: direct parse, fenced block, then first {...}/[...] span."""
    if not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    for block in _FENCED_BLOCK.findall(text):
        try:
            return json.loads(block)
        except json.JSONDecodeError:
            value = _first_json_span(block)
            if value is not None:
                return value

    return _first_json_span(text)


def _component_list(parsed: Any) -> list:
    if isinstance(parsed, list):
        return parsed
    if isinstance(parsed, dict):
        components = parsed.get("components")
        if isinstance(components, list):
            return components
        for value in parsed.values():
            if isinstance(value, list):
                return value
    return []


def _number(value: Any, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if not math.isfinite(value):
        return default
    return float(value)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def normalize_bounding_box(raw: Any) -> BoundingBox:
    """Default missing coordinates (x/y 0, width/height 10) and clamp all four to [0, 100]."""
    raw = raw if isinstance(raw, dict) else {}
    return BoundingBox(
        x=_clamp(_number(raw.get("x"), 0), 0, 100),
        y=_clamp(_number(raw.get("y"), 0), 0, 100),
        width=_clamp(_number(raw.get("width"), 10), 0, 100),
        height=_clamp(_number(raw.get("height"), 10), 0, 100),
    )


def _text(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _measure(value: Any) -> float | str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
        return value
    return None


def _attributes(raw: dict) -> ComponentAttributes:
    attrs = raw.get("attributes")
    if not isinstance(attrs, dict):
        # Flat detection schema puts colors under "style"
        attrs = raw.get("style") if isinstance(raw.get("style"), dict) else {}
    state = attrs.get("state")
    return ComponentAttributes(
        background_color=_text(attrs.get("backgroundColor")),
        text_color=_text(attrs.get("textColor")),
        border_radius=_measure(attrs.get("borderRadius")),
        font_size=_measure(attrs.get("fontSize")),
        padding=_text(attrs.get("padding")),
        text=_text(attrs.get("text")) or _text(raw.get("text")) or _text(raw.get("content")),
        state=state if state in _STATES else "default",
    )


def normalize_component(raw: dict, index: int) -> DetectedComponent:
    box = raw.get("boundingBox")
    if not isinstance(box, dict):
        box = raw.get("bounding_box") if isinstance(raw.get("bounding_box"), dict) else raw
    return DetectedComponent(
        id=f"component-{index}",
        type=_text(raw.get("type")) or "unknown",
        confidence=_clamp(_number(raw.get("confidence"), DEFAULT_CONFIDENCE), 0, 1),
        bounding_box=normalize_bounding_box(box),
        attributes=_attributes(raw),
    )


def parse_components(text: str) -> list[DetectedComponent]:
    """Turn detection-mode model output into components; unparseable output gives []."""
    parsed = extract_json(text)
    if parsed is None:
        logger.warning("Could not extract JSON from detection output ({length} chars)", length=len(text or ""))
        return []

    raw_components = [c for c in _component_list(parsed) if isinstance(c, dict)]
    return [normalize_component(raw, idx) for idx, raw in enumerate(raw_components)]


def extract_improvements(analysis: str) -> str:
    """Join bullet (``-``) and numbered (``1.``) lines of an analysis into a comma list."""
    items = []
    for line in analysis.splitlines():
        stripped = line.strip()
        if not _BULLET.match(stripped):
            continue
        item = _BULLET.sub("", stripped, count=1).strip()
        if item:
            items.append(item)
    return ", ".join(items) or DEFAULT_IMPROVEMENTS


# Type-keyed default styles, matched by substring in declaration order
_FALLBACK_STYLES: tuple[tuple[tuple[str, ...], dict[str, Any]], ...] = (
    (
        ("button",),
        {
            "backgroundColor": "#4285f4",
            "textColor": "#ffffff",
            "fontWeight": 500,
            "boxShadow": "0 2px 4px rgba(0,0,0,0.2)",
            "borderRadius": 8,
        },
    ),
    (
        ("input", "field", "text"),
        {
            "backgroundColor": "#ffffff",
            "textColor": "#202124",
            "borderColor": "#dadce0",
            "borderWidth": "1px",
            "borderStyle": "solid",
            "borderRadius": 4,
            "padding": "12px 16px",
        },
    ),
    (
        ("card", "container"),
        {
            "backgroundColor": "#ffffff",
            "textColor": "#202124",
            "borderRadius": 8,
            "boxShadow": "0 1px 3px rgba(0,0,0,0.12), 0 1px 2px rgba(0,0,0,0.24)",
            "padding": "16px",
        },
    ),
    (
        ("header", "nav"),
        {
            "backgroundColor": "#f8f9fa",
            "textColor": "#202124",
            "fontWeight": 500,
            "padding": "16px 24px",
            "boxShadow": "0 1px 2px rgba(0,0,0,0.1)",
        },
    ),
    (
        ("image", "icon"),
        {"borderRadius": 4, "boxShadow": "0 1px 3px rgba(0,0,0,0.1)"},
    ),
)
_BASE_STYLE = {"borderRadius": 4, "fontSize": 16, "padding": "8px 16px"}
_OTHER_STYLE = {"backgroundColor": "#ffffff", "textColor": "#202124"}


def fallback_improvements(component: DetectedComponent) -> dict[str, Any]:
    """Default style suggestions for a component, chosen by its type."""
    kind = component.type.lower()
    for keywords, style in _FALLBACK_STYLES:
        if any(keyword in kind for keyword in keywords):
            return {**_BASE_STYLE, **style}
    return {**_BASE_STYLE, **_OTHER_STYLE}


def fallback_suggestion(component: DetectedComponent) -> ComponentImprovement:
    return ComponentImprovement(
        component_id=component.id,
        improvements=fallback_improvements(component),
        reasoning=f"Default styling improvement for {component.type} component.",
    )


def parse_component_improvements(
    text: str, components: list[DetectedComponent]
) -> list[ComponentImprovement]:
    """Match model suggestions to known components, filling gaps with defaults.

    Suggestions for unknown ids are dropped, and every component gets exactly
    one entry in detection order.
    """
    parsed = extract_json(text)
    entries = parsed.get("improvements") if isinstance(parsed, dict) else parsed
    if not isinstance(entries, list):
        logger.warning("No improvements array in component analysis; using default styles")
        entries = []

    known = {c.id for c in components}
    suggested: dict[str, ComponentImprovement] = {}
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        component_id = _text(entry.get("componentId"))
        if component_id not in known or component_id in suggested:
            continue
        improvements = entry.get("improvements")
        suggested[component_id] = ComponentImprovement(
            component_id=component_id,
            improvements=improvements if isinstance(improvements, dict) else {},
            reasoning=_text(entry.get("reasoning")) or "No reasoning provided",
        )

    missing = len(components) - len(suggested)
    if missing:
        logger.info("Using default styles for {missing} of {total} components", missing=missing, total=len(components))
    return [suggested.get(c.id) or fallback_suggestion(c) for c in components]
