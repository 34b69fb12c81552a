"""Element construction, classification and versioned updates.

Every field change goes through ``bump``: the new value carries version + 1 and
a fresh version nonce. Nothing in the engine mutates an Element in place.
"""

from __future__ import annotations

import time
from typing import Any

from sketchweave.engine.ids import IdGenerator
from sketchweave.models.element import BoundElement, Element

SHAPE_TYPES = frozenset({"rectangle", "ellipse", "diamond"})
CONNECTOR_TYPES = frozenset({"arrow", "line"})
FRAME_TYPES = frozenset({"frame", "magicframe"})

DEFAULT_STYLE: dict[str, Any] = {
    "stroke_color": "#1e1e1e",
    "background_color": "transparent",
    "fill_style": "solid",
    "stroke_width": 2,
    "stroke_style": "solid",
    "roughness": 1,
    "opacity": 100,
}

# Free-standing text vs. text bound inside a container
FREE_TEXT_FONT_SIZE = 20
BOUND_TEXT_FONT_SIZE = 16
LABEL_FONT_SIZE = 14
LINE_HEIGHT = 1.25


def now_ms() -> int:
    return int(time.time() * 1000)


def is_shape(element: Element) -> bool:
    return element.type in SHAPE_TYPES


def is_text(element: Element) -> bool:
    return element.type == "text"


def is_connector(element: Element) -> bool:
    return element.type in CONNECTOR_TYPES


def center(element: Element) -> tuple[float, float]:
    return (element.x + element.width / 2, element.y + element.height / 2)


def new_element(
    type: str,
    ids: IdGenerator,
    *,
    x: float,
    y: float,
    width: float,
    height: float,
    element_id: str | None = None,
    style: dict[str, Any] | None = None,
    **fields: Any,
) -> Element:
    """Build a version-1 element with the default style merged under ``style``."""
    merged = {**DEFAULT_STYLE, **(style or {})}
    return Element(
        id=element_id or ids.new_id(),
        type=type,
        x=x,
        y=y,
        width=width,
        height=height,
        seed=ids.new_nonce(),
        version=1,
        version_nonce=ids.new_nonce(),
        updated=now_ms(),
        roundness={"type": 3} if type in SHAPE_TYPES else None,
        **merged,
        **fields,
    )


def new_text(
    text: str,
    ids: IdGenerator,
    *,
    x: float,
    y: float,
    width: float | None = None,
    height: float | None = None,
    container_id: str | None = None,
    font_size: float | None = None,
    element_id: str | None = None,
    style: dict[str, Any] | None = None,
) -> Element:
    """Build a text element. Bound text is centred, free text is top-left aligned."""
    bound = container_id is not None
    style = dict(style or {})
    size = font_size or style.pop("font_size", None) or (
        BOUND_TEXT_FONT_SIZE if bound else FREE_TEXT_FONT_SIZE
    )
    font_family = style.pop("font_family", None) or 1
    if width is None or height is None:
        est_w, est_h = estimate_text_size(text, size)
        width = est_w if width is None else width
        height = est_h if height is None else height
    return new_element(
        "text",
        ids,
        x=x,
        y=y,
        width=width,
        height=height,
        element_id=element_id,
        style={**style, "background_color": "transparent"},
        text=text,
        original_text=text,
        font_size=size,
        font_family=font_family,
        text_align="center" if bound else "left",
        vertical_align="middle" if bound else "top",
        container_id=container_id,
        auto_resize=True,
        line_height=LINE_HEIGHT,
    )


def estimate_text_size(text: str, font_size: float) -> tuple[float, float]:
    """Rough glyph-box estimate; the renderer re-measures auto-resized text."""
    lines = text.split("\n") or [""]
    longest = max(len(line) for line in lines)
    return longest * font_size * 0.6, len(lines) * font_size * 1.2


def bump(element: Element, ids: IdGenerator, **changes: Any) -> Element:
    """Return a copy of ``element`` with ``changes`` applied and version + 1."""
    return element.model_copy(
        update={
            **changes,
            "version": element.version + 1,
            "version_nonce": fresh_nonce(element, ids),
            "updated": now_ms(),
        }
    )


def fresh_nonce(element: Element, ids: IdGenerator) -> int:
    nonce = ids.new_nonce()
    while nonce == element.version_nonce:
        nonce = ids.new_nonce()
    return nonce


def with_bound(element: Element, ids: IdGenerator, ref: BoundElement) -> Element:
    """Append a bound-element reference (no duplicates) with a version bump."""
    existing = list(element.bound_elements or [])
    if any(b.id == ref.id for b in existing):
        return element
    return bump(element, ids, bound_elements=[*existing, ref])


def bound_text_id(element: Element) -> str | None:
    for ref in element.bound_elements or []:
        if ref.type == "text":
            return ref.id
    return None
