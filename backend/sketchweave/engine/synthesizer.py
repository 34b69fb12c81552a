"""Element synthesizer — loose external descriptions to valid elements.

A single bad description never raises: it yields an empty result with a
reason. Connector descriptions that name two endpoint ids are handed to the
connection operation, which is the only path that touches ``scene``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from sketchweave.engine.connection import connect
from sketchweave.engine.elements import (
    BOUND_TEXT_FONT_SIZE,
    CONNECTOR_TYPES,
    DEFAULT_STYLE,
    FRAME_TYPES,
    FREE_TEXT_FONT_SIZE,
    LINE_HEIGHT,
    SHAPE_TYPES,
    new_element,
    new_text,
    now_ms,
)
from sketchweave.engine.ids import IdGenerator
from sketchweave.engine.layout import points_bbox
from sketchweave.engine.scene import Scene
from sketchweave.errors import SynthesisError
from sketchweave.models.descriptions import ElementDescription
from sketchweave.models.element import BoundElement, Element

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SynthesisDefaults:
    x: float = 100.0
    y: float = 100.0
    width: float = 150.0
    height: float = 80.0


@dataclass
class SynthesisResult:
    elements: list[Element] = field(default_factory=list)
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return bool(self.elements)


def synthesize(
    description: ElementDescription | Mapping[str, Any],
    scene: Scene,
    ids: IdGenerator,
    defaults: SynthesisDefaults | None = None,
) -> SynthesisResult:
    """Turn one description into zero or more elements ready for insertion."""
    try:
        if not isinstance(description, ElementDescription):
            description = ElementDescription.model_validate(description)
        return SynthesisResult(elements=_synthesize(description, scene, ids, defaults or SynthesisDefaults()))
    except (SynthesisError, ValidationError) as e:
        reason = _reason(e)
        logger.warning("Synthesis skipped item: %s", reason)
        return SynthesisResult(reason=reason)


def _reason(exc: Exception) -> str:
    if isinstance(exc, ValidationError):
        first = exc.errors()[0]
        loc = ".".join(str(p) for p in first["loc"]) or "description"
        return f"Invalid {loc}: {first['msg']}"
    return str(exc)


def _synthesize(
    desc: ElementDescription,
    scene: Scene,
    ids: IdGenerator,
    defaults: SynthesisDefaults,
) -> list[Element]:
    if desc.element is not None:
        return [complete_element(desc.element, ids)]

    kind = desc.type or "rectangle"
    x = desc.x if desc.x is not None else defaults.x
    y = desc.y if desc.y is not None else defaults.y
    width = desc.width if desc.width is not None else defaults.width
    height = desc.height if desc.height is not None else defaults.height
    style = {
        k: v
        for k, v in {
            "stroke_color": desc.stroke_color,
            "background_color": desc.background_color,
            "stroke_width": desc.stroke_width,
        }.items()
        if v is not None
    }

    if kind in SHAPE_TYPES:
        shape = new_element(kind, ids, x=x, y=y, width=width, height=height, style=style)
        if not desc.caption:
            return [shape]
        text = new_text(
            desc.caption,
            ids,
            x=x,
            y=y,
            width=width,
            height=height,
            container_id=shape.id,
            font_size=desc.font_size or BOUND_TEXT_FONT_SIZE,
            style={"stroke_color": style.get("stroke_color", DEFAULT_STYLE["stroke_color"]),
                   "font_family": desc.font_family},
        )
        shape = shape.model_copy(update={"bound_elements": [BoundElement(id=text.id, type="text")]})
        return [shape, text]

    if kind == "text":
        if not desc.caption:
            raise SynthesisError("Text description has no text")
        return [
            new_text(
                desc.caption,
                ids,
                x=x,
                y=y,
                font_size=desc.font_size or FREE_TEXT_FONT_SIZE,
                style={**style, "font_family": desc.font_family},
            )
        ]

    if kind in CONNECTOR_TYPES:
        if desc.from_id or desc.to_id:
            return _connect(desc, scene, ids, style)
        if desc.points and len(desc.points) >= 2:
            return [_linear_from_points(kind, desc.points, ids, style)]
        raise SynthesisError(f"{kind} description needs two points or both fromId and toId")

    fields: dict[str, Any] = {}
    if kind == "freedraw" and desc.points:
        return [_linear_from_points(kind, desc.points, ids, style)]
    if kind in FRAME_TYPES and desc.caption:
        fields["name"] = desc.caption
    return [new_element(kind, ids, x=x, y=y, width=width, height=height, style=style, **fields)]


def _connect(
    desc: ElementDescription,
    scene: Scene,
    ids: IdGenerator,
    style: dict[str, Any],
) -> list[Element]:
    if not (desc.from_id and desc.to_id):
        raise SynthesisError("Connection needs both fromId and toId")
    connector_id = connect(scene, desc.from_id, desc.to_id, ids, style=style, label=desc.caption)
    if connector_id is None:
        raise SynthesisError(f"Connection endpoint not found: {desc.from_id} -> {desc.to_id}")
    connector = scene.get(connector_id)
    created = [connector]
    for ref in connector.bound_elements or []:
        label = scene.get(ref.id)
        if label is not None:
            created.append(label)
    return created


def _linear_from_points(
    kind: str,
    points: list[tuple[float, float]],
    ids: IdGenerator,
    style: dict[str, Any],
) -> Element:
    """Connector/freedraw from absolute canvas points; no bindings."""
    start_x, start_y = points[0]
    relative = [[px - start_x, py - start_y] for px, py in points]
    fields: dict[str, Any] = {"points": relative}
    if kind == "freedraw":
        xmin, ymin, xmax, ymax = points_bbox(relative)
        width, height = xmax - xmin, ymax - ymin
    else:
        end_x, end_y = points[-1]
        width, height = end_x - start_x, end_y - start_y
        fields.update(
            start_binding=None,
            end_binding=None,
            start_arrowhead=None,
            end_arrowhead="arrow" if kind == "arrow" else None,
            elbowed=False,
        )
    return new_element(kind, ids, x=start_x, y=start_y, width=width, height=height, style=style, **fields)


# Field defaults applied by ``complete_element`` when the caller left them out
_ELEMENT_DEFAULTS: dict[str, Any] = {
    "x": 100,
    "y": 100,
    "width": 150,
    "height": 100,
    "angle": 0,
    **DEFAULT_STYLE,
    "group_ids": [],
    "frame_id": None,
    "bound_elements": None,
    "link": None,
    "locked": False,
}

_TEXT_DEFAULTS: dict[str, Any] = {
    "font_size": FREE_TEXT_FONT_SIZE,
    "font_family": 1,
    "text_align": "left",
    "vertical_align": "top",
    "container_id": None,
    "auto_resize": True,
    "line_height": LINE_HEIGHT,
}


def wire_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    """Same mapping with every key in its camelCase wire spelling."""
    return {to_camel(str(k)): v for k, v in data.items()}


def _has(data: Mapping[str, Any], name: str) -> bool:
    return data.get(to_camel(name)) is not None


def _get(data: Mapping[str, Any], name: str, default: Any = None) -> Any:
    value = data.get(to_camel(name))
    return default if value is None else value


def complete_element(partial: Mapping[str, Any], ids: IdGenerator) -> Element:
    """Validate a (possibly partial) full element and fill what is missing.

    A caller-given id is kept, which is what gives reconciliation its
    update-in-place semantics. Raises ``ValidationError`` for values that
    cannot be coerced.
    """
    data = wire_keys(partial)
    if not isinstance(data.get("id"), str) or not data["id"]:
        data["id"] = ids.new_id()
    kind = _get(data, "type", "rectangle")
    data["type"] = kind

    defaults = dict(_ELEMENT_DEFAULTS)
    if kind == "text":
        text = _get(data, "text", "")
        defaults.update(_TEXT_DEFAULTS, text=text, original_text=_get(data, "original_text", text))
    elif kind in CONNECTOR_TYPES:
        defaults.update(
            points=[[0, 0], [100, 100]],
            start_arrowhead=None,
            end_arrowhead="arrow" if kind == "arrow" else None,
            elbowed=False,
            start_binding=None,
            end_binding=None,
        )
    if kind in SHAPE_TYPES:
        defaults["roundness"] = {"type": 3}

    for name, value in defaults.items():
        if not _has(data, name):
            data[to_camel(name)] = value
    if not _has(data, "seed"):
        data["seed"] = ids.new_nonce()
    if not _has(data, "version"):
        data["version"] = 1
    if not _has(data, "version_nonce"):
        data["versionNonce"] = ids.new_nonce()
    data["updated"] = now_ms()
    data["isDeleted"] = False
    return Element.model_validate(data)


_SHAPE_WORDS = (
    ("rectangle", ("rectangle", "box", "square")),
    ("ellipse", ("ellipse", "circle", "oval")),
    ("diamond", ("diamond", "decision", "rhombus")),
    ("text", ("text",)),
)
_QUOTED_RE = re.compile(r"[\"']([^\"']+)[\"']|(?:text|label)[:\s]+([^\n,.]+)", re.IGNORECASE)
_COLOR_RE = re.compile(
    r"#[0-9a-fA-F]{6}\b|#[0-9a-fA-F]{3}\b|\b(red|blue|green|yellow|orange|purple|pink|brown|black|white|gray|grey)\b",
    re.IGNORECASE,
)
_POSITION_RE = re.compile(r"(?:at|position)[:\s]*(-?\d+)[,\sx]+(-?\d+)", re.IGNORECASE)
_SIZE_RE = re.compile(r"size[:\s]*(\d+)\s*(?:x|by)\s*(\d+)", re.IGNORECASE)


def describe_from_text(phrase: str) -> ElementDescription:
    """Parse a short natural-language phrase into a description.

    ``'ellipse "Cache" at 300,200 size 120x60 red'`` → an ellipse labelled
    Cache with a red stroke.
    """
    lowered = phrase.lower()
    kind = "rectangle"
    for candidate, words in _SHAPE_WORDS:
        if any(w in lowered for w in words):
            kind = candidate
            break

    fields: dict[str, Any] = {"type": kind}
    if m := _QUOTED_RE.search(phrase):
        fields["text"] = (m.group(1) or m.group(2)).strip()
    if m := _COLOR_RE.search(phrase):
        fields["stroke_color"] = m.group(0)
    if m := _POSITION_RE.search(phrase):
        fields["x"], fields["y"] = float(m.group(1)), float(m.group(2))
    if m := _SIZE_RE.search(phrase):
        fields["width"], fields["height"] = float(m.group(1)), float(m.group(2))
    if kind == "text" and "text" not in fields:
        fields["text"] = "New Text"
    return ElementDescription(**fields)
