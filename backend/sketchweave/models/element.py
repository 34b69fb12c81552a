"""Canvas element models.

Elements are immutable values. Python attributes are snake_case; the wire
format (renderer JSON) is camelCase, so every model dumps with ``by_alias=True``
and accepts either spelling on input. Renderer fields this engine does not
know about are kept as extras and passed through untouched.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ElementType = Literal[
    "rectangle",
    "ellipse",
    "diamond",
    "text",
    "arrow",
    "line",
    "freedraw",
    "image",
    "frame",
    "magicframe",
]


class _WireModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class BoundElement(_WireModel):
    """Weak reference from a container/anchor to an attached element."""

    id: str
    type: Literal["text", "arrow"]


class Binding(_WireModel):
    """Weak reference from a connector end to its anchor element."""

    element_id: str
    focus: float = 0.0
    gap: float = 8.0


class Element(_WireModel):
    """A node or edge of the diagram graph."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="allow",
    )

    id: str
    type: ElementType = "rectangle"

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    angle: float = 0.0

    stroke_color: str = "#1e1e1e"
    background_color: str = "transparent"
    fill_style: str = "solid"
    stroke_width: float = 2
    stroke_style: str = "solid"
    roughness: float = 1
    opacity: float = 100

    seed: int = 1
    version: int = 1
    version_nonce: int = 0
    updated: int = 0
    is_deleted: bool = False

    group_ids: list[str] = Field(default_factory=list)
    frame_id: str | None = None
    bound_elements: list[BoundElement] | None = None
    link: str | None = None
    locked: bool = False
    roundness: dict[str, Any] | None = None

    # Text
    text: str | None = None
    original_text: str | None = None
    font_size: float | None = None
    font_family: int | None = None
    text_align: str | None = None
    vertical_align: str | None = None
    container_id: str | None = None
    auto_resize: bool | None = None
    line_height: float | None = None

    # Linear (arrow / line)
    points: list[list[float]] | None = None
    start_binding: Binding | None = None
    end_binding: Binding | None = None
    start_arrowhead: str | None = None
    end_arrowhead: str | None = None
    elbowed: bool | None = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=False)


class ElementStyle(_WireModel):
    """Cosmetic overrides. Orthogonal to structural invariants."""

    stroke_color: str | None = None
    background_color: str | None = None
    fill_style: Literal["hachure", "cross-hatch", "solid", "zigzag"] | None = None
    stroke_width: float | None = Field(default=None, ge=0, le=20)
    stroke_style: Literal["solid", "dashed", "dotted"] | None = None
    roughness: float | None = None
    opacity: float | None = Field(default=None, ge=0, le=100)
    font_size: float | None = None
    font_family: int | None = None

    def changes(self) -> dict[str, Any]:
        """Only the fields the caller actually set."""
        return self.model_dump(exclude_none=True)


class Point(_WireModel):
    x: float
    y: float


class Size(_WireModel):
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)
