"""Loose element descriptions and externally supplied update batches."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from sketchweave.models.element import ElementType


class ElementDescription(BaseModel):
    """Untrusted, partially specified element from an external producer.

    Consumed once by the synthesizer. ``element`` embeds a (possibly partial)
    full element instead, which is validated and completed in place.
    """

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    type: ElementType | None = None
    x: float | None = None
    y: float | None = None
    width: float | None = None
    height: float | None = None
    text: str | None = None
    label: str | None = None
    stroke_color: str | None = None
    background_color: str | None = None
    stroke_width: float | None = None
    font_size: float | None = None
    font_family: int | None = None
    from_id: str | None = None
    to_id: str | None = None
    points: list[tuple[float, float]] | None = None
    element: dict[str, Any] | None = None

    @property
    def caption(self) -> str | None:
        return self.text or self.label


class UpdateBatch(BaseModel):
    """A batch delivered by the external update source."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool | None = None
    message: str | None = None
    error: str | None = None
    elements: list[Any] = Field(default_factory=list)
    delete_ids: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("deleteIds", "elementsToDelete", "delete_ids"),
    )
