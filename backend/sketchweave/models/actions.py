"""Typed canvas mutation requests and their per-action results."""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from sketchweave.models.element import ElementStyle, Point, Size

Direction = Literal["right", "below", "left", "above"]


class _Action(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    # Caller-chosen id for the created element, so later actions can refer to it
    id: str | None = None


class AddShapeAction(_Action):
    type: Literal["add_rectangle", "add_ellipse", "add_diamond"]
    position: Point | None = None
    size: Size | None = None
    style: ElementStyle | None = None
    relative_to: str | None = None
    direction: Direction = "right"
    text: str | None = None

    @property
    def shape(self) -> str:
        return self.type.removeprefix("add_")


class AddTextAction(_Action):
    type: Literal["add_text"]
    text: str
    position: Point | None = None
    relative_to: str | None = None
    direction: Direction = "right"
    style: ElementStyle | None = None


class AddArrowAction(_Action):
    type: Literal["add_arrow"]
    # Either a canvas point or an element id
    from_: Point | str = Field(..., alias="from")
    to: Point | str
    label: str | None = None
    style: ElementStyle | None = None


class AddConnectionAction(_Action):
    type: Literal["add_connection"]
    from_id: str
    to_id: str
    label: str | None = None
    style: ElementStyle | None = None


class UpdateTextAction(_Action):
    type: Literal["update_text"]
    target_id: str
    text: str


class UpdateStyleAction(_Action):
    type: Literal["update_style"]
    target_id: str
    style: ElementStyle


class DeleteElementAction(_Action):
    type: Literal["delete_element"]
    target_id: str


class MoveElementAction(_Action):
    type: Literal["move_element"]
    target_id: str
    position: Point | None = None
    delta: Point | None = None


class GroupElementsAction(_Action):
    type: Literal["group_elements"]
    element_ids: list[str]


CanvasAction = Annotated[
    Union[
        AddShapeAction,
        AddTextAction,
        AddArrowAction,
        AddConnectionAction,
        UpdateTextAction,
        UpdateStyleAction,
        DeleteElementAction,
        MoveElementAction,
        GroupElementsAction,
    ],
    Field(discriminator="type"),
]

ACTION_TYPES: tuple[str, ...] = (
    "add_rectangle",
    "add_ellipse",
    "add_diamond",
    "add_text",
    "add_arrow",
    "add_connection",
    "update_text",
    "update_style",
    "delete_element",
    "move_element",
    "group_elements",
)


class ActionResult(BaseModel):
    """Outcome of one action, independent of its siblings in the batch."""

    success: bool
    action_type: str = ""
    element_id: str | None = None
    error: str | None = None


class ActionPlan(BaseModel):
    """LLM-generated plan of canvas actions."""

    explanation: str = ""
    actions: list[dict] = Field(default_factory=list)
