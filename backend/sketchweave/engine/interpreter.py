"""Action interpreter — ordered, best-effort execution of canvas actions.

Each action runs against the scene exactly as its predecessor left it, so an
action may reference an element created earlier in the same batch. A failing
action produces a failed ActionResult and the batch moves on.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from pydantic import BaseModel, TypeAdapter, ValidationError

from sketchweave.config import settings
from sketchweave.engine.connection import connect, connector_label
from sketchweave.engine.elements import bound_text_id, bump, is_connector, is_shape, is_text, new_text
from sketchweave.engine.ids import IdGenerator
from sketchweave.engine.layout import DEFAULT_ELEMENT_HEIGHT, DEFAULT_ELEMENT_WIDTH, find_available_position
from sketchweave.engine.registry import action_handler, get_registry
from sketchweave.engine.scene import Scene
from sketchweave.engine.synthesizer import synthesize
from sketchweave.errors import ElementNotFoundError, InterpreterError, SynthesisError
from sketchweave.models.actions import (
    ActionResult,
    AddArrowAction,
    AddConnectionAction,
    AddShapeAction,
    AddTextAction,
    CanvasAction,
    DeleteElementAction,
    GroupElementsAction,
    MoveElementAction,
    UpdateStyleAction,
    UpdateTextAction,
)
from sketchweave.models.descriptions import ElementDescription
from sketchweave.models.element import BoundElement, Element, Point

logger = logging.getLogger(__name__)

_ACTION_ADAPTER: TypeAdapter[CanvasAction] = TypeAdapter(CanvasAction)

_TEXT_STYLE_KEYS = frozenset({"stroke_color", "opacity", "font_size", "font_family"})
_FONT_KEYS = frozenset({"font_size", "font_family"})

ResultCallback = Callable[[ActionResult, int], None]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _require(scene: Scene, element_id: str) -> Element:
    element = scene.find_live(element_id)
    if element is None:
        raise ElementNotFoundError(element_id)
    return element


def _resolve_position(
    scene: Scene,
    position: Point | None,
    relative_to: str | None,
    direction: str,
) -> tuple[float, float]:
    if position is not None:
        return (position.x, position.y)
    live = scene.live()
    if relative_to:
        reference = scene.find_live(relative_to)
        if reference is not None:
            return find_available_position(live, reference, direction)
        logger.warning("Reference element %s not found, using default placement", relative_to)
    return find_available_position(live)


def _style_for(element: Element, style: Mapping[str, Any]) -> dict[str, Any]:
    """The subset of ``style`` that applies to this kind of element."""
    if element.type == "text":
        return {k: v for k, v in style.items() if k in _TEXT_STYLE_KEYS}
    return {k: v for k, v in style.items() if k not in _FONT_KEYS}


def _synthesized(description: ElementDescription, scene: Scene, ids: IdGenerator) -> list[Element]:
    result = synthesize(description, scene, ids)
    if not result.ok:
        raise SynthesisError(result.reason or "Synthesis produced no elements")
    return result.elements


def _insert(
    elements: list[Element],
    scene: Scene,
    style: Mapping[str, Any],
    caller_id: str | None,
) -> str:
    """Style freshly created elements, apply a caller id, and add them.

    The first element is the primary one whose id the action reports.
    """
    primary_id = elements[0].id
    new_id = primary_id
    if caller_id:
        if caller_id in scene:
            logger.warning("Requested id %s already exists, using %s", caller_id, primary_id)
        else:
            new_id = caller_id

    for element in elements:
        update = _style_for(element, style)
        if element.id == primary_id:
            update["id"] = new_id
        elif element.container_id == primary_id:
            update["container_id"] = new_id
        scene.add(element.model_copy(update=update) if update else element)
    return new_id


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


@action_handler("add_rectangle", "add_ellipse", "add_diamond", description="Add a shape, optionally labelled")
def add_shape(action: AddShapeAction, scene: Scene, ids: IdGenerator) -> str:
    x, y = _resolve_position(scene, action.position, action.relative_to, action.direction)
    style = action.style.changes() if action.style else {}
    description = ElementDescription(
        type=action.shape,
        x=x,
        y=y,
        width=action.size.width if action.size else DEFAULT_ELEMENT_WIDTH,
        height=action.size.height if action.size else DEFAULT_ELEMENT_HEIGHT,
        text=action.text,
        font_size=style.get("font_size"),
        font_family=style.get("font_family"),
    )
    return _insert(_synthesized(description, scene, ids), scene, style, action.id)


@action_handler("add_text", description="Add free-standing text")
def add_text(action: AddTextAction, scene: Scene, ids: IdGenerator) -> str:
    x, y = _resolve_position(scene, action.position, action.relative_to, action.direction)
    style = action.style.changes() if action.style else {}
    description = ElementDescription(
        type="text",
        x=x,
        y=y,
        text=action.text,
        font_size=style.get("font_size"),
        font_family=style.get("font_family"),
    )
    return _insert(_synthesized(description, scene, ids), scene, style, action.id)


def _arrow_end(scene: Scene, end: Point | str, side: str) -> tuple[float, float]:
    if isinstance(end, Point):
        return (end.x, end.y)
    element = _require(scene, end)
    mid_y = element.y + element.height / 2
    if side == "start":
        return (element.x + element.width, mid_y)
    return (element.x, mid_y)


@action_handler("add_arrow", description="Add an unbound arrow between points or element edges")
def add_arrow(action: AddArrowAction, scene: Scene, ids: IdGenerator) -> str:
    start = _arrow_end(scene, action.from_, "start")
    end = _arrow_end(scene, action.to, "end")
    style = action.style.changes() if action.style else {}
    elements = _synthesized(ElementDescription(type="arrow", points=[start, end]), scene, ids)
    if action.label:
        arrow = elements[0]
        label = connector_label(action.label, ids, start, end, arrow.id)
        arrow = arrow.model_copy(update={"bound_elements": [BoundElement(id=label.id, type="text")]})
        elements = [arrow, label]
    return _insert(elements, scene, style, action.id)


@action_handler("add_connection", description="Join two elements with a bound arrow")
def add_connection(action: AddConnectionAction, scene: Scene, ids: IdGenerator) -> str:
    if action.from_id == action.to_id:
        raise InterpreterError(f"Cannot connect {action.from_id} to itself")
    _require(scene, action.from_id)
    _require(scene, action.to_id)
    style = action.style.changes() if action.style else {}
    connector_id = connect(
        scene,
        action.from_id,
        action.to_id,
        ids,
        style={k: v for k, v in style.items() if k not in _FONT_KEYS},
        label=action.label,
        connector_id=action.id,
    )
    if connector_id is None:
        raise InterpreterError("Failed to create connection")
    return connector_id


@action_handler("update_text", description="Replace an element's text or label")
def update_text(action: UpdateTextAction, scene: Scene, ids: IdGenerator) -> str:
    target = _require(scene, action.target_id)
    if is_text(target):
        scene.put(bump(target, ids, text=action.text, original_text=action.text))
        return target.id

    if not (is_shape(target) or is_connector(target)):
        raise InterpreterError(f"Element {target.id} cannot hold text")

    existing = scene.find_live(bound_text_id(target))
    if existing is not None:
        scene.put(bump(existing, ids, text=action.text, original_text=action.text))
        return target.id

    # No label yet: create one bound to the target
    label = new_text(
        action.text,
        ids,
        x=target.x,
        y=target.y,
        width=abs(target.width),
        height=abs(target.height),
        container_id=target.id,
    )
    bound = [b for b in target.bound_elements or [] if b.type != "text"]
    scene.put(bump(target, ids, bound_elements=[*bound, BoundElement(id=label.id, type="text")]))
    scene.add(label)
    return target.id


@action_handler("update_style", description="Apply cosmetic style changes")
def update_style(action: UpdateStyleAction, scene: Scene, ids: IdGenerator) -> str:
    target = _require(scene, action.target_id)
    style = action.style.changes()
    if not style:
        raise InterpreterError("update_style needs at least one style field")

    changes = _style_for(target, style)
    if changes:
        scene.put(bump(target, ids, **changes))

    # Font changes on a container go to its label
    label = scene.find_live(bound_text_id(target)) if target.type != "text" else None
    if label is not None:
        label_changes = {k: v for k, v in style.items() if k in _FONT_KEYS}
        if label_changes:
            scene.put(bump(label, ids, **label_changes))
    return target.id


@action_handler("delete_element", description="Tombstone an element and prune references to it")
def delete_element(action: DeleteElementAction, scene: Scene, ids: IdGenerator) -> str:
    if not scene.delete([action.target_id], ids):
        raise ElementNotFoundError(action.target_id)
    return action.target_id


@action_handler("move_element", description="Move by delta or to an absolute position")
def move_element(action: MoveElementAction, scene: Scene, ids: IdGenerator) -> str:
    target = _require(scene, action.target_id)
    if action.delta is not None:
        dx, dy = action.delta.x, action.delta.y
    elif action.position is not None:
        dx, dy = action.position.x - target.x, action.position.y - target.y
    else:
        raise InterpreterError("move_element needs a position or a delta")

    scene.put(bump(target, ids, x=target.x + dx, y=target.y + dy))
    for ref in target.bound_elements or []:
        label = scene.find_live(ref.id) if ref.type == "text" else None
        if label is not None:
            scene.put(bump(label, ids, x=label.x + dx, y=label.y + dy))
    return target.id


@action_handler("group_elements", description="Put two or more elements in a new group")
def group_elements(action: GroupElementsAction, scene: Scene, ids: IdGenerator) -> str:
    member_ids = list(dict.fromkeys(action.element_ids))
    if len(member_ids) < 2:
        raise InterpreterError("Need at least 2 elements to group")
    members = [_require(scene, i) for i in member_ids]

    group_id = ids.new_id("group_")
    for member in members:
        scene.put(bump(member, ids, group_ids=[*member.group_ids, group_id]))
    return group_id


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


def _action_type(action: BaseModel | Mapping[str, Any]) -> str:
    if isinstance(action, BaseModel):
        return str(getattr(action, "type", ""))
    if isinstance(action, Mapping):
        return str(action.get("type", ""))
    return ""


def execute_action(
    action: BaseModel | Mapping[str, Any],
    scene: Scene,
    ids: IdGenerator,
) -> ActionResult:
    """Apply one action to ``scene``. Never raises for a bad action."""
    action_type = _action_type(action)
    spec = get_registry().get(action_type)
    if spec is None:
        logger.warning("Unknown action type: %s", action_type)
        return ActionResult(success=False, action_type=action_type, error=f"Unknown action type: {action_type}")

    try:
        parsed = action if isinstance(action, BaseModel) else _ACTION_ADAPTER.validate_python(action)
        element_id = spec.fn(parsed, scene, ids)
    except ValidationError as e:
        first = e.errors()[0]
        loc = ".".join(str(p) for p in first["loc"][1:]) or action_type
        error = f"Invalid {action_type} action ({loc}): {first['msg']}"
        logger.warning("Action %s rejected: %s", action_type, error)
        return ActionResult(success=False, action_type=action_type, error=error)
    except ValueError as e:
        logger.warning("Action %s failed: %s", action_type, e)
        return ActionResult(success=False, action_type=action_type, error=str(e))

    return ActionResult(success=True, action_type=action_type, element_id=element_id)


async def execute_actions(
    actions: Sequence[BaseModel | Mapping[str, Any]],
    scene: Scene,
    ids: IdGenerator,
    delay_between: float | None = None,
    on_action_complete: ResultCallback | None = None,
    on_error: ResultCallback | None = None,
) -> list[ActionResult]:
    """Run ``actions`` in order; one result per action.

    ``delay_between`` (seconds) is only slept between actions, never after the
    last one. Defaults to ``settings.action_delay_ms``.
    """
    delay = settings.action_delay_ms / 1000 if delay_between is None else delay_between
    results: list[ActionResult] = []

    for i, action in enumerate(actions):
        result = execute_action(action, scene, ids)
        results.append(result)

        if result.success:
            if on_action_complete is not None:
                on_action_complete(result, i)
        elif on_error is not None:
            on_error(result, i)

        if delay > 0 and i < len(actions) - 1:
            await asyncio.sleep(delay)

    succeeded = sum(1 for r in results if r.success)
    logger.info("Executed %d action(s): %d succeeded, %d failed", len(results), succeeded, len(results) - succeeded)
    return results
