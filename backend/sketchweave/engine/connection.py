"""Connection operation — a bound arrow between two existing elements.

At most one live connector made by this operation exists per unordered pair:
any earlier one between the same two elements (either direction) is
tombstoned together with its label before the new one is created.
"""

from __future__ import annotations

import logging
from typing import Any

from sketchweave.engine.elements import (
    LABEL_FONT_SIZE,
    bound_text_id,
    new_element,
    new_text,
    with_bound,
)
from sketchweave.engine.geometry import ANCHOR_GAP, connection_anchors
from sketchweave.engine.ids import IdGenerator
from sketchweave.engine.scene import Scene
from sketchweave.models.element import Binding, BoundElement, Element

logger = logging.getLogger(__name__)

_ARROWHEAD_KEYS = ("start_arrowhead", "end_arrowhead")


def find_connectors(scene: Scene, a: str, b: str) -> list[Element]:
    """Live arrows whose bindings join ``a`` and ``b`` in either direction."""
    pair = {a, b}
    found = []
    for element in scene:
        if element.type != "arrow" or element.is_deleted:
            continue
        if element.start_binding is None or element.end_binding is None:
            continue
        if {element.start_binding.element_id, element.end_binding.element_id} == pair:
            found.append(element)
    return found


def connector_label(
    text: str,
    ids: IdGenerator,
    start: tuple[float, float],
    end: tuple[float, float],
    container_id: str,
) -> Element:
    """Label text centred on the connector's midpoint."""
    mid_x, mid_y = (start[0] + end[0]) / 2, (start[1] + end[1]) / 2
    return new_text(
        text,
        ids,
        x=mid_x - len(text) * 4,
        y=mid_y - 12,
        width=len(text) * 8,
        height=20,
        container_id=container_id,
        font_size=LABEL_FONT_SIZE,
    )


def connect(
    scene: Scene,
    source_id: str,
    target_id: str,
    ids: IdGenerator,
    style: dict[str, Any] | None = None,
    label: str | None = None,
    connector_id: str | None = None,
) -> str | None:
    """Join ``source_id`` to ``target_id`` with a bound arrow.

    Mutates ``scene`` and returns the new connector id, or None (scene
    untouched) when either element is missing or both ids are the same.
    """
    if source_id == target_id:
        logger.warning("Cannot connect %s to itself", source_id)
        return None
    if scene.find_live(source_id) is None or scene.find_live(target_id) is None:
        logger.warning("Cannot connect %s -> %s: element not found", source_id, target_id)
        return None

    stale = find_connectors(scene, source_id, target_id)
    if stale:
        doomed = [c.id for c in stale]
        doomed.extend(t for t in (bound_text_id(c) for c in stale) if t)
        scene.delete(doomed, ids)
        logger.debug("Replaced %d existing connector(s) between %s and %s", len(stale), source_id, target_id)

    # Re-read: pruning above bumped the endpoints
    source = scene.find_live(source_id)
    target = scene.find_live(target_id)
    (sx, sy), (ex, ey) = connection_anchors(source, target)

    style = dict(style or {})
    arrowheads = {k: style.pop(k) for k in _ARROWHEAD_KEYS if k in style}
    arrow_id = connector_id if connector_id and connector_id not in scene else ids.new_id()

    label_element = connector_label(label, ids, (sx, sy), (ex, ey), arrow_id) if label else None

    arrow = new_element(
        "arrow",
        ids,
        x=sx,
        y=sy,
        width=ex - sx,
        height=ey - sy,
        element_id=arrow_id,
        style=style,
        points=[[0.0, 0.0], [ex - sx, ey - sy]],
        start_binding=Binding(element_id=source_id, focus=0, gap=ANCHOR_GAP),
        end_binding=Binding(element_id=target_id, focus=0, gap=ANCHOR_GAP),
        start_arrowhead=arrowheads.get("start_arrowhead"),
        end_arrowhead=arrowheads.get("end_arrowhead", "arrow"),
        elbowed=False,
        bound_elements=[BoundElement(id=label_element.id, type="text")] if label_element else None,
    )

    ref = BoundElement(id=arrow_id, type="arrow")
    scene.put(with_bound(source, ids, ref))
    scene.put(with_bound(target, ids, ref))
    scene.add(arrow)
    if label_element is not None:
        scene.add(label_element)

    logger.info("Connected %s -> %s via %s", source_id, target_id, arrow_id)
    return arrow_id
