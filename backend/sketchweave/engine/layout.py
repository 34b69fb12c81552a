"""Placement heuristics: bounding boxes, non-overlap placement, branch fan-out.

Nothing here tries to be pretty. New elements go next to what is already on
the canvas and do not land on top of it.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from sketchweave.models.element import Element

DEFAULT_SPACING = 50.0
DEFAULT_ELEMENT_WIDTH = 150.0
DEFAULT_ELEMENT_HEIGHT = 80.0

# Origin used when the canvas is empty
_EMPTY_CANVAS_ORIGIN = (100.0, 100.0)


def bounding_box(elements: Sequence[Element]) -> tuple[float, float, float, float] | None:
    """Union box (x, y, width, height) of ``elements``, or None when empty."""
    if not elements:
        return None
    boxes = np.array([[e.x, e.y, e.x + e.width, e.y + e.height] for e in elements], dtype=np.float64)
    # Negative width/height (linear elements drawn right-to-left) still span a box
    xs = np.concatenate([boxes[:, 0], boxes[:, 2]])
    ys = np.concatenate([boxes[:, 1], boxes[:, 3]])
    min_x, min_y = float(xs.min()), float(ys.min())
    return (min_x, min_y, float(xs.max()) - min_x, float(ys.max()) - min_y)


def points_bbox(points: Sequence[Sequence[float]]) -> tuple[float, float, float, float]:
    """Box (xmin, ymin, xmax, ymax) of a point list."""
    arr = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    return (
        float(arr[:, 0].min()),
        float(arr[:, 1].min()),
        float(arr[:, 0].max()),
        float(arr[:, 1].max()),
    )


def find_available_position(
    elements: Sequence[Element],
    reference: Element | None = None,
    direction: str = "right",
    spacing: float = DEFAULT_SPACING,
) -> tuple[float, float]:
    """Position for a new element.

    With a reference element, place it on the requested side using the
    reference's actual geometry. Without one, place it to the right of
    everything live on the canvas.
    """
    if reference is None:
        bbox = bounding_box([e for e in elements if not e.is_deleted])
        if bbox is None:
            return _EMPTY_CANVAS_ORIGIN
        x, y, w, _ = bbox
        return (x + w + spacing, y)

    if direction == "below":
        return (reference.x, reference.y + reference.height + spacing)
    if direction == "left":
        return (reference.x - DEFAULT_ELEMENT_WIDTH - spacing, reference.y)
    if direction == "above":
        return (reference.x, reference.y - DEFAULT_ELEMENT_HEIGHT - spacing)
    return (reference.x + reference.width + spacing, reference.y)


def calculate_branch_position(
    parent: Element,
    existing_children: int,
    direction: str = "right",
    spacing: float = DEFAULT_SPACING,
    child_width: float = DEFAULT_ELEMENT_WIDTH,
    child_height: float = DEFAULT_ELEMENT_HEIGHT,
) -> tuple[float, float]:
    """Next slot when fanning children out from ``parent``."""
    cx = parent.x + parent.width / 2
    cy = parent.y + parent.height / 2
    if direction == "below":
        start_x = cx - existing_children * (child_width + spacing) / 2
        return (
            start_x + existing_children * (child_width + spacing),
            parent.y + parent.height + spacing * 2,
        )
    start_y = cy - existing_children * (child_height + spacing) / 2
    return (
        parent.x + parent.width + spacing * 2,
        start_y + existing_children * (child_height + spacing),
    )
