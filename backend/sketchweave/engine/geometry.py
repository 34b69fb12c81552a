"""Connector anchor geometry."""

from __future__ import annotations

import math

from shapely.geometry import LineString, box

from sketchweave.engine.elements import center
from sketchweave.models.element import Element

# Clearance between a connector end and the edge of its anchor element
ANCHOR_GAP = 8.0


def edge_point(element: Element, toward: tuple[float, float]) -> tuple[float, float]:
    """Where the segment from the element's centre to ``toward`` leaves its box.

    Falls back to the centre when the box is degenerate or ``toward`` lies
    inside it.
    """
    cx, cy = center(element)
    x0, x1 = sorted((element.x, element.x + element.width))
    y0, y1 = sorted((element.y, element.y + element.height))
    if x1 - x0 <= 0 or y1 - y0 <= 0 or (cx, cy) == toward:
        return (cx, cy)

    hit = LineString([(cx, cy), toward]).intersection(box(x0, y0, x1, y1).exterior)
    if hit.is_empty:
        return (cx, cy)

    coords = [c for geom in getattr(hit, "geoms", [hit]) for c in geom.coords]
    tx, ty = toward
    px, py = min(coords, key=lambda c: (c[0] - tx) ** 2 + (c[1] - ty) ** 2)
    return (float(px), float(py))


def connection_anchors(
    source: Element,
    target: Element,
    gap: float = ANCHOR_GAP,
) -> tuple[tuple[float, float], tuple[float, float]]:
    """Start/end points for a connector joining ``source`` to ``target``.

    Both ends sit on the centre-to-centre line, ``gap`` outside each box.
    """
    sc = center(source)
    tc = center(target)
    dx, dy = tc[0] - sc[0], tc[1] - sc[1]
    dist = math.hypot(dx, dy)
    if dist == 0:
        return sc, tc
    ux, uy = dx / dist, dy / dist

    sx, sy = edge_point(source, tc)
    ex, ey = edge_point(target, sc)
    return (sx + ux * gap, sy + uy * gap), (ex - ux * gap, ey - uy * gap)
