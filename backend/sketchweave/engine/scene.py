"""Scene — the ordered element list every engine operation works on.

A Scene is a working copy: element values are immutable, and each change
replaces the value at its id's slot in an id→index map. Callers hand the full
``elements`` list back to the renderer; nothing is ever diffed or patched.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import Any, Protocol

from sketchweave.engine.elements import bump, is_connector
from sketchweave.engine.ids import IdGenerator
from sketchweave.models.element import Element

logger = logging.getLogger(__name__)


class Scene:
    """Ordered elements plus an id index. Tombstoned elements stay resolvable."""

    def __init__(self, elements: Iterable[Element] = ()) -> None:
        self._elements: list[Element] = []
        self._index: dict[str, int] = {}
        for element in elements:
            if element.id in self._index:
                logger.warning("Duplicate element id %s in scene input, keeping the last", element.id)
            self.put(element)

    def __iter__(self) -> Iterator[Element]:
        return iter(self._elements)

    def __len__(self) -> int:
        return len(self._elements)

    def __contains__(self, element_id: object) -> bool:
        return element_id in self._index

    @property
    def elements(self) -> list[Element]:
        return list(self._elements)

    def live(self) -> list[Element]:
        return [e for e in self._elements if not e.is_deleted]

    def ids(self) -> set[str]:
        return set(self._index)

    def get(self, element_id: str | None) -> Element | None:
        if element_id is None:
            return None
        idx = self._index.get(element_id)
        return self._elements[idx] if idx is not None else None

    def find_live(self, element_id: str | None) -> Element | None:
        element = self.get(element_id)
        if element is None or element.is_deleted:
            return None
        return element

    def put(self, element: Element) -> None:
        """Replace the element with the same id in place, or append it."""
        idx = self._index.get(element.id)
        if idx is None:
            self._index[element.id] = len(self._elements)
            self._elements.append(element)
        else:
            self._elements[idx] = element

    def add(self, element: Element) -> None:
        if element.id in self._index:
            raise ValueError(f"Duplicate element id: {element.id}")
        self.put(element)

    def copy(self) -> Scene:
        return Scene(self._elements)

    def delete(self, element_ids: Iterable[str], ids: IdGenerator) -> list[str]:
        """Tombstone elements and prune every reference to them in one pass.

        Text bound to a deleted container goes with it. Connectors anchored to a
        deleted element keep existing; only the binding is cleared.
        Returns the ids tombstoned by this call, in scene order.
        """
        targets = {i for i in element_ids if self.find_live(i) is not None}
        if not targets:
            return []

        for element in self._elements:
            if not element.is_deleted and element.type == "text" and element.container_id in targets:
                targets.add(element.id)

        tombstoned: list[str] = []
        for element in list(self._elements):
            if element.id in targets:
                self.put(bump(element, ids, is_deleted=True))
                tombstoned.append(element.id)
                continue
            changes = _reference_pruning(element, targets)
            if changes:
                self.put(bump(element, ids, **changes))

        logger.debug("Tombstoned %d element(s): %s", len(tombstoned), tombstoned)
        return tombstoned


def _reference_pruning(element: Element, removed: set[str]) -> dict[str, Any]:
    changes: dict[str, Any] = {}
    if element.bound_elements and any(b.id in removed for b in element.bound_elements):
        changes["bound_elements"] = [b for b in element.bound_elements if b.id not in removed]
    if element.container_id in removed:
        changes["container_id"] = None
    if element.frame_id in removed:
        changes["frame_id"] = None
    if is_connector(element):
        if element.start_binding and element.start_binding.element_id in removed:
            changes["start_binding"] = None
        if element.end_binding and element.end_binding.element_id in removed:
            changes["end_binding"] = None
    return changes


class SceneAccessor(Protocol):
    """Whole-scene read and replace. Never incremental."""

    def get_elements(self) -> list[Element]:
        ...

    def replace_elements(self, elements: list[Element]) -> None:
        ...


class SceneStore:
    """In-process scene holder.

    There is no lock: one mutation pass at a time is the caller's
    responsibility.
    """

    def __init__(self, elements: Iterable[Element] = ()) -> None:
        self._elements: list[Element] = list(elements)

    def get_elements(self) -> list[Element]:
        return list(self._elements)

    def replace_elements(self, elements: list[Element]) -> None:
        self._elements = list(elements)
        logger.debug("Scene replaced: %d element(s)", len(self._elements))
