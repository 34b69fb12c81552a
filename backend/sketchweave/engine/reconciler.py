"""Reconciler — merge an externally supplied batch into the authoritative scene.

The producer is untrusted and best-effort. Items that cannot be understood are
skipped with a logged reason; nothing in a batch raises. The merged scene is
always returned whole.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from sketchweave.engine.elements import (
    SHAPE_TYPES,
    bound_text_id,
    bump,
    fresh_nonce,
    is_connector,
    is_shape,
    new_text,
    now_ms,
)
from sketchweave.engine.ids import IdGenerator
from sketchweave.engine.scene import Scene
from sketchweave.engine.synthesizer import SynthesisDefaults, complete_element, synthesize, wire_keys
from sketchweave.models.descriptions import UpdateBatch
from sketchweave.models.element import BoundElement, Element

logger = logging.getLogger(__name__)

# Identity and bookkeeping fields a patch never carries over from the current value
_PATCH_BASE_EXCLUDE = {"version", "versionNonce", "updated", "isDeleted"}

# Only text elements keep these as fields; on a shape they become a bound label
_CAPTION_KEYS = ("text", "label")


@dataclass
class ReconcileResult:
    scene: list[Element]
    created_ids: list[str] = field(default_factory=list)
    updated_ids: list[str] = field(default_factory=list)
    deleted_ids: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    def note_created(self, element_id: str) -> None:
        if element_id not in self.created_ids:
            self.created_ids.append(element_id)

    def note_updated(self, element_id: str) -> None:
        if element_id not in self.created_ids and element_id not in self.updated_ids:
            self.updated_ids.append(element_id)

    def note_deleted(self, element_id: str) -> None:
        if element_id not in self.deleted_ids:
            self.deleted_ids.append(element_id)


def is_element_patch(item: Any) -> bool:
    """A patch is a mapping that names its own id; anything else is a description."""
    if not isinstance(item, Mapping):
        return False
    element_id = item.get("id")
    return isinstance(element_id, str) and bool(element_id)


def validate_batch(raw: Any) -> tuple[UpdateBatch | None, list[str]]:
    """Check the outer shape of a raw batch. Returns (batch, errors)."""
    if not isinstance(raw, Mapping):
        return None, ["Response must be an object"]

    errors: list[str] = []
    if raw.get("success") is not None and not isinstance(raw["success"], bool):
        errors.append("success must be a boolean")
    if raw.get("elements") is not None and not isinstance(raw["elements"], list):
        errors.append("elements must be an array")
    for key in ("deleteIds", "elementsToDelete"):
        value = raw.get(key)
        if value is None:
            continue
        if not isinstance(value, list):
            errors.append(f"{key} must be an array")
        elif not all(isinstance(i, str) for i in value):
            errors.append(f"{key} must contain only strings")
    for key in ("message", "error"):
        if raw.get(key) is not None and not isinstance(raw[key], str):
            errors.append(f"{key} must be a string")

    if errors:
        return None, errors
    return UpdateBatch.model_validate({k: v for k, v in raw.items() if v is not None}), []


def _coerce_batch(batch: UpdateBatch | Mapping[str, Any]) -> UpdateBatch:
    if isinstance(batch, UpdateBatch):
        return batch
    parsed, errors = validate_batch(batch)
    if parsed is not None:
        return parsed

    # Salvage what is usable from a malformed batch
    logger.warning("Malformed update batch (%s), salvaging usable parts", "; ".join(errors))
    if not isinstance(batch, Mapping):
        return UpdateBatch()
    elements = batch.get("elements")
    delete_ids = batch.get("deleteIds") or batch.get("elementsToDelete")
    return UpdateBatch(
        elements=elements if isinstance(elements, list) else [],
        delete_ids=[i for i in delete_ids if isinstance(i, str)] if isinstance(delete_ids, list) else [],
    )


def _supersede(current: Element, incoming: Element, ids: IdGenerator) -> Element:
    """``incoming`` as the next version of ``current``."""
    return incoming.model_copy(
        update={
            "version": max(current.version + 1, incoming.version),
            "version_nonce": fresh_nonce(current, ids),
            "updated": now_ms(),
        }
    )


def reconcile(
    batch: UpdateBatch | Mapping[str, Any],
    scene: Scene | Iterable[Element],
    ids: IdGenerator,
    defaults: SynthesisDefaults | None = None,
) -> ReconcileResult:
    """Merge ``batch`` into a copy of ``scene``.

    Descriptions always create. Patches update in place when their id is
    already present (the patch is layered over the current value), otherwise
    they are appended. Deletions run last, in the same pass.

    The result lists every id the pass touched, including connectors a new
    connection replaced and the endpoints it re-bound.
    """
    working = scene.copy() if isinstance(scene, Scene) else Scene(scene)
    batch = _coerce_batch(batch)
    result = ReconcileResult(scene=[])

    for index, item in enumerate(batch.elements):
        if is_element_patch(item):
            _merge_patch(item, working, ids, result)
        elif isinstance(item, Mapping):
            before = _snapshot(working)
            synthesis = synthesize(item, working, ids, defaults)
            if not synthesis.ok:
                result.skipped.append(f"elements[{index}]: {synthesis.reason}")
                continue
            for element in synthesis.elements:
                working.put(element)
                result.note_created(element.id)
            _note_side_effects(before, working, result)
        else:
            logger.warning("Skipping unrecognizable batch item %d (%s)", index, type(item).__name__)
            result.skipped.append(f"elements[{index}]: not an object")

    for element_id in working.delete(batch.delete_ids, ids):
        result.note_deleted(element_id)
    repaired = repair_references(working, ids)
    if repaired:
        logger.debug("Repaired references on %d element(s)", repaired)

    result.scene = working.elements
    logger.info(
        "Reconciled batch: %d created, %d updated, %d deleted, %d skipped",
        len(result.created_ids),
        len(result.updated_ids),
        len(result.deleted_ids),
        len(result.skipped),
    )
    return result


def _snapshot(scene: Scene) -> dict[str, tuple[int, bool]]:
    return {e.id: (e.version, e.is_deleted) for e in scene}


def _note_side_effects(before: dict[str, tuple[int, bool]], scene: Scene, result: ReconcileResult) -> None:
    for element in scene:
        prior = before.get(element.id)
        if prior is None:
            continue
        version, was_deleted = prior
        if element.is_deleted and not was_deleted:
            result.note_deleted(element.id)
        elif element.version != version:
            result.note_updated(element.id)


def _merge_patch(item: Mapping[str, Any], working: Scene, ids: IdGenerator, result: ReconcileResult) -> None:
    patch = wire_keys(item)
    current = working.get(patch["id"])
    kind = patch.get("type") if isinstance(patch.get("type"), str) else None
    kind = kind or (current.type if current is not None else "rectangle")

    caption = None
    if kind != "text":
        captions = [patch.pop(key, None) for key in _CAPTION_KEYS]
        caption = next((c for c in captions if isinstance(c, str) and c), None)
        if caption is not None and kind not in SHAPE_TYPES:
            logger.debug("Dropping caption from %s patch %s", kind, patch["id"])
            caption = None

    try:
        if current is None:
            element = complete_element(patch, ids)
        else:
            base = {k: v for k, v in current.to_wire().items() if k not in _PATCH_BASE_EXCLUDE}
            if kind != "text":
                for key in _CAPTION_KEYS:
                    base.pop(key, None)
            element = _supersede(current, complete_element({**base, **patch}, ids), ids)
    except ValidationError as e:
        first = e.errors()[0]
        reason = f"{patch['id']}: invalid {'.'.join(str(p) for p in first['loc'])} ({first['msg']})"
        logger.warning("Skipping element patch %s", reason)
        result.skipped.append(reason)
        return

    label = None
    if caption is not None and is_shape(element):
        element, label = _caption_label(element, caption, working, ids)

    working.put(element)
    if current is None:
        result.note_created(element.id)
    else:
        result.note_updated(element.id)

    if label is not None:
        is_new = label.id not in working
        working.put(label)
        if is_new:
            result.note_created(label.id)
        else:
            result.note_updated(label.id)


def _caption_label(
    container: Element,
    caption: str,
    working: Scene,
    ids: IdGenerator,
) -> tuple[Element, Element | None]:
    """Bound text for a patched shape's caption. Returns (container, label).

    A live label is rewritten in place, and label is None when it already
    reads ``caption``.
    """
    existing = working.find_live(bound_text_id(container))
    if existing is not None and existing.type == "text" and existing.container_id == container.id:
        if existing.text == caption:
            return container, None
        return container, bump(existing, ids, text=caption, original_text=caption)

    label = new_text(
        caption,
        ids,
        x=container.x,
        y=container.y,
        width=container.width,
        height=container.height,
        container_id=container.id,
    )
    refs = [b for b in container.bound_elements or [] if b.type != "text"]
    container = container.model_copy(update={"bound_elements": [*refs, BoundElement(id=label.id, type="text")]})
    return container, label


def repair_references(scene: Scene, ids: IdGenerator) -> int:
    """Drop weak references to missing or deleted elements and restore text back-references.

    Patches from outside can name containers, anchors and frames that are not
    live. A container holds at most one bound text: a text that claims an
    already labelled container takes its place, and the text it displaces
    becomes free-standing. Returns the number of elements rewritten.
    """
    live = {e.id: e for e in scene.live()}
    repaired = 0

    for element in scene.live():
        changes: dict[str, Any] = {}
        if element.bound_elements:
            kept = [b for b in element.bound_elements if _back_reference_holds(element, b, live)]
            if len(kept) != len(element.bound_elements):
                changes["bound_elements"] = kept
        if element.container_id and element.container_id not in live:
            changes["container_id"] = None
        if element.frame_id and element.frame_id not in live:
            changes["frame_id"] = None
        if is_connector(element):
            if element.start_binding and element.start_binding.element_id not in live:
                changes["start_binding"] = None
            if element.end_binding and element.end_binding.element_id not in live:
                changes["end_binding"] = None
        if changes:
            scene.put(bump(element, ids, **changes))
            repaired += 1

    # Scene order decides: the last text naming a container is its label
    claims: dict[str, list[Element]] = {}
    for text in scene.live():
        if text.type == "text" and text.container_id and scene.find_live(text.container_id) is not None:
            claims.setdefault(text.container_id, []).append(text)

    for container_id, texts in claims.items():
        label = texts[-1]
        container = scene.get(container_id)
        refs = container.bound_elements or []
        if [b.id for b in refs if b.type == "text"] != [label.id]:
            kept = [b for b in refs if b.type != "text"]
            scene.put(bump(container, ids, bound_elements=[*kept, BoundElement(id=label.id, type="text")]))
            repaired += 1
        for old in texts[:-1]:
            logger.debug("Text %s replaces %s as the label of %s", label.id, old.id, container_id)
            scene.put(bump(old, ids, container_id=None))
            repaired += 1

    return repaired


def _back_reference_holds(owner: Element, ref: BoundElement, live: dict[str, Element]) -> bool:
    target = live.get(ref.id)
    if target is None:
        return False
    if ref.type == "text":
        return target.type == "text" and target.container_id == owner.id
    return True
