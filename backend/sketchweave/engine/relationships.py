"""Relationship detection between canvas elements, plus prompt context text.

``detect_relationships`` is a single pass over the candidate subset in its
given order, so identical input always yields identical, identically ordered
output.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import asdict, dataclass
from typing import Literal

from sketchweave.engine.elements import bound_text_id, is_connector
from sketchweave.models.element import Element

RelationshipType = Literal["arrow_connection", "text_binding", "group", "frame_containment"]

_TAG_RE = re.compile(r"#[\w-]+")


@dataclass(frozen=True)
class Relationship:
    type: RelationshipType
    source_id: str
    target_id: str
    # Connector label text, if any
    label: str | None = None

    def as_dict(self) -> dict:
        return asdict(self)


def _lookup(scene: Iterable[Element]) -> dict[str, Element]:
    return {e.id: e for e in scene}


def get_element_text(element: Element, scene: Iterable[Element] | dict[str, Element]) -> str | None:
    """Text of a text element, or of the text bound to a shape/connector."""
    if element.type == "text":
        return element.text
    text_id = bound_text_id(element)
    if text_id is None:
        return None
    by_id = scene if isinstance(scene, dict) else _lookup(scene)
    bound = by_id.get(text_id)
    if bound is not None and bound.type == "text" and not bound.is_deleted:
        return bound.text
    return None


def extract_tags_from_text(text: str | None) -> list[str]:
    """``#tag`` markers in element text, without the ``#``."""
    if not text:
        return []
    return [t[1:] for t in _TAG_RE.findall(text)]


def detect_relationships(
    subset: Sequence[Element],
    scene: Iterable[Element],
) -> list[Relationship]:
    by_id = _lookup(scene)
    candidates = [e for e in subset if not e.is_deleted]
    subset_ids = {e.id for e in candidates}

    relationships: list[Relationship] = []
    seen: set[tuple[str, str, str]] = set()
    seen_connectors: set[str] = set()

    def emit(rel: Relationship) -> None:
        key = (rel.type, rel.source_id, rel.target_id)
        if key not in seen:
            seen.add(key)
            relationships.append(rel)

    for element in candidates:
        if is_connector(element) and element.id not in seen_connectors:
            if element.start_binding and element.end_binding:
                seen_connectors.add(element.id)
                relationships.append(
                    Relationship(
                        type="arrow_connection",
                        source_id=element.start_binding.element_id,
                        target_id=element.end_binding.element_id,
                        label=get_element_text(element, by_id),
                    )
                )

        for ref in element.bound_elements or []:
            if ref.type == "text" and ref.id in subset_ids:
                emit(Relationship(type="text_binding", source_id=element.id, target_id=ref.id))

        if element.group_ids:
            groups = set(element.group_ids)
            for other in candidates:
                if other.id != element.id and element.id < other.id and groups.intersection(other.group_ids):
                    emit(Relationship(type="group", source_id=element.id, target_id=other.id))

        if element.frame_id and element.frame_id in subset_ids:
            emit(Relationship(type="frame_containment", source_id=element.frame_id, target_id=element.id))

    return relationships


def serialize_selection(subset: Sequence[Element], scene: Iterable[Element]) -> str:
    """Human-readable description of a selection, used as LLM context."""
    if not subset:
        return "No elements selected."

    by_id = _lookup(scene)
    lines = [f"Selected {len(subset)} element(s):", ""]

    by_type: dict[str, list[Element]] = {}
    for element in subset:
        by_type.setdefault(element.type, []).append(element)

    tag_index: dict[str, list[tuple[Element, str]]] = {}
    for type_name, members in by_type.items():
        lines.append(f"## {type_name.capitalize()}s ({len(members)}):")
        for element in members:
            text = get_element_text(element, by_id)
            tags = extract_tags_from_text(text)
            for tag in tags:
                tag_index.setdefault(tag, []).append((element, text or ""))
            desc = f' - "{text}"' if text else ""
            tag_desc = f" [{', '.join('#' + t for t in tags)}]" if tags else ""
            lines.append(f"- {element.id}{desc}{tag_desc}")
        lines.append("")

    if tag_index:
        lines.append("## Tags/Context:")
        lines.append(f"Found {len(tag_index)} tag(s): {', '.join('#' + t for t in tag_index)}")
        for tag, hits in tag_index.items():
            lines.append(f"### #{tag}")
            for element, text in hits:
                context = text if len(text) <= 100 else text[:100] + "..."
                lines.append(f'- Element {element.id} ({element.type}): "{context}"')
        lines.append("")

    relationships = detect_relationships(subset, by_id.values())
    if relationships:
        lines.append("## Relationships:")
        for rel in relationships:
            if rel.type == "arrow_connection":
                label = f" ({rel.label})" if rel.label else ""
                lines.append(f"- Arrow: {rel.source_id} -> {rel.target_id}{label}")
            elif rel.type == "text_binding":
                lines.append(f"- Text bound to: {rel.source_id}")
            elif rel.type == "group":
                lines.append(f"- Grouped: {rel.source_id} & {rel.target_id}")
            else:
                lines.append(f"- Frame {rel.source_id} contains: {rel.target_id}")

    return "\n".join(lines).rstrip()
