"""Tests for relationship detection and selection serialization."""

from __future__ import annotations

from sketchweave.engine.connection import connect
from sketchweave.engine.elements import bump, new_element
from sketchweave.engine.relationships import (
    detect_relationships,
    extract_tags_from_text,
    get_element_text,
    serialize_selection,
)


def test_get_element_text(scene):
    assert get_element_text(scene.get("a"), scene) == "API #backend"
    assert get_element_text(scene.get("note"), scene) == "Remember #backend"


def test_get_element_text_ignores_deleted_label(scene, ids):
    scene.put(bump(scene.get("a_label"), ids, is_deleted=True))
    assert get_element_text(scene.get("a"), scene) is None


def test_extract_tags():
    assert extract_tags_from_text("Service #one and #two-b") == ["one", "two-b"]
    assert extract_tags_from_text(None) == []


def test_connector_reported_once_with_label(scene, ids):
    connect(scene, "a", "b", ids, label="calls")
    rels = [r for r in detect_relationships(scene.live(), scene) if r.type == "arrow_connection"]
    assert len(rels) == 1
    assert (rels[0].source_id, rels[0].target_id, rels[0].label) == ("a", "b", "calls")


def test_connector_reported_once_in_any_order(scene, ids):
    connect(scene, "a", "b", ids)
    forward = detect_relationships(scene.live(), scene)
    backward = detect_relationships(list(reversed(scene.live())), scene)
    for rels in (forward, backward):
        assert sum(1 for r in rels if r.type == "arrow_connection") == 1


def test_detection_is_deterministic(scene, ids):
    connect(scene, "a", "b", ids)
    subset = scene.live()
    assert detect_relationships(subset, scene) == detect_relationships(subset, scene)


def test_text_binding_only_inside_subset(scene):
    rels = detect_relationships([scene.get("a"), scene.get("a_label"), scene.get("b")], scene)
    assert [(r.type, r.source_id, r.target_id) for r in rels] == [("text_binding", "a", "a_label")]


def test_group_relationship(scene, ids):
    scene.put(bump(scene.get("a"), ids, group_ids=["g1"]))
    scene.put(bump(scene.get("b"), ids, group_ids=["g1"]))
    rels = detect_relationships([scene.get("b"), scene.get("a")], scene)
    groups = [r for r in rels if r.type == "group"]
    assert [(r.source_id, r.target_id) for r in groups] == [("a", "b")]


def test_frame_containment(scene, ids):
    frame = new_element("frame", ids, x=-10, y=-10, width=500, height=300, element_id="f")
    scene.add(frame)
    scene.put(bump(scene.get("note"), ids, frame_id="f"))
    rels = detect_relationships([scene.get("f"), scene.get("note")], scene)
    assert rels[0].as_dict() == {"type": "frame_containment", "source_id": "f", "target_id": "note", "label": None}


def test_deleted_elements_are_ignored(scene, ids):
    arrow_id = connect(scene, "a", "b", ids)
    scene.delete([arrow_id], ids)
    rels = detect_relationships(list(scene), scene)
    assert all(r.type != "arrow_connection" for r in rels)


# ---------------------------------------------------------------------------
# serialize_selection
# ---------------------------------------------------------------------------


def test_serialize_empty_selection(scene):
    assert serialize_selection([], scene) == "No elements selected."


def test_serialize_selection(scene, ids):
    connect(scene, "a", "b", ids, label="calls")
    subset = [e for e in scene.live() if not e.container_id]
    text = serialize_selection(subset, scene)

    assert text.startswith(f"Selected {len(subset)} element(s):")
    assert "## Rectangles (2):" in text
    assert '- a - "API #backend" [#backend]' in text
    assert "## Tags/Context:" in text
    assert "Found 1 tag(s): #backend" in text
    assert "- Arrow: a -> b (calls)" in text
