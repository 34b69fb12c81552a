"""Tests for element synthesis from loose descriptions."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from sketchweave.engine.scene import Scene
from sketchweave.engine.synthesizer import (
    SynthesisDefaults,
    complete_element,
    describe_from_text,
    synthesize,
    wire_keys,
)
from sketchweave.models.descriptions import ElementDescription


def test_shape_with_text_yields_wired_pair(ids):
    result = synthesize({"type": "rectangle", "text": "Login Service", "x": 40, "y": 60}, Scene(), ids)
    assert result.ok
    shape, text = result.elements

    assert shape.type == "rectangle"
    assert text.type == "text"
    assert shape.bound_elements[0].id == text.id
    assert shape.bound_elements[0].type == "text"
    assert text.container_id == shape.id
    assert text.text == "Login Service"
    assert text.original_text == "Login Service"
    # Bound text covers the container and is centred in it
    assert (text.x, text.y, text.width, text.height) == (shape.x, shape.y, shape.width, shape.height)
    assert text.text_align == "center"
    assert text.vertical_align == "middle"
    assert text.font_size == 16


def test_shape_label_alias(ids):
    result = synthesize({"type": "ellipse", "label": "Cache"}, Scene(), ids)
    assert [e.type for e in result.elements] == ["ellipse", "text"]


def test_shape_without_text_is_single_element(ids):
    result = synthesize(ElementDescription(type="diamond"), Scene(), ids)
    assert len(result.elements) == 1
    assert result.elements[0].bound_elements is None
    assert result.elements[0].roundness == {"type": 3}


def test_defaults_fill_missing_geometry(ids):
    defaults = SynthesisDefaults(x=5, y=6, width=7, height=8)
    (shape,) = synthesize({"type": "rectangle"}, Scene(), ids, defaults).elements
    assert (shape.x, shape.y, shape.width, shape.height) == (5, 6, 7, 8)


def test_missing_type_means_rectangle(ids):
    (shape,) = synthesize({}, Scene(), ids).elements
    assert shape.type == "rectangle"
    assert shape.version == 1
    assert not shape.is_deleted


def test_style_fields_carry_over(ids):
    result = synthesize(
        {"type": "rectangle", "strokeColor": "#ff0000", "backgroundColor": "#eeeeee", "strokeWidth": 4},
        Scene(),
        ids,
    )
    shape = result.elements[0]
    assert shape.stroke_color == "#ff0000"
    assert shape.background_color == "#eeeeee"
    assert shape.stroke_width == 4


def test_free_text(ids):
    (text,) = synthesize({"type": "text", "text": "Hello", "x": 10, "y": 20}, Scene(), ids).elements
    assert text.container_id is None
    assert text.font_size == 20
    assert text.text_align == "left"
    assert text.width > 0 and text.height > 0


def test_text_without_text_fails_with_reason(ids):
    result = synthesize({"type": "text"}, Scene(), ids)
    assert not result.ok
    assert result.elements == []
    assert result.reason == "Text description has no text"


def test_invalid_type_fails_with_reason(ids):
    result = synthesize({"type": "hexagon"}, Scene(), ids)
    assert not result.ok
    assert result.reason.startswith("Invalid type")


# ---------------------------------------------------------------------------
# Connectors
# ---------------------------------------------------------------------------


def test_connector_between_elements_uses_connection(scene, ids):
    result = synthesize({"type": "arrow", "fromId": "a", "toId": "b", "label": "reads"}, scene, ids)
    assert result.ok
    arrow, label = result.elements
    assert arrow.start_binding.element_id == "a"
    assert arrow.end_binding.element_id == "b"
    assert label.container_id == arrow.id
    assert label.text == "reads"
    # The connection operation already placed them in the scene
    assert scene.find_live(arrow.id) is not None
    assert any(b.id == arrow.id for b in scene.get("a").bound_elements)


def test_connector_with_missing_endpoint_fails(scene, ids):
    before = scene.elements
    result = synthesize({"type": "arrow", "fromId": "a", "toId": "ghost"}, scene, ids)
    assert not result.ok
    assert "Connection endpoint not found" in result.reason
    assert scene.elements == before


def test_connector_needs_both_endpoints(scene, ids):
    result = synthesize({"type": "arrow", "fromId": "a"}, scene, ids)
    assert not result.ok
    assert result.reason == "Connection needs both fromId and toId"


def test_connector_from_points(ids):
    (line,) = synthesize({"type": "line", "points": [[10, 10], [110, 60]]}, Scene(), ids).elements
    assert (line.x, line.y) == (10, 10)
    assert line.points == [[0, 0], [100, 50]]
    assert (line.width, line.height) == (100, 50)
    assert line.end_arrowhead is None
    assert line.start_binding is None

    (arrow,) = synthesize({"type": "arrow", "points": [[0, 0], [50, 0]]}, Scene(), ids).elements
    assert arrow.end_arrowhead == "arrow"


def test_connector_without_geometry_fails(ids):
    result = synthesize({"type": "arrow"}, Scene(), ids)
    assert not result.ok
    assert "needs two points" in result.reason


def test_freedraw_box_spans_points(ids):
    (stroke,) = synthesize({"type": "freedraw", "points": [[5, 5], [15, 0], [25, 20]]}, Scene(), ids).elements
    assert stroke.points == [[0, 0], [10, -5], [20, 15]]
    assert (stroke.width, stroke.height) == (20, 20)


def test_frame_caption_becomes_name(ids):
    (frame,) = synthesize({"type": "frame", "text": "Backend"}, Scene(), ids).elements
    assert frame.to_wire()["name"] == "Backend"


def test_embedded_element_is_completed(ids):
    result = synthesize({"element": {"id": "keep_me", "type": "ellipse"}}, Scene(), ids)
    (ellipse,) = result.elements
    assert ellipse.id == "keep_me"
    assert ellipse.width == 150


# ---------------------------------------------------------------------------
# complete_element
# ---------------------------------------------------------------------------


def test_complete_element_fills_text_defaults(ids):
    text = complete_element({"id": "t1", "type": "text", "text": "Hi"}, ids)
    assert text.id == "t1"
    assert text.font_size == 20
    assert text.font_family == 1
    assert text.original_text == "Hi"
    assert text.version == 1
    assert text.version_nonce != 0


def test_complete_element_accepts_snake_case_keys(ids):
    arrow = complete_element({"id": "x", "type": "arrow", "stroke_color": "#00ff00"}, ids)
    assert arrow.stroke_color == "#00ff00"
    assert arrow.points == [[0, 0], [100, 100]]
    assert arrow.end_arrowhead == "arrow"


def test_complete_element_generates_missing_id(ids):
    element = complete_element({"type": "rectangle"}, ids)
    assert element.id.startswith("el_")


def test_complete_element_never_tombstoned(ids):
    element = complete_element({"id": "x", "isDeleted": True}, ids)
    assert not element.is_deleted


def test_complete_element_rejects_bad_values(ids):
    with pytest.raises(ValidationError):
        complete_element({"id": "x", "width": "wide"}, ids)


def test_wire_keys():
    assert wire_keys({"stroke_color": 1, "backgroundColor": 2, "id": 3}) == {
        "strokeColor": 1,
        "backgroundColor": 2,
        "id": 3,
    }


# ---------------------------------------------------------------------------
# describe_from_text
# ---------------------------------------------------------------------------


def test_describe_from_text_full_phrase():
    desc = describe_from_text('ellipse "Cache" at 300,200 size 120x60 red')
    assert desc.type == "ellipse"
    assert desc.text == "Cache"
    assert (desc.x, desc.y) == (300, 200)
    assert (desc.width, desc.height) == (120, 60)
    assert desc.stroke_color == "red"


def test_describe_from_text_defaults_to_rectangle():
    desc = describe_from_text("something labelled 'Queue'")
    assert desc.type == "rectangle"
    assert desc.text == "Queue"
    assert desc.x is None


def test_describe_from_text_bare_text_gets_placeholder():
    desc = describe_from_text("add some text")
    assert desc.type == "text"
    assert desc.text == "New Text"
