"""Tests for the AI canvas actions, driven by a scripted text generator."""

from __future__ import annotations

import json

import pytest

from sketchweave.engine.connection import find_connectors
from sketchweave.engine.elements import new_element
from sketchweave.errors import TransportFailure
from sketchweave.llm.ai_actions import (
    expand_concept,
    explain,
    generate_actions,
    improve_text,
    parse_ai_response,
    suggest_connections,
    summarize,
)
from tests.conftest import ScriptedTextGenerator

pytestmark = pytest.mark.usefixtures("no_retry_delay")


# ---------------------------------------------------------------------------
# improve_text
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_improve_text_updates_bound_label(scene, ids):
    client = ScriptedTextGenerator(['"Gateway Service"'])
    (result,) = await improve_text(client, scene, ids, ["a"], mode="wording")

    assert result.success
    assert result.original_text == "API #backend"
    assert result.new_text == "Gateway Service"
    assert scene.get("a_label").text == "Gateway Service"
    assert "Improve this text" in client.calls[0][0][0]["content"]


@pytest.mark.asyncio
async def test_improve_text_unchanged_reply_leaves_element_alone(scene, ids):
    client = ScriptedTextGenerator(["Remember #backend"])
    version = scene.get("note").version
    (result,) = await improve_text(client, scene, ids, ["note"], mode="concise")
    assert result.success
    assert result.new_text == "Remember #backend"
    assert scene.get("note").version == version


@pytest.mark.asyncio
async def test_improve_text_per_element_failures(scene, ids):
    client = ScriptedTextGenerator([TransportFailure("down")])
    missing, failed = await improve_text(client, scene, ids, ["ghost", "b"], mode="clarity")
    assert not missing.success
    assert missing.error == "Element has no text content"
    assert not failed.success
    assert failed.error == "down"
    assert scene.get("b_label").text == "Database"


@pytest.mark.asyncio
async def test_improve_text_unknown_mode(scene, ids):
    with pytest.raises(ValueError, match="Unknown improvement mode"):
        await improve_text(ScriptedTextGenerator(["x"]), scene, ids, ["a"], mode="poetic")


# ---------------------------------------------------------------------------
# expand_concept
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_expand_concept_creates_connected_children(scene, ids):
    client = ScriptedTextGenerator(['["Replica", "Backups"]'])
    result = await expand_concept(client, scene, ids, "b", count=2, delay_between=0)

    assert result.success
    assert result.concepts == ["Replica", "Backups"]
    assert len(result.created_ids) == 2
    for concept_id in result.created_ids:
        assert concept_id.startswith("concept_")
        child = scene.get(concept_id)
        assert (child.width, child.height) == (140, 60)
        assert child.background_color == "#e8f5e9"
        # b spans x 300..400; children sit two spacings to its right
        assert child.x == 400 + 120
        assert len(find_connectors(scene, "b", concept_id)) == 1
    first, second = (scene.get(i) for i in result.created_ids)
    assert second.y > first.y


@pytest.mark.asyncio
async def test_expand_concept_falls_back_to_bullet_lines(scene, ids):
    client = ScriptedTextGenerator(["- Replica\n- Backups\n- Sharding\n- Extra"])
    result = await expand_concept(client, scene, ids, "b", count=3, delay_between=0)
    # The array validator rejected every attempt, the last reply is still used
    assert client.call_count == 3
    assert result.concepts == ["Replica", "Backups", "Sharding"]


@pytest.mark.asyncio
async def test_expand_concept_needs_text(ids, scene):
    scene.add(new_element("ellipse", ids, x=0, y=500, width=50, height=50, element_id="blank"))
    client = ScriptedTextGenerator(['["x"]'])
    assert (await expand_concept(client, scene, ids, "ghost")).error == "Element ghost not found"
    assert (await expand_concept(client, scene, ids, "blank")).error == "Element has no text content to expand"
    assert client.call_count == 0


# ---------------------------------------------------------------------------
# suggest_connections
# ---------------------------------------------------------------------------

SUGGESTIONS = json.dumps(
    [
        {"from": "a", "to": "b", "reason": "reads from"},
        {"from": "a", "to": "ghost", "reason": "unknown target"},
        {"from": "b", "to": "b", "reason": "self"},
        "garbage",
    ]
)


@pytest.mark.asyncio
async def test_suggest_connections_filters_and_applies(scene, ids):
    client = ScriptedTextGenerator([SUGGESTIONS])
    result = await suggest_connections(client, scene, ids, ["a", "b", "note"], delay_between=0)

    assert result.success
    assert [(s.from_id, s.to_id) for s in result.suggestions] == [("a", "b")]
    (connector_id,) = result.created_ids
    connector = scene.get(connector_id)
    label = scene.get(connector.bound_elements[0].id)
    assert label.text == "reads from"


@pytest.mark.asyncio
async def test_suggest_connections_without_apply(scene, ids):
    client = ScriptedTextGenerator([SUGGESTIONS])
    result = await suggest_connections(client, scene, ids, ["a", "b"], auto_apply=False)
    assert len(result.suggestions) == 1
    assert result.created_ids == []
    assert find_connectors(scene, "a", "b") == []


@pytest.mark.asyncio
async def test_suggest_connections_needs_two_elements(scene, ids):
    result = await suggest_connections(ScriptedTextGenerator(["[]"]), scene, ids, ["a"])
    assert not result.success
    assert result.error == "Need at least 2 elements to suggest connections"


# ---------------------------------------------------------------------------
# summarize / explain
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_summarize_json_reply(scene):
    client = ScriptedTextGenerator(['```json\n{"summary": "A small backend", "keyPoints": ["API", "DB"]}\n```'])
    result = await summarize(client, scene)
    assert result.success
    assert result.summary == "A small backend"
    assert result.key_points == ["API", "DB"]
    # Bound labels are listed through their containers
    prompt = client.calls[0][0][0]["content"]
    assert '- rectangle: "API #backend"' in prompt
    assert "- text: \"API #backend\"" not in prompt


@pytest.mark.asyncio
async def test_summarize_plain_text_reply(scene):
    result = await summarize(ScriptedTextGenerator(["Just prose."]), scene, ["a"])
    assert result.summary == "Just prose."
    assert result.key_points == []


@pytest.mark.asyncio
async def test_summarize_without_text(ids, scene):
    scene.add(new_element("ellipse", ids, x=0, y=500, width=50, height=50, element_id="blank"))
    result = await summarize(ScriptedTextGenerator(["x"]), scene, ["blank"])
    assert not result.success
    assert result.error == "No elements with text to summarize"


@pytest.mark.asyncio
async def test_explain(scene):
    result = await explain(ScriptedTextGenerator(["  An API backed by a database.  "]), scene)
    assert result.success
    assert result.explanation == "An API backed by a database."


# ---------------------------------------------------------------------------
# generate_actions
# ---------------------------------------------------------------------------


def test_parse_ai_response_variants():
    fenced = 'Plan:\n```json\n{"explanation": "e", "actions": [{"type": "add_text", "text": "x"}]}\n```'
    assert parse_ai_response(fenced).actions == [{"type": "add_text", "text": "x"}]

    embedded = 'Sure. {"actions": [], "explanation": "nothing"} Done.'
    assert parse_ai_response(embedded).explanation == "nothing"

    assert parse_ai_response("Just a plain answer.") is None
    assert parse_ai_response("[1, 2]") is None


@pytest.mark.asyncio
async def test_generate_actions_applies_plan(scene, ids):
    plan = {
        "explanation": "Added a queue",
        "actions": [
            {"type": "add_rectangle", "id": "queue", "text": "Queue", "relativeTo": "b", "direction": "below"},
            {"type": "add_connection", "fromId": "b", "toId": "queue"},
        ],
    }
    client = ScriptedTextGenerator([f"```json\n{json.dumps(plan)}\n```"])
    history = [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}]
    result = await generate_actions(client, scene, ids, "Add a queue under the database", history=history, delay_between=0)

    assert result.success
    assert result.error is None
    assert result.explanation == "Added a queue"
    assert [r.success for r in result.results] == [True, True]
    assert (scene.get("queue").x, scene.get("queue").y) == (300, 100)
    assert len(find_connectors(scene, "b", "queue")) == 1

    messages, system = client.calls[0]
    assert messages == [*history, {"role": "user", "content": "Add a queue under the database"}]
    assert "API #backend" in system


@pytest.mark.asyncio
async def test_generate_actions_partial_failure(scene, ids):
    plan = {"actions": [{"type": "add_text", "text": "ok"}, {"type": "delete_element", "targetId": "ghost"}]}
    result = await generate_actions(ScriptedTextGenerator([json.dumps(plan)]), scene, ids, "go", delay_between=0)
    assert result.success
    assert result.error == "1 of 2 actions failed"


@pytest.mark.asyncio
async def test_generate_actions_plain_reply(scene, ids):
    before = scene.elements
    result = await generate_actions(ScriptedTextGenerator(["The API talks to the database."]), scene, ids, "What is this?")
    assert result.success
    assert result.reply == "The API talks to the database."
    assert result.results == []
    assert scene.elements == before


@pytest.mark.asyncio
async def test_generate_actions_transport_failure(scene, ids):
    result = await generate_actions(ScriptedTextGenerator([TransportFailure("offline")]), scene, ids, "go")
    assert not result.success
    assert result.error == "offline"
