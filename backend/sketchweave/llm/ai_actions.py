"""AI canvas actions — LLM output turned into canvas actions and run through the interpreter.

Every action goes through ``send_with_retry`` with a validator matched to the
payload it expects, and every scene change goes through ``execute_actions``.
Failures come back in the result objects; nothing here raises for a bad
response.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from sketchweave.engine.elements import is_connector
from sketchweave.engine.ids import IdGenerator
from sketchweave.engine.interpreter import execute_action, execute_actions
from sketchweave.engine.layout import calculate_branch_position
from sketchweave.engine.relationships import get_element_text, serialize_selection
from sketchweave.engine.scene import Scene
from sketchweave.errors import SketchWeaveError
from sketchweave.llm.client import TextGenerator
from sketchweave.llm.prompts import IMPROVE_INSTRUCTIONS, get_prompt_template
from sketchweave.llm.retry import contains_json_array, extract_json_array, not_empty, send_with_retry
from sketchweave.models.actions import ActionPlan, ActionResult, UpdateTextAction
from sketchweave.models.element import Element

logger = logging.getLogger(__name__)

# Expanded concepts: light-green 140x60 boxes fanned out from the parent
_CONCEPT_SIZE = {"width": 140, "height": 60}
_CONCEPT_STYLE = {"backgroundColor": "#e8f5e9", "strokeColor": "#4caf50"}
_CONCEPT_SPACING = 60

_JSON_BLOCK_RE = re.compile(r"```json\s*([\s\S]*?)\s*```")
_ACTIONS_OBJECT_RE = re.compile(r"\{[\s\S]*\"actions\"[\s\S]*\}")
_BULLET_RE = re.compile(r"^[-•*\d.]+\s*")


@dataclass
class TextImprovement:
    element_id: str
    success: bool
    original_text: str = ""
    new_text: str | None = None
    error: str | None = None


@dataclass
class ExpandResult:
    element_id: str
    success: bool
    concepts: list[str] = field(default_factory=list)
    created_ids: list[str] = field(default_factory=list)
    error: str | None = None


@dataclass
class ConnectionSuggestion:
    from_id: str
    to_id: str
    reason: str = ""


@dataclass
class SuggestConnectionsResult:
    success: bool
    suggestions: list[ConnectionSuggestion] = field(default_factory=list)
    created_ids: list[str] = field(default_factory=list)
    error: str | None = None


@dataclass
class SummaryResult:
    success: bool
    summary: str = ""
    key_points: list[str] = field(default_factory=list)
    error: str | None = None


@dataclass
class ExplainResult:
    success: bool
    explanation: str = ""
    error: str | None = None


@dataclass
class GenerateResult:
    success: bool
    reply: str = ""
    explanation: str = ""
    results: list[ActionResult] = field(default_factory=list)
    error: str | None = None


def _user(content: str) -> list[dict[str, str]]:
    return [{"role": "user", "content": content}]


def _strip_quotes(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
        return text[1:-1].strip()
    return text


def _targets(scene: Scene, element_ids: list[str] | None) -> list[Element]:
    """Selected live elements, or the whole live scene when nothing is selected."""
    if element_ids:
        return [e for e in (scene.find_live(i) for i in element_ids) if e is not None]
    return scene.live()


def _text_lines(elements: list[Element], scene: Scene) -> list[tuple[Element, str]]:
    # Bound text is reported through its container
    pairs = []
    for element in elements:
        if element.type == "text" and element.container_id:
            continue
        text = get_element_text(element, scene)
        if text:
            pairs.append((element, text))
    return pairs


# ---------------------------------------------------------------------------
# Text rewrites
# ---------------------------------------------------------------------------


async def improve_text(
    client: TextGenerator,
    scene: Scene,
    ids: IdGenerator,
    element_ids: list[str],
    mode: str = "wording",
) -> list[TextImprovement]:
    """Rewrite the text of each element (or its bound label) in place."""
    if mode not in IMPROVE_INSTRUCTIONS:
        raise ValueError(f"Unknown improvement mode: {mode}")
    system = get_prompt_template(mode).format()

    results: list[TextImprovement] = []
    for element_id in element_ids:
        element = scene.find_live(element_id)
        text = get_element_text(element, scene) if element is not None else None
        if not text or not text.strip():
            results.append(TextImprovement(element_id, False, error="Element has no text content"))
            continue

        try:
            response = await send_with_retry(
                client, _user(f'{IMPROVE_INSTRUCTIONS[mode]}: "{text}"'), system, validator=not_empty
            )
        except SketchWeaveError as e:
            results.append(TextImprovement(element_id, False, original_text=text, error=str(e)))
            continue

        new_text = _strip_quotes(response.content)
        if not new_text or new_text == text:
            results.append(TextImprovement(element_id, True, original_text=text, new_text=text))
            continue

        outcome = execute_action(UpdateTextAction(type="update_text", target_id=element_id, text=new_text), scene, ids)
        results.append(
            TextImprovement(
                element_id,
                outcome.success,
                original_text=text,
                new_text=new_text if outcome.success else None,
                error=outcome.error,
            )
        )

    logger.info("improve_text(%s): %d/%d updated", mode, sum(r.success for r in results), len(results))
    return results


# ---------------------------------------------------------------------------
# Concept expansion
# ---------------------------------------------------------------------------


def _parse_concepts(content: str, count: int) -> list[str]:
    parsed = extract_json_array(content)
    if parsed is not None:
        concepts = [str(c).strip() for c in parsed if str(c).strip()]
    else:
        lines = [line.strip() for line in content.strip().splitlines() if line.strip()]
        concepts = [_BULLET_RE.sub("", line).strip() for line in lines]
    return [c for c in concepts if c][:count]


async def expand_concept(
    client: TextGenerator,
    scene: Scene,
    ids: IdGenerator,
    element_id: str,
    count: int = 3,
    direction: str = "right",
    delay_between: float | None = None,
) -> ExpandResult:
    """Ask for related sub-concepts and fan them out from the element, connected to it."""
    parent = scene.find_live(element_id)
    if parent is None:
        return ExpandResult(element_id, False, error=f"Element {element_id} not found")
    text = get_element_text(parent, scene)
    if not text:
        return ExpandResult(element_id, False, error="Element has no text content to expand")

    try:
        response = await send_with_retry(
            client,
            _user(f'Generate {count} related concepts for: "{text}"'),
            get_prompt_template("expand").format(count=count),
            validator=contains_json_array,
        )
    except SketchWeaveError as e:
        return ExpandResult(element_id, False, error=str(e))

    concepts = _parse_concepts(response.content, count)
    if not concepts:
        return ExpandResult(element_id, False, error="No concepts in AI response")

    # Arrows already leaving the parent count as existing children
    existing = sum(
        1
        for ref in parent.bound_elements or []
        if ref.type == "arrow" and _starts_at(scene.find_live(ref.id), parent.id)
    )

    actions: list[dict[str, Any]] = []
    shape_ids: list[str] = []
    for index, concept in enumerate(concepts):
        x, y = calculate_branch_position(
            parent,
            existing + index,
            direction,
            spacing=_CONCEPT_SPACING,
            child_width=_CONCEPT_SIZE["width"],
            child_height=_CONCEPT_SIZE["height"],
        )
        shape_id = ids.new_id("concept_")
        shape_ids.append(shape_id)
        actions.append(
            {
                "type": "add_rectangle",
                "id": shape_id,
                "position": {"x": x, "y": y},
                "size": _CONCEPT_SIZE,
                "style": _CONCEPT_STYLE,
                "text": concept,
            }
        )
        actions.append({"type": "add_connection", "fromId": parent.id, "toId": shape_id})

    results = await execute_actions(actions, scene, ids, delay_between=delay_between)
    failed = sum(1 for r in results if not r.success)
    created = [r.element_id for r in results if r.success and r.action_type == "add_rectangle" and r.element_id]
    return ExpandResult(
        element_id,
        failed == 0,
        concepts=concepts,
        created_ids=created,
        error=f"{failed} actions failed" if failed else None,
    )


def _starts_at(connector: Element | None, element_id: str) -> bool:
    return (
        connector is not None
        and is_connector(connector)
        and connector.start_binding is not None
        and connector.start_binding.element_id == element_id
    )


# ---------------------------------------------------------------------------
# Connection suggestions
# ---------------------------------------------------------------------------


async def suggest_connections(
    client: TextGenerator,
    scene: Scene,
    ids: IdGenerator,
    element_ids: list[str],
    auto_apply: bool = True,
    delay_between: float | None = None,
) -> SuggestConnectionsResult:
    elements = _targets(scene, element_ids)
    if len(elements) < 2:
        return SuggestConnectionsResult(False, error="Need at least 2 elements to suggest connections")

    listing = "\n".join(f'- ID "{e.id}": "{get_element_text(e, scene) or f"[{e.type}]"}"' for e in elements)
    try:
        response = await send_with_retry(
            client,
            _user(f"Analyze these elements and suggest connections:\n{listing}"),
            get_prompt_template("connections").format(),
            validator=contains_json_array,
        )
    except SketchWeaveError as e:
        return SuggestConnectionsResult(False, error=str(e))

    parsed = extract_json_array(response.content)
    if parsed is None:
        return SuggestConnectionsResult(False, error="Failed to parse AI response")

    valid_ids = {e.id for e in elements}
    suggestions = [
        ConnectionSuggestion(from_id=s["from"], to_id=s["to"], reason=str(s.get("reason") or ""))
        for s in parsed
        if isinstance(s, dict)
        and isinstance(s.get("from"), str)
        and isinstance(s.get("to"), str)
        and s["from"] in valid_ids
        and s["to"] in valid_ids
        and s["from"] != s["to"]
    ]

    created: list[str] = []
    if auto_apply and suggestions:
        actions = [
            {"type": "add_connection", "fromId": s.from_id, "toId": s.to_id, "label": s.reason or None}
            for s in suggestions
        ]
        results = await execute_actions(actions, scene, ids, delay_between=delay_between)
        created = [r.element_id for r in results if r.success and r.element_id]

    return SuggestConnectionsResult(True, suggestions=suggestions, created_ids=created)


# ---------------------------------------------------------------------------
# Summaries and explanations
# ---------------------------------------------------------------------------


def _parse_json_object(content: str) -> dict | None:
    text = content.strip()
    if m := _JSON_BLOCK_RE.search(text):
        text = m.group(1)
    try:
        parsed = json.loads(text)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


async def summarize(
    client: TextGenerator,
    scene: Scene,
    element_ids: list[str] | None = None,
) -> SummaryResult:
    pairs = _text_lines(_targets(scene, element_ids), scene)
    if not pairs:
        return SummaryResult(False, error="No elements with text to summarize")

    listing = "\n".join(f'- {e.type}: "{text}"' for e, text in pairs)
    try:
        response = await send_with_retry(
            client,
            _user(f"Summarize this diagram:\n{listing}"),
            get_prompt_template("summarize").format(),
            validator=not_empty,
        )
    except SketchWeaveError as e:
        return SummaryResult(False, error=str(e))

    parsed = _parse_json_object(response.content)
    if parsed is None:
        # Plain-text reply: use it as the summary
        return SummaryResult(True, summary=response.content.strip())
    key_points = parsed.get("keyPoints") or parsed.get("key_points") or []
    return SummaryResult(
        True,
        summary=str(parsed.get("summary") or ""),
        key_points=[str(p) for p in key_points] if isinstance(key_points, list) else [],
    )


async def explain(
    client: TextGenerator,
    scene: Scene,
    element_ids: list[str] | None = None,
) -> ExplainResult:
    elements = _targets(scene, element_ids)
    if not elements:
        return ExplainResult(False, error="No elements to explain")

    listing = "\n".join(
        f'- {e.type}: "{get_element_text(e, scene) or f"[{e.type}]"}"'
        for e in elements
        if not (e.type == "text" and e.container_id)
    )
    try:
        response = await send_with_retry(
            client,
            _user(f"Explain this diagram:\n{listing}"),
            get_prompt_template("explain").format(),
            validator=not_empty,
        )
    except SketchWeaveError as e:
        return ExplainResult(False, error=str(e))
    return ExplainResult(True, explanation=response.content.strip())


# ---------------------------------------------------------------------------
# Free-form instructions
# ---------------------------------------------------------------------------


def parse_ai_response(response: str) -> ActionPlan | None:
    """Action plan from a reply: a ```json block, an object holding "actions", or the whole text."""
    if m := _JSON_BLOCK_RE.search(response):
        candidate = m.group(1)
    elif m := _ACTIONS_OBJECT_RE.search(response):
        candidate = m.group(0)
    else:
        candidate = response
    try:
        data = json.loads(candidate.strip())
        if not isinstance(data, dict):
            return None
        return ActionPlan.model_validate(data)
    except (ValueError, ValidationError):
        logger.debug("Reply is not an action plan")
        return None


async def generate_actions(
    client: TextGenerator,
    scene: Scene,
    ids: IdGenerator,
    prompt: str,
    element_ids: list[str] | None = None,
    history: list[dict[str, str]] | None = None,
    delay_between: float | None = None,
) -> GenerateResult:
    """Run a free-form instruction: apply the returned action plan, or pass a plain reply through."""
    subset = _targets(scene, element_ids)
    context = serialize_selection(subset, scene) if subset else "The canvas is empty."
    messages = [*(history or []), {"role": "user", "content": prompt}]

    try:
        response = await send_with_retry(
            client,
            messages,
            get_prompt_template("generate").format(context=context),
            validator=not_empty,
        )
    except SketchWeaveError as e:
        return GenerateResult(False, error=str(e))

    plan = parse_ai_response(response.content)
    if plan is None or not plan.actions:
        return GenerateResult(True, reply=response.content.strip(), explanation=plan.explanation if plan else "")

    results = await execute_actions(plan.actions, scene, ids, delay_between=delay_between)
    failed = sum(1 for r in results if not r.success)
    return GenerateResult(
        failed < len(results),
        reply=response.content.strip(),
        explanation=plan.explanation,
        results=results,
        error=f"{failed} of {len(results)} actions failed" if failed else None,
    )
