"""Shared test fixtures."""

from __future__ import annotations

import pytest

from sketchweave.engine.elements import new_element, new_text
from sketchweave.engine.ids import SequentialIdGenerator
from sketchweave.engine.scene import Scene
from sketchweave.llm.client import GenerationResponse, Usage
from sketchweave.models.element import BoundElement, Element


# Sample webhook batches

LOGIN_SERVICE_BATCH = {
    "success": True,
    "message": "Added login service",
    "elements": [
        {"type": "rectangle", "text": "Login Service", "x": 40, "y": 60, "width": 200, "height": 90},
    ],
}

MIXED_BATCH = {
    "elements": [
        {"type": "ellipse", "text": "Cache"},
        {"type": "text"},
        "not an element",
        {"type": "arrow"},
    ],
}


def make_rect(
    ids: SequentialIdGenerator,
    element_id: str,
    x: float = 0,
    y: float = 0,
    width: float = 100,
    height: float = 50,
    text: str | None = None,
) -> list[Element]:
    """A rectangle, plus its bound label when ``text`` is given."""
    rect = new_element("rectangle", ids, x=x, y=y, width=width, height=height, element_id=element_id)
    if text is None:
        return [rect]
    label = new_text(
        text,
        ids,
        x=x,
        y=y,
        width=width,
        height=height,
        container_id=element_id,
        element_id=f"{element_id}_label",
    )
    rect = rect.model_copy(update={"bound_elements": [BoundElement(id=label.id, type="text")]})
    return [rect, label]


def make_scene(ids: SequentialIdGenerator) -> Scene:
    """Two labelled boxes side by side plus a free note: ``a`` ("API #backend"), ``b`` ("Database"), ``note``."""
    elements = [
        *make_rect(ids, "a", x=0, y=0, text="API #backend"),
        *make_rect(ids, "b", x=300, y=0, text="Database"),
        new_text("Remember #backend", ids, x=0, y=200, element_id="note"),
    ]
    return Scene(elements)


class ScriptedTextGenerator:
    """Replays a fixed script of replies. Exceptions in the script are raised instead."""

    def __init__(self, script: list[str | Exception], configured: bool = True) -> None:
        self._script = list(script)
        self.configured = configured
        self.calls: list[tuple[list[dict[str, str]], str | None]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def generate(self, messages, system=None) -> GenerationResponse:
        self.calls.append((list(messages), system))
        item = self._script[min(len(self.calls), len(self._script)) - 1]
        if isinstance(item, Exception):
            raise item
        return GenerationResponse(content=item, usage=Usage(input_units=10, output_units=5))


@pytest.fixture
def ids() -> SequentialIdGenerator:
    return SequentialIdGenerator()


@pytest.fixture
def scene(ids) -> Scene:
    return make_scene(ids)


@pytest.fixture
def no_retry_delay(monkeypatch):
    from sketchweave.config import settings

    monkeypatch.setattr(settings, "ai_retry_delay_ms", 0)
    monkeypatch.setattr(settings, "action_delay_ms", 0)
