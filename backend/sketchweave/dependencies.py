"""FastAPI dependency injection.

The scene store and id generator are process-wide; tests swap them through
``app.dependency_overrides``.
"""

from __future__ import annotations

from collections.abc import Callable

from sketchweave.engine.ids import IdGenerator, RandomIdGenerator
from sketchweave.engine.scene import SceneStore
from sketchweave.llm.client import TextGenerator, get_text_generator

_scene_store = SceneStore()
_id_generator = RandomIdGenerator()


def get_scene_store() -> SceneStore:
    return _scene_store


def get_id_generator() -> IdGenerator:
    return _id_generator


def get_generator_factory() -> Callable[[str], TextGenerator]:
    """Per-task text generator factory (the task picks the model)."""
    return get_text_generator
