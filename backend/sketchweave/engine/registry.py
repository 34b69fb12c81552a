"""Action handler registry — every action type maps to one function registered via decorator.

Usage:
    @action_handler("add_text")
    def add_text(action: AddTextAction, scene: Scene, ids: IdGenerator) -> str | None:
        ...
        return created_id

A handler returns the created or targeted element id and raises a
``SketchWeaveError`` to fail its action. Adding an action type = one model in
``models.actions`` plus one decorated function.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from sketchweave.engine.ids import IdGenerator
    from sketchweave.engine.scene import Scene

logger = logging.getLogger(__name__)

HandlerFn = Callable[[Any, "Scene", "IdGenerator"], "str | None"]


@dataclass
class HandlerSpec:
    action_type: str
    fn: HandlerFn
    description: str = ""


class ActionRegistry:
    """Singleton registry of all action handlers."""

    def __init__(self) -> None:
        self._handlers: dict[str, HandlerSpec] = {}

    def register(self, spec: HandlerSpec) -> None:
        if spec.action_type in self._handlers:
            raise ValueError(f"Duplicate action handler: {spec.action_type}")
        self._handlers[spec.action_type] = spec
        logger.debug("Registered action handler %s", spec.action_type)

    def get(self, action_type: str) -> HandlerSpec | None:
        return self._handlers.get(action_type)

    def types(self) -> list[str]:
        return sorted(self._handlers)

    @property
    def count(self) -> int:
        return len(self._handlers)


# Module-level singleton
_registry = ActionRegistry()


def get_registry() -> ActionRegistry:
    return _registry


def action_handler(*action_types: str, description: str = ""):
    """Decorator to register one function for one or more action types."""

    def decorator(fn: HandlerFn):
        for action_type in action_types:
            _registry.register(HandlerSpec(action_type=action_type, fn=fn, description=description))
        return fn

    return decorator
