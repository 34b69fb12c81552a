"""Task → model selection. Cheap model for text rewrites, default model for planning."""

from __future__ import annotations

from sketchweave.config import settings

_TASK_MODEL_MAP = {
    "improve": "cheap",
    "summarize": "cheap",
    "explain": "cheap",
    "expand": "default",
    "connections": "default",
    "generate": "default",
}


def get_model_for_task(task: str) -> str:
    tier = _TASK_MODEL_MAP.get(task, "cheap")
    if tier == "cheap":
        return settings.model_cheap
    return settings.model_default
