"""API response models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from sketchweave.llm.ai_actions import ConnectionSuggestion, TextImprovement
from sketchweave.models.actions import ActionResult


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    action_handlers: int = 0


class SceneResponse(BaseModel):
    elements: list[dict[str, Any]] = Field(default_factory=list)


class ActionsResponse(SceneResponse):
    results: list[ActionResult] = Field(default_factory=list)


class UpdatesResponse(SceneResponse):
    created_ids: list[str] = Field(default_factory=list)
    updated_ids: list[str] = Field(default_factory=list)
    deleted_ids: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    message: str | None = None


class RelationshipsResponse(BaseModel):
    relationships: list[dict[str, Any]] = Field(default_factory=list)
    context: str = ""


class AIResponse(SceneResponse):
    success: bool = False
    error: str | None = None


class ImproveResponse(AIResponse):
    results: list[TextImprovement] = Field(default_factory=list)


class ExpandResponse(AIResponse):
    concepts: list[str] = Field(default_factory=list)
    created_ids: list[str] = Field(default_factory=list)


class ConnectionsResponse(AIResponse):
    suggestions: list[ConnectionSuggestion] = Field(default_factory=list)
    created_ids: list[str] = Field(default_factory=list)


class SummaryResponse(AIResponse):
    summary: str = ""
    key_points: list[str] = Field(default_factory=list)


class ExplainResponse(AIResponse):
    explanation: str = ""


class GenerateResponse(AIResponse):
    reply: str = ""
    explanation: str = ""
    results: list[ActionResult] = Field(default_factory=list)
