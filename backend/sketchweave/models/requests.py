"""API request models."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class SceneReplaceRequest(BaseModel):
    elements: list[dict[str, Any]] = Field(..., description="Full element list (wire format)")


class ActionsRequest(BaseModel):
    actions: list[dict[str, Any]] = Field(..., description="Ordered canvas actions")
    delay_ms: int = Field(default=0, ge=0, description="Pause between actions, for visible step-by-step updates")


class RelationshipsRequest(BaseModel):
    element_ids: list[str] = Field(default_factory=list, description="Selection; empty means the whole scene")
    elements: list[dict[str, Any]] | None = Field(
        default=None,
        description="Scene to analyse instead of the stored one",
    )


class ImproveRequest(BaseModel):
    element_ids: list[str] = Field(..., min_length=1)
    mode: Literal["wording", "concise", "clarity"] = "wording"


class ExpandRequest(BaseModel):
    element_id: str
    count: int = Field(default=3, ge=1, le=10)
    direction: Literal["right", "below"] = "right"


class ConnectionsRequest(BaseModel):
    element_ids: list[str] = Field(default_factory=list)
    auto_apply: bool = True


class SelectionRequest(BaseModel):
    element_ids: list[str] = Field(default_factory=list, description="Selection; empty means the whole scene")


class GenerateRequest(BaseModel):
    prompt: str = Field(..., min_length=1, description="Instruction in natural language")
    element_ids: list[str] = Field(default_factory=list)
    history: list[dict[str, str]] = Field(
        default_factory=list,
        description="Chat history (role/content pairs)",
    )
