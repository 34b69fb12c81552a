"""Health check + meta endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from sketchweave.engine.registry import get_registry
from sketchweave.models.responses import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(
        status="ok",
        version="0.1.0",
        action_handlers=get_registry().count,
    )


@router.get("/prompts")
async def prompts() -> dict[str, str]:
    from sketchweave.llm.prompts import get_all_templates

    return get_all_templates()
