"""POST /api/ai/* — LLM-backed canvas actions on the stored scene.

Every endpoint answers with a failed result (not an HTTP error) when no API
key is configured.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import APIRouter, Depends

from sketchweave.api.scene import wire_elements
from sketchweave.dependencies import get_generator_factory, get_id_generator, get_scene_store
from sketchweave.engine.ids import IdGenerator
from sketchweave.engine.scene import Scene, SceneStore
from sketchweave.llm import ai_actions
from sketchweave.llm.client import TextGenerator
from sketchweave.models.requests import (
    ConnectionsRequest,
    ExpandRequest,
    GenerateRequest,
    ImproveRequest,
    SelectionRequest,
)
from sketchweave.models.responses import (
    ConnectionsResponse,
    ExpandResponse,
    ExplainResponse,
    GenerateResponse,
    ImproveResponse,
    SummaryResponse,
)

router = APIRouter(prefix="/ai")

_NOT_CONFIGURED = "LLM not configured: set ANTHROPIC_API_KEY in .env"

GeneratorFactory = Callable[[str], TextGenerator]


def _configured(generator: TextGenerator) -> bool:
    return bool(getattr(generator, "configured", True))


@router.post("/improve", response_model=ImproveResponse)
async def improve(
    req: ImproveRequest,
    store: SceneStore = Depends(get_scene_store),
    ids: IdGenerator = Depends(get_id_generator),
    factory: GeneratorFactory = Depends(get_generator_factory),
) -> ImproveResponse:
    generator = factory("improve")
    if not _configured(generator):
        return ImproveResponse(error=_NOT_CONFIGURED, elements=wire_elements(store.get_elements()))

    scene = Scene(store.get_elements())
    results = await ai_actions.improve_text(generator, scene, ids, req.element_ids, mode=req.mode)
    store.replace_elements(scene.elements)
    return ImproveResponse(
        success=all(r.success for r in results),
        results=results,
        elements=wire_elements(scene),
    )


@router.post("/expand", response_model=ExpandResponse)
async def expand(
    req: ExpandRequest,
    store: SceneStore = Depends(get_scene_store),
    ids: IdGenerator = Depends(get_id_generator),
    factory: GeneratorFactory = Depends(get_generator_factory),
) -> ExpandResponse:
    generator = factory("expand")
    if not _configured(generator):
        return ExpandResponse(error=_NOT_CONFIGURED, elements=wire_elements(store.get_elements()))

    scene = Scene(store.get_elements())
    result = await ai_actions.expand_concept(
        generator, scene, ids, req.element_id, count=req.count, direction=req.direction, delay_between=0
    )
    store.replace_elements(scene.elements)
    return ExpandResponse(
        success=result.success,
        error=result.error,
        concepts=result.concepts,
        created_ids=result.created_ids,
        elements=wire_elements(scene),
    )


@router.post("/connections", response_model=ConnectionsResponse)
async def connections(
    req: ConnectionsRequest,
    store: SceneStore = Depends(get_scene_store),
    ids: IdGenerator = Depends(get_id_generator),
    factory: GeneratorFactory = Depends(get_generator_factory),
) -> ConnectionsResponse:
    generator = factory("connections")
    if not _configured(generator):
        return ConnectionsResponse(error=_NOT_CONFIGURED, elements=wire_elements(store.get_elements()))

    scene = Scene(store.get_elements())
    result = await ai_actions.suggest_connections(
        generator, scene, ids, req.element_ids, auto_apply=req.auto_apply, delay_between=0
    )
    store.replace_elements(scene.elements)
    return ConnectionsResponse(
        success=result.success,
        error=result.error,
        suggestions=result.suggestions,
        created_ids=result.created_ids,
        elements=wire_elements(scene),
    )


@router.post("/summarize", response_model=SummaryResponse)
async def summarize(
    req: SelectionRequest,
    store: SceneStore = Depends(get_scene_store),
    factory: GeneratorFactory = Depends(get_generator_factory),
) -> SummaryResponse:
    generator = factory("summarize")
    scene = Scene(store.get_elements())
    if not _configured(generator):
        return SummaryResponse(error=_NOT_CONFIGURED, elements=wire_elements(scene))

    result = await ai_actions.summarize(generator, scene, req.element_ids)
    return SummaryResponse(
        success=result.success,
        error=result.error,
        summary=result.summary,
        key_points=result.key_points,
        elements=wire_elements(scene),
    )


@router.post("/explain", response_model=ExplainResponse)
async def explain(
    req: SelectionRequest,
    store: SceneStore = Depends(get_scene_store),
    factory: GeneratorFactory = Depends(get_generator_factory),
) -> ExplainResponse:
    generator = factory("explain")
    scene = Scene(store.get_elements())
    if not _configured(generator):
        return ExplainResponse(error=_NOT_CONFIGURED, elements=wire_elements(scene))

    result = await ai_actions.explain(generator, scene, req.element_ids)
    return ExplainResponse(
        success=result.success,
        error=result.error,
        explanation=result.explanation,
        elements=wire_elements(scene),
    )


@router.post("/generate", response_model=GenerateResponse)
async def generate(
    req: GenerateRequest,
    store: SceneStore = Depends(get_scene_store),
    ids: IdGenerator = Depends(get_id_generator),
    factory: GeneratorFactory = Depends(get_generator_factory),
) -> GenerateResponse:
    generator = factory("generate")
    if not _configured(generator):
        return GenerateResponse(error=_NOT_CONFIGURED, elements=wire_elements(store.get_elements()))

    scene = Scene(store.get_elements())
    result = await ai_actions.generate_actions(
        generator, scene, ids, req.prompt, req.element_ids, history=req.history, delay_between=0
    )
    store.replace_elements(scene.elements)
    return GenerateResponse(
        success=result.success,
        error=result.error,
        reply=result.reply,
        explanation=result.explanation,
        results=result.results,
        elements=wire_elements(scene),
    )
