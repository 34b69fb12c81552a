"""POST /api/relationships — structural relationships and prompt context for a selection."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError

from sketchweave.dependencies import get_scene_store
from sketchweave.engine.relationships import detect_relationships, serialize_selection
from sketchweave.engine.scene import Scene, SceneStore
from sketchweave.models.element import Element
from sketchweave.models.requests import RelationshipsRequest
from sketchweave.models.responses import RelationshipsResponse

router = APIRouter()


@router.post("/relationships", response_model=RelationshipsResponse)
async def relationships(
    req: RelationshipsRequest,
    store: SceneStore = Depends(get_scene_store),
) -> RelationshipsResponse:
    if req.elements is not None:
        try:
            scene = Scene(Element.model_validate(raw) for raw in req.elements)
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=e.errors(include_url=False)) from e
    else:
        scene = Scene(store.get_elements())

    if req.element_ids:
        subset = [e for e in (scene.get(i) for i in req.element_ids) if e is not None]
    else:
        subset = scene.live()

    return RelationshipsResponse(
        relationships=[r.as_dict() for r in detect_relationships(subset, scene)],
        context=serialize_selection(subset, scene),
    )
