"""GET/PUT /api/scene — read or wholesale replace the stored scene."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError

from sketchweave.dependencies import get_scene_store
from sketchweave.engine.scene import Scene, SceneStore
from sketchweave.models.element import Element
from sketchweave.models.requests import SceneReplaceRequest
from sketchweave.models.responses import SceneResponse

router = APIRouter()
logger = logging.getLogger(__name__)


def wire_elements(elements: Iterable[Element]) -> list[dict]:
    return [e.to_wire() for e in elements]


@router.get("/scene", response_model=SceneResponse)
async def get_scene(store: SceneStore = Depends(get_scene_store)) -> SceneResponse:
    return SceneResponse(elements=wire_elements(store.get_elements()))


@router.put("/scene", response_model=SceneResponse)
async def replace_scene(
    req: SceneReplaceRequest,
    store: SceneStore = Depends(get_scene_store),
) -> SceneResponse:
    try:
        elements = [Element.model_validate(raw) for raw in req.elements]
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False)) from e

    # Scene() keeps the last of any duplicate ids
    scene = Scene(elements)
    store.replace_elements(scene.elements)
    logger.info("Scene replaced by client: %d element(s)", len(scene))
    return SceneResponse(elements=wire_elements(scene))
