"""POST /api/actions — run an ordered batch of canvas actions against the stored scene."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from sketchweave.api.scene import wire_elements
from sketchweave.dependencies import get_id_generator, get_scene_store
from sketchweave.engine.ids import IdGenerator
from sketchweave.engine.interpreter import execute_actions
from sketchweave.engine.scene import Scene, SceneStore
from sketchweave.models.requests import ActionsRequest
from sketchweave.models.responses import ActionsResponse

router = APIRouter()


@router.post("/actions", response_model=ActionsResponse)
async def run_actions(
    req: ActionsRequest,
    store: SceneStore = Depends(get_scene_store),
    ids: IdGenerator = Depends(get_id_generator),
) -> ActionsResponse:
    scene = Scene(store.get_elements())
    results = await execute_actions(req.actions, scene, ids, delay_between=req.delay_ms / 1000)
    store.replace_elements(scene.elements)
    return ActionsResponse(results=results, elements=wire_elements(scene))
