"""POST /api/updates — inbound batches from the external update source (webhook)."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends

from sketchweave.api.scene import wire_elements
from sketchweave.config import settings
from sketchweave.dependencies import get_id_generator, get_scene_store
from sketchweave.engine.ids import IdGenerator
from sketchweave.engine.reconciler import reconcile, validate_batch
from sketchweave.engine.scene import SceneStore
from sketchweave.engine.synthesizer import SynthesisDefaults
from sketchweave.models.responses import UpdatesResponse

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/updates", response_model=UpdatesResponse)
async def receive_update(
    payload: Any = Body(...),
    store: SceneStore = Depends(get_scene_store),
    ids: IdGenerator = Depends(get_id_generator),
) -> UpdatesResponse:
    # Shape problems are reported back, but whatever is usable still gets applied
    _, warnings = validate_batch(payload)
    if warnings:
        logger.warning("Update batch has shape problems: %s", "; ".join(warnings))

    defaults = SynthesisDefaults(
        x=settings.default_x,
        y=settings.default_y,
        width=settings.default_width,
        height=settings.default_height,
    )
    result = reconcile(payload if isinstance(payload, dict) else {}, store.get_elements(), ids, defaults)
    store.replace_elements(result.scene)

    message = payload.get("message") if isinstance(payload, dict) else None
    return UpdatesResponse(
        elements=wire_elements(result.scene),
        created_ids=result.created_ids,
        updated_ids=result.updated_ids,
        deleted_ids=result.deleted_ids,
        skipped=result.skipped,
        warnings=warnings,
        message=message if isinstance(message, str) else None,
    )
