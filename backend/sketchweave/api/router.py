"""Master API router — mounts all endpoint routers."""

from __future__ import annotations

from fastapi import APIRouter

from sketchweave.api import actions, ai, health, relationships, scene, updates

api_router = APIRouter(prefix="/api")

api_router.include_router(health.router)
api_router.include_router(scene.router)
api_router.include_router(actions.router)
api_router.include_router(updates.router)
api_router.include_router(relationships.router)
api_router.include_router(ai.router)
