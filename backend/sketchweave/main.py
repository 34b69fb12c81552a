"""FastAPI app factory."""

from __future__ import annotations

import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sketchweave.config import settings

load_dotenv()

logging.basicConfig(
    level=getattr(logging, settings.sketchweave_log_level.upper(), logging.INFO),
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)


def create_app() -> FastAPI:
    app = FastAPI(
        title="SketchWeave",
        description="Diagram element synthesis and reconciliation engine for AI and webhook edits to canvas scenes",
        version="0.1.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Import the interpreter so @action_handler decorators fire
    _register_action_handlers()

    from sketchweave.api.router import api_router

    app.include_router(api_router)

    return app


def _register_action_handlers() -> None:
    import importlib

    importlib.import_module("sketchweave.engine.interpreter")


app = create_app()
