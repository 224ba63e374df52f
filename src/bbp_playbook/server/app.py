"""FastAPI app factory.

Endpoints are thin wrappers over `PlaybookEngine`.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bbp_playbook import __version__
from bbp_playbook.engine.completion_store import CompletionStore, JsonFileBackend
from bbp_playbook.engine.model import PlaybookLoadError
from bbp_playbook.engine.service import PlaybookEngine
from bbp_playbook.server.config import ServerSettings
from bbp_playbook.server.router import router

logger = logging.getLogger(__name__)


def create_app(settings: ServerSettings | None = None) -> FastAPI:
    settings = settings or ServerSettings()

    app = FastAPI(
        title="BBP Playbook",
        version=__version__,
        description="REST API over the bbp-playbook readiness engine.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.parsed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    store = CompletionStore(JsonFileBackend(settings.completion_state_file))
    engine = PlaybookEngine(store, scope_param=settings.scope_param)
    app.state.engine = engine
    app.state.load_error = None

    # A broken playbook leaves the API up; catalogue endpoints answer 503.
    try:
        engine.load_catalogue(settings.playbook_path)
    except PlaybookLoadError as e:
        logger.error(
            "Failed to load playbook",
            extra={"path": str(settings.playbook_path), "error": str(e)},
        )
        app.state.load_error = f"Failed to load playbook: {e}"

    app.include_router(router, prefix="/api")
    return app
