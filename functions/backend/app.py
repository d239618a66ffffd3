"""
FastAPI application entry point for the CRUD service.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from backend.config import Settings, get_settings
from backend.dependencies import build_model_registry
from backend.entities import ENTITIES, USERS
from backend.errors import ModelError, NotFoundError
from backend.routes import build_entity_router, templates

logger = logging.getLogger(__name__)


async def model_error_handler(request: Request, exc: ModelError) -> HTMLResponse:
    """Process-wide error page for anything a model raised."""
    entity = getattr(exc, "entity", None)
    if isinstance(exc, NotFoundError):
        logger.warning("%s %s: %s", request.method, request.url.path, exc.message)
    else:
        logger.error(
            "%s %s failed for %s: %s",
            request.method,
            request.url.path,
            entity or "unknown entity",
            exc.message,
            exc_info=exc,
        )
    return templates.TemplateResponse(
        request=request,
        name="error.html",
        context={
            "status_code": exc.status_code,
            "message": getattr(exc, "response", exc.message),
            "entity_name": entity,
        },
        status_code=exc.status_code,
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(title="Structured Data CRUD", version="0.1.0")
    app.state.settings = settings
    app.state.models = build_model_registry(settings)

    for entity in ENTITIES:
        app.include_router(build_entity_router(entity))
    app.add_exception_handler(ModelError, model_error_handler)

    @app.get("/", include_in_schema=False)
    def index():
        return RedirectResponse(USERS.path)

    return app


app = create_app()
