"""
HTML routes for the entity CRUD pages.

Every entity gets the same set of routes from ``build_entity_router``; the
model behind them is whatever backend the app was built with.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from backend.db import EntityModel, column_names
from backend.dependencies import model_for
from backend.entities import Entity
from backend.errors import ModelError

logger = logging.getLogger(__name__)

BASE_PATH = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_PATH / "templates"))


async def read_form(request: Request) -> dict:
    """Parse a urlencoded form body; blank inputs are stored as NULL."""
    form = await request.form()
    return {
        name: (value if value != "" else None) for name, value in form.items()
    }


@contextmanager
def _entity_errors(entity: Entity) -> Iterator[None]:
    # Attach the message for the error page, then let the app handler respond.
    try:
        yield
    except ModelError as exc:
        exc.response = exc.message
        exc.entity = entity.name
        raise


def _detail_url(entity: Entity, saved: dict) -> str:
    return f"{entity.path}/{quote(str(saved[entity.key]), safe='@')}"


def build_entity_router(entity: Entity) -> APIRouter:
    router = APIRouter(
        prefix=entity.path,
        tags=[entity.name],
        default_response_class=HTMLResponse,
    )
    get_model = model_for(entity)
    columns = column_names(entity)

    def render(request: Request, name: str, context: dict) -> HTMLResponse:
        context = {"entity": entity, "columns": columns, **context}
        return templates.TemplateResponse(
            request=request, name=name, context=context
        )

    @router.get("")
    def list_entities(
        request: Request,
        page_token: Optional[str] = Query(None, alias="pageToken"),
        model: EntityModel = Depends(get_model),
    ):
        """Display a page of entities."""
        page_size = request.app.state.settings.page_size
        with _entity_errors(entity):
            entities, next_token = model.list(page_size, page_token)
        return render(
            request,
            "list.html",
            {"entities": entities, "next_page_token": next_token},
        )

    @router.get("/", include_in_schema=False)
    def list_trailing_slash():
        return RedirectResponse(entity.path, status_code=status.HTTP_302_FOUND)

    if entity.allow_create:

        @router.get("/add")
        def add_form(request: Request):
            return render(request, "form.html", {"item": {}, "action": "Add"})

        @router.post("/add")
        def add_entity(
            data: dict = Depends(read_form),
            model: EntityModel = Depends(get_model),
        ):
            with _entity_errors(entity):
                saved = model.create(data)
            logger.info("Created %s %s", entity.label, saved[entity.key])
            return RedirectResponse(
                _detail_url(entity, saved), status_code=status.HTTP_303_SEE_OTHER
            )

    @router.get("/{entity_id:path}/edit")
    def edit_form(
        request: Request,
        entity_id: str,
        model: EntityModel = Depends(get_model),
    ):
        with _entity_errors(entity):
            item = model.read(entity_id)
        return render(request, "form.html", {"item": item, "action": "Edit"})

    @router.post("/{entity_id:path}/edit")
    def edit_entity(
        entity_id: str,
        data: dict = Depends(read_form),
        model: EntityModel = Depends(get_model),
    ):
        with _entity_errors(entity):
            saved = model.update(entity_id, data)
        return RedirectResponse(
            _detail_url(entity, saved), status_code=status.HTTP_303_SEE_OTHER
        )

    @router.get("/{entity_id:path}/delete")
    def delete_entity(
        entity_id: str,
        model: EntityModel = Depends(get_model),
    ):
        with _entity_errors(entity):
            model.delete(entity_id)
        logger.info("Deleted %s %s", entity.label, entity_id)
        return RedirectResponse(entity.path, status_code=status.HTTP_302_FOUND)

    # Natural keys may contain "/", so the detail route goes last.
    @router.get("/{entity_id:path}")
    def view_entity(
        request: Request,
        entity_id: str,
        model: EntityModel = Depends(get_model),
    ):
        with _entity_errors(entity):
            item = model.read(entity_id)
        return render(request, "view.html", {"item": item})

    return router
