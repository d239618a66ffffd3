"""
Dependency wiring for the FastAPI app.

The storage backend is chosen once, when the app is built, and the resulting
models are handed to the routers through ``Depends``.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Union

from fastapi import Request
from sqlalchemy.engine import URL, make_url

from backend.config import Settings
from backend.db import (
    EntityModel,
    InMemoryEntityModel,
    SqlEntityModel,
    create_schema,
    create_sql_engine,
)
from backend.entities import ENTITIES, Entity

logger = logging.getLogger(__name__)

ModelRegistry = Dict[str, EntityModel]

MEMORY_BACKEND = "memory"
CLOUDSQL_BACKEND = "cloudsql"


def build_database_url(settings: Settings) -> Union[str, URL]:
    """
    Resolve the SQLAlchemy URL for the cloudsql backend.

    An explicit DATABASE_URL wins. Otherwise a MySQL URL is assembled from the
    MYSQL_* settings; in production with an instance connection name the
    connection goes through the Cloud SQL proxy socket instead of TCP.
    """
    if settings.database_url:
        return settings.database_url

    query = {}
    if settings.instance_connection_name and settings.environment == "production":
        query["unix_socket"] = f"/cloudsql/{settings.instance_connection_name}"
    return URL.create(
        "mysql+pymysql",
        username=settings.mysql_user,
        password=settings.mysql_password,
        host=settings.mysql_host,
        database=settings.mysql_database,
        query=query,
    )


def _safe_url(url: Union[str, URL]) -> str:
    return make_url(url).render_as_string(hide_password=True)


def build_model_registry(settings: Settings) -> ModelRegistry:
    """Create one model per entity for the configured backend."""
    backend = settings.data_backend.lower()
    if backend == MEMORY_BACKEND:
        logger.info("Using in-memory storage backend")
        return {entity.name: InMemoryEntityModel(entity) for entity in ENTITIES}

    if backend == CLOUDSQL_BACKEND:
        url = build_database_url(settings)
        logger.info("Using SQL storage backend: %s", _safe_url(url))
        engine = create_sql_engine(url)
        if settings.create_schema_on_startup:
            create_schema(engine)
        return {entity.name: SqlEntityModel(entity, engine) for entity in ENTITIES}

    raise ValueError(f"Unknown DATA_BACKEND: {settings.data_backend!r}")


def get_models(request: Request) -> ModelRegistry:
    return request.app.state.models


def model_for(entity: Entity) -> Callable[[Request], EntityModel]:
    """Build a dependency that returns the configured model for ``entity``."""

    def _get_model(request: Request) -> EntityModel:
        return get_models(request)[entity.name]

    return _get_model
