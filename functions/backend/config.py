"""
Configuration and settings for the CRUD service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Storage backend: "memory" or "cloudsql"
    data_backend: str = Field(default="memory")

    # Explicit SQLAlchemy URL (e.g. SQLite for local runs); wins over MySQL fields
    database_url: Optional[str] = Field(default=None)

    # Cloud SQL (MySQL)
    mysql_host: str = Field(default="127.0.0.1")
    mysql_user: Optional[str] = Field(default=None)
    mysql_password: Optional[str] = Field(default=None)
    mysql_database: str = Field(default="bittiger")
    instance_connection_name: Optional[str] = Field(default=None)

    # Local SQLite runs only; production tables come from scripts/create_schema.py
    create_schema_on_startup: bool = Field(default=False)

    environment: str = Field(default="development")

    page_size: int = Field(default=10, ge=1)
    log_level: str = Field(default="INFO")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
