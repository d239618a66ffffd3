"""
Errors raised by entity models.

Routers never recover from these; they bubble up to the app-wide handler,
which turns ``status_code`` into the HTTP status of the error page.
"""

from __future__ import annotations

from typing import Optional


class ModelError(Exception):
    """Base class for every failure reported by an entity model."""

    status_code: int = 500
    default_message: str = "Internal error"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(ModelError):
    """The requested identifier has no matching row."""

    status_code = 404
    default_message = "Not found"


class StoreError(ModelError):
    """The underlying store failed (connection, constraint, bad query)."""

    status_code = 500
    default_message = "Store error"
