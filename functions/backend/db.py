"""
Entity models: a SQL (Cloud SQL / any SQLAlchemy URL) implementation and an
in-memory test implementation behind one protocol.
"""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, Protocol, Union

from sqlalchemy import (
    Column,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
    insert,
    select,
)
from sqlalchemy import delete as delete_stmt
from sqlalchemy import update as update_stmt
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from backend.entities import Entity
from backend.errors import NotFoundError, StoreError

Page = tuple[list[dict], Optional[str]]


class EntityModel(Protocol):
    """Storage operations every entity backend provides."""

    def list(self, limit: int, page_token: Optional[str] = None) -> Page:
        ...

    def create(self, data: dict) -> dict:
        ...

    def read(self, entity_id: Any) -> dict:
        ...

    def update(self, entity_id: Any, data: dict) -> dict:
        ...

    def delete(self, entity_id: Any) -> None:
        ...


def parse_page_token(page_token: Optional[str]) -> int:
    """Decode a page token into a row offset; a missing token means offset 0."""
    if page_token is None or page_token == "":
        return 0
    try:
        offset = int(page_token)
    except (TypeError, ValueError):
        raise StoreError("Invalid page token") from None
    if offset < 0:
        raise StoreError("Invalid page token")
    return offset


def next_page_token(offset: int, limit: int, returned: int) -> Optional[str]:
    # A full page means more rows may exist.
    if returned == limit:
        return str(offset + returned)
    return None


def _check_limit(limit: int) -> None:
    if limit < 1:
        raise ValueError("limit must be a positive integer")


def _coerce_key(column: Column, entity_id: Any) -> Any:
    """Convert a path identifier to the key column's type, or None if impossible."""
    if entity_id is None:
        return None
    if column.type.python_type is int:
        try:
            return int(entity_id)
        except (TypeError, ValueError):
            return None
    return str(entity_id)


def _column_default(column: Column) -> Any:
    default = column.default
    if default is None:
        return None
    if default.is_callable:
        return default.arg(None)
    if default.is_scalar:
        return default.arg
    return None


class InMemoryEntityModel:
    """Simple in-memory store for one entity, for development and tests."""

    def __init__(self, entity: Entity):
        self.entity = entity
        self.table = Base.metadata.tables[entity.table]
        self.key_column = self.table.c[entity.key]
        self.rows: Dict[Any, dict] = {}
        self._next_id = 1
        # Sync endpoints run in a threadpool; id assignment must not interleave.
        self._lock = threading.Lock()

    @property
    def _auto_key(self) -> bool:
        return self.key_column.type.python_type is int

    def _coerce_values(self, data: dict) -> dict:
        values = {}
        for name, value in data.items():
            if name not in self.table.c:
                raise StoreError(
                    f"Unknown column '{name}' in '{self.entity.table}'"
                )
            python_type = self.table.c[name].type.python_type
            if value is not None and python_type in (int, float):
                try:
                    value = python_type(value)
                except (TypeError, ValueError):
                    raise StoreError(
                        f"Incorrect value '{value}' for column '{name}'"
                    ) from None
            values[name] = value
        return values

    def reset(self) -> None:
        """Clear all stored rows (useful in tests)."""
        with self._lock:
            self.rows.clear()
            self._next_id = 1

    def list(self, limit: int, page_token: Optional[str] = None) -> Page:
        _check_limit(limit)
        offset = parse_page_token(page_token)
        with self._lock:
            ordered = [self.rows[key] for key in sorted(self.rows)]
        entities = [dict(row) for row in ordered[offset : offset + limit]]
        return entities, next_page_token(offset, limit, len(entities))

    def create(self, data: dict) -> dict:
        record = {name: _column_default(col) for name, col in self.table.c.items()}
        record.update(self._coerce_values(data))

        with self._lock:
            key = record.get(self.entity.key)
            if key is None:
                if not self._auto_key:
                    raise StoreError(
                        f"Field '{self.entity.key}' doesn't have a default value"
                    )
                key = self._next_id
            if key in self.rows:
                raise StoreError(f"Duplicate entry '{key}' for key 'PRIMARY'")
            if self._auto_key:
                self._next_id = max(self._next_id, key + 1)

            record[self.entity.key] = key
            self.rows[key] = record
        return self.read(key)

    def read(self, entity_id: Any) -> dict:
        key = _coerce_key(self.key_column, entity_id)
        row = self.rows.get(key) if key is not None else None
        if row is None:
            raise NotFoundError()
        return dict(row)

    def update(self, entity_id: Any, data: dict) -> dict:
        values = self._coerce_values(data)
        values.pop(self.entity.key, None)
        key = _coerce_key(self.key_column, entity_id)
        with self._lock:
            row = self.rows.get(key) if key is not None else None
            if row is not None:
                row.update(values)
        return self.read(entity_id)

    def delete(self, entity_id: Any) -> None:
        key = _coerce_key(self.key_column, entity_id)
        if key is not None:
            with self._lock:
                self.rows.pop(key, None)


class SqlEntityModel:
    """
    SQLAlchemy-backed implementation. Accepts any engine (MySQL on Cloud SQL in
    production, SQLite for tests). Each operation runs in its own session.
    """

    def __init__(self, entity: Entity, engine: Engine):
        self.entity = entity
        self.table = Base.metadata.tables[entity.table]
        self.key_column = self.table.c[entity.key]
        self.Session = sessionmaker(
            bind=engine, class_=Session, expire_on_commit=False
        )

    @contextmanager
    def _store_errors(self) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            detail = getattr(exc, "orig", None) or exc
            raise StoreError(str(detail)) from exc

    def list(self, limit: int, page_token: Optional[str] = None) -> Page:
        _check_limit(limit)
        offset = parse_page_token(page_token)
        stmt = (
            select(self.table)
            .order_by(self.key_column)
            .limit(limit)
            .offset(offset)
        )
        with self._store_errors(), self.Session() as session:
            rows = session.execute(stmt).mappings().all()
        entities = [dict(row) for row in rows]
        return entities, next_page_token(offset, limit, len(entities))

    def create(self, data: dict) -> dict:
        with self._store_errors(), self.Session() as session:
            stmt = insert(self.table)
            if data:
                stmt = stmt.values(data)
            result = session.execute(stmt)
            session.commit()
            key = result.inserted_primary_key[0]
        return self.read(key)

    def read(self, entity_id: Any) -> dict:
        key = _coerce_key(self.key_column, entity_id)
        if key is None:
            raise NotFoundError()
        stmt = select(self.table).where(self.key_column == key)
        with self._store_errors(), self.Session() as session:
            row = session.execute(stmt).mappings().first()
        if row is None:
            raise NotFoundError()
        return dict(row)

    def update(self, entity_id: Any, data: dict) -> dict:
        key = _coerce_key(self.key_column, entity_id)
        if key is None:
            raise NotFoundError()
        values = {name: value for name, value in data.items() if name != self.entity.key}
        if values:
            with self._store_errors(), self.Session() as session:
                stmt = (
                    update_stmt(self.table)
                    .where(self.key_column == key)
                    .values(values)
                )
                session.execute(stmt)
                session.commit()
        return self.read(key)

    def delete(self, entity_id: Any) -> None:
        key = _coerce_key(self.key_column, entity_id)
        if key is None:
            return
        stmt = delete_stmt(self.table).where(self.key_column == key)
        with self._store_errors(), self.Session() as session:
            session.execute(stmt)
            session.commit()


def create_sql_engine(database_url: Union[str, URL]) -> Engine:
    if not database_url:
        raise ValueError("A database URL is required for the SQL backend")
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        kwargs: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            # One shared connection, otherwise every thread sees an empty database.
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url, pool_pre_ping=True, pool_recycle=1800)


def column_names(entity: Entity) -> list[str]:
    return list(Base.metadata.tables[entity.table].c.keys())


def create_schema(engine: Engine) -> None:
    """Create every table that does not exist yet (non-destructive)."""
    Base.metadata.create_all(engine)


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    email = Column(String(50), primary_key=True)
    password = Column(String(20), nullable=True)


class GroupRow(Base):
    __tablename__ = "groups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), nullable=True)


class MemberRow(Base):
    __tablename__ = "members"

    id = Column(Integer, primary_key=True, autoincrement=True)
    groupId = Column(Integer, ForeignKey("groups.id"), nullable=True)
    userEmail = Column(String(50), ForeignKey("users.email"), nullable=True)


class AdminRow(Base):
    __tablename__ = "admins"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), nullable=True)
    email = Column(String(50), nullable=True)
    password = Column(String(20), nullable=True)


class MsgRow(Base):
    __tablename__ = "msgs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    userEmail = Column(String(50), ForeignKey("users.email"), nullable=True)
    content = Column(Text, nullable=True)
    createdAt = Column(Float, nullable=False, default=lambda: time.time())
