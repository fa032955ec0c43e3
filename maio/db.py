"""
Resource store abstraction with SQL and in-memory implementations.

Every implementation returns plain dicts carrying a string ``id`` field,
whatever identifier shape the backing store uses.
"""

from __future__ import annotations

import copy
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Optional, Protocol

from sqlalchemy import (
    JSON,
    Column,
    Integer,
    String,
    create_engine,
    func,
    or_,
    select,
    text,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from maio.query import ListQuery, matches, merge_update, sort_documents
from maio.resources import ALL_RESOURCES, ResourceSpec

RESERVED_FIELDS = ("id", "_id", "created_at", "updated_at")


class StoreError(RuntimeError):
    """Raised when the backing store fails to complete an operation."""


class InvalidIdentifier(ValueError):
    """Raised when an identifier is not syntactically valid for the store."""


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def strip_reserved(data: dict) -> dict:
    return {k: v for k, v in data.items() if k not in RESERVED_FIELDS}


class ResourceStore(Protocol):
    """Interface for resource persistence."""

    backend_name: str

    def list_documents(
        self, spec: ResourceSpec, query: ListQuery
    ) -> tuple[list[dict], int]:
        ...

    def get_document(self, spec: ResourceSpec, doc_id: str) -> Optional[dict]:
        ...

    def create_document(self, spec: ResourceSpec, data: dict) -> dict:
        ...

    def update_document(
        self, spec: ResourceSpec, doc_id: str, changes: dict
    ) -> Optional[dict]:
        ...

    def delete_document(self, spec: ResourceSpec, doc_id: str) -> Optional[dict]:
        ...

    def distinct_values(self, spec: ResourceSpec, field: str) -> list:
        ...

    def count_documents(self, spec: ResourceSpec) -> int:
        ...

    def all_documents(self, spec: ResourceSpec) -> list[dict]:
        ...

    def ping(self) -> None:
        ...

    def close(self) -> None:
        ...


class InMemoryResourceStore:
    """Simple in-memory store for development and tests."""

    backend_name = "memory"

    def __init__(self):
        self.collections: Dict[str, Dict[str, dict]] = {
            spec.collection: {} for spec in ALL_RESOURCES
        }

    def _collection(self, spec: ResourceSpec) -> Dict[str, dict]:
        return self.collections.setdefault(spec.collection, {})

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        for docs in self.collections.values():
            docs.clear()

    def list_documents(
        self, spec: ResourceSpec, query: ListQuery
    ) -> tuple[list[dict], int]:
        found = [
            doc for doc in self._collection(spec).values() if matches(doc, query, spec)
        ]
        ordered = sort_documents(found, spec)
        page = ordered[query.offset : query.offset + query.limit]
        return copy.deepcopy(page), len(found)

    def get_document(self, spec: ResourceSpec, doc_id: str) -> Optional[dict]:
        doc = self._collection(spec).get(doc_id)
        return copy.deepcopy(doc) if doc else None

    def create_document(self, spec: ResourceSpec, data: dict) -> dict:
        now = utc_now()
        doc_id = uuid.uuid4().hex
        doc = {
            **copy.deepcopy(strip_reserved(data)),
            "id": doc_id,
            "created_at": now,
            "updated_at": now,
        }
        self._collection(spec)[doc_id] = doc
        return copy.deepcopy(doc)

    def update_document(
        self, spec: ResourceSpec, doc_id: str, changes: dict
    ) -> Optional[dict]:
        docs = self._collection(spec)
        existing = docs.get(doc_id)
        if existing is None:
            return None
        merged = merge_update(existing, copy.deepcopy(strip_reserved(changes)))
        merged["updated_at"] = utc_now()
        docs[doc_id] = merged
        return copy.deepcopy(merged)

    def delete_document(self, spec: ResourceSpec, doc_id: str) -> Optional[dict]:
        return self._collection(spec).pop(doc_id, None)

    def distinct_values(self, spec: ResourceSpec, field: str) -> list:
        values = []
        for doc in self._collection(spec).values():
            value = doc.get(field)
            if value is not None and value not in values:
                values.append(value)
        return values

    def count_documents(self, spec: ResourceSpec) -> int:
        return len(self._collection(spec))

    def all_documents(self, spec: ResourceSpec) -> list[dict]:
        docs = sorted(self._collection(spec).values(), key=lambda d: d["created_at"])
        return copy.deepcopy(docs)

    def ping(self) -> None:
        return None

    def close(self) -> None:
        return None


Base = declarative_base()


class _DocumentColumns:
    id = Column(Integer, primary_key=True, autoincrement=True)
    data = Column(JSON, nullable=False)
    created_at = Column(String, nullable=False, index=True)
    updated_at = Column(String, nullable=False)


class ArticleRow(_DocumentColumns, Base):
    __tablename__ = "articles"


class EventRow(_DocumentColumns, Base):
    __tablename__ = "events"


class MediaRow(_DocumentColumns, Base):
    __tablename__ = "media"


class ResultRow(_DocumentColumns, Base):
    __tablename__ = "results"


class SponsorRow(_DocumentColumns, Base):
    __tablename__ = "sponsors"


ROW_TYPES = {
    row.__tablename__: row
    for row in (ArticleRow, EventRow, MediaRow, ResultRow, SponsorRow)
}


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SqlResourceStore:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).

    Each resource lives in its own table; the record body is a JSON column and
    filters/sorts are expressed as JSON path expressions.
    """

    backend_name = "sql"

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlResourceStore")
        with self._driver_errors():
            self.engine = create_engine(
                database_url,
                future=True,
                pool_pre_ping=True,
                pool_recycle=1800,
            )
            self.Session = sessionmaker(
                bind=self.engine, class_=Session, expire_on_commit=False, future=True
            )
            Base.metadata.create_all(self.engine)

    @contextmanager
    def _driver_errors(self):
        try:
            yield
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    @staticmethod
    def _row_type(spec: ResourceSpec):
        return ROW_TYPES[spec.collection]

    @staticmethod
    def _key(doc_id: str) -> Optional[int]:
        # Ids that cannot be integer keys are simply not found.
        try:
            return int(doc_id)
        except (TypeError, ValueError):
            return None

    @staticmethod
    def _to_document(row) -> dict:
        return {
            **(row.data or {}),
            "id": str(row.id),
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        }

    def _field(self, spec: ResourceSpec, name: str, kind: Optional[str] = None):
        row_type = self._row_type(spec)
        if name in ("created_at", "updated_at"):
            return getattr(row_type, name)
        parts = tuple(name.split("."))
        element = row_type.data[parts[0]] if len(parts) == 1 else row_type.data[parts]
        kind = kind or spec.field_kind(name)
        if kind == "int":
            return element.as_integer()
        if kind == "bool":
            return element.as_boolean()
        return element.as_string()

    def _list_elements(self, spec: ResourceSpec, name: str):
        data = self._row_type(spec).data
        if self.engine.dialect.name == "postgresql":
            elements = func.json_array_elements_text(data[name])
        else:
            elements = func.json_each(data, f'$."{name}"')
        return elements.table_valued("value")

    def _matches_text(self, spec: ResourceSpec, name: str, pattern: str):
        """Case-insensitive LIKE on a field; list fields match per element."""
        if spec.field_kind(name) == "list":
            elements = self._list_elements(spec, name)
            return (
                select(elements.c.value)
                .where(elements.c.value.ilike(pattern, escape="\\"))
                .exists()
            )
        return self._field(spec, name).ilike(pattern, escape="\\")

    def _conditions(self, spec: ResourceSpec, query: ListQuery) -> list:
        conditions = []
        for name, value in query.equals.items():
            conditions.append(self._field(spec, name) == value)
        for name, bound in query.at_least.items():
            conditions.append(self._field(spec, name) >= bound)
        if query.search:
            pattern = f"%{_escape_like(query.search)}%"
            conditions.append(
                or_(
                    *[
                        self._matches_text(spec, name, pattern)
                        for name in spec.search_fields
                    ]
                )
            )
        return conditions

    def _order_by(self, spec: ResourceSpec) -> list:
        clauses = []
        for key in spec.sort:
            expr = self._field(spec, key.field)
            clauses.append(expr.desc().nulls_last() if key.descending else expr.asc().nulls_first())
        return clauses

    def list_documents(
        self, spec: ResourceSpec, query: ListQuery
    ) -> tuple[list[dict], int]:
        row_type = self._row_type(spec)
        conditions = self._conditions(spec, query)
        with self._driver_errors(), self.Session() as session:
            total = session.execute(
                select(func.count()).select_from(row_type).where(*conditions)
            ).scalar_one()
            stmt = (
                select(row_type)
                .where(*conditions)
                .order_by(*self._order_by(spec), row_type.id.asc())
                .offset(query.offset)
                .limit(query.limit)
            )
            rows = session.execute(stmt).scalars().all()
            return [self._to_document(row) for row in rows], total

    def get_document(self, spec: ResourceSpec, doc_id: str) -> Optional[dict]:
        key = self._key(doc_id)
        if key is None:
            return None
        with self._driver_errors(), self.Session() as session:
            row = session.get(self._row_type(spec), key)
            return self._to_document(row) if row else None

    def create_document(self, spec: ResourceSpec, data: dict) -> dict:
        now = utc_now()
        with self._driver_errors(), self.Session() as session:
            row = self._row_type(spec)(
                data=strip_reserved(data),
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_document(row)

    def update_document(
        self, spec: ResourceSpec, doc_id: str, changes: dict
    ) -> Optional[dict]:
        key = self._key(doc_id)
        if key is None:
            return None
        with self._driver_errors(), self.Session() as session:
            row = session.get(self._row_type(spec), key)
            if not row:
                return None
            # Assign a new mapping so the JSON column is flagged as modified.
            row.data = merge_update(row.data or {}, strip_reserved(changes))
            row.updated_at = utc_now()
            session.commit()
            session.refresh(row)
            return self._to_document(row)

    def delete_document(self, spec: ResourceSpec, doc_id: str) -> Optional[dict]:
        key = self._key(doc_id)
        if key is None:
            return None
        with self._driver_errors(), self.Session() as session:
            row = session.get(self._row_type(spec), key)
            if not row:
                return None
            doc = self._to_document(row)
            session.delete(row)
            session.commit()
            return doc

    def distinct_values(self, spec: ResourceSpec, field: str) -> list:
        expr = self._field(spec, field)
        with self._driver_errors(), self.Session() as session:
            values = session.execute(select(expr).distinct()).scalars().all()
            return [value for value in values if value is not None]

    def count_documents(self, spec: ResourceSpec) -> int:
        row_type = self._row_type(spec)
        with self._driver_errors(), self.Session() as session:
            return session.execute(
                select(func.count()).select_from(row_type)
            ).scalar_one()

    def all_documents(self, spec: ResourceSpec) -> list[dict]:
        row_type = self._row_type(spec)
        with self._driver_errors(), self.Session() as session:
            rows = (
                session.execute(
                    select(row_type).order_by(row_type.created_at.asc(), row_type.id.asc())
                )
                .scalars()
                .all()
            )
            return [self._to_document(row) for row in rows]

    def ping(self) -> None:
        with self._driver_errors(), self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def close(self) -> None:
        self.engine.dispose()
