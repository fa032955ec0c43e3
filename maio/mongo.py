"""
MongoDB implementation of the resource store.
"""

from __future__ import annotations

import re
from contextlib import contextmanager
from typing import Any, Dict, Optional

import pymongo
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from maio.db import InvalidIdentifier, StoreError, strip_reserved, utc_now
from maio.query import ListQuery, flatten_update
from maio.resources import ResourceSpec


def object_id(doc_id: str) -> ObjectId:
    if not ObjectId.is_valid(doc_id):
        raise InvalidIdentifier(doc_id)
    return ObjectId(doc_id)


def build_filter(spec: ResourceSpec, query: ListQuery) -> Dict[str, Any]:
    """Translate a list query into a MongoDB filter document."""
    filter_doc: Dict[str, Any] = dict(query.equals)
    for name, bound in query.at_least.items():
        filter_doc[name] = {"$gte": bound}
    if query.search:
        pattern = re.escape(query.search)
        filter_doc["$or"] = [
            {name: {"$regex": pattern, "$options": "i"}}
            for name in spec.search_fields
        ]
    return filter_doc


def sort_spec(spec: ResourceSpec) -> list[tuple[str, int]]:
    return [
        (key.field, pymongo.DESCENDING if key.descending else pymongo.ASCENDING)
        for key in spec.sort
    ]


def to_document(raw: dict) -> dict:
    doc = dict(raw)
    doc["id"] = str(doc.pop("_id"))
    return doc


class MongoResourceStore:
    """MongoDB store; one collection per resource, ObjectId identifiers."""

    backend_name = "mongo"

    def __init__(
        self,
        uri: Optional[str] = None,
        database_name: str = "maio-news",
        client: Optional[pymongo.MongoClient] = None,
    ):
        if client is None and not uri:
            raise ValueError("MONGODB_URI is required for MongoResourceStore")
        self.client = client or pymongo.MongoClient(uri, serverSelectionTimeoutMS=5000)
        self.db = self.client[database_name]

    @contextmanager
    def _driver_errors(self):
        try:
            yield
        except PyMongoError as exc:
            raise StoreError(str(exc)) from exc

    def _collection(self, spec: ResourceSpec):
        return self.db[spec.collection]

    def list_documents(
        self, spec: ResourceSpec, query: ListQuery
    ) -> tuple[list[dict], int]:
        filter_doc = build_filter(spec, query)
        collection = self._collection(spec)
        with self._driver_errors():
            total = collection.count_documents(filter_doc)
            cursor = (
                collection.find(filter_doc)
                .sort(sort_spec(spec))
                .skip(query.offset)
                .limit(query.limit)
            )
            return [to_document(raw) for raw in cursor], total

    def get_document(self, spec: ResourceSpec, doc_id: str) -> Optional[dict]:
        oid = object_id(doc_id)
        with self._driver_errors():
            raw = self._collection(spec).find_one({"_id": oid})
        return to_document(raw) if raw else None

    def create_document(self, spec: ResourceSpec, data: dict) -> dict:
        now = utc_now()
        doc = {
            **strip_reserved(data),
            "_id": ObjectId(),
            "created_at": now,
            "updated_at": now,
        }
        with self._driver_errors():
            self._collection(spec).insert_one(doc)
        return to_document(doc)

    def update_document(
        self, spec: ResourceSpec, doc_id: str, changes: dict
    ) -> Optional[dict]:
        oid = object_id(doc_id)
        collection = self._collection(spec)
        with self._driver_errors():
            current = collection.find_one({"_id": oid})
            if current is None:
                return None
            # Dotted paths merge nested objects field by field instead of replacing them.
            update = flatten_update(strip_reserved(changes), current)
            update["updated_at"] = utc_now()
            raw = collection.find_one_and_update(
                {"_id": oid},
                {"$set": update},
                return_document=ReturnDocument.AFTER,
            )
        return to_document(raw) if raw else None

    def delete_document(self, spec: ResourceSpec, doc_id: str) -> Optional[dict]:
        oid = object_id(doc_id)
        with self._driver_errors():
            raw = self._collection(spec).find_one_and_delete({"_id": oid})
        return to_document(raw) if raw else None

    def distinct_values(self, spec: ResourceSpec, field: str) -> list:
        with self._driver_errors():
            values = self._collection(spec).distinct(field)
        return [value for value in values if value is not None]

    def count_documents(self, spec: ResourceSpec) -> int:
        with self._driver_errors():
            return self._collection(spec).count_documents({})

    def all_documents(self, spec: ResourceSpec) -> list[dict]:
        with self._driver_errors():
            cursor = self._collection(spec).find({}).sort(
                [("created_at", pymongo.ASCENDING), ("_id", pymongo.ASCENDING)]
            )
            return [to_document(raw) for raw in cursor]

    def ping(self) -> None:
        with self._driver_errors():
            self.client.admin.command("ping")

    def close(self) -> None:
        self.client.close()
