"""
Resource operations shared by every route: list, fetch, create, update,
delete, plus the duplicate cleanup used by the maintenance endpoint.

These helpers turn store outcomes into HTTP errors so the route functions stay
thin.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from datetime import date
from typing import Optional, Type

from fastapi import HTTPException, UploadFile
from pydantic import ValidationError

from maio.db import InvalidIdentifier, ResourceStore, StoreError
from maio.i18n import localized
from maio.query import ListQuery, pagination
from maio.resources import ResourceSpec
from maio.schemas import Payload
from maio.uploads import StoredFile, UploadStore, media_type_for

logger = logging.getLogger(__name__)


@contextmanager
def store_errors(operation: str):
    """Map store failures to a 500 carrying a generic message."""
    try:
        yield
    except StoreError:
        logger.exception("Store error while trying to %s", operation)
        raise HTTPException(status_code=500, detail=f"Failed to {operation}")


@contextmanager
def identifier_errors(spec: ResourceSpec):
    try:
        yield
    except InvalidIdentifier:
        raise HTTPException(status_code=400, detail=spec.invalid_id())


def today() -> str:
    return date.today().isoformat()


def describe(spec: ResourceSpec, doc: dict) -> str:
    return localized(doc.get(spec.identity_field), default=doc.get("id", ""))


def decode_data(raw: Optional[str]) -> dict:
    """Decode the JSON ``data`` form field; a missing field is an empty object."""
    if raw is None or raw == "":
        return {}
    try:
        body = json.loads(raw)
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="Invalid JSON in data field")
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="data field must be a JSON object")
    return body


def validate_payload(body: dict, model: Type[Payload]) -> dict:
    try:
        return model.model_validate(body).to_store()
    except ValidationError as exc:
        raise HTTPException(
            status_code=400,
            detail=exc.errors(include_url=False, include_context=False),
        )


def parse_payload(raw: Optional[str], model: Type[Payload]) -> dict:
    return validate_payload(decode_data(raw), model)


def file_fields(spec: ResourceSpec, stored: StoredFile) -> dict:
    fields = {spec.file_ref: stored.url}
    if spec.file_details:
        fields.update(
            {
                "type": media_type_for(stored.content_type),
                "filename": stored.filename,
                "original_name": stored.original_name,
                "size": stored.size,
                "mime_type": stored.content_type,
            }
        )
    return fields


def list_resource(
    store: ResourceStore, spec: ResourceSpec, query: ListQuery, operation: str
) -> dict:
    with store_errors(operation):
        docs, total = store.list_documents(spec, query)
    return {spec.list_key: docs, "pagination": pagination(query, total)}


def get_resource(store: ResourceStore, spec: ResourceSpec, doc_id: str) -> dict:
    with identifier_errors(spec), store_errors(f"fetch {spec.label.lower()}"):
        doc = store.get_document(spec, doc_id)
    if doc is None:
        raise HTTPException(status_code=404, detail=spec.not_found())
    return doc


async def create_resource(
    store: ResourceStore,
    uploads: UploadStore,
    spec: ResourceSpec,
    data: dict,
    upload: Optional[UploadFile] = None,
) -> dict:
    stored: Optional[StoredFile] = None
    if upload is not None and upload.filename:
        stored = await uploads.save(spec.file_field, upload)
        data.update(file_fields(spec, stored))
    try:
        with store_errors(f"create {spec.label.lower()}"):
            doc = store.create_document(spec, data)
    except HTTPException:
        if stored:
            uploads.delete(stored.filename)
        raise
    logger.info("Created %s %s (%s)", spec.label.lower(), doc["id"], describe(spec, doc))
    return doc


async def update_resource(
    store: ResourceStore,
    uploads: UploadStore,
    spec: ResourceSpec,
    doc_id: str,
    changes: dict,
    upload: Optional[UploadFile] = None,
) -> dict:
    previous = get_resource(store, spec, doc_id)
    stored: Optional[StoredFile] = None
    if upload is not None and upload.filename:
        stored = await uploads.save(spec.file_field, upload)
        changes.update(file_fields(spec, stored))
    try:
        with identifier_errors(spec), store_errors(f"update {spec.label.lower()}"):
            doc = store.update_document(spec, doc_id, changes)
    except HTTPException:
        if stored:
            uploads.delete(stored.filename)
        raise
    if doc is None:
        if stored:
            uploads.delete(stored.filename)
        raise HTTPException(status_code=404, detail=spec.not_found())
    if stored and spec.file_ref:
        old_reference = previous.get(spec.file_ref)
        if old_reference and old_reference != doc.get(spec.file_ref):
            uploads.delete(old_reference)
    logger.info("Updated %s %s", spec.label.lower(), doc_id)
    return doc


def delete_resource(
    store: ResourceStore, uploads: UploadStore, spec: ResourceSpec, doc_id: str
) -> dict:
    with identifier_errors(spec), store_errors(f"delete {spec.label.lower()}"):
        doc = store.delete_document(spec, doc_id)
    if doc is None:
        raise HTTPException(status_code=404, detail=spec.not_found())
    remove_files(uploads, spec, doc)
    logger.info("Deleted %s %s (%s)", spec.label.lower(), doc_id, describe(spec, doc))
    return {"message": spec.deleted()}


def remove_files(uploads: UploadStore, spec: ResourceSpec, doc: dict) -> None:
    if spec.file_ref:
        uploads.delete(doc.get(spec.file_ref))


def _identity(spec: ResourceSpec, doc: dict) -> Optional[str]:
    value = doc.get(spec.identity_field)
    if value is None:
        return None
    return json.dumps(value, sort_keys=True, ensure_ascii=False)


def remove_duplicates(
    store: ResourceStore, uploads: UploadStore, spec: ResourceSpec
) -> dict:
    """Keep the earliest record per identity value and delete the rest."""
    groups: dict[str, list[dict]] = {}
    for doc in store.all_documents(spec):
        key = _identity(spec, doc)
        if key is not None:
            groups.setdefault(key, []).append(doc)

    duplicate_groups = 0
    deleted = 0
    for docs in groups.values():
        if len(docs) < 2:
            continue
        duplicate_groups += 1
        for doc in docs[1:]:
            if store.delete_document(spec, doc["id"]) is not None:
                remove_files(uploads, spec, doc)
                deleted += 1
    if deleted:
        logger.info(
            "Removed %d duplicate %s across %d groups",
            deleted,
            spec.collection,
            duplicate_groups,
        )
    return {"duplicate_groups": duplicate_groups, "deleted_documents": deleted}
