"""
Dependency wiring for the FastAPI app.

``create_app`` attaches the settings, the resource store and the upload store
to ``app.state``; route dependencies read them back from the request so every
app instance works against the configuration it was built with.
"""

from __future__ import annotations

import logging

from fastapi import Request

from maio.config import Settings
from maio.db import InMemoryResourceStore, ResourceStore, SqlResourceStore
from maio.mongo import MongoResourceStore
from maio.uploads import UploadStore

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> ResourceStore:
    backend = settings.resolved_store_backend()
    if backend == "mongo":
        store = MongoResourceStore(settings.mongodb_uri, settings.mongodb_db_name)
    elif backend == "sql":
        store = SqlResourceStore(settings.database_url)
    else:
        store = InMemoryResourceStore()
    logger.info("Using %s resource store", store.backend_name)
    return store


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> ResourceStore:
    """Return the store shared by every request to this app."""
    return request.app.state.store


def get_upload_store(request: Request) -> UploadStore:
    return request.app.state.uploads
