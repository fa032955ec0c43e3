"""
FastAPI application entry point for the MAIO backend.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from maio.config import Settings, get_settings
from maio.db import ResourceStore
from maio.dependencies import build_store
from maio.routes import router
from maio.uploads import UploadStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    logger.info("Shutting down, closing store connection")
    app.state.store.close()


def create_app(
    settings: Optional[Settings] = None, store: Optional[ResourceStore] = None
) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="MAIO Backend (FastAPI)", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store if store is not None else build_store(settings)
    app.state.uploads = UploadStore(settings.upload_dir)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def limit_json_body(request: Request, call_next):
        if request.headers.get("content-type", "").startswith("application/json"):
            length = request.headers.get("content-length")
            if length and length.isdigit():
                size = int(length)
            else:
                # Chunked bodies carry no length header; the read body is
                # replayed to the route.
                size = len(await request.body())
            if size > settings.max_json_body_bytes:
                return JSONResponse(
                    status_code=413, content={"detail": "Request body too large"}
                )
        return await call_next(request)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("%s %s", request.method, request.url.path)
        return await call_next(request)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400, content={"detail": jsonable_encoder(exc.errors())}
        )

    app.include_router(router, prefix=settings.api_prefix)

    app.mount("/uploads", StaticFiles(directory=app.state.uploads.root), name="uploads")
    return app
