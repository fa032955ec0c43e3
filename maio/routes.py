"""
HTTP routes for the MAIO content API.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile

from maio.config import Settings
from maio.db import ResourceStore
from maio.dependencies import get_app_settings, get_store, get_upload_store
from maio.query import ListQuery
from maio.resources import (
    ALL_RESOURCES,
    ARTICLES,
    EVENTS,
    MEDIA,
    RESULTS,
    SPONSORS,
    ResourceSpec,
)
from maio.schemas import (
    ArticleCreate,
    ArticleUpdate,
    CleanupResponse,
    EventCreate,
    EventUpdate,
    HealthResponse,
    MediaCreate,
    MessageResponse,
    ResultCreate,
    ResultUpdate,
    SponsorCreate,
    SponsorUpdate,
    StatsResponse,
)
from maio.service import (
    create_resource,
    decode_data,
    delete_resource,
    get_resource,
    list_resource,
    parse_payload,
    remove_duplicates,
    store_errors,
    today,
    update_resource,
    validate_payload,
)
from maio.uploads import UploadStore

logger = logging.getLogger(__name__)

router = APIRouter()


def _page(spec: ResourceSpec):
    def paging(
        page: int = Query(1, ge=1),
        limit: int = Query(spec.default_limit, ge=1, le=spec.max_limit),
    ) -> ListQuery:
        return ListQuery(page=page, limit=limit)

    return paging


# News


@router.get("/news")
def list_news(
    query: ListQuery = Depends(_page(ARTICLES)),
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    featured: bool = Query(False),
    store: ResourceStore = Depends(get_store),
):
    query.filter_equal("category", category)
    if featured:
        query.equals["featured"] = True
    query.search = search or None
    return list_resource(store, ARTICLES, query, "fetch news articles")


@router.get("/news/categories", response_model=list[str])
def list_news_categories(store: ResourceStore = Depends(get_store)):
    with store_errors("fetch categories"):
        categories = store.distinct_values(ARTICLES, "category")
    return sorted(str(c) for c in categories)


@router.get("/news/{article_id}")
def get_article(article_id: str, store: ResourceStore = Depends(get_store)):
    return get_resource(store, ARTICLES, article_id)


@router.post("/news", status_code=201)
async def create_article(
    data: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    store: ResourceStore = Depends(get_store),
    uploads: UploadStore = Depends(get_upload_store),
):
    article = parse_payload(data, ArticleCreate)
    article.setdefault("publish_date", today())
    return await create_resource(store, uploads, ARTICLES, article, image)


@router.put("/news/{article_id}")
async def update_article(
    article_id: str,
    data: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    store: ResourceStore = Depends(get_store),
    uploads: UploadStore = Depends(get_upload_store),
):
    changes = parse_payload(data, ArticleUpdate)
    changes["updated_date"] = today()
    return await update_resource(store, uploads, ARTICLES, article_id, changes, image)


@router.delete("/news/{article_id}", response_model=MessageResponse)
def delete_article(
    article_id: str,
    store: ResourceStore = Depends(get_store),
    uploads: UploadStore = Depends(get_upload_store),
):
    return delete_resource(store, uploads, ARTICLES, article_id)


# Events


@router.get("/events")
def list_events(
    query: ListQuery = Depends(_page(EVENTS)),
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    upcoming: bool = Query(False),
    store: ResourceStore = Depends(get_store),
):
    query.filter_equal("category", category)
    if upcoming:
        query.at_least["date"] = today()
    query.search = search or None
    return list_resource(store, EVENTS, query, "fetch events")


@router.get("/events/{event_id}")
def get_event(event_id: str, store: ResourceStore = Depends(get_store)):
    return get_resource(store, EVENTS, event_id)


@router.post("/events", status_code=201)
async def create_event(
    data: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    store: ResourceStore = Depends(get_store),
    uploads: UploadStore = Depends(get_upload_store),
):
    event = parse_payload(data, EventCreate)
    return await create_resource(store, uploads, EVENTS, event, image)


@router.put("/events/{event_id}")
async def update_event(
    event_id: str,
    data: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    store: ResourceStore = Depends(get_store),
    uploads: UploadStore = Depends(get_upload_store),
):
    changes = parse_payload(data, EventUpdate)
    return await update_resource(store, uploads, EVENTS, event_id, changes, image)


@router.delete("/events/{event_id}", response_model=MessageResponse)
def delete_event(
    event_id: str,
    store: ResourceStore = Depends(get_store),
    uploads: UploadStore = Depends(get_upload_store),
):
    return delete_resource(store, uploads, EVENTS, event_id)


# Media


@router.get("/media")
def list_media(
    query: ListQuery = Depends(_page(MEDIA)),
    media_type: Optional[str] = Query(None, alias="type"),
    search: Optional[str] = Query(None),
    store: ResourceStore = Depends(get_store),
):
    query.filter_equal("type", media_type)
    query.search = search or None
    return list_resource(store, MEDIA, query, "fetch media")


@router.get("/media/{media_id}")
def get_media(media_id: str, store: ResourceStore = Depends(get_store)):
    return get_resource(store, MEDIA, media_id)


@router.post("/media", status_code=201)
async def upload_media(
    file: Optional[UploadFile] = File(None),
    data: Optional[str] = Form(None),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    store: ResourceStore = Depends(get_store),
    uploads: UploadStore = Depends(get_upload_store),
):
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")

    # Individual form fields are accepted alongside (and overridden by) ``data``.
    fields = {
        key: value
        for key, value in (
            ("title", title),
            ("description", description),
            ("category", category),
        )
        if value is not None
    }
    if tags:
        try:
            fields["tags"] = json.loads(tags)
        except json.JSONDecodeError:
            raise HTTPException(status_code=400, detail="tags must be a JSON list")
    fields.update(decode_data(data))
    media = validate_payload(fields, MediaCreate)
    media.setdefault("category", "uncategorized")
    return await create_resource(store, uploads, MEDIA, media, file)


@router.delete("/media/{media_id}", response_model=MessageResponse)
def delete_media(
    media_id: str,
    store: ResourceStore = Depends(get_store),
    uploads: UploadStore = Depends(get_upload_store),
):
    return delete_resource(store, uploads, MEDIA, media_id)


# Results


@router.get("/results")
def list_results(
    query: ListQuery = Depends(_page(RESULTS)),
    category: Optional[str] = Query(None),
    year: Optional[int] = Query(None),
    search: Optional[str] = Query(None),
    store: ResourceStore = Depends(get_store),
):
    query.filter_equal("category", category)
    query.filter_equal("year", year)
    query.search = search or None
    return list_resource(store, RESULTS, query, "fetch results")


@router.get("/results/{result_id}")
def get_result(result_id: str, store: ResourceStore = Depends(get_store)):
    return get_resource(store, RESULTS, result_id)


@router.post("/results", status_code=201)
async def create_result(
    payload: ResultCreate,
    store: ResourceStore = Depends(get_store),
    uploads: UploadStore = Depends(get_upload_store),
):
    return await create_resource(store, uploads, RESULTS, payload.to_store())


@router.put("/results/{result_id}")
async def update_result(
    result_id: str,
    payload: ResultUpdate,
    store: ResourceStore = Depends(get_store),
    uploads: UploadStore = Depends(get_upload_store),
):
    return await update_resource(store, uploads, RESULTS, result_id, payload.to_store())


@router.delete("/results/{result_id}", response_model=MessageResponse)
def delete_result(
    result_id: str,
    store: ResourceStore = Depends(get_store),
    uploads: UploadStore = Depends(get_upload_store),
):
    return delete_resource(store, uploads, RESULTS, result_id)


# Sponsors


@router.get("/sponsors")
def list_sponsors(
    query: ListQuery = Depends(_page(SPONSORS)),
    active: bool = Query(False),
    tier: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    store: ResourceStore = Depends(get_store),
):
    if active:
        query.equals["active"] = True
    query.filter_equal("tier", tier)
    query.search = search or None
    return list_resource(store, SPONSORS, query, "fetch sponsors")


@router.get("/sponsors/{sponsor_id}")
def get_sponsor(sponsor_id: str, store: ResourceStore = Depends(get_store)):
    return get_resource(store, SPONSORS, sponsor_id)


@router.post("/sponsors", status_code=201)
async def create_sponsor(
    data: Optional[str] = Form(None),
    logo: Optional[UploadFile] = File(None),
    store: ResourceStore = Depends(get_store),
    uploads: UploadStore = Depends(get_upload_store),
):
    sponsor = parse_payload(data, SponsorCreate)
    sponsor.setdefault("active", True)
    if sponsor.get("order") is None:
        sponsor["order"] = 0
    return await create_resource(store, uploads, SPONSORS, sponsor, logo)


@router.put("/sponsors/{sponsor_id}")
async def update_sponsor(
    sponsor_id: str,
    data: Optional[str] = Form(None),
    logo: Optional[UploadFile] = File(None),
    store: ResourceStore = Depends(get_store),
    uploads: UploadStore = Depends(get_upload_store),
):
    changes = parse_payload(data, SponsorUpdate)
    return await update_resource(store, uploads, SPONSORS, sponsor_id, changes, logo)


@router.delete("/sponsors/{sponsor_id}", response_model=MessageResponse)
def delete_sponsor(
    sponsor_id: str,
    store: ResourceStore = Depends(get_store),
    uploads: UploadStore = Depends(get_upload_store),
):
    return delete_resource(store, uploads, SPONSORS, sponsor_id)


# Service


@router.get("/health", response_model=HealthResponse)
def health(store: ResourceStore = Depends(get_store)):
    return HealthResponse(
        status="OK",
        timestamp=datetime.now(timezone.utc).isoformat(),
        database=store.backend_name,
    )


@router.get("/stats", response_model=StatsResponse)
def stats(store: ResourceStore = Depends(get_store)):
    with store_errors("fetch collection stats"):
        counts = {spec.collection: store.count_documents(spec) for spec in ALL_RESOURCES}
    return StatsResponse(**counts)


@router.post("/cleanup", response_model=CleanupResponse)
def cleanup_duplicates(
    settings: Settings = Depends(get_app_settings),
    store: ResourceStore = Depends(get_store),
    uploads: UploadStore = Depends(get_upload_store),
):
    """
    Development helper: delete records sharing a title (sponsors: name),
    keeping the earliest one of each group.
    """
    if not settings.enable_cleanup_endpoint:
        raise HTTPException(status_code=403, detail="Cleanup endpoint is disabled")
    with store_errors("cleanup duplicates"):
        results = {
            spec.collection: remove_duplicates(store, uploads, spec)
            for spec in ALL_RESOURCES
        }
    return CleanupResponse(message="Cleanup completed", results=results)
