"""
Pydantic schemas for the MAIO content API.

Create and update payloads are dumped with ``exclude_unset=True`` so only the
fields a client actually sent reach the store.
"""

from __future__ import annotations

import datetime as dt
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

SponsorTier = Literal["platinum", "gold", "silver", "bronze", "partner", "supporter"]


class Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    def to_store(self) -> dict:
        return self.model_dump(mode="json", exclude_unset=True)


class BilingualText(Payload):
    en: str = ""
    mn: str = ""


class Ranking(Payload):
    rank: int
    team: str
    # Whole-number scores stay integers.
    score: Union[int, float]
    members: list[str] = Field(default_factory=list)
    prize: Optional[str] = None


class ArticleCreate(Payload):
    title: BilingualText
    content: BilingualText
    summary: Optional[BilingualText] = None
    category: Optional[str] = None
    author: Optional[str] = None
    publish_date: Optional[dt.date] = None
    image_url: Optional[str] = None
    tags: Optional[list[str]] = None
    featured: Optional[bool] = None


class ArticleUpdate(Payload):
    title: Optional[BilingualText] = None
    content: Optional[BilingualText] = None
    summary: Optional[BilingualText] = None
    category: Optional[str] = None
    author: Optional[str] = None
    publish_date: Optional[dt.date] = None
    image_url: Optional[str] = None
    tags: Optional[list[str]] = None
    featured: Optional[bool] = None


class EventCreate(Payload):
    title: BilingualText
    description: Optional[BilingualText] = None
    date: dt.date
    time: Optional[str] = None
    location: Optional[BilingualText] = None
    category: Optional[str] = None
    image_url: Optional[str] = None
    participants: Optional[int] = Field(default=None, ge=0)


class EventUpdate(Payload):
    title: Optional[BilingualText] = None
    description: Optional[BilingualText] = None
    date: Optional[dt.date] = None
    time: Optional[str] = None
    location: Optional[BilingualText] = None
    category: Optional[str] = None
    image_url: Optional[str] = None
    participants: Optional[int] = Field(default=None, ge=0)


class MediaCreate(Payload):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[list[str]] = None


class ResultCreate(Payload):
    title: BilingualText
    description: Optional[BilingualText] = None
    year: int
    date: Optional[dt.date] = None
    category: Optional[str] = None
    rankings: list[Ranking] = Field(default_factory=list)


class ResultUpdate(Payload):
    title: Optional[BilingualText] = None
    description: Optional[BilingualText] = None
    year: Optional[int] = None
    date: Optional[dt.date] = None
    category: Optional[str] = None
    rankings: Optional[list[Ranking]] = None


class SponsorCreate(Payload):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None
    tier: Optional[SponsorTier] = None
    active: Optional[bool] = None
    order: Optional[int] = None


class SponsorUpdate(Payload):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None
    tier: Optional[SponsorTier] = None
    active: Optional[bool] = None
    order: Optional[int] = None


class PaginationResponse(BaseModel):
    current: int
    pages: int
    total: int


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: Literal["OK"]
    timestamp: str
    database: str


class StatsResponse(BaseModel):
    articles: int
    events: int
    media: int
    results: int
    sponsors: int


class CleanupCounts(BaseModel):
    duplicate_groups: int
    deleted_documents: int


class CleanupResponse(BaseModel):
    message: str
    results: dict[str, CleanupCounts]
