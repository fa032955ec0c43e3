"""
Per-resource settings shared by the routes and every store implementation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class SortKey:
    field: str
    descending: bool = False


@dataclass(frozen=True)
class ResourceSpec:
    name: str
    collection: str
    list_key: str
    label: str
    search_fields: tuple[str, ...]
    sort: tuple[SortKey, ...]
    default_limit: int = 10
    # Upper bound for the ``limit`` query parameter; None leaves it uncapped.
    max_limit: Optional[int] = MAX_PAGE_SIZE
    # Form field carrying the upload and the record field storing its public path.
    file_field: Optional[str] = None
    file_ref: Optional[str] = None
    # Whether the record also keeps filename, size and MIME details of its file.
    file_details: bool = False
    # Field used to detect duplicate records during cleanup.
    identity_field: str = "title"
    int_fields: frozenset[str] = frozenset()
    bool_fields: frozenset[str] = frozenset()
    list_fields: frozenset[str] = frozenset()

    def not_found(self) -> str:
        return f"{self.label} not found"

    def invalid_id(self) -> str:
        return f"Invalid {self.label.lower()} ID"

    def deleted(self) -> str:
        return f"{self.label} deleted successfully"

    def field_kind(self, field: str) -> str:
        if field in self.int_fields:
            return "int"
        if field in self.bool_fields:
            return "bool"
        if field in self.list_fields:
            return "list"
        return "str"


ARTICLES = ResourceSpec(
    name="news",
    collection="articles",
    list_key="articles",
    label="Article",
    search_fields=("title.en", "title.mn", "content.en", "content.mn", "tags"),
    sort=(SortKey("publish_date", descending=True),),
    file_field="image",
    file_ref="image_url",
    bool_fields=frozenset({"featured"}),
    list_fields=frozenset({"tags"}),
)

EVENTS = ResourceSpec(
    name="events",
    collection="events",
    list_key="events",
    label="Event",
    search_fields=("title.en", "title.mn", "description.en", "description.mn"),
    sort=(SortKey("date"),),
    file_field="image",
    file_ref="image_url",
    int_fields=frozenset({"participants"}),
)

MEDIA = ResourceSpec(
    name="media",
    collection="media",
    list_key="media_items",
    label="Media",
    search_fields=("title", "description", "tags"),
    sort=(SortKey("created_at", descending=True),),
    default_limit=20,
    file_field="file",
    file_ref="url",
    file_details=True,
    int_fields=frozenset({"size"}),
    list_fields=frozenset({"tags"}),
)

RESULTS = ResourceSpec(
    name="results",
    collection="results",
    list_key="results",
    label="Result",
    search_fields=("title.en", "title.mn", "description.en", "description.mn"),
    sort=(SortKey("year", descending=True), SortKey("date", descending=True)),
    int_fields=frozenset({"year"}),
)

SPONSORS = ResourceSpec(
    name="sponsors",
    collection="sponsors",
    list_key="sponsors",
    label="Sponsor",
    search_fields=("name", "description"),
    sort=(SortKey("order"), SortKey("name")),
    default_limit=100,
    max_limit=None,
    file_field="logo",
    file_ref="logo_url",
    identity_field="name",
    int_fields=frozenset({"order"}),
    bool_fields=frozenset({"active"}),
)

ALL_RESOURCES = (ARTICLES, EVENTS, MEDIA, RESULTS, SPONSORS)
