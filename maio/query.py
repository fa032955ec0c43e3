"""
Store-independent list query, pagination and merge semantics.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Optional

from maio.resources import ResourceSpec

ALL = "all"


@dataclass
class ListQuery:
    """Filters and paging for a list call.

    ``equals`` holds exact-match filters, ``at_least`` holds inclusive lower
    bounds, and ``search`` is matched case-insensitively as a substring of any
    of the resource's search fields.
    """

    page: int = 1
    limit: int = 10
    equals: dict[str, Any] = field(default_factory=dict)
    at_least: dict[str, Any] = field(default_factory=dict)
    search: Optional[str] = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def filter_equal(self, name: str, value: Any) -> None:
        """Add an equality filter unless the value is empty or the ``all`` sentinel."""
        if value is None or value == "" or value == ALL:
            return
        self.equals[name] = value


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


def pagination(query: ListQuery, total: int) -> dict:
    return {
        "current": query.page,
        "pages": page_count(total, query.limit),
        "total": total,
    }


def get_path(doc: dict, dotted: str) -> Any:
    value: Any = doc
    for part in dotted.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _contains(value: Any, needle: str) -> bool:
    if isinstance(value, str):
        return needle in value.casefold()
    if isinstance(value, list):
        return any(_contains(item, needle) for item in value)
    return False


def matches(doc: dict, query: ListQuery, spec: ResourceSpec) -> bool:
    for name, expected in query.equals.items():
        if get_path(doc, name) != expected:
            return False
    for name, bound in query.at_least.items():
        value = get_path(doc, name)
        if value is None or value < bound:
            return False
    if query.search:
        needle = query.search.casefold()
        if not any(_contains(get_path(doc, f), needle) for f in spec.search_fields):
            return False
    return True


def sort_documents(docs: list[dict], spec: ResourceSpec) -> list[dict]:
    # Stable sorts applied from the least significant key; missing values first.
    ordered = list(docs)
    for key in reversed(spec.sort):
        present = [d for d in ordered if get_path(d, key.field) is not None]
        missing = [d for d in ordered if get_path(d, key.field) is None]
        present.sort(key=lambda d: get_path(d, key.field), reverse=key.descending)
        ordered = present + missing if key.descending else missing + present
    return ordered


def merge_update(existing: dict, changes: dict) -> dict:
    """Return ``existing`` with ``changes`` applied.

    Nested mappings are merged key by key so a partial bilingual update keeps
    the other language. Lists and scalars replace the stored value.
    """
    merged = dict(existing)
    for key, value in changes.items():
        current = merged.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            merged[key] = merge_update(current, value)
        else:
            merged[key] = value
    return merged


def flatten_update(
    changes: dict, existing: Optional[dict] = None, prefix: str = ""
) -> dict:
    """Flatten nested mappings into dotted paths for field-level ``$set``.

    Only mappings whose stored counterpart in ``existing`` is also a mapping
    are flattened; anything else (missing, null, scalar) is set whole, so the
    result matches ``merge_update``.
    """
    existing = existing or {}
    flat: dict = {}
    for key, value in changes.items():
        path = f"{prefix}{key}"
        current = existing.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            flat.update(flatten_update(value, current, prefix=f"{path}."))
        else:
            flat[path] = value
    return flat
