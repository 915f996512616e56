"""
In-memory filtering and sorting of reference lists.

The lists are small, so filtering happens after loading them rather than
in SQL.
"""

from collections.abc import Mapping, Sequence
from typing import Any

from ..models import SortOrder
from ..models_db import Profile, Reference


def _contains(value: str | None, query: str) -> bool:
    return bool(value) and query in value.lower()


def filter_references(references: Sequence[Reference], query: str | None) -> list[Reference]:
    """
    Case-insensitive search over title, abstract, journal and authors.

    An empty query matches everything.
    """
    if not query:
        return list(references)
    q = query.lower()
    return [
        ref
        for ref in references
        if _contains(ref.title, q)
        or _contains(ref.abstract, q)
        or _contains(ref.journal, q)
        or any(_contains(author, q) for author in ref.authors or [])
    ]


def sort_references(references: Sequence[Reference], order: SortOrder) -> list[Reference]:
    """Sort by creation date (newest or oldest first) or by title."""
    if order == SortOrder.OLDEST:
        return sorted(references, key=lambda ref: ref.created_at)
    if order == SortOrder.TITLE:
        return sorted(references, key=lambda ref: ref.title.casefold())
    return sorted(references, key=lambda ref: ref.created_at, reverse=True)


def filter_admin_references(
    references: Sequence[Reference],
    profiles: Mapping[Any, Profile],
    query: str | None,
) -> list[Reference]:
    """Admin search over title, journal and the contributor's name."""
    if not query:
        return list(references)
    q = query.lower()
    result = []
    for ref in references:
        profile = profiles.get(ref.user_id)
        contributor = profile.full_name if profile else None
        if _contains(ref.title, q) or _contains(ref.journal, q) or _contains(contributor, q):
            result.append(ref)
    return result
