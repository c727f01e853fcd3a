"""Query normalization shared by the matcher, grep and ranking."""

from __future__ import annotations


def normalize_query(query: str) -> str:
    """Strip and case-fold a whole query for filename matching."""
    return query.strip().lower()


def query_terms(query: str) -> tuple[str, ...]:
    """Split a query on whitespace into case-folded terms, first occurrence kept."""
    seen: dict[str, None] = {}
    for raw in query.split():
        seen.setdefault(raw.lower(), None)
    return tuple(seen)
