"""Staged search queries for one catalog record."""

from __future__ import annotations

from models import CatalogRecord

MAX_QUERY_TIERS = 3


def build_queries(record: CatalogRecord) -> list[str]:
    """Return up to three queries, most specific first.

    Tiers are title+author+publisher, title+author, then title alone. Missing
    parts are left out and a tier equal to an earlier one is dropped. A record
    without a title gets no queries at all.
    """
    title = record.title.strip()
    if not title:
        return []
    author = record.author.strip()
    publisher = record.publisher.strip()

    tiers = [
        _join(title, author, publisher),
        _join(title, author),
        title,
    ]

    queries: list[str] = []
    for query in tiers:
        if query and query not in queries:
            queries.append(query)
    return queries[:MAX_QUERY_TIERS]


def _join(*parts: str) -> str:
    return " ".join(part for part in parts if part)
