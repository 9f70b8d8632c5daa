"""Catalog loading and in-memory filtering."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from models import CatalogRecord

_DEFAULT_CATALOG_PATH = "data.json"

LOGGER = logging.getLogger(__name__)


def load_catalog(path: str | None = None) -> list[CatalogRecord]:
    """Load catalog records from a JSON list.

    Every field is coerced to a trimmed string. Entries without a track,
    major or title are dropped.
    """
    catalog_path = Path(path or os.getenv("CATALOG_PATH", _DEFAULT_CATALOG_PATH))
    payload = json.loads(catalog_path.read_text(encoding="utf-8"))
    records = parse_catalog_payload(payload)
    LOGGER.info(
        "Catalog: path=%s raw_count=%s kept=%s",
        catalog_path,
        len(payload),
        len(records),
    )
    return records


def parse_catalog_payload(payload: Any) -> list[CatalogRecord]:
    if not isinstance(payload, list):
        raise RuntimeError("Unexpected catalog payload shape: expected a list")

    records: list[CatalogRecord] = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        record = CatalogRecord(
            track=_as_text(item.get("track")),
            major=_as_text(item.get("major")),
            title=_as_text(item.get("title")),
            author=_as_text(item.get("author")),
            publisher=_as_text(item.get("publisher")),
        )
        if not record.track or not record.major or not record.title:
            continue
        records.append(record)
    return records


def filter_catalog(
    records: list[CatalogRecord],
    track: str = "",
    major: str = "",
    query: str = "",
) -> list[CatalogRecord]:
    """Apply track, major and keyword filters, preserving catalog order."""
    track = _as_text(track)
    major = _as_text(major)
    needle = _as_text(query).lower()

    items = records
    if track:
        items = [r for r in items if r.track == track]
    if major:
        items = [r for r in items if r.major == major]
    if needle:
        items = [r for r in items if needle in _haystack(r)]
    return list(items)


def major_options(records: list[CatalogRecord], track: str = "") -> list[str]:
    """Distinct majors, sorted, optionally restricted to one track."""
    track = _as_text(track)
    return sorted({r.major for r in records if not track or r.track == track})


def _haystack(record: CatalogRecord) -> str:
    parts = [record.track, record.major, record.title, record.author, record.publisher]
    return " ".join(part.lower() for part in parts)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()
