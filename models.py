"""Shared typed models for cover resolution."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class CatalogRecord:
    """Normalized catalog entry; track, major and title are never empty."""

    track: str
    major: str
    title: str
    author: str = ""
    publisher: str = ""


@dataclass(frozen=True, slots=True)
class Cover:
    image: str
    link: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"image": self.image, "link": self.link}


@dataclass(frozen=True, slots=True)
class SearchCandidate:
    """One raw search result. Fields may carry markup such as <b>...</b>."""

    title: str = ""
    author: str = ""
    publisher: str = ""
    isbn: str = ""
    image: str = ""
    link: str = ""


@dataclass(frozen=True, slots=True)
class ScoredCandidate:
    candidate: SearchCandidate
    score: int


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """Stored resolution outcome. ``outcome`` is None for a negative result."""

    key: str
    outcome: Cover | None
    expires_at: datetime
