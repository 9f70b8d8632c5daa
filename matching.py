"""Heuristic matching of search candidates against catalog records.

The search service matches lexically and returns loosely related books, so
each candidate is scored on containment of title, author and publisher.
Containment tolerates subtitles and reordering cheaply, which is why no edit
distance is used.
"""

from __future__ import annotations

import html
import os
import re
from dataclasses import dataclass

from models import CatalogRecord, ScoredCandidate, SearchCandidate

_MARKUP_RE = re.compile(r"<[^>]*>")
_NON_ALNUM_RE = re.compile(r"[\W_]+")

# Role words the search service appends to author names ("홍길동 지음").
_AUTHOR_ROLE_TOKENS: frozenset[str] = frozenset({
    "지음",
    "저",
    "공저",
    "편저",
    "글",
    "엮음",
    "편",
    "편집",
    "옮김",
    "역",
    "번역",
    "감수",
    "그림",
    "author",
    "authors",
    "editor",
    "editors",
    "ed",
    "eds",
    "translator",
    "translated",
    "trans",
})

_MIN_WORD_LENGTH = 2


@dataclass(frozen=True, slots=True)
class ScoringPolicy:
    """Point weights and pass threshold.

    The defaults were calibrated by hand: the maximum is 110 points, title
    containment plus author (95) passes, partial title overlap alone (at most
    40) does not.
    """

    threshold: int = 60
    title_contains: int = 70
    title_word: int = 10
    title_word_cap: int = 40
    author_contains: int = 25
    publisher_contains: int = 12
    identifier_present: int = 3

    @classmethod
    def from_env(cls) -> ScoringPolicy:
        return cls(
            threshold=int(os.getenv("COVER_MATCH_THRESHOLD", "60")),
            title_contains=int(os.getenv("COVER_WEIGHT_TITLE_CONTAINS", "70")),
            title_word=int(os.getenv("COVER_WEIGHT_TITLE_WORD", "10")),
            title_word_cap=int(os.getenv("COVER_WEIGHT_TITLE_WORD_CAP", "40")),
            author_contains=int(os.getenv("COVER_WEIGHT_AUTHOR", "25")),
            publisher_contains=int(os.getenv("COVER_WEIGHT_PUBLISHER", "12")),
            identifier_present=int(os.getenv("COVER_WEIGHT_IDENTIFIER", "3")),
        )


DEFAULT_POLICY = ScoringPolicy()


def strip_markup(text: str) -> str:
    """Remove tags and decode entities, for display."""
    return html.unescape(_MARKUP_RE.sub("", text or "")).strip()


def normalize_key(text: str) -> str:
    """Markup-free, lowercase, with every non-alphanumeric run collapsed to one space."""
    cleaned = strip_markup(text).lower()
    return _NON_ALNUM_RE.sub(" ", cleaned).strip()


def normalize_author(text: str) -> str:
    """``normalize_key`` plus removal of role words such as 지음 or editor."""
    tokens = [tok for tok in normalize_key(text).split() if tok not in _AUTHOR_ROLE_TOKENS]
    return " ".join(tokens)


def score_candidate(
    record: CatalogRecord,
    candidate: SearchCandidate,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> int:
    """Score how plausibly ``candidate`` is the same book as ``record``."""
    score = _title_points(normalize_key(record.title), normalize_key(candidate.title), policy)

    record_author = normalize_author(record.author)
    if record_author and _either_contains(record_author, normalize_author(candidate.author)):
        score += policy.author_contains

    record_publisher = normalize_key(record.publisher)
    if record_publisher and _either_contains(record_publisher, normalize_key(candidate.publisher)):
        score += policy.publisher_contains

    if candidate.isbn.strip():
        score += policy.identifier_present

    return score


def best_candidate(
    record: CatalogRecord,
    candidates: list[SearchCandidate],
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> ScoredCandidate | None:
    """Highest-scoring candidate; ties keep the earliest in service order."""
    best: ScoredCandidate | None = None
    for candidate in candidates:
        score = score_candidate(record, candidate, policy)
        if best is None or score > best.score:
            best = ScoredCandidate(candidate=candidate, score=score)
    return best


def is_confident_match(scored: ScoredCandidate | None, policy: ScoringPolicy = DEFAULT_POLICY) -> bool:
    """True when the score passes and the candidate actually has an image."""
    if scored is None:
        return False
    return scored.score >= policy.threshold and bool(scored.candidate.image.strip())


def _title_points(record_title: str, candidate_title: str, policy: ScoringPolicy) -> int:
    if not record_title or not candidate_title:
        return 0
    if _either_contains(record_title, candidate_title):
        return policy.title_contains

    words = {word for word in record_title.split() if len(word) >= _MIN_WORD_LENGTH}
    matches = sum(1 for word in words if word in candidate_title)
    return min(policy.title_word * matches, policy.title_word_cap)


def _either_contains(a: str, b: str) -> bool:
    if not a or not b:
        return False
    return a in b or b in a
