"""Resolve one catalog record to at most one cover image."""

from __future__ import annotations

import logging
from typing import Callable

from cover_cache import CoverCache, fingerprint
from matching import DEFAULT_POLICY, ScoringPolicy, best_candidate, is_confident_match
from models import CatalogRecord, Cover, SearchCandidate
from naver_client import search_candidates
from query_builder import MAX_QUERY_TIERS, build_queries

COVER_SEARCH_DISPLAY = 5

LOGGER = logging.getLogger(__name__)

SearchFn = Callable[[str, int], list[SearchCandidate]]


class CoverResolver:
    """Cache lookup, staged searches, scoring and cache write-back for one record.

    ``resolve`` never raises. Outcomes:

    - cache hit: stored outcome, no search issued
    - no usable title: negative, standard TTL, no search issued
    - passing candidate with an image: positive, long TTL, later tiers skipped
    - all tiers exhausted: negative, standard TTL
    - any error while searching: negative, short failure TTL
    """

    def __init__(
        self,
        cache: CoverCache,
        search: SearchFn | None = None,
        policy: ScoringPolicy = DEFAULT_POLICY,
        display: int = COVER_SEARCH_DISPLAY,
    ) -> None:
        self.cache = cache
        self.search = search or search_candidates
        self.policy = policy
        self.display = display
        self.searches_issued = 0

    def resolve(self, record: CatalogRecord) -> Cover | None:
        key = fingerprint(record)
        cached = self.cache.get(key)
        if cached is not None:
            LOGGER.debug("Cover cache hit: title=%r found=%s", record.title, cached.outcome is not None)
            return cached.outcome

        try:
            cover = self._search_tiers(record)
        except Exception as exc:  # any failure degrades to "no cover"
            LOGGER.warning("Cover lookup failed for title=%r: %s", record.title, exc)
            self.cache.remember_failure(key)
            return None

        if cover is None:
            self.cache.remember_not_found(key)
        else:
            self.cache.remember_found(key, cover)
        return cover

    def _search_tiers(self, record: CatalogRecord) -> Cover | None:
        queries = build_queries(record)
        if not queries:
            LOGGER.info("Cover lookup skipped, no title: %r", record)
            return None

        for tier, query in enumerate(queries[:MAX_QUERY_TIERS], start=1):
            self.searches_issued += 1
            candidates = self.search(query, self.display)
            if not candidates:
                LOGGER.debug("Cover tier %s returned nothing: query=%r", tier, query)
                continue

            best = best_candidate(record, candidates, self.policy)
            if is_confident_match(best, self.policy):
                LOGGER.info(
                    "Cover matched: title=%r tier=%s score=%s",
                    record.title,
                    tier,
                    best.score,
                )
                return Cover(image=best.candidate.image.strip(), link=best.candidate.link.strip())

            LOGGER.debug(
                "Cover tier %s below threshold: query=%r best_score=%s",
                tier,
                query,
                best.score if best else None,
            )

        LOGGER.info("Cover not found: title=%r tiers=%s", record.title, len(queries))
        return None
