"""Fingerprinting and the persistent TTL cache of cover resolutions."""

from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime, timedelta
from typing import Any, Callable

from models import CacheEntry, CatalogRecord, Cover
from storage import KeyValueStore

# Bump whenever matching semantics change; old entries then stop matching.
COVER_CACHE_PREFIX = "cover_v2:"
# ASCII unit separator, never present in catalog text.
_FIELD_SEPARATOR = "\x1f"

POSITIVE_TTL = timedelta(days=30)
NEGATIVE_TTL = timedelta(hours=24)
FAILURE_TTL = timedelta(minutes=10)

LOGGER = logging.getLogger(__name__)


def fingerprint(record: CatalogRecord) -> str:
    """Cache key for a record. Records sharing title/author/publisher collide."""
    parts = (record.title.strip(), record.author.strip(), record.publisher.strip())
    return COVER_CACHE_PREFIX + _FIELD_SEPARATOR.join(parts)


def ttls_from_env() -> dict[str, timedelta]:
    """Read TTL overrides; call after ``load_dotenv()``."""
    ttls = {
        "positive_ttl": timedelta(days=float(os.getenv("COVER_POSITIVE_TTL_DAYS", "30"))),
        "negative_ttl": timedelta(hours=float(os.getenv("COVER_NEGATIVE_TTL_HOURS", "24"))),
        "failure_ttl": timedelta(minutes=float(os.getenv("COVER_FAILURE_TTL_MINUTES", "10"))),
    }
    for name, ttl in ttls.items():
        if ttl <= timedelta(0):
            raise RuntimeError(f"Cover cache {name} must be positive, got {ttl}")
    return ttls


class CoverCache:
    """TTL cache over a ``KeyValueStore``.

    Entries are serialized as ``{"value": {...} | null, "expires_at": iso8601}``.
    Expired or unreadable entries are deleted on read and reported as absent.
    Storage failures are never raised.
    """

    def __init__(
        self,
        store: KeyValueStore,
        positive_ttl: timedelta = POSITIVE_TTL,
        negative_ttl: timedelta = NEGATIVE_TTL,
        failure_ttl: timedelta = FAILURE_TTL,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        for name, ttl in (("positive_ttl", positive_ttl), ("negative_ttl", negative_ttl), ("failure_ttl", failure_ttl)):
            if ttl <= timedelta(0):
                raise ValueError(f"Cover cache {name} must be positive, got {ttl}")
        self.store = store
        self.positive_ttl = positive_ttl
        self.negative_ttl = negative_ttl
        self.failure_ttl = failure_ttl
        self._now = now or (lambda: datetime.now(UTC))

    def get(self, key: str) -> CacheEntry | None:
        result = self.store.read(key)
        if not result.ok:
            LOGGER.debug("Cover cache read failed for key=%r: %s", key, result.error)
            return None
        if result.value is None:
            return None

        entry = _decode_entry(key, result.value)
        if entry is None or entry.expires_at <= self._now():
            self.store.delete(key)
            return None
        return entry

    def set(self, key: str, outcome: Cover | None, ttl: timedelta) -> None:
        if ttl <= timedelta(0):
            raise ValueError("Cache TTL must be positive")
        expires_at = self._now() + ttl
        payload = {
            "value": outcome.to_dict() if outcome is not None else None,
            "expires_at": expires_at.isoformat(),
        }
        result = self.store.write(key, json.dumps(payload, ensure_ascii=False))
        if not result.ok:
            LOGGER.debug("Cover cache write failed for key=%r: %s", key, result.error)

    def remember_found(self, key: str, cover: Cover) -> None:
        self.set(key, cover, self.positive_ttl)

    def remember_not_found(self, key: str) -> None:
        self.set(key, None, self.negative_ttl)

    def remember_failure(self, key: str) -> None:
        self.set(key, None, self.failure_ttl)


def _decode_entry(key: str, raw: str) -> CacheEntry | None:
    try:
        payload = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(payload, dict) or "value" not in payload:
        return None

    expires_at = _parse_datetime(payload.get("expires_at"))
    if expires_at is None:
        return None

    value = payload.get("value")
    if value is None:
        return CacheEntry(key=key, outcome=None, expires_at=expires_at)
    cover = _decode_cover(value)
    if cover is None:
        return None
    return CacheEntry(key=key, outcome=cover, expires_at=expires_at)


def _decode_cover(value: Any) -> Cover | None:
    if not isinstance(value, dict):
        return None
    image = value.get("image")
    if not isinstance(image, str) or not image.strip():
        return None
    link = value.get("link")
    return Cover(image=image.strip(), link=link.strip() if isinstance(link, str) else "")


def _parse_datetime(raw: Any) -> datetime | None:
    if not isinstance(raw, str) or not raw:
        return None
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed
