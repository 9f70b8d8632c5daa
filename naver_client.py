"""Naver Book Search client used for cover lookups and live search."""

from __future__ import annotations

import logging
import os
from typing import Any

import requests

from models import SearchCandidate

# Official Naver Open API endpoint. Credentials are issued per application.
NAVER_BOOK_API_URL = "https://openapi.naver.com/v1/search/book.json"
REQUEST_TIMEOUT_SECONDS = 10
MAX_DISPLAY = 100

LOGGER = logging.getLogger(__name__)


def search_books(query: str, display: int = 10) -> dict[str, Any]:
    """Run one keyword search and return the decoded response body.

    Goes through ``NAVER_PROXY_URL`` when it is set (no credentials are sent),
    otherwise calls the Naver API directly with ``NAVER_CLIENT_ID`` and
    ``NAVER_CLIENT_SECRET``.

    Raises:
        ValueError: the query is blank.
        RuntimeError: credentials are missing or the body is not JSON.
        requests.RequestException: transport failure or non-2xx status.
    """
    query = (query or "").strip()
    if not query:
        raise ValueError("Search query must not be empty")

    display = max(1, min(int(display), MAX_DISPLAY))
    proxy_url = os.getenv("NAVER_PROXY_URL", "").strip()

    if proxy_url:
        url = proxy_url
        params: dict[str, Any] = {"q": query, "display": display, "sort": "sim"}
        headers: dict[str, str] = {}
    else:
        url = NAVER_BOOK_API_URL
        params = {"query": query, "display": display, "sort": "sim"}
        headers = _naver_headers()

    LOGGER.debug("Naver search: query=%r display=%s proxy=%s", query, display, bool(proxy_url))
    response = requests.get(url, params=params, headers=headers, timeout=REQUEST_TIMEOUT_SECONDS)
    response.raise_for_status()

    try:
        return response.json()
    except ValueError as exc:
        raise RuntimeError(f"Naver search returned a non-JSON body for query={query!r}") from exc


def search_candidates(query: str, display: int = 10) -> list[SearchCandidate]:
    """Search and parse in one step."""
    return parse_search_items(search_books(query, display=display))


def parse_search_items(payload: Any) -> list[SearchCandidate]:
    """Map a search response to candidates. A missing or malformed ``items`` is empty."""
    if not isinstance(payload, dict):
        return []
    items = payload.get("items")
    if not isinstance(items, list):
        return []

    parsed: list[SearchCandidate] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        parsed.append(
            SearchCandidate(
                title=_as_str(item.get("title")),
                author=_as_str(item.get("author")),
                publisher=_as_str(item.get("publisher")),
                isbn=_as_str(item.get("isbn")),
                image=_as_str(item.get("image")),
                link=_as_str(item.get("link")),
            )
        )
    return parsed


def _naver_headers() -> dict[str, str]:
    client_id = os.getenv("NAVER_CLIENT_ID")
    client_secret = os.getenv("NAVER_CLIENT_SECRET")
    if not client_id or not client_secret:
        raise RuntimeError(
            "NAVER_CLIENT_ID and NAVER_CLIENT_SECRET environment variables are required "
            "(or set NAVER_PROXY_URL)"
        )
    return {
        "X-Naver-Client-Id": client_id,
        "X-Naver-Client-Secret": client_secret,
    }


def _as_str(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""
