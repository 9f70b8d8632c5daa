"""Debounced search-as-you-type over the book search service.

Each ``schedule`` call restarts a timer; the search is only issued once input
has been idle for the debounce delay. A query identical to the last issued one
is skipped until the input is cleared. Responses are tagged with a request sequence number and dropped if
a newer request was issued in the meantime, so a slow early response cannot
overwrite fresher results.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from models import SearchCandidate
from naver_client import search_candidates

DEBOUNCE_SECONDS = 0.45
LIVE_SEARCH_DISPLAY = 12

LOGGER = logging.getLogger(__name__)

ResultsFn = Callable[[str, list[SearchCandidate], str | None], None]


class LiveSearchController:
    """Per-session live search state.

    ``on_results(query, items, error)`` receives every outcome: results,
    a cleared panel (``query == ""``), or a failure (``error`` set, no items).
    """

    def __init__(
        self,
        on_results: ResultsFn,
        search: Callable[[str, int], list[SearchCandidate]] | None = None,
        delay_seconds: float = DEBOUNCE_SECONDS,
        display: int = LIVE_SEARCH_DISPLAY,
    ) -> None:
        self.on_results = on_results
        self.search = search or search_candidates
        self.delay_seconds = delay_seconds
        self.display = display
        self.last_query = ""
        self._pending_query = ""
        self._timer: threading.Timer | None = None
        self._sequence = 0
        self._armed = 0
        self._lock = threading.Lock()

    def schedule(self, text: str) -> None:
        query = (text or "").strip()
        with self._lock:
            self._cancel_timer()
            if not query:
                self._pending_query = ""
                self.last_query = ""
                self._sequence += 1
                clear = True
            else:
                self._pending_query = query
                self._timer = threading.Timer(self.delay_seconds, self._fire, args=(self._armed,))
                self._timer.daemon = True
                self._timer.start()
                clear = False
        if clear:
            self.on_results("", [], None)

    def flush(self) -> None:
        """Run the pending query now instead of waiting for the timer."""
        with self._lock:
            self._cancel_timer()
        self._fire()

    def reset(self) -> None:
        with self._lock:
            self._cancel_timer()
            self._pending_query = ""
            self.last_query = ""
            self._sequence += 1
        self.on_results("", [], None)

    def close(self) -> None:
        with self._lock:
            self._cancel_timer()

    def _fire(self, armed: int | None = None) -> None:
        with self._lock:
            # A timer cancelled after it started waiting on the lock.
            if armed is not None and armed != self._armed:
                return
            self._timer = None
            query = self._pending_query
            self._pending_query = ""
            if not query or query == self.last_query:
                return
            self.last_query = query
            self._sequence += 1
            sequence = self._sequence

        try:
            items = self.search(query, self.display)
            error: str | None = None
        except Exception as exc:  # reported to the panel, never raised
            LOGGER.error("Live search failed for query=%r: %s", query, exc)
            items, error = [], str(exc)

        with self._lock:
            if sequence != self._sequence:
                LOGGER.debug("Dropping stale live search response: query=%r seq=%s", query, sequence)
                return
        self.on_results(query, items, error)

    def _cancel_timer(self) -> None:
        self._armed += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
