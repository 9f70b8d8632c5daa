"""Sequential, budgeted cover resolution over a filtered record list."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import StrEnum
from typing import Callable

from cover_cache import fingerprint
from models import CatalogRecord, Cover

DEFAULT_BUDGET = 18

LOGGER = logging.getLogger(__name__)


class CoverState(StrEnum):
    PENDING = "pending"
    FOUND = "found"
    NOT_FOUND = "not_found"
    NOT_ATTEMPTED = "not_attempted"


@dataclass(frozen=True, slots=True)
class CoverUpdate:
    """Presentation state of one record, addressed by its fingerprint."""

    fingerprint: str
    record: CatalogRecord
    state: CoverState
    cover: Cover | None = None


def resolve_all(
    records: list[CatalogRecord],
    resolve: Callable[[CatalogRecord], Cover | None],
    budget: int = DEFAULT_BUDGET,
    on_update: Callable[[CoverUpdate], None] | None = None,
    interval_seconds: float = 0.0,
) -> list[CoverUpdate]:
    """Resolve covers for the first ``budget`` records, one at a time.

    ``on_update`` first receives a placeholder for every record (``PENDING``
    within the budget, ``NOT_ATTEMPTED`` beyond it), then one ``FOUND`` or
    ``NOT_FOUND`` update per attempted record as soon as it completes.
    Returns the final state of every record in input order.

    Args:
        records: Records in display order.
        resolve: Single-record resolver; expected not to raise.
        budget: Maximum number of records to attempt.
        on_update: Optional sink for incremental updates.
        interval_seconds: Pause between consecutive lookups.
    """
    budget = max(0, int(budget))
    emit = on_update or (lambda update: None)

    final: list[CoverUpdate] = []
    for index, record in enumerate(records):
        state = CoverState.PENDING if index < budget else CoverState.NOT_ATTEMPTED
        update = CoverUpdate(fingerprint=fingerprint(record), record=record, state=state)
        final.append(update)
        emit(update)

    attempted = final[:budget]
    found = 0
    for index, placeholder in enumerate(attempted):
        if index > 0 and interval_seconds > 0:
            time.sleep(interval_seconds)

        try:
            cover = resolve(placeholder.record)
        except Exception as exc:  # keep the batch going if a resolver misbehaves
            LOGGER.exception("Cover resolution raised for title=%r: %s", placeholder.record.title, exc)
            cover = None

        state = CoverState.FOUND if cover is not None else CoverState.NOT_FOUND
        found += state is CoverState.FOUND
        update = CoverUpdate(
            fingerprint=placeholder.fingerprint,
            record=placeholder.record,
            state=state,
            cover=cover,
        )
        final[index] = update
        emit(update)

    LOGGER.info(
        "Cover batch complete: total=%s attempted=%s found=%s not_attempted=%s",
        len(records),
        len(attempted),
        found,
        len(records) - len(attempted),
    )
    return final
