"""CSV export of resolved catalog covers."""

from __future__ import annotations

import csv
import logging
import os
from pathlib import Path

from batch import CoverUpdate

CSV_OUTPUT_PATH = os.getenv("CSV_OUTPUT_PATH", "covers.csv")

LOGGER = logging.getLogger(__name__)

CSV_COLUMNS = [
    "track",
    "major",
    "title",
    "author",
    "publisher",
    "fingerprint",
    "cover_state",   # found | not_found | not_attempted | pending
    "cover_image",
    "cover_link",
]


def write_cover_rows(updates: list[CoverUpdate], csv_path: str | None = None) -> int:
    """Rewrite the CSV with one row per record. Returns the number of rows."""
    path = Path(csv_path or CSV_OUTPUT_PATH)
    path.parent.mkdir(parents=True, exist_ok=True)

    with path.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=CSV_COLUMNS)
        writer.writeheader()
        for update in updates:
            writer.writerow(_row(update))

    LOGGER.info("Wrote %s cover rows to %s", len(updates), path)
    return len(updates)


def _row(update: CoverUpdate) -> dict[str, str]:
    record = update.record
    cover = update.cover
    return {
        "track": record.track,
        "major": record.major,
        "title": record.title,
        "author": record.author,
        "publisher": record.publisher,
        # Field separator shown as "|" in the export.
        "fingerprint": update.fingerprint.replace("\x1f", "|"),
        "cover_state": str(update.state),
        "cover_image": cover.image if cover else "",
        "cover_link": cover.link if cover else "",
    }
