from __future__ import annotations

from unittest.mock import MagicMock, patch

from batch import CoverState, CoverUpdate, resolve_all
from cover_cache import fingerprint
from models import CatalogRecord, Cover


def _records(n: int) -> list[CatalogRecord]:
    return [
        CatalogRecord(track="공학", major="컴퓨터공학과", title=f"도서 {i}", author=f"저자 {i}")
        for i in range(n)
    ]


def _resolver_finding_even_titles(record: CatalogRecord) -> Cover | None:
    index = int(record.title.split()[-1])
    return Cover(image=f"https://img.example/{index}.jpg") if index % 2 == 0 else None


def test_budget_limits_attempts_to_first_records_in_order() -> None:
    records = _records(5)
    resolve = MagicMock(side_effect=_resolver_finding_even_titles)

    final = resolve_all(records, resolve, budget=3)

    assert [call.args[0] for call in resolve.call_args_list] == records[:3]
    assert [u.state for u in final] == [
        CoverState.FOUND,
        CoverState.NOT_FOUND,
        CoverState.FOUND,
        CoverState.NOT_ATTEMPTED,
        CoverState.NOT_ATTEMPTED,
    ]
    assert sum(u.state is CoverState.NOT_ATTEMPTED for u in final) == len(records) - 3


def test_updates_are_emitted_incrementally() -> None:
    records = _records(4)
    seen: list[CoverUpdate] = []
    resolved_before_update: list[int] = []
    resolve = MagicMock(side_effect=_resolver_finding_even_titles)

    def on_update(update: CoverUpdate) -> None:
        seen.append(update)
        if update.state in (CoverState.FOUND, CoverState.NOT_FOUND):
            resolved_before_update.append(resolve.call_count)

    resolve_all(records, resolve, budget=2, on_update=on_update)

    assert [u.state for u in seen[:4]] == [
        CoverState.PENDING,
        CoverState.PENDING,
        CoverState.NOT_ATTEMPTED,
        CoverState.NOT_ATTEMPTED,
    ]
    assert [(u.record.title, u.state) for u in seen[4:]] == [
        ("도서 0", CoverState.FOUND),
        ("도서 1", CoverState.NOT_FOUND),
    ]
    # Each completion is reported before the next lookup starts.
    assert resolved_before_update == [1, 2]


def test_updates_are_keyed_by_fingerprint() -> None:
    records = _records(2)
    final = resolve_all(records, _resolver_finding_even_titles, budget=5)

    assert [u.fingerprint for u in final] == [fingerprint(r) for r in records]
    assert final[0].cover == Cover(image="https://img.example/0.jpg")
    assert final[1].cover is None


def test_zero_budget_attempts_nothing() -> None:
    resolve = MagicMock()

    final = resolve_all(_records(3), resolve, budget=0)

    resolve.assert_not_called()
    assert all(u.state is CoverState.NOT_ATTEMPTED for u in final)


def test_empty_record_list() -> None:
    assert resolve_all([], MagicMock(), budget=10) == []


def test_raising_resolver_marks_not_found_and_continues() -> None:
    records = _records(3)
    resolve = MagicMock(side_effect=[RuntimeError("boom"), Cover(image="a.jpg"), None])

    final = resolve_all(records, resolve, budget=3)

    assert [u.state for u in final] == [CoverState.NOT_FOUND, CoverState.FOUND, CoverState.NOT_FOUND]


def test_interval_pauses_between_lookups_only() -> None:
    with patch("batch.time.sleep") as mock_sleep:
        resolve_all(_records(4), lambda r: None, budget=3, interval_seconds=0.5)

    assert mock_sleep.call_count == 2
    mock_sleep.assert_called_with(0.5)


def test_no_interval_never_sleeps() -> None:
    with patch("batch.time.sleep") as mock_sleep:
        resolve_all(_records(3), lambda r: None, budget=3)

    mock_sleep.assert_not_called()
