from unittest.mock import MagicMock, patch

import pytest
import requests

from naver_client import (
    NAVER_BOOK_API_URL,
    REQUEST_TIMEOUT_SECONDS,
    parse_search_items,
    search_books,
    search_candidates,
)

_CREDS = {"NAVER_CLIENT_ID": "client-id", "NAVER_CLIENT_SECRET": "client-secret"}

_PAYLOAD = {
    "total": 1,
    "items": [
        {
            "title": "<b>자료구조</b> 개론",
            "author": "홍길동 지음",
            "publisher": "한빛미디어",
            "isbn": "8912345678 9788912345678",
            "image": "https://img.example/ds.jpg",
            "link": "https://book.example/ds",
            "discount": "27000",
        }
    ],
}


def _mock_resp(payload: object) -> MagicMock:
    """Return a mock requests.Response for the given payload."""
    mock = MagicMock()
    mock.json.return_value = payload
    return mock


def test_parse_search_items_smoke() -> None:
    items = parse_search_items(_PAYLOAD)

    assert len(items) == 1
    assert items[0].title == "<b>자료구조</b> 개론"
    assert items[0].isbn == "8912345678 9788912345678"
    assert items[0].image == "https://img.example/ds.jpg"


@pytest.mark.parametrize("payload", [
    None,
    [],
    "items",
    {},
    {"items": None},
    {"items": "nope"},
    {"errorMessage": "Authentication failed"},
])
def test_parse_search_items_malformed_is_empty(payload: object) -> None:
    assert parse_search_items(payload) == []


def test_parse_search_items_skips_non_dict_and_coerces_fields() -> None:
    items = parse_search_items({"items": ["junk", {"title": "  제목  ", "image": 3}]})

    assert len(items) == 1
    assert items[0].title == "제목"
    assert items[0].image == ""


def test_search_books_direct_sends_credentials() -> None:
    with patch.dict("os.environ", _CREDS, clear=True), \
         patch("naver_client.requests.get", return_value=_mock_resp(_PAYLOAD)) as mock_get:
        body = search_books("  자료구조 홍길동 ", display=5)

    assert body == _PAYLOAD
    mock_get.assert_called_once_with(
        NAVER_BOOK_API_URL,
        params={"query": "자료구조 홍길동", "display": 5, "sort": "sim"},
        headers={"X-Naver-Client-Id": "client-id", "X-Naver-Client-Secret": "client-secret"},
        timeout=REQUEST_TIMEOUT_SECONDS,
    )


def test_search_books_via_proxy_sends_no_credentials() -> None:
    proxy = "https://books.example/.netlify/functions/naver-book"
    with patch.dict("os.environ", {"NAVER_PROXY_URL": proxy}, clear=True), \
         patch("naver_client.requests.get", return_value=_mock_resp(_PAYLOAD)) as mock_get:
        search_books("자료구조", display=12)

    mock_get.assert_called_once_with(
        proxy,
        params={"q": "자료구조", "display": 12, "sort": "sim"},
        headers={},
        timeout=REQUEST_TIMEOUT_SECONDS,
    )


def test_search_books_raises_without_credentials() -> None:
    with patch.dict("os.environ", {}, clear=True), \
         patch("naver_client.requests.get") as mock_get:
        with pytest.raises(RuntimeError, match="NAVER_CLIENT_ID"):
            search_books("자료구조")

    mock_get.assert_not_called()


def test_search_books_rejects_blank_query() -> None:
    with patch("naver_client.requests.get") as mock_get:
        with pytest.raises(ValueError):
            search_books("   ")

    mock_get.assert_not_called()


@pytest.mark.parametrize(("requested", "sent"), [(0, 1), (5, 5), (500, 100)])
def test_search_books_clamps_display(requested: int, sent: int) -> None:
    with patch.dict("os.environ", _CREDS, clear=True), \
         patch("naver_client.requests.get", return_value=_mock_resp(_PAYLOAD)) as mock_get:
        search_books("자료구조", display=requested)

    assert mock_get.call_args.kwargs["params"]["display"] == sent


def test_search_books_propagates_http_errors() -> None:
    response = _mock_resp({})
    response.raise_for_status.side_effect = requests.HTTPError("429 Too Many Requests")

    with patch.dict("os.environ", _CREDS, clear=True), \
         patch("naver_client.requests.get", return_value=response):
        with pytest.raises(requests.HTTPError):
            search_books("자료구조")


def test_search_books_non_json_body_raises_runtime_error() -> None:
    response = MagicMock()
    response.json.side_effect = ValueError("Expecting value")

    with patch.dict("os.environ", _CREDS, clear=True), \
         patch("naver_client.requests.get", return_value=response):
        with pytest.raises(RuntimeError, match="non-JSON"):
            search_books("자료구조")


def test_search_candidates_parses_response() -> None:
    with patch.dict("os.environ", _CREDS, clear=True), \
         patch("naver_client.requests.get", return_value=_mock_resp({"items": None})):
        assert search_candidates("자료구조", 5) == []

    with patch.dict("os.environ", _CREDS, clear=True), \
         patch("naver_client.requests.get", return_value=_mock_resp(_PAYLOAD)):
        items = search_candidates("자료구조", 5)

    assert [item.publisher for item in items] == ["한빛미디어"]
