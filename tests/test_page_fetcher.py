"""Tests for fetching and parsing single catalog pages."""

from __future__ import annotations

import http.client
import io
import json
import socket
import sys
import urllib.error
from email.message import Message
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from portal_harvest import catalog, retry
from portal_harvest.errors import DecodeError, TransportError
from portal_harvest.models import Credential, PageRequest, RetryPolicy

from portal_fakes import BASE_URL, FakeCatalog, FakeResponse, make_client, make_item

CREDENTIAL = Credential("session=abc; lang=cs")
NO_WAIT = RetryPolicy(max_attempts=3, initial_delay=0.0, backoff_multiplier=1.0)


def page_body(items, current=1, total=1, **overrides) -> str:
    payload = {
        "Success": True,
        "Message": "",
        "Data": {
            "CurrentPage": current,
            "TotalPages": total,
            "TotalItems": len(items),
            "ItemsPerPage": 10,
            "Items": items,
        },
    }
    payload.update(overrides)
    return json.dumps(payload)


def test_request_sends_search_form_with_cookie():
    client, opener = make_client(FakeCatalog([make_item(1)]), timeout=12.5)

    page = catalog.request_page(client, CREDENTIAL, PageRequest(page_index=0, page_size=10))

    assert [r.guid for r in page.items] == ["guid-001"]
    request = opener.requests[0]
    assert request.get_method() == "POST"
    assert request.full_url == f"{BASE_URL}/cs/MediaAjax/Search"
    assert request.get_header("Cookie") == "session=abc; lang=cs"
    assert opener.timeouts == [12.5]
    assert opener.form(0) == {
        "Lang": "cs",
        "Q": "",
        "MediaTypeId": "0",
        "MediaCriteriaValueIds": "",
        "MediaFolderId": "0",
        "MediaAccessLevelId": "0",
        "TagIds": "",
        "Page": "1",
        "PageSize": "10",
        "OrderBy": "LastMediaStatusChangedUtc",
        "OrderByAsc": "false",
    }


def test_zero_based_index_is_sent_as_one_based_page():
    client, opener = make_client(FakeCatalog([make_item(n) for n in range(1, 8)]))

    page = catalog.fetch_page(client, CREDENTIAL, 2, 3, NO_WAIT)

    assert opener.form(0)["Page"] == "3"
    assert page.current_page == 3
    assert page.total_pages == 3
    assert page.is_last
    assert [r.guid for r in page.items] == ["guid-007"]


def test_parse_page_reads_records_and_metadata():
    body = page_body([make_item(1), make_item(2, author="")], current=1, total=4)

    page = catalog.parse_page(body, PageRequest(0, 2))

    assert page.current_page == 1
    assert page.total_pages == 4
    assert not page.is_last
    assert page.items[0].name == "Lecture 1"
    assert page.items[0].author == "Author"
    assert page.items[1].author == ""
    assert page.items[0].raw["DurationSeconds"] == 60


def test_parse_page_defaults_optional_counts():
    body = json.dumps({"Success": True, "Data": {"CurrentPage": 1, "TotalPages": 1, "Items": [make_item(1)]}})

    page = catalog.parse_page(body, PageRequest(0, 5))

    assert page.total_items == 1
    assert page.items_per_page == 5


@pytest.mark.parametrize(
    "body",
    [
        "<html><body>Please log in</body></html>",
        json.dumps([1, 2, 3]),
        json.dumps({"Success": True, "Message": ""}),
        json.dumps({"Success": True, "Data": {"CurrentPage": 1, "TotalPages": 1}}),
        json.dumps({"Success": True, "Data": {"CurrentPage": "1", "TotalPages": 1, "Items": []}}),
        json.dumps({"Success": True, "Data": {"CurrentPage": 1, "TotalPages": None, "Items": []}}),
        json.dumps({"Success": True, "Data": {"CurrentPage": 1, "TotalPages": 1, "Items": [{"Name": "x"}]}}),
        json.dumps({"Success": True, "Data": {"CurrentPage": 1, "TotalPages": 1, "Items": [{"Guid": "g"}]}}),
        json.dumps({"Success": True, "Data": {"CurrentPage": 1, "TotalPages": 1, "Items": ["g"]}}),
    ],
)
def test_malformed_bodies_raise_decode_error(body):
    with pytest.raises(DecodeError):
        catalog.parse_page(body, PageRequest(0, 10))


def test_portal_reported_failure_raises_transport_error():
    body = json.dumps({"Success": False, "Message": "Session expired", "Data": None})

    with pytest.raises(TransportError, match="Session expired"):
        catalog.parse_page(body, PageRequest(0, 10))


def test_http_error_status_with_valid_body_is_parsed():
    def handler(request):
        headers = Message()
        headers["Content-Type"] = "application/json; charset=utf-8"
        body = page_body([make_item(1)]).encode("utf-8")
        return urllib.error.HTTPError(request.full_url, 500, "Server Error", headers, io.BytesIO(body))

    client, _ = make_client(handler)

    page = catalog.request_page(client, CREDENTIAL, PageRequest(0, 10))

    assert [r.guid for r in page.items] == ["guid-001"]


@pytest.mark.parametrize(
    "error",
    [
        urllib.error.URLError("connection refused"),
        socket.timeout("timed out"),
        ConnectionResetError("reset by peer"),
        http.client.BadStatusLine("HTTP/1.1 ???"),
        http.client.RemoteDisconnected("closed without response"),
    ],
)
def test_network_failures_raise_transport_error(error):
    client, _ = make_client(lambda request: error)

    with pytest.raises(TransportError):
        catalog.request_page(client, CREDENTIAL, PageRequest(0, 10))


class TruncatedResponse(FakeResponse):
    def read(self):
        raise http.client.IncompleteRead(b"{\"Succ", 500)


def test_fetch_page_retries_body_cut_off_mid_read():
    responses = iter([TruncatedResponse(""), page_body([make_item(1)])])
    client, opener = make_client(lambda request: next(responses))

    page = catalog.fetch_page(client, CREDENTIAL, 0, 10, NO_WAIT)

    assert len(opener.requests) == 2
    assert page.items[0].guid == "guid-001"


def test_http_error_with_truncated_body_raises_transport_error():
    class TruncatedBody(io.BytesIO):
        def read(self, *args):
            raise http.client.IncompleteRead(b"", 100)

    def handler(request):
        return urllib.error.HTTPError(request.full_url, 502, "Bad Gateway", Message(), TruncatedBody())

    client, _ = make_client(handler)

    with pytest.raises(TransportError, match="HTTP 502"):
        catalog.request_page(client, CREDENTIAL, PageRequest(0, 10))


def test_unknown_charset_falls_back_to_utf8():
    body = page_body([make_item(1, author="Jan Novák")])
    client, _ = make_client(lambda request: FakeResponse(body, content_type="application/json; charset=bogus-xyz"))

    page = catalog.request_page(client, CREDENTIAL, PageRequest(0, 10))

    assert page.items[0].author == "Jan Novák"


def test_fetch_page_retries_decode_failures_until_success():
    responses = iter(["<html>maintenance</html>", page_body([make_item(1)])])
    client, opener = make_client(lambda request: next(responses))

    page = catalog.fetch_page(client, CREDENTIAL, 0, 10, NO_WAIT)

    assert len(opener.requests) == 2
    assert page.items[0].guid == "guid-001"


def test_fetch_page_uses_default_policy_and_raises_last_error(monkeypatch: pytest.MonkeyPatch):
    delays = []
    monkeypatch.setattr(retry.time, "sleep", delays.append)
    client, opener = make_client(lambda request: urllib.error.URLError(f"down #{len(opener.requests)}"))

    with pytest.raises(TransportError, match="down #3"):
        catalog.fetch_page(client, CREDENTIAL, 0, 10)

    assert len(opener.requests) == 3
    assert delays == pytest.approx([0.05, 0.5])
