"""Catalog page fetching and lazy enumeration of records."""

import json
from typing import Any, Iterator, Optional

from .client import PortalClient
from .errors import DecodeError, TransportError
from .models import Credential, PageRequest, PageResult, Record, RetryPolicy
from .retry import execute

RETRYABLE_PAGE_ERRORS = (TransportError, DecodeError)


def _require_int(data: dict, key: str) -> int:
    value = data.get(key)
    # bool is an int subclass but never a valid page number
    if isinstance(value, bool) or not isinstance(value, int):
        raise DecodeError(f"catalog response field Data.{key} is not an integer: {value!r}")
    return value


def parse_page(body: str, request: PageRequest) -> PageResult:
    """Parse a search response body into a :class:`PageResult`."""
    try:
        payload: Any = json.loads(body)
    except ValueError as exc:
        raise DecodeError(
            f"catalog page {request.page_number} is not valid JSON: {exc}"
        ) from exc

    if not isinstance(payload, dict):
        raise DecodeError(f"catalog page {request.page_number} is not a JSON object")

    if payload.get("Success") is False:
        message = payload.get("Message") or "no message"
        raise TransportError(f"portal reported failure for catalog page {request.page_number}: {message}")

    data = payload.get("Data")
    if not isinstance(data, dict):
        raise DecodeError(f"catalog page {request.page_number} has no Data object")

    items = data.get("Items")
    if not isinstance(items, list):
        raise DecodeError(f"catalog page {request.page_number} has no Items list")

    records = tuple(Record.from_payload(item) for item in items)
    current_page = _require_int(data, "CurrentPage")
    total_pages = _require_int(data, "TotalPages")

    total_items = data.get("TotalItems")
    items_per_page = data.get("ItemsPerPage")
    return PageResult(
        items=records,
        current_page=current_page,
        total_pages=total_pages,
        total_items=total_items if isinstance(total_items, int) else len(records),
        items_per_page=items_per_page if isinstance(items_per_page, int) else request.page_size,
    )


def request_page(client: PortalClient, credential: Credential, request: PageRequest) -> PageResult:
    """Fetch and parse one catalog page, without retrying."""
    body = client.post_form(client.search_url, request.form_fields(client.lang), credential)
    return parse_page(body, request)


def fetch_page(
    client: PortalClient,
    credential: Credential,
    index: int,
    size: int,
    policy: Optional[RetryPolicy] = None,
) -> PageResult:
    """Fetch the catalog page at zero-based *index*, retrying per *policy*."""
    request = PageRequest(page_index=index, page_size=size)
    return execute(
        policy,
        lambda: request_page(client, credential, request),
        retry_on=RETRYABLE_PAGE_ERRORS,
        label=f"Catalog page {request.page_number}",
    )


def enumerate_records(
    client: PortalClient,
    credential: Credential,
    page_size: int,
    policy: Optional[RetryPolicy] = None,
) -> Iterator[Record]:
    """Yield every catalog record, page by page, in server order.

    Pages are fetched lazily as the caller pulls records. Enumeration ends
    after the page whose ``current_page`` reaches ``total_pages``. Each call
    starts a new pass from the first page.
    """
    if page_size < 1:
        raise ValueError("page_size must be at least 1")

    index = 0
    while True:
        page = fetch_page(client, credential, index, page_size, policy)
        yield from page.items
        if page.is_last:
            break
        index += 1
