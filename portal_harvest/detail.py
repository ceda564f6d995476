"""Resolution of catalog records to playable media URLs."""

from typing import Optional

from bs4 import BeautifulSoup

from .client import PortalClient
from .errors import NotFoundError, TransportError
from .models import Credential, Record, ResolvedMedia, RetryPolicy
from .retry import execute

MEDIA_SOURCE_SELECTOR = "video > source"
RETRYABLE_DETAIL_ERRORS = (TransportError, NotFoundError)


def extract_media_url(html: str, guid: str) -> str:
    """Return the ``src`` of the first ``<source>`` nested in a ``<video>``.

    The portal escapes ampersands twice inside this attribute, so a literal
    ``&amp;`` left after HTML decoding is turned back into ``&``.
    """
    soup = BeautifulSoup(html, "html.parser")
    for source in soup.select(MEDIA_SOURCE_SELECTOR):
        src = source.get("src")
        if src:
            return src.replace("&amp;", "&")
    raise NotFoundError(guid)


def fetch_detail_html(client: PortalClient, credential: Credential, guid: str) -> str:
    return client.get_text(client.detail_url(guid), credential)


def resolve_url(
    client: PortalClient,
    credential: Credential,
    guid: str,
    policy: Optional[RetryPolicy] = None,
) -> str:
    """Fetch the detail page for *guid* and extract its media URL.

    Every retry fetches the page again instead of re-reading the first
    response.
    """
    return execute(
        policy,
        lambda: extract_media_url(fetch_detail_html(client, credential, guid), guid),
        retry_on=RETRYABLE_DETAIL_ERRORS,
        label=f"Detail page {guid}",
    )


def resolve_record(
    client: PortalClient,
    credential: Credential,
    record: Record,
    policy: Optional[RetryPolicy] = None,
) -> ResolvedMedia:
    return ResolvedMedia.from_record(record, resolve_url(client, credential, record.guid, policy))
