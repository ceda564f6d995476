"""Harvest orchestration: enumerate, resolve, and download each record in turn."""

import itertools
import re
import sys
from pathlib import Path
from typing import Callable, Iterable, Optional

from .catalog import enumerate_records
from .client import PortalClient
from .detail import resolve_url
from .downloader import MediaDownloader
from .errors import ErrorAnalyzer
from .logger import DownloadLogger, log_with_timestamp
from .models import DEFAULT_PAGE_SIZE, Credential, HarvestSummary, Record, ResolvedMedia, RetryPolicy

_UNSAFE_FILENAME_CHARS = re.compile(r"[/\\\x00]")


def _clean_part(value: str) -> str:
    return _UNSAFE_FILENAME_CHARS.sub("_", value).strip()


def build_filename(media) -> str:
    """Return ``"<name> (<author>) - <guid>.mp4"``, leaving out an empty author.

    A record without a name is named after its guid.
    """
    guid = _clean_part(media.guid)
    parts = [_clean_part(media.name) or guid]
    author = _clean_part(media.author)
    if author:
        parts.append(f"({author})")
    parts.append("-")
    parts.append(guid)
    return " ".join(part for part in parts if part) + ".mp4"


def build_destination(directory, media) -> Path:
    return Path(directory) / build_filename(media)


def run_harvest(
    records: Iterable[Record],
    resolve: Callable[[Record], str],
    downloader: MediaDownloader,
    directory,
    *,
    error_analyzer: Optional[ErrorAnalyzer] = None,
    logger: Optional[DownloadLogger] = None,
    limit: Optional[int] = None,
) -> HarvestSummary:
    """Process records one at a time, in the order they are produced.

    A record that cannot be resolved or downloaded is reported and skipped.
    If the record source itself raises, the harvest stops there and the
    error is kept on the returned summary.
    """
    if logger is None:
        logger = DownloadLogger()
    summary = HarvestSummary()
    iterator = iter(records)

    while limit is None or summary.processed < limit:
        try:
            record = next(iterator)
        except StopIteration:
            break
        except Exception as exc:  # pylint: disable=broad-except
            print(f"Catalog enumeration stopped: {exc}", file=sys.stderr)
            if error_analyzer:
                error_analyzer.categorize_and_record(None, exc)
            summary.enumeration_error = exc
            break

        summary.processed += 1
        logger.set_context(record.guid, record.name)
        try:
            media = ResolvedMedia.from_record(record, resolve(record))
            destination = build_destination(directory, media)
            logger.info(f"Downloading to {destination}")
            downloader.download(media.media_url, destination)
        except Exception as exc:  # pylint: disable=broad-except
            print(f"Could not fetch video {record.name} ({record.guid}): {exc}", file=sys.stderr)
            if error_analyzer:
                error_analyzer.categorize_and_record(record.guid, exc)
            summary.failed_guids.append(record.guid)
        else:
            summary.downloaded += 1
        finally:
            logger.clear_context()

    return summary


def harvest_catalog(
    client: PortalClient,
    credential: Credential,
    directory,
    downloader: MediaDownloader,
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
    policy: Optional[RetryPolicy] = None,
    error_analyzer: Optional[ErrorAnalyzer] = None,
    logger: Optional[DownloadLogger] = None,
    limit: Optional[int] = None,
) -> HarvestSummary:
    """Harvest the whole catalog visible to *credential* into *directory*."""
    log_with_timestamp(f"Starting harvest from {client.search_url} (page size {page_size})")
    summary = run_harvest(
        enumerate_records(client, credential, page_size, policy),
        lambda record: resolve_url(client, credential, record.guid, policy),
        downloader,
        directory,
        error_analyzer=error_analyzer,
        logger=logger,
        limit=limit,
    )
    log_with_timestamp(f"Harvest finished: {summary.describe()}")
    return summary


def list_catalog(
    client: PortalClient,
    credential: Credential,
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
    policy: Optional[RetryPolicy] = None,
    limit: Optional[int] = None,
) -> int:
    """Print one line per catalog record without resolving anything.

    Returns the number of records listed.
    """
    records = enumerate_records(client, credential, page_size, policy)
    if limit is not None:
        records = itertools.islice(records, limit)

    count = 0
    for record in records:
        count += 1
        author = f" ({record.author})" if record.author else ""
        print(f"{record.guid}\t{record.name}{author}")
    print(f"Listed {count} records")
    return count
