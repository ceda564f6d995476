"""Data models, constants, and defaults for the portal harvester."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .errors import DecodeError


# Portal defaults
DEFAULT_BASE_URL = "https://media.fhs.cuni.cz"
DEFAULT_LANG = "cs"
DEFAULT_PAGE_SIZE = 10
DEFAULT_TIMEOUT = 60.0
SEARCH_ORDER_BY = "LastMediaStatusChangedUtc"

DOWNLOADER_CHOICES: Tuple[str, ...] = ("ffmpeg", "yt-dlp")
DEFAULT_DOWNLOADER = "ffmpeg"

# Environment variable names
ENV_COOKIE = "PORTAL_HARVEST_COOKIE"
ENV_DIRECTORY = "PORTAL_HARVEST_DIR"


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how patiently a network call is retried."""
    max_attempts: int
    initial_delay: float
    backoff_multiplier: float

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.initial_delay < 0:
            raise ValueError("initial_delay must not be negative")
        if self.backoff_multiplier <= 0:
            raise ValueError("backoff_multiplier must be positive")

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given (1-based) failed attempt."""
        return self.initial_delay * self.backoff_multiplier ** (attempt - 1)


# 3 attempts, waiting 50ms then 500ms
DEFAULT_RETRY_POLICY = RetryPolicy(max_attempts=3, initial_delay=0.05, backoff_multiplier=10.0)


@dataclass(frozen=True)
class Credential:
    """Session cookie attached verbatim to every portal request."""
    cookie: str = field(repr=False)

    def headers(self) -> Dict[str, str]:
        return {"Cookie": self.cookie}


@dataclass(frozen=True)
class PageRequest:
    """One catalog page request; ``page_index`` is zero-based."""
    page_index: int
    page_size: int

    @property
    def page_number(self) -> int:
        return self.page_index + 1

    def form_fields(self, lang: str) -> Dict[str, str]:
        return {
            "Lang": lang,
            "Q": "",
            "MediaTypeId": "0",
            "MediaCriteriaValueIds": "",
            "MediaFolderId": "0",
            "MediaAccessLevelId": "0",
            "TagIds": "",
            "Page": str(self.page_number),
            "PageSize": str(self.page_size),
            "OrderBy": SEARCH_ORDER_BY,
            "OrderByAsc": "false",
        }


@dataclass(frozen=True)
class Record:
    """A single catalog entry as returned by the search endpoint."""
    guid: str
    name: str
    author: str = ""
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_payload(cls, payload: Any) -> "Record":
        if not isinstance(payload, dict):
            raise DecodeError(f"catalog item is not an object: {payload!r}")
        guid = payload.get("Guid")
        name = payload.get("Name")
        if not isinstance(guid, str) or not guid:
            raise DecodeError(f"catalog item has no Guid: {payload!r}")
        if not isinstance(name, str):
            raise DecodeError(f"catalog item {guid} has no Name")
        author = payload.get("Author")
        return cls(
            guid=guid,
            name=name,
            author=author if isinstance(author, str) else "",
            raw=dict(payload),
        )

    def label(self) -> str:
        return f"{self.name} ({self.guid})"


@dataclass(frozen=True)
class PageResult:
    """A parsed catalog page. Page numbers are 1-based."""
    items: Tuple[Record, ...]
    current_page: int
    total_pages: int
    total_items: int = 0
    items_per_page: int = 0

    @property
    def is_last(self) -> bool:
        return self.current_page >= self.total_pages


@dataclass(frozen=True)
class ResolvedMedia:
    """A record together with its playable media URL."""
    guid: str
    name: str
    author: str
    media_url: str

    @classmethod
    def from_record(cls, record: Record, media_url: str) -> "ResolvedMedia":
        return cls(guid=record.guid, name=record.name, author=record.author, media_url=media_url)


@dataclass
class HarvestSummary:
    """Outcome of one harvest run."""
    processed: int = 0
    downloaded: int = 0
    failed_guids: List[str] = field(default_factory=list)
    enumeration_error: Optional[BaseException] = None

    @property
    def failed(self) -> int:
        return len(self.failed_guids)

    def describe(self) -> str:
        parts = [f"{self.processed} processed", f"{self.downloaded} downloaded"]
        if self.failed:
            parts.append(f"{self.failed} failed")
        if self.enumeration_error is not None:
            parts.append("catalog enumeration stopped early")
        return ", ".join(parts)
