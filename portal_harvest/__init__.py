"""Media portal catalog harvester package."""

# Import main components for easier access
from .catalog import enumerate_records, fetch_page, parse_page, request_page
from .client import PortalClient
from .config import (
    HarvestSettings,
    apply_environment_defaults,
    build_settings,
    parse_args,
    positive_int,
)
from .detail import extract_media_url, resolve_record, resolve_url
from .downloader import FfmpegDownloader, MediaDownloader, YtDlpDownloader, create_downloader
from .errors import (
    ConfigurationError,
    DecodeError,
    DownloadError,
    ErrorAnalyzer,
    HarvestError,
    NotFoundError,
    TransportError,
)
from .harvester import build_destination, build_filename, harvest_catalog, list_catalog, run_harvest
from .health_check import run_health_check
from .logger import DownloadLogger, log_with_timestamp
from .models import (
    DEFAULT_BASE_URL,
    DEFAULT_LANG,
    DEFAULT_PAGE_SIZE,
    DEFAULT_RETRY_POLICY,
    DOWNLOADER_CHOICES,
    ENV_COOKIE,
    ENV_DIRECTORY,
    Credential,
    HarvestSummary,
    PageRequest,
    PageResult,
    Record,
    ResolvedMedia,
    RetryPolicy,
)
from .retry import execute

__all__ = [
    # Main entry points
    "parse_args",
    "apply_environment_defaults",
    "build_settings",
    "harvest_catalog",
    "list_catalog",
    "run_harvest",
    "run_health_check",
    # Pipeline components
    "execute",
    "PortalClient",
    "fetch_page",
    "request_page",
    "parse_page",
    "enumerate_records",
    "extract_media_url",
    "resolve_url",
    "resolve_record",
    "build_destination",
    "build_filename",
    # Downloaders
    "MediaDownloader",
    "FfmpegDownloader",
    "YtDlpDownloader",
    "create_downloader",
    # Models and data structures
    "Credential",
    "PageRequest",
    "PageResult",
    "Record",
    "ResolvedMedia",
    "RetryPolicy",
    "HarvestSummary",
    "HarvestSettings",
    # Errors and diagnostics
    "HarvestError",
    "ConfigurationError",
    "TransportError",
    "DecodeError",
    "NotFoundError",
    "DownloadError",
    "ErrorAnalyzer",
    "DownloadLogger",
    "log_with_timestamp",
    # Configuration
    "positive_int",
    # Constants
    "DEFAULT_BASE_URL",
    "DEFAULT_LANG",
    "DEFAULT_PAGE_SIZE",
    "DEFAULT_RETRY_POLICY",
    "DOWNLOADER_CHOICES",
    "ENV_COOKIE",
    "ENV_DIRECTORY",
]
