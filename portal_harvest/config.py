"""Configuration and argument parsing for the portal harvester."""

import argparse
import json
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .errors import ConfigurationError
from .models import (
    DEFAULT_BASE_URL,
    DEFAULT_DOWNLOADER,
    DEFAULT_LANG,
    DEFAULT_PAGE_SIZE,
    DEFAULT_RETRY_POLICY,
    DEFAULT_TIMEOUT,
    DOWNLOADER_CHOICES,
    ENV_COOKIE,
    ENV_DIRECTORY,
    Credential,
    RetryPolicy,
)

COOKIE_HELP = (
    "No cookie specified. Please log in to the portal in your browser, then open the "
    "console, enter `document.cookie` and copy the result. Then pass the result into this "
    f"program via the `--cookie` flag (or the {ENV_COOKIE} environment variable)."
)
DIRECTORY_HELP = (
    "Target directory not specified. Please specify a directory using the `--dir` flag "
    f"(or the {ENV_DIRECTORY} environment variable)."
)

VALID_CONFIG_KEYS = {
    "cookie", "cookie_file", "dir", "page_size", "limit", "retry_count", "retry_delay",
    "retry_backoff", "timeout", "base_url", "lang", "downloader", "ffmpeg", "error_log",
    "verbose",
}


@dataclass(frozen=True)
class HarvestSettings:
    """Validated settings for one run."""
    credential: Credential
    directory: Path
    page_size: int = DEFAULT_PAGE_SIZE
    retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY
    timeout: float = DEFAULT_TIMEOUT
    base_url: str = DEFAULT_BASE_URL
    lang: str = DEFAULT_LANG
    downloader: str = DEFAULT_DOWNLOADER
    ffmpeg: str = "ffmpeg"
    limit: Optional[int] = None
    error_log: Optional[str] = None
    verbose: bool = False
    list_only: bool = False
    check_session: bool = False


def positive_int(value: str) -> int:
    """Return *value* parsed as a positive integer for argparse."""
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise argparse.ArgumentTypeError("Expected a positive integer") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("Expected a positive integer")
    return parsed


def positive_float(value: str) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise argparse.ArgumentTypeError("Expected a positive number") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("Expected a positive number")
    return parsed


def non_negative_float(value: str) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise argparse.ArgumentTypeError("Expected a non-negative number") from exc
    if parsed < 0:
        raise argparse.ArgumentTypeError("Expected a non-negative number")
    return parsed


def load_config_file(config_path: str) -> Dict[str, object]:
    """Load option defaults from a JSON file.

    A missing or unreadable file yields an empty dictionary; unknown keys are
    reported and dropped.
    """
    if not os.path.exists(config_path):
        return {}

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = json.load(f)
    except json.JSONDecodeError as exc:
        print(f"Warning: Failed to parse config file {config_path}: {exc}. Ignoring.", file=sys.stderr)
        return {}
    except OSError as exc:
        print(f"Warning: Failed to read config file {config_path}: {exc}. Ignoring.", file=sys.stderr)
        return {}

    if not isinstance(config, dict):
        print(f"Warning: Config file {config_path} must contain a JSON object. Ignoring.", file=sys.stderr)
        return {}

    invalid_keys = set(config.keys()) - VALID_CONFIG_KEYS
    if invalid_keys:
        print(f"Warning: Unknown config keys ignored: {', '.join(sorted(invalid_keys))}", file=sys.stderr)

    return {k: v for k, v in config.items() if k in VALID_CONFIG_KEYS}


def _find_config_path(argv: Sequence[str]) -> str:
    config_path = "config.json"
    if "--config" in argv:
        config_idx = list(argv).index("--config")
        if config_idx + 1 < len(argv):
            config_path = argv[config_idx + 1]
    return config_path


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments, using the JSON config file for defaults."""
    if argv is None:
        argv = sys.argv[1:]

    config_path = _find_config_path(argv)
    config = load_config_file(config_path)
    if config:
        print(f"Loaded configuration from {config_path}")

    parser = argparse.ArgumentParser(
        description="Download every video of an authenticated media portal catalog."
    )
    parser.add_argument(
        "--config",
        default="config.json",
        help="Path to JSON configuration file (default: config.json)",
    )
    parser.add_argument("--cookie", default=config.get("cookie"), help="Session cookie copied from the browser (document.cookie)")
    parser.add_argument("--cookie-file", default=config.get("cookie_file"), help="Read the session cookie from this file instead")
    parser.add_argument("--dir", default=config.get("dir"), help="Directory to store the downloaded videos in (created if missing)")
    parser.add_argument(
        "--page-size",
        type=positive_int,
        default=config.get("page_size", DEFAULT_PAGE_SIZE),
        help=f"Number of catalog records requested per page (default: {DEFAULT_PAGE_SIZE})",
    )
    parser.add_argument("--limit", type=positive_int, default=config.get("limit"), help="Stop after processing N records")
    parser.add_argument(
        "--retry-count",
        type=positive_int,
        default=config.get("retry_count", DEFAULT_RETRY_POLICY.max_attempts),
        help=f"Attempts per catalog page or detail page (default: {DEFAULT_RETRY_POLICY.max_attempts})",
    )
    parser.add_argument(
        "--retry-delay",
        type=non_negative_float,
        default=config.get("retry_delay", DEFAULT_RETRY_POLICY.initial_delay),
        help=f"Seconds to wait after the first failed attempt (default: {DEFAULT_RETRY_POLICY.initial_delay})",
    )
    parser.add_argument(
        "--retry-backoff",
        type=positive_float,
        default=config.get("retry_backoff", DEFAULT_RETRY_POLICY.backoff_multiplier),
        help=f"Factor the retry delay grows by after each attempt (default: {DEFAULT_RETRY_POLICY.backoff_multiplier})",
    )
    parser.add_argument(
        "--timeout",
        type=positive_float,
        default=config.get("timeout", DEFAULT_TIMEOUT),
        help=f"Per-request network timeout in seconds (default: {DEFAULT_TIMEOUT})",
    )
    parser.add_argument("--base-url", default=config.get("base_url", DEFAULT_BASE_URL), help=f"Portal base URL (default: {DEFAULT_BASE_URL})")
    parser.add_argument("--lang", default=config.get("lang", DEFAULT_LANG), help=f"Portal language code (default: {DEFAULT_LANG})")
    parser.add_argument(
        "--downloader",
        choices=DOWNLOADER_CHOICES,
        default=config.get("downloader", DEFAULT_DOWNLOADER),
        help=f"Tool used to save each video (default: {DEFAULT_DOWNLOADER})",
    )
    parser.add_argument("--ffmpeg", default=config.get("ffmpeg", "ffmpeg"), help="ffmpeg executable to use (default: ffmpeg)")
    parser.add_argument("--error-log", default=config.get("error_log"), help="Append a line per failed record to this file")
    parser.add_argument(
        "--list",
        dest="list_only",
        action="store_true",
        help="Only list the catalog records; do not resolve or download anything",
    )
    parser.add_argument(
        "--check-session",
        action="store_true",
        help="Verify that the cookie is accepted by fetching a single catalog record, then exit",
    )
    parser.add_argument("--verbose", action="store_true", default=config.get("verbose", False), help="Print debug output")
    return parser.parse_args(argv)


def _normalize_env_str(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def apply_environment_defaults(args, environ: Optional[Dict[str, str]] = None) -> None:
    """Fill the cookie and directory from the environment when not given."""
    if environ is None:
        environ = os.environ

    if not getattr(args, "cookie", None) and not getattr(args, "cookie_file", None):
        env_cookie = _normalize_env_str(environ.get(ENV_COOKIE))
        if env_cookie:
            args.cookie = env_cookie

    if not getattr(args, "dir", None):
        env_dir = _normalize_env_str(environ.get(ENV_DIRECTORY))
        if env_dir:
            args.dir = env_dir


def read_cookie_file(path: str) -> str:
    try:
        with open(os.path.expanduser(path), "r", encoding="utf-8") as f:
            return f.read().strip()
    except OSError as exc:
        raise ConfigurationError(f"Failed to read cookie file {path}: {exc}") from exc


def build_settings(args) -> HarvestSettings:
    """Validate parsed arguments and freeze them into :class:`HarvestSettings`.

    Raises :class:`ConfigurationError` when the cookie or the destination
    directory is missing, or when an option value is out of range.
    """
    cookie = (getattr(args, "cookie", None) or "").strip()
    cookie_file = getattr(args, "cookie_file", None)
    if not cookie and cookie_file:
        cookie = read_cookie_file(cookie_file)
    if not cookie:
        raise ConfigurationError(COOKIE_HELP)

    check_session = bool(getattr(args, "check_session", False))
    list_only = bool(getattr(args, "list_only", False))
    directory = getattr(args, "dir", None)
    if not directory:
        if not (check_session or list_only):
            raise ConfigurationError(DIRECTORY_HELP)
        directory = "."

    try:
        retry_policy = RetryPolicy(
            max_attempts=int(getattr(args, "retry_count", DEFAULT_RETRY_POLICY.max_attempts)),
            initial_delay=float(getattr(args, "retry_delay", DEFAULT_RETRY_POLICY.initial_delay)),
            backoff_multiplier=float(getattr(args, "retry_backoff", DEFAULT_RETRY_POLICY.backoff_multiplier)),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid retry settings: {exc}") from exc

    page_size = getattr(args, "page_size", DEFAULT_PAGE_SIZE)
    if not isinstance(page_size, int) or isinstance(page_size, bool) or page_size < 1:
        raise ConfigurationError(f"Invalid page size: {page_size!r}")

    limit = getattr(args, "limit", None)
    if limit is not None and (not isinstance(limit, int) or limit < 1):
        raise ConfigurationError(f"Invalid limit: {limit!r}")

    timeout = getattr(args, "timeout", DEFAULT_TIMEOUT)
    try:
        timeout = float(timeout)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid timeout: {timeout!r}") from exc
    if not timeout > 0:
        raise ConfigurationError(f"Invalid timeout: {timeout!r}")

    downloader = getattr(args, "downloader", DEFAULT_DOWNLOADER)
    if downloader not in DOWNLOADER_CHOICES:
        raise ConfigurationError(
            f"Unknown downloader '{downloader}'. Choose from: {', '.join(DOWNLOADER_CHOICES)}"
        )

    return HarvestSettings(
        credential=Credential(cookie),
        directory=Path(os.path.expanduser(str(directory))),
        page_size=page_size,
        retry_policy=retry_policy,
        timeout=timeout,
        base_url=getattr(args, "base_url", DEFAULT_BASE_URL) or DEFAULT_BASE_URL,
        lang=getattr(args, "lang", DEFAULT_LANG) or DEFAULT_LANG,
        downloader=downloader,
        ffmpeg=getattr(args, "ffmpeg", "ffmpeg") or "ffmpeg",
        limit=limit,
        error_log=getattr(args, "error_log", None),
        verbose=bool(getattr(args, "verbose", False)),
        list_only=list_only,
        check_session=check_session,
    )
