"""Exception hierarchy and failure analysis for the portal harvester."""

import sys
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional


class HarvestError(Exception):
    """Base class for every error raised by the harvester."""


class ConfigurationError(HarvestError):
    """Raised when required settings are missing or invalid."""


class TransportError(HarvestError):
    """Raised when a portal request fails at the network level or the portal reports failure."""


class DecodeError(HarvestError):
    """Raised when a catalog response does not match the expected schema."""


class NotFoundError(HarvestError):
    """Raised when a detail page does not contain a playable media source."""

    def __init__(self, guid: str, message: Optional[str] = None) -> None:
        self.guid = guid
        super().__init__(message or f"Could not get URL for video {guid}")


class DownloadError(HarvestError):
    """Raised when the external downloader refuses or fails."""


@dataclass
class ErrorPattern:
    """Tracks one failure category and its occurrences."""
    error_type: str
    count: int = 0
    guids: List[str] = field(default_factory=list)
    sample_messages: List[str] = field(default_factory=list)
    first_seen: Optional[float] = None
    last_seen: Optional[float] = None

    def record(self, guid: Optional[str], message: str) -> None:
        self.count += 1
        timestamp = time.time()

        if self.first_seen is None:
            self.first_seen = timestamp
        self.last_seen = timestamp

        if guid and guid not in self.guids:
            self.guids.append(guid)

        # Keep only the first 5 sample messages
        if len(self.sample_messages) < 5 and message not in self.sample_messages:
            self.sample_messages.append(message)


CATEGORY_BY_ERROR = (
    (TransportError, "transport"),
    (DecodeError, "decode"),
    (NotFoundError, "not_found"),
    (DownloadError, "download"),
)


class ErrorAnalyzer:
    """Groups per-record failures by category and suggests what to check."""

    def __init__(self, error_log_path: Optional[str] = None) -> None:
        self.patterns: Dict[str, ErrorPattern] = {
            name: ErrorPattern(name) for _, name in CATEGORY_BY_ERROR
        }
        self.patterns["unknown"] = ErrorPattern("unknown")
        self.total_errors = 0
        self.error_log_path = error_log_path

    @staticmethod
    def categorize(exc: BaseException) -> str:
        for error_type, name in CATEGORY_BY_ERROR:
            if isinstance(exc, error_type):
                return name
        return "unknown"

    def categorize_and_record(self, guid: Optional[str], exc: BaseException) -> str:
        """Record a failure and return its category."""
        self.total_errors += 1
        category = self.categorize(exc)
        message = str(exc) or exc.__class__.__name__
        self.patterns[category].record(guid, message)

        if self.error_log_path:
            self._append_to_error_log(guid, category, message)

        return category

    def _append_to_error_log(self, guid: Optional[str], category: str, message: str) -> None:
        try:
            timestamp = datetime.now().isoformat()
            log_entry = f"[{timestamp}] [{category}] {guid or 'unknown'}: {message}\n"
            with open(self.error_log_path, "a", encoding="utf-8") as f:
                f.write(log_entry)
        except OSError as e:
            # A broken error log must not stop the harvest
            print(f"Warning: Failed to write to error log: {e}", file=sys.stderr)

    def get_recommendations(self) -> List[str]:
        if self.total_errors == 0:
            return ["No errors detected - harvest completed successfully!"]

        recommendations = []
        if self.patterns["transport"].count:
            recommendations.append(
                f"Network ({self.patterns['transport'].count} failures): "
                "the portal could not be reached or reported an error. Check your connection "
                "and consider raising --retry-count or --timeout."
            )
        if self.patterns["decode"].count:
            recommendations.append(
                f"Malformed responses ({self.patterns['decode'].count} failures): "
                "the search endpoint returned something other than the expected JSON. "
                "This usually means the session cookie has expired; copy a fresh one."
            )
        if self.patterns["not_found"].count:
            recommendations.append(
                f"No video source ({self.patterns['not_found'].count} records): "
                "the detail page had no <video><source> element. The record may not be a video, "
                "or the cookie lacks access to it."
            )
        if self.patterns["download"].count:
            recommendations.append(
                f"Download failures ({self.patterns['download'].count} records): "
                "check that ffmpeg is installed and that the destination files do not already exist."
            )
        if self.patterns["unknown"].count:
            recommendations.append(
                f"Unknown errors ({self.patterns['unknown'].count}): "
                "check the error log for details."
            )
        return recommendations

    def print_summary(self) -> None:
        if self.total_errors == 0:
            print("\nNo errors detected during harvest.")
            return

        print("\n" + "=" * 70)
        print("Failure Analysis")
        print("=" * 70)
        print(f"Total failures: {self.total_errors}\n")

        sorted_patterns = sorted(
            self.patterns.items(), key=lambda item: item[1].count, reverse=True
        )
        for name, pattern in sorted_patterns:
            if pattern.count > 0:
                print(f"{name.replace('_', ' ').title()}: {pattern.count} occurrences")
                print(f"  Affected records: {len(pattern.guids)}")
                if pattern.sample_messages:
                    print(f"  Sample: {pattern.sample_messages[0][:80]}")
                print()

        print("=" * 70)
        print("Recommendations")
        print("=" * 70)
        for rec in self.get_recommendations():
            print(f"{rec}\n")
        print("=" * 70)

        if self.error_log_path:
            print(f"\nDetailed error log: {self.error_log_path}")
