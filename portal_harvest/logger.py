"""Diagnostic output for the harvester and the yt-dlp download backend."""

import sys
from datetime import datetime
from typing import Optional


def log_with_timestamp(message: str, file=None) -> None:
    """Print a log message with timestamp."""
    stream = file if file is not None else sys.stdout
    timestamp = datetime.now().strftime("%H:%M:%S")
    print(f"[{timestamp}] {message}", file=stream)
    stream.flush()


class DownloadLogger:
    """Prints messages prefixed with the record currently being processed.

    The same object is handed to yt-dlp as its ``logger`` option, so it
    implements yt-dlp's ``debug``/``info``/``warning``/``error`` interface.
    """

    def __init__(self, verbose: bool = False) -> None:
        self.verbose = verbose
        self.current_guid: Optional[str] = None
        self.current_name: Optional[str] = None
        self.warnings = 0
        self.errors = 0

    def set_context(self, guid: Optional[str], name: Optional[str] = None) -> None:
        self.current_guid = guid
        self.current_name = name

    def clear_context(self) -> None:
        self.set_context(None, None)

    def _format_with_context(self, message: str) -> str:
        context_parts = []
        if self.current_guid:
            context_parts.append(f"guid={self.current_guid}")
        if self.current_name:
            context_parts.append(f"name={self.current_name}")
        if context_parts:
            return f"[{' '.join(context_parts)}] {message}"
        return message

    def _print(self, message: str, file=None) -> None:
        print(self._format_with_context(message), file=file if file is not None else sys.stdout)

    @staticmethod
    def _ensure_text(message) -> str:
        if isinstance(message, bytes):
            return message.decode("utf-8", "ignore")
        return str(message)

    def debug(self, message) -> None:
        text = self._ensure_text(message)
        # yt-dlp sends both info and debug output here; only debug is prefixed
        if text.startswith("[debug] "):
            if self.verbose:
                self._print(text[len("[debug] "):])
            return
        self._print(text)

    def info(self, message) -> None:
        self._print(self._ensure_text(message))

    def warning(self, message) -> None:
        self.warnings += 1
        self._print(self._ensure_text(message), file=sys.stderr)

    def error(self, message) -> None:
        self.errors += 1
        self._print(self._ensure_text(message), file=sys.stderr)
