"""yt-dlp options for remuxing a resolved media URL into an MP4 file."""

from pathlib import Path
from typing import Optional

from .logger import DownloadLogger


def build_ydl_options(
    destination: Path,
    logger: DownloadLogger,
    hook=None,
    ffmpeg_location: Optional[str] = None,
) -> dict:
    """Build the yt-dlp options dictionary for a single download.

    Streams are copied, never re-encoded: yt-dlp downloads the source as is
    and the ``FFmpegVideoRemuxer`` post-processor only changes the container.
    """
    ydl_opts = {
        # outtmpl is a template; a literal '%' in a record name must be escaped
        "outtmpl": str(destination).replace("%", "%%"),
        "overwrites": False,
        "continuedl": False,
        "noplaylist": True,
        "retries": 3,
        "fragment_retries": 3,
        "noprogress": False,
        "quiet": False,
        "no_warnings": False,
        "logger": logger,
        "merge_output_format": "mp4",
        "postprocessors": [
            {"key": "FFmpegVideoRemuxer", "preferedformat": "mp4"},
        ],
    }
    if hook is not None:
        ydl_opts["progress_hooks"] = [hook]
    if ffmpeg_location:
        ydl_opts["ffmpeg_location"] = ffmpeg_location

    debug_parts = [f"outtmpl={destination.name}", "remux=mp4", "overwrites=False"]
    if ffmpeg_location:
        debug_parts.append(f"ffmpeg_location={ffmpeg_location}")
    logger.info("Constructed yt-dlp options: " + ", ".join(debug_parts))

    return ydl_opts
