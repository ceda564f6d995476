"""Download collaborators that turn a media URL into a local MP4 file."""

import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

import yt_dlp
from yt_dlp.utils import DownloadError as YtDlpDownloadError

from .errors import DownloadError
from .logger import DownloadLogger
from .models import DOWNLOADER_CHOICES
from .ytdlp_options import build_ydl_options


class MediaDownloader(ABC):
    """Downloads one media URL to one destination path, blocking until done."""

    name = "downloader"

    def download(self, url: str, destination: Path) -> Path:
        destination = Path(destination)
        if destination.exists():
            raise DownloadError(f"Refusing to overwrite existing file: {destination}")
        self._download(url, destination)
        return destination

    @abstractmethod
    def _download(self, url: str, destination: Path) -> None:
        """Perform the download; raise :class:`DownloadError` on failure."""


class FfmpegDownloader(MediaDownloader):
    """Copies the remote streams into an MP4 container with ffmpeg."""

    name = "ffmpeg"

    def __init__(self, executable: str = "ffmpeg", loglevel: str = "error") -> None:
        self.executable = executable
        self.loglevel = loglevel

    def build_command(self, url: str, destination: Path) -> List[str]:
        return [
            self.executable,
            "-hide_banner",
            "-loglevel", self.loglevel,
            "-n",
            "-i", url,
            "-codec", "copy",
            # relative names starting with "-" would be read as options
            str(Path(destination).absolute()),
        ]

    def _download(self, url: str, destination: Path) -> None:
        cmd = self.build_command(url, destination)
        try:
            result = subprocess.run(cmd, check=False)
        except FileNotFoundError as exc:
            raise DownloadError(f"ffmpeg executable not found: {self.executable}") from exc
        except OSError as exc:
            raise DownloadError(f"Failed to start ffmpeg: {exc}") from exc
        if result.returncode != 0:
            raise DownloadError(f"ffmpeg exited with status {result.returncode} for {destination.name}")


class YtDlpDownloader(MediaDownloader):
    """Downloads through yt-dlp, remuxing the result to MP4."""

    name = "yt-dlp"

    def __init__(self, logger: Optional[DownloadLogger] = None, ffmpeg_location: Optional[str] = None) -> None:
        self.logger = logger or DownloadLogger()
        self.ffmpeg_location = ffmpeg_location

    def _progress_hook(self, d) -> None:
        status = d.get("status")
        filename = d.get("filename") or ""
        if status == "finished":
            self.logger.info(f"Download finished: {Path(filename).name or filename}")
        elif status == "error":
            self.logger.error(f"Download error for {Path(filename).name or filename}")

    def _download(self, url: str, destination: Path) -> None:
        ydl_opts = build_ydl_options(
            destination, self.logger, hook=self._progress_hook, ffmpeg_location=self.ffmpeg_location
        )
        try:
            with yt_dlp.YoutubeDL(ydl_opts) as ydl:
                retcode = ydl.download([url])
        except YtDlpDownloadError as exc:
            raise DownloadError(f"yt-dlp failed for {destination.name}: {exc}") from exc
        if retcode:
            raise DownloadError(f"yt-dlp exited with status {retcode} for {destination.name}")


def create_downloader(
    kind: str,
    logger: Optional[DownloadLogger] = None,
    ffmpeg_executable: str = "ffmpeg",
) -> MediaDownloader:
    """Return the downloader registered under *kind*."""
    if kind == "ffmpeg":
        return FfmpegDownloader(executable=ffmpeg_executable)
    if kind == "yt-dlp":
        ffmpeg_location = ffmpeg_executable if ffmpeg_executable != "ffmpeg" else None
        return YtDlpDownloader(logger=logger, ffmpeg_location=ffmpeg_location)
    raise ValueError(f"Unknown downloader '{kind}'. Choose from: {', '.join(DOWNLOADER_CHOICES)}")
