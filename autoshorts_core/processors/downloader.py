"""Source acquisition: local files or yt-dlp downloads."""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from autoshorts_core.errors import SourceUnavailable, UnsupportedSource
from autoshorts_core.utils.video import probe_media


logger = logging.getLogger(__name__)

# yt-dlp stderr fragments that mean retrying will not help
UNSUPPORTED_MARKERS = (
    "unsupported url",
    "private video",
    "members-only",
    "join this channel",
    "sign in to confirm your age",
    "age-restricted",
    "not available in your country",
    "geo restriction",
    "video unavailable",
    "has been removed",
)


@dataclass
class SourceMedia:
    """A local, probed copy of the source."""

    path: Path
    duration: float
    width: int
    height: int


def is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


class VideoDownloader:
    """
    Acquire source videos from YouTube and other platforms.

    Uses yt-dlp for broad platform support. Local paths are probed in place.
    """

    def __init__(self, cookies_file: Optional[Path] = None, timeout: int = 3600):
        self.cookies_file = cookies_file
        self.timeout = timeout

    def acquire(self, source: str, work_dir: Path, quality: str = "best") -> SourceMedia:
        """
        Make the source available as a local file.

        Args:
            source: URL or local path
            work_dir: Directory downloads are written to
            quality: yt-dlp quality preset (best, good, medium, low)

        Raises:
            UnsupportedSource: If the platform refuses this video
            SourceUnavailable: If the source cannot be reached or read
        """
        if is_url(source):
            path = self.download(source, work_dir, quality)
        else:
            path = Path(source).expanduser()
            if not path.is_file():
                raise SourceUnavailable(f"file not found: {source}")

        info = probe_media(path)
        if info.duration <= 0:
            raise SourceUnavailable(f"{path.name} has no measurable duration")
        return SourceMedia(path=path, duration=info.duration, width=info.width, height=info.height)

    def download(self, url: str, work_dir: Path, quality: str = "best") -> Path:
        """
        Download a video, reusing a previous download of the same quality.

        Returns:
            Path to the downloaded mp4
        """
        work_dir.mkdir(parents=True, exist_ok=True)
        output_path = work_dir / f"source_{quality}.mp4"
        if output_path.exists() and output_path.stat().st_size > 0:
            logger.info("Reusing downloaded source %s", output_path.name)
            return output_path

        cmd = [
            "yt-dlp",
            "-f", self._get_format(quality),
            "--merge-output-format", "mp4",
            "--no-playlist",
            "--retries", "10",
            "--no-progress",
            "-o", str(output_path),
        ]
        if self.cookies_file:
            cmd.extend(["--cookies", str(self.cookies_file)])
        cmd.append(url)

        logger.info("Downloading %s (%s quality)", url, quality)
        try:
            subprocess.run(cmd, capture_output=True, text=True, check=True, timeout=self.timeout)
        except FileNotFoundError as e:
            raise SourceUnavailable("yt-dlp is not installed") from e
        except subprocess.TimeoutExpired as e:
            raise SourceUnavailable(f"download timed out after {self.timeout}s") from e
        except subprocess.CalledProcessError as e:
            raise self._classify_failure(e.stderr or "") from e

        if not output_path.exists():
            raise SourceUnavailable("yt-dlp finished without producing a file")
        return output_path

    @staticmethod
    def _classify_failure(stderr: str) -> SourceUnavailable:
        lines = [line for line in stderr.strip().splitlines() if line.strip()]
        detail = lines[-1] if lines else "yt-dlp failed"
        lowered = stderr.lower()
        if any(marker in lowered for marker in UNSUPPORTED_MARKERS):
            return UnsupportedSource(detail)
        return SourceUnavailable(detail)

    def _get_format(self, quality: str) -> str:
        """Get yt-dlp format string for quality preset."""
        formats = {
            "best": "bestvideo[ext=mp4]+bestaudio[ext=m4a]/best[ext=mp4]/best",
            "good": "bestvideo[height<=1080]+bestaudio/best[height<=1080]/best",
            "medium": "bestvideo[height<=720]+bestaudio/best[height<=720]/best",
            "low": "bestvideo[height<=360]+bestaudio/best[height<=360]/best",
        }
        return formats.get(quality, formats["good"])

    def is_available(self) -> bool:
        """Check if yt-dlp is available."""
        try:
            subprocess.run(["yt-dlp", "--version"], capture_output=True, check=True, timeout=30)
            return True
        except (subprocess.CalledProcessError, FileNotFoundError, subprocess.TimeoutExpired):
            return False
