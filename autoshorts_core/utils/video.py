"""Media probing and ffmpeg helpers."""

import json
import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from autoshorts_core.errors import SourceUnavailable


logger = logging.getLogger(__name__)

PROBE_TIMEOUT = 60


@dataclass
class MediaInfo:
    """Information about a local media file."""

    path: Path
    duration: float
    width: int
    height: int
    fps: float = 0.0
    codec: str = ""
    has_audio: bool = False

    @property
    def size(self) -> tuple[int, int]:
        """Frame size as (width, height)."""
        return self.width, self.height


def _parse_rate(rate: str) -> float:
    """Parse an ffprobe frame rate like "30000/1001"."""
    if "/" in rate:
        num, den = rate.split("/", 1)
        return float(num) / float(den) if float(den) else 0.0
    return float(rate or 0)


def probe_media(path: Path, timeout: int = PROBE_TIMEOUT) -> MediaInfo:
    """
    Probe a local media file with ffprobe.

    Works for video files and still images (images report zero duration).

    Raises:
        SourceUnavailable: If the file is missing or cannot be probed
    """
    path = Path(path)
    if not path.is_file():
        raise SourceUnavailable(f"file not found: {path}")

    cmd = [
        "ffprobe",
        "-v", "error",
        "-show_entries", "stream=codec_type,width,height,codec_name,r_frame_rate",
        "-show_entries", "format=duration",
        "-of", "json",
        str(path),
    ]

    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=True, timeout=timeout)
        data = json.loads(result.stdout)
    except FileNotFoundError as e:
        raise SourceUnavailable("ffprobe is not installed") from e
    except subprocess.TimeoutExpired as e:
        raise SourceUnavailable(f"probing {path.name} timed out") from e
    except subprocess.CalledProcessError as e:
        raise SourceUnavailable(f"cannot read {path.name}: {e.stderr.strip()}") from e
    except json.JSONDecodeError as e:
        raise SourceUnavailable(f"unexpected ffprobe output for {path.name}") from e

    streams = data.get("streams", [])
    video = next((s for s in streams if s.get("codec_type") == "video"), None)
    if video is None:
        raise SourceUnavailable(f"no video stream in {path.name}")

    try:
        duration = float(data.get("format", {}).get("duration") or 0)
        return MediaInfo(
            path=path,
            duration=duration,
            width=int(video["width"]),
            height=int(video["height"]),
            fps=_parse_rate(video.get("r_frame_rate", "0")),
            codec=video.get("codec_name", ""),
            has_audio=any(s.get("codec_type") == "audio" for s in streams),
        )
    except (KeyError, ValueError, ZeroDivisionError) as e:
        raise SourceUnavailable(f"incomplete stream info for {path.name}") from e


def split_segment(
    source: Path,
    output_path: Path,
    start: float,
    duration: float,
    timeout: int = 600,
) -> Path:
    """
    Cut a segment out of a video without re-encoding.

    Raises:
        SourceUnavailable: If ffmpeg fails or times out
    """
    cmd = [
        "ffmpeg",
        "-y",
        "-v", "error",
        "-ss", f"{start:.3f}",
        "-i", str(source),
        "-t", f"{duration:.3f}",
        "-c", "copy",
        "-avoid_negative_ts", "make_zero",
        str(output_path),
    ]
    logger.debug("Splitting %s: %s", source.name, " ".join(cmd))

    try:
        subprocess.run(cmd, capture_output=True, text=True, check=True, timeout=timeout)
    except FileNotFoundError as e:
        raise SourceUnavailable("ffmpeg is not installed") from e
    except subprocess.TimeoutExpired as e:
        output_path.unlink(missing_ok=True)
        raise SourceUnavailable(f"splitting {source.name} timed out after {timeout}s") from e
    except subprocess.CalledProcessError as e:
        output_path.unlink(missing_ok=True)
        raise SourceUnavailable(f"splitting {source.name} failed: {e.stderr.strip()}") from e

    return output_path


def check_dependencies() -> list[str]:
    """Return the names of required external tools that are missing."""
    return [tool for tool in ("ffmpeg", "ffprobe", "yt-dlp") if shutil.which(tool) is None]


def check_nvenc_availability(timeout: int = 15) -> bool:
    """Check whether ffmpeg was built with the h264_nvenc encoder."""
    try:
        result = subprocess.run(
            ["ffmpeg", "-hide_banner", "-encoders"],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return False
    return "h264_nvenc" in result.stdout


def media_size(path: Path) -> Optional[tuple[int, int]]:
    """Natural size of an overlay file, or None if it cannot be probed."""
    try:
        return probe_media(path).size
    except SourceUnavailable as e:
        logger.warning("Cannot probe overlay %s: %s", path, e)
        return None
