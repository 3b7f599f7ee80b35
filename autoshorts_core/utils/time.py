"""Time and timestamp utilities."""

import re
from typing import Union


def format_duration(seconds: float) -> str:
    """
    Format seconds as human-readable duration.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted string (e.g., "1:23", "1:23:45")
    """
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_timestamp(seconds: float, format: str = "clock") -> str:
    """
    Format seconds as timestamp.

    Args:
        seconds: Time in seconds
        format: Format type ('clock', 'precise', 'ffmpeg')

    Returns:
        Formatted timestamp

    Examples:
        >>> format_timestamp(3725, 'clock')
        '01:02:05'
        >>> format_timestamp(90.5, 'precise')
        '00:01:30.500'
    """
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    millis = int(round((seconds % 1) * 1000)) % 1000

    match format:
        case "clock":
            return f"{hours:02d}:{minutes:02d}:{secs:02d}"
        case "precise":
            return f"{hours:02d}:{minutes:02d}:{secs:02d}.{millis:03d}"
        case "ffmpeg":
            return f"{seconds:.3f}"
        case _:
            raise ValueError(f"Unknown timestamp format: {format}")


_CLOCK_RE = re.compile(r"^(?:(\d+):)?(\d{1,2}):(\d{1,2}(?:[.,]\d+)?)$")


def parse_timestamp(value: Union[str, int, float]) -> float:
    """
    Parse a timestamp into seconds.

    Accepts numbers, numeric strings, ``MM:SS`` and ``HH:MM:SS`` with an
    optional fractional part.

    Raises:
        ValueError: If the value is not a recognizable timestamp
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid timestamp: {value!r}")
    if isinstance(value, (int, float)):
        if value < 0:
            raise ValueError(f"Negative timestamp: {value!r}")
        return float(value)
    if not isinstance(value, str):
        raise ValueError(f"Invalid timestamp: {value!r}")

    text = value.strip()
    match = _CLOCK_RE.match(text)
    if match:
        hours, minutes, secs = match.groups()
        minutes_i = int(minutes)
        secs_f = float(secs.replace(",", "."))
        if minutes_i >= 60 and hours is not None:
            raise ValueError(f"Invalid minutes in timestamp: {value!r}")
        if secs_f >= 60:
            raise ValueError(f"Invalid seconds in timestamp: {value!r}")
        return int(hours or 0) * 3600 + minutes_i * 60 + secs_f

    try:
        seconds = float(text)
    except ValueError:
        raise ValueError(f"Invalid timestamp: {value!r}") from None
    if seconds < 0:
        raise ValueError(f"Negative timestamp: {value!r}")
    return seconds
