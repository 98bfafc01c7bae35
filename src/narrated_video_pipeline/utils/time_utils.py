"""
Time utility functions for the narrated video pipeline.
"""

import re

SRT_TIMESTAMP_PATTERN = re.compile(r"^(\d{2,}):(\d{2}):(\d{2}),(\d{3})$")


def format_srt_timestamp(seconds: float) -> str:
    """
    Format an offset in seconds as an SRT timestamp (HH:MM:SS,mmm).

    Milliseconds are truncated, so whole-second offsets always render ``,000``.

    Args:
        seconds: Offset from the start of the video

    Returns:
        Timestamp string
    """
    if seconds < 0:
        raise ValueError("Timestamp cannot be negative")

    total_ms = int(round(seconds * 1000, 6))
    total_seconds, milliseconds = divmod(total_ms, 1000)

    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    secs = total_seconds % 60

    return f"{hours:02d}:{minutes:02d}:{secs:02d},{milliseconds:03d}"


def parse_srt_timestamp(timestamp: str) -> float:
    """
    Parse an SRT timestamp (HH:MM:SS,mmm) into seconds.

    Args:
        timestamp: Timestamp string

    Returns:
        Offset in seconds
    """
    match = SRT_TIMESTAMP_PATTERN.match(timestamp.strip())
    if not match:
        raise ValueError(f"Invalid SRT timestamp: {timestamp!r}")

    hours, minutes, secs, millis = map(int, match.groups())
    return hours * 3600 + minutes * 60 + secs + millis / 1000.0
