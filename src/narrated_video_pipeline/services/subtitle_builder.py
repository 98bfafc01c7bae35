"""Subtitle builder: script text + target duration -> timed SRT track.

Each non-empty script line becomes one cue. Cues share a uniform span of
``max(min_span, floor(duration / line_count))`` whole seconds and the last cue
is clamped to the duration. When that span cannot fit every line inside the
duration, the configured :class:`SpanOverflowPolicy` decides the outcome.

Pure and deterministic: no I/O.
"""

import math
import re
from enum import Enum
from typing import List, Union

from ..errors import EmptyScriptError, SubtitleOverflowError
from ..models import SubtitleCue, SubtitleTrack
from ..utils.time_utils import parse_srt_timestamp

DEFAULT_MIN_SPAN = 2

_TIMING_LINE = re.compile(r"^\s*(\S+)\s*-->\s*(\S+)\s*$")


class SpanOverflowPolicy(Enum):
    """What to do when uniform spans overrun the requested duration."""
    REDISTRIBUTE = "redistribute"  # split the duration evenly at millisecond resolution
    CLAMP_LAST = "clamp_last"      # keep the uniform spans, refuse tracks that do not fit


def split_script_lines(script: str) -> List[str]:
    """Split a script into trimmed, non-empty lines."""
    return [line.strip() for line in script.splitlines() if line.strip()]


def cue_span(duration: float, line_count: int, min_span: int = DEFAULT_MIN_SPAN) -> int:
    """Uniform per-line span in whole seconds."""
    return max(min_span, math.floor(duration / line_count))


def build_subtitle_track(
    script: str,
    duration: float,
    policy: Union[SpanOverflowPolicy, str] = SpanOverflowPolicy.REDISTRIBUTE,
    min_span: int = DEFAULT_MIN_SPAN,
) -> SubtitleTrack:
    """
    Build a subtitle track for a script.

    Args:
        script: Free-form script, one subtitle per line
        duration: Total video duration in seconds (must be > 0)
        policy: Overflow handling when uniform spans do not fit
        min_span: Minimum span per cue in seconds

    Returns:
        Immutable SubtitleTrack whose cue count equals the non-empty line count

    Raises:
        EmptyScriptError: If the script has no usable lines
        SubtitleOverflowError: Under CLAMP_LAST when the spans do not fit
        ValueError: If the duration is not positive
    """
    if duration <= 0:
        raise ValueError("Duration must be positive")

    lines = split_script_lines(script)
    if not lines:
        raise EmptyScriptError("Script contains no subtitle lines")

    policy = SpanOverflowPolicy(policy)
    span = cue_span(duration, len(lines), min_span)

    if span * (len(lines) - 1) < duration:
        return _uniform_track(lines, duration, span)

    if policy is SpanOverflowPolicy.CLAMP_LAST:
        raise SubtitleOverflowError(
            f"{len(lines)} lines at {span}s each do not fit in {duration}s"
        )
    return _redistributed_track(lines, duration)


def _uniform_track(lines: List[str], duration: float, span: int) -> SubtitleTrack:
    cues = []
    for i, line in enumerate(lines):
        start = i * span
        end = start + span
        if i == len(lines) - 1:
            end = min(end, duration)
        cues.append(SubtitleCue(index=i + 1, start=start, end=end, text=line))
    return SubtitleTrack(cues=tuple(cues), duration=duration)


def _redistributed_track(lines: List[str], duration: float) -> SubtitleTrack:
    total_ms = int(duration * 1000)
    if total_ms < len(lines):
        raise SubtitleOverflowError(
            f"{len(lines)} lines cannot share {duration}s at millisecond resolution"
        )

    # Boundaries are integral milliseconds so the SRT form is lossless
    bounds = [total_ms * i // len(lines) for i in range(len(lines) + 1)]
    cues = [
        SubtitleCue(index=i + 1, start=bounds[i] / 1000, end=bounds[i + 1] / 1000, text=line)
        for i, line in enumerate(lines)
    ]
    return SubtitleTrack(cues=tuple(cues), duration=duration)


def build_srt(
    script: str,
    duration: float,
    policy: Union[SpanOverflowPolicy, str] = SpanOverflowPolicy.REDISTRIBUTE,
    min_span: int = DEFAULT_MIN_SPAN,
) -> str:
    """Build and serialize a subtitle track in one call."""
    return build_subtitle_track(script, duration, policy=policy, min_span=min_span).to_srt()


def parse_srt(content: str) -> List[SubtitleCue]:
    """
    Parse SRT text into cues.

    Blocks are separated by blank lines; each holds an index line, a timing
    line and one or more text lines. Malformed blocks are skipped.
    """
    cues: List[SubtitleCue] = []
    blocks = re.split(r"\n\s*\n", content.replace("\r\n", "\n").strip())

    for block in blocks:
        lines = block.strip().split("\n")
        if len(lines) < 3:
            continue

        timing = _TIMING_LINE.match(lines[1])
        if not timing or not lines[0].strip().isdigit():
            continue

        try:
            cues.append(
                SubtitleCue(
                    index=int(lines[0].strip()),
                    start=parse_srt_timestamp(timing.group(1)),
                    end=parse_srt_timestamp(timing.group(2)),
                    text="\n".join(lines[2:]),
                )
            )
        except ValueError:
            continue

    return cues
