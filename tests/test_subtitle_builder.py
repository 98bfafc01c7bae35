"""Tests for subtitle track construction and SRT serialization."""

import pytest
from hypothesis import given, strategies as st

from narrated_video_pipeline.errors import EmptyScriptError, SubtitleOverflowError
from narrated_video_pipeline.services.subtitle_builder import (
    SpanOverflowPolicy,
    build_srt,
    build_subtitle_track,
    cue_span,
    parse_srt,
    split_script_lines,
)
from narrated_video_pipeline.utils.time_utils import format_srt_timestamp, parse_srt_timestamp


line_text = st.text(
    alphabet=st.characters(blacklist_categories=("Cc", "Cs", "Zl", "Zp")),
    min_size=1,
    max_size=40,
).filter(lambda s: s.strip())


class TestSubtitleBuilder:
    """Unit tests for build_subtitle_track."""

    def test_two_lines_split_duration_evenly(self) -> None:
        srt = build_srt("Hello\nWorld", 10)
        assert srt == (
            "1\n00:00:00,000 --> 00:00:05,000\nHello\n\n"
            "2\n00:00:05,000 --> 00:00:10,000\nWorld\n\n"
        )

    def test_sentence_script_scenario(self) -> None:
        track = build_subtitle_track("Hello world.\nThis is a test.", 10)
        assert [(cue.start, cue.end, cue.text) for cue in track] == [
            (0, 5, "Hello world."),
            (5, 10, "This is a test."),
        ]

    def test_blank_lines_are_ignored(self) -> None:
        track = build_subtitle_track("\n  First  \n\n\nSecond\n   \n", 60)
        assert [cue.text for cue in track] == ["First", "Second"]
        assert [(cue.start, cue.end) for cue in track] == [(0, 30), (30, 60)]

    def test_last_cue_clamped_to_duration(self) -> None:
        track = build_subtitle_track("One\nTwo", 3)
        assert [(cue.start, cue.end) for cue in track] == [(0, 2), (2, 3)]

    def test_minimum_span_applies(self) -> None:
        assert cue_span(7, 5) == 2
        track = build_subtitle_track("a\nb\nc", 7)
        assert [(cue.start, cue.end) for cue in track] == [(0, 2), (2, 4), (4, 6)]

    def test_empty_script_rejected(self) -> None:
        with pytest.raises(EmptyScriptError):
            build_subtitle_track("", 10)
        with pytest.raises(EmptyScriptError):
            build_subtitle_track(" \n\t\n", 10)

    def test_empty_script_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            build_subtitle_track("\n", 10)

    def test_non_positive_duration_rejected(self) -> None:
        with pytest.raises(ValueError):
            build_subtitle_track("Hello", 0)

    def test_overflow_redistributes_by_default(self) -> None:
        track = build_subtitle_track("a\nb\nc", 4)
        assert len(track) == 3
        assert [(cue.start, cue.end) for cue in track] == [(0, 1.333), (1.333, 2.666), (2.666, 4)]

    def test_overflow_rejected_under_clamp_last(self) -> None:
        with pytest.raises(SubtitleOverflowError):
            build_subtitle_track("a\nb\nc", 4, policy=SpanOverflowPolicy.CLAMP_LAST)

    def test_policy_accepts_string_value(self) -> None:
        with pytest.raises(SubtitleOverflowError):
            build_subtitle_track("a\nb\nc", 4, policy="clamp_last")

    def test_more_lines_than_milliseconds(self) -> None:
        script = "\n".join(f"line {i}" for i in range(5))
        with pytest.raises(SubtitleOverflowError):
            build_subtitle_track(script, 0.004)

    def test_split_script_lines(self) -> None:
        assert split_script_lines("a\r\n b \n\nc") == ["a", "b", "c"]


class TestSrtParsing:
    """Tests for parse_srt and timestamp helpers."""

    def test_parse_skips_malformed_blocks(self) -> None:
        content = (
            "1\n00:00:00,000 --> 00:00:02,000\nGood\n\n"
            "x\nnot a timing line\nBad\n\n"
            "3\n00:00:04,000 --> 00:00:03,000\nBackwards\n\n"
            "4\n00:00:04,000 --> 00:00:06,000\nAlso good\nsecond line\n"
        )
        cues = parse_srt(content)
        assert [cue.text for cue in cues] == ["Good", "Also good\nsecond line"]

    def test_parse_handles_crlf(self) -> None:
        cues = parse_srt("1\r\n00:00:00,000 --> 00:00:01,500\r\nHi\r\n")
        assert cues[0].end == 1.5

    def test_format_timestamp(self) -> None:
        assert format_srt_timestamp(0) == "00:00:00,000"
        assert format_srt_timestamp(3661.5) == "01:01:01,500"
        assert format_srt_timestamp(1.333) == "00:00:01,333"

    def test_format_negative_timestamp_rejected(self) -> None:
        with pytest.raises(ValueError):
            format_srt_timestamp(-1)

    def test_parse_timestamp(self) -> None:
        assert parse_srt_timestamp("01:01:01,500") == pytest.approx(3661.5)
        with pytest.raises(ValueError):
            parse_srt_timestamp("1:1:1.5")


@pytest.mark.property
class TestSubtitleTrackProperties:
    """Property-based tests for track invariants."""

    @given(lines=st.lists(line_text, min_size=1, max_size=20), duration=st.integers(min_value=1, max_value=600))
    def test_track_invariants(self, lines, duration) -> None:
        track = build_subtitle_track("\n".join(lines), duration)

        assert len(track) == len(lines)
        assert track.cues[0].start == 0
        assert track.end <= duration
        for position, cue in enumerate(track, start=1):
            assert cue.index == position
            assert cue.start < cue.end
        for previous, current in zip(track.cues, track.cues[1:]):
            assert current.start == previous.end

    @given(lines=st.lists(line_text, min_size=1, max_size=20), duration=st.integers(min_value=1, max_value=600))
    def test_srt_parses_back_to_same_cues(self, lines, duration) -> None:
        track = build_subtitle_track("\n".join(lines), duration)
        parsed = parse_srt(track.to_srt())

        assert [cue.text for cue in parsed] == [line.strip() for line in lines]
        for original, cue in zip(track, parsed):
            assert cue.start == pytest.approx(original.start, abs=1e-6)
            assert cue.end == pytest.approx(original.end, abs=1e-6)

    @given(lines=st.lists(line_text, min_size=1, max_size=20), duration=st.integers(min_value=1, max_value=600))
    def test_clamp_last_never_overruns(self, lines, duration) -> None:
        try:
            track = build_subtitle_track("\n".join(lines), duration, policy=SpanOverflowPolicy.CLAMP_LAST)
        except SubtitleOverflowError:
            return
        assert track.end <= duration
        assert len(track) == len(lines)
