"""
Service modules for the narrated video pipeline.
"""

from .subtitle_builder import SpanOverflowPolicy, build_subtitle_track, build_srt, parse_srt
from .asset_fetcher import AssetFetcher
from .narration import (
    NarrationProvider,
    NarrationError,
    SilentNarrationProvider,
    SayNarrationProvider,
    EdgeTTSNarrationProvider,
    FallbackNarrationProvider,
    select_narration_provider,
)
from .engine import EngineRunner, EngineError, EngineResult
from .media_composer import MediaComposer, SubtitleStyle, escape_filter_path
from .workspace import WorkspaceManager, WorkspaceError, DeferredRelease
from .script_writer import ScriptWriter
from .pipeline import VideoJobRunner, ComposedVideo, VideoStream

__all__ = [
    "SpanOverflowPolicy",
    "build_subtitle_track",
    "build_srt",
    "parse_srt",
    "AssetFetcher",
    "NarrationProvider",
    "NarrationError",
    "SilentNarrationProvider",
    "SayNarrationProvider",
    "EdgeTTSNarrationProvider",
    "FallbackNarrationProvider",
    "select_narration_provider",
    "EngineRunner",
    "EngineError",
    "EngineResult",
    "MediaComposer",
    "SubtitleStyle",
    "escape_filter_path",
    "WorkspaceManager",
    "WorkspaceError",
    "DeferredRelease",
    "ScriptWriter",
    "VideoJobRunner",
    "ComposedVideo",
    "VideoStream",
]
