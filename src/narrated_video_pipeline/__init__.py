"""
Narrated Video Pipeline

Turns a topic into a short narrated, subtitled video: a language model writes
the script, stock footage provides the background, and ffmpeg trims, muxes
and burns in subtitles inside an isolated per-job workspace.
"""

__version__ = "0.1.0"
__author__ = "PsiLab Technology"

from .models import (
    Job,
    JobState,
    ComposerState,
    AssetRole,
    MediaAsset,
    PipelineStage,
    SubtitleCue,
    SubtitleTrack,
)

__all__ = [
    "Job",
    "JobState",
    "ComposerState",
    "AssetRole",
    "MediaAsset",
    "PipelineStage",
    "SubtitleCue",
    "SubtitleTrack",
]
