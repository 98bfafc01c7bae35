"""
Core data models for the narrated video pipeline.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Type

from .errors import StageError
from .utils.time_utils import format_srt_timestamp


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobState(Enum):
    """Lifecycle of a video job."""
    CREATED = "created"
    ASSETS_READY = "assets_ready"
    COMPOSED = "composed"
    STREAMING = "streaming"
    DONE = "done"
    FAILED = "failed"


JOB_TRANSITIONS: Dict[JobState, Tuple[JobState, ...]] = {
    JobState.CREATED: (JobState.ASSETS_READY, JobState.FAILED),
    JobState.ASSETS_READY: (JobState.COMPOSED, JobState.FAILED),
    JobState.COMPOSED: (JobState.STREAMING, JobState.FAILED),
    JobState.STREAMING: (JobState.DONE, JobState.FAILED),
    JobState.DONE: (),
    JobState.FAILED: (),
}


class ComposerState(Enum):
    """Media composer progress through the transform chain."""
    INIT = "init"
    TRIMMED = "trimmed"
    AUDIO_MUXED = "audio_muxed"
    SUBTITLED_FINAL = "subtitled_final"
    STREAMED = "streamed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ComposerState.STREAMED, ComposerState.FAILED)


class AssetRole(Enum):
    """Role a file plays inside a job workspace."""
    BACKGROUND = "background"
    NARRATION = "narration"
    SUBTITLES = "subtitles"
    INTERMEDIATE = "intermediate"
    FINAL = "final"


# Fixed file names inside every job workspace
WORKSPACE_FILENAMES: Dict[AssetRole, str] = {
    AssetRole.BACKGROUND: "bg.mp4",
    AssetRole.NARRATION: "voice.wav",
    AssetRole.SUBTITLES: "subs.srt",
    AssetRole.INTERMEDIATE: "temp.mp4",
    AssetRole.FINAL: "final.mp4",
}


@dataclass(frozen=True)
class SubtitleCue:
    """A single timed subtitle entry."""
    index: int
    start: float  # seconds
    end: float
    text: str

    def __post_init__(self):
        """Validate cue data."""
        if self.index < 1:
            raise ValueError("Cue index must be >= 1")
        if self.start < 0:
            raise ValueError("Cue start cannot be negative")
        if self.end <= self.start:
            raise ValueError("Cue end must be greater than cue start")
        if not self.text.strip():
            raise ValueError("Cue text cannot be empty")

    @property
    def duration(self) -> float:
        """Get cue duration in seconds."""
        return self.end - self.start

    def to_srt_block(self) -> str:
        """Serialize as one SRT block, blank line included."""
        return (
            f"{self.index}\n"
            f"{format_srt_timestamp(self.start)} --> {format_srt_timestamp(self.end)}\n"
            f"{self.text}\n\n"
        )


@dataclass(frozen=True)
class SubtitleTrack:
    """Ordered, contiguous sequence of cues bounded by the video duration."""
    cues: Tuple[SubtitleCue, ...]
    duration: float

    def __post_init__(self):
        """Validate track invariants."""
        object.__setattr__(self, "cues", tuple(self.cues))
        if self.duration <= 0:
            raise ValueError("Track duration must be positive")
        if not self.cues:
            raise ValueError("Track must contain at least one cue")
        if self.cues[0].start != 0:
            raise ValueError("First cue must start at 0")

        for position, cue in enumerate(self.cues, start=1):
            if cue.index != position:
                raise ValueError(f"Cue index {cue.index} out of sequence, expected {position}")
            if cue.end > self.duration:
                raise ValueError(f"Cue {cue.index} ends after track duration")

        for previous, current in zip(self.cues, self.cues[1:]):
            if current.start != previous.end:
                raise ValueError(f"Cue {current.index} is not contiguous with cue {previous.index}")

    def __len__(self) -> int:
        return len(self.cues)

    def __iter__(self):
        return iter(self.cues)

    @property
    def end(self) -> float:
        """End offset of the last cue."""
        return self.cues[-1].end

    def to_srt(self) -> str:
        """Serialize the whole track in SRT format."""
        return "".join(cue.to_srt_block() for cue in self.cues)


@dataclass(frozen=True)
class MediaAsset:
    """A file bound to a role inside a job workspace."""
    role: AssetRole
    path: Path

    @property
    def exists(self) -> bool:
        return self.path.exists()


@dataclass(frozen=True)
class PipelineStage:
    """One irrevocable transform in the composition chain."""
    name: str
    inputs: Tuple[AssetRole, ...]
    output: AssetRole
    from_state: ComposerState
    to_state: ComposerState
    error: Type[StageError]


@dataclass
class Job:
    """One end-to-end request to produce a composed video."""
    workspace: Path
    duration: int
    script: str
    voice: str = ""
    style: str = ""
    job_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    state: JobState = JobState.CREATED
    composer_state: ComposerState = ComposerState.INIT
    assets: Dict[AssetRole, MediaAsset] = field(default_factory=dict)
    error: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self):
        """Validate data after initialization."""
        if self.duration <= 0:
            raise ValueError("Duration must be positive")
        if not self.job_id:
            raise ValueError("Job ID cannot be empty")

    @property
    def is_terminal(self) -> bool:
        return self.state in (JobState.DONE, JobState.FAILED)

    def transition(self, new_state: JobState, error: Optional[str] = None) -> None:
        """Move the job along its lifecycle, rejecting illegal jumps."""
        if new_state not in JOB_TRANSITIONS[self.state]:
            raise ValueError(f"Illegal job transition {self.state.value} -> {new_state.value}")
        self.state = new_state
        if error is not None:
            self.error = error
        self.updated_at = _utcnow()

    def asset_path(self, role: AssetRole) -> Path:
        """Fixed workspace location for a role."""
        return self.workspace / WORKSPACE_FILENAMES[role]

    def bind_asset(self, role: AssetRole, path: Optional[Path] = None) -> MediaAsset:
        """Bind (or rebind) the single asset of a role."""
        asset = MediaAsset(role=role, path=Path(path) if path else self.asset_path(role))
        self.assets[role] = asset
        return asset

    def get_asset(self, role: AssetRole) -> Optional[MediaAsset]:
        return self.assets.get(role)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "job_id": self.job_id,
            "workspace": str(self.workspace),
            "duration": self.duration,
            "voice": self.voice,
            "style": self.style,
            "state": self.state.value,
            "composer_state": self.composer_state.value,
            "assets": {role.value: str(asset.path) for role, asset in self.assets.items()},
            "error": self.error,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
