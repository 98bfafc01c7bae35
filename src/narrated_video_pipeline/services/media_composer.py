"""Media composer: the ordered ffmpeg transform chain for one job.

State machine::

    init -> trimmed -> audio_muxed -> subtitled_final -> streamed
      \\________\\____________\\______________\\_____-> failed

Each transition is exactly one awaited engine invocation:

1. trim      background   -> intermediate  (``-t``, stream copy)
2. mux       intermediate + narration -> intermediate  (video copy, AAC, ``-shortest``)
3. burn-in   intermediate + subtitles -> final  (libx264, ``subtitles`` filter)

There is no retry and no rollback; the first failure moves the job's composer
state to ``failed`` and propagates. The final ``streamed`` transition is
recorded by the caller once the sink has consumed the final asset.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..config import get_settings
from ..errors import ComposerStateError, MuxError, StageError, SubtitleFilterError, TrimError
from ..logging_config import LoggerMixin, job_context
from ..models import AssetRole, ComposerState, Job, PipelineStage
from ..utils.file_utils import get_file_size
from .engine import EngineError, EngineRunner


@dataclass
class SubtitleStyle:
    """Burned-in subtitle appearance (ASS ``force_style`` fields)."""

    font_size: int = 24
    primary_colour: str = "&Hffffff&"
    outline_colour: str = "&H0&"
    back_colour: str = "&H80000000&"
    bold: bool = True

    def __post_init__(self):
        """Validate style configuration."""
        if self.font_size <= 0:
            raise ValueError("Font size must be positive")

    @classmethod
    def from_settings(cls, settings) -> "SubtitleStyle":
        return cls(
            font_size=settings.subtitle_font_size,
            primary_colour=settings.subtitle_primary_colour,
            outline_colour=settings.subtitle_outline_colour,
            back_colour=settings.subtitle_back_colour,
            bold=settings.subtitle_bold,
        )

    def force_style(self) -> str:
        return (
            f"Fontsize={self.font_size},"
            f"PrimaryColour={self.primary_colour},"
            f"OutlineColour={self.outline_colour},"
            f"BackColour={self.back_colour},"
            f"Bold={1 if self.bold else 0}"
        )


def escape_filter_path(path: Union[str, Path]) -> str:
    """
    Escape a file path for use inside an ffmpeg filter argument.

    Backslashes become forward slashes, then every ``:`` and ``'`` gets a
    single escaping backslash. Apply once: escaping twice corrupts the path.
    """
    text = str(path).replace("\\", "/")
    return text.replace(":", "\\:").replace("'", "\\'")


def subtitles_filter(subtitle_path: Union[str, Path], style: SubtitleStyle) -> str:
    """Build the ``subtitles`` video filter for burn-in."""
    return f"subtitles={escape_filter_path(subtitle_path)}:force_style='{style.force_style()}'"


TRIM = PipelineStage(
    name="trim",
    inputs=(AssetRole.BACKGROUND,),
    output=AssetRole.INTERMEDIATE,
    from_state=ComposerState.INIT,
    to_state=ComposerState.TRIMMED,
    error=TrimError,
)

MUX = PipelineStage(
    name="mux_audio",
    inputs=(AssetRole.INTERMEDIATE, AssetRole.NARRATION),
    output=AssetRole.INTERMEDIATE,
    from_state=ComposerState.TRIMMED,
    to_state=ComposerState.AUDIO_MUXED,
    error=MuxError,
)

BURN_SUBTITLES = PipelineStage(
    name="burn_subtitles",
    inputs=(AssetRole.INTERMEDIATE, AssetRole.SUBTITLES),
    output=AssetRole.FINAL,
    from_state=ComposerState.AUDIO_MUXED,
    to_state=ComposerState.SUBTITLED_FINAL,
    error=SubtitleFilterError,
)

STAGES = (TRIM, MUX, BURN_SUBTITLES)


class MediaComposer(LoggerMixin):
    """Run the fixed trim -> mux -> burn-in chain against a job workspace."""

    def __init__(
        self,
        runner: Optional[EngineRunner] = None,
        settings=None,
        style: Optional[SubtitleStyle] = None,
    ):
        self.settings = settings or get_settings()
        self.runner = runner or EngineRunner()
        self.style = style or SubtitleStyle.from_settings(self.settings)

    # ---------------------------
    # Stage arguments
    # ---------------------------

    def stage_args(self, stage: PipelineStage, job: Job, output: Path) -> List[str]:
        """ffmpeg arguments (binary and global flags excluded) for a stage."""
        inputs: Dict[AssetRole, Path] = {role: job.assets[role].path for role in stage.inputs}

        if stage is TRIM:
            return [
                "-i", str(inputs[AssetRole.BACKGROUND]),
                "-t", str(job.duration),
                "-c", "copy",
                str(output),
            ]
        if stage is MUX:
            return [
                "-i", str(inputs[AssetRole.INTERMEDIATE]),
                "-i", str(inputs[AssetRole.NARRATION]),
                "-map", "0:v:0",
                "-map", "1:a:0",
                "-c:v", "copy",
                "-c:a", "aac",
                "-shortest",
                str(output),
            ]
        if stage is BURN_SUBTITLES:
            return [
                "-i", str(inputs[AssetRole.INTERMEDIATE]),
                "-vf", subtitles_filter(inputs[AssetRole.SUBTITLES], self.style),
                "-c:v", "libx264",
                "-pix_fmt", "yuv420p",
                "-c:a", "copy",
                str(output),
            ]
        raise ComposerStateError(f"Unknown stage: {stage.name}")

    # ---------------------------
    # State machine
    # ---------------------------

    async def run_stage(self, job: Job, stage: PipelineStage) -> Path:
        """
        Run one stage, advancing the job's composer state.

        Raises:
            ComposerStateError: If the job is not in the stage's source state or inputs are missing
            StageError: The stage's own error class when the engine invocation fails
        """
        if job.composer_state is not stage.from_state:
            raise ComposerStateError(
                f"Stage {stage.name} requires state {stage.from_state.value}, "
                f"job {job.job_id} is {job.composer_state.value}"
            )
        missing = [role.value for role in stage.inputs if role not in job.assets or not job.assets[role].exists]
        if missing:
            self._fail(job)
            raise ComposerStateError(f"Stage {stage.name} is missing inputs: {', '.join(missing)}")

        target = job.asset_path(stage.output)
        # Reading and writing the same file is not possible; chain through a staging file
        in_place = stage.output in stage.inputs
        output = target.with_name(f"{target.stem}.{stage.name}{target.suffix}") if in_place else target

        with job_context(job.job_id):
            self.logger.info("Stage started", stage=stage.name)
            try:
                await self.runner.run_ffmpeg(self.stage_args(stage, job, output))
                if not output.exists():
                    raise EngineError(f"{stage.name} produced no output file")
                if in_place:
                    os.replace(output, target)
            except EngineError as exc:
                self._fail(job)
                self.logger.error("Stage failed", stage=stage.name, error=str(exc))
                raise stage.error(f"{stage.name} failed: {exc}", stderr=exc.stderr) from exc

            job.bind_asset(stage.output, target)
            job.composer_state = stage.to_state
            self.logger.info("Stage completed", stage=stage.name, state=stage.to_state.value)
        return target

    async def compose(self, job: Job) -> Path:
        """
        Run every stage in order and return the final asset path.

        Raises:
            TrimError, MuxError, SubtitleFilterError: On the failing stage
        """
        output: Optional[Path] = None
        with job_context(job.job_id):
            for stage in STAGES:
                output = await self.run_stage(job, stage)

            duration = await self.runner.probe_duration(output)
            self.logger.info(
                "Composition finished",
                output=str(output),
                requested_seconds=job.duration,
                actual_seconds=duration,
                size_bytes=get_file_size(output),
            )
        return output

    def mark_streamed(self, job: Job) -> None:
        """Record that the final asset has been delivered."""
        if job.composer_state is not ComposerState.SUBTITLED_FINAL:
            raise ComposerStateError(
                f"Job {job.job_id} cannot be marked streamed from {job.composer_state.value}"
            )
        job.composer_state = ComposerState.STREAMED

    def _fail(self, job: Job) -> None:
        if not job.composer_state.is_terminal:
            job.composer_state = ComposerState.FAILED


__all__ = [
    "MediaComposer",
    "SubtitleStyle",
    "StageError",
    "STAGES",
    "TRIM",
    "MUX",
    "BURN_SUBTITLES",
    "escape_filter_path",
    "subtitles_filter",
]
