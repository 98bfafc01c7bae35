"""
Job runner: one request in, one streamed video out.

Control flow per job::

    allocate workspace -> subtitles -> background -> narration -> compose
        -> stream final asset -> deferred workspace release

Any failure before streaming releases the workspace immediately, marks the
job failed and propagates. A composed job holds a long-delay release from the
moment ``produce`` returns; closing its stream, started or not, swaps that for
the short grace-period release. Once streaming has begun, failures are logged
only.
"""

import asyncio
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Dict, Optional

from ..config import get_settings
from ..logging_config import LoggerMixin, job_context
from ..models import AssetRole, ComposerState, Job, JobState
from ..schemas import VideoRequest
from .asset_fetcher import AssetFetcher
from .engine import EngineRunner
from .media_composer import MediaComposer
from .narration import NarrationProvider, select_narration_provider
from .subtitle_builder import build_srt
from .workspace import DeferredRelease, WorkspaceManager


@dataclass
class ComposedVideo:
    """A composed job whose final asset is ready to be streamed once."""

    job: Job
    path: Path
    runner: "VideoJobRunner"

    @property
    def size(self) -> int:
        return self.path.stat().st_size

    def stream(self, chunk_size: Optional[int] = None) -> "VideoStream":
        """Async iterator over the final asset in chunks."""
        return VideoStream(self, chunk_size or self.runner.settings.stream_chunk_size)

    def finish(self, bytes_sent: int) -> None:
        """Settle the job after its stream closed and hand the workspace to the grace release."""
        job = self.job
        with job_context(job.job_id):
            if job.state is JobState.STREAMING:
                job.transition(JobState.DONE)
            elif job.state is JobState.COMPOSED:
                job.transition(JobState.FAILED, error="Stream closed before any data was sent")
                self.runner.logger.warning("Stream closed before start")
            if job.state is JobState.DONE and job.composer_state is ComposerState.SUBTITLED_FINAL:
                self.runner.composer.mark_streamed(job)
            self.runner.logger.info("Video sent", bytes_sent=bytes_sent, state=job.state.value)
            self.runner.schedule_release(job.job_id)


class VideoStream:
    """
    Chunked reader over a composed video.

    Closing it settles the job exactly once, also when it was never
    iterated. File reads run in a worker thread.
    """

    def __init__(self, video: ComposedVideo, chunk_size: int):
        self.video = video
        self.chunk_size = chunk_size
        self.bytes_sent = 0
        self._handle: Optional[BinaryIO] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> "VideoStream":
        return self

    async def __anext__(self) -> bytes:
        if self._closed:
            raise StopAsyncIteration
        job = self.video.job

        try:
            if self._handle is None:
                job.transition(JobState.STREAMING)
                self._handle = await asyncio.to_thread(open, self.video.path, "rb")
            chunk = await asyncio.to_thread(self._handle.read, self.chunk_size)
        except OSError as exc:
            # Headers are already out; the caller sees a truncated body
            with job_context(job.job_id):
                self.video.runner.logger.error("Streaming failed", error=str(exc), bytes_sent=self.bytes_sent)
            job.transition(JobState.FAILED, error=str(exc))
            chunk = b""
        except asyncio.CancelledError:
            self.close()
            raise

        if not chunk:
            self.close()
            raise StopAsyncIteration
        self.bytes_sent += len(chunk)
        return chunk

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._handle is not None:
            self._handle.close()
        self.video.finish(self.bytes_sent)

    async def aclose(self) -> None:
        self.close()


class VideoJobRunner(LoggerMixin):
    """Own the lifecycle of video jobs and their workspaces."""

    def __init__(
        self,
        settings=None,
        workspace_manager: Optional[WorkspaceManager] = None,
        asset_fetcher: Optional[AssetFetcher] = None,
        narration_provider: Optional[NarrationProvider] = None,
        composer: Optional[MediaComposer] = None,
    ):
        self.settings = settings or get_settings()
        self.workspaces = workspace_manager or WorkspaceManager(settings=self.settings)
        self.asset_fetcher = asset_fetcher or AssetFetcher(settings=self.settings)
        self.narration = narration_provider or select_narration_provider(self.settings)
        self.composer = composer or MediaComposer(EngineRunner(), settings=self.settings)
        self._releases: Dict[str, DeferredRelease] = {}

    @property
    def active_jobs(self) -> int:
        return sum(1 for release in self._releases.values() if not release.released)

    async def produce(self, request: VideoRequest) -> ComposedVideo:
        """
        Run a job up to its composed final asset.

        The returned job's workspace is released after
        ``unstreamed_release_seconds`` unless its stream closes first.

        Raises:
            PipelineError: Any job-aborting failure; the workspace is already gone
        """
        job_id = uuid.uuid4().hex
        with job_context(job_id):
            workspace = self.workspaces.allocate(job_id)
            release = self.workspaces.deferred(workspace, job_id=job_id)
            self._releases[job_id] = release

            job = Job(
                workspace=workspace,
                duration=request.duration,
                script=request.script,
                voice=request.voice,
                style=request.background_hint(),
                job_id=job_id,
            )
            self.logger.info("Starting video job", duration=job.duration)

            try:
                await self._prepare_assets(job, request)
                job.transition(JobState.ASSETS_READY)

                final_path = await self.composer.compose(job)
                job.transition(JobState.COMPOSED)
            except Exception as exc:
                self.logger.error("Video failed", error=str(exc), error_type=type(exc).__name__)
                self._releases.pop(job_id, None)
                release.release_now()
                if not job.is_terminal:
                    job.transition(JobState.FAILED, error=str(exc))
                raise

            self._arm(job_id, release, self.settings.unstreamed_release_seconds)
            self.logger.info("Video composed", path=str(final_path))
        return ComposedVideo(job=job, path=final_path, runner=self)

    async def _prepare_assets(self, job: Job, request: VideoRequest) -> None:
        subtitles = job.asset_path(AssetRole.SUBTITLES)
        await asyncio.to_thread(subtitles.write_text, self.subtitles_for(request), encoding="utf-8")
        job.bind_asset(AssetRole.SUBTITLES, subtitles)

        background = await self.asset_fetcher.fetch_background(
            job.style, job.asset_path(AssetRole.BACKGROUND)
        )
        job.bind_asset(AssetRole.BACKGROUND, background)

        narration = await self.narration.synthesize(
            job.script, job.voice, job.asset_path(AssetRole.NARRATION), job.duration
        )
        job.bind_asset(AssetRole.NARRATION, narration)

    def subtitles_for(self, request: VideoRequest) -> str:
        """Client-supplied SRT, or one built from the script."""
        if request.srt and request.srt.strip():
            return request.srt
        return build_srt(
            request.script,
            request.duration,
            policy=self.settings.subtitle_overflow_policy,
            min_span=self.settings.subtitle_min_span,
        )

    def schedule_release(self, job_id: str) -> None:
        """Reclaim a job's workspace after the grace period."""
        release = self._releases.get(job_id)
        if release is not None:
            self._arm(job_id, release, self.settings.cleanup_grace_seconds)

    def _arm(self, job_id: str, release: DeferredRelease, delay: float) -> None:
        try:
            task = release.reschedule(delay)
        except RuntimeError:
            # No running loop (stream closed outside the loop)
            task = None
            release.release_now()
        if task is None:
            self._releases.pop(job_id, None)
            return
        task.add_done_callback(lambda _task: self._forget(job_id, release))

    def _forget(self, job_id: str, release: DeferredRelease) -> None:
        # Rescheduling cancels the previous task; only a finished release is dropped
        if release.released and self._releases.get(job_id) is release:
            del self._releases[job_id]

    async def aclose(self) -> None:
        """Release every workspace still held, skipping grace periods."""
        releases, self._releases = self._releases, {}
        for release in releases.values():
            release.release_now()
        if releases:
            self.logger.info("Released pending workspaces", count=len(releases))
