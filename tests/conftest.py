"""
Pytest configuration and fixtures for the narrated video pipeline tests.
"""

import asyncio
import pytest
import tempfile
import shutil
from pathlib import Path
from typing import Generator, List, Optional, Sequence

from narrated_video_pipeline.config import EngineConfig, Settings
from narrated_video_pipeline.models import AssetRole, Job
from narrated_video_pipeline.services.asset_fetcher import AssetFetcher
from narrated_video_pipeline.services.engine import EngineError, EngineResult, EngineRunner
from narrated_video_pipeline.services.media_composer import MediaComposer
from narrated_video_pipeline.services.narration import SilentNarrationProvider
from narrated_video_pipeline.services.pipeline import VideoJobRunner
from narrated_video_pipeline.services.workspace import WorkspaceManager


class FakeEngineRunner(EngineRunner):
    """Records ffmpeg invocations and writes a marker file as each output."""

    def __init__(self, fail_on: Optional[int] = None, stderr: str = "engine exploded"):
        super().__init__(EngineConfig(ffmpeg_path="ffmpeg", ffprobe_path="ffprobe"))
        self.calls: List[List[str]] = []
        self.fail_on = fail_on
        self.stderr = stderr

    async def run_ffmpeg(self, args: Sequence[str]) -> EngineResult:
        args = list(args)
        self.calls.append(args)
        if self.fail_on is not None and len(self.calls) - 1 == self.fail_on:
            raise EngineError("ffmpeg exited with code 1", returncode=1, stderr=self.stderr)
        output = Path(args[-1])
        output.write_bytes(f"output-{len(self.calls)}".encode())
        return EngineResult(args=self.ffmpeg_command(args), returncode=0, stdout="", stderr="")

    async def probe_duration(self, media_path: Path) -> Optional[float]:
        return 10.0


class FakeAssetFetcher(AssetFetcher):
    """Writes fixed bytes instead of searching and downloading."""

    def __init__(self, settings, content: bytes = b"background", error: Optional[Exception] = None):
        super().__init__(settings=settings)
        self.content = content
        self.error = error
        self.hints: List[str] = []

    async def fetch_background(self, hint: str, destination: Path) -> Path:
        self.hints.append(hint)
        if self.error is not None:
            raise self.error
        destination = Path(destination)
        destination.write_bytes(self.content)
        return destination


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_settings(temp_dir: Path) -> Settings:
    """Create test settings with temporary directories and no external services."""
    settings = Settings(
        workspace_root=temp_dir / "jobs",
        logs_dir=temp_dir / "logs",
        log_level="DEBUG",
        xai_api_key=None,
        pexels_api_key=None,
        narration_provider="silent",
        narration_sample_rate=8000,
        cleanup_grace_seconds=0,
        stream_chunk_size=1024,
    )

    settings.workspace_root.mkdir(parents=True, exist_ok=True)
    settings.logs_dir.mkdir(parents=True, exist_ok=True)

    return settings


@pytest.fixture
def workspace_manager(test_settings: Settings) -> WorkspaceManager:
    return WorkspaceManager(settings=test_settings)


@pytest.fixture
def fake_engine() -> FakeEngineRunner:
    return FakeEngineRunner()


@pytest.fixture
def composer(test_settings: Settings, fake_engine: FakeEngineRunner) -> MediaComposer:
    return MediaComposer(fake_engine, settings=test_settings)


@pytest.fixture
def fake_fetcher(test_settings: Settings) -> FakeAssetFetcher:
    return FakeAssetFetcher(test_settings)


@pytest.fixture
def job_runner(
    test_settings: Settings,
    workspace_manager: WorkspaceManager,
    fake_fetcher: FakeAssetFetcher,
    composer: MediaComposer,
) -> VideoJobRunner:
    return VideoJobRunner(
        settings=test_settings,
        workspace_manager=workspace_manager,
        asset_fetcher=fake_fetcher,
        narration_provider=SilentNarrationProvider(sample_rate=8000),
        composer=composer,
    )


@pytest.fixture
def sample_script() -> str:
    return "The ocean covers most of the planet.\nIt holds most of its life.\n"


@pytest.fixture
def ready_job(workspace_manager: WorkspaceManager) -> Job:
    """A job whose background, narration and subtitles are in place."""
    job = Job(workspace=workspace_manager.allocate("ready-job"), duration=10, script="Hello\nWorld")
    for role, content in (
        (AssetRole.BACKGROUND, b"bg"),
        (AssetRole.NARRATION, b"voice"),
        (AssetRole.SUBTITLES, b"1\n00:00:00,000 --> 00:00:05,000\nHello\n\n"),
    ):
        path = job.asset_path(role)
        path.write_bytes(content)
        job.bind_asset(role, path)
    return job


@pytest.fixture
def thread_calls(monkeypatch) -> List[str]:
    """Names of the callables handed to ``asyncio.to_thread`` during a test."""
    calls: List[str] = []
    original = asyncio.to_thread

    async def recording(func, *args, **kwargs):
        calls.append(getattr(func, "__name__", repr(func)))
        return await original(func, *args, **kwargs)

    monkeypatch.setattr(asyncio, "to_thread", recording)
    return calls
