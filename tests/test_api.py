"""HTTP API tests with dependency overrides."""

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from conftest import FakeAssetFetcher
from narrated_video_pipeline.api.app import create_app
from narrated_video_pipeline.api.deps import get_job_runner, get_script_writer
from narrated_video_pipeline.errors import AssetDownloadError
from narrated_video_pipeline.services.narration import SilentNarrationProvider
from narrated_video_pipeline.services.pipeline import VideoJobRunner
from narrated_video_pipeline.services.script_writer import ScriptWriter


class StaticCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error

    async def create(self, **kwargs):
        if self.error is not None:
            raise self.error
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))])


def writer_with(settings, content=None, error=None) -> ScriptWriter:
    client = SimpleNamespace(chat=SimpleNamespace(completions=StaticCompletions(content, error)))
    return ScriptWriter(settings=settings, client=client)


@pytest.fixture
def app(job_runner, test_settings):
    app = create_app()
    app.dependency_overrides[get_job_runner] = lambda: job_runner
    app.dependency_overrides[get_script_writer] = lambda: writer_with(test_settings, content="One.\nTwo.")
    return app


@pytest.fixture
def client(app):
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client


class TestGenerateScript:
    """Test suite for the script endpoint."""

    @pytest.mark.parametrize("path", ["/generate-script", "/api/generate-script"])
    def test_success(self, client, path) -> None:
        response = client.post(path, json={"topic": "rain", "duration": 10})
        assert response.status_code == 200
        data = response.json()
        assert data["script"] == "One.\nTwo."
        assert "00:00:05,000 --> 00:00:10,000" in data["srt"]

    def test_upstream_error(self, app, client, test_settings) -> None:
        app.dependency_overrides[get_script_writer] = lambda: writer_with(test_settings, error=RuntimeError("down"))
        response = client.post("/generate-script", json={"topic": "rain"})
        assert response.status_code == 502
        assert response.json()["code"] == "UpstreamModelError"
        assert "down" in response.json()["error"]

    def test_validation_error(self, client) -> None:
        response = client.post("/generate-script", json={"topic": "rain", "duration": 0})
        assert response.status_code == 422


class TestGenerateVideo:
    """Test suite for the video endpoint."""

    @pytest.mark.parametrize("path", ["/generate-video", "/api/generate-video"])
    def test_streams_video(self, client, job_runner, path) -> None:
        response = client.post(path, json={"script": "Hello\nWorld", "duration": 10, "voice": "Female"})

        assert response.status_code == 200
        assert response.headers["content-type"] == "video/mp4"
        assert response.content == b"output-3"
        assert response.headers["x-job-id"]
        assert list(job_runner.workspaces.root.iterdir()) == []

    def test_empty_script(self, client, job_runner) -> None:
        response = client.post("/generate-video", json={"script": "   ", "duration": 10})
        assert response.status_code == 422
        assert response.json()["code"] == "EmptyScript"
        assert list(job_runner.workspaces.root.iterdir()) == []

    def test_download_failure(self, app, client, test_settings, workspace_manager, composer) -> None:
        failing = VideoJobRunner(
            settings=test_settings,
            workspace_manager=workspace_manager,
            asset_fetcher=FakeAssetFetcher(test_settings, error=AssetDownloadError("host unreachable")),
            narration_provider=SilentNarrationProvider(sample_rate=8000),
            composer=composer,
        )
        app.dependency_overrides[get_job_runner] = lambda: failing

        response = client.post("/generate-video", json={"script": "Hello", "duration": 10})
        assert response.status_code == 502
        assert response.json() == {"error": "host unreachable", "code": "AssetDownloadFailed"}
        assert list(workspace_manager.root.iterdir()) == []

    def test_unexpected_error(self, app, client, test_settings, workspace_manager, composer) -> None:
        failing = VideoJobRunner(
            settings=test_settings,
            workspace_manager=workspace_manager,
            asset_fetcher=FakeAssetFetcher(test_settings, error=RuntimeError("disk on fire")),
            narration_provider=SilentNarrationProvider(sample_rate=8000),
            composer=composer,
        )
        app.dependency_overrides[get_job_runner] = lambda: failing

        response = client.post("/generate-video", json={"script": "Hello", "duration": 10})
        assert response.status_code == 500
        assert response.json()["code"] == "InternalError"


def test_health(client) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "ffmpeg": "ffmpeg", "narration": "silent"}
