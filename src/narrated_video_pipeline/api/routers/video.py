from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from ...schemas import ErrorResponse, HealthResponse, ScriptRequest, ScriptResponse, VideoRequest
from ...services.pipeline import VideoJobRunner
from ...services.script_writer import ScriptWriter
from ..deps import get_job_runner, get_script_writer


router = APIRouter(
    tags=["video"],
    responses={422: {"model": ErrorResponse}, 500: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
system_router = APIRouter(tags=["system"])


@router.post("/generate-script", response_model=ScriptResponse)
async def generate_script(
    payload: ScriptRequest, writer: ScriptWriter = Depends(get_script_writer)
) -> ScriptResponse:
    return await writer.generate(payload)


@router.post("/generate-video", response_class=StreamingResponse)
async def generate_video(
    payload: VideoRequest, runner: VideoJobRunner = Depends(get_job_runner)
) -> StreamingResponse:
    video = await runner.produce(payload)
    headers = {
        "Content-Length": str(video.size),
        "X-Job-Id": video.job.job_id,
    }
    stream = video.stream()
    return StreamingResponse(
        stream, media_type="video/mp4", headers=headers, background=BackgroundTask(stream.aclose)
    )


@system_router.get("/health", response_model=HealthResponse)
def health(runner: VideoJobRunner = Depends(get_job_runner)) -> HealthResponse:
    return HealthResponse(
        ffmpeg=runner.composer.runner.engine.ffmpeg_path,
        narration=runner.narration.name,
    )
