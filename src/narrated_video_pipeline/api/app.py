from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import get_settings
from ..errors import PipelineError
from ..logging_config import get_logger
from .deps import get_job_runner
from .routers import video as video_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info("Server starting", workspace_root=str(settings.workspace_root))
    yield
    if get_job_runner.cache_info().currsize:
        await get_job_runner().aclose()
    logger.info("Server stopped")


async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    logger.warning("Request failed", path=request.url.path, code=exc.code, error=str(exc))
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc), "code": exc.code})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error", path=request.url.path, error=str(exc), error_type=type(exc).__name__)
    return JSONResponse(status_code=500, content={"error": str(exc), "code": "InternalError"})


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Narrated Video Pipeline", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(PipelineError, pipeline_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(video_router.router)
    app.include_router(video_router.router, prefix="/api")
    app.include_router(video_router.system_router)
    return app


app = create_app()
