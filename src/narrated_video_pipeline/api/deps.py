from __future__ import annotations

from functools import lru_cache

from ..config import get_settings, resolve_engine_config
from ..services.engine import EngineRunner
from ..services.media_composer import MediaComposer
from ..services.pipeline import VideoJobRunner
from ..services.script_writer import ScriptWriter


@lru_cache(maxsize=1)
def get_job_runner() -> VideoJobRunner:
    settings = get_settings()
    return VideoJobRunner(settings=settings, composer=MediaComposer(EngineRunner(resolve_engine_config(settings)), settings=settings))


@lru_cache(maxsize=1)
def get_script_writer() -> ScriptWriter:
    return ScriptWriter(settings=get_settings())
