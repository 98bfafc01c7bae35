from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class ScriptRequest(BaseModel):
    topic: str = Field(..., min_length=1)
    duration: int = Field(default=60, gt=0)
    style: str = ""
    voice: str = ""
    unlimited: bool = False


class ScriptResponse(BaseModel):
    script: str
    srt: str


class VideoRequest(BaseModel):
    script: str
    srt: Optional[str] = None
    music: str = ""
    voice: str = ""
    duration: int = Field(default=60, gt=0)
    style: str = ""

    def background_hint(self) -> str:
        """Search hint for background footage: style, then music mood."""
        return (self.style or self.music).strip()


class ErrorResponse(BaseModel):
    error: str
    code: str = "PipelineError"


class HealthResponse(BaseModel):
    status: str = "ok"
    ffmpeg: str
    narration: str
