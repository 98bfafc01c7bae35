"""
Configuration management for the narrated video pipeline.
"""

import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Literal, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Project paths
    workspace_root: Path = Field(
        default_factory=lambda: Path(tempfile.gettempdir()) / "narrated_video_pipeline",
        description="Parent directory of the per-job scratch directories",
    )
    logs_dir: Path = Field(default_factory=lambda: Path("logs"))

    # Logging settings
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or text")

    # Language model settings
    xai_api_key: Optional[str] = Field(default=None, description="Key for the chat completion endpoint")
    llm_base_url: str = Field(default="https://api.x.ai/v1")
    llm_model_standard: str = Field(default="grok-3-mini")
    llm_model_unlimited: str = Field(default="grok-4")
    llm_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    llm_max_tokens: int = Field(default=500, ge=1)

    # Stock footage settings
    pexels_api_key: Optional[str] = Field(default=None)
    pexels_video_search_url: str = Field(default="https://api.pexels.com/videos/search")
    background_orientation: str = Field(default="landscape")
    default_background_query: str = Field(default="nature")
    fallback_video_url: str = Field(
        default="https://commondatastorage.googleapis.com/gtv-videos-bucket/sample/BigBuckBunny.mp4"
    )
    search_timeout: float = Field(default=15.0, gt=0, description="Stock footage search timeout in seconds")
    download_timeout: float = Field(default=120.0, gt=0, description="Background download timeout in seconds")
    download_chunk_size: int = Field(default=64 * 1024, ge=1024)

    # Transcoding engine settings
    ffmpeg_path: Optional[str] = Field(default=None, description="Explicit ffmpeg binary, PATH lookup if unset")
    ffprobe_path: Optional[str] = Field(default=None, description="Explicit ffprobe binary, PATH lookup if unset")
    ffmpeg_log_level: str = Field(default="error")

    # Narration settings
    narration_provider: Literal["auto", "say", "edge", "silent"] = Field(default="auto")
    narration_sample_rate: int = Field(default=44100, ge=8000, le=192000)

    # Subtitle settings
    subtitle_overflow_policy: Literal["redistribute", "clamp_last"] = Field(default="redistribute")
    subtitle_min_span: int = Field(default=2, ge=1)
    subtitle_font_size: int = Field(default=24, ge=1)
    subtitle_primary_colour: str = Field(default="&Hffffff&")
    subtitle_outline_colour: str = Field(default="&H0&")
    subtitle_back_colour: str = Field(default="&H80000000&")
    subtitle_bold: bool = Field(default=True)

    # Job settings
    default_duration: int = Field(default=60, ge=1)
    cleanup_grace_seconds: float = Field(default=5.0, ge=0)
    # Composed jobs whose stream never finishes are reclaimed after this
    unstreamed_release_seconds: float = Field(default=600.0, gt=0)
    stream_chunk_size: int = Field(default=64 * 1024, ge=1024)

    # Server settings
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=3000)
    cors_allow_origins: List[str] = Field(default_factory=lambda: ["*"])


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the global settings instance."""
    return settings


@dataclass(frozen=True)
class EngineConfig:
    """Transcoding engine binaries, resolved once at start-up."""

    ffmpeg_path: str
    ffprobe_path: str
    log_level: str = "error"


def resolve_engine_config(settings: Optional[Settings] = None) -> EngineConfig:
    """Resolve the ffmpeg/ffprobe binaries from settings or PATH."""
    settings = settings or get_settings()
    ffmpeg = settings.ffmpeg_path or shutil.which("ffmpeg") or "ffmpeg"
    ffprobe = settings.ffprobe_path or shutil.which("ffprobe") or "ffprobe"
    return EngineConfig(ffmpeg_path=ffmpeg, ffprobe_path=ffprobe, log_level=settings.ffmpeg_log_level)


def create_directories():
    """Create necessary directories if they don't exist."""
    for directory in (settings.workspace_root, settings.logs_dir):
        directory.mkdir(parents=True, exist_ok=True)


# Create directories on import
create_directories()
