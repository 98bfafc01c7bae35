"""Awaitable wrapper around the external transcoding engine (ffmpeg/ffprobe).

Every invocation is a single child process awaited to completion; there is
no retry and no timeout.
"""

import asyncio
import json
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from ..config import EngineConfig, resolve_engine_config
from ..logging_config import LoggerMixin

STDERR_TAIL_CHARS = 2000


class EngineError(Exception):
    """Raised when the engine exits non-zero or cannot be started."""

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


@dataclass
class EngineResult:
    """Outcome of one engine invocation."""
    args: List[str]
    returncode: int
    stdout: str
    stderr: str


class EngineRunner(LoggerMixin):
    """Run ffmpeg and ffprobe as asyncio subprocesses."""

    def __init__(self, engine: Optional[EngineConfig] = None):
        self.engine = engine or resolve_engine_config()

    def ffmpeg_command(self, args: Sequence[str]) -> List[str]:
        """Full ffmpeg command line for the given arguments."""
        return [self.engine.ffmpeg_path, "-hide_banner", "-loglevel", self.engine.log_level, "-y", *args]

    async def run_ffmpeg(self, args: Sequence[str]) -> EngineResult:
        """Run ffmpeg with ``args`` and wait for it to exit."""
        return await self._run(self.ffmpeg_command(args))

    async def probe_duration(self, media_path: Path) -> Optional[float]:
        """Container duration in seconds, or None when it cannot be read."""
        command = [
            self.engine.ffprobe_path,
            "-v", "error",
            "-show_entries", "format=duration",
            "-of", "json",
            str(media_path),
        ]
        try:
            result = await self._run(command)
            data = json.loads(result.stdout)
            return float(data["format"]["duration"])
        except (EngineError, json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            self.logger.warning("Failed to probe media duration", path=str(media_path), error=str(exc))
            return None

    async def _run(self, command: List[str]) -> EngineResult:
        self.logger.debug("Running engine", command=" ".join(command))
        try:
            process = await asyncio.create_subprocess_exec(
                *command, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE
            )
        except OSError as exc:
            raise EngineError(f"Failed to start {command[0]}: {exc}") from exc

        stdout, stderr = await process.communicate()
        result = EngineResult(
            args=command,
            returncode=process.returncode,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )

        if result.returncode != 0:
            tail = result.stderr[-STDERR_TAIL_CHARS:]
            raise EngineError(
                f"{Path(command[0]).name} exited with code {result.returncode}: {tail.strip()}",
                returncode=result.returncode,
                stderr=tail,
            )
        return result
