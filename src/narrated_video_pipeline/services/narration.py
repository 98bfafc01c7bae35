"""
Narration providers behind one capability interface.

Variants:
- SayNarrationProvider: the platform speech utility (``say``), where present
- EdgeTTSNarrationProvider: Microsoft Edge neural voices via ``edge_tts``
- SilentNarrationProvider: zero-amplitude WAV sized to the requested duration

Which variant a process uses is a deployment decision made once by
:func:`select_narration_provider`. Real synthesis is always wrapped in
:class:`FallbackNarrationProvider`, so a synthesis failure degrades the job's
narration to silence instead of failing the job.
"""

import asyncio
import shutil
import wave
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional

import edge_tts

from ..config import get_settings
from ..logging_config import LoggerMixin, get_logger

SAMPLE_WIDTH_BYTES = 2  # 16-bit PCM

logger = get_logger(__name__)


class NarrationError(Exception):
    """Raised when a narration provider cannot produce audio."""


def is_female_voice(voice_hint: str) -> bool:
    return "female" in (voice_hint or "").lower()


class NarrationProvider(ABC, LoggerMixin):
    """Produce an audio track for a script."""

    name = "base"

    @abstractmethod
    async def synthesize(self, text: str, voice_hint: str, destination: Path, duration: float) -> Path:
        """
        Write narration for ``text`` near ``destination``.

        Args:
            text: Script to narrate
            voice_hint: Free-form voice selector, e.g. "Female" or "Male"
            destination: Preferred output path inside the job workspace
            duration: Requested video duration in seconds

        Returns:
            Path of the audio file actually written
        """


class SilentNarrationProvider(NarrationProvider):
    """Mono 16-bit zero-amplitude WAV at a fixed sample rate."""

    name = "silent"

    def __init__(self, sample_rate: int = 44100):
        if sample_rate <= 0:
            raise ValueError("Sample rate must be positive")
        self.sample_rate = sample_rate

    def frame_count(self, duration: float) -> int:
        return max(1, int(round(duration * self.sample_rate)))

    def write_silence(self, destination: Path, frames: int) -> None:
        """Write ``frames`` zero samples, one second per write."""
        silence = bytes(SAMPLE_WIDTH_BYTES * self.sample_rate)
        with wave.open(str(destination), "wb") as wav:
            wav.setnchannels(1)
            wav.setsampwidth(SAMPLE_WIDTH_BYTES)
            wav.setframerate(self.sample_rate)
            remaining = frames
            while remaining > 0:
                chunk = min(remaining, self.sample_rate)
                wav.writeframes(silence[: chunk * SAMPLE_WIDTH_BYTES])
                remaining -= chunk

    async def synthesize(self, text: str, voice_hint: str, destination: Path, duration: float) -> Path:
        destination = Path(destination).with_suffix(".wav")
        frames = self.frame_count(duration)
        await asyncio.to_thread(self.write_silence, destination, frames)

        self.logger.info("Silent narration written", path=str(destination), seconds=duration, frames=frames)
        return destination


class SayNarrationProvider(NarrationProvider):
    """macOS ``say`` speech synthesis writing a WAV file."""

    name = "say"
    FEMALE_VOICE = "Samantha"
    MALE_VOICE = "Alex"

    def __init__(self, binary: str = "say", sample_rate: int = 44100):
        self.binary = binary
        self.sample_rate = sample_rate

    def voice_for(self, voice_hint: str) -> str:
        return self.FEMALE_VOICE if is_female_voice(voice_hint) else self.MALE_VOICE

    def command(self, voice_hint: str, text_file: Path, destination: Path) -> list:
        return [
            self.binary,
            "-v", self.voice_for(voice_hint),
            "-o", str(destination),
            "--file-format=WAVE",
            f"--data-format=LEI16@{self.sample_rate}",
            "-f", str(text_file),
        ]

    async def synthesize(self, text: str, voice_hint: str, destination: Path, duration: float) -> Path:
        destination = Path(destination).with_suffix(".wav")
        # Long scripts go through a file; argv length is limited
        text_file = destination.with_name("narration.txt")
        await asyncio.to_thread(text_file.write_text, text, encoding="utf-8")

        try:
            process = await asyncio.create_subprocess_exec(
                *self.command(voice_hint, text_file, destination),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise NarrationError(f"Failed to start {self.binary}: {exc}") from exc

        _, stderr = await process.communicate()
        if process.returncode != 0:
            raise NarrationError(
                f"{self.binary} exited with code {process.returncode}: "
                f"{stderr.decode('utf-8', errors='replace').strip()}"
            )
        if not destination.exists():
            raise NarrationError(f"{self.binary} produced no audio file")

        self.logger.info("Narration synthesized", provider=self.name, voice=self.voice_for(voice_hint))
        return destination


class EdgeTTSNarrationProvider(NarrationProvider):
    """Neural voices through the Edge read-aloud service (needs network)."""

    name = "edge"
    FEMALE_VOICE = "en-US-JennyNeural"
    MALE_VOICE = "en-US-GuyNeural"

    def voice_for(self, voice_hint: str) -> str:
        return self.FEMALE_VOICE if is_female_voice(voice_hint) else self.MALE_VOICE

    async def synthesize(self, text: str, voice_hint: str, destination: Path, duration: float) -> Path:
        destination = Path(destination).with_suffix(".mp3")
        voice = self.voice_for(voice_hint)
        try:
            communicate = edge_tts.Communicate(text=text, voice=voice)
            await communicate.save(str(destination))
        except Exception as exc:
            raise NarrationError(f"Edge TTS synthesis failed: {exc}") from exc

        if not destination.exists() or destination.stat().st_size == 0:
            raise NarrationError("Edge TTS produced no audio")

        self.logger.info("Narration synthesized", provider=self.name, voice=voice)
        return destination


class FallbackNarrationProvider(NarrationProvider):
    """Try a real provider and fall back to silence on any failure."""

    def __init__(self, primary: NarrationProvider, fallback: Optional[NarrationProvider] = None):
        self.primary = primary
        self.fallback = fallback or SilentNarrationProvider()

    @property
    def name(self) -> str:
        return f"{self.primary.name}+{self.fallback.name}"

    async def synthesize(self, text: str, voice_hint: str, destination: Path, duration: float) -> Path:
        try:
            return await self.primary.synthesize(text, voice_hint, destination, duration)
        except Exception as exc:
            self.logger.warning(
                "Narration failed, degrading to fallback",
                provider=self.primary.name,
                fallback=self.fallback.name,
                error=str(exc),
            )
            return await self.fallback.synthesize(text, voice_hint, destination, duration)


def select_narration_provider(
    settings=None,
    which: Callable[[str], Optional[str]] = shutil.which,
) -> NarrationProvider:
    """
    Build the narration provider configured for this deployment.

    ``narration_provider`` is one of ``auto``, ``say``, ``edge`` or ``silent``;
    ``auto`` uses ``say`` when it is on PATH and silence otherwise.
    """
    settings = settings or get_settings()
    silent = SilentNarrationProvider(sample_rate=settings.narration_sample_rate)
    choice = settings.narration_provider

    if choice == "auto":
        choice = "say" if which("say") else "silent"

    if choice == "say":
        binary = which("say")
        if not binary:
            logger.warning("Speech utility not found, narration will be silent")
            return silent
        return FallbackNarrationProvider(
            SayNarrationProvider(binary=binary, sample_rate=settings.narration_sample_rate), silent
        )

    if choice == "edge":
        return FallbackNarrationProvider(EdgeTTSNarrationProvider(), silent)

    return silent
