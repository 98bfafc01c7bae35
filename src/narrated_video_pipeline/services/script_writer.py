"""
Script writer: asks an OpenAI-compatible chat endpoint for a short video
script and pairs it with a subtitle track for the requested duration.
"""

from typing import Optional

from openai import AsyncOpenAI

from ..config import get_settings
from ..errors import UpstreamModelError
from ..logging_config import LoggerMixin
from ..schemas import ScriptRequest, ScriptResponse
from .subtitle_builder import build_srt

PROMPT_TEMPLATE = (
    'Write a {duration}-second video script about "{topic}". \n'
    "Style: {style}. Voice: {voice}. \n"
    "Keep each line short for subtitles. \n"
    "Return only the script, one sentence per line."
)


def build_prompt(request: ScriptRequest) -> str:
    return PROMPT_TEMPLATE.format(
        duration=request.duration,
        topic=request.topic,
        style=request.style,
        voice=request.voice,
    )


class ScriptWriter(LoggerMixin):
    """Generate narration scripts through a chat completion model."""

    def __init__(self, settings=None, client: Optional[AsyncOpenAI] = None):
        self.settings = settings or get_settings()
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.settings.xai_api_key:
                raise UpstreamModelError("Language model API key is not configured")
            self._client = AsyncOpenAI(api_key=self.settings.xai_api_key, base_url=self.settings.llm_base_url)
        return self._client

    def model_for(self, unlimited: bool) -> str:
        """Model tier for a request."""
        return self.settings.llm_model_unlimited if unlimited else self.settings.llm_model_standard

    async def write_script(self, request: ScriptRequest) -> str:
        """
        Request a script for ``request``.

        Raises:
            UpstreamModelError: If the call fails or the model returns no text
        """
        model = self.model_for(request.unlimited)
        self.logger.info("Requesting script", model=model, topic=request.topic, duration=request.duration)

        try:
            completion = await self.client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": build_prompt(request)}],
                temperature=self.settings.llm_temperature,
                max_tokens=self.settings.llm_max_tokens,
            )
            content = completion.choices[0].message.content
        except UpstreamModelError:
            raise
        except Exception as exc:
            self.logger.error("Script generation failed", model=model, error=str(exc))
            raise UpstreamModelError(f"Script generation failed: {exc}") from exc

        script = (content or "").strip()
        if not script:
            raise UpstreamModelError("Language model returned an empty script")
        return script

    async def generate(self, request: ScriptRequest) -> ScriptResponse:
        """Write a script and build its subtitle track."""
        script = await self.write_script(request)
        srt = build_srt(
            script,
            request.duration,
            policy=self.settings.subtitle_overflow_policy,
            min_span=self.settings.subtitle_min_span,
        )
        self.logger.info("Script generated", lines=srt.count(" --> "), chars=len(script))
        return ScriptResponse(script=script, srt=srt)
