"""Speech synthesis client for narration chunks."""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol, Sequence

import openai

from .errors import ProviderError

logger = logging.getLogger(__name__)


class SpeechSynthesizer(Protocol):
    """Anything that turns one chunk of text into encoded audio bytes."""

    async def synthesize(
        self,
        text: str,
        *,
        voice_id: str,
        model_id: str,
        style_instructions: Optional[str] = None,
    ) -> bytes: ...


def supports_style_instructions(model_id: str, style_models: Sequence[str]) -> bool:
    """Return True when ``model_id`` accepts free-form style directives."""

    normalized = model_id.strip().lower()
    return any(normalized.startswith(prefix.strip().lower()) for prefix in style_models)


class OpenAISpeechSynthesizer:
    """
    Synthesize speech with the OpenAI audio API.

    The async client is built on first use so the service can start without
    an API key; a missing key then surfaces as a ProviderError for the job.
    Retries are disabled on the client because a failed chunk aborts the job.
    """

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 120.0,
        response_format: str = "mp3",
        style_models: Sequence[str] = ("gpt-4o-mini-tts",),
        client: Optional[openai.AsyncOpenAI] = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout
        self.response_format = response_format
        self.style_models = tuple(style_models)
        self._client = client

    def _get_client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            logger.info("Creating AsyncOpenAI client for speech synthesis")
            self._client = openai.AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=self._timeout,
                max_retries=0,
            )
        return self._client

    def build_params(
        self,
        text: str,
        *,
        voice_id: str,
        model_id: str,
        style_instructions: Optional[str] = None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {
            "model": model_id,
            "voice": voice_id,
            "input": text,
            "response_format": self.response_format,
        }
        instructions = (style_instructions or "").strip()
        if instructions:
            if supports_style_instructions(model_id, self.style_models):
                params["instructions"] = instructions
            else:
                logger.debug(
                    "Model %s does not accept style instructions; omitting them",
                    model_id,
                )
        return params

    async def synthesize(
        self,
        text: str,
        *,
        voice_id: str,
        model_id: str,
        style_instructions: Optional[str] = None,
    ) -> bytes:
        params = self.build_params(
            text,
            voice_id=voice_id,
            model_id=model_id,
            style_instructions=style_instructions,
        )
        logger.info(
            "OpenAI TTS: synthesizing %d chars (model=%s, voice=%s)",
            len(text),
            model_id,
            voice_id,
        )
        try:
            response = await self._get_client().audio.speech.create(**params)
            audio = response.content
        except openai.OpenAIError as exc:
            raise ProviderError(f"OpenAI speech request failed: {exc}") from exc

        if not audio:
            raise ProviderError("OpenAI speech request returned no audio")
        return audio

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None


__all__ = [
    "OpenAISpeechSynthesizer",
    "SpeechSynthesizer",
    "supports_style_instructions",
]
