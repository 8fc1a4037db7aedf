"""OpenAI one-shot transcription (``/audio/transcriptions``)."""

import logging
from collections.abc import AsyncIterator

import aiohttp
from aiohttp import ClientSession, ClientTimeout, FormData

from ...audio.conversion import pcm16_to_wav_bytes
from ..errors import AudioStreamError, ProviderAPIError
from ..types import AudioChunk, ProviderConfig, STTProviderType
from .base import RestSTTProvider, validate_provider_config

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.openai.com/v1"


class OpenAIRestProvider(RestSTTProvider):
    """Uploads the whole recording as a WAV file and returns the text."""

    provider_type = STTProviderType.OPENAI

    def __init__(
        self,
        api_base: str = DEFAULT_API_BASE,
        sample_rate: int = 24000,
        request_timeout_s: float = 60.0,
        session_factory=None,
    ):
        self.api_base = api_base.rstrip("/")
        self.sample_rate = sample_rate
        self.request_timeout_s = request_timeout_s
        self._session_factory = session_factory or ClientSession

    @property
    def endpoint(self) -> str:
        return f"{self.api_base}/audio/transcriptions"

    def validate_config(self, config: ProviderConfig) -> None:
        validate_provider_config(self.provider_type, config, realtime=False)

    def _form(self, audio: bytes, config: ProviderConfig) -> FormData:
        form = FormData()
        form.add_field(
            "file",
            pcm16_to_wav_bytes(audio, self.sample_rate),
            filename="audio.wav",
            content_type="audio/wav",
        )
        form.add_field("model", config.model)
        form.add_field("response_format", "json")
        if config.language:
            form.add_field("language", config.language)
        if config.prompt:
            form.add_field("prompt", config.prompt)
        if config.temperature is not None:
            form.add_field("temperature", str(config.temperature))
        return form

    async def transcribe(self, stream: AsyncIterator[AudioChunk], config: ProviderConfig) -> str:
        audio = bytearray()
        async for chunk in stream:
            audio.extend(chunk)
        if not audio:
            raise AudioStreamError("No audio captured")

        logger.info(f"Uploading {len(audio)} bytes to {self.endpoint} (model={config.model})")
        headers = {"Authorization": f"Bearer {config.api_key}"}
        timeout = ClientTimeout(total=self.request_timeout_s)

        async with self._session_factory(timeout=timeout) as http:
            async with http.post(self.endpoint, data=self._form(bytes(audio), config), headers=headers) as response:
                if response.status >= 400:
                    raise await self._api_error(response)
                payload = await response.json(content_type=None)

        text = payload.get("text", "") if isinstance(payload, dict) else ""
        logger.info(f"Transcription received ({len(text)} chars)")
        return text

    async def _api_error(self, response) -> ProviderAPIError:
        message = response.reason or f"HTTP {response.status}"
        code = None
        try:
            payload = await response.json(content_type=None)
        except (aiohttp.ContentTypeError, ValueError):
            payload = None
        if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
            message = payload["error"].get("message") or message
            code = payload["error"].get("code")
        logger.warning(f"Transcription request failed: {response.status} {message}")
        return ProviderAPIError(response.status, message, code)


__all__ = ["OpenAIRestProvider", "DEFAULT_API_BASE"]
