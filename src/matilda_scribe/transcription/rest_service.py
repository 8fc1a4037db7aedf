"""One-shot (REST) transcription service.

The provider consumes the whole recording and answers with one transcript.
Audio is collected while the provider reads it so that a failed upload can be
offered for retry with exactly the same bytes.
"""

import asyncio
import logging
from collections.abc import AsyncIterator

from .errors import InvalidConfigurationError
from .retry import DEFAULT_RETRY_TTL_SECONDS, RetryContext
from .service_base import TranscriptionService
from .types import AudioChunk, ProviderConfig, STTProviderType, TranscriptionPhase

logger = logging.getLogger(__name__)


class _CollectingStream:
    """Pass-through async iterator that records every chunk it yields."""

    def __init__(self, source: AsyncIterator[AudioChunk]):
        self._source = source
        self.audio = bytearray()
        self.exhausted = False

    def __aiter__(self) -> "_CollectingStream":
        return self

    async def __anext__(self) -> AudioChunk:
        try:
            chunk = await self._source.__anext__()
        except StopAsyncIteration:
            self.exhausted = True
            raise
        self.audio.extend(chunk)
        return chunk


class RestTranscriptionService(TranscriptionService):
    """Runs REST transcriptions and their retries."""

    def __init__(
        self,
        provider=None,
        text_sink=None,
        notifications=None,
        retry_ttl_seconds: float = DEFAULT_RETRY_TTL_SECONDS,
    ):
        super().__init__(text_sink=text_sink, notifications=notifications, retry_ttl_seconds=retry_ttl_seconds)
        self.provider = provider
        self.last_injected_text: str | None = None

    @property
    def provider_type(self) -> STTProviderType | None:
        return self.provider.provider_type if self.provider is not None else None

    def set_provider(self, provider) -> None:
        self.provider = provider

    async def start_transcription(
        self, audio_stream: AsyncIterator[AudioChunk], config: ProviderConfig
    ) -> asyncio.Task:
        await self.stop_transcription()
        self.last_injected_text = None
        return self._launch(audio_stream, config, is_retry=False)

    async def _start_retry(self, retry_context: RetryContext) -> asyncio.Task:
        # A retry keeps last_injected_text so its result replaces the earlier injection
        await self.stop_transcription()
        return self._launch(retry_context.audio_stream(), retry_context.config, is_retry=True)

    async def stop_transcription(self) -> None:
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        if self.state.is_transcribing:
            self.state.update(is_transcribing=False, phase=TranscriptionPhase.IDLE)

    def _launch(self, audio_stream: AsyncIterator[AudioChunk], config: ProviderConfig, is_retry: bool) -> asyncio.Task:
        self.state.update(is_transcribing=True, current_text="", error=None)
        label = "retry" if is_retry else "transcription"
        logger.info(f"Starting REST {label} ({config!r})")
        self._task = asyncio.create_task(self._run(audio_stream, config, is_retry), name=f"rest-{label}")
        return self._task

    async def _run(self, audio_stream: AsyncIterator[AudioChunk], config: ProviderConfig, is_retry: bool) -> str | None:
        collector = _CollectingStream(audio_stream.__aiter__())
        try:
            if self.provider is None:
                raise InvalidConfigurationError("No REST provider configured")
            self.provider.validate_config(config)
            self.state.update(phase=TranscriptionPhase.STREAMING)

            result = await self.provider.transcribe(collector, config)

            final_text = result.strip()
            if final_text:
                self._inject(final_text, replace=self.last_injected_text)
                self.last_injected_text = final_text
            else:
                logger.info("No text to inject")
        except asyncio.CancelledError:
            logger.info("REST transcription cancelled")
            raise
        except Exception as e:
            # Only a fully read recording can be replayed faithfully
            audio = bytes(collector.audio) if collector.exhausted else None
            self._report_error(e, audio, config)
            return None

        self.state.update(
            current_text=final_text,
            last_transcription=final_text or self.state.last_transcription,
            is_transcribing=False,
            phase=TranscriptionPhase.IDLE,
            error=None,
        )
        self._clear_retry_context()
        logger.info(f"REST {'retry' if is_retry else 'transcription'} completed ({len(final_text)} chars)")
        return final_text


__all__ = ["RestTranscriptionService"]
