#!/usr/bin/env python3
"""Application wiring for dictation transcription.

TranscriptionCoordinator owns one REST and one streaming service sharing a
text sink and a notification manager, and routes each recording to the
realtime path when the provider and model support it.
"""

import asyncio
import logging
from collections.abc import AsyncIterator

from .core.config import ConfigLoader, get_config
from .output.notifications import NotificationManager
from .transcription.providers import create_rest_provider, create_streaming_provider
from .transcription.rest_service import RestTranscriptionService
from .transcription.service_base import TranscriptionService
from .transcription.state import TranscriptionSnapshot
from .transcription.streaming.service import StreamingTranscriptionService
from .transcription.types import AudioChunk, ProviderConfig, STTProviderType

logger = logging.getLogger(__name__)


class TranscriptionCoordinator:
    """Chooses the transcription path and exposes the combined app state."""

    def __init__(
        self,
        config: ConfigLoader | None = None,
        text_sink=None,
        notifications=None,
        rest_provider=None,
        streaming_provider=None,
    ):
        self.config = config or get_config()
        self.notifications = notifications if notifications is not None else NotificationManager()
        self.provider_type = STTProviderType.from_name(self.config.provider_name)

        if rest_provider is None:
            rest_provider = create_rest_provider(self.provider_type, self.config)
        if streaming_provider is None and self.provider_type.supports_realtime_streaming:
            streaming_provider = create_streaming_provider(self.provider_type, self.config)

        self.rest_service = RestTranscriptionService(
            rest_provider,
            text_sink=text_sink,
            notifications=self.notifications,
            retry_ttl_seconds=self.config.retry_ttl_seconds,
        )
        self.streaming_service = StreamingTranscriptionService(
            streaming_provider,
            text_sink=text_sink,
            notifications=self.notifications,
            finalize_timeout_s=self.config.finalize_timeout_s,
            retry_ttl_seconds=self.config.retry_ttl_seconds,
        )

        self._is_processing = False
        self._subscriptions = [
            (service, service.state.subscribe(self._on_state_change)) for service in self.services
        ]

    @property
    def services(self) -> tuple[TranscriptionService, ...]:
        return (self.rest_service, self.streaming_service)

    @property
    def is_processing(self) -> bool:
        return self._is_processing

    @property
    def last_transcription(self) -> str:
        return self.streaming_service.last_transcription or self.rest_service.state.last_transcription

    def _on_state_change(self, snapshot: TranscriptionSnapshot, changed: frozenset[str]) -> None:
        processing = any(service.state.is_transcribing for service in self.services)
        if processing != self._is_processing:
            self._is_processing = processing
            logger.debug(f"Processing: {processing}")
        if "phase" in changed:
            logger.debug(f"Transcription phase -> {snapshot.phase.value}")

    def use_streaming(self, model: str | None = None, use_realtime: bool | None = None) -> bool:
        """Realtime path only when requested and the model supports it."""
        if use_realtime is None:
            use_realtime = self.config.use_realtime
        model = model or self.config.model
        return bool(
            use_realtime
            and self.streaming_service.provider is not None
            and self.provider_type.supports_realtime(model)
        )

    async def start_transcription(
        self,
        audio_stream: AsyncIterator[AudioChunk],
        config: ProviderConfig | None = None,
        use_realtime: bool | None = None,
    ) -> asyncio.Task:
        config = config or self.config.provider_config()
        if self.use_streaming(config.model, use_realtime):
            logger.info(f"Using realtime transcription ({config.model})")
            await self.rest_service.stop_transcription()
            return await self.streaming_service.start_transcription(audio_stream, config)

        logger.info(f"Using REST transcription ({config.model})")
        await self.streaming_service.stop_transcription()
        return await self.rest_service.start_transcription(audio_stream, config)

    def copy_last_transcription(self) -> bool:
        """Copy the newest transcript, preferring the realtime result over the REST one."""
        for service in (self.streaming_service, self.rest_service):
            if service.state.last_transcription:
                return service.copy_last_transcription_to_clipboard()
        return False

    async def stop_transcription(self) -> None:
        for service in self.services:
            await service.stop_transcription()

    async def wait_idle(self) -> None:
        """Wait for whichever attempt is in flight to finish."""
        tasks = [service.current_task for service in self.services if service.is_busy]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def request_retry(self) -> bool:
        """Retry the most recent failure offered by the notification manager."""
        return await self.notifications.request_retry()

    async def close(self) -> None:
        for service, token in self._subscriptions:
            service.state.unsubscribe(token)
        self._subscriptions = []
        for service in self.services:
            await service.close()


__all__ = ["TranscriptionCoordinator"]
