#!/usr/bin/env python3
"""TranscriptionService - Abstract base class for transcription services

This class provides the machinery shared by the REST and streaming paths:
- Observable transcription state
- Text injection through the configured sink
- Error classification and notification
- RetryContext bookkeeping and the retry re-entry point
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any

from ..output.clipboard import copy_to_clipboard
from ..output.notifications import NotificationBoundary, NotificationManager
from .classifier import classify_error
from .errors import STTError
from .retry import DEFAULT_RETRY_TTL_SECONDS, RetryContext
from .state import TranscriptionState
from .types import AudioChunk, ProviderConfig, STTProviderType, TranscriptionPhase

logger = logging.getLogger(__name__)


class TranscriptionService(ABC):
    """Abstract base class for transcription services."""

    def __init__(
        self,
        text_sink: Any = None,
        notifications: NotificationBoundary | None = None,
        retry_ttl_seconds: float = DEFAULT_RETRY_TTL_SECONDS,
    ):
        """Initialize shared service components.

        Args:
            text_sink: Object with ``inject_text(text, replace=None)``
            notifications: Error notification boundary; a console manager by default
            retry_ttl_seconds: Lifetime of retry contexts created by this service

        """
        self.state = TranscriptionState()
        self.text_sink = text_sink
        self.notifications = notifications if notifications is not None else NotificationManager()
        self.retry_ttl_seconds = retry_ttl_seconds

        self._task: asyncio.Task | None = None
        self._retry_context: RetryContext | None = None
        self._retry_handler_token: int | None = None
        add_handler = getattr(self.notifications, "add_retry_handler", None)
        if add_handler is not None:
            self._retry_handler_token = add_handler(self._on_retry_requested)

        logger.info(f"{self.__class__.__name__} initialized")

    @property
    @abstractmethod
    def provider_type(self) -> STTProviderType | None:
        """Provider variant currently configured, if any."""

    @property
    def is_busy(self) -> bool:
        """Whether an attempt is in flight."""
        return self._task is not None and not self._task.done()

    @property
    def current_task(self) -> asyncio.Task | None:
        return self._task

    @abstractmethod
    async def start_transcription(
        self, audio_stream: AsyncIterator[AudioChunk], config: ProviderConfig
    ) -> asyncio.Task:
        """Start one transcription attempt and return its task."""

    @abstractmethod
    async def stop_transcription(self) -> None:
        """Cancel the attempt in flight without injecting anything."""

    @abstractmethod
    async def _start_retry(self, retry_context: RetryContext) -> asyncio.Task:
        """Resubmit the audio held by ``retry_context``."""

    # Retry handling

    @property
    def retry_context(self) -> RetryContext | None:
        """The pending retry context; expired contexts are discarded on access."""
        if self._retry_context is not None and not self._retry_context.is_valid:
            logger.info(f"Discarding expired {self._retry_context.description}")
            self._clear_retry_context()
        return self._retry_context

    async def _on_retry_requested(self, retry_context: RetryContext) -> bool:
        # Several services can share one notification manager
        if retry_context is not self._retry_context:
            return False
        return await self.handle_retry_request(retry_context)

    async def handle_retry_request(self, retry_context: RetryContext) -> bool:
        """Resubmit a failed attempt. Returns False when the request is rejected."""
        if self.is_busy or self.state.is_transcribing:
            logger.info("Already transcribing, ignoring retry request")
            return False

        if not retry_context.is_valid:
            logger.info(f"Retry context expired, ignoring retry request: {retry_context.description}")
            if retry_context is self._retry_context:
                self._clear_retry_context()
            return False

        if retry_context.provider_type is not self.provider_type:
            logger.info(
                f"Provider mismatch for retry ({retry_context.provider_type.value} vs "
                f"{self.provider_type.value if self.provider_type else 'none'}), ignoring"
            )
            return False

        logger.info(f"Handling retry request: {retry_context.description}")
        await self._start_retry(retry_context)
        return True

    def _clear_retry_context(self) -> None:
        context = self._retry_context
        self._retry_context = None
        if context is not None and getattr(self.notifications, "pending_retry", None) is context:
            self.notifications.pending_retry = None

    # Shared helpers

    def copy_last_transcription_to_clipboard(self) -> bool:
        text = self.state.last_transcription
        if not text:
            logger.info("No transcription to copy")
            return False
        return copy_to_clipboard(text)

    def _inject(self, text: str, replace: str | None = None) -> None:
        if self.text_sink is None:
            logger.warning("No text sink configured, dropping transcript")
            return
        self.text_sink.inject_text(text, replace=replace)
        logger.info(f"Injected transcript ({len(text)} chars)")

    def _report_error(
        self,
        error: BaseException,
        audio_data: bytes | None,
        config: ProviderConfig | None,
    ) -> STTError:
        """Classify, offer a retry when possible, notify and return to IDLE."""
        try:
            stt_error = classify_error(error)
            logger.error(f"Transcription failed: {stt_error!r} ({type(error).__name__}: {error})")

            retry_context = None
            if stt_error.is_recoverable:
                retry_context = RetryContext.create(
                    audio_data, config, stt_error, self.provider_type, ttl_seconds=self.retry_ttl_seconds
                )
                if retry_context is None:
                    logger.info("Cannot create retry context - missing data")
                else:
                    logger.info(f"Created {retry_context.description}")
            self._retry_context = retry_context

            self.state.update(
                phase=TranscriptionPhase.FAILED,
                error=stt_error,
                is_transcribing=False,
                is_streaming_active=False,
            )
            self.notifications.show_transcription_error(stt_error, retry_context)
        finally:
            # Flags reset even when classification or the notification itself fails
            self.state.update(is_transcribing=False, is_streaming_active=False, phase=TranscriptionPhase.IDLE)
        return stt_error

    async def close(self) -> None:
        """Stop any attempt and deregister from the notification boundary."""
        await self.stop_transcription()
        if self._retry_handler_token is not None:
            self.notifications.remove_retry_handler(self._retry_handler_token)
            self._retry_handler_token = None


__all__ = ["TranscriptionService"]
