#!/usr/bin/env python3
"""Streaming transcription orchestrator.

StreamingTranscriptionService drives one realtime attempt at a time:

    IDLE -> ESTABLISHING -> LISTENING -> STREAMING -> FINALIZING -> IDLE
                  any state -> FAILED -> IDLE

Per attempt it resets the merge and queue state, validates the config, opens a
session, registers the confirmation handler before the provider starts reading
messages, pumps audio through the AudioStreamingQueue and consumes partial
results concurrently. Capture begins while the session is still being
established, so a failed connection still leaves the recorded audio for retry.
The final chunk is injected straight from the consumer; provider finalize and
session cleanup then run detached, once per session.
"""

import asyncio
import logging
from collections import deque
from collections.abc import AsyncIterator

from ...core.cancellation import CancellationToken
from ..errors import (
    AudioStreamError,
    InvalidConfigurationError,
    PartialResultsError,
    SessionError,
    TranscriptionError,
)
from ..retry import DEFAULT_RETRY_TTL_SECONDS, RetryContext
from ..service_base import TranscriptionService
from ..types import AudioChunk, ProviderConfig, STTProviderType, TranscriptionPhase
from .partials import PartialResultsManager
from .queue import AudioStreamingQueue
from .session import RealtimeSession

logger = logging.getLogger(__name__)


class StreamingTranscriptionService(TranscriptionService):
    """Owns the realtime session lifecycle and the injection timing.

    Example:
        service = StreamingTranscriptionService(provider, text_sink=sink)
        task = await service.start_transcription(audio_source, config)
        await task            # returns once the final transcript is injected

    """

    def __init__(
        self,
        provider=None,
        text_sink=None,
        notifications=None,
        finalize_timeout_s: float | None = 15.0,
        retry_ttl_seconds: float = DEFAULT_RETRY_TTL_SECONDS,
    ):
        """Initialize the orchestrator.

        Args:
            provider: StreamingSTTProvider, may be set later with ``set_provider``
            text_sink: Text injection boundary
            notifications: Error notification boundary
            finalize_timeout_s: Bound on waiting for the final transcript after
                the audio ended; None waits indefinitely
            retry_ttl_seconds: Lifetime of retry contexts

        """
        super().__init__(text_sink=text_sink, notifications=notifications, retry_ttl_seconds=retry_ttl_seconds)
        self.provider = provider
        self.finalize_timeout_s = finalize_timeout_s

        self.partials = PartialResultsManager()
        self.queue = AudioStreamingQueue()

        self._token: CancellationToken | None = None
        self._session: RealtimeSession | None = None
        self._attempt = 0

        # Once-per-session bookkeeping, keyed by session id
        self._finish_tasks: dict[str, asyncio.Task] = {}
        self._cleanup_tasks: dict[str, asyncio.Task] = {}
        self._background: set[asyncio.Task] = set()

    @property
    def provider_type(self) -> STTProviderType | None:
        return self.provider.provider_type if self.provider is not None else None

    @property
    def current_session(self) -> RealtimeSession | None:
        return self._session

    @property
    def current_text(self) -> str:
        return self.state.current_text

    @property
    def last_transcription(self) -> str:
        return self.state.last_transcription

    def set_provider(self, provider) -> None:
        self.provider = provider
        logger.info(f"Streaming provider set to {provider.provider_type.value if provider else None}")

    # Attempt lifecycle

    async def start_transcription(
        self, audio_stream: AsyncIterator[AudioChunk], config: ProviderConfig
    ) -> asyncio.Task:
        """Start an attempt, tearing down any attempt still in flight first."""
        return await self._begin(audio_stream, config)

    async def _begin(
        self,
        audio_stream: AsyncIterator[AudioChunk],
        config: ProviderConfig,
        replay_audio: bytes | None = None,
    ) -> asyncio.Task:
        await self._teardown_current("superseded by a new transcription")

        self._attempt += 1
        attempt = self._attempt
        token = CancellationToken()
        self._token = token

        self.state.update(
            is_transcribing=True,
            is_streaming_active=True,
            current_text="",
            error=None,
        )
        logger.info(f"Starting streaming transcription #{attempt} ({config!r})")
        self._task = asyncio.create_task(
            self._run(attempt, audio_stream, config, token, replay_audio), name=f"streaming-transcription-{attempt}"
        )
        return self._task

    async def stop_transcription(self) -> None:
        """Cancel the attempt in flight. Nothing is injected for it."""
        await self._teardown_current("stopped by user")
        self.state.update(
            is_transcribing=False,
            is_streaming_active=False,
            phase=TranscriptionPhase.IDLE,
        )

    async def close(self) -> None:
        await super().close()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    async def _teardown_current(self, reason: str) -> None:
        task, token, session = self._task, self._token, self._session
        self._task = None
        self._token = None

        if token is not None:
            token.cancel(reason)
        if task is not None and not task.done():
            logger.info(f"Cancelling transcription in flight: {reason}")
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        if session is not None:
            await self._await_release(session)
        self._session = None
        await self.queue.reset()

    async def _start_retry(self, retry_context: RetryContext) -> asyncio.Task:
        return await self._begin(
            retry_context.audio_stream(), retry_context.config, replay_audio=retry_context.audio_data
        )

    def _is_current(self, attempt: int) -> bool:
        return attempt == self._attempt

    def _set_phase(self, attempt: int, phase: TranscriptionPhase) -> None:
        if self._is_current(attempt):
            self.state.update(phase=phase)

    async def _run(
        self,
        attempt: int,
        audio_stream: AsyncIterator[AudioChunk],
        config: ProviderConfig,
        token: CancellationToken,
        replay_audio: bytes | None = None,
    ) -> None:
        captured = bytearray()
        session: RealtimeSession | None = None
        pump: asyncio.Task | None = None
        consumer: asyncio.Task | None = None

        try:
            self.partials.reset()
            await self.queue.reset()

            if self.provider is None:
                raise InvalidConfigurationError("No realtime provider configured")
            self.provider.validate_config(config)

            # Capture starts now so audio recorded during establishment is kept for retry
            queue_ready = asyncio.Event()
            pump = asyncio.create_task(self._pump_audio(attempt, audio_stream, captured, token, queue_ready))

            self._set_phase(attempt, TranscriptionPhase.ESTABLISHING)
            session = await self.provider.start_realtime_session(config)
            self._session = session
            token.raise_if_cancelled()

            # The handler must be in place before the provider reads its first message
            session.on_session_confirmed = self.queue.confirm_session
            await self.queue.configure(self.provider, session)
            await self.provider.start_listening(session)
            self._set_phase(attempt, TranscriptionPhase.LISTENING)
            queue_ready.set()

            consumer = asyncio.create_task(self._consume_partials(attempt, session))
            done, _ = await asyncio.wait({pump, consumer}, return_when=asyncio.FIRST_COMPLETED)

            if consumer in done:
                # The session finished (or failed) before the audio did
                consumer.result()
                return

            pump.result()
            self._set_phase(attempt, TranscriptionPhase.FINALIZING)
            await self._finalize(session, consumer, token)

        except asyncio.CancelledError:
            logger.info(f"Transcription #{attempt} cancelled")
            if session is not None:
                await self._await_release(session)
            raise

        except Exception as e:
            await self._cancel_children(pump, consumer)
            if session is not None:
                await self._await_release(session)
            if self._is_current(attempt):
                await self.queue.reset()
                # A replayed attempt knows its audio even if it failed before the pump ran
                self._report_error(e, bytes(captured) or replay_audio, config)
            else:
                logger.info(f"Ignoring failure of superseded transcription #{attempt}: {e}")

        finally:
            await self._cancel_children(pump, consumer)
            # The pump may have been cancelled before it ever ran
            await self._close_source(audio_stream)

    async def _close_source(self, audio_stream: AsyncIterator[AudioChunk]) -> None:
        aclose = getattr(audio_stream, "aclose", None)
        if aclose is not None:
            try:
                await aclose()
            except Exception as e:
                logger.debug(f"Error closing audio source: {e}")

    async def _cancel_children(self, *children: asyncio.Task | None) -> None:
        pending = [child for child in children if child is not None]
        for child in pending:
            if not child.done():
                child.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def _pump_audio(
        self,
        attempt: int,
        audio_stream: AsyncIterator[AudioChunk],
        captured: bytearray,
        token: CancellationToken,
        queue_ready: asyncio.Event,
    ) -> None:
        """Record audio from the source and forward it through the queue.

        Chunks read before ``queue_ready`` is set are held back in arrival order
        and forwarded as soon as the queue is bound to the session.
        """
        held: deque[AudioChunk] = deque()
        chunks = 0

        async def forward_held() -> None:
            nonlocal chunks
            while held:
                await self.queue.stream_chunk(held[0])
                held.popleft()
                chunks += 1
                if chunks == 1:
                    self._set_phase(attempt, TranscriptionPhase.STREAMING)

        try:
            async for chunk in audio_stream:
                token.raise_if_cancelled()
                if not chunk:
                    continue
                captured.extend(chunk)
                held.append(chunk)
                if queue_ready.is_set():
                    await forward_held()
            await queue_ready.wait()
            token.raise_if_cancelled()
            await forward_held()
        except (TranscriptionError, asyncio.CancelledError):
            raise
        except Exception as e:
            raise AudioStreamError(f"Audio source failed: {e}") from e
        finally:
            await self._close_source(audio_stream)
        logger.info(f"Audio source ended after {chunks} chunks ({len(captured)} bytes)")

    async def _consume_partials(self, attempt: int, session: RealtimeSession) -> None:
        try:
            async for chunk in session.partial_results_stream:
                if not self._is_current(attempt):
                    return
                if not self.partials.process_partial_result(chunk):
                    continue
                self.state.update(current_text=self.partials.get_complete_transcription())
                if chunk.is_final:
                    self._deliver_final(attempt, session, self.partials.get_final_transcription())
                    return
        except TranscriptionError:
            raise
        except Exception as e:
            raise PartialResultsError(f"Failed to read partial results: {e}") from e
        raise SessionError(f"Session {session.session_id} ended without a final transcript")

    def _deliver_final(self, attempt: int, session: RealtimeSession, text: str) -> None:
        """Inject the final transcript, then finish the session off the critical path."""
        if not self._is_current(attempt):
            return
        final_text = text.strip()
        if final_text:
            self._inject(final_text)
        else:
            logger.info("Final transcript is empty, nothing to inject")

        self.state.update(
            last_transcription=final_text or self.state.last_transcription,
            is_transcribing=False,
            is_streaming_active=False,
            phase=TranscriptionPhase.IDLE,
            error=None,
        )
        self._clear_retry_context()
        self._track(asyncio.create_task(self._finish_and_release(session)))

    async def _finalize(self, session: RealtimeSession, consumer: asyncio.Task, token: CancellationToken) -> None:
        """Wait for confirmation, flush the backlog, commit and wait for the final chunk."""
        loop = asyncio.get_running_loop()
        deadline = None if self.finalize_timeout_s is None else loop.time() + self.finalize_timeout_s

        def remaining() -> float | None:
            return None if deadline is None else max(0.0, deadline - loop.time())

        if not session.is_confirmed:
            confirmed = asyncio.ensure_future(session.wait_confirmed())
            try:
                await asyncio.wait({confirmed, consumer}, timeout=remaining(), return_when=asyncio.FIRST_COMPLETED)
            finally:
                confirmed.cancel()
            if consumer.done():
                consumer.result()
                return
            if not session.is_confirmed:
                raise TimeoutError("session was never confirmed")

        token.raise_if_cancelled()
        # Serializes behind the confirmation handler so every chunk precedes the commit
        await self.queue.confirm_session(session)

        finish = self._finish_session(session)
        done, _ = await asyncio.wait({finish, consumer}, timeout=remaining(), return_when=asyncio.FIRST_EXCEPTION)
        if consumer in done:
            consumer.result()
            return
        if finish in done and not finish.cancelled() and finish.exception() is not None:
            raise finish.exception()
        raise TimeoutError("timed out waiting for the final transcript")

    # Once-per-session finalize and cleanup

    def _finish_session(self, session: RealtimeSession) -> asyncio.Task:
        task = self._finish_tasks.get(session.session_id)
        if task is None:
            task = asyncio.create_task(self.provider.finish_and_get_transcription(session))
            self._finish_tasks[session.session_id] = task
        return task

    async def _finish_and_release(self, session: RealtimeSession) -> None:
        try:
            if self._is_released(session):
                # Torn down before this task first ran
                return
            provider_text = await self._finish_session(session)
            logger.debug(f"Provider final for {session.session_id}: {len(provider_text or '')} chars")
        except Exception as e:
            logger.warning(f"Provider finalize failed for {session.session_id}: {e}")
        finally:
            await self._await_release(session)

    def _is_released(self, session: RealtimeSession) -> bool:
        return session.is_cleaned_up or session.session_id in self._cleanup_tasks

    def _release_session(self, session: RealtimeSession) -> asyncio.Task | None:
        """Start cleanup of ``session`` unless it already ran; returns the pending cleanup."""
        task = self._cleanup_tasks.get(session.session_id)
        if task is not None or session.is_cleaned_up:
            return task

        task = asyncio.create_task(self._cleanup_session(session))
        self._cleanup_tasks[session.session_id] = task
        task.add_done_callback(lambda _t: self._cleanup_tasks.pop(session.session_id, None))
        self._track(task)
        return task

    async def _await_release(self, session: RealtimeSession) -> None:
        task = self._release_session(session)
        if task is not None:
            # Cleanup keeps running even if the waiter is cancelled
            await asyncio.shield(task)

    async def _cleanup_session(self, session: RealtimeSession) -> None:
        finish = self._finish_tasks.pop(session.session_id, None)
        if finish is not None:
            if not finish.done():
                finish.cancel()
            elif not finish.cancelled() and finish.exception() is not None:
                logger.debug(f"Provider finalize for {session.session_id} had failed: {finish.exception()}")
        try:
            await session.cleanup()
        except Exception as e:
            logger.warning(f"Session cleanup failed for {session.session_id}: {e}")
        if self._session is session:
            self._session = None

    def _track(self, task: asyncio.Task) -> None:
        self._background.add(task)
        task.add_done_callback(self._background_done)

    def _background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Background task failed: {task.exception()}")


__all__ = ["StreamingTranscriptionService"]
