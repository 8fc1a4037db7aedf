"""Confirmation-gated audio forwarding.

AudioStreamingQueue sits between the audio producer and a realtime session:
- Chunks are appended to an ordered backlog under a lock
- Until the session is confirmed the backlog only grows
- Confirmation drains the backlog FIFO, then later chunks pass straight through

A chunk is removed from the backlog only after the provider accepted it, so a
confirmation racing with several pending ``stream_chunk`` calls can neither
lose nor duplicate audio.
"""

import asyncio
import logging
from collections import deque
from enum import Enum
from typing import TYPE_CHECKING

from ..errors import AudioStreamError, TranscriptionError
from ..types import AudioChunk

if TYPE_CHECKING:
    from ..providers.base import StreamingSTTProvider
    from .session import RealtimeSession

logger = logging.getLogger(__name__)


class QueueState(Enum):
    IDLE = "idle"
    BUFFERING = "buffering"
    DRAINING = "draining"
    FORWARDING = "forwarding"


class AudioStreamingQueue:
    """Ordered, confirmation-gated buffer between capture and a live session.

    Example:
        queue = AudioStreamingQueue()
        await queue.reset()
        await queue.configure(provider, session)
        await queue.stream_chunk(chunk)       # buffered
        await queue.confirm_session(session)  # backlog flushed in order
        await queue.stream_chunk(chunk)       # forwarded immediately

    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._backlog: deque[AudioChunk] = deque()
        self._state = QueueState.IDLE
        self._provider: "StreamingSTTProvider | None" = None
        self._session: "RealtimeSession | None" = None
        # Confirmation that arrived before configure() bound the session
        self._early_confirmation: "RealtimeSession | None" = None
        self._forwarded = 0

    @property
    def state(self) -> QueueState:
        return self._state

    @property
    def pending_count(self) -> int:
        """Chunks accepted but not yet forwarded."""
        return len(self._backlog)

    @property
    def forwarded_count(self) -> int:
        return self._forwarded

    @property
    def is_confirmed(self) -> bool:
        return self._state in (QueueState.DRAINING, QueueState.FORWARDING)

    async def configure(self, provider: "StreamingSTTProvider", session: "RealtimeSession") -> None:
        """Bind the target session. Chunks are rejected until this is called."""
        async with self._lock:
            self._provider = provider
            self._session = session
            if self._early_confirmation is session or session.is_confirmed:
                self._early_confirmation = None
                await self._drain_locked()
            else:
                self._early_confirmation = None
                self._state = QueueState.BUFFERING
            logger.debug(f"Audio queue configured for {session.session_id} ({self._state.value})")

    async def confirm_session(self, session: "RealtimeSession | None" = None) -> None:
        """Release the backlog in arrival order and switch to pass-through.

        Idempotent. A confirmation for a session other than the bound one is ignored.
        """
        async with self._lock:
            if self._session is None:
                if session is not None:
                    self._early_confirmation = session
                return
            if session is not None and session is not self._session:
                logger.debug(f"Ignoring confirmation for stale session {session.session_id}")
                return
            if self._state is not QueueState.BUFFERING:
                return
            await self._drain_locked()

    async def stream_chunk(self, chunk: AudioChunk) -> None:
        """Append a chunk; forward it now if the session is confirmed."""
        if not chunk:
            return
        async with self._lock:
            if self._session is None or self._state is QueueState.IDLE:
                raise AudioStreamError("Audio queue is not configured with a session")
            self._backlog.append(chunk)
            if self._state is QueueState.FORWARDING:
                await self._flush_locked()

    async def reset(self) -> None:
        """Drop the backlog and unbind the session."""
        async with self._lock:
            dropped = len(self._backlog)
            self._backlog.clear()
            self._state = QueueState.IDLE
            self._provider = None
            self._session = None
            self._early_confirmation = None
            self._forwarded = 0
            if dropped:
                logger.debug(f"Audio queue reset, dropped {dropped} pending chunks")

    async def _drain_locked(self) -> None:
        self._state = QueueState.DRAINING
        backlog = len(self._backlog)
        try:
            await self._flush_locked()
        except BaseException:
            # Unsent chunks stay queued until the next confirmation drains them
            self._state = QueueState.BUFFERING
            raise
        self._state = QueueState.FORWARDING
        if backlog:
            logger.info(f"Released {backlog} buffered audio chunks after confirmation")

    async def _flush_locked(self) -> None:
        while self._backlog:
            chunk = self._backlog[0]
            try:
                await self._provider.stream_audio(self._session, chunk)
            except TranscriptionError:
                raise
            except Exception as e:
                raise AudioStreamError(f"Failed to forward audio: {e}") from e
            self._backlog.popleft()
            self._forwarded += 1


__all__ = ["AudioStreamingQueue", "QueueState"]
