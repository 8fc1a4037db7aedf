"""Realtime provider session.

RealtimeSession is the provider-neutral half of a live duplex connection:
- A one-shot confirmation signal (``on_session_confirmed``)
- A single-use async stream of PartialChunk results
- An idempotent ``cleanup`` that releases transport resources

Providers subclass it to attach their transport and feed it through
``confirm``, ``publish``, ``fail`` and ``end_stream``.
"""

import asyncio
import inspect
import logging
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

from ..errors import SessionError
from ..types import PartialChunk, SessionState

logger = logging.getLogger(__name__)

ConfirmationHandler = Callable[["RealtimeSession"], Awaitable[Any] | Any]

_END = object()


class RealtimeSession:
    """A live connection scoped to one transcription attempt."""

    def __init__(self, session_id: str | None = None):
        self.session_id = session_id or f"rt_{uuid.uuid4().hex[:8]}"
        self.state = SessionState.ESTABLISHING
        self.on_session_confirmed: ConfirmationHandler | None = None
        self.final_text: str | None = None
        self.error: BaseException | None = None

        self._confirmed = asyncio.Event()
        self._results: asyncio.Queue = asyncio.Queue()
        self._handler_tasks: set[asyncio.Task] = set()
        self._final_seen = False
        self._stream_ended = False
        self._stream_taken = False
        self._cleaned_up = False

    @property
    def is_confirmed(self) -> bool:
        return self._confirmed.is_set()

    @property
    def is_cleaned_up(self) -> bool:
        return self._cleaned_up

    @property
    def is_closed(self) -> bool:
        return self.state.is_terminal

    def confirm(self) -> bool:
        """Fire the confirmation signal. Only the first call has any effect."""
        if self._confirmed.is_set() or self.state.is_terminal:
            return False
        self._confirmed.set()
        self.state = SessionState.CONFIRMED
        logger.info(f"Session {self.session_id} confirmed")

        handler = self.on_session_confirmed
        if handler is not None:
            result = handler(self)
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._handler_tasks.add(task)
                task.add_done_callback(self._handler_done)
        return True

    def _handler_done(self, task: asyncio.Task) -> None:
        self._handler_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Confirmation handler failed for {self.session_id}: {task.exception()}")

    async def wait_confirmed(self) -> None:
        await self._confirmed.wait()

    def mark_streaming(self) -> None:
        if self.state is SessionState.CONFIRMED:
            self.state = SessionState.STREAMING

    def mark_finishing(self) -> None:
        if not self.state.is_terminal:
            self.state = SessionState.FINISHING

    def publish(self, chunk: PartialChunk) -> bool:
        """Queue a partial result. Anything after the final chunk is dropped."""
        if self._final_seen or self._stream_ended:
            logger.debug(f"Dropping partial for {self.session_id}: stream already finished")
            return False
        self._results.put_nowait(chunk)
        if chunk.is_final:
            self._final_seen = True
            self.final_text = chunk.text
            self.end_stream()
        return True

    def fail(self, error: BaseException) -> None:
        """Move to FAILED and end the partial stream with ``error``."""
        if self.state.is_terminal:
            return
        self.state = SessionState.FAILED
        self.error = error
        logger.warning(f"Session {self.session_id} failed: {error}")
        if not self._stream_ended:
            self._stream_ended = True
            self._results.put_nowait(error)

    def end_stream(self) -> None:
        if self._stream_ended:
            return
        self._stream_ended = True
        self._results.put_nowait(_END)

    @property
    def partial_results_stream(self) -> AsyncIterator[PartialChunk]:
        """The session's partial results. Can be consumed only once."""
        if self._stream_taken:
            raise SessionError(f"Partial results stream of {self.session_id} already consumed")
        self._stream_taken = True
        return self._iterate_results()

    async def _iterate_results(self) -> AsyncIterator[PartialChunk]:
        while True:
            item = await self._results.get()
            if item is _END:
                return
            if isinstance(item, BaseException):
                raise item
            yield item
            if item.is_final:
                return

    async def _close(self) -> None:
        """Release the provider transport. Overridden by providers."""

    async def cleanup(self) -> None:
        """Release all resources. Safe to call any number of times."""
        if self._cleaned_up:
            return
        self._cleaned_up = True
        self.on_session_confirmed = None

        for task in list(self._handler_tasks):
            task.cancel()
        if self._handler_tasks:
            await asyncio.gather(*self._handler_tasks, return_exceptions=True)
        self._handler_tasks.clear()

        try:
            await self._close()
        except Exception as e:
            logger.warning(f"Error closing session {self.session_id}: {e}")

        self.end_stream()
        if self.state is not SessionState.FAILED:
            self.state = SessionState.CLOSED
        logger.info(f"Session {self.session_id} cleaned up ({self.state.value})")


__all__ = ["RealtimeSession", "ConfirmationHandler"]
