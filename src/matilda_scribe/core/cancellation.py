"""Cooperative cancellation token.

A token is created per transcription attempt and checked at every suspension
point of the audio pump and session setup, so a cancelled attempt never pushes
another chunk even if the task has not been scheduled yet.
"""

import asyncio


class CancellationToken:
    """One-shot cancellation flag that can also be awaited."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str | None = None) -> None:
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise asyncio.CancelledError(self.reason or "cancelled")

    async def wait(self) -> None:
        await self._event.wait()


__all__ = ["CancellationToken"]
