#!/usr/bin/env python3
"""Notification boundary for transcription failures.

Errors are rendered on the console with rich. A notification that carries a
RetryContext can be retried: ``request_retry`` hands the context to every
registered retry handler, which is how a service re-enters its retry path.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from rich.console import Console
from rich.panel import Panel

from ..transcription.errors import STTError
from ..transcription.retry import RetryContext

logger = logging.getLogger(__name__)

RetryHandler = Callable[[RetryContext], Awaitable[Any] | Any]


class NotificationBoundary(Protocol):
    def show_transcription_error(self, error: STTError, retry_context: RetryContext | None = None) -> None: ...


class NotificationManager:
    """Console notifications plus the retry re-entry channel."""

    def __init__(self, console: Console | None = None, quiet: bool = False):
        self.console = console or Console(stderr=True)
        self.quiet = quiet
        self.last_error: STTError | None = None
        self.pending_retry: RetryContext | None = None
        self._retry_handlers: dict[int, RetryHandler] = {}
        self._next_token = 0

    def show_transcription_error(self, error: STTError, retry_context: RetryContext | None = None) -> None:
        self.last_error = error
        self.pending_retry = retry_context

        logger.warning(f"Transcription failed: {error.user_message} (retry offered: {retry_context is not None})")
        if self.quiet:
            return

        body = error.user_message
        if retry_context is not None:
            body += f"\n[dim]Retry available for {int(retry_context.ttl_seconds)}s[/dim]"
        self.console.print(Panel(body, title="Transcription failed", border_style="red"))

    def add_retry_handler(self, handler: RetryHandler) -> int:
        token = self._next_token
        self._next_token += 1
        self._retry_handlers[token] = handler
        return token

    def remove_retry_handler(self, token: int) -> bool:
        return self._retry_handlers.pop(token, None) is not None

    async def request_retry(self, retry_context: RetryContext | None = None) -> bool:
        """Deliver a retry request (defaults to the last offered context).

        Returns True when at least one handler accepted the request.
        """
        context = retry_context or self.pending_retry
        if context is None:
            logger.info("Retry requested but no retry context is pending")
            return False

        if context is self.pending_retry:
            self.pending_retry = None

        accepted = False
        for handler in list(self._retry_handlers.values()):
            try:
                result = handler(context)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as e:
                logger.error(f"Error in retry handler: {e}")
                continue
            accepted = accepted or bool(result)
        return accepted


__all__ = ["NotificationBoundary", "NotificationManager", "RetryHandler"]
