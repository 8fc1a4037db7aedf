"""Tests for CancellationToken."""

import asyncio

import pytest

from matilda_scribe.core.cancellation import CancellationToken


class TestCancellationToken:
    @pytest.mark.asyncio
    async def test_cancel_once_keeps_first_reason(self):
        token = CancellationToken()
        token.raise_if_cancelled()

        token.cancel("stopped by user")
        token.cancel("superseded")

        assert token.is_cancelled
        assert token.reason == "stopped by user"
        with pytest.raises(asyncio.CancelledError):
            token.raise_if_cancelled()

    @pytest.mark.asyncio
    async def test_wait_returns_after_cancel(self):
        token = CancellationToken()
        waiter = asyncio.create_task(token.wait())
        await asyncio.sleep(0)
        assert not waiter.done()

        token.cancel()

        await asyncio.wait_for(waiter, timeout=1.0)
