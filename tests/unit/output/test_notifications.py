"""Tests for NotificationManager rendering and retry routing."""

import io

import pytest
from rich.console import Console

from matilda_scribe.output.notifications import NotificationManager
from matilda_scribe.transcription.errors import STTError
from matilda_scribe.transcription.retry import RetryContext
from matilda_scribe.transcription.types import ProviderConfig, STTProviderType


@pytest.fixture
def context():
    return RetryContext(
        b"\x01\x00", ProviderConfig("sk", "whisper-1"), STTError.network_error("timeout"), STTProviderType.OPENAI
    )


class TestShowError:
    def test_renders_message_and_retry_hint(self, context):
        buffer = io.StringIO()
        manager = NotificationManager(console=Console(file=buffer, width=80, color_system=None))

        manager.show_transcription_error(STTError.network_error("timeout"), context)

        output = buffer.getvalue()
        assert "Network error: timeout" in output
        assert "Retry available for 300s" in output
        assert manager.last_error == STTError.network_error("timeout")
        assert manager.pending_retry is context

    def test_quiet_mode_records_without_printing(self):
        buffer = io.StringIO()
        manager = NotificationManager(console=Console(file=buffer), quiet=True)

        manager.show_transcription_error(STTError.invalid_model())

        assert buffer.getvalue() == ""
        assert manager.pending_retry is None


class TestRetryRequests:
    @pytest.mark.asyncio
    async def test_defaults_to_pending_context(self, context):
        manager = NotificationManager(quiet=True)
        received = []

        async def handler(ctx):
            received.append(ctx)
            return True

        manager.add_retry_handler(handler)
        manager.show_transcription_error(context.original_error, context)

        assert await manager.request_retry() is True
        assert received == [context]
        assert manager.pending_retry is None
        assert await manager.request_retry() is False

    @pytest.mark.asyncio
    async def test_handler_errors_are_isolated(self, context):
        manager = NotificationManager(quiet=True)

        def broken(ctx):
            raise RuntimeError("handler bug")

        manager.add_retry_handler(broken)
        manager.add_retry_handler(lambda ctx: True)

        assert await manager.request_retry(context) is True

    @pytest.mark.asyncio
    async def test_removed_handler_not_called(self, context):
        manager = NotificationManager(quiet=True)
        calls = []
        token = manager.add_retry_handler(calls.append)

        assert manager.remove_retry_handler(token)
        assert await manager.request_retry(context) is False
        assert calls == []
