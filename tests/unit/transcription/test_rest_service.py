"""Tests for RestTranscriptionService."""

import asyncio

import pytest

from fakes import FakeRestProvider
from matilda_scribe.transcription.errors import InvalidConfigurationError, ProviderAPIError, STTError
from matilda_scribe.transcription.rest_service import RestTranscriptionService
from matilda_scribe.transcription.retry import RetryContext
from matilda_scribe.transcription.types import STTProviderType, TranscriptionPhase

CHUNKS = [b"\x01\x00\x01\x00", b"\x02\x00\x02\x00"]


class _PartialReadProvider(FakeRestProvider):
    """Fails after reading only the first chunk."""

    async def transcribe(self, stream, config):
        async for _chunk in stream:
            raise ProviderAPIError(503, "upstream busy")
        return ""


class _BrokenNotifications:
    def show_transcription_error(self, error, retry_context=None):
        raise RuntimeError("display unavailable")


@pytest.fixture
def rest_service(rest_provider, sink, notifications):
    return RestTranscriptionService(rest_provider, text_sink=sink, notifications=notifications)


class TestRestTranscription:
    @pytest.mark.asyncio
    async def test_transcribes_and_injects(self, rest_service, rest_provider, sink, config, audio_source):
        result = await (await rest_service.start_transcription(audio_source(CHUNKS), config))

        assert result == "Hello world"
        assert rest_provider.received == [b"".join(CHUNKS)]
        assert sink.injections == [("Hello world", None)]
        assert rest_service.last_injected_text == "Hello world"
        assert rest_service.state.last_transcription == "Hello world"
        assert rest_service.state.phase is TranscriptionPhase.IDLE
        assert not rest_service.state.is_transcribing

    @pytest.mark.asyncio
    async def test_fresh_attempt_does_not_replace(self, rest_service, rest_provider, sink, config, audio_source):
        await (await rest_service.start_transcription(audio_source(CHUNKS), config))
        rest_provider.result = "Second take"
        await (await rest_service.start_transcription(audio_source(CHUNKS), config))

        assert sink.injections == [("Hello world", None), ("Second take", None)]

    @pytest.mark.asyncio
    async def test_blank_result_not_injected(self, rest_service, rest_provider, sink, config, audio_source):
        rest_provider.result = "  \n"

        await (await rest_service.start_transcription(audio_source(CHUNKS), config))

        assert sink.injections == []
        assert rest_service.last_injected_text is None

    @pytest.mark.asyncio
    async def test_invalid_config_rejected_before_upload(
        self, rest_service, rest_provider, notifications, config, audio_source
    ):
        rest_provider.validate_error = InvalidConfigurationError("unsupported model")

        await (await rest_service.start_transcription(audio_source(CHUNKS), config))

        assert rest_provider.received == []
        assert rest_service.state.error == STTError.invalid_model()
        assert notifications.last_error == STTError.invalid_model()
        assert rest_service.retry_context is None


    @pytest.mark.asyncio
    async def test_sink_failure_is_reported(self, rest_service, sink, notifications, config, audio_source):
        sink.error = OSError("accessibility permission denied")

        result = await (await rest_service.start_transcription(audio_source(CHUNKS), config))

        assert result is None
        assert rest_service.state.error == STTError.network_error("accessibility permission denied")
        assert notifications.last_error == rest_service.state.error
        assert rest_service.last_injected_text is None
        assert rest_service.state.phase is TranscriptionPhase.IDLE
        assert not rest_service.state.is_transcribing

    @pytest.mark.asyncio
    async def test_broken_notifications_still_reset_flags(self, rest_provider, sink, config, audio_source):
        service = RestTranscriptionService(rest_provider, text_sink=sink, notifications=_BrokenNotifications())
        rest_provider.error = ProviderAPIError(500, "server error")

        task = await service.start_transcription(audio_source(CHUNKS), config)
        with pytest.raises(RuntimeError, match="display unavailable"):
            await task

        assert service.state.phase is TranscriptionPhase.IDLE
        assert not service.state.is_transcribing

class TestRestRetry:
    @pytest.mark.asyncio
    async def test_failed_upload_offers_retry_with_full_audio(
        self, rest_service, rest_provider, sink, notifications, config, audio_source
    ):
        rest_provider.error = ProviderAPIError(500, "server error")

        await (await rest_service.start_transcription(audio_source(CHUNKS), config))

        context = rest_service.retry_context
        assert rest_service.state.error == STTError.network_error("server error")
        assert context is not None
        assert context.audio_data == b"".join(CHUNKS)
        assert notifications.pending_retry is context

        rest_provider.error = None
        assert await notifications.request_retry() is True
        await rest_service.current_task

        assert rest_provider.received[-1] == b"".join(CHUNKS)
        assert sink.injections == [("Hello world", None)]
        assert rest_service.retry_context is None
        assert rest_service.state.error is None

    @pytest.mark.asyncio
    async def test_partially_read_audio_is_not_retryable(self, sink, notifications, config, audio_source):
        service = RestTranscriptionService(_PartialReadProvider(), text_sink=sink, notifications=notifications)

        await (await service.start_transcription(audio_source(CHUNKS), config))

        assert service.state.error == STTError.network_error("upstream busy")
        assert service.retry_context is None

    @pytest.mark.asyncio
    async def test_retry_replaces_previous_injection(self, rest_service, rest_provider, sink, config, audio_source):
        await (await rest_service.start_transcription(audio_source(CHUNKS), config))
        context = RetryContext(b"".join(CHUNKS), config, STTError.network_error("timeout"), STTProviderType.OPENAI)
        rest_provider.result = "Hello, world."

        assert await rest_service.handle_retry_request(context) is True
        await rest_service.current_task

        assert sink.injections == [("Hello world", None), ("Hello, world.", "Hello world")]
        assert rest_service.last_injected_text == "Hello, world."

    @pytest.mark.asyncio
    async def test_retry_rejected_while_busy(self, rest_service, config, audio_source):
        gate = asyncio.Event()
        task = await rest_service.start_transcription(audio_source(CHUNKS, gate), config)
        context = RetryContext(b"\x01\x00", config, STTError.network_error("timeout"), STTProviderType.OPENAI)

        assert await rest_service.handle_retry_request(context) is False
        assert rest_service.current_task is task

        await rest_service.stop_transcription()
        assert task.cancelled()
        assert not rest_service.state.is_transcribing
