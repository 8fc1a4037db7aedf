import asyncio

import pytest

from fakes import FakeRestProvider, FakeStreamingProvider, RecordingSink, chunk_source
from matilda_scribe.output.notifications import NotificationManager
from matilda_scribe.transcription.streaming.service import StreamingTranscriptionService
from matilda_scribe.transcription.types import ProviderConfig


@pytest.fixture
def provider():
    return FakeStreamingProvider()


@pytest.fixture
def rest_provider():
    return FakeRestProvider()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def notifications():
    return NotificationManager(quiet=True)


@pytest.fixture
def config():
    return ProviderConfig(api_key="sk-test", model="gpt-4o-transcribe", language="en")


@pytest.fixture
def audio_source():
    """Factory: async iterator over ``chunks``; waits on ``gate`` before ending."""
    return chunk_source


@pytest.fixture
def service(provider, sink, notifications):
    return StreamingTranscriptionService(provider, text_sink=sink, notifications=notifications, finalize_timeout_s=2.0)


@pytest.fixture
def eventually():
    """Wait until ``predicate()`` holds, yielding to the loop in between."""

    async def _wait(predicate, timeout=1.0):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not reached in time")
            await asyncio.sleep(0.001)

    return _wait
