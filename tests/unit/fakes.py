"""Network-free fakes shared by the unit tests.

The fake provider speaks the StreamingSTTProvider interface without a network:
sessions confirm on ``start_listening`` (unless told not to) and produce a
scripted partial/final sequence when the service finishes them.
"""

import asyncio

from matilda_scribe.transcription.providers.base import RestSTTProvider, StreamingSTTProvider
from matilda_scribe.transcription.streaming.session import RealtimeSession
from matilda_scribe.transcription.types import PartialChunk, STTProviderType


class FakeSession(RealtimeSession):
    def __init__(self):
        super().__init__()
        self.cleanup_calls = 0
        self.transport_closed = False

    async def cleanup(self):
        self.cleanup_calls += 1
        await super().cleanup()

    async def _close(self):
        self.transport_closed = True


class FakeStreamingProvider(StreamingSTTProvider):
    provider_type = STTProviderType.OPENAI

    def __init__(self):
        self.auto_confirm = True
        self.partials = ["Hel", "Hello"]
        self.final_text = "Hello world"
        self.validate_error = None
        self.start_error = None
        self.start_delay = 0.0
        self.sessions: list[FakeSession] = []
        self.sent: list[bytes] = []
        self.finish_calls: list[str] = []
        self.listen_order: list[str] = []

    def validate_config(self, config):
        if self.validate_error is not None:
            raise self.validate_error

    async def start_realtime_session(self, config):
        if self.start_delay:
            await asyncio.sleep(self.start_delay)
        if self.start_error is not None:
            raise self.start_error
        session = FakeSession()
        self.sessions.append(session)
        return session

    async def start_listening(self, session):
        self.listen_order.append("handler" if session.on_session_confirmed else "no-handler")
        if self.auto_confirm:
            session.confirm()

    async def stream_audio(self, session, chunk):
        self.sent.append(chunk)

    async def finish_and_get_transcription(self, session):
        self.finish_calls.append(session.session_id)
        if session.final_text is None and not session.is_closed:
            for text in self.partials:
                session.publish(PartialChunk(text=text))
            session.publish(PartialChunk(text=self.final_text, is_final=True))
        return session.final_text or ""


class FakeRestProvider(RestSTTProvider):
    provider_type = STTProviderType.OPENAI

    def __init__(self, result="Hello world"):
        self.result = result
        self.error = None
        self.validate_error = None
        self.received: list[bytes] = []

    def validate_config(self, config):
        if self.validate_error is not None:
            raise self.validate_error

    async def transcribe(self, stream, config):
        audio = bytearray()
        async for chunk in stream:
            audio.extend(chunk)
        self.received.append(bytes(audio))
        if self.error is not None:
            raise self.error
        return self.result


class RecordingSink:
    def __init__(self):
        self.injections: list[tuple[str, str | None]] = []
        self.error = None

    def inject_text(self, text, replace=None):
        if self.error is not None:
            raise self.error
        self.injections.append((text, replace))


async def chunk_source(chunks, gate=None):
    for chunk in chunks:
        yield chunk
    if gate is not None:
        await gate.wait()
