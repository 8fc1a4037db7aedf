#!/usr/bin/env python3
"""OpenAI realtime transcription over WebSocket.

Wire protocol (transcription intent):
- client -> ``transcription_session.update`` with model, prompt and language
- server -> ``transcription_session.updated`` confirms the session
- client -> ``input_audio_buffer.append`` (base64 PCM16) per chunk
- client -> ``input_audio_buffer.commit`` once the recording ends
- server -> ``conversation.item.input_audio_transcription.delta`` increments
- server -> ``conversation.item.input_audio_transcription.completed`` final text

Server-side turn detection is disabled so each session produces exactly one
committed item and therefore exactly one final transcript. Deltas are
accumulated per session and published as cumulative PartialChunks.
"""

import asyncio
import base64
import json
import logging

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from ..errors import SessionError, StreamingError, TranscriptionConnectionError
from ..streaming.session import RealtimeSession
from ..types import AudioChunk, PartialChunk, ProviderConfig, STTProviderType
from .base import StreamingSTTProvider, validate_provider_config

logger = logging.getLogger(__name__)

DEFAULT_REALTIME_URL = "wss://api.openai.com/v1/realtime?intent=transcription"


class OpenAIRealtimeSession(RealtimeSession):
    """Realtime session bound to one OpenAI WebSocket connection."""

    def __init__(self, websocket, config: ProviderConfig):
        super().__init__()
        self.websocket = websocket
        self.config = config
        self.audio_bytes_sent = 0
        self.commit_sent = False
        self._listener_task: asyncio.Task | None = None
        self._transcript_parts: list[str] = []
        # Set once the final transcript arrived or the session can no longer produce one
        self._done = asyncio.Event()

    @property
    def transcript(self) -> str:
        return "".join(self._transcript_parts)

    async def _listen(self) -> None:
        logger.debug(f"Listener started for {self.session_id}")
        try:
            while True:
                try:
                    message = await self.websocket.recv()
                except ConnectionClosed as e:
                    if self.final_text is None:
                        self.fail(TranscriptionConnectionError(f"Connection closed: {e}"))
                    return

                try:
                    event = json.loads(message)
                except json.JSONDecodeError as e:
                    logger.warning(f"Invalid JSON received: {e}")
                    continue

                if self._handle_event(event):
                    return
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Listener error for {self.session_id}: {e}")
            self.fail(StreamingError(f"Listener failed: {e}"))
        finally:
            self._done.set()
            logger.debug(f"Listener stopped for {self.session_id}")

    def _handle_event(self, event: dict) -> bool:
        """Apply one server event. Returns True when the session is finished."""
        event_type = event.get("type", "")

        if event_type == "transcription_session.updated":
            self.confirm()
        elif event_type == "conversation.item.input_audio_transcription.delta":
            self._transcript_parts.append(event.get("delta", ""))
            self.publish(PartialChunk(text=self.transcript))
        elif event_type == "conversation.item.input_audio_transcription.completed":
            text = event.get("transcript")
            if text is None:
                text = self.transcript
            self.publish(PartialChunk(text=text, is_final=True))
            return True
        elif event_type in ("conversation.item.input_audio_transcription.failed", "error"):
            error = event.get("error") or {}
            message = error.get("message") or "Transcription failed"
            self.fail(SessionError(message))
            return True
        else:
            logger.debug(f"Ignoring event {event_type}")
        return False

    async def send_event(self, event: dict) -> None:
        if self.state.is_terminal:
            raise TranscriptionConnectionError(f"Session {self.session_id} is {self.state.value}")
        try:
            await self.websocket.send(json.dumps(event))
        except ConnectionClosed as e:
            raise TranscriptionConnectionError(f"Connection closed: {e}") from e

    async def wait_done(self) -> None:
        await self._done.wait()

    async def _close(self) -> None:
        if self._listener_task is not None and not self._listener_task.done():
            self._listener_task.cancel()
            try:
                await self._listener_task
            except asyncio.CancelledError:
                pass
        self._done.set()
        try:
            await self.websocket.close()
        except WebSocketException as e:
            logger.debug(f"Error closing websocket for {self.session_id}: {e}")


class OpenAIStreamingProvider(StreamingSTTProvider):
    """Streaming provider for the OpenAI realtime transcription endpoint."""

    provider_type = STTProviderType.OPENAI

    def __init__(
        self,
        url: str = DEFAULT_REALTIME_URL,
        connect_timeout_s: float = 10.0,
        noise_reduction: str | None = "near_field",
        connect=None,
    ):
        """Initialize the provider.

        Args:
            url: Realtime WebSocket endpoint
            connect_timeout_s: Upper bound on opening the connection
            noise_reduction: ``near_field``, ``far_field`` or None
            connect: Replacement for ``websockets.connect`` (tests)

        """
        self.url = url
        self.connect_timeout_s = connect_timeout_s
        self.noise_reduction = noise_reduction
        self._connect = connect or websockets.connect

    def validate_config(self, config: ProviderConfig) -> None:
        validate_provider_config(self.provider_type, config, realtime=True)

    def _session_update(self, config: ProviderConfig) -> dict:
        transcription: dict = {"model": config.model}
        if config.prompt:
            transcription["prompt"] = config.prompt
        if config.language:
            transcription["language"] = config.language

        session: dict = {
            "input_audio_format": "pcm16",
            "input_audio_transcription": transcription,
            "turn_detection": None,
        }
        if self.noise_reduction:
            session["input_audio_noise_reduction"] = {"type": self.noise_reduction}
        return {"type": "transcription_session.update", "session": session}

    async def start_realtime_session(self, config: ProviderConfig) -> OpenAIRealtimeSession:
        headers = {
            "Authorization": f"Bearer {config.api_key}",
            "OpenAI-Beta": "realtime=v1",
        }
        try:
            websocket = await asyncio.wait_for(
                self._connect(self.url, additional_headers=headers, max_size=None),
                timeout=self.connect_timeout_s,
            )
        except TimeoutError as e:
            raise TranscriptionConnectionError("timeout") from e
        except (OSError, WebSocketException) as e:
            raise TranscriptionConnectionError(f"Failed to connect: {e}") from e

        session = OpenAIRealtimeSession(websocket, config)
        logger.info(f"Connected realtime session {session.session_id} (model={config.model})")
        try:
            await session.send_event(self._session_update(config))
        except BaseException:
            # The caller never receives this session, so the socket is closed here
            await asyncio.shield(session.cleanup())
            raise
        return session

    async def start_listening(self, session: OpenAIRealtimeSession) -> None:
        if session._listener_task is None:
            session._listener_task = asyncio.create_task(session._listen())

    async def stream_audio(self, session: OpenAIRealtimeSession, chunk: AudioChunk) -> None:
        if not chunk:
            return
        await session.send_event(
            {"type": "input_audio_buffer.append", "audio": base64.b64encode(chunk).decode("ascii")}
        )
        session.audio_bytes_sent += len(chunk)
        session.mark_streaming()

    async def finish_and_get_transcription(self, session: OpenAIRealtimeSession) -> str:
        if session.final_text is not None:
            return session.final_text

        if not session.commit_sent:
            session.commit_sent = True
            session.mark_finishing()
            if session.audio_bytes_sent == 0:
                # Nothing to commit; the server would reject an empty buffer
                logger.info(f"No audio sent on {session.session_id}, finishing with empty transcript")
                session.publish(PartialChunk(text="", is_final=True))
                return ""
            await session.send_event({"type": "input_audio_buffer.commit"})

        await session.wait_done()
        if session.final_text is not None:
            return session.final_text
        if session.error is not None:
            raise session.error
        raise SessionError(f"Session {session.session_id} closed before a final transcript")


__all__ = ["OpenAIStreamingProvider", "OpenAIRealtimeSession", "DEFAULT_REALTIME_URL"]
