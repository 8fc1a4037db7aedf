"""Audio sources feeding the transcription services.

Every source is an async iterator of PCM16 byte chunks that ends when the
recording stops. Device capture itself lives outside this package: a capture
callback pushes into a QueueAudioSource.
"""

import asyncio
import logging
import wave
from collections.abc import AsyncIterator
from pathlib import Path

import numpy as np

from ..transcription.errors import AudioStreamError
from .conversion import downmix_pcm16, pcm16_duration_seconds, resample_pcm16, to_pcm16_bytes

logger = logging.getLogger(__name__)

_STOP = object()


async def stream_from_bytes(data: bytes, chunk_size: int | None = None) -> AsyncIterator[bytes]:
    """Replay buffered audio, as one chunk or in fixed-size slices."""
    if not data:
        return
    if not chunk_size or chunk_size >= len(data):
        yield bytes(data)
        return
    for start in range(0, len(data), chunk_size):
        yield bytes(data[start : start + chunk_size])


class QueueAudioSource:
    """Async iterator fed by a capture callback.

    ``push`` may be called from the event loop; ``push_threadsafe`` from a
    capture thread. After ``stop``/``aclose`` further pushes are dropped.
    """

    def __init__(self, maxsize: int = 0, loop: asyncio.AbstractEventLoop | None = None):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._loop = loop
        self._closed = False
        self.chunks_pushed = 0
        self.chunks_dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def _normalize(self, chunk: bytes | np.ndarray) -> bytes:
        if isinstance(chunk, np.ndarray):
            return to_pcm16_bytes(chunk)
        return bytes(chunk)

    def push(self, chunk: bytes | np.ndarray) -> bool:
        if self._closed:
            self.chunks_dropped += 1
            return False
        try:
            self._queue.put_nowait(self._normalize(chunk))
        except asyncio.QueueFull:
            self.chunks_dropped += 1
            logger.warning("Audio queue full, dropping capture chunk")
            return False
        self.chunks_pushed += 1
        return True

    def push_threadsafe(self, chunk: bytes | np.ndarray) -> None:
        if self._loop is None:
            raise RuntimeError("QueueAudioSource needs a loop for thread-safe pushes")
        self._loop.call_soon_threadsafe(self.push, chunk)

    def fail(self, error: Exception) -> None:
        """End the stream with a capture error."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(error)

    def stop(self) -> None:
        """End the stream after the chunks already queued."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_STOP)

    async def aclose(self) -> None:
        self.stop()

    def __aiter__(self) -> "QueueAudioSource":
        return self

    async def __anext__(self) -> bytes:
        item = await self._queue.get()
        if item is _STOP:
            # Keep the sentinel so repeated iteration also terminates
            self._queue.put_nowait(_STOP)
            raise StopAsyncIteration
        if isinstance(item, Exception):
            self._queue.put_nowait(_STOP)
            raise AudioStreamError(f"Audio capture failed: {item}") from item
        return item


async def wav_file_source(
    path: str | Path,
    chunk_ms: int = 100,
    target_rate: int | None = None,
    pace: bool = False,
) -> AsyncIterator[bytes]:
    """Stream a 16-bit WAV file as mono PCM16 chunks.

    Args:
        path: WAV file path
        chunk_ms: Chunk duration in milliseconds
        target_rate: Resample to this rate when set
        pace: Sleep for each chunk's duration to mimic live capture

    """
    try:
        with wave.open(str(path), "rb") as wav_file:
            if wav_file.getsampwidth() != 2:
                raise AudioStreamError(f"Only 16-bit WAV is supported: {path}")
            channels = wav_file.getnchannels()
            rate = wav_file.getframerate()
            frames = wav_file.readframes(wav_file.getnframes())
    except (OSError, wave.Error) as e:
        raise AudioStreamError(f"Cannot read WAV file {path}: {e}") from e

    pcm = downmix_pcm16(frames, channels)
    out_rate = rate
    if target_rate and target_rate != rate:
        pcm = resample_pcm16(pcm, rate, target_rate)
        out_rate = target_rate

    chunk_bytes = max(2, int(out_rate * chunk_ms / 1000) * 2)
    duration = pcm16_duration_seconds(pcm, out_rate)
    logger.info(f"Streaming {path}: {duration:.1f}s at {out_rate} Hz in {chunk_bytes}-byte chunks")
    async for chunk in stream_from_bytes(pcm, chunk_bytes):
        yield chunk
        if pace:
            await asyncio.sleep(chunk_ms / 1000)


__all__ = ["stream_from_bytes", "QueueAudioSource", "wav_file_source"]
