"""PCM16 helpers.

Providers take 16-bit little-endian mono PCM. Capture code may hand us float32
or int16 numpy arrays; these helpers normalize to bytes and wrap bytes into a
WAV container for upload endpoints.
"""

import io
import wave

import numpy as np


def to_pcm16_bytes(samples: np.ndarray) -> bytes:
    """Convert float32 ([-1, 1]) or int16 samples to PCM16 bytes."""
    if samples.dtype == np.int16:
        return samples.astype("<i2", copy=False).tobytes()
    clipped = np.clip(samples.astype(np.float32), -1.0, 1.0)
    return (clipped * 32767.0).astype("<i2").tobytes()


def pcm16_duration_seconds(data: bytes, sample_rate: int, channels: int = 1) -> float:
    if sample_rate <= 0:
        return 0.0
    return len(data) / (2 * channels * sample_rate)


def resample_pcm16(data: bytes, from_rate: int, to_rate: int) -> bytes:
    """Linear-interpolation resample of mono PCM16."""
    if from_rate == to_rate or not data:
        return data
    samples = np.frombuffer(data, dtype="<i2").astype(np.float32)
    target_len = max(1, int(round(len(samples) * to_rate / from_rate)))
    positions = np.linspace(0, len(samples) - 1, num=target_len)
    resampled = np.interp(positions, np.arange(len(samples)), samples)
    return np.clip(np.round(resampled), -32768, 32767).astype("<i2").tobytes()


def downmix_pcm16(data: bytes, channels: int) -> bytes:
    """Average interleaved channels down to mono."""
    if channels <= 1:
        return data
    samples = np.frombuffer(data, dtype="<i2")
    frames = samples[: len(samples) - len(samples) % channels].reshape(-1, channels)
    return frames.mean(axis=1).round().astype("<i2").tobytes()


def pcm16_to_wav_bytes(data: bytes, sample_rate: int, channels: int = 1) -> bytes:
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav_file:
        wav_file.setnchannels(channels)
        wav_file.setsampwidth(2)  # 16-bit
        wav_file.setframerate(sample_rate)
        wav_file.writeframes(data)
    return buffer.getvalue()


__all__ = [
    "to_pcm16_bytes",
    "pcm16_duration_seconds",
    "resample_pcm16",
    "downmix_pcm16",
    "pcm16_to_wav_bytes",
]
