"""Public audio API."""

from .conversion import pcm16_to_wav_bytes, resample_pcm16, to_pcm16_bytes
from .sources import QueueAudioSource, stream_from_bytes, wav_file_source

__all__ = [
    "QueueAudioSource",
    "stream_from_bytes",
    "wav_file_source",
    "pcm16_to_wav_bytes",
    "resample_pcm16",
    "to_pcm16_bytes",
]
