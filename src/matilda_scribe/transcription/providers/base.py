"""Provider capability interfaces.

A provider variant implements one or both capability sets:
- RestSTTProvider: one-shot transcription of a complete audio stream
- StreamingSTTProvider: realtime sessions fed chunk by chunk
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from ..errors import InvalidConfigurationError
from ..types import AudioChunk, ProviderConfig, STTProviderType
from ..streaming.session import RealtimeSession


def validate_provider_config(provider_type: STTProviderType, config: ProviderConfig, realtime: bool) -> None:
    """Reject configs that cannot work before any network call is made.

    Raises:
        InvalidConfigurationError: Missing key, unknown model or bad temperature

    """
    if not config.api_key or not config.api_key.strip():
        raise InvalidConfigurationError(f"{provider_type.value} API key is not configured")

    models = provider_type.realtime_models if realtime else provider_type.rest_models
    if config.model not in models:
        mode = "realtime" if realtime else "REST"
        raise InvalidConfigurationError(
            f"Model '{config.model}' is not supported for {mode} transcription by {provider_type.value}. "
            f"Available: {', '.join(models)}"
        )

    if config.temperature is not None and not 0.0 <= config.temperature <= 1.0:
        raise InvalidConfigurationError(f"Temperature must be between 0 and 1, got {config.temperature}")


class RestSTTProvider(ABC):
    """One-shot transcription of a finite audio stream."""

    provider_type: STTProviderType

    @abstractmethod
    def validate_config(self, config: ProviderConfig) -> None:
        """Raise InvalidConfigurationError when ``config`` cannot be used."""

    @abstractmethod
    async def transcribe(self, stream: AsyncIterator[AudioChunk], config: ProviderConfig) -> str:
        """Consume ``stream`` to its end and return the transcript."""


class StreamingSTTProvider(ABC):
    """Realtime sessions fed chunk by chunk."""

    provider_type: STTProviderType

    @abstractmethod
    def validate_config(self, config: ProviderConfig) -> None:
        """Raise InvalidConfigurationError when ``config`` cannot be used."""

    @abstractmethod
    async def start_realtime_session(self, config: ProviderConfig) -> RealtimeSession:
        """Open a connection and request a session. Messages are not read yet."""

    @abstractmethod
    async def start_listening(self, session: RealtimeSession) -> None:
        """Begin reading provider messages; confirmation may fire from here on."""

    @abstractmethod
    async def stream_audio(self, session: RealtimeSession, chunk: AudioChunk) -> None:
        """Send one audio chunk to a confirmed session."""

    @abstractmethod
    async def finish_and_get_transcription(self, session: RealtimeSession) -> str:
        """Signal end of audio and return the provider's final text."""


__all__ = ["RestSTTProvider", "StreamingSTTProvider", "validate_provider_config"]
