"""Retry snapshots for failed transcription attempts."""

import time
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

from .errors import STTError
from .types import ProviderConfig, STTProviderType

# How long a failed attempt can be resubmitted from its notification
DEFAULT_RETRY_TTL_SECONDS = 300.0


@dataclass(frozen=True)
class RetryContext:
    """Everything needed to resubmit one failed attempt.

    The snapshot is immutable and expires ``ttl_seconds`` after creation.
    """

    audio_data: bytes
    config: ProviderConfig
    original_error: STTError
    provider_type: STTProviderType
    created_at: float = field(default_factory=time.time)
    ttl_seconds: float = DEFAULT_RETRY_TTL_SECONDS

    @classmethod
    def create(
        cls,
        audio_data: bytes | bytearray | None,
        config: ProviderConfig | None,
        error: STTError,
        provider_type: STTProviderType | None,
        ttl_seconds: float = DEFAULT_RETRY_TTL_SECONDS,
    ) -> "RetryContext | None":
        """Build a context, or None when audio, config or provider is missing."""
        if not audio_data or config is None or provider_type is None:
            return None
        return cls(
            audio_data=bytes(audio_data),
            config=config,
            original_error=error,
            provider_type=provider_type,
            ttl_seconds=ttl_seconds,
        )

    def age_seconds(self, now: float | None = None) -> float:
        return (time.time() if now is None else now) - self.created_at

    def is_valid_at(self, now: float) -> bool:
        return self.age_seconds(now) < self.ttl_seconds

    @property
    def is_valid(self) -> bool:
        return self.is_valid_at(time.time())

    async def audio_stream(self) -> AsyncIterator[bytes]:
        """Replay the captured audio as one complete chunk."""
        yield self.audio_data

    @property
    def description(self) -> str:
        return (
            f"RetryContext(provider={self.provider_type.value}, model={self.config.model}, "
            f"audio={len(self.audio_data)} bytes, error={self.original_error.kind.value}, "
            f"age={self.age_seconds():.1f}s)"
        )

    def __repr__(self) -> str:
        return self.description


__all__ = ["RetryContext", "DEFAULT_RETRY_TTL_SECONDS"]
