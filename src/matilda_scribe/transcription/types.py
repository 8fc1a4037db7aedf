"""Type definitions for dictation transcription.

Provides:
- STTProviderType: Enumerated provider variants and their model capabilities
- ProviderConfig: Immutable per-session provider settings
- PartialChunk: Cumulative recognition hypothesis from a realtime session
- SessionState / TranscriptionPhase: Lifecycle states
"""

import time
from dataclasses import dataclass, field
from enum import Enum

# Raw PCM16 little-endian mono audio. Ordering is the arrival order.
AudioChunk = bytes


class STTProviderType(Enum):
    """Speech-to-text provider variants."""

    OPENAI = "OpenAI"

    @property
    def rest_models(self) -> list[str]:
        return ["whisper-1", "gpt-4o-transcribe", "gpt-4o-mini-transcribe"]

    @property
    def realtime_models(self) -> list[str]:
        return ["gpt-4o-transcribe", "gpt-4o-mini-transcribe", "whisper-1"]

    @property
    def all_models(self) -> list[str]:
        """All available models (both REST and real-time)."""
        return sorted(set(self.rest_models + self.realtime_models))

    def supports_realtime(self, model: str) -> bool:
        """Whether a model can be used over a realtime session."""
        return model in self.realtime_models

    @property
    def supports_realtime_streaming(self) -> bool:
        return bool(self.realtime_models)

    @classmethod
    def from_name(cls, name: str) -> "STTProviderType":
        for member in cls:
            if member.value.lower() == name.strip().lower() or member.name.lower() == name.strip().lower():
                return member
        raise ValueError(f"Unknown provider: {name}")


@dataclass(frozen=True)
class ProviderConfig:
    """Provider settings, fixed for the lifetime of one session."""

    api_key: str
    model: str
    system_prompt: str | None = None
    language: str | None = None
    temperature: float | None = None
    keywords: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        # Accept any iterable of keywords but store a hashable tuple
        if self.keywords is not None and not isinstance(self.keywords, tuple):
            object.__setattr__(self, "keywords", tuple(self.keywords))

    @property
    def prompt(self) -> str | None:
        """Prompt sent to the provider: system prompt plus keyword hints."""
        parts = []
        if self.system_prompt and self.system_prompt.strip():
            parts.append(self.system_prompt.strip())
        if self.keywords:
            parts.append("Keywords: " + ", ".join(self.keywords))
        return "\n".join(parts) if parts else None

    def __repr__(self) -> str:
        # Keep the key out of logs
        return (
            f"ProviderConfig(model={self.model!r}, language={self.language!r}, "
            f"temperature={self.temperature!r}, has_prompt={self.prompt is not None})"
        )


@dataclass(frozen=True)
class PartialChunk:
    """A recognition hypothesis.

    ``text`` is the full cumulative hypothesis for the session, not a delta.
    At most one chunk per session has ``is_final`` set and it is always the last.
    """

    text: str
    is_final: bool = False
    timestamp: float = field(default_factory=time.time)


class SessionState(Enum):
    """State of a realtime provider session."""

    ESTABLISHING = "establishing"
    CONFIRMED = "confirmed"
    STREAMING = "streaming"
    FINISHING = "finishing"
    CLOSED = "closed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.CLOSED, SessionState.FAILED)


class TranscriptionPhase(Enum):
    """Orchestrator phase for one transcription attempt."""

    IDLE = "idle"
    ESTABLISHING = "establishing"
    LISTENING = "listening"
    STREAMING = "streaming"
    FINALIZING = "finalizing"
    FAILED = "failed"


__all__ = [
    "AudioChunk",
    "STTProviderType",
    "ProviderConfig",
    "PartialChunk",
    "SessionState",
    "TranscriptionPhase",
]
