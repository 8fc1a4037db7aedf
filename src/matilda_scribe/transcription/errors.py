#!/usr/bin/env python3
"""Exceptions for transcription operations.

Two layers live here:
- Low-level exceptions raised by providers, sessions and the audio queue
  (TranscriptionError and its subclasses).
- STTError, the small user-facing taxonomy every failure is mapped to before
  it is surfaced through the notification boundary.
"""

from enum import Enum


class TranscriptionError(Exception):
    """Base exception for transcription-related errors."""


class StreamingError(TranscriptionError):
    """Exception for streaming-related errors."""


class TranscriptionConnectionError(StreamingError):
    """The realtime connection could not be established or was lost."""


class SessionError(StreamingError):
    """The provider reported an error for the live session."""


class AudioStreamError(StreamingError):
    """Audio could not be read from the source or forwarded to the session."""


class InvalidConfigurationError(StreamingError):
    """The provider configuration was rejected before a session was started."""


class PartialResultsError(StreamingError):
    """The partial results stream could not be consumed."""


class ProviderAPIError(TranscriptionError):
    """An HTTP provider endpoint answered with an error status."""

    def __init__(self, status: int, message: str, code: str | None = None):
        self.status = status
        self.code = code
        super().__init__(message)

    @property
    def message(self) -> str:
        return str(self)


class STTErrorKind(Enum):
    TRANSCRIPTION = "transcription_error"
    NETWORK = "network_error"
    AUDIO_PROCESSING = "audio_processing_error"
    INVALID_MODEL = "invalid_model"
    PROMPT_TOO_LONG = "prompt_too_long"


# Kinds the user can meaningfully retry with the same audio and config
_RECOVERABLE_KINDS = frozenset({STTErrorKind.TRANSCRIPTION, STTErrorKind.NETWORK})


class STTError(Exception):
    """User-facing transcription failure."""

    def __init__(self, kind: STTErrorKind, message: str = ""):
        self.kind = kind
        self.message = message
        super().__init__(self.user_message)

    @classmethod
    def transcription_error(cls, message: str) -> "STTError":
        return cls(STTErrorKind.TRANSCRIPTION, message)

    @classmethod
    def network_error(cls, message: str) -> "STTError":
        return cls(STTErrorKind.NETWORK, message)

    @classmethod
    def audio_processing_error(cls, message: str) -> "STTError":
        return cls(STTErrorKind.AUDIO_PROCESSING, message)

    @classmethod
    def invalid_model(cls) -> "STTError":
        return cls(STTErrorKind.INVALID_MODEL)

    @classmethod
    def prompt_too_long(cls) -> "STTError":
        return cls(STTErrorKind.PROMPT_TOO_LONG)

    @property
    def is_recoverable(self) -> bool:
        return self.kind in _RECOVERABLE_KINDS

    @property
    def user_message(self) -> str:
        if self.kind is STTErrorKind.INVALID_MODEL:
            return "Invalid model or provider configuration"
        if self.kind is STTErrorKind.PROMPT_TOO_LONG:
            return "System prompt too long"
        if self.kind is STTErrorKind.NETWORK:
            return f"Network error: {self.message}"
        if self.kind is STTErrorKind.AUDIO_PROCESSING:
            return f"Audio processing error: {self.message}"
        return f"Transcription error: {self.message}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, STTError):
            return NotImplemented
        return self.kind is other.kind and self.message == other.message

    def __hash__(self) -> int:
        return hash((self.kind, self.message))

    def __repr__(self) -> str:
        return f"STTError({self.kind.value}, {self.message!r})"


__all__ = [
    "TranscriptionError",
    "StreamingError",
    "TranscriptionConnectionError",
    "SessionError",
    "AudioStreamError",
    "InvalidConfigurationError",
    "PartialResultsError",
    "ProviderAPIError",
    "STTErrorKind",
    "STTError",
]
