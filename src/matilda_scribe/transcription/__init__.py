"""Transcription package exports.

Services are exported lazily: output.notifications imports the retry and error
modules from here, and the services import output in turn.
"""

from importlib import import_module
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .classifier import classify_error
    from .errors import STTError, STTErrorKind
    from .rest_service import RestTranscriptionService
    from .retry import RetryContext
    from .state import TranscriptionState
    from .streaming.service import StreamingTranscriptionService
    from .types import PartialChunk, ProviderConfig, STTProviderType

__all__ = [
    "classify_error",
    "STTError",
    "STTErrorKind",
    "RetryContext",
    "TranscriptionState",
    "PartialChunk",
    "ProviderConfig",
    "STTProviderType",
    "RestTranscriptionService",
    "StreamingTranscriptionService",
]

_LAZY_EXPORTS = {
    "classify_error": (".classifier", "classify_error"),
    "STTError": (".errors", "STTError"),
    "STTErrorKind": (".errors", "STTErrorKind"),
    "RetryContext": (".retry", "RetryContext"),
    "TranscriptionState": (".state", "TranscriptionState"),
    "PartialChunk": (".types", "PartialChunk"),
    "ProviderConfig": (".types", "ProviderConfig"),
    "STTProviderType": (".types", "STTProviderType"),
    "RestTranscriptionService": (".rest_service", "RestTranscriptionService"),
    "StreamingTranscriptionService": (".streaming.service", "StreamingTranscriptionService"),
}


def __getattr__(name):
    if name not in _LAZY_EXPORTS:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module_name, attr_name = _LAZY_EXPORTS[name]
    module = import_module(module_name, __name__)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value
