"""Matilda Scribe - realtime dictation transcription."""

from importlib import import_module, metadata
from pathlib import Path
from typing import TYPE_CHECKING

import tomllib


def _get_version() -> str:
    try:
        return metadata.version("goobits-matilda-scribe")
    except metadata.PackageNotFoundError:
        pass

    try:
        pyproject_path = Path(__file__).resolve().parents[2] / "pyproject.toml"
        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)
        return str(data["project"]["version"])
    except (OSError, KeyError, tomllib.TOMLDecodeError):
        return "unknown"


__version__ = _get_version()

if TYPE_CHECKING:
    from .app import TranscriptionCoordinator
    from .core.config import ConfigLoader, get_config
    from .transcription.errors import STTError, STTErrorKind
    from .transcription.rest_service import RestTranscriptionService
    from .transcription.retry import RetryContext
    from .transcription.streaming.service import StreamingTranscriptionService
    from .transcription.types import PartialChunk, ProviderConfig, STTProviderType

_LAZY_EXPORTS = {
    "TranscriptionCoordinator": (".app", "TranscriptionCoordinator"),
    "ConfigLoader": (".core.config", "ConfigLoader"),
    "get_config": (".core.config", "get_config"),
    "STTError": (".transcription.errors", "STTError"),
    "STTErrorKind": (".transcription.errors", "STTErrorKind"),
    "RetryContext": (".transcription.retry", "RetryContext"),
    "RestTranscriptionService": (".transcription.rest_service", "RestTranscriptionService"),
    "StreamingTranscriptionService": (".transcription.streaming.service", "StreamingTranscriptionService"),
    "PartialChunk": (".transcription.types", "PartialChunk"),
    "ProviderConfig": (".transcription.types", "ProviderConfig"),
    "STTProviderType": (".transcription.types", "STTProviderType"),
}

__all__ = ["__version__", *_LAZY_EXPORTS]


def __getattr__(name):
    if name not in _LAZY_EXPORTS:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module_name, attr_name = _LAZY_EXPORTS[name]
    module = import_module(module_name, __name__)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value
