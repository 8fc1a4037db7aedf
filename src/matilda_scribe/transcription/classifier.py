"""Map low-level failures onto the STTError taxonomy."""

import asyncio
import logging

import aiohttp
from websockets.exceptions import WebSocketException

from .errors import (
    AudioStreamError,
    InvalidConfigurationError,
    PartialResultsError,
    ProviderAPIError,
    SessionError,
    STTError,
    TranscriptionConnectionError,
)

logger = logging.getLogger(__name__)

_NETWORK_STATUSES = frozenset({408, 429, 500, 502, 503, 504})


def is_prompt_too_long(message: str) -> bool:
    """Provider rejected the prompt field for its length."""
    lowered = message.lower()
    return "string too long" in lowered and "prompt" in lowered


def _classify_provider_message(message: str) -> STTError:
    if is_prompt_too_long(message):
        return STTError.prompt_too_long()
    return STTError.transcription_error(message)


def classify_error(error: BaseException) -> STTError:
    """Convert any failure raised during transcription into an STTError."""
    if isinstance(error, STTError):
        return error

    if isinstance(error, InvalidConfigurationError):
        return STTError.invalid_model()
    if isinstance(error, TranscriptionConnectionError):
        return STTError.network_error(str(error) or "connection failed")
    if isinstance(error, SessionError):
        return _classify_provider_message(str(error))
    if isinstance(error, AudioStreamError):
        return STTError.audio_processing_error(str(error))
    if isinstance(error, PartialResultsError):
        return STTError.transcription_error(str(error))

    if isinstance(error, ProviderAPIError):
        if is_prompt_too_long(error.message):
            return STTError.prompt_too_long()
        if error.status == 404 or error.code == "model_not_found":
            return STTError.invalid_model()
        if error.status in _NETWORK_STATUSES:
            return STTError.network_error(error.message)
        return STTError.transcription_error(error.message)

    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return STTError.network_error("timeout")
    if isinstance(error, (aiohttp.ClientError, WebSocketException, OSError)):
        return STTError.network_error(str(error) or type(error).__name__)

    logger.debug(f"Unclassified error {type(error).__name__}: {error}")
    return STTError.transcription_error(str(error) or type(error).__name__)


__all__ = ["classify_error", "is_prompt_too_long"]
