"""
Speech-to-text providers.

Supported providers:
- OpenAI: REST uploads (whisper-1, gpt-4o-*-transcribe) and realtime sessions
"""
import logging

from ..types import STTProviderType
from .base import RestSTTProvider, StreamingSTTProvider, validate_provider_config
from .openai_realtime import OpenAIStreamingProvider
from .openai_rest import OpenAIRestProvider

logger = logging.getLogger(__name__)

_REST_PROVIDERS: dict[STTProviderType, type[RestSTTProvider]] = {
    STTProviderType.OPENAI: OpenAIRestProvider,
}

_STREAMING_PROVIDERS: dict[STTProviderType, type[StreamingSTTProvider]] = {
    STTProviderType.OPENAI: OpenAIStreamingProvider,
}


def get_rest_provider_class(provider_type: STTProviderType) -> type[RestSTTProvider]:
    """
    Get the REST provider class for a provider variant.

    Raises:
        ValueError: If the variant has no REST implementation.
    """
    try:
        return _REST_PROVIDERS[provider_type]
    except KeyError:
        raise ValueError(f"No REST provider for {provider_type.value}") from None


def get_streaming_provider_class(provider_type: STTProviderType) -> type[StreamingSTTProvider]:
    """
    Get the realtime provider class for a provider variant.

    Raises:
        ValueError: If the variant has no realtime implementation.
    """
    try:
        return _STREAMING_PROVIDERS[provider_type]
    except KeyError:
        raise ValueError(f"No realtime provider for {provider_type.value}") from None


def create_rest_provider(provider_type: STTProviderType, config=None) -> RestSTTProvider:
    """Instantiate a REST provider using settings from a ConfigLoader."""
    if config is None:
        from ...core.config import get_config

        config = get_config()
    provider_class = get_rest_provider_class(provider_type)
    logger.debug(f"Creating REST provider {provider_class.__name__}")
    if provider_type is STTProviderType.OPENAI:
        return provider_class(
            api_base=config.openai_api_base,
            sample_rate=config.audio_sample_rate,
            request_timeout_s=config.request_timeout_s,
        )
    return provider_class()


def create_streaming_provider(provider_type: STTProviderType, config=None) -> StreamingSTTProvider:
    """Instantiate a realtime provider using settings from a ConfigLoader."""
    if config is None:
        from ...core.config import get_config

        config = get_config()
    provider_class = get_streaming_provider_class(provider_type)
    logger.debug(f"Creating realtime provider {provider_class.__name__}")
    if provider_type is STTProviderType.OPENAI:
        return provider_class(
            url=config.openai_realtime_url,
            connect_timeout_s=config.connect_timeout_s,
            noise_reduction=config.noise_reduction,
        )
    return provider_class()


__all__ = [
    "RestSTTProvider",
    "StreamingSTTProvider",
    "OpenAIRestProvider",
    "OpenAIStreamingProvider",
    "validate_provider_config",
    "get_rest_provider_class",
    "get_streaming_provider_class",
    "create_rest_provider",
    "create_streaming_provider",
]
