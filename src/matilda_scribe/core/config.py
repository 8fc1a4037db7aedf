#!/usr/bin/env python3
"""Configuration loader that reads from config files."""
import os
from pathlib import Path
from typing import Any

import tomllib

DEFAULT_CONFIG: dict[str, Any] = {
    "provider": {
        "type": "OpenAI",
        "model": "gpt-4o-transcribe",
        "language": "en",
        "system_prompt": "",
        "keywords": [],
        "use_realtime": True,
    },
    "openai": {
        "api_base": "https://api.openai.com/v1",
        "realtime_url": "wss://api.openai.com/v1/realtime?intent=transcription",
        "connect_timeout_s": 10.0,
        "request_timeout_s": 60.0,
        "noise_reduction": "near_field",
    },
    "streaming": {"finalize_timeout_s": 15.0},
    "audio": {"sample_rate": 24000, "channels": 1, "chunk_ms": 100},
    "retry": {"ttl_seconds": 300.0},
    "text_insertion": {"add_trailing_space": False},
}


class ConfigLoader:
    """Load configuration from config files."""

    def __init__(self, config_path: str | Path | None = None) -> None:
        if config_path is None:
            config_path = self._default_config_path()

        self.config_file = str(config_path)
        config_path = Path(config_path)
        if config_path.exists():
            with open(config_path, "rb") as f:
                full_config = tomllib.load(f)
            scribe_config = full_config.get("scribe", {})
        else:
            scribe_config = {}

        self._config = self._merge_dicts(DEFAULT_CONFIG, scribe_config)

    def _default_config_path(self) -> Path:
        env_path = os.environ.get("MATILDA_CONFIG")
        if env_path:
            return Path(env_path)
        return Path.home() / ".matilda" / "config.toml"

    def _merge_dicts(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        merged = base.copy()
        for key, value in override.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = self._merge_dicts(merged[key], value)
            else:
                merged[key] = value
        return merged

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get a value using dot notation (e.g., 'openai.realtime_url')"""
        keys = key_path.split(".")
        value = self._config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    @property
    def provider_name(self) -> str:
        return str(self.get("provider.type", "OpenAI"))

    @property
    def model(self) -> str:
        env_model = os.environ.get("SCRIBE_MODEL")
        if env_model:
            return env_model
        return str(self.get("provider.model", "gpt-4o-transcribe"))

    @property
    def language(self) -> str | None:
        value = self.get("provider.language")
        return str(value) if value else None

    @property
    def system_prompt(self) -> str | None:
        value = self.get("provider.system_prompt")
        return str(value) if value else None

    @property
    def temperature(self) -> float | None:
        # TOML has no null, so an absent key means "provider default"
        value = self.get("provider.temperature")
        return float(value) if value is not None else None

    @property
    def keywords(self) -> tuple[str, ...]:
        return tuple(str(k) for k in self.get("provider.keywords", []) if str(k).strip())

    @property
    def use_realtime(self) -> bool:
        return bool(self.get("provider.use_realtime", True))

    @property
    def api_key(self) -> str:
        """API key lookup order: MATILDA_SCRIBE_API_KEY, OPENAI_API_KEY, config file."""
        for env_name in ("MATILDA_SCRIBE_API_KEY", "OPENAI_API_KEY"):
            env_key = os.environ.get(env_name)
            if env_key:
                return env_key
        return str(self.get("openai.api_key", ""))

    @property
    def openai_api_base(self) -> str:
        return str(self.get("openai.api_base", "https://api.openai.com/v1")).rstrip("/")

    @property
    def openai_realtime_url(self) -> str:
        return str(self.get("openai.realtime_url", "wss://api.openai.com/v1/realtime?intent=transcription"))

    @property
    def connect_timeout_s(self) -> float:
        return float(self.get("openai.connect_timeout_s", 10.0))

    @property
    def request_timeout_s(self) -> float:
        return float(self.get("openai.request_timeout_s", 60.0))

    @property
    def noise_reduction(self) -> str | None:
        value = self.get("openai.noise_reduction")
        return str(value) if value else None

    @property
    def finalize_timeout_s(self) -> float | None:
        value = self.get("streaming.finalize_timeout_s")
        if value is None or float(value) <= 0:
            return None
        return float(value)

    @property
    def audio_sample_rate(self) -> int:
        return int(self.get("audio.sample_rate", 24000))

    @property
    def audio_channels(self) -> int:
        return int(self.get("audio.channels", 1))

    @property
    def audio_chunk_ms(self) -> int:
        return int(self.get("audio.chunk_ms", 100))

    @property
    def retry_ttl_seconds(self) -> float:
        return float(self.get("retry.ttl_seconds", 300.0))

    def get_add_trailing_space(self) -> bool:
        """Get whether to add trailing space after text insertion"""
        return bool(self.get("text_insertion.add_trailing_space", False))

    def provider_config(self, **overrides: Any):
        """Build the immutable ProviderConfig for one transcription attempt."""
        from matilda_scribe.transcription.types import ProviderConfig

        values: dict[str, Any] = {
            "api_key": self.api_key,
            "model": self.model,
            "system_prompt": self.system_prompt,
            "language": self.language,
            "temperature": self.temperature,
            "keywords": self.keywords or None,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return ProviderConfig(**values)


# Global config instance
_config_loader: ConfigLoader | None = None


def get_config() -> ConfigLoader:
    """Get the global config loader instance"""
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader()
    return _config_loader


def load_config(config_path: str | Path | None = None) -> ConfigLoader:
    """Replace the global config loader, e.g. from a --config CLI option."""
    global _config_loader
    _config_loader = ConfigLoader(config_path)
    return _config_loader


# Re-export logging functions
from .logging import setup_logging, shutdown_logging  # noqa: E402, F401
