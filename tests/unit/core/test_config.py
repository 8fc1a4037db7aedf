"""Tests for ConfigLoader."""

import pytest

from matilda_scribe.core import config as config_module
from matilda_scribe.core.config import ConfigLoader, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("MATILDA_SCRIBE_API_KEY", "OPENAI_API_KEY", "SCRIBE_MODEL", "MATILDA_CONFIG"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def write_config(tmp_path):
    def _write(text):
        path = tmp_path / "config.toml"
        path.write_text(text)
        return path

    return _write


class TestConfigLoader:
    def test_defaults_when_file_missing(self, tmp_path):
        loader = ConfigLoader(tmp_path / "missing.toml")

        assert loader.provider_name == "OpenAI"
        assert loader.model == "gpt-4o-transcribe"
        assert loader.use_realtime
        assert loader.finalize_timeout_s == 15.0
        assert loader.retry_ttl_seconds == 300.0
        assert loader.noise_reduction == "near_field"
        assert loader.temperature is None
        assert loader.api_key == ""

    def test_file_values_merge_over_defaults(self, write_config):
        loader = ConfigLoader(
            write_config(
                "[scribe.provider]\n"
                'model = "whisper-1"\n'
                'keywords = ["Matilda", " "]\n'
                "temperature = 0.2\n"
                "[scribe.openai]\n"
                'api_key = "sk-file"\n'
            )
        )

        assert loader.model == "whisper-1"
        assert loader.keywords == ("Matilda",)
        assert loader.temperature == 0.2
        assert loader.api_key == "sk-file"
        # Untouched sections keep their defaults
        assert loader.get("openai.connect_timeout_s") == 10.0
        assert loader.language == "en"

    def test_dot_path_lookup(self, write_config):
        loader = ConfigLoader(write_config("[scribe.streaming]\nfinalize_timeout_s = 0\n"))

        assert loader.get("streaming.finalize_timeout_s") == 0
        assert loader.get("streaming.missing", "fallback") == "fallback"
        assert loader.get("provider.model.deeper") is None
        assert loader.finalize_timeout_s is None

    def test_environment_overrides(self, write_config, monkeypatch):
        loader = ConfigLoader(write_config('[scribe.openai]\napi_key = "sk-file"\n'))
        monkeypatch.setenv("OPENAI_API_KEY", "sk-openai")
        assert loader.api_key == "sk-openai"

        monkeypatch.setenv("MATILDA_SCRIBE_API_KEY", "sk-scribe")
        monkeypatch.setenv("SCRIBE_MODEL", "gpt-4o-mini-transcribe")
        assert loader.api_key == "sk-scribe"
        assert loader.model == "gpt-4o-mini-transcribe"

    def test_config_path_from_environment(self, write_config, monkeypatch):
        path = write_config('[scribe.provider]\nlanguage = "de"\n')
        monkeypatch.setenv("MATILDA_CONFIG", str(path))

        assert ConfigLoader().language == "de"

    def test_provider_config_overrides(self, write_config):
        loader = ConfigLoader(write_config('[scribe.provider]\nsystem_prompt = "Notes"\nkeywords = ["PCM"]\n'))

        config = loader.provider_config(model="whisper-1", language=None)

        assert config.model == "whisper-1"
        assert config.language == "en"
        assert config.prompt == "Notes\nKeywords: PCM"

    def test_load_config_replaces_global(self, write_config, monkeypatch):
        monkeypatch.setattr(config_module, "_config_loader", None)
        loader = load_config(write_config('[scribe.provider]\nmodel = "whisper-1"\n'))

        assert config_module.get_config() is loader
        assert config_module.get_config().model == "whisper-1"
