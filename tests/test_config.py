"""
Tests for ClientConfig.
"""

import dataclasses

import pytest
from chatcontext.config import ClientConfig


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("OPENAI_API_KEY", "OPENAI_MODEL", "OPENAI_CONTEXT_WINDOW", "OPENAI_TEMPERATURE",
                 "OPENAI_OMIT_HISTORY", "APIFY_API_KEY", "OPENAI_APIFY_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestClientConfig:

    def test_defaults(self):
        config = ClientConfig()
        assert config.model == "gpt-4o"
        assert config.endpoint(config.completions_path) == "https://api.openai.com/v1/chat/completions"

    def test_immutable(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            ClientConfig().model = "other"

    def test_with_context_window(self):
        config = ClientConfig()
        updated = config.with_context_window(50)
        assert updated.context_window == 50
        assert config.context_window == 8192

    def test_with_service_url(self):
        config = ClientConfig().with_service_url("http://localhost:1234")
        assert config.endpoint("/v1/models") == "http://localhost:1234/v1/models"


class TestFromEnv:

    def test_reads_prefixed_variables(self, clean_env):
        clean_env.setenv("OPENAI_API_KEY", "sk-env")
        clean_env.setenv("OPENAI_MODEL", "gpt-5")
        clean_env.setenv("OPENAI_CONTEXT_WINDOW", "1000")
        clean_env.setenv("OPENAI_TEMPERATURE", "0.2")
        clean_env.setenv("OPENAI_OMIT_HISTORY", "true")

        config = ClientConfig.from_env()

        assert config.api_key == "sk-env"
        assert config.model == "gpt-5"
        assert config.context_window == 1000
        assert config.temperature == 0.2
        assert config.omit_history is True

    def test_defaults_when_unset(self, clean_env):
        assert ClientConfig.from_env() == ClientConfig()

    def test_custom_service_name(self, clean_env):
        clean_env.setenv("AZURE_API_KEY", "az")
        config = ClientConfig.from_env("azure")
        assert config.name == "azure"
        assert config.api_key == "az"

    def test_apify_key(self, clean_env):
        clean_env.setenv("APIFY_API_KEY", "apify")
        assert ClientConfig.from_env().apify_api_key == "apify"

    def test_dotenv_file(self, clean_env, tmp_path):
        env_file = tmp_path / "custom.env"
        env_file.write_text("OPENAI_MODEL=o1-mini\n")
        # let monkeypatch remove the variable load_dotenv is about to set
        clean_env.setenv("OPENAI_MODEL", "")
        clean_env.delenv("OPENAI_MODEL")

        config = ClientConfig.from_env(dotenv_path=str(env_file))
        assert config.model == "o1-mini"
