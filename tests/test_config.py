"""Tests for ticket_agent.config module."""

from pathlib import Path

import pytest

from ticket_agent.config import Settings, ensure_api_key, load_prompt, load_settings
from ticket_agent.errors import ConfigError
from ticket_agent.pipeline_tickets import build_adapter


class TestLoadSettings:
    def test_defaults(self):
        settings = load_settings(environ={})
        assert settings.mode == "mock"
        assert settings.provider == "openai"
        assert settings.features_per_batch == 3
        assert settings.pricing_file.name == "pricing.yaml"
        assert settings.model is None

    def test_file_then_env_then_override(self, tmp_path):
        config = tmp_path / "settings.yaml"
        config.write_text("mode: live\nprovider: gemini\nmax_file_mb: 2\nmodel: gpt-4\n")
        environ = {"TICKETS_PROVIDER": "openai", "TICKETS_FEATURES_PER_BATCH": "5"}

        settings = load_settings(config, environ=environ, model="gpt-4o-mini")

        assert settings.mode == "live"
        assert settings.provider == "openai"
        assert settings.max_file_mb == 2.0
        assert settings.features_per_batch == 5
        assert settings.model == "gpt-4o-mini"

    def test_config_path_from_environment(self, tmp_path):
        config = tmp_path / "settings.yaml"
        config.write_text("data_dir: somewhere/else\n")
        settings = load_settings(environ={"TICKETS_CONFIG": str(config)})
        assert settings.data_dir == Path("somewhere/else")

    def test_boolean_from_env(self):
        settings = load_settings(environ={"TICKETS_VALIDATE_ON_CLARIFY": "no"})
        assert settings.validate_on_clarify is False

    def test_none_override_ignored(self):
        assert load_settings(environ={"TICKETS_MODE": "live"}, mode=None).mode == "live"

    def test_invalid_mode(self):
        with pytest.raises(ConfigError, match="mode"):
            load_settings(environ={"TICKETS_MODE": "staging"})

    def test_invalid_number(self):
        with pytest.raises(ConfigError, match="max_file_mb"):
            load_settings(environ={"TICKETS_MAX_FILE_MB": "lots"})

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_settings(tmp_path / "absent.yaml", environ={})

    def test_file_must_be_mapping(self, tmp_path):
        config = tmp_path / "settings.yaml"
        config.write_text("- just\n- a list\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_settings(config, environ={})


class TestEnsureApiKey:
    def test_mock_mode_needs_no_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        ensure_api_key(Settings(mode="mock"))

    def test_live_mode_requires_provider_key(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        with pytest.raises(ConfigError, match="GEMINI_API_KEY"):
            ensure_api_key(Settings(mode="live", provider="gemini"))

    def test_live_mode_with_key(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        ensure_api_key(Settings(mode="live"))


def test_prompts_are_packaged():
    for name in ("extract_requirements", "generate_tickets", "validate_tickets", "edit_tickets"):
        assert load_prompt(name).startswith("TASK:")


class TestProviderModel:
    """An unset model falls back to the chosen provider's default."""

    def test_gemini_default_model(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")
        monkeypatch.delenv("GEMINI_MODEL", raising=False)
        settings = load_settings(environ={"TICKETS_MODE": "live", "TICKETS_PROVIDER": "gemini"})
        adapter = build_adapter(settings)
        assert adapter.model == "gemini-flash-latest"
        assert adapter.model_candidates[0] == "gemini-flash-latest"
        assert "gpt-4o-mini" not in adapter.model_candidates

    def test_openai_default_model(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.delenv("OPENAI_MODEL", raising=False)
        adapter = build_adapter(load_settings(environ={"TICKETS_MODE": "live"}))
        assert adapter.model == "gpt-4o-mini"

    def test_explicit_model_wins(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")
        settings = load_settings(
            environ={"TICKETS_MODE": "live", "TICKETS_PROVIDER": "gemini", "TICKETS_MODEL": "gemini-1.5-pro"}
        )
        assert settings.model == "gemini-1.5-pro"
        assert build_adapter(settings).model_candidates == ["gemini-1.5-pro", "gemini-pro"]
