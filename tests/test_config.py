"""Tests for configuration loading and validation."""

import pytest

from channel_summarizer.config import Settings, validate_config
from channel_summarizer.config.loader import _flatten, load_yaml_file


def make_settings(**overrides):
    return Settings(_env_file=None, **overrides)


class TestYamlLoader:
    def test_flatten_nested_keys(self):
        data = {"summary": {"model": "gpt-4o"}, "storage": {"postgres": {"port": 5432}}}

        assert _flatten(data) == {"SUMMARY_MODEL": "gpt-4o", "STORAGE_POSTGRES_PORT": 5432}

    def test_missing_file_is_empty(self, tmp_path):
        assert load_yaml_file(tmp_path / "absent.yaml") == {}

    def test_empty_file_is_empty(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")

        assert load_yaml_file(path) == {}

    def test_non_mapping_is_rejected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ValueError, match="must be a mapping"):
            load_yaml_file(path)

    def test_invalid_yaml_is_rejected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("summary: [unclosed\n")

        with pytest.raises(ValueError, match="Invalid YAML"):
            load_yaml_file(path)


class TestSettings:
    def test_bot_token_accepts_legacy_name(self, monkeypatch):
        monkeypatch.delenv("TELEGRAM_BOT_TOKEN", raising=False)
        monkeypatch.setenv("BOT_TOKEN", "123:abc")

        assert make_settings().TELEGRAM_BOT_TOKEN == "123:abc"

    def test_moderation_accepts_short_name(self, monkeypatch):
        monkeypatch.delenv("MODERATION_ENABLED", raising=False)
        monkeypatch.setenv("MODERATION", "true")

        assert make_settings().MODERATION_ENABLED is True

    def test_env_overrides_defaults(self, monkeypatch):
        monkeypatch.setenv("SUMMARY_MODEL", "gpt-4o-mini")
        monkeypatch.setenv("SESSION_STORAGE", "memory")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        config = make_settings()

        assert config.SUMMARY_MODEL == "gpt-4o-mini"
        assert config.SESSION_STORAGE == "memory"
        assert config.LOG_LEVEL == "DEBUG"

    def test_empty_base_url_is_none(self, monkeypatch):
        monkeypatch.setenv("OPENAI_BASE_URL", "")

        assert make_settings().OPENAI_BASE_URL is None

    def test_postgres_url(self):
        config = make_settings(
            POSTGRES_USER="u", POSTGRES_PASSWORD="p", POSTGRES_HOST="db", POSTGRES_PORT=6543, POSTGRES_DB="x"
        )

        assert config.POSTGRES_URL == "postgresql://u:p@db:6543/x"


class TestValidateConfig:
    def test_complete_config_is_valid(self):
        config = make_settings(TELEGRAM_BOT_TOKEN="123:abc", OPENAI_API_KEY="sk-test")

        assert validate_config(config) == []

    def test_missing_secrets_are_reported(self, monkeypatch):
        for name in ("TELEGRAM_BOT_TOKEN", "BOT_TOKEN", "OPENAI_API_KEY"):
            monkeypatch.delenv(name, raising=False)

        errors = validate_config(make_settings())

        assert any("TELEGRAM_BOT_TOKEN" in e for e in errors)
        assert any("OPENAI_API_KEY" in e for e in errors)

    def test_out_of_range_values_are_reported(self):
        config = make_settings(
            TELEGRAM_BOT_TOKEN="123:abc",
            OPENAI_API_KEY="sk-test",
            SESSION_TTL_SECONDS=0,
            SUMMARY_TEMPERATURE=3.0,
        )

        errors = validate_config(config)

        assert len(errors) == 2
