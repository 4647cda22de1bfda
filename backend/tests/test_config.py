"""Tests for YAML config loading."""
import pytest
from pydantic import ValidationError

from app.config import AppConfig, ChatSettings, get_config, load_config, set_config


def test_defaults_without_files(tmp_path):
    config = load_config(tmp_path / "workflow.settings.yaml")

    assert config.server.port == 4000
    assert config.chat.public_room == "general"
    assert config.chat.history_limit == 50
    assert config.secrets.jwt.secret_key == "secret_dev"
    assert config.database.path == str(tmp_path.resolve() / "workflow.duckdb")


def test_settings_and_secrets_merged(tmp_path):
    settings = tmp_path / "workflow.settings.yaml"
    settings.write_text(
        "server:\n"
        "  port: 5050\n"
        "database:\n"
        "  path: data/chat.duckdb\n"
        "chat:\n"
        "  preview_chars: 12\n"
        "logging:\n"
        "  level: debug\n",
        encoding="utf-8",
    )
    (tmp_path / "workflow.secrets.yaml").write_text(
        "jwt:\n  secret_key: from-secrets-file\n",
        encoding="utf-8",
    )

    config = load_config(settings)

    assert config.server.port == 5050
    assert config.chat.preview_chars == 12
    assert config.logging.level == "debug"
    assert config.secrets.jwt.secret_key == "from-secrets-file"
    assert config.database.path == str(tmp_path.resolve() / "data" / "chat.duckdb")


def test_in_memory_path_kept(tmp_path):
    settings = tmp_path / "workflow.settings.yaml"
    settings.write_text("database:\n  path: ':memory:'\n", encoding="utf-8")

    assert load_config(settings).database.path == ":memory:"


def test_explicit_secrets_path(tmp_path):
    secrets = tmp_path / "elsewhere.yaml"
    secrets.write_text("jwt:\n  secret_key: explicit\n", encoding="utf-8")

    config = load_config(tmp_path / "workflow.settings.yaml", secrets_path=secrets)

    assert config.secrets.jwt.secret_key == "explicit"


def test_history_limit_cannot_exceed_ceiling():
    with pytest.raises(ValidationError):
        ChatSettings(history_limit=51)


def test_token_lifetime_must_be_positive():
    with pytest.raises(ValidationError):
        AppConfig(auth={"token_expire_minutes": 0})


def test_set_config_replaces_cached_config(config):
    set_config(config)
    try:
        assert get_config() is config
    finally:
        set_config(None)
