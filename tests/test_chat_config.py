"""
Tests for chat pipeline configuration.

Verifies:
- Configuration loading from environment
- Default values
- Tolerant parsing of integers, booleans and lists
"""
import pytest

from chat_pipeline import config as config_module
from chat_pipeline.config import ChatConfig, get_config

_ENV_KEYS = (
    "CHAT_CONTEXTS_FILE",
    "CHAT_REWRITES_DIR",
    "CHAT_REWRITER_TABLES",
    "CHAT_DEFAULT_LANGUAGE",
    "CHAT_LAUNCHABLE_ACTIONS",
    "LOG_LEVEL",
    "LOG_JSON",
    "CHAT_SERVER_HOST",
    "CHAT_SERVER_PORT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(config_module, "load_local_env", lambda: None)


def test_config_from_env_defaults():
    config = ChatConfig.from_env()

    assert config.contexts_file is None
    assert config.rewrites_dir is None
    assert config.rewriter_tables == ("Base", "Commands")
    assert config.default_language == "en-US"
    assert "web_search" in config.launchable_actions
    assert config.log_level == "INFO"
    assert config.log_json is True
    assert config.server_port == 8000


def test_config_from_env_all_fields(monkeypatch):
    monkeypatch.setenv("CHAT_CONTEXTS_FILE", "/tmp/contexts.yaml")
    monkeypatch.setenv("CHAT_REWRITES_DIR", "/tmp/rewrites")
    monkeypatch.setenv("CHAT_REWRITER_TABLES", "Base, Commands ,Extra")
    monkeypatch.setenv("CHAT_DEFAULT_LANGUAGE", "et-EE")
    monkeypatch.setenv("CHAT_LAUNCHABLE_ACTIONS", "view,dial")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("LOG_JSON", "no")
    monkeypatch.setenv("CHAT_SERVER_HOST", "127.0.0.1")
    monkeypatch.setenv("CHAT_SERVER_PORT", "9000  # local")

    config = ChatConfig.from_env()

    assert config.contexts_file == "/tmp/contexts.yaml"
    assert config.rewrites_dir == "/tmp/rewrites"
    assert config.rewriter_tables == ("Base", "Commands", "Extra")
    assert config.default_language == "et-EE"
    assert config.launchable_actions == ("view", "dial")
    assert config.log_level == "DEBUG"
    assert config.log_json is False
    assert config.server_host == "127.0.0.1"
    assert config.server_port == 9000


def test_invalid_port_falls_back_to_default(monkeypatch):
    monkeypatch.setenv("CHAT_SERVER_PORT", "eighty")
    assert ChatConfig.from_env().server_port == 8000


def test_empty_list_falls_back_to_default(monkeypatch):
    monkeypatch.setenv("CHAT_REWRITER_TABLES", " , ")
    assert ChatConfig.from_env().rewriter_tables == ("Base", "Commands")


def test_get_config_is_cached(monkeypatch):
    monkeypatch.setattr(config_module, "_config", None)

    first = get_config()
    second = get_config()

    assert first is second
