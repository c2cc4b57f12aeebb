"""
Chat pipeline configuration.

Loads settings from environment variables. `.env_local` / `.env.local` in the
repository root are read first for local development; they never override
variables that are already set.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .rewriters import DEFAULT_TABLE_NAMES

DEFAULT_LAUNCHABLE_ACTIONS = ("view", "web_search", "set_alarm", "dial")


def load_local_env() -> None:
    root = Path(__file__).parent.parent
    for name in (".env_local", ".env.local"):
        p = root / name
        if p.exists():
            load_dotenv(p, override=False)


def _parse_int_env(key: str, default: int) -> int:
    """
    Parse integer environment variable, stripping comments and whitespace.

    "8000  # comment" -> 8000, unset or unparsable -> default
    """
    value = os.environ.get(key)
    if not value:
        return default

    if "#" in value:
        value = value.split("#")[0]
    value = value.strip()

    if not value:
        return default

    try:
        return int(value)
    except ValueError:
        return default


def _parse_bool_env(key: str, default: bool) -> bool:
    value = os.environ.get(key)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_list_env(key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = os.environ.get(key)
    if not value:
        return default
    items = tuple(item.strip() for item in value.split(",") if item.strip())
    return items or default


@dataclass
class ChatConfig:
    """Chat pipeline and demo host configuration."""

    # Tables
    contexts_file: Optional[str] = None  # None: packaged seed table
    rewrites_dir: Optional[str] = None  # None: packaged rewrite tables
    rewriter_tables: tuple[str, ...] = DEFAULT_TABLE_NAMES

    # Speech
    default_language: str = "en-US"

    # Actions the demo host registers handlers for
    launchable_actions: tuple[str, ...] = field(default=DEFAULT_LAUNCHABLE_ACTIONS)

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Demo host
    server_host: str = "0.0.0.0"
    server_port: int = 8000

    @classmethod
    def from_env(cls) -> "ChatConfig":
        """Load configuration from environment variables."""
        load_local_env()
        return cls(
            contexts_file=os.environ.get("CHAT_CONTEXTS_FILE") or None,
            rewrites_dir=os.environ.get("CHAT_REWRITES_DIR") or None,
            rewriter_tables=_parse_list_env("CHAT_REWRITER_TABLES", DEFAULT_TABLE_NAMES),
            default_language=os.environ.get("CHAT_DEFAULT_LANGUAGE", "en-US"),
            launchable_actions=_parse_list_env("CHAT_LAUNCHABLE_ACTIONS", DEFAULT_LAUNCHABLE_ACTIONS),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
            log_json=_parse_bool_env("LOG_JSON", True),
            server_host=os.environ.get("CHAT_SERVER_HOST", "0.0.0.0"),
            server_port=_parse_int_env("CHAT_SERVER_PORT", default=8000),
        )


def get_config() -> ChatConfig:
    """Get or create global config instance."""
    global _config
    if _config is None:
        _config = ChatConfig.from_env()
    return _config


# Global config instance (lazy loaded)
_config: Optional[ChatConfig] = None
