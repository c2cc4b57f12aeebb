"""
Static conversational-context table.

Maps a heard phrase to the context it belongs to, and a context to the replies
worth suggesting. The table is built once and never changes afterwards.

Implementation note:
- The seed table lives in contexts/default.yaml and is read with PyYAML's
  safe_load, which also accepts pure JSON files.
- If the packaged file is missing, the same seed is built from SEED_CONTEXTS.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

import yaml

from logging_setup import get_logger, Component

logger = get_logger(Component.SUGGESTIONS)


SEED_CONTEXTS = (
    {
        "id": "greetings",
        "phrases": ["hello", "hi"],
        "replies": ["hello", "hi"],
    },
    {
        "id": "introductions",
        "phrases": ["how are you", "how's it going", "what's up"],
        "replies": ["good, you", "bad", "okay", "doing good, you", "i'm okay", "i'm doing well, how about you"],
    },
    {
        "id": "food service",
        "phrases": ["what would you like to order"],
        "replies": ["can i please get"],
    },
)


@dataclass(frozen=True)
class ContextEntry:
    """One context: its trigger phrases and the replies to suggest."""

    context_id: str
    trigger_phrases: tuple[str, ...]
    suggested_replies: tuple[str, ...]

    def __post_init__(self):
        if not self.context_id:
            raise ValueError("context_id is required")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContextEntry":
        """Build an entry from a mapping with id / phrases / replies keys."""
        if not isinstance(data, dict):
            raise ValueError(f"Context entry must be a mapping, got {type(data).__name__}")
        return cls(
            context_id=str(data.get("id", "")),
            trigger_phrases=_string_list(data, "phrases"),
            suggested_replies=_string_list(data, "replies"),
        )


def _string_list(data: Dict[str, Any], key: str) -> tuple[str, ...]:
    # Unquoted YAML scalars like `no` load as booleans; those are rejected too.
    value = data.get(key)
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"Context {data.get('id')!r}: '{key}' must be a list of strings, got {value!r}")
    return tuple(value)


def _default_table_path() -> Path:
    return Path(__file__).parent / "contexts" / "default.yaml"


def _load_entries(path: Path) -> list[ContextEntry]:
    with open(path, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Context file {path} is not valid YAML/JSON: {e}") from e
    if not isinstance(data, dict) or not isinstance(data.get("contexts"), list):
        raise ValueError(f"Context file {path} must contain a top-level 'contexts' list")
    return [ContextEntry.from_dict(item) for item in data["contexts"]]


class ContextTable:
    """
    Ordered, immutable collection of ContextEntry.

    Lookups scan entries in declaration order, so when a phrase appears in two
    contexts the one declared first wins.
    """

    def __init__(self, entries: Iterable[ContextEntry]):
        self._entries: tuple[ContextEntry, ...] = tuple(entries)
        self._by_id: Dict[str, ContextEntry] = {}
        for entry in self._entries:
            if entry.context_id in self._by_id:
                raise ValueError(f"Duplicate context id: {entry.context_id}")
            self._by_id[entry.context_id] = entry

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ContextTable":
        """Build a table from a YAML or JSON context file."""
        path = Path(path)
        table = cls(_load_entries(path))
        logger.debug("Context table loaded", path=str(path), contexts=len(table))
        return table

    @classmethod
    def default(cls) -> "ContextTable":
        """
        Build the built-in seed table.

        Resolution order:
        1) contexts/default.yaml next to this module
        2) SEED_CONTEXTS
        """
        path = _default_table_path()
        if path.exists():
            return cls.from_file(path)
        logger.warning("Packaged context table missing, using built-in seed", path=str(path))
        return cls(ContextEntry.from_dict(item) for item in SEED_CONTEXTS)

    @property
    def entries(self) -> tuple[ContextEntry, ...]:
        return self._entries

    def lookup(self, phrase: str) -> Optional[str]:
        """Return the id of the first context listing `phrase` verbatim, or None."""
        for entry in self._entries:
            if phrase in entry.trigger_phrases:
                return entry.context_id
        return None

    def replies_for(self, context_id: str) -> tuple[str, ...]:
        """Suggested replies for a known context id; empty for an unknown one."""
        entry = self._by_id.get(context_id)
        if entry is None:
            return ()
        return entry.suggested_replies

    def __len__(self) -> int:
        return len(self._entries)
