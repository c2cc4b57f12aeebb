"""
Append-only conversation log.

Entries are Utterance, ErrorMarker or SuggestionChoice. The log assigns each
entry its index on append; entries compare by kind and payload only, so
`log.all() == (Utterance("hi"), SuggestionChoice("hello"))` holds regardless
of indices.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterator, List, Union


@dataclass(frozen=True)
class Utterance:
    text: str
    index: int = field(default=-1, compare=False)
    kind = "utterance"

    @property
    def display_text(self) -> str:
        return self.text


@dataclass(frozen=True)
class ErrorMarker:
    code: int
    index: int = field(default=-1, compare=False)
    kind = "error"

    @property
    def display_text(self) -> str:
        return f"* ERROR: {self.code}"


@dataclass(frozen=True)
class SuggestionChoice:
    text: str
    index: int = field(default=-1, compare=False)
    kind = "suggestion_choice"

    @property
    def display_text(self) -> str:
        return self.text


TranscriptEntry = Union[Utterance, ErrorMarker, SuggestionChoice]


def entry_to_dict(entry: TranscriptEntry) -> Dict[str, Any]:
    """Plain-dict view of an entry for JSON responses."""
    data: Dict[str, Any] = {
        "index": entry.index,
        "kind": entry.kind,
        "display_text": entry.display_text,
    }
    if isinstance(entry, ErrorMarker):
        data["code"] = entry.code
    else:
        data["text"] = entry.text
    return data


class ConversationLog:
    """Ordered transcript of one chat session. No edits, no removal."""

    def __init__(self):
        self._entries: List[TranscriptEntry] = []

    def append(self, entry: TranscriptEntry) -> TranscriptEntry:
        """Store `entry` under the next index and return the indexed copy."""
        indexed = replace(entry, index=len(self._entries))
        self._entries.append(indexed)
        return indexed

    def all(self) -> tuple[TranscriptEntry, ...]:
        """Point-in-time snapshot; later appends do not show up in it."""
        return tuple(self._entries)

    def get(self, index: int) -> TranscriptEntry:
        if index < 0:
            raise IndexError(index)
        return self._entries[index]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TranscriptEntry]:
        return iter(self.all())
