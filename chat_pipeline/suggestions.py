"""
Reply suggestions for an utterance.

Exact phrase match against the context table: no case folding, no
punctuation stripping, no partial matches.
"""

from __future__ import annotations

from typing import Optional

from .context_table import ContextTable

SuggestionSet = tuple[str, ...]

EMPTY_SUGGESTIONS: SuggestionSet = ()


class SuggestionResolver:
    """Pure lookup of suggested replies; holds no session memory."""

    def __init__(self, table: Optional[ContextTable] = None):
        self.table = table if table is not None else ContextTable.default()

    def resolve(self, utterance: str) -> SuggestionSet:
        if not utterance or not utterance.strip():
            return EMPTY_SUGGESTIONS

        context_id = self.table.lookup(utterance)
        if context_id is None:
            return EMPTY_SUGGESTIONS

        return self.table.replies_for(context_id)
