"""
Structured JSON event emission (shared).

Used by the chat pipeline core and by the demo HTTP host. Every event is one
JSON envelope written to stdout and kept in the in-memory event store so the
host can serve it back per session.
"""

from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from .event_store import event_store


class Component(str, Enum):
    """Components that emit events."""

    CHAT_SESSION = "chat_session"
    ACTION_RUNNER = "action_runner"
    CHAT_SERVER = "chat_server"


class Severity(str, Enum):
    """Event severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


DEFAULT_PII = {"contains_pii": False, "fields": [], "handling": "none"}


def text_pii(*fields: str) -> Dict[str, Any]:
    """PII marker for events that carry spoken or chosen text."""
    return {"contains_pii": True, "fields": list(fields), "handling": "transcript"}


class EventEmitter:
    """Emits structured JSON events."""

    def __init__(self, component: Component):
        self.component = component

    def emit(
        self,
        event_type: str,
        session_id: str,
        severity: Severity = Severity.INFO,
        correlation_id: Optional[str] = None,
        pii: Optional[Dict[str, Any]] = None,
        **kwargs: Any,
    ) -> None:
        """
        Emit one event.

        Args:
            event_type: Stable event type string (e.g. "utterance.received")
            session_id: Chat session identifier
            severity: Event severity level
            correlation_id: Optional id tying events of one utterance together
            pii: PII marker, see text_pii()
            **kwargs: Event-specific fields
        """
        event = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "session_id": session_id,
            "component": self.component.value,
            "event_type": event_type,
            "severity": severity.value,
            "correlation_id": correlation_id or session_id,
            "pii": pii or DEFAULT_PII,
        }

        event.update(kwargs)

        json.dump(event, sys.stdout, ensure_ascii=False, default=str)
        sys.stdout.write("\n")
        sys.stdout.flush()

        event_store.store(event)
