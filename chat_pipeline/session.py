"""
Chat session: the utterance-processing state machine.

States:
    IDLE             no language/service combo bound yet (initial)
    READY            rewriters bound, waiting for speech
    AWAITING_CHOICE  a non-empty suggestion set is on display

Events (one at a time, each runs to completion):
    on_combo_change(language, service)  any → READY
    on_final_result(results)            → AWAITING_CHOICE if suggestions, else READY
    on_error(code)                      any → READY
    on_suggestion_chosen(text)          → READY while suggestions are on display (non-blank text only)
    on_start_listening()                no-op hook

After every event the current RenderSnapshot is pushed to the render sink.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional, Sequence

from logging_setup import get_logger, Component as LogComponent
from observability.events import Component as ObsComponent, EventEmitter, Severity, text_pii
from .actions import ActionLauncher, HandlerRegistry
from .config import ChatConfig
from .context_table import ContextTable
from .dispatcher import CommandDispatcher, DispatchOutcome
from .errors import recognition_error_name
from .rewriters import Rewriter, RewriterFactory, RewriterProvider
from .suggestions import EMPTY_SUGGESTIONS, SuggestionResolver, SuggestionSet
from .transcript import (
    ConversationLog,
    ErrorMarker,
    SuggestionChoice,
    TranscriptEntry,
    Utterance,
    entry_to_dict,
)


class SessionState(str, Enum):
    IDLE = "idle"
    READY = "ready"
    AWAITING_CHOICE = "awaiting_choice"


@dataclass(frozen=True)
class RenderSnapshot:
    """Everything a UI needs to draw the session."""

    transcript: tuple[TranscriptEntry, ...]
    suggestions: SuggestionSet
    state: SessionState

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transcript": [entry_to_dict(e) for e in self.transcript],
            "suggestions": list(self.suggestions),
            "state": self.state.value,
        }


RenderSink = Callable[[RenderSnapshot], None]


class ChatSession:
    """
    One chat session.

    Collaborators are passed in explicitly: the action launcher, the rewriter
    factory (called on every combo change) and an optional render sink.
    """

    def __init__(
        self,
        *,
        config: Optional[ChatConfig] = None,
        launcher: Optional[ActionLauncher] = None,
        rewriter_factory: Optional[RewriterFactory] = None,
        context_table: Optional[ContextTable] = None,
        render_sink: Optional[RenderSink] = None,
        session_id: Optional[str] = None,
    ):
        self.config = config or ChatConfig()
        self.session_id = session_id or str(uuid.uuid4())
        self.created_at = datetime.now(timezone.utc)

        if context_table is None:
            if self.config.contexts_file:
                context_table = ContextTable.from_file(self.config.contexts_file)
            else:
                context_table = ContextTable.default()

        self.resolver = SuggestionResolver(context_table)
        self.dispatcher = CommandDispatcher(launcher if launcher is not None else HandlerRegistry())
        self.rewriter_factory: RewriterFactory = rewriter_factory or RewriterProvider(self.config.rewrites_dir)
        self.render_sink = render_sink

        self.transcript = ConversationLog()
        self.active_rewriters: tuple[Rewriter, ...] = ()
        self.last_suggestions: SuggestionSet = EMPTY_SUGGESTIONS
        self.state = SessionState.IDLE
        self.language: Optional[str] = None
        self.service: Any = None

        self.emitter = EventEmitter(ObsComponent.CHAT_SESSION)
        self.logger = get_logger(LogComponent.CHAT_SESSION, session_id=self.session_id)

    # --- Helpers ---

    def _transition_to(self, new_state: SessionState) -> SessionState:
        old_state = self.state
        self.state = new_state
        if old_state != new_state:
            self.emitter.emit(
                "session.state_changed",
                session_id=self.session_id,
                from_state=old_state.value,
                to_state=new_state.value,
            )
        return old_state

    def _push_render(self) -> RenderSnapshot:
        snapshot = self.render()
        if self.render_sink is not None:
            self.render_sink(snapshot)
        return snapshot

    def render(self) -> RenderSnapshot:
        """Current transcript, suggestions and state; stable between events."""
        return RenderSnapshot(
            transcript=self.transcript.all(),
            suggestions=self.last_suggestions,
            state=self.state,
        )

    # --- Events ---

    def on_combo_change(self, language: str, service: Any) -> None:
        """Rebind rewriters for a new language/service combo."""
        tables: Sequence[str] = self.config.rewriter_tables
        try:
            rewriters = tuple(self.rewriter_factory(language, service, tables))
        except (ValueError, OSError) as e:
            # Broken rewrite tables disable commands, not the session.
            self.logger.error("Rewriters unavailable", language=language, error=str(e))
            self.emitter.emit(
                "rewriters.unavailable",
                session_id=self.session_id,
                severity=Severity.ERROR,
                language=language,
                error_class=type(e).__name__,
            )
            rewriters = ()

        self.active_rewriters = rewriters
        self.language = language
        self.service = service

        self.emitter.emit(
            "combo.changed",
            session_id=self.session_id,
            language=language,
            service=str(service),
            rewriter_ids=[r.id for r in rewriters],
        )
        self._transition_to(SessionState.READY)
        self._push_render()

    def on_start_listening(self) -> None:
        self.logger.debug("Listening started")
        self._push_render()

    def on_final_result(self, results: Sequence[str]) -> Optional[DispatchOutcome]:
        """
        Handle a final recognition result.

        Only the first candidate is used. Returns the dispatch outcome, or
        None when `results` is empty (nothing happens then).
        """
        if not results:
            self.logger.debug("Empty recognition result ignored")
            self._push_render()
            return None

        text = results[0]
        entry = self.transcript.append(Utterance(text))
        correlation_id = f"utt_{entry.index}"

        self.logger.info_pii("Utterance received", text=text)
        self.emitter.emit(
            "utterance.received",
            session_id=self.session_id,
            correlation_id=correlation_id,
            pii=text_pii("text"),
            text=text,
            candidates=len(results),
            transcript_index=entry.index,
        )

        outcome = self.dispatcher.try_dispatch(text, self.active_rewriters)
        self.emitter.emit(
            "dispatch.outcome",
            session_id=self.session_id,
            correlation_id=correlation_id,
            outcome=outcome.status.value,
            rewriter_id=outcome.rewriter_id,
            action=outcome.action,
        )
        if outcome.is_failure:
            # Not written to the transcript; the utterance stays as spoken.
            self.logger.warning("Dispatch failed", reason=outcome.reason, rewriter_id=outcome.rewriter_id)
            self.emitter.emit(
                "dispatch.failed",
                session_id=self.session_id,
                severity=Severity.WARN,
                correlation_id=correlation_id,
                reason=outcome.reason,
                rewriter_id=outcome.rewriter_id,
                action=outcome.action,
            )

        suggestions = self.resolver.resolve(text)
        self.last_suggestions = suggestions
        if suggestions:
            self._transition_to(SessionState.AWAITING_CHOICE)
            self.emitter.emit(
                "suggestions.presented",
                session_id=self.session_id,
                correlation_id=correlation_id,
                count=len(suggestions),
            )
        else:
            self._transition_to(SessionState.READY)

        self._push_render()
        return outcome

    def on_error(self, code: int) -> None:
        """Record a recognition error; suggestions on display stay as they are."""
        entry = self.transcript.append(ErrorMarker(code))
        error_name = recognition_error_name(code)

        self.logger.warning("Recognition error", code=code, error_name=error_name)
        self.emitter.emit(
            "recognition.error",
            session_id=self.session_id,
            severity=Severity.WARN,
            code=code,
            error_name=error_name,
            transcript_index=entry.index,
        )
        self._transition_to(SessionState.READY)
        self._push_render()

    def on_suggestion_chosen(self, text: Optional[str]) -> bool:
        """
        Fold a chosen suggestion into the transcript.

        Returns False (and changes nothing) for blank text or when no
        suggestion set is on display. A set kept on display across a
        recognition error can still be chosen from.
        """
        if not self.last_suggestions or not text or not text.strip():
            self.logger.debug("Suggestion choice ignored", state=self.state.value)
            self._push_render()
            return False

        entry = self.transcript.append(SuggestionChoice(text))
        self.last_suggestions = EMPTY_SUGGESTIONS

        self.logger.debug_pii("Suggestion chosen", text=text)
        self.emitter.emit(
            "suggestion.chosen",
            session_id=self.session_id,
            pii=text_pii("text"),
            text=text,
            transcript_index=entry.index,
        )
        self._transition_to(SessionState.READY)
        self._push_render()
        return True

    # --- Re-execution ---

    def relaunch_entry(self, index: int) -> DispatchOutcome:
        """
        Launch a transcript line as an encoded action.

        Raises IndexError for an unknown index; decoding and launching
        problems come back as a failed outcome.
        """
        entry = self.transcript.get(index)
        outcome = self.dispatcher.launch_encoded(entry.display_text)
        self.emitter.emit(
            "dispatch.outcome",
            session_id=self.session_id,
            correlation_id=f"relaunch_{index}",
            severity=Severity.WARN if outcome.is_failure else Severity.INFO,
            outcome=outcome.status.value,
            reason=outcome.reason,
            action=outcome.action,
            transcript_index=index,
        )
        return outcome
