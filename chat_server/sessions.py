"""
Chat session registry for the demo host.
Each client conversation gets one ChatSession under an opaque id.
"""
import uuid
from typing import Any, Dict, List, Optional

from chat_pipeline.actions import ActionLauncher
from chat_pipeline.config import ChatConfig, get_config
from chat_pipeline.context_table import ContextTable
from chat_pipeline.rewriters import RewriterProvider
from chat_pipeline.session import ChatSession, SessionState
from logging_setup import get_logger, Component
from observability.events import Component as EventComponent, EventEmitter
from .launcher import build_launcher

logger = get_logger(Component.CHAT_SERVER)
emitter = EventEmitter(EventComponent.CHAT_SERVER)


class SessionManager:
    """
    Creates and tracks chat sessions.

    The context table and rewriter provider are built once and shared by all
    sessions. Unless a launcher is injected, each session gets its own so
    launched actions are attributed to it.
    """

    def __init__(self, config: Optional[ChatConfig] = None, launcher: Optional[ActionLauncher] = None):
        self._config = config
        self._launcher = launcher
        self._context_table: Optional[ContextTable] = None
        self._rewriter_provider: Optional[RewriterProvider] = None
        self._sessions: Dict[str, ChatSession] = {}

    @property
    def config(self) -> ChatConfig:
        if self._config is None:
            self._config = get_config()
        return self._config

    @property
    def context_table(self) -> ContextTable:
        if self._context_table is None:
            if self.config.contexts_file:
                self._context_table = ContextTable.from_file(self.config.contexts_file)
            else:
                self._context_table = ContextTable.default()
        return self._context_table

    @property
    def rewriter_provider(self) -> RewriterProvider:
        if self._rewriter_provider is None:
            self._rewriter_provider = RewriterProvider(self.config.rewrites_dir)
        return self._rewriter_provider

    def create_session(self, language: Optional[str] = None, service: Any = None) -> ChatSession:
        """
        Create a new session. Passing a language binds it right away
        (IDLE → READY), as a speech source reporting its combo would.
        """
        session_id = str(uuid.uuid4())
        launcher = self._launcher or build_launcher(self.config.launchable_actions, session_id)

        session = ChatSession(
            config=self.config,
            launcher=launcher,
            rewriter_factory=self.rewriter_provider,
            context_table=self.context_table,
            session_id=session_id,
        )
        self._sessions[session_id] = session
        logger.with_session(session_id).info("Chat session created", language=language)

        if language:
            session.on_combo_change(language, service)
        return session

    def get_session(self, session_id: str) -> Optional[ChatSession]:
        return self._sessions.get(session_id)

    def remove_session(self, session_id: str, reason: str = "client_request") -> Optional[ChatSession]:
        """
        End a session and forget it. Returns the removed session, or None
        when the id is unknown. Its events stay in the event store.
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            return None

        logger.with_session(session_id).info(
            "Chat session ended",
            reason=reason,
            transcript_length=len(session.transcript),
        )
        emitter.emit(
            "session.ended",
            session_id=session_id,
            reason=reason,
            final_state=session.state.value,
            transcript_length=len(session.transcript),
        )
        return session

    def list_sessions(self, state: Optional[SessionState] = None) -> List[ChatSession]:
        sessions = list(self._sessions.values())
        if state:
            sessions = [s for s in sessions if s.state == state]
        return sessions

    def clear(self) -> None:
        self._sessions.clear()


# Global session manager
session_manager = SessionManager()
