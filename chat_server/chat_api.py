"""
Chat API.

This module exposes:
- Session API: create, list, render and end chat sessions
- Event API: feed speech-source and suggestion-UI events into a session
- Relaunch API: re-execute a transcript line as an encoded action
- Read API: query the structured events of a session

Every event endpoint answers with the session's render snapshot, so a client
can redraw transcript and suggestions from the response alone.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from chat_pipeline.errors import DispatchFailureReason
from chat_pipeline.session import ChatSession, SessionState
from logging_setup import get_logger, Component
from observability.event_store import event_store
from .sessions import session_manager

router = APIRouter(prefix="/chat", tags=["chat"])
logger = get_logger(Component.CHAT_SERVER)


class CreateSessionRequest(BaseModel):
    language: Optional[str] = Field(None, description="Bind the session to this language right away")
    service: Optional[str] = Field(None, description="Recognition service reference")


class ComboRequest(BaseModel):
    language: str = Field(..., min_length=1)
    service: Optional[str] = None


class ResultsRequest(BaseModel):
    results: List[str] = Field(default_factory=list, description="Candidate transcriptions, best first")


class ErrorRequest(BaseModel):
    code: int


class ChoiceRequest(BaseModel):
    text: str = ""


class TranscriptEntryModel(BaseModel):
    index: int
    kind: str
    display_text: str
    text: Optional[str] = None
    code: Optional[int] = None


class SnapshotResponse(BaseModel):
    session_id: str
    state: str
    transcript: List[TranscriptEntryModel]
    suggestions: List[str]


class SessionSummary(BaseModel):
    session_id: str
    state: str
    language: Optional[str] = None
    created_at: str
    transcript_length: int


class LaunchResponse(BaseModel):
    status: str
    action: Optional[str] = None


def _get_session_or_404(session_id: str) -> ChatSession:
    session = session_manager.get_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _snapshot(session: ChatSession) -> SnapshotResponse:
    data = session.render().to_dict()
    return SnapshotResponse(session_id=session.session_id, **data)


def _summary(session: ChatSession) -> SessionSummary:
    return SessionSummary(
        session_id=session.session_id,
        state=session.state.value,
        language=session.language,
        created_at=session.created_at.isoformat(),
        transcript_length=len(session.transcript),
    )


def _parse_ts(value: Optional[str], name: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        # A "+" in the query string may arrive as a space
        clean = value.replace(" ", "+").replace("Z", "+00:00")
        if "+" not in clean and "-" not in clean[-6:]:
            clean += "+00:00"
        return datetime.fromisoformat(clean)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {name} timestamp: {value}")


# --- Session API ---


@router.post("/sessions", response_model=SnapshotResponse)
async def create_session(req: Optional[CreateSessionRequest] = None) -> SnapshotResponse:
    req = req or CreateSessionRequest()
    session = session_manager.create_session(language=req.language, service=req.service)
    return _snapshot(session)


@router.get("/sessions", response_model=List[SessionSummary])
async def list_sessions(
    state: Optional[str] = Query(None, description="Filter by state (idle, ready, awaiting_choice)"),
) -> List[SessionSummary]:
    state_filter: Optional[SessionState] = None
    if state:
        try:
            state_filter = SessionState(state.lower())
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Invalid state: {state}")

    return [_summary(s) for s in session_manager.list_sessions(state=state_filter)]


@router.get("/sessions/{session_id}", response_model=SnapshotResponse)
async def get_session(session_id: str) -> SnapshotResponse:
    return _snapshot(_get_session_or_404(session_id))


@router.delete("/sessions/{session_id}", response_model=SessionSummary)
async def end_session(session_id: str) -> SessionSummary:
    """End a session; its id is unknown to every endpoint afterwards."""
    session = session_manager.remove_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return _summary(session)


# --- Event API ---


@router.post("/sessions/{session_id}/combo", response_model=SnapshotResponse)
async def change_combo(session_id: str, req: ComboRequest) -> SnapshotResponse:
    session = _get_session_or_404(session_id)
    session.on_combo_change(req.language, req.service)
    return _snapshot(session)


@router.post("/sessions/{session_id}/listening", response_model=SnapshotResponse)
async def start_listening(session_id: str) -> SnapshotResponse:
    session = _get_session_or_404(session_id)
    session.on_start_listening()
    return _snapshot(session)


@router.post("/sessions/{session_id}/results", response_model=SnapshotResponse)
async def final_result(session_id: str, req: ResultsRequest) -> SnapshotResponse:
    session = _get_session_or_404(session_id)
    session.on_final_result(req.results)
    return _snapshot(session)


@router.post("/sessions/{session_id}/error", response_model=SnapshotResponse)
async def recognition_error(session_id: str, req: ErrorRequest) -> SnapshotResponse:
    session = _get_session_or_404(session_id)
    session.on_error(req.code)
    return _snapshot(session)


@router.post("/sessions/{session_id}/choice", response_model=SnapshotResponse)
async def choose_suggestion(session_id: str, req: ChoiceRequest) -> SnapshotResponse:
    session = _get_session_or_404(session_id)
    session.on_suggestion_chosen(req.text)
    return _snapshot(session)


# --- Relaunch API ---


@router.post("/sessions/{session_id}/transcript/{index}/launch", response_model=LaunchResponse)
async def relaunch_entry(session_id: str, index: int) -> LaunchResponse:
    """
    Launch a transcript line as an encoded action (JSON).
    """
    session = _get_session_or_404(session_id)
    try:
        outcome = session.relaunch_entry(index)
    except IndexError:
        raise HTTPException(status_code=404, detail="Transcript entry not found")

    logger.info(
        "Transcript entry relaunched",
        session_id=session_id,
        transcript_index=index,
        outcome=outcome.status.value,
    )
    if outcome.reason == DispatchFailureReason.MALFORMED_ACTION:
        raise HTTPException(status_code=400, detail="malformed_action")
    if outcome.reason == DispatchFailureReason.NO_HANDLER:
        raise HTTPException(status_code=409, detail="no_handler_available")

    return LaunchResponse(status="launched", action=outcome.action)


# --- Read API ---


@router.get("/sessions/{session_id}/events")
async def get_session_events(
    session_id: str,
    event_type: Optional[str] = Query(None, description="Filter by event_type"),
    component: Optional[str] = Query(None, description="Filter by component"),
    since: Optional[str] = Query(None, description="ISO timestamp (inclusive)"),
    until: Optional[str] = Query(None, description="ISO timestamp (inclusive)"),
    limit: Optional[int] = Query(None, ge=1, le=1000, description="Max events to return"),
) -> dict:
    _get_session_or_404(session_id)

    events = event_store.query(
        session_id=session_id,
        event_type=event_type,
        component=component,
        since=_parse_ts(since, "since"),
        until=_parse_ts(until, "until"),
        limit=limit,
    )

    return {
        "session_id": session_id,
        "events": events,
        "count": len(events),
    }
