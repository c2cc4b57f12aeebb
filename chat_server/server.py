"""
Demo HTTP host for chat sessions.
Stands in for the speech source and the suggestion UI of a real client.
"""
from fastapi import FastAPI

from observability.event_store import event_store
from .chat_api import router as chat_router
from .sessions import session_manager

app = FastAPI(title="Speak Chat Demo")
app.include_router(chat_router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "component": "chat_server",
        "sessions": len(session_manager.list_sessions()),
        "events": event_store.get_stats(),
    }
