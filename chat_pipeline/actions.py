"""
Action descriptors and the action-launch capability.

A rewriter that recognizes a command produces an *encoded* action: a JSON
document in the shape of a platform intent, e.g.

    {"action": "web_search", "extras": {"query": "weather in tallinn"}}

decode_action() turns it into an ActionDescriptor; an ActionLauncher then
looks for a handler able to service it. Launching is fire-and-forget: the
launcher reports whether a handler took the action, not what the action did.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

from pydantic import BaseModel, Field, ValidationError

from logging_setup import get_logger, Component
from .errors import MalformedActionError

logger = get_logger(Component.ACTIONS)


class ActionDescriptor(BaseModel):
    """Structured action: what to launch and with which parameters."""

    action: str = Field(..., min_length=1, description="Action name handlers are keyed by")
    component: Optional[str] = Field(None, description="Explicit target component")
    data: Optional[str] = Field(None, description="Data URI the action operates on")
    category: Optional[str] = None
    extras: Dict[str, Any] = Field(default_factory=dict)


def decode_action(encoded: str) -> ActionDescriptor:
    """
    Decode an encoded action.

    Raises MalformedActionError for invalid JSON or a payload that does not
    describe an action.
    """
    try:
        return ActionDescriptor.model_validate_json(encoded)
    except ValidationError as e:
        raise MalformedActionError(encoded, detail=f"{e.error_count()} validation error(s)") from e


class ActionLauncher(Protocol):
    """Launch capability: True if some handler serviced the descriptor."""

    def launch(self, descriptor: ActionDescriptor) -> bool: ...


ActionHandler = Callable[[ActionDescriptor], None]


class HandlerRegistry:
    """
    ActionLauncher backed by registered handlers.

    Handlers are keyed by action name and optionally narrowed to one target
    component; the first registration that fits the descriptor is used.
    """

    def __init__(self):
        self._handlers: List[Tuple[str, Optional[str], ActionHandler]] = []

    def register(self, action: str, handler: ActionHandler, component: Optional[str] = None) -> None:
        if not action:
            raise ValueError("action is required")
        self._handlers.append((action, component, handler))

    def resolve(self, descriptor: ActionDescriptor) -> Optional[ActionHandler]:
        for action, component, handler in self._handlers:
            if action != descriptor.action:
                continue
            if component is not None and component != descriptor.component:
                continue
            return handler
        return None

    def launch(self, descriptor: ActionDescriptor) -> bool:
        handler = self.resolve(descriptor)
        if handler is None:
            logger.debug("No handler for action", action=descriptor.action, target=descriptor.component)
            return False
        try:
            handler(descriptor)
        except Exception:
            # A handler blowing up counts as "not serviced"; the session must survive it.
            logger.exception("Action handler failed", action=descriptor.action)
            return False
        return True

    @property
    def actions(self) -> List[str]:
        return [action for action, _, _ in self._handlers]
