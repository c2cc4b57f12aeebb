"""
Action launcher for the demo host.

There is no device to drive here, so every launchable action is serviced by
a handler that records it as an "action.launched" event for its session.
"""
from typing import Iterable

from chat_pipeline.actions import ActionDescriptor, HandlerRegistry
from observability.events import Component, EventEmitter

emitter = EventEmitter(Component.ACTION_RUNNER)


def build_launcher(actions: Iterable[str], session_id: str) -> HandlerRegistry:
    def record_launch(descriptor: ActionDescriptor) -> None:
        emitter.emit(
            "action.launched",
            session_id=session_id,
            action=descriptor.action,
            target=descriptor.component,
            data=descriptor.data,
            extras=descriptor.extras,
        )

    registry = HandlerRegistry()
    for action in actions:
        registry.register(action, record_launch)
    return registry
