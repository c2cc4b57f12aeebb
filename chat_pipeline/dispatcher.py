"""
Command dispatch for utterances.

    utterance "search for weather in tallinn"
        ↓
    rewriters, in order → first one returning an encoded action wins
        ↓
    decode_action() → ActionDescriptor (malformed → DISPATCH_FAILED)
        ↓
    launcher.launch() → handler found? DISPATCHED : DISPATCH_FAILED

No rewriter recognizing the utterance is the common case and yields
NOT_A_COMMAND. try_dispatch() never raises.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from logging_setup import get_logger, Component
from .actions import ActionLauncher, decode_action
from .errors import DispatchFailureReason, MalformedActionError
from .rewriters import Rewriter

logger = get_logger(Component.DISPATCHER)


class DispatchStatus(str, Enum):
    NOT_A_COMMAND = "not_a_command"
    DISPATCHED = "dispatched"
    DISPATCH_FAILED = "dispatch_failed"


@dataclass(frozen=True)
class DispatchOutcome:
    """Result of trying to dispatch one utterance."""

    status: DispatchStatus
    reason: Optional[str] = None
    rewriter_id: Optional[str] = None
    action: Optional[str] = None

    @classmethod
    def not_a_command(cls) -> "DispatchOutcome":
        return cls(DispatchStatus.NOT_A_COMMAND)

    @classmethod
    def dispatched(cls, action: str, rewriter_id: Optional[str] = None) -> "DispatchOutcome":
        return cls(DispatchStatus.DISPATCHED, rewriter_id=rewriter_id, action=action)

    @classmethod
    def failed(
        cls,
        reason: str,
        rewriter_id: Optional[str] = None,
        action: Optional[str] = None,
    ) -> "DispatchOutcome":
        return cls(DispatchStatus.DISPATCH_FAILED, reason=reason, rewriter_id=rewriter_id, action=action)

    @property
    def is_failure(self) -> bool:
        return self.status == DispatchStatus.DISPATCH_FAILED


class CommandDispatcher:
    """Turns command utterances into launched actions."""

    def __init__(self, launcher: ActionLauncher):
        self.launcher = launcher

    def try_dispatch(self, utterance: str, rewriters: Sequence[Rewriter]) -> DispatchOutcome:
        for rewriter in rewriters:
            try:
                encoded = rewriter.apply(utterance)
            except MalformedActionError as e:
                logger.warning(
                    "Rewriter produced a malformed action",
                    rewriter_id=rewriter.id,
                    detail=e.detail,
                )
                return DispatchOutcome.failed(DispatchFailureReason.MALFORMED_ACTION, rewriter_id=rewriter.id)
            except Exception:
                logger.exception("Rewriter failed", rewriter_id=rewriter.id)
                return DispatchOutcome.failed(DispatchFailureReason.MALFORMED_ACTION, rewriter_id=rewriter.id)

            if encoded is None:
                continue

            logger.debug("Rewriter recognized a command", rewriter_id=rewriter.id)
            return self.launch_encoded(encoded, rewriter_id=rewriter.id)

        return DispatchOutcome.not_a_command()

    def launch_encoded(self, encoded: str, rewriter_id: Optional[str] = None) -> DispatchOutcome:
        """Decode an encoded action and hand it to the launcher."""
        try:
            descriptor = decode_action(encoded)
        except MalformedActionError as e:
            logger.warning("Malformed action", rewriter_id=rewriter_id, detail=e.detail)
            return DispatchOutcome.failed(DispatchFailureReason.MALFORMED_ACTION, rewriter_id=rewriter_id)

        try:
            launched = self.launcher.launch(descriptor)
        except Exception:
            logger.exception("Action launcher failed", action=descriptor.action, rewriter_id=rewriter_id)
            launched = False

        if not launched:
            logger.warning("No handler available for action", action=descriptor.action, rewriter_id=rewriter_id)
            return DispatchOutcome.failed(
                DispatchFailureReason.NO_HANDLER,
                rewriter_id=rewriter_id,
                action=descriptor.action,
            )

        logger.info("Action dispatched", action=descriptor.action, rewriter_id=rewriter_id)
        return DispatchOutcome.dispatched(descriptor.action, rewriter_id=rewriter_id)
