"""
Error taxonomy for the chat pipeline.

Nothing here is fatal to a session:
- recognition errors become transcript markers
- dispatch failures are logged and emitted, never raised to the caller
- blank suggestion choices are ignored
"""
from typing import Optional


class DispatchFailureReason:
    """Stable reasons carried by a failed dispatch outcome."""

    NO_HANDLER = "no handler available"
    MALFORMED_ACTION = "malformed action"


class MalformedActionError(ValueError):
    """An encoded action could not be decoded into an ActionDescriptor."""

    def __init__(self, encoded: str, detail: Optional[str] = None):
        self.encoded = encoded
        self.detail = detail
        super().__init__(detail or "malformed action")


class RecognitionErrorCode:
    """Error codes reported by the speech source (platform recognizer numbering)."""

    NETWORK_TIMEOUT = 1
    NETWORK = 2
    AUDIO = 3
    SERVER = 4
    CLIENT = 5
    SPEECH_TIMEOUT = 6
    NO_MATCH = 7
    RECOGNIZER_BUSY = 8
    INSUFFICIENT_PERMISSIONS = 9


_RECOGNITION_ERROR_NAMES = {
    RecognitionErrorCode.NETWORK_TIMEOUT: "network_timeout",
    RecognitionErrorCode.NETWORK: "network",
    RecognitionErrorCode.AUDIO: "audio",
    RecognitionErrorCode.SERVER: "server",
    RecognitionErrorCode.CLIENT: "client",
    RecognitionErrorCode.SPEECH_TIMEOUT: "speech_timeout",
    RecognitionErrorCode.NO_MATCH: "no_match",
    RecognitionErrorCode.RECOGNIZER_BUSY: "recognizer_busy",
    RecognitionErrorCode.INSUFFICIENT_PERMISSIONS: "insufficient_permissions",
}


def recognition_error_name(code: int) -> str:
    """Stable name for a recognizer error code; "unknown" for anything else."""
    return _RECOGNITION_ERROR_NAMES.get(code, "unknown")
