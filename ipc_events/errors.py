"""
IPC event channel errors

Construction of an EventChannel fails with one of these when the supplied
process handle cannot serve as a channel endpoint.
"""

from typing import Any, Dict, List, Optional


class IPCError(Exception):
    """Base class for IPC event channel errors.

    Carries an HTTP-like status classification and a machine readable reason
    so callers can report the failure without matching on the class.
    """

    status_code = 500
    reason = "ipc_error"
    message = "IPC error"

    def __init__(self, errors: Optional[List[Any]] = None, message: Optional[str] = None):
        self.errors = list(errors) if errors else []
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the error to a dictionary

        Returns:
            Dict: status_code, reason, message and errors of this error
        """
        return {
            "status_code": self.status_code,
            "reason": self.reason,
            "message": self.message,
            "errors": self.errors,
        }


class InvalidProcessObjectError(IPCError):
    """Raised when the handle is neither a process handle nor an event emitter."""

    reason = "invalid_process_object"
    message = "Invalid process object"


class IPCChannelNotFoundError(IPCError):
    """Raised when the handle has no open channel to send through."""

    reason = "ipc_channel_not_found"
    message = "IPC channel not found"


class IPCSendError(IPCError):
    """Raised through an emit future when a handle reports a send failure that is not an exception."""

    reason = "ipc_send_failed"
    message = "IPC send failed"
