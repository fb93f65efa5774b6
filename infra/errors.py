"""
Error taxonomy shared by the job engine, the pipeline and the web layer.

Every error carries the HTTP status the web layer answers with, so route
handlers can raise freely and let the app-level handler serialize them.
"""

from typing import Any, Dict, Optional


class ScriptoriumError(Exception):
    status_code = 500

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, **self.details}


class ValidationError(ScriptoriumError):
    """Malformed input: unknown job type, bad limit, missing field."""
    status_code = 400


class NotFound(ScriptoriumError):
    status_code = 404


class InvalidTransition(ScriptoriumError):
    """A state machine was asked to do something its current status forbids."""
    status_code = 400

    def __init__(self, status: str, action: str, message: Optional[str] = None):
        super().__init__(
            message or f"Cannot {action} from status '{status}'",
            status=status,
            action=action,
        )
        self.status = status
        self.action = action


class UpstreamError(ScriptoriumError):
    """The inference provider answered with an error or an unreadable body."""
    status_code = 502

    def __init__(self, message: str, status: Optional[int] = None, **details):
        super().__init__(message, upstream_status=status, **details)
        self.upstream_status = status
