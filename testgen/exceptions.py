"""
Error taxonomy for the generation pipeline.

Every error surfaced to callers carries an ``action`` telling the service
layer what to do next:

- ``retry_now``   - the request may be resubmitted immediately
- ``retry_later`` - wait (see ``retry_after``) before resubmitting
- ``fatal``       - stop; the request or the deployment needs attention
"""
from typing import Any, Dict, Optional


RETRY_NOW = "retry_now"
RETRY_LATER = "retry_later"
FATAL = "fatal"


class PipelineError(Exception):
    """Base class for all pipeline errors."""

    action: str = FATAL

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error for the calling service."""
        return {
            "error": self.message,
            "type": self.__class__.__name__,
            "action": self.action
        }


class InvalidRequestError(PipelineError):
    """The generation request violates its shape invariants."""


class SessionNotFoundError(PipelineError):
    """The session handle is unknown or has expired."""

    def __init__(self, session_id: str):
        super().__init__(f"Invalid or expired session: {session_id}")
        self.session_id = session_id


class BackendError(PipelineError):
    """Base class for failures reported by an LLM backend."""

    def __init__(
        self,
        message: str,
        backend: str = "",
        status_code: Optional[int] = None
    ):
        super().__init__(message)
        self.backend = backend
        self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["backend"] = self.backend
        if self.status_code is not None:
            data["status_code"] = self.status_code
        return data


class TransientBackendError(BackendError):
    """Backend is overloaded or rate limited. Retried, then surfaced."""

    action = RETRY_LATER

    def __init__(
        self,
        message: str,
        backend: str = "",
        status_code: Optional[int] = None,
        retry_after: float = 30
    ):
        super().__init__(message, backend, status_code)
        self.retry_after = retry_after

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["retry_after"] = self.retry_after
        return data


class FatalBackendError(BackendError):
    """Authentication or invalid-request failure. Never retried."""

    action = FATAL
    requires_operator = True

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["requires_operator"] = self.requires_operator
        return data


class MalformedResponseError(PipelineError):
    """The model reply could not be parsed into test case records."""

    action = RETRY_NOW

    def __init__(self, message: str, raw_excerpt: str = ""):
        super().__init__(message)
        self.raw_excerpt = raw_excerpt


class OcrFailure(Exception):
    """OCR failed for a single image. Always absorbed by the pipeline."""
