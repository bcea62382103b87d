"""
Error types shared by the pipeline, the queue layer and the HTTP surface.

Every error carries an explicit kind. The kind decides the HTTP status code
and whether a job that raised it is worth retrying.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    MALFORMED_OUTPUT = "MALFORMED_OUTPUT"
    PROVIDER = "PROVIDER_ERROR"
    PERSISTENCE = "PERSISTENCE_ERROR"
    VALIDATION = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    QUEUE = "QUEUE_ERROR"


STATUS_CODES: Dict[ErrorKind, int] = {
    ErrorKind.MALFORMED_OUTPUT: 502,
    ErrorKind.PROVIDER: 502,
    ErrorKind.PERSISTENCE: 500,
    ErrorKind.VALIDATION: 422,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.QUEUE: 503,
}

# Retrying these cannot change the outcome
PERMANENT_KINDS = frozenset({
    ErrorKind.VALIDATION,
    ErrorKind.NOT_FOUND,
    ErrorKind.CONFLICT,
})


class PraxisError(Exception):
    """Base error with a kind and an HTTP status mapping."""

    kind: ErrorKind = ErrorKind.PERSISTENCE

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self._status_code = status_code

    @property
    def status_code(self) -> int:
        return self._status_code or STATUS_CODES[self.kind]

    @property
    def retryable(self) -> bool:
        return self.kind not in PERMANENT_KINDS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.kind.value,
            "statusCode": self.status_code,
        }


class MalformedOutputError(PraxisError):
    """Provider text did not parse as the expected JSON shape."""

    kind = ErrorKind.MALFORMED_OUTPUT


class ProviderError(PraxisError):
    """Network, backend or timeout failure while calling the generation service."""

    kind = ErrorKind.PROVIDER

    def __init__(
        self,
        message: str,
        *,
        provider: Optional[str] = None,
        upstream_status: Optional[int] = None,
        timed_out: bool = False,
    ):
        super().__init__(message, status_code=504 if timed_out else None)
        self.provider = provider
        self.upstream_status = upstream_status
        self.timed_out = timed_out


class PersistenceError(PraxisError):
    """A read or write against the durable store failed."""

    kind = ErrorKind.PERSISTENCE


class ValidationError(PraxisError):
    kind = ErrorKind.VALIDATION


class NotFoundError(PraxisError):
    kind = ErrorKind.NOT_FOUND


class ConflictError(PraxisError):
    """The row changed under us (version mismatch or illegal transition)."""

    kind = ErrorKind.CONFLICT


class QueueError(PraxisError):
    """The job could not be handed to the queue."""

    kind = ErrorKind.QUEUE


def error_payload(exc: BaseException) -> Dict[str, Any]:
    """Build the `content` stored on a failed Plan."""
    message = str(exc) or type(exc).__name__
    kind = exc.kind.value if isinstance(exc, PraxisError) else "INTERNAL_ERROR"
    return {"error": message, "kind": kind}
