"""Exception hierarchy for the Canvus batch client."""

from __future__ import annotations

import json
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from src.models.batch_result import OperationResult


class ErrorCode(StrEnum):
    """Machine-readable codes for API errors."""

    INVALID_REQUEST = "invalid_request"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    TOO_MANY_REQUESTS = "too_many_requests"
    INTERNAL_SERVER_ERROR = "internal_server_error"
    NOT_IMPLEMENTED = "not_implemented"
    SERVICE_UNAVAILABLE = "service_unavailable"


_STATUS_CODES: dict[int, ErrorCode] = {
    400: ErrorCode.INVALID_REQUEST,
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.NOT_FOUND,
    409: ErrorCode.CONFLICT,
    429: ErrorCode.TOO_MANY_REQUESTS,
    500: ErrorCode.INTERNAL_SERVER_ERROR,
    501: ErrorCode.NOT_IMPLEMENTED,
    503: ErrorCode.SERVICE_UNAVAILABLE,
}


def error_code_for_status(status_code: int) -> ErrorCode | None:
    """Map an HTTP status to an ErrorCode; unknown 4xx/5xx fall back by class."""
    if status_code in _STATUS_CODES:
        return _STATUS_CODES[status_code]
    if 400 <= status_code < 500:
        return ErrorCode.INVALID_REQUEST
    if status_code >= 500:
        return ErrorCode.INTERNAL_SERVER_ERROR
    return None


class CanvusError(Exception):
    """Base exception for all Canvus client errors."""


class DispatchError(CanvusError):
    """An operation cannot be dispatched. Permanent: retrying never helps."""


class UnsupportedOperationError(DispatchError):
    """The operation kind is not supported for the resource type."""

    def __init__(self, kind: str, resource_type: str) -> None:
        self.kind = kind
        self.resource_type = resource_type
        super().__init__(f"unsupported operation {kind!r} for resource type {resource_type!r}")


class MissingOperationDataError(DispatchError):
    """The operation lacks the target or metadata its primitive requires."""


class OperationCancelledError(CanvusError):
    """Raised when a retry wait is cut short by batch cancellation."""


class CanvusAPIError(CanvusError):
    """Non-2xx response returned by the Canvus API."""

    def __init__(
        self,
        status_code: int,
        message: str = "",
        code: ErrorCode | None = None,
        request_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code
        self.code = code if code is not None else error_code_for_status(status_code)
        self.message = message
        self.request_id = request_id
        self.details = details or {}
        super().__init__(str(self))

    def __str__(self) -> str:
        text = f"API error {self.status_code}"
        if self.code:
            text += f" ({self.code})"
        if self.message:
            text += f": {self.message}" if self.code else f" {self.message}"
        if self.request_id:
            text += f" (request_id: {self.request_id})"
        return text

    @property
    def retryable(self) -> bool:
        """Rate limits and server-side failures are worth retrying."""
        return self.status_code == 429 or self.status_code >= 500

    @classmethod
    def from_response(cls, status_code: int, body: str) -> CanvusAPIError:
        """Build an error from a response status and raw body.

        JSON bodies are read for error_description/error, request_id and
        details; anything else becomes the message verbatim.
        """
        try:
            payload = json.loads(body) if body else None
        except ValueError:
            payload = None

        if not isinstance(payload, dict):
            return cls(status_code, message=body.strip())

        message = payload.get("error_description") or payload.get("error") or ""
        details = payload.get("details")
        return cls(
            status_code,
            message=str(message),
            request_id=payload.get("request_id") or None,
            details=details if isinstance(details, dict) else None,
        )


class BatchInterruptedError(CanvusError):
    """A batch was cut short. Results completed before the cut are attached."""

    reason = "interrupted"

    def __init__(self, results: list[OperationResult], total: int) -> None:
        self.results = results
        self.total = total
        super().__init__(
            f"batch operation {self.reason}: {len(results)} of {total} operations completed"
        )


class BatchTimeoutError(BatchInterruptedError):
    """The overall batch deadline expired."""

    reason = "timed out"


class BatchCancelledError(BatchInterruptedError):
    """The caller cancelled the batch."""

    reason = "cancelled"


class BatchAbortedError(BatchInterruptedError):
    """An operation failed while continue_on_error was disabled."""

    reason = "aborted after a failed operation"
