# timetable_engine/exceptions.py
"""Engine-level exceptions.

Only two failures ever reach a caller: malformed scheduling input
(``InputError``) and malformed feedback (``FeedbackError``). Activities that
cannot be placed and low quality timetables are returned as data.

Each exception carries a machine friendly ``code`` and serializes with
``to_dict`` so the calling service can log it or translate it to a response.
"""
from __future__ import annotations

from typing import Optional, Any, Dict
from datetime import datetime, timezone


class SchedulingEngineError(Exception):
    """Base engine exception with structured metadata.

    Attributes
    ----------
    message
        Human readable message.
    code
        Machine friendly error code (snake_case).
    status_code
        Suggested HTTP status code for callers exposing the engine over HTTP.
    details
        Arbitrary extra data useful for debugging.
    cause
        Optional underlying exception instance.
    context
        Optional lightweight context dict (ids, field names, counts).
    """

    code: str = "timetable_engine_error"
    status_code: int = 500

    def __init__(
        self,
        message: str = "A timetable engine error occurred",
        *,
        details: Optional[Any] = None,
        cause: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details
        self.cause = cause
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()

    def __str__(self) -> str:
        base = f"{self.__class__.__name__}({self.code}): {self.message}"
        if self.context:
            base += f" | context={self.context}"
        if self.details is not None:
            base += f" | details={self.details}"
        if self.cause is not None:
            base += f" | cause={repr(self.cause)}"
        return base

    def to_dict(self) -> Dict[str, Any]:
        """Return a serializable representation of the error."""
        return {
            "error": {
                "type": self.__class__.__name__,
                "code": self.code,
                "message": self.message,
                "status_code": self.status_code,
                "details": self.details,
                "context": self.context,
                "timestamp": self.timestamp,
            }
        }

    def with_context(self, **ctx: Any) -> "SchedulingEngineError":
        """Return self after extending the context dict."""
        self.context.update({k: v for k, v in ctx.items() if v is not None})
        return self


class InputError(SchedulingEngineError):
    """Structurally invalid scheduling input.

    Raised before any placement work starts, so no partial result exists.
    """

    code = "invalid_input"
    status_code = 422

    def __init__(
        self,
        message: str = "Invalid scheduling input",
        *,
        field: Optional[str] = None,
        details: Optional[Any] = None,
        cause: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, details=details, cause=cause, context=context)
        if field:
            self.context.setdefault("field", field)


class FeedbackError(SchedulingEngineError):
    """Malformed correction payload; learned state is left untouched."""

    code = "invalid_feedback"
    status_code = 400

    def __init__(
        self,
        message: str = "Invalid feedback payload",
        *,
        correction_index: Optional[int] = None,
        details: Optional[Any] = None,
        cause: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, details=details, cause=cause, context=context)
        if correction_index is not None:
            self.context.setdefault("correction_index", correction_index)
