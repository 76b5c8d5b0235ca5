"""Error kinds raised by the content engine."""

from __future__ import annotations


class ContentError(Exception):
    """Base class for failures surfaced to callers of the engine."""

    default_message = "Content operation failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(ContentError):
    """Raised when a required field is missing or exceeds its limit."""

    default_message = "Validation failed"

    def __init__(self, message: str | None = None, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class NotFoundError(ContentError):
    """Raised when a referenced course, chapter or video does not exist."""

    default_message = "Resource not found"


class ForbiddenError(ContentError):
    """Raised when the acting principal may not touch the resource."""

    default_message = "Not authorized"


class AggregationWarning(UserWarning):
    """A duration could not be parsed or an aggregate could not be recomputed.

    Only ever logged. Never propagated past the aggregator.
    """


__all__ = [
    "AggregationWarning",
    "ContentError",
    "ForbiddenError",
    "NotFoundError",
    "ValidationError",
]
