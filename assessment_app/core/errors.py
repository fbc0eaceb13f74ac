"""Exception hierarchy shared by the engine, the gateways and the server."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from assessment_app.core.results import ResultSummary


class AssessmentError(Exception):
    """Base class for every assessment failure."""


class ValidationError(AssessmentError):
    """Raised when schedule, question or answer data is malformed."""


class NetworkError(AssessmentError):
    """Raised for transient transport failures. Safe to retry."""


class NotFoundError(AssessmentError):
    """Raised when an assessment or attempt no longer exists."""


class AccessDeniedError(AssessmentError):
    """Raised when the server refuses to start an attempt."""


class ConflictError(AssessmentError):
    """The server already holds a sealed attempt.

    Not a failure for the caller: ``summary`` is the authoritative result and
    should be adopted as-is.
    """

    def __init__(
        self,
        message: str,
        *,
        attempt_id: str | None = None,
        summary: ResultSummary | None = None,
    ) -> None:
        super().__init__(message)
        self.attempt_id = attempt_id
        self.summary = summary
