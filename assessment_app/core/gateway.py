"""The capability interface through which the engine reaches the server.

Quizzes and evaluations go through the same protocol; only the gateway
instance differs. Implementations translate transport failures into the
exceptions of :mod:`assessment_app.core.errors`.
"""

from __future__ import annotations

from typing import Protocol

from assessment_app.core.assessment_manager import AssessmentManager
from assessment_app.core.errors import ConflictError
from assessment_app.core.models import AssessmentDefinition, Attempt, StartedAttempt
from assessment_app.core.results import ResultSummary


class AssessmentGateway(Protocol):
    def fetch_definition(self, assessment_id: str) -> AssessmentDefinition: ...

    def check_access(self, assessment_id: str, student_id: str) -> bool | None: ...

    def find_attempt(self, assessment_id: str, student_id: str) -> Attempt | None: ...

    def start(self, assessment_id: str, student_id: str) -> StartedAttempt:
        """Create or resume an attempt; ``ConflictError`` when already completed."""
        ...

    def answer(self, attempt_id: str, question_id: str, option_id: str, time_taken: int | None) -> None: ...

    def finalize(self, attempt_id: str) -> ResultSummary:
        """Seal the attempt; ``ConflictError`` carries the summary when it was sealed before."""
        ...


class LocalAssessmentGateway:
    """In-process gateway backed directly by an :class:`AssessmentManager`."""

    def __init__(self, manager: AssessmentManager) -> None:
        self._manager = manager

    def fetch_definition(self, assessment_id: str) -> AssessmentDefinition:
        return self._manager.get_definition(assessment_id)

    def check_access(self, assessment_id: str, student_id: str) -> bool | None:
        return self._manager.check_access(assessment_id, student_id)

    def find_attempt(self, assessment_id: str, student_id: str) -> Attempt | None:
        return self._manager.find_attempt(assessment_id, student_id)

    def start(self, assessment_id: str, student_id: str) -> StartedAttempt:
        attempt = self._manager.start_attempt(assessment_id, student_id)
        return StartedAttempt(
            attempt_id=attempt.id,
            started_at=attempt.started_at,
            answers=tuple(attempt.answers),
        )

    def answer(self, attempt_id: str, question_id: str, option_id: str, time_taken: int | None) -> None:
        self._manager.record_answer(attempt_id, question_id, option_id, time_taken)

    def finalize(self, attempt_id: str) -> ResultSummary:
        summary, already_completed = self._manager.finalize_attempt(attempt_id)
        if already_completed:
            raise ConflictError(
                f"Attempt {attempt_id} was already finalized",
                attempt_id=attempt_id,
                summary=summary,
            )
        return summary
