"""Business logic behind the assessment contract, shared by the API server and local gateway."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
import logging
from threading import Lock

from assessment_app.core.availability import Availability, resolve_for_student
from assessment_app.core.errors import AccessDeniedError, ConflictError, NotFoundError
from assessment_app.core.models import AssessmentDefinition, AssessmentKind, Attempt
from assessment_app.core.results import ResultSummary
from assessment_app.core.services.access_registry import AccessRegistry
from assessment_app.core.services.assessment_repository import AssessmentRepository
from assessment_app.core.services.attempt_store import AttemptStore
from assessment_app.core.services.grader import grade_attempt

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AssessmentManager:
    """Facade for assessment services: Repository, AccessRegistry and AttemptStore.

    One manager serves one assessment kind. Every public method holds the
    manager lock, so concurrent starts or finalizes for the same student
    always observe each other.
    """

    def __init__(
        self,
        kind: AssessmentKind = AssessmentKind.QUIZ,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._lock = Lock()
        self._kind = kind
        self._clock = clock

        self._repository = AssessmentRepository()
        self._access = AccessRegistry()
        self._attempts = AttemptStore()

    @property
    def kind(self) -> AssessmentKind:
        return self._kind

    # --- Definitions ---

    def load_definitions(self, definitions: list[AssessmentDefinition]) -> None:
        with self._lock:
            self._repository.load_definitions(definitions)
            self._attempts.clear()
            self._access.clear()

    def add_definition(self, definition: AssessmentDefinition) -> None:
        with self._lock:
            self._repository.add_definition(definition)

    def get_definition(self, assessment_id: str) -> AssessmentDefinition:
        with self._lock:
            return self._repository.get_definition(assessment_id)

    def list_definitions(self) -> list[AssessmentDefinition]:
        with self._lock:
            return self._repository.get_definitions()

    def delete_definition(self, assessment_id: str) -> None:
        with self._lock:
            self._repository.delete_definition(assessment_id)

    # --- Access control (instructor side) ---

    def check_access(self, assessment_id: str, student_id: str) -> bool | None:
        with self._lock:
            return self._access.get_override(assessment_id, student_id)

    def set_student_access(self, assessment_id: str, student_id: str, active: bool) -> bool:
        with self._lock:
            self._repository.get_definition(assessment_id)
            self._access.set_override(assessment_id, student_id, active)
            logger.info("Override for %s/%s set to %s", assessment_id, student_id, active)
            return active

    def clear_student_access(self, assessment_id: str, student_id: str) -> None:
        with self._lock:
            self._access.clear_override(assessment_id, student_id)

    def set_global_active(self, assessment_id: str, active: bool) -> AssessmentDefinition:
        with self._lock:
            updated = self._repository.set_global_active(assessment_id, active)
            logger.info("Assessment %s global activation set to %s", assessment_id, active)
            return updated

    def get_student_statuses(self, assessment_id: str, student_ids: list[str]) -> dict[str, bool | None]:
        with self._lock:
            return self._access.statuses(assessment_id, student_ids)

    def availability_for(self, assessment_id: str, student_id: str) -> Availability:
        with self._lock:
            return self._availability_locked(assessment_id, student_id)

    # --- Attempts ---

    def find_attempt(self, assessment_id: str, student_id: str) -> Attempt | None:
        with self._lock:
            return self._attempts.find(assessment_id, student_id)

    def get_attempt(self, attempt_id: str) -> Attempt:
        with self._lock:
            return self._attempts.get(attempt_id)

    def start_attempt(self, assessment_id: str, student_id: str) -> Attempt:
        """Create or resume the student's attempt.

        A completed attempt is reported through :class:`ConflictError`
        carrying the stored summary. An in-progress attempt is resumed as-is.
        A new attempt requires the assessment to be startable right now.
        """
        with self._lock:
            self._repository.get_definition(assessment_id)
            existing = self._attempts.find(assessment_id, student_id)
            if existing is not None:
                if existing.is_completed:
                    raise ConflictError(
                        f"Attempt {existing.id} is already completed",
                        attempt_id=existing.id,
                        summary=self._attempts.summary_for(existing.id),
                    )
                return existing

            availability = self._availability_locked(assessment_id, student_id)
            if not availability.can_start:
                raise AccessDeniedError(
                    f"Assessment {assessment_id} cannot be started ({availability.state.value})"
                )
            attempt, _ = self._attempts.start(assessment_id, student_id, self._clock())
            logger.info("Attempt %s started for %s/%s", attempt.id, assessment_id, student_id)
            return attempt

    def record_answer(
        self,
        attempt_id: str,
        question_id: str,
        option_id: str,
        time_taken_seconds: int | None,
    ) -> None:
        with self._lock:
            attempt = self._attempts.get(attempt_id)
            definition = self._repository.get_definition(attempt.assessment_id)
            question = definition.find_question(question_id)
            if question is None:
                raise NotFoundError(f"Question {question_id} not found in {definition.id}")
            self._attempts.record_answer(attempt_id, question, option_id, time_taken_seconds)

    def finalize_attempt(self, attempt_id: str) -> tuple[ResultSummary, bool]:
        """Seal the attempt and return ``(summary, already_completed)``.

        Safe to call repeatedly: later calls return the stored summary.
        """
        with self._lock:
            attempt = self._attempts.get(attempt_id)
            if attempt.is_completed:
                summary = self._attempts.summary_for(attempt_id)
                if summary is not None:
                    return summary, True

            definition = self._repository.get_definition(attempt.assessment_id)
            summary = grade_attempt(definition, attempt_id, attempt.answers)
            sealed = self._attempts.seal(attempt_id, summary, self._clock())
            # A reactivation is spent once the student submits.
            self._access.deactivate(attempt.assessment_id, attempt.student_id)
            logger.info(
                "Attempt %s finalized: %s/%s correct, score %.2f",
                attempt_id,
                sealed.correct_answers,
                sealed.total_questions,
                sealed.score,
            )
            return sealed, False

    def _availability_locked(self, assessment_id: str, student_id: str) -> Availability:
        definition = self._repository.get_definition(assessment_id)
        attempt = self._attempts.find(assessment_id, student_id)
        return resolve_for_student(
            self._clock(),
            definition,
            self._access.get_override(assessment_id, student_id),
            attempt.status if attempt else None,
        )
