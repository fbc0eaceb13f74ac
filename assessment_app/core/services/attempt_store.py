"""Service for storing attempts: one per (assessment, student), sealed once."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from uuid import uuid4

from assessment_app.core.errors import ConflictError, NotFoundError, ValidationError
from assessment_app.core.models import AnswerRecord, Attempt, AttemptStatus, Question
from assessment_app.core.results import ResultSummary


class AttemptStore:
    """Holds attempts and the summary each one was sealed with."""

    def __init__(self) -> None:
        self._attempts: dict[str, Attempt] = {}
        self._by_student: dict[tuple[str, str], str] = {}
        self._summaries: dict[str, ResultSummary] = {}

    def start(self, assessment_id: str, student_id: str, now: datetime) -> tuple[Attempt, bool]:
        """Return the student's attempt, creating it on first call. The flag tells which."""
        existing_id = self._by_student.get((assessment_id, student_id))
        if existing_id is not None:
            return self._snapshot(self._attempts[existing_id]), False

        attempt = Attempt(
            id=uuid4().hex,
            assessment_id=assessment_id,
            student_id=student_id,
            started_at=now,
        )
        self._attempts[attempt.id] = attempt
        self._by_student[(assessment_id, student_id)] = attempt.id
        return self._snapshot(attempt), True

    def get(self, attempt_id: str) -> Attempt:
        return self._snapshot(self._require(attempt_id))

    def find(self, assessment_id: str, student_id: str) -> Attempt | None:
        attempt_id = self._by_student.get((assessment_id, student_id))
        if attempt_id is None:
            return None
        return self._snapshot(self._attempts[attempt_id])

    def record_answer(
        self,
        attempt_id: str,
        question: Question,
        option_id: str,
        time_taken_seconds: int | None,
    ) -> AnswerRecord:
        """Store the selection for ``question``; the last write wins."""
        attempt = self._require(attempt_id)
        if attempt.is_completed:
            raise ConflictError(
                f"Attempt {attempt_id} is already completed",
                attempt_id=attempt_id,
                summary=self._summaries.get(attempt_id),
            )
        if question.find_option(option_id) is None:
            raise ValidationError(f"Option {option_id} does not belong to question {question.id}")

        record = AnswerRecord(
            question_id=question.id,
            selected_option_id=option_id,
            time_taken_seconds=time_taken_seconds,
        )
        existing_index = next(
            (i for i, answer in enumerate(attempt.answers) if answer.question_id == question.id),
            -1,
        )
        if existing_index >= 0:
            attempt.answers[existing_index] = record
        else:
            attempt.answers.append(record)
        return replace(record)

    def seal(self, attempt_id: str, summary: ResultSummary, now: datetime) -> ResultSummary:
        """Complete the attempt. Sealing twice keeps the first summary and timestamp."""
        attempt = self._require(attempt_id)
        if attempt.is_completed:
            return self._summaries[attempt_id]
        attempt.status = AttemptStatus.COMPLETED
        attempt.completed_at = now
        self._summaries[attempt_id] = summary
        return summary

    def summary_for(self, attempt_id: str) -> ResultSummary | None:
        return self._summaries.get(attempt_id)

    def clear(self) -> None:
        self._attempts.clear()
        self._by_student.clear()
        self._summaries.clear()

    def _require(self, attempt_id: str) -> Attempt:
        attempt = self._attempts.get(attempt_id)
        if attempt is None:
            raise NotFoundError(f"Attempt {attempt_id} not found")
        return attempt

    @staticmethod
    def _snapshot(attempt: Attempt) -> Attempt:
        return replace(attempt, answers=[replace(answer) for answer in attempt.answers])
