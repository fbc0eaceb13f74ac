"""Domain models for the assessment application."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class AssessmentKind(str, Enum):
    """The two assessment flavours served by the same engine."""

    QUIZ = "quiz"
    EVALUATION = "evaluation"


class AttemptStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass(slots=True, frozen=True)
class Option:
    """One selectable answer of a multiple-choice question."""

    id: str
    text: str
    is_correct: bool = False
    explanation: str | None = None


@dataclass(slots=True, frozen=True)
class Question:
    """Multiple-choice question with its own time budget."""

    id: str
    text: str
    per_question_seconds: int
    options: tuple[Option, ...]
    attachment_url: str | None = None

    def option_ids(self) -> list[str]:
        return [option.id for option in self.options]

    def find_option(self, option_id: str) -> Option | None:
        return next((option for option in self.options if option.id == option_id), None)

    def correct_option(self) -> Option | None:
        return next((option for option in self.options if option.is_correct), None)


@dataclass(slots=True, frozen=True)
class Schedule:
    """Availability window. The end date counts as open for its whole calendar day."""

    start: datetime | None
    end: datetime | None


@dataclass(slots=True, frozen=True)
class AssessmentDefinition:
    """A scheduled, timed set of questions. Read-only to students."""

    id: str
    name: str
    questions: tuple[Question, ...]
    schedule: Schedule
    global_active: bool
    description: str | None = None
    kind: AssessmentKind = AssessmentKind.QUIZ

    @property
    def total_seconds(self) -> int:
        """Global time budget: the sum of every per-question budget."""
        return sum(question.per_question_seconds for question in self.questions)

    @property
    def question_count(self) -> int:
        return len(self.questions)

    def find_question(self, question_id: str) -> Question | None:
        return next((question for question in self.questions if question.id == question_id), None)


@dataclass(slots=True)
class AnswerRecord:
    """The student's selection for one question. ``None`` means unanswered."""

    question_id: str
    selected_option_id: str | None = None
    time_taken_seconds: int | None = None


@dataclass(slots=True)
class Attempt:
    """One student's single run through an assessment."""

    id: str
    assessment_id: str
    student_id: str
    started_at: datetime
    status: AttemptStatus = AttemptStatus.IN_PROGRESS
    completed_at: datetime | None = None
    answers: list[AnswerRecord] = field(default_factory=list)

    @property
    def is_completed(self) -> bool:
        return self.status is AttemptStatus.COMPLETED

    def answer_for(self, question_id: str) -> AnswerRecord | None:
        return next((a for a in self.answers if a.question_id == question_id), None)


@dataclass(slots=True, frozen=True)
class StartedAttempt:
    """Server reply to a successful start: a fresh or resumed in-progress attempt."""

    attempt_id: str
    started_at: datetime
    answers: tuple[AnswerRecord, ...] = ()
