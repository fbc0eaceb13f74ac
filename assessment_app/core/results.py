"""Result summary returned when an attempt is sealed."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class AnswerView:
    """An option as shown in the result breakdown."""

    option_id: str
    text: str
    explanation: str | None = None


@dataclass(slots=True, frozen=True)
class QuestionResult:
    """Per-question line of the breakdown."""

    question_id: str
    question_text: str
    order: int
    student_answer: AnswerView | None
    is_correct: bool
    correct_answer: AnswerView | None

    @property
    def unanswered(self) -> bool:
        return self.student_answer is None

    @property
    def reveals_correct_answer(self) -> bool:
        """The correct option is only shown for wrong or missing answers."""
        return not self.is_correct and self.correct_answer is not None


@dataclass(slots=True, frozen=True)
class ResultSummary:
    """Score plus breakdown. Equal summaries compare equal field by field."""

    attempt_id: str
    score: float
    total_questions: int
    correct_answers: int
    breakdown: tuple[QuestionResult, ...] = ()

    @property
    def unanswered_count(self) -> int:
        return sum(1 for line in self.breakdown if line.unanswered)
