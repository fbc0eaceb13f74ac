"""Service for turning a sealed attempt into a scored result summary."""

from __future__ import annotations

from assessment_app.constants.assessment_constants import SCORE_DECIMALS, SCORE_SCALE
from assessment_app.core.models import AnswerRecord, AssessmentDefinition, Option
from assessment_app.core.results import AnswerView, QuestionResult, ResultSummary


def compute_score(correct_answers: int, total_questions: int) -> float:
    """Scale the share of correct answers to ``SCORE_SCALE``."""
    if total_questions <= 0:
        return 0.0
    return round((correct_answers / total_questions) * SCORE_SCALE, SCORE_DECIMALS)


def grade_attempt(
    definition: AssessmentDefinition,
    attempt_id: str,
    answers: list[AnswerRecord],
) -> ResultSummary:
    """Build the summary for ``answers``; questions without a record are unanswered."""
    selected = {
        record.question_id: record.selected_option_id
        for record in answers
        if record.selected_option_id is not None
    }

    breakdown: list[QuestionResult] = []
    correct_count = 0
    for order, question in enumerate(definition.questions, start=1):
        chosen = question.find_option(selected[question.id]) if question.id in selected else None
        correct = question.correct_option()
        is_correct = chosen is not None and chosen.is_correct
        if is_correct:
            correct_count += 1
        breakdown.append(
            QuestionResult(
                question_id=question.id,
                question_text=question.text,
                order=order,
                student_answer=_view(chosen),
                is_correct=is_correct,
                correct_answer=_view(correct),
            )
        )

    total = definition.question_count
    return ResultSummary(
        attempt_id=attempt_id,
        score=compute_score(correct_count, total),
        total_questions=total,
        correct_answers=correct_count,
        breakdown=tuple(breakdown),
    )


def _view(option: Option | None) -> AnswerView | None:
    if option is None:
        return None
    return AnswerView(option_id=option.id, text=option.text, explanation=option.explanation)
