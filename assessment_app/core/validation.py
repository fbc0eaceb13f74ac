"""Authoring invariants checked before a definition is accepted."""

from __future__ import annotations

from assessment_app.constants.assessment_constants import (
    MIN_OPTIONS_PER_QUESTION,
    MIN_QUESTION_SECONDS,
)
from assessment_app.core.errors import ValidationError
from assessment_app.core.models import AssessmentDefinition, Question


def validate_question(question: Question) -> Question:
    """Return ``question`` unchanged or raise :class:`ValidationError`."""
    if not question.id:
        raise ValidationError("Question id must not be empty.")
    if not question.text.strip():
        raise ValidationError(f"Question {question.id} has no text.")
    if not isinstance(question.per_question_seconds, int) or isinstance(question.per_question_seconds, bool):
        raise ValidationError(f"Question {question.id} time limit must be an integer number of seconds.")
    if question.per_question_seconds < MIN_QUESTION_SECONDS:
        raise ValidationError(
            f"Question {question.id} time limit must be at least {MIN_QUESTION_SECONDS} seconds."
        )
    if len(question.options) < MIN_OPTIONS_PER_QUESTION:
        raise ValidationError(
            f"Question {question.id} needs at least {MIN_OPTIONS_PER_QUESTION} options."
        )
    option_ids = question.option_ids()
    if len(set(option_ids)) != len(option_ids):
        raise ValidationError(f"Question {question.id} has duplicate option ids.")
    if any(not option.text.strip() for option in question.options):
        raise ValidationError(f"Question {question.id} has an empty option.")
    correct_count = sum(1 for option in question.options if option.is_correct)
    if correct_count != 1:
        raise ValidationError(
            f"Question {question.id} must have exactly one correct option (found {correct_count})."
        )
    return question


def validate_definition(definition: AssessmentDefinition) -> AssessmentDefinition:
    """Validate every question and the uniqueness of question ids."""
    if not definition.id:
        raise ValidationError("Assessment id must not be empty.")
    if not definition.questions:
        raise ValidationError(f"Assessment {definition.id} has no questions.")
    question_ids = [question.id for question in definition.questions]
    if len(set(question_ids)) != len(question_ids):
        raise ValidationError(f"Assessment {definition.id} has duplicate question ids.")
    for question in definition.questions:
        validate_question(question)
    return definition
