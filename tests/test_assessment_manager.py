from __future__ import annotations

from dataclasses import replace

import pytest

from assessment_app.core.availability import AccessState
from assessment_app.core.errors import (
    AccessDeniedError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from assessment_app.core.models import AnswerRecord, Option, Question
from assessment_app.core.services.grader import compute_score, grade_attempt

from conftest import STUDENT_ID, build_definition


def test_start_twice_returns_the_same_attempt(manager, definition) -> None:
    first = manager.start_attempt(definition.id, STUDENT_ID)
    second = manager.start_attempt(definition.id, STUDENT_ID)
    assert first.id == second.id
    assert first.started_at == second.started_at


def test_each_student_gets_their_own_attempt(manager, definition) -> None:
    first = manager.start_attempt(definition.id, STUDENT_ID)
    other = manager.start_attempt(definition.id, "student-2")
    assert first.id != other.id


def test_new_attempt_requires_open_window(manager, definition, clock) -> None:
    clock.advance(60 * 60 * 24 * 7)
    with pytest.raises(AccessDeniedError):
        manager.start_attempt(definition.id, STUDENT_ID)

    manager.set_student_access(definition.id, STUDENT_ID, True)
    assert manager.availability_for(definition.id, STUDENT_ID).state is AccessState.OPEN_OVERRIDE
    assert manager.start_attempt(definition.id, STUDENT_ID).student_id == STUDENT_ID


def test_in_progress_attempt_resumes_after_deactivation(manager, definition) -> None:
    attempt = manager.start_attempt(definition.id, STUDENT_ID)
    manager.set_global_active(definition.id, False)
    assert manager.start_attempt(definition.id, STUDENT_ID).id == attempt.id


def test_unknown_assessment_is_not_found(manager) -> None:
    with pytest.raises(NotFoundError):
        manager.start_attempt("nope", STUDENT_ID)
    with pytest.raises(NotFoundError):
        manager.get_definition("nope")
    with pytest.raises(NotFoundError):
        manager.finalize_attempt("no-such-attempt")


def test_answers_are_last_write_wins(manager, definition) -> None:
    attempt = manager.start_attempt(definition.id, STUDENT_ID)
    manager.record_answer(attempt.id, "q1", "q1-b", 3)
    manager.record_answer(attempt.id, "q1", "q1-a", 5)

    stored = manager.get_attempt(attempt.id)
    assert len(stored.answers) == 1
    assert stored.answer_for("q1").selected_option_id == "q1-a"
    assert stored.answer_for("q1").time_taken_seconds == 5


def test_answer_validation(manager, definition) -> None:
    attempt = manager.start_attempt(definition.id, STUDENT_ID)
    with pytest.raises(ValidationError):
        manager.record_answer(attempt.id, "q1", "q2-a", 3)
    with pytest.raises(NotFoundError):
        manager.record_answer(attempt.id, "q9", "q9-a", 3)


def test_finalize_twice_returns_identical_summary(manager, definition) -> None:
    attempt = manager.start_attempt(definition.id, STUDENT_ID)
    manager.record_answer(attempt.id, "q1", "q1-a", 4)
    manager.record_answer(attempt.id, "q2", "q2-a", 6)

    first, first_flag = manager.finalize_attempt(attempt.id)
    second, second_flag = manager.finalize_attempt(attempt.id)

    assert first == second
    assert (first_flag, second_flag) == (False, True)
    assert first.correct_answers == 2
    assert first.score == pytest.approx(3.33)
    assert manager.get_attempt(attempt.id).is_completed


def test_completed_attempt_cannot_be_restarted_or_answered(manager, definition) -> None:
    attempt = manager.start_attempt(definition.id, STUDENT_ID)
    summary, _ = manager.finalize_attempt(attempt.id)

    with pytest.raises(ConflictError) as start_error:
        manager.start_attempt(definition.id, STUDENT_ID)
    assert start_error.value.summary == summary
    assert start_error.value.attempt_id == attempt.id

    with pytest.raises(ConflictError) as answer_error:
        manager.record_answer(attempt.id, "q1", "q1-a", 1)
    assert answer_error.value.summary == summary

    assert manager.availability_for(definition.id, STUDENT_ID).state is AccessState.COMPLETED


def test_finalize_spends_the_reactivation(manager, definition) -> None:
    manager.set_student_access(definition.id, STUDENT_ID, True)
    attempt = manager.start_attempt(definition.id, STUDENT_ID)
    manager.finalize_attempt(attempt.id)
    assert manager.check_access(definition.id, STUDENT_ID) is False


def test_finalize_leaves_students_without_override_alone(manager, definition) -> None:
    attempt = manager.start_attempt(definition.id, STUDENT_ID)
    manager.finalize_attempt(attempt.id)
    assert manager.check_access(definition.id, STUDENT_ID) is None


def test_instructor_access_controls(manager, definition) -> None:
    manager.set_student_access(definition.id, "student-2", False)
    manager.set_student_access(definition.id, "student-3", True)
    statuses = manager.get_student_statuses(definition.id, [STUDENT_ID, "student-2", "student-3"])
    assert statuses == {STUDENT_ID: None, "student-2": False, "student-3": True}

    assert manager.availability_for(definition.id, "student-2").state is AccessState.DISABLED
    manager.clear_student_access(definition.id, "student-2")
    assert manager.check_access(definition.id, "student-2") is None

    with pytest.raises(NotFoundError):
        manager.set_student_access("nope", STUDENT_ID, True)


def test_global_toggle_replaces_definition(manager, definition) -> None:
    updated = manager.set_global_active(definition.id, False)
    assert not updated.global_active
    assert not manager.get_definition(definition.id).global_active
    assert manager.availability_for(definition.id, STUDENT_ID).state is AccessState.DISABLED


def test_invalid_definitions_are_rejected(manager) -> None:
    broken = build_definition((5,), assessment_id="too-fast")
    with pytest.raises(ValidationError):
        manager.add_definition(broken)

    two_correct = Question(
        id="q1",
        text="Pick",
        per_question_seconds=30,
        options=(Option(id="a", text="A", is_correct=True), Option(id="b", text="B", is_correct=True)),
    )
    double = replace(build_definition(), id="double", questions=(two_correct,))
    with pytest.raises(ValidationError):
        manager.add_definition(double)


def test_grading_breakdown_reveals_correct_answer_only_when_wrong() -> None:
    definition = build_definition((30, 30, 30))
    summary = grade_attempt(
        definition,
        "attempt-x",
        [
            AnswerRecord(question_id="q1", selected_option_id="q1-a"),
            AnswerRecord(question_id="q2", selected_option_id="q2-b"),
        ],
    )
    first, second, third = summary.breakdown
    assert first.is_correct and not first.reveals_correct_answer
    assert not second.is_correct and second.reveals_correct_answer
    assert second.correct_answer.option_id == "q2-a"
    assert third.unanswered and third.reveals_correct_answer
    assert [line.order for line in summary.breakdown] == [1, 2, 3]


@pytest.mark.parametrize(
    ("correct", "total", "expected"),
    [(0, 3, 0.0), (1, 3, 1.67), (2, 3, 3.33), (3, 3, 5.0), (0, 0, 0.0)],
)
def test_score_is_scaled_to_five(correct: int, total: int, expected: float) -> None:
    assert compute_score(correct, total) == pytest.approx(expected)
