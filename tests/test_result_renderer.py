from __future__ import annotations

import pytest

from assessment_app.constants.ui_constants import COMPLETED_MESSAGE, TIMED_OUT_MESSAGE
from assessment_app.core.models import AnswerRecord
from assessment_app.core.result_renderer import format_score, render_result_fragment, render_result_summary
from assessment_app.core.services.grader import grade_attempt
from assessment_app.utils.time_format import format_countdown, format_duration

from conftest import build_definition


@pytest.fixture()
def summary():
    definition = build_definition((30, 30, 30))
    return grade_attempt(
        definition,
        "attempt-1",
        [
            AnswerRecord(question_id="q1", selected_option_id="q1-a"),
            AnswerRecord(question_id="q2", selected_option_id="q2-b"),
        ],
    )


def test_fragment_lists_every_question_with_its_verdict(summary) -> None:
    html = render_result_fragment(summary)
    assert COMPLETED_MESSAGE in html
    assert "Score: 1.67 / 5" in html
    assert "1 of 3 correct, 1 unanswered" in html
    assert html.count('class="result-line correct"') == 1
    assert html.count('class="result-line incorrect"') == 1
    assert html.count('class="result-line unanswered"') == 1


def test_correct_answer_only_revealed_for_wrong_or_missing_answers(summary) -> None:
    html = render_result_fragment(summary)
    first, second, third = html.split('<div class="result-line')[1:]
    assert "Correct answer:" not in first
    assert "Your answer: Wrong 2" in second
    assert "Correct answer: Right 2" in second
    assert "Your answer:" not in third
    assert "Correct answer: Right 3" in third
    assert 'class="explanation">Because.' in third


def test_timed_out_summary_differs_only_in_headline(summary) -> None:
    finished = render_result_fragment(summary, timed_out=False)
    timed_out = render_result_fragment(summary, timed_out=True)
    assert TIMED_OUT_MESSAGE in timed_out
    assert timed_out.replace(TIMED_OUT_MESSAGE, COMPLETED_MESSAGE) == finished


def test_full_document_loads_mathjax(summary) -> None:
    document = render_result_summary(summary)
    assert document.startswith("<!doctype html>")
    assert "mathjax" in document
    assert format_score(summary) == "1.67 / 5"


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [(0, "0:00"), (95, "1:35"), (3600, "1:00:00"), (-4, "0:00")],
)
def test_format_duration(seconds: int, expected: str) -> None:
    assert format_duration(seconds) == expected


def test_format_countdown_shows_days() -> None:
    assert format_countdown(86400 + 61) == "1d 1:01"
    assert format_countdown(59) == "0:59"
