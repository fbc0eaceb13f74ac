"""HTML rendering of a :class:`ResultSummary`.

Used for every way a student reaches the result: finishing, timing out and
re-opening an assessment that was completed earlier. All three go through
:func:`render_result_summary` so they look the same.
"""

from __future__ import annotations

from html import escape

from assessment_app.constants.assessment_constants import SCORE_SCALE
from assessment_app.constants.ui_constants import COMPLETED_MESSAGE, TIMED_OUT_MESSAGE
from assessment_app.core.markdown_math_renderer import renderer
from assessment_app.core.results import AnswerView, QuestionResult, ResultSummary


def format_score(summary: ResultSummary) -> str:
    return f"{summary.score:.2f} / {SCORE_SCALE:.0f}"


def _answer_html(answer: AnswerView) -> str:
    html = renderer.render_inline(answer.text)
    if answer.explanation:
        html += f'<div class="explanation">{renderer.render_inline(answer.explanation)}</div>'
    return html


def _line_html(line: QuestionResult) -> str:
    if line.unanswered:
        css_class, verdict = "unanswered", "Not answered"
    elif line.is_correct:
        css_class, verdict = "correct", "Correct"
    else:
        css_class, verdict = "incorrect", "Incorrect"

    parts = [
        f'<div class="result-line {css_class}" id="result-{escape(line.question_id)}">',
        f"<h3>Question {line.order}</h3>",
        renderer.render_fragment(line.question_text),
        f'<p class="verdict"><strong>{verdict}</strong></p>',
    ]
    if line.student_answer is not None:
        parts.append(f'<p class="student-answer">Your answer: {_answer_html(line.student_answer)}</p>')
    if line.reveals_correct_answer and line.correct_answer is not None:
        parts.append(f'<p class="correct-answer">Correct answer: {_answer_html(line.correct_answer)}</p>')
    parts.append("</div>")
    return "\n".join(parts)


def render_result_fragment(summary: ResultSummary, timed_out: bool = False) -> str:
    headline = TIMED_OUT_MESSAGE if timed_out else COMPLETED_MESSAGE
    parts = [
        f'<p class="headline">{escape(headline)}</p>',
        f'<h2 class="score">Score: {format_score(summary)}</h2>',
        (
            f'<p class="counts">{summary.correct_answers} of {summary.total_questions} correct'
            f", {summary.unanswered_count} unanswered</p>"
        ),
    ]
    parts.extend(_line_html(line) for line in summary.breakdown)
    return "\n".join(parts)


def render_result_summary(summary: ResultSummary, timed_out: bool = False) -> str:
    """Full HTML document for the result view."""
    return renderer.wrap_with_mathjax(render_result_fragment(summary, timed_out), title="Result")
