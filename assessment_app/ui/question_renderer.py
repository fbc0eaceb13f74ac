"""Question rendering utilities for displaying assessment questions."""

from __future__ import annotations

from assessment_app.core.markdown_math_renderer import DEFAULT_FONT_SIZE_PT, renderer
from assessment_app.core.models import Question


def render_question_with_options(
    question: Question,
    number: int,
    total: int,
    selected_option_id: str | None = None,
    font_size: int = DEFAULT_FONT_SIZE_PT,
) -> str:
    """Render a question with its lettered options as HTML.

    Args:
        question: The question (text supports Markdown and LaTeX)
        number: 1-based position shown in the heading
        total: Number of questions in the assessment
        selected_option_id: Option to mark as the current selection
        font_size: Font size in points for the question text

    Returns:
        HTML string ready for display in QWebEngineView
    """
    markdown_lines = [f"### Question {number} of {total}", question.text.strip() or "(No question text)", ""]
    if question.attachment_url:
        markdown_lines.append(f"[Attachment]({question.attachment_url})")
    for idx, option in enumerate(question.options):
        letter = chr(ord("A") + idx)
        marker = " ✔" if option.id == selected_option_id else ""
        markdown_lines.append(f"**{letter}.** {option.text or '(empty)'}{marker}")
    markdown = "\n\n".join(markdown_lines)
    return renderer.render_full_document(markdown, font_size=font_size)
