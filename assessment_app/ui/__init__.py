"""Qt UI components for the student application."""

from .dialog_helpers import (
    confirm_start_assessment,
    show_error,
    show_info,
    show_warning,
)
from .question_renderer import render_question_with_options
from .student_window import StudentMainWindow

__all__ = [
    "StudentMainWindow",
    "confirm_start_assessment",
    "show_error",
    "show_info",
    "show_warning",
    "render_question_with_options",
]
