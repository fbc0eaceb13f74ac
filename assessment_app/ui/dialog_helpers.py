"""Helper functions for common dialog patterns in the student UI."""

from __future__ import annotations

from PySide6.QtGui import QFont
from PySide6.QtWidgets import QMessageBox, QWidget

from assessment_app.constants.ui_constants import CONFIRM_START_TEMPLATE, CONFIRM_START_TITLE
from assessment_app.utils.time_format import format_duration


def _apply_optional_font(widget: QWidget, font_point_size: int | None) -> None:
    """Apply font size to a widget when requested."""
    if font_point_size is None or font_point_size <= 0:
        return

    font: QFont = widget.font()
    font.setPointSize(font_point_size)
    widget.setFont(font)


def confirm_start_assessment(parent: QWidget, total_seconds: int, question_count: int) -> bool:
    """Ask the student to confirm before the timers begin.

    Args:
        parent: Parent widget for the dialog
        total_seconds: Global time budget of the attempt
        question_count: Number of questions in the assessment

    Returns:
        True if the student confirmed, False otherwise
    """
    reply = QMessageBox.question(
        parent,
        CONFIRM_START_TITLE,
        CONFIRM_START_TEMPLATE.format(duration=format_duration(total_seconds), count=question_count),
        QMessageBox.Yes | QMessageBox.No,
        QMessageBox.No
    )
    return reply == QMessageBox.Yes


def show_error(parent: QWidget, title: str, message: str) -> None:
    QMessageBox.critical(parent, title, message)


def show_info(
    parent: QWidget,
    title: str,
    message: str,
    *,
    font_point_size: int | None = None,
) -> None:
    """Show information dialog.

    Args:
        parent: Parent widget for the dialog
        title: Dialog title
        message: Information message
    """
    msg_box = QMessageBox(parent)
    msg_box.setIcon(QMessageBox.Information)
    msg_box.setWindowTitle(title)
    msg_box.setText(message)
    msg_box.setStandardButtons(QMessageBox.Ok)
    _apply_optional_font(msg_box, font_point_size)
    msg_box.exec()


def show_warning(parent: QWidget, title: str, message: str) -> None:
    QMessageBox.warning(parent, title, message)
