"""Component for answering questions while the attempt is running."""

from __future__ import annotations

from collections.abc import Callable

from PySide6.QtWebEngineWidgets import QWebEngineView
from PySide6.QtWidgets import (
    QButtonGroup,
    QHBoxLayout,
    QLabel,
    QProgressBar,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from assessment_app.constants.assessment_constants import TIME_LIMIT_WARNING_WINDOW_SECONDS
from assessment_app.constants.ui_constants import FINISH_BUTTON, NEXT_BUTTON, PREVIOUS_BUTTON
from assessment_app.core.models import AssessmentDefinition
from assessment_app.core.session import SessionPhase, SessionSnapshot
from assessment_app.ui.question_renderer import render_question_with_options
from assessment_app.utils.time_format import format_duration

_WARNING_STYLE = "padding: 2px 6px; border-radius: 4px; background: #facc15; color: #111;"
_NORMAL_STYLE = "padding: 2px 6px; border-radius: 4px;"


class AttemptPanel(QWidget):
    """Question view, option buttons, both countdowns and navigation."""

    def __init__(
        self,
        on_select: Callable[[str], None],
        on_previous: Callable[[], None],
        on_next: Callable[[], None],
        on_finish: Callable[[], None],
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.on_select = on_select
        self.on_previous = on_previous
        self.on_next = on_next
        self.on_finish = on_finish

        self._definition: AssessmentDefinition | None = None
        self._font_size: int = 14
        self._rendered_key: tuple[int, str | None] | None = None
        self._option_ids: list[str] = []

        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout()
        self.setLayout(layout)

        # Timer rows
        self.global_label = QLabel("", self)
        self.global_progress = QProgressBar(self)
        self.global_progress.setTextVisible(False)
        layout.addLayout(self._timer_row(self.global_label, self.global_progress))

        self.question_label = QLabel("", self)
        self.question_progress = QProgressBar(self)
        self.question_progress.setTextVisible(False)
        layout.addLayout(self._timer_row(self.question_label, self.question_progress))

        self.question_view = QWebEngineView(self)
        layout.addWidget(self.question_view, stretch=1)

        self.options_row = QHBoxLayout()
        self.option_group = QButtonGroup(self)
        self.option_group.setExclusive(True)
        self.option_group.idClicked.connect(self._handle_option_clicked)
        layout.addLayout(self.options_row)

        nav_row = QHBoxLayout()
        self.previous_button = QPushButton(PREVIOUS_BUTTON, self)
        self.previous_button.clicked.connect(lambda: self.on_previous())
        nav_row.addWidget(self.previous_button)
        nav_row.addStretch()
        self.next_button = QPushButton(NEXT_BUTTON, self)
        self.next_button.clicked.connect(lambda: self.on_next())
        nav_row.addWidget(self.next_button)
        self.finish_button = QPushButton(FINISH_BUTTON, self)
        self.finish_button.clicked.connect(lambda: self.on_finish())
        nav_row.addWidget(self.finish_button)
        layout.addLayout(nav_row)

    def _timer_row(self, label: QLabel, progress: QProgressBar) -> QHBoxLayout:
        row = QHBoxLayout()
        label.setStyleSheet(_NORMAL_STYLE)
        row.addWidget(label)
        row.addWidget(progress, stretch=1)
        return row

    def set_definition(self, definition: AssessmentDefinition) -> None:
        self._definition = definition
        self._rendered_key = None
        self.global_progress.setRange(0, max(1, definition.total_seconds))

    def set_font_size(self, font_size: int) -> None:
        self._font_size = font_size
        self._rendered_key = None

    def update_snapshot(self, snapshot: SessionSnapshot) -> None:
        if self._definition is None:
            return
        question = self._definition.questions[snapshot.current_question_index]
        selected = snapshot.answers.get(question.id)

        key = (snapshot.current_question_index, selected)
        if key != self._rendered_key:
            if self._rendered_key is None or self._rendered_key[0] != snapshot.current_question_index:
                self._rebuild_option_buttons(snapshot.current_question_index)
            self.question_view.setHtml(
                render_question_with_options(
                    question,
                    snapshot.current_question_index + 1,
                    self._definition.question_count,
                    selected,
                    font_size=self._font_size,
                )
            )
            self._rendered_key = key

        for button_id, option_id in enumerate(self._option_ids):
            button = self.option_group.button(button_id)
            button.setChecked(option_id == selected)

        self.global_label.setText(f"Total: {format_duration(snapshot.global_seconds_remaining)}")
        self.global_progress.setValue(snapshot.global_seconds_remaining)

        self.question_progress.setRange(0, max(1, question.per_question_seconds))
        self.question_progress.setValue(snapshot.question_seconds_remaining)
        self.question_label.setText(f"Question: {format_duration(snapshot.question_seconds_remaining)}")
        warning = snapshot.question_seconds_remaining <= TIME_LIMIT_WARNING_WINDOW_SECONDS
        self.question_label.setStyleSheet(_WARNING_STYLE if warning else _NORMAL_STYLE)

        running = snapshot.phase is SessionPhase.IN_PROGRESS
        is_last = snapshot.current_question_index >= self._definition.question_count - 1
        self.previous_button.setEnabled(running and snapshot.current_question_index > 0)
        self.next_button.setEnabled(running and not is_last)
        self.finish_button.setEnabled(running)
        for button in self.option_group.buttons():
            button.setEnabled(running)

    def _rebuild_option_buttons(self, index: int) -> None:
        for button in self.option_group.buttons():
            self.option_group.removeButton(button)
            self.options_row.removeWidget(button)
            button.deleteLater()
        question = self._definition.questions[index]
        self._option_ids = [option.id for option in question.options]
        for button_id, _option in enumerate(question.options):
            button = QPushButton(chr(ord("A") + button_id), self)
            button.setCheckable(True)
            self.option_group.addButton(button, button_id)
            self.options_row.addWidget(button)

    def _handle_option_clicked(self, button_id: int) -> None:
        if 0 <= button_id < len(self._option_ids):
            self.on_select(self._option_ids[button_id])
