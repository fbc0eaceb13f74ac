"""Component showing the submission progress, the result, or a retryable error."""

from __future__ import annotations

from collections.abc import Callable

from PySide6.QtCore import Qt
from PySide6.QtWebEngineWidgets import QWebEngineView
from PySide6.QtWidgets import QLabel, QPushButton, QVBoxLayout, QWidget

from assessment_app.constants.ui_constants import FINALIZING_MESSAGE, RETRY_BUTTON, RETRY_HINT
from assessment_app.core.result_renderer import render_result_summary
from assessment_app.core.results import ResultSummary


class ResultPanel(QWidget):
    def __init__(self, on_retry: Callable[[], None], parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.on_retry = on_retry
        self._shown_attempt_id: str | None = None

        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout()
        self.setLayout(layout)

        self.status_label = QLabel("", self)
        self.status_label.setAlignment(Qt.AlignCenter)
        self.status_label.setWordWrap(True)
        layout.addWidget(self.status_label)

        self.result_view = QWebEngineView(self)
        layout.addWidget(self.result_view, stretch=1)

        self.retry_button = QPushButton(RETRY_BUTTON, self)
        self.retry_button.setVisible(False)
        self.retry_button.clicked.connect(lambda: self.on_retry())
        layout.addWidget(self.retry_button)

    def show_finalizing(self) -> None:
        self.status_label.setText(FINALIZING_MESSAGE)
        self.retry_button.setVisible(False)

    def show_error(self, message: str, can_retry: bool) -> None:
        self.status_label.setText(f"{message}\n{RETRY_HINT}" if can_retry else message)
        self.retry_button.setVisible(can_retry)

    def show_summary(self, summary: ResultSummary, timed_out: bool) -> None:
        self.status_label.setText("")
        self.retry_button.setVisible(False)
        if summary.attempt_id == self._shown_attempt_id:
            return
        self._shown_attempt_id = summary.attempt_id
        self.result_view.setHtml(render_result_summary(summary, timed_out=timed_out))
