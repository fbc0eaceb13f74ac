"""Component showing whether the assessment can be started right now."""

from __future__ import annotations

from collections.abc import Callable

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QLabel, QPushButton, QVBoxLayout, QWidget

from assessment_app.constants.ui_constants import (
    START_BUTTON,
    STARTING_MESSAGE,
    STATE_CLOSED_EXPIRED,
    STATE_COMPLETED,
    STATE_DISABLED,
    STATE_NOT_YET_OPEN,
    STATE_OPEN,
    STATE_OPEN_OVERRIDE,
)
from assessment_app.core.availability import AccessState, Availability
from assessment_app.core.models import AssessmentDefinition
from assessment_app.utils.time_format import format_countdown, format_duration

_STATE_TEXT: dict[AccessState, str] = {
    AccessState.OPEN: STATE_OPEN,
    AccessState.OPEN_OVERRIDE: STATE_OPEN_OVERRIDE,
    AccessState.CLOSED_EXPIRED: STATE_CLOSED_EXPIRED,
    AccessState.DISABLED: STATE_DISABLED,
    AccessState.COMPLETED: STATE_COMPLETED,
}


class AvailabilityPanel(QWidget):
    """Title, description, access state and the start button."""

    def __init__(self, on_start: Callable[[], None], parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.on_start = on_start
        self._availability: Availability | None = None

        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout()
        self.setLayout(layout)

        self.title_label = QLabel("", self)
        self.title_label.setWordWrap(True)
        self.title_label.setStyleSheet("font-size: 18pt; font-weight: bold;")
        layout.addWidget(self.title_label)

        self.description_label = QLabel("", self)
        self.description_label.setWordWrap(True)
        layout.addWidget(self.description_label)

        self.budget_label = QLabel("", self)
        layout.addWidget(self.budget_label)

        layout.addStretch()

        self.state_label = QLabel("", self)
        self.state_label.setAlignment(Qt.AlignCenter)
        self.state_label.setWordWrap(True)
        self.state_label.setStyleSheet("font-size: 14pt;")
        layout.addWidget(self.state_label)

        self.start_button = QPushButton(START_BUTTON, self)
        self.start_button.setEnabled(False)
        self.start_button.clicked.connect(self._handle_start_click)
        layout.addWidget(self.start_button)

        layout.addStretch()

    def _handle_start_click(self) -> None:
        if self._availability is None or not self._availability.can_start:
            return
        self.on_start()

    def set_definition(self, definition: AssessmentDefinition | None) -> None:
        if definition is None:
            self.title_label.setText("")
            self.description_label.setText("")
            self.budget_label.setText("")
            return
        self.title_label.setText(definition.name)
        self.description_label.setText(definition.description or "")
        self.budget_label.setText(
            f"{definition.question_count} question(s), {format_duration(definition.total_seconds)} in total"
        )

    def update_availability(self, availability: Availability, error: str | None = None) -> None:
        """Show the access state; ``error`` is the reason the last start attempt failed."""
        self._availability = availability
        if availability.state is AccessState.NOT_YET_OPEN:
            text = STATE_NOT_YET_OPEN.format(countdown=format_countdown(availability.seconds_until_open))
        else:
            text = _STATE_TEXT[availability.state]
        if availability.diagnostic:
            text = f"{text}\n({availability.diagnostic})"
        if error:
            text = f"{text}\n{error}"
        self.state_label.setText(text)
        self.start_button.setEnabled(availability.can_start)
        self.start_button.setText(START_BUTTON)

    def show_starting(self, error: str | None = None) -> None:
        """Reflect a start request in flight, or the error that ended it."""
        if error:
            self.state_label.setText(error)
            self.start_button.setEnabled(True)
            self.start_button.setText(START_BUTTON)
            return
        self.state_label.setText(STARTING_MESSAGE)
        self.start_button.setEnabled(False)
