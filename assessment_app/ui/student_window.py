"""Qt main window taking one student through one assessment."""

from __future__ import annotations

from enum import Enum, auto
import logging

from PySide6.QtCore import QTimer, Signal
from PySide6.QtGui import QCloseEvent
from PySide6.QtWidgets import (
    QHBoxLayout,
    QMainWindow,
    QPushButton,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from assessment_app.constants.about import APP_ABOUT_TEXT, APP_LICENSE, APP_NAME, APP_VERSION, HELP_TEXT
from assessment_app.constants.assessment_constants import TICK_INTERVAL_MS
from assessment_app.constants.ui_constants import ERROR_TITLE, NOT_FOUND_MESSAGE, WINDOW_TITLE
from assessment_app.core.availability import AccessState, Availability
from assessment_app.core.errors import AssessmentError, NotFoundError, ValidationError
from assessment_app.core.session import AttemptSession, SessionPhase, SessionSnapshot
from assessment_app.core.student_flow import StudentAssessmentFlow
from assessment_app.ui.components.attempt_panel import AttemptPanel
from assessment_app.ui.components.availability_panel import AvailabilityPanel
from assessment_app.ui.components.result_panel import ResultPanel
from assessment_app.ui.dialog_helpers import confirm_start_assessment, show_error, show_info, show_warning

logger = logging.getLogger(__name__)


class StudentMode(Enum):
    """Which panel the window is showing."""

    AVAILABILITY = auto()
    ATTEMPT = auto()
    RESULT = auto()


class StudentMainWindow(QMainWindow):
    """Main Qt window switching between availability, attempt and result panels.

    Session snapshots may be produced on worker threads; they are re-emitted
    through ``snapshot_ready`` so widgets are only touched on the GUI thread.
    """

    snapshot_ready = Signal(object)

    def __init__(self, flow: StudentAssessmentFlow, font_size: int = 14) -> None:
        super().__init__()
        self.setWindowTitle(WINDOW_TITLE)

        self.flow = flow
        self.session: AttemptSession | None = None
        self._unsubscribe = None
        self._start_error: str | None = None
        self._mode = StudentMode.AVAILABILITY
        self._font_size = font_size

        self._build_ui()
        self.snapshot_ready.connect(self._apply_snapshot)
        self._configure_tick_timer()
        self._load_assessment()

    def _build_ui(self) -> None:
        central_widget = QWidget(self)
        self.setCentralWidget(central_widget)

        root_layout = QVBoxLayout()
        central_widget.setLayout(root_layout)

        button_row = QHBoxLayout()
        button_row.addStretch()
        self.about_button = QPushButton(f"About {APP_NAME}", self)
        self.about_button.clicked.connect(self._handle_about)
        button_row.addWidget(self.about_button)
        self.help_button = QPushButton("Help", self)
        self.help_button.clicked.connect(self._handle_help)
        button_row.addWidget(self.help_button)
        root_layout.addLayout(button_row)

        self.mode_stack = QStackedWidget(self)

        self.availability_panel = AvailabilityPanel(on_start=self._handle_start, parent=self)
        self.attempt_panel = AttemptPanel(
            on_select=self._handle_select,
            on_previous=lambda: self.session and self.session.previous(),
            on_next=lambda: self.session and self.session.next(),
            on_finish=lambda: self.session and self.session.finish(),
            parent=self,
        )
        self.attempt_panel.set_font_size(self._font_size)
        self.result_panel = ResultPanel(on_retry=lambda: self.session and self.session.retry(), parent=self)

        self.mode_stack.addWidget(self.availability_panel)
        self.mode_stack.addWidget(self.attempt_panel)
        self.mode_stack.addWidget(self.result_panel)

        root_layout.addWidget(self.mode_stack)
        self._set_mode(StudentMode.AVAILABILITY)

    def _configure_tick_timer(self) -> None:
        # Single tick source: drives the session countdowns and the opening countdown.
        self.tick_timer = QTimer(self)
        self.tick_timer.setInterval(TICK_INTERVAL_MS)
        self.tick_timer.timeout.connect(self._on_tick)
        self.tick_timer.start()

    def _set_mode(self, mode: StudentMode) -> None:
        self._mode = mode
        index_map = {
            StudentMode.AVAILABILITY: 0,
            StudentMode.ATTEMPT: 1,
            StudentMode.RESULT: 2,
        }
        self.mode_stack.setCurrentIndex(index_map[mode])

    # --- Loading and availability ---

    def _load_assessment(self) -> None:
        try:
            context = self.flow.load()
        except NotFoundError:
            self.tick_timer.stop()
            self.availability_panel.set_definition(None)
            self.availability_panel.show_starting(NOT_FOUND_MESSAGE)
            self.availability_panel.start_button.setEnabled(False)
            return
        except AssessmentError as exc:
            logger.warning("Could not load assessment: %s", exc)
            show_warning(self, ERROR_TITLE, str(exc))
            self.availability_panel.show_starting(str(exc))
            return

        self.availability_panel.set_definition(context.definition)
        if context.definition is not None:
            self.attempt_panel.set_definition(context.definition)
        availability = self.flow.availability()
        self.availability_panel.update_availability(availability)
        if availability.state is AccessState.COMPLETED:
            self._open_session(confirmed_by_student=False)

    def _refresh_availability(self) -> Availability:
        availability = self.flow.availability()
        self.availability_panel.update_availability(availability, self._start_error)
        return availability

    def _on_tick(self) -> None:
        if self.session is None or self._awaiting_start_choice():
            # Nothing to re-evaluate until the assessment has loaded.
            if self.flow.context is not None:
                self._refresh_availability()
            return
        if self.session.phase is SessionPhase.IN_PROGRESS:
            self.session.tick()

    def _awaiting_start_choice(self) -> bool:
        snapshot = self.session.snapshot()
        return snapshot.phase is SessionPhase.CONFIRMED and not snapshot.starting

    # --- Session wiring ---

    def _handle_start(self) -> None:
        availability = self._refresh_availability()
        if not availability.can_start:
            return
        definition = self.flow.context.definition if self.flow.context else None
        if definition is None:
            return
        if not confirm_start_assessment(self, definition.total_seconds, definition.question_count):
            return
        self._open_session(confirmed_by_student=True)

    def _open_session(self, confirmed_by_student: bool) -> None:
        if self.session is None:
            try:
                self.session = self.flow.create_session()
            except ValidationError as exc:
                show_error(self, ERROR_TITLE, str(exc))
                return
            self._unsubscribe = self.session.subscribe(self.snapshot_ready.emit)
            self.session.confirm()
        if confirmed_by_student:
            logger.info("Student %s confirmed start of %s", self.flow.student_id, self.flow.assessment_id)
        self._start_error = None
        self.availability_panel.show_starting()
        self.session.begin()

    def _show_failed_start(self, error: str | None) -> None:
        """Return to the availability view, re-reading access so a server-side change shows up."""
        self._start_error = error
        if error:
            try:
                self.flow.load()
            except AssessmentError as exc:
                logger.warning("Could not reload assessment after failed start: %s", exc)
        self._refresh_availability()

    def _handle_select(self, option_id: str) -> None:
        if self.session is None:
            return
        try:
            self.session.select(option_id)
        except ValidationError as exc:
            logger.warning("Rejected selection %s: %s", option_id, exc)

    def _apply_snapshot(self, snapshot: SessionSnapshot) -> None:
        phase = snapshot.phase
        if phase is SessionPhase.CONFIRMED:
            self._set_mode(StudentMode.AVAILABILITY)
            if snapshot.starting:
                self.availability_panel.show_starting()
            else:
                self._show_failed_start(snapshot.error)
        elif phase is SessionPhase.IN_PROGRESS:
            self._set_mode(StudentMode.ATTEMPT)
            self.attempt_panel.update_snapshot(snapshot)
        elif phase is SessionPhase.FINALIZING:
            self._set_mode(StudentMode.RESULT)
            self.result_panel.show_finalizing()
        elif phase is SessionPhase.ERRORED:
            self._set_mode(StudentMode.RESULT)
            self.result_panel.show_error(snapshot.error or ERROR_TITLE, snapshot.can_retry)
        elif phase is SessionPhase.COMPLETED and snapshot.summary is not None:
            self._set_mode(StudentMode.RESULT)
            self.result_panel.show_summary(snapshot.summary, snapshot.timed_out)

    def closeEvent(self, event: QCloseEvent) -> None:
        self.tick_timer.stop()
        if self._unsubscribe is not None:
            self._unsubscribe()
        if self.session is not None:
            self.session.close()
        super().closeEvent(event)

    # --- Info dialogs ---

    def _handle_about(self) -> None:
        details = (
            f"{APP_NAME} v{APP_VERSION}\n"
            f"License: {APP_LICENSE}\n\n"
            f"{APP_ABOUT_TEXT}"
        )
        show_info(self, f"About {APP_NAME}", details)

    def _handle_help(self) -> None:
        show_info(self, f"{APP_NAME} Help", HELP_TEXT)
