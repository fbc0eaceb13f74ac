"""State machine driving one student's run through one assessment.

Phases: IDLE -> CONFIRMED -> IN_PROGRESS -> FINALIZING -> COMPLETED | ERRORED.

Every input (timer ticks, student actions, network completions) is posted
as an event and applied by a single drain loop under one re-entrant lock,
so no two inputs ever mutate the session concurrently. Network calls run on
an executor and report back by posting events; ticking never waits on them.

The two countdowns are logical clocks decremented once per ``tick()``:

* the global budget, the sum of all per-question budgets, fixed at
  confirmation;
* the per-question budget, reset whenever the active question changes.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Mapping
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, auto
import logging
import math
from threading import RLock

from assessment_app.constants.assessment_constants import (
    ANSWER_PERSIST_ATTEMPTS,
    ANSWER_PERSIST_BACKOFF_SECONDS,
    IO_WORKER_COUNT,
)
from assessment_app.core.errors import (
    AssessmentError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from assessment_app.core.gateway import AssessmentGateway
from assessment_app.core.ledger import AnswerLedger
from assessment_app.core.models import AnswerRecord, AssessmentDefinition, Question, StartedAttempt
from assessment_app.core.results import ResultSummary

logger = logging.getLogger(__name__)


class SessionPhase(str, Enum):
    IDLE = "idle"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    ERRORED = "errored"


@dataclass(slots=True, frozen=True)
class SessionSnapshot:
    """Everything the UI needs to draw the session at one instant."""

    phase: SessionPhase
    global_seconds_remaining: int
    question_seconds_remaining: int
    current_question_index: int
    answers: Mapping[str, str | None] = field(default_factory=dict)
    timed_out: bool = False
    starting: bool = False
    attempt_id: str | None = None
    summary: ResultSummary | None = None
    error: str | None = None
    can_retry: bool = False
    max_visited_index: int = 0


SessionListener = Callable[[SessionSnapshot], None]


class _EventKind(Enum):
    CONFIRM = auto()
    BEGIN = auto()
    TICK = auto()
    SELECT = auto()
    NEXT = auto()
    PREVIOUS = auto()
    GO_TO = auto()
    FINISH = auto()
    RETRY = auto()
    CLOSE = auto()
    STARTED = auto()
    START_CONFLICT = auto()
    START_FAILED = auto()
    FINALIZED = auto()
    FINALIZE_FAILED = auto()


@dataclass(slots=True, frozen=True)
class _Event:
    kind: _EventKind
    option_id: str | None = None
    index: int | None = None
    started: StartedAttempt | None = None
    conflict: ConflictError | None = None
    summary: ResultSummary | None = None
    error: AssessmentError | None = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AttemptSession:
    """Runs one attempt against an :class:`AssessmentGateway`."""

    def __init__(
        self,
        definition: AssessmentDefinition,
        student_id: str,
        gateway: AssessmentGateway,
        *,
        executor: Executor | None = None,
        clock: Callable[[], datetime] = _utcnow,
        persist_attempts: int = ANSWER_PERSIST_ATTEMPTS,
        persist_backoff_seconds: float = ANSWER_PERSIST_BACKOFF_SECONDS,
    ) -> None:
        if not definition.questions:
            raise ValidationError(f"Assessment {definition.id} has no questions.")
        self._definition = definition
        self._student_id = student_id
        self._gateway = gateway
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=IO_WORKER_COUNT,
            thread_name_prefix="assessment-io",
        )
        self._clock = clock
        self._persist_attempts = persist_attempts
        self._persist_backoff_seconds = persist_backoff_seconds

        self._lock = RLock()
        self._events: deque[_Event] = deque()
        self._draining = False
        self._listeners: list[SessionListener] = []

        self._phase = SessionPhase.IDLE
        self._global_budget = definition.total_seconds
        self._global_remaining = self._global_budget
        self._question_remaining = definition.questions[0].per_question_seconds
        self._index = 0
        self._max_visited = 0
        self._timed_out = False
        self._starting = False
        self._closed = False
        self._attempt_id: str | None = None
        self._ledger: AnswerLedger | None = None
        self._summary: ResultSummary | None = None
        self._error: str | None = None
        self._can_retry = False

    # --- Read access ---

    @property
    def definition(self) -> AssessmentDefinition:
        return self._definition

    @property
    def phase(self) -> SessionPhase:
        with self._lock:
            return self._phase

    @property
    def global_budget(self) -> int:
        return self._global_budget

    @property
    def current_question(self) -> Question:
        with self._lock:
            return self._definition.questions[self._index]

    @property
    def summary(self) -> ResultSummary | None:
        with self._lock:
            return self._summary

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return self._snapshot_locked()

    def answers(self) -> list[AnswerRecord]:
        """One record per question in order; unanswered questions have no selection."""
        with self._lock:
            if self._ledger is None:
                return [AnswerRecord(question_id=q.id) for q in self._definition.questions]
            return self._ledger.records(self._definition)

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register ``listener`` for snapshots; returns a function that unregisters it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # --- Inputs ---

    def confirm(self) -> None:
        self._post(_Event(_EventKind.CONFIRM))

    def begin(self) -> None:
        self._post(_Event(_EventKind.BEGIN))

    def tick(self) -> None:
        """Advance both countdowns by one second."""
        self._post(_Event(_EventKind.TICK))

    def select(self, option_id: str) -> None:
        with self._lock:
            if self._phase is SessionPhase.IN_PROGRESS:
                question = self._definition.questions[self._index]
                if question.find_option(option_id) is None:
                    raise ValidationError(f"Option {option_id} does not belong to question {question.id}.")
            self._post(_Event(_EventKind.SELECT, option_id=option_id))

    def next(self) -> None:
        self._post(_Event(_EventKind.NEXT))

    def previous(self) -> None:
        self._post(_Event(_EventKind.PREVIOUS))

    def go_to(self, index: int) -> None:
        self._post(_Event(_EventKind.GO_TO, index=index))

    def finish(self) -> None:
        self._post(_Event(_EventKind.FINISH))

    def retry(self) -> None:
        self._post(_Event(_EventKind.RETRY))

    def close(self) -> None:
        """Stop the timers and drop in-flight writes. The attempt is not finalized."""
        self._post(_Event(_EventKind.CLOSE))

    # --- Event loop ---

    def _post(self, event: _Event) -> None:
        with self._lock:
            self._events.append(event)
            if self._draining:
                return
            self._draining = True
            try:
                while self._events:
                    self._apply(self._events.popleft())
            finally:
                self._draining = False
            snapshot = self._snapshot_locked()
            for listener in list(self._listeners):
                listener(snapshot)

    def _apply(self, event: _Event) -> None:
        if self._closed:
            logger.debug("Ignoring %s on closed session", event.kind.name)
            return
        handler = self._handlers()[event.kind]
        handler(event)

    def _handlers(self) -> dict[_EventKind, Callable[[_Event], None]]:
        return {
            _EventKind.CONFIRM: self._on_confirm,
            _EventKind.BEGIN: self._on_begin,
            _EventKind.TICK: self._on_tick,
            _EventKind.SELECT: self._on_select,
            _EventKind.NEXT: self._on_next,
            _EventKind.PREVIOUS: self._on_previous,
            _EventKind.GO_TO: self._on_go_to,
            _EventKind.FINISH: self._on_finish,
            _EventKind.RETRY: self._on_retry,
            _EventKind.CLOSE: self._on_close,
            _EventKind.STARTED: self._on_started,
            _EventKind.START_CONFLICT: self._on_start_conflict,
            _EventKind.START_FAILED: self._on_start_failed,
            _EventKind.FINALIZED: self._on_finalized,
            _EventKind.FINALIZE_FAILED: self._on_finalize_failed,
        }

    # --- Handlers ---

    def _on_confirm(self, event: _Event) -> None:
        if self._phase is not SessionPhase.IDLE:
            return
        self._global_remaining = self._global_budget
        self._question_remaining = self._definition.questions[0].per_question_seconds
        self._phase = SessionPhase.CONFIRMED
        logger.info("Assessment %s confirmed, budget %ss", self._definition.id, self._global_budget)

    def _on_begin(self, event: _Event) -> None:
        if self._phase is not SessionPhase.CONFIRMED or self._starting:
            return
        self._starting = True
        self._error = None
        self._submit(self._run_start)

    def _on_started(self, event: _Event) -> None:
        started = event.started
        if started is None or self._phase is not SessionPhase.CONFIRMED:
            return
        self._starting = False
        self._attempt_id = started.attempt_id
        self._ledger = AnswerLedger(
            started.attempt_id,
            self._gateway.answer,
            self._executor,
            max_attempts=self._persist_attempts,
            backoff_seconds=self._persist_backoff_seconds,
        )
        self._ledger.seed(started.answers)

        elapsed = max(0, math.floor((self._clock() - started.started_at).total_seconds()))
        self._global_remaining = max(0, self._global_budget - elapsed)
        resume_index = self._last_answered_index(started.answers)
        self._max_visited = resume_index
        self._move_to(resume_index)
        self._phase = SessionPhase.IN_PROGRESS
        logger.info(
            "Attempt %s in progress at question %d, %ss left",
            started.attempt_id,
            resume_index + 1,
            self._global_remaining,
        )
        if self._global_remaining == 0:
            self._begin_finalize(timed_out=True)

    def _on_start_conflict(self, event: _Event) -> None:
        conflict = event.conflict
        self._starting = False
        if conflict is None or conflict.summary is None:
            self._fail("The attempt is completed but its result could not be loaded.", can_retry=False)
            return
        self._attempt_id = conflict.attempt_id
        self._summary = conflict.summary
        self._phase = SessionPhase.COMPLETED
        logger.info("Attempt %s was already completed; showing stored result", conflict.attempt_id)

    def _on_start_failed(self, event: _Event) -> None:
        self._starting = False
        if isinstance(event.error, NotFoundError):
            self._fail(str(event.error), can_retry=False)
            return
        # Stay confirmed so the student can press start again.
        self._error = str(event.error)
        logger.warning("Could not start attempt for %s: %s", self._definition.id, event.error)

    def _on_tick(self, event: _Event) -> None:
        if self._phase is not SessionPhase.IN_PROGRESS:
            return
        self._global_remaining = max(0, self._global_remaining - 1)
        self._question_remaining = max(0, self._question_remaining - 1)
        if self._global_remaining == 0:
            logger.info("Global deadline reached for attempt %s", self._attempt_id)
            self._begin_finalize(timed_out=True)
        elif self._question_remaining == 0:
            if self._is_last_question():
                self._begin_finalize(timed_out=False)
            else:
                self._move_to(self._index + 1)

    def _on_select(self, event: _Event) -> None:
        if self._phase is not SessionPhase.IN_PROGRESS or self._ledger is None or event.option_id is None:
            return
        question = self._definition.questions[self._index]
        self._ledger.record(question, event.option_id, self._question_remaining)

    def _on_next(self, event: _Event) -> None:
        if self._phase is not SessionPhase.IN_PROGRESS:
            return
        if self._is_last_question():
            self._begin_finalize(timed_out=False)
        else:
            self._move_to(self._index + 1)

    def _on_previous(self, event: _Event) -> None:
        if self._phase is SessionPhase.IN_PROGRESS and self._index > 0:
            self._move_to(self._index - 1)

    def _on_go_to(self, event: _Event) -> None:
        if self._phase is not SessionPhase.IN_PROGRESS or event.index is None:
            return
        if 0 <= event.index <= self._max_visited and event.index != self._index:
            self._move_to(event.index)

    def _on_finish(self, event: _Event) -> None:
        if self._phase is SessionPhase.IN_PROGRESS:
            self._begin_finalize(timed_out=False)

    def _on_retry(self, event: _Event) -> None:
        if self._phase is not SessionPhase.ERRORED or not self._can_retry or self._ledger is None:
            return
        logger.info("Retrying finalize for attempt %s", self._attempt_id)
        self._begin_finalize(timed_out=self._timed_out)

    def _on_close(self, event: _Event) -> None:
        self._closed = True
        if self._ledger is not None:
            self._ledger.abandon()
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)
        logger.info("Session for %s closed in phase %s", self._definition.id, self._phase.value)

    def _on_finalized(self, event: _Event) -> None:
        if self._phase is SessionPhase.COMPLETED:
            return
        self._summary = event.summary
        self._error = None
        self._can_retry = False
        self._phase = SessionPhase.COMPLETED
        logger.info("Attempt %s completed (timed out: %s)", self._attempt_id, self._timed_out)

    def _on_finalize_failed(self, event: _Event) -> None:
        if self._phase is not SessionPhase.FINALIZING:
            return
        logger.error("Finalize failed for attempt %s: %s", self._attempt_id, event.error)
        self._fail(str(event.error), can_retry=not isinstance(event.error, NotFoundError))

    # --- Helpers ---

    def _move_to(self, index: int) -> None:
        self._index = index
        self._max_visited = max(self._max_visited, index)
        self._question_remaining = self._definition.questions[index].per_question_seconds

    def _is_last_question(self) -> bool:
        return self._index >= len(self._definition.questions) - 1

    def _last_answered_index(self, answers: tuple[AnswerRecord, ...]) -> int:
        answered = {a.question_id for a in answers if a.selected_option_id is not None}
        indices = [i for i, q in enumerate(self._definition.questions) if q.id in answered]
        return max(indices, default=0)

    def _begin_finalize(self, timed_out: bool) -> None:
        self._timed_out = self._timed_out or timed_out
        self._phase = SessionPhase.FINALIZING
        self._error = None
        self._can_retry = False
        self._submit(self._run_finalize, self._attempt_id, self._ledger)

    def _fail(self, message: str, can_retry: bool) -> None:
        self._phase = SessionPhase.ERRORED
        self._error = message
        self._can_retry = can_retry

    def _submit(self, fn: Callable[..., None], *args: object) -> None:
        future = self._executor.submit(fn, *args)
        future.add_done_callback(_log_unexpected_failure)

    def _snapshot_locked(self) -> SessionSnapshot:
        selections = self._ledger.selections() if self._ledger else {}
        return SessionSnapshot(
            phase=self._phase,
            global_seconds_remaining=self._global_remaining,
            question_seconds_remaining=self._question_remaining,
            current_question_index=self._index,
            answers={q.id: selections.get(q.id) for q in self._definition.questions},
            timed_out=self._timed_out,
            starting=self._starting,
            attempt_id=self._attempt_id,
            summary=self._summary,
            error=self._error,
            can_retry=self._can_retry,
            max_visited_index=self._max_visited,
        )

    # --- Executor jobs (run off the event loop) ---

    def _run_start(self) -> None:
        try:
            started = self._gateway.start(self._definition.id, self._student_id)
        except ConflictError as exc:
            self._post(_Event(_EventKind.START_CONFLICT, conflict=self._with_summary(exc)))
            return
        except AssessmentError as exc:
            self._post(_Event(_EventKind.START_FAILED, error=exc))
            return
        self._post(_Event(_EventKind.STARTED, started=started))

    def _with_summary(self, conflict: ConflictError) -> ConflictError:
        """Completed attempts reported without a summary are fetched through finalize."""
        if conflict.summary is not None or conflict.attempt_id is None:
            return conflict
        try:
            summary = self._gateway.finalize(conflict.attempt_id)
        except ConflictError as exc:
            summary = exc.summary
        except AssessmentError as exc:
            logger.warning("Could not load stored result for %s: %s", conflict.attempt_id, exc)
            return conflict
        return ConflictError(str(conflict), attempt_id=conflict.attempt_id, summary=summary)

    def _run_finalize(self, attempt_id: str | None, ledger: AnswerLedger | None) -> None:
        if attempt_id is None or ledger is None:
            self._post(_Event(_EventKind.FINALIZE_FAILED, error=AssessmentError("No attempt to finalize.")))
            return
        try:
            ledger.flush()
            summary = self._gateway.finalize(attempt_id)
        except ConflictError as exc:
            if exc.summary is None:
                self._post(_Event(_EventKind.FINALIZE_FAILED, error=exc))
            else:
                self._post(_Event(_EventKind.FINALIZED, summary=exc.summary))
            return
        except AssessmentError as exc:
            self._post(_Event(_EventKind.FINALIZE_FAILED, error=exc))
            return
        self._post(_Event(_EventKind.FINALIZED, summary=summary))


def _log_unexpected_failure(future: Future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.error("Background assessment job failed", exc_info=exc)
