"""Local record of the student's selections with opportunistic remote persistence.

Every selection is applied locally first so the UI reacts immediately. The
remote write is submitted to an executor and never blocks the caller; its
failures are logged and left for :meth:`AnswerLedger.flush`, which is the
durability backstop run right before an attempt is finalized.
"""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import Executor
from dataclasses import dataclass
import logging
from threading import Lock
import time

from assessment_app.constants.assessment_constants import (
    ANSWER_PERSIST_ATTEMPTS,
    ANSWER_PERSIST_BACKOFF_SECONDS,
)
from assessment_app.core.errors import AssessmentError, NetworkError, ValidationError
from assessment_app.core.models import AnswerRecord, AssessmentDefinition, Question

logger = logging.getLogger(__name__)

AnswerWriter = Callable[[str, str, str, "int | None"], None]


@dataclass(slots=True)
class LedgerEntry:
    """Current selection for one question and how much of it the server has seen."""

    question_id: str
    option_id: str
    time_taken_seconds: int | None
    revision: int
    persisted_revision: int = 0

    @property
    def is_persisted(self) -> bool:
        return self.persisted_revision >= self.revision


class AnswerLedger:
    """Single-selection answer store for one attempt."""

    def __init__(
        self,
        attempt_id: str,
        writer: AnswerWriter,
        executor: Executor,
        *,
        max_attempts: int = ANSWER_PERSIST_ATTEMPTS,
        backoff_seconds: float = ANSWER_PERSIST_BACKOFF_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._attempt_id = attempt_id
        self._writer = writer
        self._executor = executor
        self._max_attempts = max(1, max_attempts)
        self._backoff_seconds = backoff_seconds
        self._sleep = sleep
        self._lock = Lock()
        self._entries: dict[str, LedgerEntry] = {}
        self._write_locks: dict[str, Lock] = {}
        self._abandoned = False

    @property
    def attempt_id(self) -> str:
        return self._attempt_id

    def record(self, question: Question, option_id: str, seconds_remaining: int | None) -> AnswerRecord:
        """Store ``option_id`` for ``question`` and schedule its remote write.

        ``seconds_remaining`` is ``None`` when the question timer is unknown;
        the answer is then stored without a time taken.
        """
        if question.find_option(option_id) is None:
            raise ValidationError(f"Option {option_id} does not belong to question {question.id}.")
        time_taken = None if seconds_remaining is None else max(0, question.per_question_seconds - seconds_remaining)
        with self._lock:
            previous = self._entries.get(question.id)
            revision = previous.revision + 1 if previous else 1
            persisted_revision = previous.persisted_revision if previous else 0
            self._entries[question.id] = LedgerEntry(
                question_id=question.id,
                option_id=option_id,
                time_taken_seconds=time_taken,
                revision=revision,
                persisted_revision=persisted_revision,
            )
            abandoned = self._abandoned
        if not abandoned:
            self._executor.submit(self._persist_in_background, question.id)
        return AnswerRecord(question_id=question.id, selected_option_id=option_id, time_taken_seconds=time_taken)

    def seed(self, records: list[AnswerRecord] | tuple[AnswerRecord, ...]) -> None:
        """Load answers the server already holds (resume). They count as persisted."""
        with self._lock:
            for record in records:
                if record.selected_option_id is None:
                    continue
                self._entries[record.question_id] = LedgerEntry(
                    question_id=record.question_id,
                    option_id=record.selected_option_id,
                    time_taken_seconds=record.time_taken_seconds,
                    revision=1,
                    persisted_revision=1,
                )

    def selection(self, question_id: str) -> str | None:
        with self._lock:
            entry = self._entries.get(question_id)
            return entry.option_id if entry else None

    def selections(self) -> dict[str, str]:
        with self._lock:
            return {question_id: entry.option_id for question_id, entry in self._entries.items()}

    def records(self, definition: AssessmentDefinition) -> list[AnswerRecord]:
        """One record per question in definition order; unanswered ones included."""
        with self._lock:
            records: list[AnswerRecord] = []
            for question in definition.questions:
                entry = self._entries.get(question.id)
                if entry is None:
                    records.append(AnswerRecord(question_id=question.id))
                else:
                    records.append(
                        AnswerRecord(
                            question_id=question.id,
                            selected_option_id=entry.option_id,
                            time_taken_seconds=entry.time_taken_seconds,
                        )
                    )
            return records

    def pending(self) -> list[LedgerEntry]:
        with self._lock:
            return [
                LedgerEntry(
                    question_id=entry.question_id,
                    option_id=entry.option_id,
                    time_taken_seconds=entry.time_taken_seconds,
                    revision=entry.revision,
                    persisted_revision=entry.persisted_revision,
                )
                for entry in self._entries.values()
                if not entry.is_persisted
            ]

    def flush(self) -> None:
        """Synchronously re-send every unconfirmed selection.

        Raises :class:`NetworkError` when a write still fails after retries;
        local selections are kept either way.
        """
        failures: list[str] = []
        for entry in self.pending():
            try:
                self._send_current(entry.question_id)
            except NetworkError as exc:
                logger.warning("Flush of question %s failed: %s", entry.question_id, exc)
                failures.append(entry.question_id)
        if failures:
            raise NetworkError(f"Could not persist answers for {len(failures)} question(s).")

    def abandon(self) -> None:
        """Stop retrying in-flight writes and ignore their results."""
        with self._lock:
            self._abandoned = True

    def _persist_in_background(self, question_id: str) -> None:
        try:
            self._send_current(question_id)
        except AssessmentError as exc:
            logger.warning("Answer for question %s was not persisted: %s", question_id, exc)

    def _send_current(self, question_id: str) -> None:
        """Send the newest selection for ``question_id`` unless the server already has it.

        Writes for one question are serialized and always carry the selection
        current when the write begins, so a slow write can never land after a
        newer one.
        """
        with self._write_lock(question_id):
            with self._lock:
                entry = self._entries.get(question_id)
                if entry is None or entry.is_persisted:
                    return
                option_id, time_taken, revision = entry.option_id, entry.time_taken_seconds, entry.revision
            self._write_with_retry(question_id, option_id, time_taken)
            self._confirm(question_id, revision)

    def _write_lock(self, question_id: str) -> Lock:
        with self._lock:
            return self._write_locks.setdefault(question_id, Lock())

    def _write_with_retry(self, question_id: str, option_id: str, time_taken: int | None) -> None:
        for attempt in range(1, self._max_attempts + 1):
            try:
                self._writer(self._attempt_id, question_id, option_id, time_taken)
                return
            except NetworkError:
                if attempt >= self._max_attempts or self._is_abandoned():
                    raise
                delay = self._backoff_seconds * (2 ** (attempt - 1))
                logger.debug("Retrying answer for %s in %.2fs (attempt %d)", question_id, delay, attempt)
                self._sleep(delay)

    def _confirm(self, question_id: str, revision: int) -> None:
        with self._lock:
            if self._abandoned:
                return
            entry = self._entries.get(question_id)
            if entry is not None and revision > entry.persisted_revision:
                entry.persisted_revision = revision

    def _is_abandoned(self) -> bool:
        with self._lock:
            return self._abandoned
