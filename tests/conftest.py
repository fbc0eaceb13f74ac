from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import Executor, Future
from datetime import datetime, timedelta, timezone

import pytest

from assessment_app.core.assessment_manager import AssessmentManager
from assessment_app.core.errors import NetworkError
from assessment_app.core.gateway import LocalAssessmentGateway
from assessment_app.core.models import (
    AssessmentDefinition,
    AssessmentKind,
    Option,
    Question,
    Schedule,
)
from assessment_app.core.session import AttemptSession

UTC = timezone.utc
STUDENT_ID = "student-1"


class InlineExecutor(Executor):
    """Runs every job on the calling thread before ``submit`` returns."""

    def submit(self, fn, /, *args, **kwargs):
        future: Future = Future()
        try:
            result = fn(*args, **kwargs)
        except BaseException as exc:
            future.set_exception(exc)
        else:
            future.set_result(result)
        return future


class DeferredExecutor(Executor):
    """Collects jobs so a test decides when (and in which order) they run."""

    def __init__(self) -> None:
        self.jobs: list[tuple[Callable, tuple, dict, Future]] = []

    def submit(self, fn, /, *args, **kwargs):
        future: Future = Future()
        self.jobs.append((fn, args, kwargs, future))
        return future

    def run(self, index: int = 0) -> None:
        fn, args, kwargs, future = self.jobs.pop(index)
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as exc:
            future.set_exception(exc)

    def run_all(self) -> None:
        while self.jobs:
            self.run(0)


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class FlakyGateway:
    """Wraps a gateway and fails selected calls with ``NetworkError`` a set number of times."""

    def __init__(self, inner: LocalAssessmentGateway) -> None:
        self.inner = inner
        self.failures: dict[str, int] = {}
        self.calls: list[tuple[str, tuple]] = []

    def fail(self, method: str, times: int = 1) -> None:
        self.failures[method] = times

    def _maybe_fail(self, method: str, args: tuple) -> None:
        self.calls.append((method, args))
        remaining = self.failures.get(method, 0)
        if remaining > 0:
            self.failures[method] = remaining - 1
            raise NetworkError(f"{method} unavailable")

    def fetch_definition(self, assessment_id):
        self._maybe_fail("fetch_definition", (assessment_id,))
        return self.inner.fetch_definition(assessment_id)

    def check_access(self, assessment_id, student_id):
        self._maybe_fail("check_access", (assessment_id, student_id))
        return self.inner.check_access(assessment_id, student_id)

    def find_attempt(self, assessment_id, student_id):
        self._maybe_fail("find_attempt", (assessment_id, student_id))
        return self.inner.find_attempt(assessment_id, student_id)

    def start(self, assessment_id, student_id):
        self._maybe_fail("start", (assessment_id, student_id))
        return self.inner.start(assessment_id, student_id)

    def answer(self, attempt_id, question_id, option_id, time_taken):
        self._maybe_fail("answer", (attempt_id, question_id, option_id, time_taken))
        return self.inner.answer(attempt_id, question_id, option_id, time_taken)

    def finalize(self, attempt_id):
        self._maybe_fail("finalize", (attempt_id,))
        return self.inner.finalize(attempt_id)


def build_definition(
    budgets: tuple[int, ...] = (30, 45, 20),
    *,
    assessment_id: str = "algebra-1",
    start: datetime | None = datetime(2025, 1, 10, tzinfo=UTC),
    end: datetime | None = datetime(2025, 1, 12, tzinfo=UTC),
    global_active: bool = True,
    kind: AssessmentKind = AssessmentKind.QUIZ,
) -> AssessmentDefinition:
    """Questions ``q1..qN``; option ``a`` is always the correct one."""
    questions = tuple(
        Question(
            id=f"q{number}",
            text=f"Question {number}",
            per_question_seconds=seconds,
            options=(
                Option(id=f"q{number}-a", text=f"Right {number}", is_correct=True, explanation="Because."),
                Option(id=f"q{number}-b", text=f"Wrong {number}"),
                Option(id=f"q{number}-c", text=f"Also wrong {number}"),
            ),
        )
        for number, seconds in enumerate(budgets, start=1)
    )
    return AssessmentDefinition(
        id=assessment_id,
        name="Algebra check",
        questions=questions,
        schedule=Schedule(start=start, end=end),
        global_active=global_active,
        kind=kind,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 1, 11, 9, 0, tzinfo=UTC))


@pytest.fixture()
def executor() -> InlineExecutor:
    return InlineExecutor()


@pytest.fixture()
def definition() -> AssessmentDefinition:
    return build_definition()


@pytest.fixture()
def manager(clock: FakeClock, definition: AssessmentDefinition) -> AssessmentManager:
    manager = AssessmentManager(kind=AssessmentKind.QUIZ, clock=clock)
    manager.load_definitions([definition])
    return manager


@pytest.fixture()
def gateway(manager: AssessmentManager) -> LocalAssessmentGateway:
    return LocalAssessmentGateway(manager)


@pytest.fixture()
def make_session(clock: FakeClock, executor: InlineExecutor):
    def factory(definition: AssessmentDefinition, gateway, student_id: str = STUDENT_ID) -> AttemptSession:
        return AttemptSession(
            definition,
            student_id,
            gateway,
            executor=executor,
            clock=clock,
            persist_backoff_seconds=0.0,
        )

    return factory
