from __future__ import annotations

from fastapi.testclient import TestClient
import pytest

from assessment_app.core.assessment_manager import AssessmentManager
from assessment_app.core.errors import (
    AccessDeniedError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from assessment_app.core.models import AssessmentKind
from assessment_app.core.services.http_gateway import HttpAssessmentGateway
from assessment_app.core.session import SessionPhase
from assessment_app.server.api_server import create_api_app

from conftest import STUDENT_ID, build_definition


@pytest.fixture()
def evaluation_manager(clock) -> AssessmentManager:
    manager = AssessmentManager(kind=AssessmentKind.EVALUATION, clock=clock)
    manager.load_definitions([build_definition((20, 20), assessment_id="midterm", kind=AssessmentKind.EVALUATION)])
    return manager


@pytest.fixture()
def client(manager, evaluation_manager) -> TestClient:
    app = create_api_app({AssessmentKind.QUIZ: manager, AssessmentKind.EVALUATION: evaluation_manager})
    return TestClient(app)


@pytest.fixture()
def http_gateway(client) -> HttpAssessmentGateway:
    return HttpAssessmentGateway(client, AssessmentKind.QUIZ)


def test_health_lists_configured_kinds(client) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "kinds": ["evaluation", "quiz"]}


def test_definition_uses_camel_case_keys(client) -> None:
    resp = client.get("/quiz/assessments/algebra-1")
    assert resp.status_code == 200
    body = resp.json()
    assert body["globalActive"] is True
    assert body["questions"][0]["perQuestionSeconds"] == 30
    assert body["questions"][0]["options"][0]["isCorrect"] is True
    assert body["schedule"]["start"].startswith("2025-01-10T00:00:00")


def test_kinds_are_served_by_separate_managers(client) -> None:
    assert client.get("/quiz/assessments/midterm").status_code == 404
    assert client.get("/evaluation/assessments/midterm").status_code == 200
    assert client.get("/survey/assessments/midterm").status_code == 422


def test_start_is_idempotent_over_the_wire(client) -> None:
    payload = {"assessmentId": "algebra-1", "studentId": STUDENT_ID}
    first = client.post("/quiz/attempt/start", json=payload).json()
    second = client.post("/quiz/attempt/start", json=payload).json()
    assert first["attemptId"] == second["attemptId"]
    assert first["alreadyCompleted"] is False
    assert first["startedAt"] == second["startedAt"]


def test_answer_and_finalize_round_trip(client) -> None:
    start = client.post("/quiz/attempt/start", json={"assessmentId": "algebra-1", "studentId": STUDENT_ID}).json()
    attempt_id = start["attemptId"]

    ack = client.post(
        "/quiz/attempt/answer",
        json={"attemptId": attempt_id, "questionId": "q1", "optionId": "q1-a", "timeTaken": 7},
    )
    assert ack.json() == {"acknowledged": True}

    found = client.get("/quiz/attempts", params={"assessmentId": "algebra-1", "studentId": STUDENT_ID}).json()
    assert found["answers"] == [{"questionId": "q1", "selectedOptionId": "q1-a", "timeTakenSeconds": 7}]

    first = client.post("/quiz/attempt/finalize", json={"attemptId": attempt_id}).json()
    second = client.post("/quiz/attempt/finalize", json={"attemptId": attempt_id}).json()
    assert first["alreadyCompleted"] is False
    assert second["alreadyCompleted"] is True
    assert first["summary"] == second["summary"]
    assert first["summary"]["correctAnswers"] == 1

    again = client.post("/quiz/attempt/start", json={"assessmentId": "algebra-1", "studentId": STUDENT_ID}).json()
    assert again["alreadyCompleted"] is True
    assert again["summary"] == first["summary"]


def test_answer_errors_map_to_status_codes(client) -> None:
    start = client.post("/quiz/attempt/start", json={"assessmentId": "algebra-1", "studentId": STUDENT_ID}).json()
    attempt_id = start["attemptId"]

    foreign = client.post(
        "/quiz/attempt/answer",
        json={"attemptId": attempt_id, "questionId": "q1", "optionId": "q2-a", "timeTaken": None},
    )
    assert foreign.status_code == 422

    missing = client.post(
        "/quiz/attempt/answer",
        json={"attemptId": "nope", "questionId": "q1", "optionId": "q1-a", "timeTaken": None},
    )
    assert missing.status_code == 404

    client.post("/quiz/attempt/finalize", json={"attemptId": attempt_id})
    late = client.post(
        "/quiz/attempt/answer",
        json={"attemptId": attempt_id, "questionId": "q1", "optionId": "q1-a", "timeTaken": 3},
    )
    assert late.status_code == 409
    assert late.json()["attemptId"] == attempt_id
    assert late.json()["summary"]["totalQuestions"] == 3


def test_instructor_access_routes(client) -> None:
    resp = client.put(
        "/quiz/access/student",
        json={"assessmentId": "algebra-1", "studentId": "student-2", "active": False},
    )
    assert resp.status_code == 200

    check = client.post("/quiz/access/check", json={"assessmentId": "algebra-1", "studentId": "student-2"})
    assert check.json() == {"override": False}

    statuses = client.post(
        "/quiz/access/statuses",
        json={"assessmentId": "algebra-1", "studentIds": [STUDENT_ID, "student-2"]},
    ).json()
    assert statuses == [
        {"studentId": STUDENT_ID, "override": None},
        {"studentId": "student-2", "override": False},
    ]

    denied = client.post("/quiz/attempt/start", json={"assessmentId": "algebra-1", "studentId": "student-2"})
    assert denied.status_code == 403

    toggled = client.put("/quiz/access/global", json={"assessmentId": "algebra-1", "active": False})
    assert toggled.json() == {"assessmentId": "algebra-1", "active": False}
    assert client.get("/quiz/assessments/algebra-1").json()["globalActive"] is False


def test_gateway_translates_http_errors(http_gateway) -> None:
    with pytest.raises(NotFoundError):
        http_gateway.fetch_definition("nope")

    started = http_gateway.start("algebra-1", STUDENT_ID)
    with pytest.raises(ValidationError):
        http_gateway.answer(started.attempt_id, "q1", "q3-a", 4)

    http_gateway.finalize(started.attempt_id)
    with pytest.raises(ConflictError) as conflict:
        http_gateway.finalize(started.attempt_id)
    assert conflict.value.summary is not None
    assert conflict.value.summary.attempt_id == started.attempt_id


def test_gateway_reports_completed_start_as_conflict(http_gateway) -> None:
    started = http_gateway.start("algebra-1", STUDENT_ID)
    sealed = http_gateway.finalize(started.attempt_id)

    with pytest.raises(ConflictError) as conflict:
        http_gateway.start("algebra-1", STUDENT_ID)
    assert conflict.value.attempt_id == started.attempt_id
    assert conflict.value.summary == sealed


def test_gateway_access_and_lookup(http_gateway, manager, definition) -> None:
    assert http_gateway.check_access(definition.id, STUDENT_ID) is None
    assert http_gateway.find_attempt(definition.id, STUDENT_ID) is None

    manager.set_student_access(definition.id, STUDENT_ID, True)
    started = http_gateway.start(definition.id, STUDENT_ID)

    assert http_gateway.check_access(definition.id, STUDENT_ID) is True
    attempt = http_gateway.find_attempt(definition.id, STUDENT_ID)
    assert attempt.id == started.attempt_id
    assert attempt.started_at == started.started_at
    assert http_gateway.fetch_definition(definition.id) == definition


def test_gateway_refuses_start_when_disabled(http_gateway, manager, definition) -> None:
    manager.set_global_active(definition.id, False)
    with pytest.raises(AccessDeniedError):
        http_gateway.start(definition.id, STUDENT_ID)


def test_session_runs_end_to_end_over_http(http_gateway, make_session, definition, manager) -> None:
    session = make_session(definition, http_gateway)
    session.confirm()
    session.begin()
    assert session.phase is SessionPhase.IN_PROGRESS

    session.tick()
    session.select("q1-a")
    session.next()
    session.select("q2-b")
    session.finish()

    snapshot = session.snapshot()
    assert snapshot.phase is SessionPhase.COMPLETED
    assert snapshot.summary.correct_answers == 1
    stored = manager.find_attempt(definition.id, STUDENT_ID)
    assert stored.is_completed
    assert stored.answer_for("q1").time_taken_seconds == 1

    reopened = make_session(definition, http_gateway)
    reopened.confirm()
    reopened.begin()
    assert reopened.phase is SessionPhase.COMPLETED
    assert reopened.summary == snapshot.summary


def test_evaluation_kind_uses_its_own_prefix(client, clock) -> None:
    gateway = HttpAssessmentGateway(client, AssessmentKind.EVALUATION)
    definition = gateway.fetch_definition("midterm")
    assert definition.kind is AssessmentKind.EVALUATION
    assert definition.total_seconds == 40


def test_assessment_deleted_mid_session_ends_the_flow(client, http_gateway, make_session, definition) -> None:
    session = make_session(definition, http_gateway)
    session.confirm()
    session.begin()
    session.select("q1-a")

    assert client.delete("/quiz/assessments/algebra-1").status_code == 204
    assert client.delete("/quiz/assessments/algebra-1").status_code == 404

    session.finish()
    snapshot = session.snapshot()
    assert snapshot.phase is SessionPhase.ERRORED
    assert not snapshot.can_retry
    assert snapshot.answers["q1"] == "q1-a"
