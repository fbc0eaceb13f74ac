"""FastAPI server exposing the assessment contract for quizzes and evaluations.

Every route lives under ``/{kind}`` where ``kind`` is ``quiz`` or
``evaluation``; each kind is backed by its own :class:`AssessmentManager`.
"""

from __future__ import annotations

import logging
from threading import Thread

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse, Response
import uvicorn

from assessment_app.constants.about import APP_NAME, APP_VERSION
from assessment_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from assessment_app.core.assessment_manager import AssessmentManager
from assessment_app.core.errors import (
    AccessDeniedError,
    AssessmentError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from assessment_app.core.models import AssessmentKind
from assessment_app.server.schemas import (
    AccessCheckRequest,
    AccessCheckResponse,
    AnswerRecordSchema,
    AnswerRequest,
    AnswerResponse,
    AttemptSchema,
    DefinitionSchema,
    ErrorResponse,
    FinalizeRequest,
    FinalizeResponse,
    GlobalAccessRequest,
    StartRequest,
    StartResponse,
    StatusesRequest,
    StudentAccessRequest,
    StudentStatus,
    SummarySchema,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[AssessmentError], int], ...] = (
    (NotFoundError, 404),
    (AccessDeniedError, 403),
    (ConflictError, 409),
    (ValidationError, 422),
)


def _error_response(exc: AssessmentError) -> JSONResponse:
    status_code = next((code for kind, code in _STATUS_BY_ERROR if isinstance(exc, kind)), 500)
    body = ErrorResponse(detail=str(exc))
    if isinstance(exc, ConflictError):
        body.attempt_id = exc.attempt_id
        body.summary = SummarySchema.from_domain(exc.summary) if exc.summary else None
    if status_code >= 500:
        logger.error("Unhandled assessment error: %s", exc)
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True, mode="json"))


def _get_manager_dependency(managers: dict[AssessmentKind, AssessmentManager]):
    def dependency(kind: AssessmentKind) -> AssessmentManager:
        manager = managers.get(kind)
        if manager is None:
            raise HTTPException(status_code=404, detail=f"No {kind.value} service configured")
        return manager

    return dependency


def create_api_app(managers: dict[AssessmentKind, AssessmentManager]) -> FastAPI:
    """Create a FastAPI application wired to one manager per assessment kind."""

    app = FastAPI(title=f"{APP_NAME} API", version=APP_VERSION)
    manager_dep = _get_manager_dependency(managers)

    @app.exception_handler(AssessmentError)
    async def handle_assessment_error(request: Request, exc: AssessmentError) -> JSONResponse:
        return _error_response(exc)

    @app.get("/health")
    def health() -> dict[str, object]:
        return {"status": "ok", "kinds": sorted(kind.value for kind in managers)}

    # --- Student contract ---

    @app.get("/{kind}/assessments", response_model=list[DefinitionSchema])
    def list_assessments(manager: AssessmentManager = Depends(manager_dep)) -> list[DefinitionSchema]:
        return [DefinitionSchema.from_domain(definition) for definition in manager.list_definitions()]

    @app.get("/{kind}/assessments/{assessment_id}", response_model=DefinitionSchema)
    def get_assessment(
        assessment_id: str,
        manager: AssessmentManager = Depends(manager_dep),
    ) -> DefinitionSchema:
        return DefinitionSchema.from_domain(manager.get_definition(assessment_id))

    @app.get("/{kind}/attempts", response_model=AttemptSchema | None)
    def find_attempt(
        assessment_id: str = Query(alias="assessmentId"),
        student_id: str = Query(alias="studentId"),
        manager: AssessmentManager = Depends(manager_dep),
    ) -> AttemptSchema | None:
        attempt = manager.find_attempt(assessment_id, student_id)
        return AttemptSchema.from_domain(attempt) if attempt else None

    @app.post("/{kind}/attempt/start", response_model=StartResponse)
    def start_attempt(
        payload: StartRequest,
        manager: AssessmentManager = Depends(manager_dep),
    ) -> StartResponse:
        try:
            attempt = manager.start_attempt(payload.assessment_id, payload.student_id)
        except ConflictError as exc:
            return StartResponse(
                attempt_id=exc.attempt_id or "",
                already_completed=True,
                summary=SummarySchema.from_domain(exc.summary) if exc.summary else None,
            )
        return StartResponse(
            attempt_id=attempt.id,
            started_at=attempt.started_at,
            answers=[AnswerRecordSchema.from_domain(answer) for answer in attempt.answers],
        )

    @app.post("/{kind}/attempt/answer", response_model=AnswerResponse)
    def submit_answer(
        payload: AnswerRequest,
        manager: AssessmentManager = Depends(manager_dep),
    ) -> AnswerResponse:
        manager.record_answer(
            payload.attempt_id,
            payload.question_id,
            payload.option_id,
            payload.time_taken,
        )
        return AnswerResponse(acknowledged=True)

    @app.post("/{kind}/attempt/finalize", response_model=FinalizeResponse)
    def finalize_attempt(
        payload: FinalizeRequest,
        manager: AssessmentManager = Depends(manager_dep),
    ) -> FinalizeResponse:
        summary, already_completed = manager.finalize_attempt(payload.attempt_id)
        return FinalizeResponse(
            summary=SummarySchema.from_domain(summary),
            already_completed=already_completed,
        )

    @app.post("/{kind}/access/check", response_model=AccessCheckResponse)
    def check_access(
        payload: AccessCheckRequest,
        manager: AssessmentManager = Depends(manager_dep),
    ) -> AccessCheckResponse:
        return AccessCheckResponse(override=manager.check_access(payload.assessment_id, payload.student_id))

    # --- Instructor contract ---

    @app.delete("/{kind}/assessments/{assessment_id}", status_code=204)
    def delete_assessment(
        assessment_id: str,
        manager: AssessmentManager = Depends(manager_dep),
    ) -> Response:
        manager.delete_definition(assessment_id)
        return Response(status_code=204)

    @app.put("/{kind}/access/student", response_model=StudentAccessRequest)
    def set_student_access(
        payload: StudentAccessRequest,
        manager: AssessmentManager = Depends(manager_dep),
    ) -> StudentAccessRequest:
        active = manager.set_student_access(payload.assessment_id, payload.student_id, payload.active)
        return StudentAccessRequest(
            assessment_id=payload.assessment_id,
            student_id=payload.student_id,
            active=active,
        )

    @app.put("/{kind}/access/global", response_model=GlobalAccessRequest)
    def set_global_access(
        payload: GlobalAccessRequest,
        manager: AssessmentManager = Depends(manager_dep),
    ) -> GlobalAccessRequest:
        updated = manager.set_global_active(payload.assessment_id, payload.active)
        return GlobalAccessRequest(assessment_id=updated.id, active=updated.global_active)

    @app.post("/{kind}/access/statuses", response_model=list[StudentStatus])
    def get_student_statuses(
        payload: StatusesRequest,
        manager: AssessmentManager = Depends(manager_dep),
    ) -> list[StudentStatus]:
        statuses = manager.get_student_statuses(payload.assessment_id, payload.student_ids)
        return [StudentStatus(student_id=student_id, override=value) for student_id, value in statuses.items()]

    return app


def start_api_server(
    managers: dict[AssessmentKind, AssessmentManager],
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> Thread:
    """Start the FastAPI server in a background daemon thread."""
    app = create_api_app(managers)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)

    def run_server() -> None:
        server.run()

    thread = Thread(target=run_server, name="AssessmentApiServer", daemon=True)
    thread.start()
    logger.info("API server listening on %s:%s", host, port)
    return thread


def serve_forever(
    managers: dict[AssessmentKind, AssessmentManager],
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> None:
    """Run the API server in the foreground until interrupted."""
    uvicorn.run(create_api_app(managers), host=host, port=port, log_level="info")
