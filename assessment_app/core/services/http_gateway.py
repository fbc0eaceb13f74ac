"""Assessment gateway speaking the HTTP contract of the API server."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError as SchemaError

from assessment_app.core.errors import (
    AccessDeniedError,
    AssessmentError,
    ConflictError,
    NetworkError,
    NotFoundError,
    ValidationError,
)
from assessment_app.core.models import AssessmentDefinition, AssessmentKind, Attempt, StartedAttempt
from assessment_app.core.results import ResultSummary
from assessment_app.server.schemas import (
    AccessCheckRequest,
    AccessCheckResponse,
    AnswerRequest,
    AttemptSchema,
    DefinitionSchema,
    ErrorResponse,
    FinalizeRequest,
    FinalizeResponse,
    StartRequest,
    StartResponse,
)

logger = logging.getLogger(__name__)


def _error_detail(resp: httpx.Response) -> ErrorResponse:
    try:
        return ErrorResponse.model_validate(resp.json())
    except (ValueError, SchemaError):
        return ErrorResponse(detail=resp.text[:500] or resp.reason_phrase)


def _handle_error(resp: httpx.Response, context: str) -> None:
    body = _error_detail(resp)
    detail = f"{context}: {body.detail}"
    if resp.status_code == 404:
        raise NotFoundError(detail)
    if resp.status_code in {401, 403}:
        raise AccessDeniedError(detail)
    if resp.status_code == 409:
        raise ConflictError(
            detail,
            attempt_id=body.attempt_id,
            summary=body.summary.to_domain() if body.summary else None,
        )
    if resp.status_code in {400, 422}:
        raise ValidationError(detail)
    if resp.status_code >= 500:
        raise NetworkError(f"{detail} (HTTP {resp.status_code})")
    raise AssessmentError(f"{detail} (HTTP {resp.status_code})")


class HttpAssessmentGateway:
    """Gateway for one assessment kind, using a caller-owned ``httpx.Client``.

    The client carries the base URL and timeout; paths are prefixed with the
    kind so quizzes and evaluations share this class.
    """

    def __init__(self, client: httpx.Client, kind: AssessmentKind = AssessmentKind.QUIZ) -> None:
        self._client = client
        self._kind = kind

    @property
    def kind(self) -> AssessmentKind:
        return self._kind

    def fetch_definition(self, assessment_id: str) -> AssessmentDefinition:
        data = self._request("GET", f"/assessments/{assessment_id}")
        return self._parse(DefinitionSchema, data, "assessment").to_domain()

    def check_access(self, assessment_id: str, student_id: str) -> bool | None:
        payload = AccessCheckRequest(assessment_id=assessment_id, student_id=student_id)
        data = self._request("POST", "/access/check", json=self._dump(payload))
        return self._parse(AccessCheckResponse, data, "access check").override

    def find_attempt(self, assessment_id: str, student_id: str) -> Attempt | None:
        data = self._request(
            "GET",
            "/attempts",
            params={"assessmentId": assessment_id, "studentId": student_id},
        )
        if data is None:
            return None
        return self._parse(AttemptSchema, data, "attempt").to_domain()

    def start(self, assessment_id: str, student_id: str) -> StartedAttempt:
        payload = StartRequest(assessment_id=assessment_id, student_id=student_id)
        data = self._request("POST", "/attempt/start", json=self._dump(payload))
        reply = self._parse(StartResponse, data, "start reply")
        if reply.already_completed:
            raise ConflictError(
                f"Attempt {reply.attempt_id} is already completed",
                attempt_id=reply.attempt_id or None,
                summary=reply.summary.to_domain() if reply.summary else None,
            )
        try:
            return reply.to_started()
        except ValueError as exc:
            raise ValidationError(f"Malformed start reply: {exc}") from exc

    def answer(self, attempt_id: str, question_id: str, option_id: str, time_taken: int | None) -> None:
        payload = AnswerRequest(
            attempt_id=attempt_id,
            question_id=question_id,
            option_id=option_id,
            time_taken=time_taken,
        )
        self._request("POST", "/attempt/answer", json=self._dump(payload))

    def finalize(self, attempt_id: str) -> ResultSummary:
        data = self._request("POST", "/attempt/finalize", json=self._dump(FinalizeRequest(attempt_id=attempt_id)))
        reply = self._parse(FinalizeResponse, data, "finalize reply")
        summary = reply.summary.to_domain()
        if reply.already_completed:
            raise ConflictError(
                f"Attempt {attempt_id} was already finalized",
                attempt_id=attempt_id,
                summary=summary,
            )
        return summary

    def _request(self, method: str, path: str, *, params: dict[str, Any] | None = None, json: Any | None = None) -> Any:
        url = f"/{self._kind.value}{path}"
        try:
            resp = self._client.request(method, url, params=params, json=json)
        except httpx.TransportError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise NetworkError(f"{method} {url} failed: {exc}") from exc
        if not resp.is_success:
            _handle_error(resp, context=f"{method} {url}")
        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise ValidationError(f"{method} {url} returned invalid JSON") from exc

    @staticmethod
    def _dump(model: Any) -> dict[str, Any]:
        return model.model_dump(by_alias=True, mode="json")

    @staticmethod
    def _parse(schema: Any, data: Any, what: str) -> Any:
        try:
            return schema.model_validate(data)
        except SchemaError as exc:
            raise ValidationError(f"Malformed {what}: {exc.error_count()} error(s)") from exc
