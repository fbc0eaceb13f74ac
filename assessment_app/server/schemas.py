"""Wire schemas shared by the API server and the HTTP gateway.

JSON keys are camelCase; Python attributes stay snake_case. Schedule bounds
travel as raw strings so a malformed date reaches the availability resolver
(and becomes ``DISABLED``) instead of failing the whole payload.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from assessment_app.core.availability import parse_instant
from assessment_app.core.models import (
    AnswerRecord,
    AssessmentDefinition,
    AssessmentKind,
    Attempt,
    AttemptStatus,
    Option,
    Question,
    Schedule,
    StartedAttempt,
)
from assessment_app.core.results import AnswerView, QuestionResult, ResultSummary


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Definitions ---


class OptionSchema(CamelModel):
    id: str
    text: str
    is_correct: bool = False
    explanation: str | None = None

    def to_domain(self) -> Option:
        return Option(id=self.id, text=self.text, is_correct=self.is_correct, explanation=self.explanation)

    @classmethod
    def from_domain(cls, option: Option) -> OptionSchema:
        return cls(id=option.id, text=option.text, is_correct=option.is_correct, explanation=option.explanation)


class QuestionSchema(CamelModel):
    id: str
    text: str
    per_question_seconds: int
    options: list[OptionSchema] = Field(default_factory=list)
    attachment_url: str | None = None

    def to_domain(self) -> Question:
        return Question(
            id=self.id,
            text=self.text,
            per_question_seconds=self.per_question_seconds,
            options=tuple(option.to_domain() for option in self.options),
            attachment_url=self.attachment_url,
        )

    @classmethod
    def from_domain(cls, question: Question) -> QuestionSchema:
        return cls(
            id=question.id,
            text=question.text,
            per_question_seconds=question.per_question_seconds,
            options=[OptionSchema.from_domain(option) for option in question.options],
            attachment_url=question.attachment_url,
        )


class ScheduleSchema(CamelModel):
    start: str | None = None
    end: str | None = None


class DefinitionSchema(CamelModel):
    id: str
    name: str
    description: str | None = None
    kind: AssessmentKind = AssessmentKind.QUIZ
    global_active: bool = False
    schedule: ScheduleSchema = Field(default_factory=ScheduleSchema)
    questions: list[QuestionSchema] = Field(default_factory=list)

    def to_domain(self) -> AssessmentDefinition:
        return AssessmentDefinition(
            id=self.id,
            name=self.name,
            description=self.description,
            kind=self.kind,
            global_active=self.global_active,
            schedule=Schedule(
                start=parse_instant(self.schedule.start),
                end=parse_instant(self.schedule.end),
            ),
            questions=tuple(question.to_domain() for question in self.questions),
        )

    @classmethod
    def from_domain(cls, definition: AssessmentDefinition) -> DefinitionSchema:
        schedule = definition.schedule
        return cls(
            id=definition.id,
            name=definition.name,
            description=definition.description,
            kind=definition.kind,
            global_active=definition.global_active,
            schedule=ScheduleSchema(
                start=schedule.start.isoformat() if schedule.start else None,
                end=schedule.end.isoformat() if schedule.end else None,
            ),
            questions=[QuestionSchema.from_domain(question) for question in definition.questions],
        )


# --- Attempts ---


class AnswerRecordSchema(CamelModel):
    question_id: str
    selected_option_id: str | None = None
    time_taken_seconds: int | None = None

    def to_domain(self) -> AnswerRecord:
        return AnswerRecord(
            question_id=self.question_id,
            selected_option_id=self.selected_option_id,
            time_taken_seconds=self.time_taken_seconds,
        )

    @classmethod
    def from_domain(cls, record: AnswerRecord) -> AnswerRecordSchema:
        return cls(
            question_id=record.question_id,
            selected_option_id=record.selected_option_id,
            time_taken_seconds=record.time_taken_seconds,
        )


class AttemptSchema(CamelModel):
    id: str
    assessment_id: str
    student_id: str
    started_at: datetime
    status: AttemptStatus = AttemptStatus.IN_PROGRESS
    completed_at: datetime | None = None
    answers: list[AnswerRecordSchema] = Field(default_factory=list)

    def to_domain(self) -> Attempt:
        return Attempt(
            id=self.id,
            assessment_id=self.assessment_id,
            student_id=self.student_id,
            started_at=_aware(self.started_at),
            status=self.status,
            completed_at=_aware(self.completed_at) if self.completed_at else None,
            answers=[answer.to_domain() for answer in self.answers],
        )

    @classmethod
    def from_domain(cls, attempt: Attempt) -> AttemptSchema:
        return cls(
            id=attempt.id,
            assessment_id=attempt.assessment_id,
            student_id=attempt.student_id,
            started_at=attempt.started_at,
            status=attempt.status,
            completed_at=attempt.completed_at,
            answers=[AnswerRecordSchema.from_domain(answer) for answer in attempt.answers],
        )


# --- Results ---


class AnswerViewSchema(CamelModel):
    option_id: str
    text: str
    explanation: str | None = None

    def to_domain(self) -> AnswerView:
        return AnswerView(option_id=self.option_id, text=self.text, explanation=self.explanation)

    @classmethod
    def from_domain(cls, view: AnswerView) -> AnswerViewSchema:
        return cls(option_id=view.option_id, text=view.text, explanation=view.explanation)


class QuestionResultSchema(CamelModel):
    question_id: str
    question_text: str
    order: int
    student_answer: AnswerViewSchema | None = None
    is_correct: bool = False
    correct_answer: AnswerViewSchema | None = None

    def to_domain(self) -> QuestionResult:
        return QuestionResult(
            question_id=self.question_id,
            question_text=self.question_text,
            order=self.order,
            student_answer=self.student_answer.to_domain() if self.student_answer else None,
            is_correct=self.is_correct,
            correct_answer=self.correct_answer.to_domain() if self.correct_answer else None,
        )

    @classmethod
    def from_domain(cls, line: QuestionResult) -> QuestionResultSchema:
        return cls(
            question_id=line.question_id,
            question_text=line.question_text,
            order=line.order,
            student_answer=AnswerViewSchema.from_domain(line.student_answer) if line.student_answer else None,
            is_correct=line.is_correct,
            correct_answer=AnswerViewSchema.from_domain(line.correct_answer) if line.correct_answer else None,
        )


class SummarySchema(CamelModel):
    attempt_id: str
    score: float
    total_questions: int
    correct_answers: int
    breakdown: list[QuestionResultSchema] = Field(default_factory=list)

    def to_domain(self) -> ResultSummary:
        return ResultSummary(
            attempt_id=self.attempt_id,
            score=self.score,
            total_questions=self.total_questions,
            correct_answers=self.correct_answers,
            breakdown=tuple(line.to_domain() for line in self.breakdown),
        )

    @classmethod
    def from_domain(cls, summary: ResultSummary) -> SummarySchema:
        return cls(
            attempt_id=summary.attempt_id,
            score=summary.score,
            total_questions=summary.total_questions,
            correct_answers=summary.correct_answers,
            breakdown=[QuestionResultSchema.from_domain(line) for line in summary.breakdown],
        )


# --- Requests and replies ---


class StartRequest(CamelModel):
    assessment_id: str
    student_id: str


class StartResponse(CamelModel):
    attempt_id: str
    started_at: datetime | None = None
    answers: list[AnswerRecordSchema] = Field(default_factory=list)
    already_completed: bool = False
    summary: SummarySchema | None = None

    def to_started(self) -> StartedAttempt:
        if self.started_at is None:
            raise ValueError("startedAt is required for an in-progress attempt")
        return StartedAttempt(
            attempt_id=self.attempt_id,
            started_at=_aware(self.started_at),
            answers=tuple(answer.to_domain() for answer in self.answers),
        )


class AnswerRequest(CamelModel):
    attempt_id: str
    question_id: str
    option_id: str
    time_taken: int | None = None


class AnswerResponse(CamelModel):
    acknowledged: bool = True


class FinalizeRequest(CamelModel):
    attempt_id: str


class FinalizeResponse(CamelModel):
    summary: SummarySchema
    already_completed: bool = False


class AccessCheckRequest(CamelModel):
    assessment_id: str
    student_id: str


class AccessCheckResponse(CamelModel):
    override: bool | None = None


class StudentAccessRequest(CamelModel):
    assessment_id: str
    student_id: str
    active: bool


class GlobalAccessRequest(CamelModel):
    assessment_id: str
    active: bool


class StatusesRequest(CamelModel):
    assessment_id: str
    student_ids: list[str] = Field(default_factory=list)


class StudentStatus(CamelModel):
    student_id: str
    override: bool | None = None


class ErrorResponse(CamelModel):
    detail: str
    attempt_id: str | None = None
    summary: SummarySchema | None = None
