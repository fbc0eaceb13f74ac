"""Student-side entry point: load an assessment, decide availability, open a session."""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import Executor
from dataclasses import dataclass
from datetime import datetime, timezone
import logging

from assessment_app.core.availability import AccessState, Availability, resolve_for_student
from assessment_app.core.errors import ValidationError
from assessment_app.core.gateway import AssessmentGateway
from assessment_app.core.models import AssessmentDefinition, Attempt
from assessment_app.core.session import AttemptSession
from assessment_app.core.validation import validate_definition

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class AssessmentContext:
    """What the student screen knows before an attempt starts."""

    definition: AssessmentDefinition | None
    override: bool | None
    attempt: Attempt | None
    diagnostic: str | None = None


class StudentAssessmentFlow:
    """Ties a gateway, a student and one assessment together."""

    def __init__(
        self,
        gateway: AssessmentGateway,
        assessment_id: str,
        student_id: str,
        *,
        executor: Executor | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._gateway = gateway
        self._assessment_id = assessment_id
        self._student_id = student_id
        self._executor = executor
        self._clock = clock
        self._context: AssessmentContext | None = None

    @property
    def assessment_id(self) -> str:
        return self._assessment_id

    @property
    def student_id(self) -> str:
        return self._student_id

    @property
    def context(self) -> AssessmentContext | None:
        return self._context

    def load(self) -> AssessmentContext:
        """Fetch definition, override and any existing attempt.

        A definition that fails validation is kept out of the session and
        reported through the diagnostic; ``NotFoundError`` propagates.
        """
        try:
            definition = self._gateway.fetch_definition(self._assessment_id)
            validate_definition(definition)
        except ValidationError as exc:
            logger.warning("Assessment %s is not usable: %s", self._assessment_id, exc)
            self._context = AssessmentContext(definition=None, override=None, attempt=None, diagnostic=str(exc))
            return self._context

        override = self._gateway.check_access(self._assessment_id, self._student_id)
        attempt = self._gateway.find_attempt(self._assessment_id, self._student_id)
        self._context = AssessmentContext(definition=definition, override=override, attempt=attempt)
        logger.info(
            "Loaded %s for %s (override=%s, attempt=%s)",
            self._assessment_id,
            self._student_id,
            override,
            attempt.status.value if attempt else None,
        )
        return self._context

    def availability(self, now: datetime | None = None) -> Availability:
        """Re-evaluate availability for ``now`` from the last loaded context."""
        context = self._context or self.load()
        if context.definition is None:
            return Availability(state=AccessState.DISABLED, diagnostic=context.diagnostic)
        return resolve_for_student(
            now or self._clock(),
            context.definition,
            context.override,
            context.attempt.status if context.attempt else None,
        )

    def create_session(self) -> AttemptSession:
        context = self._context or self.load()
        if context.definition is None:
            raise ValidationError(context.diagnostic or f"Assessment {self._assessment_id} is not usable.")
        return AttemptSession(
            context.definition,
            self._student_id,
            self._gateway,
            executor=self._executor,
            clock=self._clock,
        )
