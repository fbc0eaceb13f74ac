"""Decides whether an assessment can be started by a given student right now.

The evaluation order is fixed and determines both what the UI shows and
whether "start" is permitted:

1. Effective activation (override if set, otherwise the global flag). When
   it is false the assessment is disabled, whatever the dates say.
2. Before the window start: not yet open, with a countdown.
3. After the end of the closing day: open only if an instructor explicitly
   reactivated the student, otherwise closed.
4. Inside the window: open.

The resolver is pure. Malformed input degrades to ``DISABLED`` with a
diagnostic instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
import math

from assessment_app.core.models import AssessmentDefinition, AttemptStatus, Schedule


class AccessState(str, Enum):
    NOT_YET_OPEN = "not_yet_open"
    OPEN = "open"
    CLOSED_EXPIRED = "closed_expired"
    OPEN_OVERRIDE = "open_override"
    DISABLED = "disabled"
    COMPLETED = "completed"


_STARTABLE_STATES = frozenset({AccessState.OPEN, AccessState.OPEN_OVERRIDE})


@dataclass(slots=True, frozen=True)
class Availability:
    """What the resolver emits: the state plus the countdown to opening."""

    state: AccessState
    seconds_until_open: int = 0
    diagnostic: str | None = None

    @property
    def can_start(self) -> bool:
        return self.state in _STARTABLE_STATES


def end_of_window(end: datetime) -> datetime:
    """Push the closing instant to 23:59:59.999 of its own calendar day."""
    return end.replace(hour=23, minute=59, second=59, microsecond=999000)


def parse_instant(value: object) -> datetime | None:
    """Best-effort conversion of a wire value into an aware datetime."""
    if isinstance(value, datetime):
        return _as_aware(value)
    if not isinstance(value, str) or not value.strip():
        return None
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        return _as_aware(datetime.fromisoformat(raw))
    except ValueError:
        return None


def _as_aware(value: datetime) -> datetime:
    # Naive timestamps are taken to be UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _disabled(diagnostic: str) -> Availability:
    return Availability(state=AccessState.DISABLED, diagnostic=diagnostic)


def resolve(
    now: datetime,
    schedule: Schedule | None,
    global_active: bool,
    override: bool | None,
) -> Availability:
    """Return the access state for ``now``. Never raises."""
    effective_active = override if override is not None else global_active
    if not effective_active:
        return Availability(state=AccessState.DISABLED)

    if schedule is None:
        return _disabled("schedule is missing")
    if not isinstance(now, datetime):
        return _disabled("current time is not a timestamp")
    if not isinstance(schedule.start, datetime) or not isinstance(schedule.end, datetime):
        return _disabled("schedule start or end is missing or malformed")

    current = _as_aware(now)
    start = _as_aware(schedule.start)
    closing = end_of_window(_as_aware(schedule.end))
    if start > closing:
        return _disabled("schedule starts after it ends")

    if current < start:
        remaining = math.ceil((start - current).total_seconds())
        return Availability(state=AccessState.NOT_YET_OPEN, seconds_until_open=max(0, remaining))

    if current > closing:
        if override is True:
            return Availability(state=AccessState.OPEN_OVERRIDE)
        return Availability(state=AccessState.CLOSED_EXPIRED)

    return Availability(state=AccessState.OPEN)


def resolve_for_student(
    now: datetime,
    definition: AssessmentDefinition,
    override: bool | None,
    attempt_status: AttemptStatus | None,
) -> Availability:
    """Apply the completed-attempt gate, then fall back to :func:`resolve`."""
    if attempt_status is AttemptStatus.COMPLETED:
        return Availability(state=AccessState.COMPLETED)
    return resolve(now, definition.schedule, definition.global_active, override)
