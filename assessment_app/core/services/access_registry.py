"""Service for per-student availability overrides set by instructors."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass(slots=True)
class AccessOverride:
    """Instructor decision for one (assessment, student) pair."""

    assessment_id: str
    student_id: str
    is_active: bool
    updated_at: datetime


class AccessRegistry:
    """Stores overrides. A missing entry defers to the assessment's global flag."""

    def __init__(self) -> None:
        self._overrides: dict[tuple[str, str], AccessOverride] = {}

    def get_override(self, assessment_id: str, student_id: str) -> bool | None:
        entry = self._overrides.get((assessment_id, student_id))
        return entry.is_active if entry else None

    def set_override(self, assessment_id: str, student_id: str, active: bool) -> AccessOverride:
        entry = AccessOverride(
            assessment_id=assessment_id,
            student_id=student_id,
            is_active=active,
            updated_at=datetime.now(timezone.utc),
        )
        self._overrides[(assessment_id, student_id)] = entry
        return entry

    def clear_override(self, assessment_id: str, student_id: str) -> None:
        self._overrides.pop((assessment_id, student_id), None)

    def deactivate(self, assessment_id: str, student_id: str) -> None:
        """Turn an existing override off; students without one are left alone."""
        if (assessment_id, student_id) in self._overrides:
            self.set_override(assessment_id, student_id, False)

    def statuses(self, assessment_id: str, student_ids: list[str]) -> dict[str, bool | None]:
        """Return the override per requested student, ``None`` where there is none."""
        return {student_id: self.get_override(assessment_id, student_id) for student_id in student_ids}

    def clear(self) -> None:
        self._overrides.clear()
