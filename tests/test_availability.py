from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from assessment_app.core.availability import (
    AccessState,
    end_of_window,
    parse_instant,
    resolve,
    resolve_for_student,
)
from assessment_app.core.models import AttemptStatus, Schedule

from conftest import build_definition

UTC = timezone.utc
WINDOW = Schedule(start=datetime(2025, 1, 10, tzinfo=UTC), end=datetime(2025, 1, 12, tzinfo=UTC))
INSIDE = datetime(2025, 1, 11, 12, 0, tzinfo=UTC)
AFTER = datetime(2025, 1, 14, 8, 0, tzinfo=UTC)


def test_window_scenario_open_late_on_closing_day_then_closed() -> None:
    assert resolve(datetime(2025, 1, 12, 23, 0, tzinfo=UTC), WINDOW, True, None).state is AccessState.OPEN
    assert resolve(datetime(2025, 1, 13, 0, 1, tzinfo=UTC), WINDOW, True, None).state is AccessState.CLOSED_EXPIRED


def test_closing_instant_is_inclusive_to_the_millisecond() -> None:
    closing = datetime(2025, 1, 12, 23, 59, 59, 999000, tzinfo=UTC)
    assert end_of_window(WINDOW.end) == closing
    assert resolve(closing, WINDOW, True, None).state is AccessState.OPEN
    assert resolve(closing + timedelta(milliseconds=1), WINDOW, True, None).state is AccessState.CLOSED_EXPIRED


@pytest.mark.parametrize("now", [datetime(2025, 1, 1, tzinfo=UTC), INSIDE, AFTER])
def test_override_false_always_disables(now: datetime) -> None:
    result = resolve(now, WINDOW, True, False)
    assert result.state is AccessState.DISABLED
    assert not result.can_start


def test_inactive_globally_without_override_is_disabled() -> None:
    assert resolve(INSIDE, WINDOW, False, None).state is AccessState.DISABLED


def test_override_true_activates_inside_window_even_when_globally_inactive() -> None:
    assert resolve(INSIDE, WINDOW, False, True).state is AccessState.OPEN


def test_override_true_after_window_reopens() -> None:
    result = resolve(AFTER, WINDOW, False, True)
    assert result.state is AccessState.OPEN_OVERRIDE
    assert result.can_start


def test_globally_active_after_window_is_closed() -> None:
    result = resolve(AFTER, WINDOW, True, None)
    assert result.state is AccessState.CLOSED_EXPIRED
    assert not result.can_start


def test_before_start_counts_down_in_whole_seconds_rounded_up() -> None:
    now = WINDOW.start - timedelta(seconds=90, milliseconds=500)
    result = resolve(now, WINDOW, True, None)
    assert result.state is AccessState.NOT_YET_OPEN
    assert result.seconds_until_open == 91
    assert not result.can_start


def test_start_instant_is_open() -> None:
    result = resolve(WINDOW.start, WINDOW, True, None)
    assert result.state is AccessState.OPEN
    assert result.seconds_until_open == 0


def test_resolve_is_pure() -> None:
    first = resolve(INSIDE, WINDOW, True, None)
    second = resolve(INSIDE, WINDOW, True, None)
    assert first == second


def test_naive_timestamps_are_treated_as_utc() -> None:
    naive_window = Schedule(start=datetime(2025, 1, 10), end=datetime(2025, 1, 12))
    assert resolve(datetime(2025, 1, 11, 12), naive_window, True, None).state is AccessState.OPEN
    assert resolve(INSIDE, naive_window, True, None).state is AccessState.OPEN


@pytest.mark.parametrize(
    "schedule",
    [
        None,
        Schedule(start=None, end=datetime(2025, 1, 12, tzinfo=UTC)),
        Schedule(start=datetime(2025, 1, 10, tzinfo=UTC), end=None),
        Schedule(start=datetime(2025, 1, 15, tzinfo=UTC), end=datetime(2025, 1, 12, tzinfo=UTC)),
    ],
)
def test_malformed_schedule_degrades_to_disabled_with_diagnostic(schedule: Schedule | None) -> None:
    result = resolve(INSIDE, schedule, True, None)
    assert result.state is AccessState.DISABLED
    assert result.diagnostic


def test_completed_attempt_wins_over_everything() -> None:
    definition = build_definition()
    result = resolve_for_student(INSIDE, definition, True, AttemptStatus.COMPLETED)
    assert result.state is AccessState.COMPLETED
    assert not result.can_start


def test_in_progress_attempt_falls_back_to_schedule() -> None:
    definition = build_definition()
    assert resolve_for_student(INSIDE, definition, None, AttemptStatus.IN_PROGRESS).state is AccessState.OPEN


def test_parse_instant_accepts_iso_strings_and_rejects_garbage() -> None:
    assert parse_instant("2025-01-12T00:00:00Z") == datetime(2025, 1, 12, tzinfo=UTC)
    assert parse_instant("2025-01-12T00:00:00") == datetime(2025, 1, 12, tzinfo=UTC)
    assert parse_instant("not a date") is None
    assert parse_instant("") is None
    assert parse_instant(None) is None
    assert parse_instant(20250112) is None
