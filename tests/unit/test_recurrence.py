import logging
from datetime import date, datetime, timedelta

import pytest

from tests.conftest import TODAY, make_routine
from worklist.core.errors import DataIntegrityWarning
from worklist.core.models import Provenance
from worklist.recurrence import materialize_routine, next_due, occurrence_id

SOURCE = Provenance(type="routine", goal_id="g1", goal_name="fitness", routine_id="r1")

MON, TUE, WED, THU, FRI, SAT = (TODAY + timedelta(days=i) for i in range(6))
SUN_BEFORE = TODAY - timedelta(days=1)
SUN_AFTER = TODAY + timedelta(days=6)


def _due(routine, on, **kwargs):
    return materialize_routine(routine, on, SOURCE, **kwargs)


def test_daily_routine_produces_one_occurrence_keyed_by_utc_midnight():
    occ = _due(make_routine("r1"), TODAY)

    assert occ is not None
    assert occ.id == "r1-1717977600"
    assert occ.id == occurrence_id("r1", TODAY)
    assert occ.scheduled_for == TODAY
    assert occ.is_routine
    assert occ.created == datetime(2024, 6, 10)
    assert occ.priority == "medium"
    assert occ.due_date is None


def test_daily_routine_due_every_day_of_a_week():
    routine = make_routine("r1")
    for offset in range(7):
        day = TODAY + timedelta(days=offset)
        occ = _due(routine, day)
        assert occ is not None
        assert occ.scheduled_for == day


def test_weekly_routine_only_on_listed_weekdays():
    routine = make_routine("r1", "weekly", days=["monday", "wednesday", "friday"])

    for day in (MON, WED, FRI):
        assert _due(routine, day) is not None
    for day in (TUE, THU, SAT, SUN_BEFORE, SUN_AFTER):
        assert _due(routine, day) is None


def test_weekly_listed_day_accepts_short_names():
    routine = make_routine("r1", "weekly", days=["Mon", "wed"])
    assert _due(routine, MON) is not None
    assert _due(routine, WED) is not None


def test_weekly_without_days_due_while_under_target():
    routine = make_routine(
        "r1", "weekly", target_count=2, completions=[datetime.combine(SUN_BEFORE, datetime.min.time())]
    )
    occ = _due(routine, TODAY)
    assert occ is not None
    assert not occ.completed


def test_weekly_without_days_not_due_once_target_met():
    routine = make_routine(
        "r1",
        "weekly",
        target_count=2,
        completions=[datetime(2024, 6, 9, 7, 0), datetime(2024, 6, 10, 7, 0)],
    )
    assert _due(routine, TUE) is None


def test_week_start_moves_the_cycle_boundary():
    routine = make_routine("r1", "weekly", completions=[datetime(2024, 6, 10, 7, 0)])

    assert _due(routine, SUN_AFTER, week_start="sunday") is not None
    assert _due(routine, SUN_AFTER, week_start="monday") is None


def test_completion_on_the_day_marks_occurrence_completed():
    routine = make_routine("r1", completions=[datetime(2024, 6, 10, 8, 15)])
    occ = _due(routine, TODAY)

    assert occ is not None
    assert occ.completed
    assert occ.status == "completed"


def test_weekly_count_ignores_completion_logged_today():
    routine = make_routine("r1", "weekly", completions=[datetime(2024, 6, 10, 8, 15)])
    occ = _due(routine, TODAY)
    assert occ is not None
    assert occ.completed


def test_monthly_day_of_month_clamped_to_last_day():
    routine = make_routine("r1", "monthly", day_of_month=31)

    assert _due(routine, date(2024, 6, 30)) is not None
    assert _due(routine, date(2024, 6, 29)) is None
    assert _due(routine, date(2024, 2, 29)) is not None


def test_monthly_without_day_due_until_target_met():
    routine = make_routine("r1", "monthly")
    assert _due(routine, TODAY) is not None

    done = make_routine("r1", "monthly", completions=[datetime(2024, 6, 3, 9, 0)])
    assert _due(done, TODAY) is None
    assert _due(done, date(2024, 7, 1)) is not None


def test_quarterly_due_on_first_of_listed_months():
    routine = make_routine("r1", "quarterly", months=[1, 4, 7, 10])

    assert _due(routine, date(2024, 7, 1)) is not None
    assert _due(routine, date(2024, 7, 2)) is None
    assert _due(routine, date(2024, 6, 1)) is None


def test_yearly_defaults_to_january():
    routine = make_routine("r1", "yearly")

    assert _due(routine, date(2025, 1, 1)) is not None
    assert _due(routine, date(2024, 6, 1)) is None


def test_end_date_in_the_past_skips():
    routine = make_routine("r1", end_date=date(2024, 6, 9))
    assert _due(routine, TODAY) is None


def test_end_date_today_still_due_with_no_next():
    routine = make_routine("r1", end_date=TODAY)
    occ = _due(routine, TODAY)

    assert occ is not None
    assert occ.recurrence is not None
    assert occ.recurrence.next_due is None


def test_skip_date_skips():
    routine = make_routine("r1", skip_dates=[TODAY])
    assert _due(routine, TODAY) is None
    assert _due(routine, TUE) is not None


def test_routine_without_title_skipped():
    assert _due(make_routine("r1", title=""), TODAY) is None


def test_malformed_routine_logged_and_omitted(caplog):
    routine = make_routine("r1", "weekly", days=["funday"])

    with caplog.at_level(logging.WARNING, logger="worklist.recurrence"):
        assert _due(routine, TODAY) is None

    assert "funday" in caplog.text


def test_quarterly_without_months_is_malformed():
    routine = make_routine("r1", "quarterly")

    with pytest.raises(DataIntegrityWarning):
        next_due(routine, TODAY)
    assert _due(routine, date(2024, 7, 1)) is None


def test_unknown_frequency_is_malformed():
    routine = make_routine("r1", "hourly")
    with pytest.raises(DataIntegrityWarning, match="hourly"):
        next_due(routine, TODAY)


def test_next_due_weekly_looks_ahead():
    routine = make_routine("r1", "weekly", days=["monday", "wednesday", "friday"])

    assert next_due(routine, TUE) == WED
    assert next_due(routine, SAT) == date(2024, 6, 17)


def test_next_due_monthly_carries_to_next_month():
    routine = make_routine("r1", "monthly", day_of_month=15)

    assert next_due(routine, date(2024, 6, 20)) == date(2024, 7, 15)
    assert next_due(routine, date(2024, 6, 15)) == date(2024, 6, 15)


def test_recurrence_snapshot():
    routine = make_routine(
        "r1", "weekly", days=["monday", "thursday"], completions=[datetime(2024, 6, 6, 18, 0)]
    )
    occ = _due(routine, TODAY)

    assert occ is not None
    rec = occ.recurrence
    assert rec is not None
    assert rec.pattern == "weekly"
    assert rec.next_due == THU
    assert rec.last_completed == datetime(2024, 6, 6, 18, 0)
    assert [d.day for d in rec.days_of_week] == ["monday", "thursday"]


def test_planned_days_count_toward_weekly_target():
    routine = make_routine("r1", "weekly", target_count=1)

    assert _due(routine, TUE) is not None
    assert _due(routine, TUE, planned=[MON]) is None
    assert next_due(routine, TUE, planned=[MON]) == SUN_AFTER


def test_planned_day_already_logged_counts_once():
    routine = make_routine("r1", "weekly", target_count=2, completions=[datetime(2024, 6, 10, 7, 0)])
    assert _due(routine, TUE, planned=[MON]) is not None


def test_count_snapshot_next_due_skips_rest_of_cycle():
    occ = _due(make_routine("r1", "weekly", target_count=1), TODAY)

    assert occ is not None
    assert occ.recurrence.next_due == SUN_AFTER
