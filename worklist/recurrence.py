"""Recurrence evaluation for routines.

One evaluator answers "when is this routine next due, looking from day D" for
every frequency. Materialization is the narrow question on top of it: is the
routine due *on* D, and if so, what occurrence does that produce.

Completions logged on D itself never change whether D is due; they only mark
D's occurrence as completed. That keeps the worklist for a day stable while
the day's items are being checked off.
"""

import logging
from collections.abc import Collection
from datetime import date, datetime, time, timedelta

from dateutil.relativedelta import relativedelta

from .core.errors import DataIntegrityWarning
from .core.models import Provenance, Recurrence, Routine, ScheduledOccurrence
from .core.types import FREQUENCIES
from .lib import clock
from .lib.dates import clamp_day, cycle_bounds, epoch, week_offset, weekday_index

__all__ = [
    "materialize_routine",
    "next_due",
    "occurrence_id",
    "validate_routine",
]

logger = logging.getLogger(__name__)


def occurrence_id(routine_id: str, on: date) -> str:
    return f"{routine_id}-{epoch(on)}"


def _completed_before(routine: Routine, on: date) -> set[date]:
    return {c.date() for c in routine.completions if c.date() < on}


def _count_in_cycle(routine: Routine, on: date, week_start: str, planned: Collection[date] = ()) -> int:
    """Completions logged earlier in the cycle, plus days already planned in it."""
    assert routine.frequency is not None
    start, _ = cycle_bounds(routine.frequency, on, week_start)
    logged = [c.date() for c in routine.completions if start <= c.date() < on]
    extra = {d for d in planned if start <= d < on} - set(logged)
    return len(logged) + len(extra)


def validate_routine(routine: Routine) -> None:
    """Raise DataIntegrityWarning if the routine lacks what its frequency needs."""
    if routine.frequency not in FREQUENCIES:
        raise DataIntegrityWarning(routine.id, f"unknown frequency '{routine.frequency}'")
    schedule = routine.schedule
    if schedule is None:
        raise DataIntegrityWarning(routine.id, "missing schedule")

    if routine.frequency == "weekly":
        for ds in schedule.days_of_week:
            try:
                weekday_index(ds.day)
            except ValueError as e:
                raise DataIntegrityWarning(routine.id, str(e)) from e
        if not schedule.days_of_week and schedule.target_count < 1:
            raise DataIntegrityWarning(routine.id, "weekly routine needs days or a target count")
    elif routine.frequency == "monthly":
        if schedule.day_of_month is not None and not 1 <= schedule.day_of_month <= 31:
            raise DataIntegrityWarning(routine.id, f"day of month {schedule.day_of_month}")
        if schedule.day_of_month is None and schedule.target_count < 1:
            raise DataIntegrityWarning(routine.id, "monthly routine needs a day or a target count")
    elif routine.frequency in ("quarterly", "yearly"):
        if routine.frequency == "quarterly" and not schedule.months_of_year:
            raise DataIntegrityWarning(routine.id, "quarterly routine without months")
        bad = [m for m in schedule.months_of_year if not 1 <= m <= 12]
        if bad:
            raise DataIntegrityWarning(routine.id, f"months out of range: {bad}")


def _next_weekly(routine: Routine, on: date, week_start: str, planned: Collection[date]) -> date:
    assert routine.schedule is not None
    schedule = routine.schedule
    cycle_start, cycle_end = cycle_bounds("weekly", on, week_start)

    if not schedule.days_of_week:
        if _count_in_cycle(routine, on, week_start, planned) < schedule.target_count:
            return on
        return cycle_end

    first = weekday_index(week_start)
    offsets = sorted({(weekday_index(ds.day) - first) % 7 for ds in schedule.days_of_week})
    done = _completed_before(routine, on)
    today_offset = week_offset(on, week_start)
    for offset in offsets:
        if offset < today_offset:
            continue
        candidate = cycle_start + timedelta(days=offset)
        if candidate not in done:
            return candidate
    return cycle_end + timedelta(days=offsets[0])


def _next_monthly(routine: Routine, on: date, week_start: str, planned: Collection[date]) -> date:
    assert routine.schedule is not None
    schedule = routine.schedule
    if schedule.day_of_month is not None:
        target = clamp_day(on.year, on.month, schedule.day_of_month)
        if on <= target:
            return target
        following = on + relativedelta(months=1)
        return clamp_day(following.year, following.month, schedule.day_of_month)

    if on.day == 1 or _count_in_cycle(routine, on, week_start, planned) < schedule.target_count:
        return on
    return on.replace(day=1) + relativedelta(months=1)


def _next_month_start(routine: Routine, on: date) -> date:
    assert routine.schedule is not None
    months = set(routine.schedule.months_of_year or [1])
    if on.day == 1 and on.month in months:
        return on
    candidate = on.replace(day=1)
    for _ in range(12):
        candidate += relativedelta(months=1)
        if candidate.month in months:
            return candidate
    raise DataIntegrityWarning(routine.id, "no valid month")


def next_due(
    routine: Routine,
    on: date | None = None,
    *,
    week_start: str = "sunday",
    planned: Collection[date] = (),
) -> date:
    """Earliest date on or after `on` the routine is due, ignoring skips and end date.

    `planned` holds days already handed out for this routine earlier in the
    same window; count-based schedules treat them like completions.
    """
    on = on or clock.today()
    validate_routine(routine)
    if routine.frequency == "daily":
        return on
    if routine.frequency == "weekly":
        return _next_weekly(routine, on, week_start, planned)
    if routine.frequency == "monthly":
        return _next_monthly(routine, on, week_start, planned)
    return _next_month_start(routine, on)


def materialize_routine(
    routine: Routine,
    on: date,
    source: Provenance,
    *,
    week_start: str = "sunday",
    planned: Collection[date] = (),
) -> ScheduledOccurrence | None:
    if not routine.title or not routine.frequency or routine.schedule is None:
        logger.debug("skipping incomplete routine %s", routine.id)
        return None
    if routine.end_date is not None and routine.end_date < on:
        return None
    if on in routine.skip_dates:
        return None

    try:
        due = next_due(routine, on, week_start=week_start, planned=planned)
    except DataIntegrityWarning as w:
        logger.warning("omitting routine: %s", w)
        return None
    if due != on:
        return None

    following = next_due(routine, on + timedelta(days=1), week_start=week_start, planned={*planned, on})
    if routine.end_date is not None and following > routine.end_date:
        following = None
    completed = any(c.date() == on for c in routine.completions)
    return ScheduledOccurrence(
        id=occurrence_id(routine.id, on),
        title=routine.title,
        source=source,
        created=datetime.combine(on, time.min),
        scheduled_for=on,
        is_routine=True,
        completed=completed,
        status="completed" if completed else "not_started",
        complexity=routine.complexity,
        recurrence=Recurrence(
            pattern=routine.frequency,
            interval=routine.schedule.target_count,
            days_of_week=list(routine.schedule.days_of_week),
            day_of_month=routine.schedule.day_of_month,
            skip_dates=list(routine.skip_dates),
            last_completed=routine.completions[-1] if routine.completions else None,
            next_due=following,
        ),
    )
