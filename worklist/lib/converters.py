"""Conversions between stored rows or plain documents and model objects.

Documents are the dict shape used by YAML imports and JSON columns:
camelCase keys as the original goal documents were written are accepted
alongside snake_case.
"""

import json
from datetime import date, datetime
from typing import Any, cast

from ..core.models import (
    DaySchedule,
    Dependency,
    Goal,
    Milestone,
    Routine,
    RoutineSchedule,
    Task,
    TimeOfDay,
)

TaskRow = tuple[object, ...]
RoutineRow = tuple[object, ...]
MilestoneRow = tuple[object, ...]


def _naive_local(val: datetime) -> datetime:
    """Offset-aware values become naive local time, matching clock.now()."""
    if val.tzinfo is None:
        return val
    return val.astimezone().replace(tzinfo=None)


def _parse_date(val) -> date | None:
    """Parse a date value that may be str, date or numeric timestamp."""
    if isinstance(val, datetime):
        return _naive_local(val).date()
    if isinstance(val, date):
        return val
    if isinstance(val, str) and val:
        if "T" in val:
            parsed = _parse_datetime_optional(val)
            return parsed.date() if parsed is not None else None
        return date.fromisoformat(val)
    if isinstance(val, (int, float)):
        return datetime.fromtimestamp(val).date()
    return None


def _parse_datetime(val) -> datetime:
    """Parse a datetime value that may be str or numeric timestamp."""
    parsed = _parse_datetime_optional(val)
    return parsed if parsed is not None else datetime.min


def _parse_datetime_optional(val) -> datetime | None:
    """Parse an optional datetime value that may be str or numeric timestamp."""
    if isinstance(val, datetime):
        return _naive_local(val)
    if isinstance(val, date):
        return datetime.combine(val, datetime.min.time())
    if isinstance(val, str) and val:
        try:
            return _naive_local(datetime.fromisoformat(val))
        except ValueError:
            return datetime.combine(date.fromisoformat(val), datetime.min.time())
    if isinstance(val, (int, float)):
        return datetime.fromtimestamp(val)
    return None


def _pick(doc: dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in doc and doc[key] is not None:
            return doc[key]
    return default


def _time_of_day(doc: Any) -> TimeOfDay | None:
    if not isinstance(doc, dict):
        return None
    return TimeOfDay(hour=int(doc.get("hour", 0)), minute=int(doc.get("minute", 0)))


def doc_to_schedule(doc: Any) -> RoutineSchedule | None:
    if not isinstance(doc, dict):
        return None
    days = []
    for entry in _pick(doc, "days_of_week", "daysOfWeek", default=[]):
        if isinstance(entry, str):
            days.append(DaySchedule(day=cast(Any, entry.lower())))
        elif isinstance(entry, dict) and entry.get("day"):
            days.append(
                DaySchedule(
                    day=cast(Any, str(entry["day"]).lower()),
                    time=_time_of_day(entry.get("time")) or TimeOfDay(),
                )
            )
    day_of_month = _pick(doc, "day_of_month", "dayOfMonth")
    return RoutineSchedule(
        target_count=int(_pick(doc, "target_count", "targetCount", default=1)),
        days_of_week=days,
        day_of_month=int(day_of_month) if day_of_month is not None else None,
        months_of_year=[int(m) for m in _pick(doc, "months_of_year", "monthsOfYear", default=[])],
        time_of_day=_time_of_day(_pick(doc, "time_of_day", "timeOfDay")),
    )


def schedule_to_doc(schedule: RoutineSchedule | None) -> dict[str, Any] | None:
    if schedule is None:
        return None
    doc: dict[str, Any] = {"target_count": schedule.target_count}
    if schedule.days_of_week:
        doc["days_of_week"] = [
            {"day": d.day, "time": {"hour": d.time.hour, "minute": d.time.minute}}
            for d in schedule.days_of_week
        ]
    if schedule.day_of_month is not None:
        doc["day_of_month"] = schedule.day_of_month
    if schedule.months_of_year:
        doc["months_of_year"] = list(schedule.months_of_year)
    if schedule.time_of_day is not None:
        doc["time_of_day"] = {"hour": schedule.time_of_day.hour, "minute": schedule.time_of_day.minute}
    return doc


def schedule_to_json(schedule: RoutineSchedule | None) -> str | None:
    doc = schedule_to_doc(schedule)
    return json.dumps(doc) if doc is not None else None


def doc_to_dependency(doc: Any) -> Dependency:
    if isinstance(doc, str):
        return Dependency(task_id=doc)
    return Dependency(
        task_id=str(_pick(doc, "task_id", "taskId")),
        kind=_pick(doc, "kind", "type", default="requires"),
        description=doc.get("description"),
    )


def dependencies_to_json(deps: list[Dependency]) -> str | None:
    if not deps:
        return None
    return json.dumps(
        [{"task_id": d.task_id, "kind": d.kind, "description": d.description} for d in deps]
    )


def doc_to_task(doc: dict[str, Any]) -> Task:
    created = _parse_datetime(_pick(doc, "created", "createdAt"))
    completed = bool(doc.get("completed", False))
    return Task(
        id=str(doc["id"]),
        title=str(doc.get("title", "")),
        created=created,
        completed=completed,
        priority=doc.get("priority", "medium"),
        status=doc.get("status", "completed" if completed else "not_started"),
        due_date=_parse_date(_pick(doc, "due_date", "dueDate", "due")),
        milestone_id=_pick(doc, "milestone_id", "milestoneId"),
        dependencies=[doc_to_dependency(d) for d in doc.get("dependencies") or []],
        complexity=doc.get("complexity"),
        notes=doc.get("notes"),
        description=doc.get("description"),
        updated=_parse_datetime_optional(_pick(doc, "updated", "updatedAt")),
    )


def doc_to_routine(doc: dict[str, Any]) -> Routine:
    schedule = doc.get("schedule")
    if isinstance(schedule, dict) and "target_count" not in schedule and "targetCount" not in schedule:
        target = _pick(doc, "target_count", "targetCount")
        if target is not None:
            schedule = {**schedule, "target_count": target}
    return Routine(
        id=str(doc["id"]),
        title=str(doc.get("title") or ""),
        frequency=doc.get("frequency"),
        schedule=doc_to_schedule(schedule),
        created=_parse_datetime(_pick(doc, "created", "createdAt")),
        completions=sorted(
            _parse_datetime(c) for c in _pick(doc, "completions", "completionDates", default=[])
        ),
        skip_dates=[d for d in (_parse_date(s) for s in _pick(doc, "skip_dates", "skipDates", default=[])) if d],
        end_date=_parse_date(_pick(doc, "end_date", "endDate")),
        complexity=doc.get("complexity"),
        description=doc.get("description"),
    )


def doc_to_goal(doc: dict[str, Any], owner: str | None = None) -> Goal:
    milestones = [
        Milestone(
            id=str(m["id"]),
            name=str(m.get("name", "")),
            target_date=_parse_date(_pick(m, "target_date", "targetDate")),
            routines=[doc_to_routine(r) for r in m.get("routines") or []],
        )
        for m in doc.get("milestones") or []
    ]
    return Goal(
        id=str(doc["id"]),
        name=str(doc.get("name", "")),
        owner=str(_pick(doc, "owner", "ownerId", default=owner or "")),
        tasks=[doc_to_task(t) for t in doc.get("tasks") or []],
        routines=[doc_to_routine(r) for r in doc.get("routines") or []],
        milestones=milestones,
        version=int(doc.get("version", 0)),
        created=_parse_datetime_optional(_pick(doc, "created", "createdAt")),
    )


def row_to_task(row: TaskRow) -> Task:
    """
    Converts a raw database row from tasks table into a Task object.
    Expected row format: (id, title, completed, priority, status, due_date, milestone_id, dependencies, complexity, notes, description, created, updated)
    """
    deps_raw = cast(str | None, row[7])
    return Task(
        id=cast(str, row[0]),
        title=cast(str, row[1]),
        completed=bool(row[2]),
        priority=cast(Any, row[3]),
        status=cast(Any, row[4]),
        due_date=_parse_date(row[5]),
        milestone_id=cast(str, row[6]) if row[6] is not None else None,
        dependencies=[doc_to_dependency(d) for d in json.loads(deps_raw)] if deps_raw else [],
        complexity=cast(Any, row[8]),
        notes=cast(str, row[9]) if row[9] is not None else None,
        description=cast(str, row[10]) if row[10] is not None else None,
        created=_parse_datetime(row[11]),
        updated=_parse_datetime_optional(row[12]),
    )


def row_to_routine(
    row: RoutineRow, completions: list[datetime], skip_dates: list[date]
) -> Routine:
    """
    Converts a raw database row from routines table into a Routine object.
    Expected row format: (id, title, frequency, schedule, end_date, complexity, description, created)
    """
    schedule_raw = cast(str | None, row[3])
    return Routine(
        id=cast(str, row[0]),
        title=cast(str, row[1] or ""),
        frequency=cast(Any, row[2]),
        schedule=doc_to_schedule(json.loads(schedule_raw)) if schedule_raw else None,
        end_date=_parse_date(row[4]),
        complexity=cast(Any, row[5]),
        description=cast(str, row[6]) if row[6] is not None else None,
        created=_parse_datetime(row[7]),
        completions=completions,
        skip_dates=skip_dates,
    )


def row_to_milestone(row: MilestoneRow, routines: list[Routine]) -> Milestone:
    """Expected row format: (id, name, target_date)"""
    return Milestone(
        id=cast(str, row[0]),
        name=cast(str, row[1]),
        target_date=_parse_date(row[2]),
        routines=routines,
    )
