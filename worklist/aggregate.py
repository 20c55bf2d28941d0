import dataclasses
import logging
from collections.abc import Iterable, Sequence
from datetime import date, timedelta

from .core.models import Goal, Provenance, Routine, ScheduledOccurrence, Task
from .lib.dates import day_range
from .recurrence import materialize_routine

__all__ = ["collect", "task_occurrence"]

logger = logging.getLogger(__name__)


def task_occurrence(task: Task, source: Provenance) -> ScheduledOccurrence:
    return ScheduledOccurrence(
        id=task.id,
        title=task.title,
        source=source,
        created=task.created,
        scheduled_for=task.due_date,
        completed=task.completed,
        priority=task.priority,
        status=task.status,
        due_date=task.due_date,
        complexity=task.complexity,
        dependencies=list(task.dependencies),
        notes=task.notes,
    )


def _routine_occurrences(
    routines: Iterable[Routine], days: Sequence[date], source: Provenance, week_start: str
) -> list[ScheduledOccurrence]:
    items = []
    for routine in routines:
        tagged = dataclasses.replace(source, routine_id=routine.id, routine_name=routine.title)
        planned: list[date] = []
        for day in days:
            occurrence = materialize_routine(routine, day, tagged, week_start=week_start, planned=planned)
            if occurrence is not None:
                items.append(occurrence)
                planned.append(day)
    return items


def _goal_candidates(goal: Goal, days: Sequence[date], week_start: str) -> list[ScheduledOccurrence]:
    items: list[ScheduledOccurrence] = []
    milestone_ids = {m.id for m in goal.milestones}

    for milestone in goal.milestones:
        source = Provenance(
            type="milestone",
            goal_id=goal.id,
            goal_name=goal.name,
            milestone_id=milestone.id,
            milestone_name=milestone.name,
        )
        items.extend(task_occurrence(t, source) for t in goal.tasks if t.milestone_id == milestone.id)
        items.extend(_routine_occurrences(milestone.routines, days, source, week_start))

    goal_source = Provenance(type="goal", goal_id=goal.id, goal_name=goal.name)
    for task in goal.tasks:
        if task.milestone_id is None:
            items.append(task_occurrence(task, goal_source))
        elif task.milestone_id not in milestone_ids:
            logger.warning(
                "task %s references unknown milestone %s; listing under goal %s",
                task.id,
                task.milestone_id,
                goal.id,
            )
            items.append(task_occurrence(task, goal_source))

    routine_source = Provenance(type="routine", goal_id=goal.id, goal_name=goal.name)
    items.extend(_routine_occurrences(goal.routines, days, routine_source, week_start))
    return items


def collect(
    goals: Iterable[Goal],
    start: date,
    end: date | None = None,
    *,
    week_start: str = "sunday",
) -> list[ScheduledOccurrence]:
    """Flatten goals into one candidate list over the window [start, end).

    The window defaults to the single day `start`. Ids are unique in the result;
    a repeated id keeps its first occurrence.
    """
    end = end or start + timedelta(days=1)
    days = list(day_range(start, end))

    seen: set[str] = set()
    result: list[ScheduledOccurrence] = []
    for goal in goals:
        for item in _goal_candidates(goal, days, week_start):
            if item.id in seen:
                logger.warning("dropping duplicate occurrence %s from goal %s", item.id, goal.id)
                continue
            seen.add(item.id)
            result.append(item)
    return result
