import dataclasses
import logging
from collections.abc import Iterable, Sequence
from datetime import datetime

from .core.errors import NotFoundError
from .core.models import Goal, Routine, ScheduledOccurrence, Task
from .lib import clock
from .lib.dates import end_of_day
from .store import GoalRepository

__all__ = ["complete_occurrence", "find_routine", "find_task"]

logger = logging.getLogger(__name__)


def _routines(goal: Goal) -> Iterable[Routine]:
    yield from goal.routines
    for milestone in goal.milestones:
        yield from milestone.routines


def find_routine(goals: Sequence[Goal], goal_id: str, routine_id: str) -> tuple[Goal, Routine]:
    goal = next((g for g in goals if g.id == goal_id), None)
    if goal is None:
        raise NotFoundError(f"goal '{goal_id}' not found")
    routine = next((r for r in _routines(goal) if r.id == routine_id), None)
    if routine is None:
        raise NotFoundError(f"routine '{routine_id}' not found in goal '{goal.name}'")
    return goal, routine


def find_task(goals: Sequence[Goal], task_id: str) -> tuple[Goal, Task]:
    for goal in goals:
        for task in goal.tasks:
            if task.id == task_id:
                return goal, task
    raise NotFoundError(f"task '{task_id}' not found")


def _complete_routine(
    occurrence: ScheduledOccurrence,
    goals: Sequence[Goal],
    repository: GoalRepository,
    now: datetime,
) -> Goal:
    routine_id = occurrence.source.routine_id
    if routine_id is None:
        raise NotFoundError(f"occurrence '{occurrence.id}' has no routine")
    goal, routine = find_routine(goals, occurrence.source.goal_id, routine_id)

    on = occurrence.scheduled_for or now.date()
    if any(c.date() == on for c in routine.completions):
        logger.info("routine %s already completed on %s", routine.id, on)
        return goal

    at = now if on == now.date() else end_of_day(on)
    updated = repository.append_completion(goal.id, routine.id, at, expected_version=goal.version)
    logger.info("completed routine %s for %s", routine.id, on)
    return updated


def _toggle_task(
    occurrence: ScheduledOccurrence,
    goals: Sequence[Goal],
    repository: GoalRepository,
    now: datetime,
) -> Goal:
    goal, task = find_task(goals, occurrence.id)
    completed = not task.completed
    toggled = dataclasses.replace(
        task,
        completed=completed,
        status="completed" if completed else "not_started",
        updated=now,
    )
    updated = repository.upsert_task(goal.id, toggled, expected_version=goal.version)
    logger.info("task %s marked %s", task.id, "done" if completed else "not done")
    return updated


def complete_occurrence(
    occurrence: ScheduledOccurrence,
    goals: Sequence[Goal],
    repository: GoalRepository,
    *,
    now: datetime | None = None,
) -> Goal:
    """Write a completion for `occurrence` back to its owning goal.

    Routine occurrences append one completion timestamp for the occurrence's
    day, at most once per day. Plain tasks toggle their completed flag. The
    owner is located by id in `goals`; NotFoundError leaves the repository
    untouched. Returns the goal as stored after the write.
    """
    now = now or clock.now()
    if occurrence.is_routine:
        return _complete_routine(occurrence, goals, repository, now)
    return _toggle_task(occurrence, goals, repository, now)
