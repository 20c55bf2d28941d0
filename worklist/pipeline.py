"""The scheduling pipeline: goals in, ordered worklist out.

Pure and synchronous. Nothing is cached between calls; whoever calls this owns
the result and decides when to recompute it.
"""

from collections.abc import Iterable
from datetime import date

from .aggregate import collect
from .core.models import Goal, ScheduledOccurrence
from .dependencies import MissingPolicy, resolve
from .lib import clock
from .ordering import sort_occurrences

__all__ = ["materialize"]


def materialize(
    goals: Iterable[Goal],
    start: date | None = None,
    end: date | None = None,
    *,
    week_start: str = "sunday",
    missing: MissingPolicy = "block",
) -> list[ScheduledOccurrence]:
    """Materialize, resolve and order the worklist for the window [start, end).

    `start` defaults to today and `end` to the day after `start`. Overdue is
    judged against `start`.
    """
    start = start or clock.today()
    candidates = collect(goals, start, end, week_start=week_start)
    resolved = resolve(candidates, missing=missing)
    return sort_occurrences(resolved, today=start)
