from collections.abc import Iterable
from datetime import date
from functools import cmp_to_key

from .core.models import ScheduledOccurrence
from .core.types import PRIORITIES

__all__ = ["compare", "sort_occurrences"]

_RANK = {p: i for i, p in enumerate(PRIORITIES)}


def _cmp(a: object, b: object) -> int:
    return (a > b) - (a < b)  # type: ignore[operator]


def _is_overdue(item: ScheduledOccurrence, today: date) -> bool:
    return item.due_date is not None and item.due_date < today


def compare(a: ScheduledOccurrence, b: ScheduledOccurrence, *, today: date) -> int:
    """Order two worklist items. The first key that differs decides.

    blocked, overdue, priority, due date (dated first), complexity,
    routine-ness, then creation time with the id as the last word.
    """
    if a.blocked != b.blocked:
        return 1 if a.blocked else -1

    a_overdue, b_overdue = _is_overdue(a, today), _is_overdue(b, today)
    if a_overdue != b_overdue:
        return -1 if a_overdue else 1

    a_priority, b_priority = _RANK.get(a.priority, 1), _RANK.get(b.priority, 1)
    if a_priority != b_priority:
        return a_priority - b_priority

    if a.due_date is not None and b.due_date is not None:
        if a.due_date != b.due_date:
            return _cmp(a.due_date, b.due_date)
    elif a.due_date is not None:
        return -1
    elif b.due_date is not None:
        return 1

    a_complexity = _RANK.get(a.complexity or "medium", 1)
    b_complexity = _RANK.get(b.complexity or "medium", 1)
    if a_complexity != b_complexity:
        return a_complexity - b_complexity

    if a.is_routine != b.is_routine:
        return 1 if a.is_routine else -1

    return _cmp(a.created, b.created) or _cmp(a.id, b.id)


def sort_occurrences(items: Iterable[ScheduledOccurrence], *, today: date) -> list[ScheduledOccurrence]:
    return sorted(items, key=cmp_to_key(lambda a, b: compare(a, b, today=today)))
