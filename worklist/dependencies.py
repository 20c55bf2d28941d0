import dataclasses
import logging
from collections import defaultdict
from collections.abc import Sequence
from typing import Literal

from .core.models import ScheduledOccurrence

__all__ = ["MissingPolicy", "resolve"]

logger = logging.getLogger(__name__)

MissingPolicy = Literal["block", "ignore"]


def _is_blocked(
    item: ScheduledOccurrence,
    by_id: dict[str, ScheduledOccurrence],
    missing: MissingPolicy,
) -> bool:
    for dep in item.dependencies:
        target = by_id.get(dep.task_id)
        if target is None:
            if missing == "block":
                logger.debug("%s blocked by %s outside the snapshot", item.id, dep.task_id)
                return True
            continue
        if not target.completed:
            return True
    return False


def resolve(
    candidates: Sequence[ScheduledOccurrence], *, missing: MissingPolicy = "block"
) -> list[ScheduledOccurrence]:
    """Set `blocked` and `dependents` on every candidate from this snapshot alone.

    A dependency whose id is not in the snapshot cannot be proven complete:
    `missing="block"` treats it as blocking, `missing="ignore"` drops it.
    """
    by_id = {c.id: c for c in candidates}
    dependents: dict[str, list[str]] = defaultdict(list)
    for item in candidates:
        for dep in item.dependencies:
            if dep.task_id in by_id and item.id not in dependents[dep.task_id]:
                dependents[dep.task_id].append(item.id)

    return [
        dataclasses.replace(
            item,
            blocked=_is_blocked(item, by_id, missing),
            dependents=dependents.get(item.id, []),
        )
        for item in candidates
    ]
