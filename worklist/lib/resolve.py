from collections.abc import Sequence

from .. import config
from ..core.models import ScheduledOccurrence
from ..scheduler import Scheduler
from ..store import SqliteGoalRepository
from .errors import exit_error
from .fuzzy import find_in_pool, find_in_pool_exact

__all__ = ["open_scheduler", "resolve_occurrence", "resolve_occurrence_exact"]


def open_scheduler(user: str | None = None) -> Scheduler:
    """Scheduler over the local database, configured from config.yaml."""
    user = user or config.get_user()
    return Scheduler(
        SqliteGoalRepository(user),
        user,
        week_start=config.get_week_start(),
        missing=config.get_missing_dependencies(),  # type: ignore[arg-type]
    )


def resolve_occurrence(ref: str, pool: Sequence[ScheduledOccurrence]) -> ScheduledOccurrence:
    item = find_in_pool(ref, pool)
    if not item:
        exit_error(f"No item found: '{ref}'")
    return item


def resolve_occurrence_exact(ref: str, pool: Sequence[ScheduledOccurrence]) -> ScheduledOccurrence:
    """Like resolve_occurrence but no fuzzy matching: id, exact title or substring only."""
    item = find_in_pool_exact(ref, pool)
    if not item:
        exit_error(f"No item found: '{ref}'")
    return item
