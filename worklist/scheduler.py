"""Consumer-facing scheduling service.

Holds the last fetched goals and the worklist computed from them. Refreshes
are numbered; a refresh that finishes after a newer one was issued is thrown
away instead of overwriting fresher state. Completions are serialized per goal.
"""

import logging
import threading
from collections import defaultdict
from datetime import date

from .completion import complete_occurrence
from .core.errors import NotFoundError, TransientFetchError
from .core.models import Goal, ScheduledOccurrence
from .dependencies import MissingPolicy
from .lib import clock
from .pipeline import materialize
from .store import GoalRepository

__all__ = ["Scheduler"]

logger = logging.getLogger(__name__)


class Scheduler:
    def __init__(
        self,
        repository: GoalRepository,
        user_id: str,
        *,
        week_start: str = "sunday",
        missing: MissingPolicy = "block",
    ):
        self.repository = repository
        self.user_id = user_id
        self.week_start = week_start
        self.missing: MissingPolicy = missing
        self.error: TransientFetchError | None = None

        self._goals: list[Goal] = []
        self._occurrences: list[ScheduledOccurrence] = []
        self._window: tuple[date | None, date | None] = (None, None)
        self._loaded = False
        self._generation = 0
        self._lock = threading.Lock()
        self._goal_locks: defaultdict[str, threading.Lock] = defaultdict(threading.Lock)

    @property
    def goals(self) -> list[Goal]:
        return list(self._goals)

    @property
    def occurrences(self) -> list[ScheduledOccurrence]:
        return list(self._occurrences)

    @property
    def generation(self) -> int:
        return self._generation

    def _materialize(
        self, goals: list[Goal], window: tuple[date | None, date | None]
    ) -> list[ScheduledOccurrence]:
        start, end = window
        return materialize(
            goals,
            start or clock.today(),
            end,
            week_start=self.week_start,
            missing=self.missing,
        )

    def refresh(self) -> bool:
        """Re-fetch goals and rebuild the worklist.

        Returns False when the fetch failed (previous worklist kept, `error`
        set) or when a newer refresh superseded this one.
        """
        with self._lock:
            self._generation += 1
            generation = self._generation
            window = self._window

        try:
            goals = self.repository.fetch_goals_for_user(self.user_id)
        except TransientFetchError as e:
            logger.warning("fetch failed, keeping previous worklist: %s", e)
            with self._lock:
                if generation == self._generation:
                    self.error = e
            return False

        occurrences = self._materialize(goals, window)
        with self._lock:
            if generation != self._generation:
                logger.debug("discarding refresh %d, superseded by %d", generation, self._generation)
                return False
            self._goals = goals
            self._occurrences = occurrences
            self._loaded = True
            self.error = None
        return True

    def get_scheduled_occurrences(
        self, evaluation_date: date | None = None, end: date | None = None
    ) -> list[ScheduledOccurrence]:
        """Ordered worklist for [evaluation_date, end), default today only.

        Recomputes from the cached goals. If a refresh lands meanwhile, its
        result wins and is returned instead.
        """
        window = (evaluation_date, end)
        with self._lock:
            self._window = window
            loaded = self._loaded
            generation = self._generation
            goals = self._goals
        if not loaded:
            self.refresh()
            return self.occurrences

        occurrences = self._materialize(goals, window)
        with self._lock:
            if generation != self._generation:
                logger.debug("recompute from generation %d superseded by %d", generation, self._generation)
                return list(self._occurrences)
            self._occurrences = occurrences
        return list(occurrences)

    def complete_occurrence(self, occurrence_id: str) -> Goal:
        with self._lock:
            occurrence = next((o for o in self._occurrences if o.id == occurrence_id), None)
        if occurrence is None:
            raise NotFoundError(f"no scheduled occurrence '{occurrence_id}'")

        with self._goal_locks[occurrence.source.goal_id]:
            with self._lock:
                goals = self._goals
            goal = complete_occurrence(occurrence, goals, self.repository, now=clock.now())
            self.refresh()
        return goal
