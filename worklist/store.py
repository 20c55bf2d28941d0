"""Goal repositories.

The scheduling engine only talks to the `GoalRepository` protocol. Writes are
keyed per goal and guarded by the goal's version: a caller passing
`expected_version` gets a ConflictError instead of silently overwriting a
concurrent edit. Every successful write bumps the version.
"""

import dataclasses
import sqlite3
import threading
from collections import defaultdict
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol

from . import db
from .core.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    TransientFetchError,
    ValidationError,
)
from .core.models import Goal, Milestone, Routine, Task
from .lib.converters import (
    _parse_date,
    _parse_datetime,
    _parse_datetime_optional,
    dependencies_to_json,
    row_to_milestone,
    row_to_routine,
    row_to_task,
    schedule_to_json,
)

__all__ = [
    "GOAL_FIELDS",
    "GoalRepository",
    "MemoryGoalRepository",
    "SqliteGoalRepository",
]

GOAL_FIELDS = frozenset({"name", "tasks", "routines", "milestones"})


class GoalRepository(Protocol):
    def fetch_goals_for_user(self, user_id: str) -> list[Goal]: ...

    def persist_goal_fields(
        self, goal_id: str, fields: dict[str, Any], expected_version: int | None = None
    ) -> Goal: ...

    def upsert_task(self, goal_id: str, task: Task, expected_version: int | None = None) -> Goal: ...

    def append_completion(
        self, goal_id: str, routine_id: str, at: datetime, expected_version: int | None = None
    ) -> Goal: ...


def _check_fields(fields: dict[str, Any]) -> None:
    unknown = set(fields) - GOAL_FIELDS
    if unknown:
        raise ValidationError(f"unknown goal fields: {', '.join(sorted(unknown))}")


def _with_task(goal: Goal, task: Task) -> Goal:
    if any(t.id == task.id for t in goal.tasks):
        tasks = [task if t.id == task.id else t for t in goal.tasks]
    else:
        tasks = [*goal.tasks, task]
    return dataclasses.replace(goal, tasks=tasks)


def _append(routine: Routine, at: datetime) -> Routine:
    return dataclasses.replace(routine, completions=sorted([*routine.completions, at]))


def _with_completion(goal: Goal, routine_id: str, at: datetime) -> Goal:
    if any(r.id == routine_id for r in goal.routines):
        routines = [_append(r, at) if r.id == routine_id else r for r in goal.routines]
        return dataclasses.replace(goal, routines=routines)
    for milestone in goal.milestones:
        if any(r.id == routine_id for r in milestone.routines):
            updated = dataclasses.replace(
                milestone,
                routines=[_append(r, at) if r.id == routine_id else r for r in milestone.routines],
            )
            milestones = [updated if m.id == milestone.id else m for m in goal.milestones]
            return dataclasses.replace(goal, milestones=milestones)
    raise NotFoundError(f"routine '{routine_id}' not found in goal '{goal.id}'")


# ── memory ───────────────────────────────────────────────────────────────────


class MemoryGoalRepository:
    """Process-local repository. Goals are kept in insertion order."""

    def __init__(self, user_id: str, goals: Iterable[Goal] = ()):
        self.user_id = user_id
        self._goals: dict[str, Goal] = {}
        self._members: dict[str, dict[str, bool]] = defaultdict(dict)
        self._lock = threading.Lock()
        for goal in goals:
            self.save_goal(goal)

    def save_goal(self, goal: Goal, members: dict[str, bool] | None = None) -> Goal:
        with self._lock:
            existing = self._goals.get(goal.id)
            if existing is not None:
                goal = dataclasses.replace(goal, version=existing.version + 1)
            self._goals[goal.id] = goal
            if members is not None:
                self._members[goal.id] = dict(members)
            return goal

    def share(self, goal_id: str, user_id: str, can_edit: bool = False) -> None:
        with self._lock:
            if goal_id not in self._goals:
                raise NotFoundError(f"goal '{goal_id}' not found")
            self._members[goal_id][user_id] = can_edit

    def fetch_goals_for_user(self, user_id: str) -> list[Goal]:
        with self._lock:
            return [
                g
                for g in self._goals.values()
                if g.owner == user_id or user_id in self._members.get(g.id, {})
            ]

    @contextmanager
    def _write(self, goal_id: str, expected_version: int | None) -> Iterator[Goal]:
        with self._lock:
            goal = self._goals.get(goal_id)
            if goal is None:
                raise NotFoundError(f"goal '{goal_id}' not found")
            if goal.owner != self.user_id and not self._members.get(goal_id, {}).get(self.user_id):
                raise PermissionDeniedError(f"{self.user_id} cannot edit goal '{goal_id}'")
            if expected_version is not None and expected_version != goal.version:
                raise ConflictError(goal_id, expected_version, goal.version)
            yield goal

    def _store(self, goal: Goal) -> Goal:
        stored = dataclasses.replace(goal, version=goal.version + 1)
        self._goals[goal.id] = stored
        return stored

    def persist_goal_fields(
        self, goal_id: str, fields: dict[str, Any], expected_version: int | None = None
    ) -> Goal:
        _check_fields(fields)
        with self._write(goal_id, expected_version) as goal:
            return self._store(dataclasses.replace(goal, **fields))

    def upsert_task(self, goal_id: str, task: Task, expected_version: int | None = None) -> Goal:
        with self._write(goal_id, expected_version) as goal:
            return self._store(_with_task(goal, task))

    def append_completion(
        self, goal_id: str, routine_id: str, at: datetime, expected_version: int | None = None
    ) -> Goal:
        with self._write(goal_id, expected_version) as goal:
            return self._store(_with_completion(goal, routine_id, at))


# ── sqlite ───────────────────────────────────────────────────────────────────

_GOAL_COLS = "id, name, owner, version, created"
_TASK_COLS = "id, title, completed, priority, status, due_date, milestone_id, dependencies, complexity, notes, description, created, updated"
_ROUTINE_COLS = "id, title, frequency, schedule, end_date, complexity, description, created"


def _iso(val) -> str | None:
    return val.isoformat() if val is not None else None


class SqliteGoalRepository:
    def __init__(self, user_id: str, db_path: Path | None = None):
        self.user_id = user_id
        self.db_path = db_path

    # reads

    def _fetch_routines(
        self, conn: sqlite3.Connection, where: str, params: tuple[object, ...]
    ) -> list[Routine]:
        rows = conn.execute(
            f"SELECT {_ROUTINE_COLS} FROM routines WHERE {where} ORDER BY position, rowid",  # noqa: S608
            params,
        ).fetchall()
        routines = []
        for row in rows:
            completions = [
                _parse_datetime(r[0])
                for r in conn.execute(
                    "SELECT completed_at FROM routine_completions WHERE routine_id = ? ORDER BY completed_at",
                    (row[0],),
                ).fetchall()
            ]
            skips = [
                d
                for d in (
                    _parse_date(r[0])
                    for r in conn.execute(
                        "SELECT skip_date FROM routine_skips WHERE routine_id = ? ORDER BY skip_date",
                        (row[0],),
                    ).fetchall()
                )
                if d is not None
            ]
            routines.append(row_to_routine(row, completions, skips))
        return routines

    def _hydrate(self, conn: sqlite3.Connection, row: tuple[object, ...]) -> Goal:
        goal_id = str(row[0])
        tasks = [
            row_to_task(r)
            for r in conn.execute(
                f"SELECT {_TASK_COLS} FROM tasks WHERE goal_id = ? ORDER BY position, rowid",  # noqa: S608
                (goal_id,),
            ).fetchall()
        ]
        milestones = [
            row_to_milestone(r, self._fetch_routines(conn, "milestone_id = ?", (r[0],)))
            for r in conn.execute(
                "SELECT id, name, target_date FROM milestones WHERE goal_id = ? ORDER BY position, rowid",
                (goal_id,),
            ).fetchall()
        ]
        return Goal(
            id=goal_id,
            name=str(row[1]),
            owner=str(row[2]),
            tasks=tasks,
            routines=self._fetch_routines(conn, "goal_id = ? AND milestone_id IS NULL", (goal_id,)),
            milestones=milestones,
            version=int(row[3]),  # type: ignore[call-overload]
            created=_parse_datetime_optional(row[4]),
        )

    def fetch_goals_for_user(self, user_id: str) -> list[Goal]:
        try:
            with db.get_db(self.db_path) as conn:
                rows = conn.execute(
                    f"SELECT {_GOAL_COLS} FROM goals WHERE owner = ? "  # noqa: S608
                    "OR id IN (SELECT goal_id FROM goal_members WHERE user_id = ?) "
                    "ORDER BY created, rowid",
                    (user_id, user_id),
                ).fetchall()
                return [self._hydrate(conn, row) for row in rows]
        except sqlite3.Error as e:
            raise TransientFetchError(f"could not load goals: {e}") from e

    def get_goal(self, goal_id: str) -> Goal:
        with db.get_db(self.db_path) as conn:
            row = conn.execute(
                f"SELECT {_GOAL_COLS} FROM goals WHERE id = ?",  # noqa: S608
                (goal_id,),
            ).fetchone()
            if not row:
                raise NotFoundError(f"goal '{goal_id}' not found")
            return self._hydrate(conn, row)

    # writes

    def _insert_task(self, conn: sqlite3.Connection, goal_id: str, position: int, task: Task) -> None:
        conn.execute(
            f"INSERT OR REPLACE INTO tasks (goal_id, position, {_TASK_COLS}) "  # noqa: S608
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                goal_id,
                position,
                task.id,
                task.title,
                int(task.completed),
                task.priority,
                task.status,
                _iso(task.due_date),
                task.milestone_id,
                dependencies_to_json(task.dependencies),
                task.complexity,
                task.notes,
                task.description,
                task.created.isoformat(),
                _iso(task.updated),
            ),
        )

    def _insert_routine(
        self,
        conn: sqlite3.Connection,
        goal_id: str,
        milestone_id: str | None,
        position: int,
        routine: Routine,
    ) -> None:
        conn.execute(
            f"INSERT INTO routines (goal_id, milestone_id, position, {_ROUTINE_COLS}) "  # noqa: S608
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                goal_id,
                milestone_id,
                position,
                routine.id,
                routine.title,
                routine.frequency,
                schedule_to_json(routine.schedule),
                _iso(routine.end_date),
                routine.complexity,
                routine.description,
                routine.created.isoformat(),
            ),
        )
        conn.executemany(
            "INSERT INTO routine_completions (routine_id, completed_at) VALUES (?, ?)",
            [(routine.id, c.isoformat()) for c in routine.completions],
        )
        conn.executemany(
            "INSERT OR IGNORE INTO routine_skips (routine_id, skip_date) VALUES (?, ?)",
            [(routine.id, d.isoformat()) for d in routine.skip_dates],
        )

    def _replace_tasks(self, conn: sqlite3.Connection, goal_id: str, tasks: list[Task]) -> None:
        conn.execute("DELETE FROM tasks WHERE goal_id = ?", (goal_id,))
        for position, task in enumerate(tasks):
            self._insert_task(conn, goal_id, position, task)

    def _replace_routines(self, conn: sqlite3.Connection, goal_id: str, routines: list[Routine]) -> None:
        conn.execute("DELETE FROM routines WHERE goal_id = ? AND milestone_id IS NULL", (goal_id,))
        for position, routine in enumerate(routines):
            self._insert_routine(conn, goal_id, None, position, routine)

    def _replace_milestones(
        self, conn: sqlite3.Connection, goal_id: str, milestones: list[Milestone]
    ) -> None:
        conn.execute("DELETE FROM routines WHERE goal_id = ? AND milestone_id IS NOT NULL", (goal_id,))
        conn.execute("DELETE FROM milestones WHERE goal_id = ?", (goal_id,))
        for position, milestone in enumerate(milestones):
            conn.execute(
                "INSERT INTO milestones (id, goal_id, position, name, target_date) VALUES (?, ?, ?, ?, ?)",
                (milestone.id, goal_id, position, milestone.name, _iso(milestone.target_date)),
            )
            for r_position, routine in enumerate(milestone.routines):
                self._insert_routine(conn, goal_id, milestone.id, r_position, routine)

    @contextmanager
    def _write(self, goal_id: str, expected_version: int | None) -> Iterator[sqlite3.Connection]:
        with db.get_db(self.db_path) as conn:
            row = conn.execute("SELECT owner, version FROM goals WHERE id = ?", (goal_id,)).fetchone()
            if not row:
                raise NotFoundError(f"goal '{goal_id}' not found")
            owner, version = row
            if owner != self.user_id:
                member = conn.execute(
                    "SELECT can_edit FROM goal_members WHERE goal_id = ? AND user_id = ?",
                    (goal_id, self.user_id),
                ).fetchone()
                if not member or not member[0]:
                    raise PermissionDeniedError(f"{self.user_id} cannot edit goal '{goal_id}'")
            if expected_version is not None and expected_version != version:
                raise ConflictError(goal_id, expected_version, version)
            yield conn
            cursor = conn.execute(
                "UPDATE goals SET version = version + 1 WHERE id = ? AND version = ?",
                (goal_id, version),
            )
            if cursor.rowcount != 1:
                current = conn.execute("SELECT version FROM goals WHERE id = ?", (goal_id,)).fetchone()
                raise ConflictError(goal_id, version, current[0] if current else -1)

    def persist_goal_fields(
        self, goal_id: str, fields: dict[str, Any], expected_version: int | None = None
    ) -> Goal:
        _check_fields(fields)
        with self._write(goal_id, expected_version) as conn:
            if "name" in fields:
                conn.execute("UPDATE goals SET name = ? WHERE id = ?", (fields["name"], goal_id))
            if "tasks" in fields:
                self._replace_tasks(conn, goal_id, list(fields["tasks"]))
            if "routines" in fields:
                self._replace_routines(conn, goal_id, list(fields["routines"]))
            if "milestones" in fields:
                self._replace_milestones(conn, goal_id, list(fields["milestones"]))
        return self.get_goal(goal_id)

    def upsert_task(self, goal_id: str, task: Task, expected_version: int | None = None) -> Goal:
        with self._write(goal_id, expected_version) as conn:
            row = conn.execute("SELECT goal_id, position FROM tasks WHERE id = ?", (task.id,)).fetchone()
            if row and row[0] != goal_id:
                raise ValidationError(f"task '{task.id}' belongs to goal '{row[0]}'")
            if row:
                position = row[1]
            else:
                position = conn.execute(
                    "SELECT COALESCE(MAX(position) + 1, 0) FROM tasks WHERE goal_id = ?", (goal_id,)
                ).fetchone()[0]
            self._insert_task(conn, goal_id, position, task)
        return self.get_goal(goal_id)

    def append_completion(
        self, goal_id: str, routine_id: str, at: datetime, expected_version: int | None = None
    ) -> Goal:
        with self._write(goal_id, expected_version) as conn:
            row = conn.execute(
                "SELECT 1 FROM routines WHERE id = ? AND goal_id = ?", (routine_id, goal_id)
            ).fetchone()
            if not row:
                raise NotFoundError(f"routine '{routine_id}' not found in goal '{goal_id}'")
            conn.execute(
                "INSERT INTO routine_completions (routine_id, completed_at) VALUES (?, ?)",
                (routine_id, at.isoformat()),
            )
        return self.get_goal(goal_id)

    def save_goal(self, goal: Goal, members: dict[str, bool] | None = None) -> Goal:
        """Create or fully replace a goal and everything under it."""
        with db.get_db(self.db_path) as conn:
            exists = conn.execute("SELECT 1 FROM goals WHERE id = ?", (goal.id,)).fetchone()
            if exists:
                conn.execute(
                    "UPDATE goals SET name = ?, owner = ?, version = version + 1 WHERE id = ?",
                    (goal.name, goal.owner, goal.id),
                )
            else:
                conn.execute(
                    "INSERT INTO goals (id, name, owner, version, created) VALUES (?, ?, ?, ?, ?)",
                    (
                        goal.id,
                        goal.name,
                        goal.owner,
                        goal.version,
                        (goal.created or datetime.now()).isoformat(),
                    ),
                )
            self._replace_tasks(conn, goal.id, goal.tasks)
            self._replace_routines(conn, goal.id, goal.routines)
            self._replace_milestones(conn, goal.id, goal.milestones)
            if members is not None:
                conn.execute("DELETE FROM goal_members WHERE goal_id = ?", (goal.id,))
                conn.executemany(
                    "INSERT INTO goal_members (goal_id, user_id, can_edit) VALUES (?, ?, ?)",
                    [(goal.id, user, int(can_edit)) for user, can_edit in members.items()],
                )
        return self.get_goal(goal.id)

