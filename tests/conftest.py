from datetime import date, datetime
from pathlib import Path

import fncli
import pytest

from worklist import config, db
from worklist.core.models import (
    DaySchedule,
    Dependency,
    Goal,
    Milestone,
    Routine,
    RoutineSchedule,
    Task,
)
from worklist.lib import clock

# Monday
TODAY = date(2024, 6, 10)
NOW = datetime(2024, 6, 10, 9, 30)

PACKAGE_ROOT = Path(__file__).resolve().parent.parent / "worklist"


class FnCLIRunner:
    def __init__(self):
        fncli.autodiscover(PACKAGE_ROOT, "worklist")

    def invoke(self, args: list[str]) -> fncli.Result:
        return fncli.invoke(["worklist", *args])


@pytest.fixture
def fixed_clock(monkeypatch):
    """Pin clock.now() to Monday 2024-06-10 09:30. Returns a setter to move it."""
    current = {"now": NOW}
    monkeypatch.setattr(clock, "now", lambda: current["now"])

    def set_now(value: datetime) -> None:
        current["now"] = value

    return set_now


@pytest.fixture
def tmp_worklist_dir(tmp_path, monkeypatch, fixed_clock):
    worklist_dir = tmp_path / ".worklist"
    monkeypatch.setattr(config, "WORKLIST_DIR", worklist_dir)
    monkeypatch.setattr(config, "DB_PATH", worklist_dir / "worklist.db")
    monkeypatch.setattr(config, "CONFIG_PATH", worklist_dir / "config.yaml")
    monkeypatch.setattr(config, "BACKUP_DIR", tmp_path / ".worklist_backups")
    monkeypatch.setattr(config.Config, "_instance", None)
    config.set_user("alice")
    db.init()
    return worklist_dir


def make_task(task_id: str, title: str | None = None, **kwargs) -> Task:
    kwargs.setdefault("created", datetime(2024, 6, 1, 8, 0))
    deps = kwargs.pop("depends_on", None)
    if deps:
        kwargs["dependencies"] = [Dependency(task_id=d) for d in deps]
    return Task(id=task_id, title=title or task_id, **kwargs)


def make_routine(
    routine_id: str,
    frequency: str = "daily",
    title: str | None = None,
    days: list[str] | None = None,
    target_count: int = 1,
    day_of_month: int | None = None,
    months: list[int] | None = None,
    **kwargs,
) -> Routine:
    kwargs.setdefault("created", datetime(2024, 1, 1))
    schedule = RoutineSchedule(
        target_count=target_count,
        days_of_week=[DaySchedule(day=d) for d in days or []],  # type: ignore[arg-type]
        day_of_month=day_of_month,
        months_of_year=months or [],
    )
    return Routine(
        id=routine_id,
        title=title if title is not None else routine_id,
        frequency=frequency,  # type: ignore[arg-type]
        schedule=schedule,
        **kwargs,
    )


def make_goal(
    goal_id: str,
    tasks: list[Task] | None = None,
    routines: list[Routine] | None = None,
    milestones: list[Milestone] | None = None,
    owner: str = "alice",
    name: str | None = None,
) -> Goal:
    return Goal(
        id=goal_id,
        name=name or goal_id,
        owner=owner,
        tasks=tasks or [],
        routines=routines or [],
        milestones=milestones or [],
    )


GOALS_YAML = """\
goals:
  - id: g-home
    name: home
    tasks:
      - id: t-bank
        title: Call the bank
        priority: high
        createdAt: 2024-06-01T08:00:00
      - id: t-forms
        title: File the forms
        dependencies: [t-bank]
        createdAt: 2024-06-02T08:00:00
    routines:
      - id: r-stretch
        title: Stretch
        frequency: daily
        schedule: {}
        createdAt: 2024-01-01
  - id: g-work
    name: work
    members: {bob: false}
    milestones:
      - id: m-q3
        name: q3
        routines:
          - id: r-review
            title: Weekly review
            frequency: weekly
            schedule:
              daysOfWeek: [friday]
"""


@pytest.fixture
def goals_file(tmp_path):
    path = tmp_path / "goals.yaml"
    path.write_text(GOALS_YAML)
    return path


@pytest.fixture
def seeded(tmp_worklist_dir, goals_file):
    result = FnCLIRunner().invoke(["import", str(goals_file)])
    assert result.exit_code == 0, result.stderr
    return tmp_worklist_dir
