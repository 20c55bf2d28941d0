import dataclasses
from datetime import date, datetime

from .types import Complexity, DependencyKind, Frequency, Priority, SourceType, Status, Weekday


@dataclasses.dataclass(frozen=True)
class Dependency:
    task_id: str
    kind: DependencyKind = "requires"
    description: str | None = None


@dataclasses.dataclass(frozen=True)
class Task:
    id: str
    title: str
    created: datetime
    completed: bool = False
    priority: Priority = "medium"
    status: Status = "not_started"
    due_date: date | None = None
    milestone_id: str | None = None
    dependencies: list[Dependency] = dataclasses.field(default_factory=list, hash=False)
    complexity: Complexity | None = None
    notes: str | None = None
    description: str | None = None
    updated: datetime | None = None


@dataclasses.dataclass(frozen=True)
class TimeOfDay:
    hour: int = 0
    minute: int = 0


@dataclasses.dataclass(frozen=True)
class DaySchedule:
    day: Weekday
    time: TimeOfDay = dataclasses.field(default_factory=TimeOfDay)


@dataclasses.dataclass(frozen=True)
class RoutineSchedule:
    target_count: int = 1
    days_of_week: list[DaySchedule] = dataclasses.field(default_factory=list, hash=False)
    day_of_month: int | None = None
    months_of_year: list[int] = dataclasses.field(default_factory=list, hash=False)
    time_of_day: TimeOfDay | None = None


@dataclasses.dataclass(frozen=True)
class Routine:
    id: str
    title: str
    frequency: Frequency | None
    schedule: RoutineSchedule | None
    created: datetime
    completions: list[datetime] = dataclasses.field(default_factory=list, hash=False)
    skip_dates: list[date] = dataclasses.field(default_factory=list, hash=False)
    end_date: date | None = None
    complexity: Complexity | None = None
    description: str | None = None


@dataclasses.dataclass(frozen=True)
class Milestone:
    id: str
    name: str
    target_date: date | None = None
    routines: list[Routine] = dataclasses.field(default_factory=list, hash=False)


@dataclasses.dataclass(frozen=True)
class Goal:
    id: str
    name: str
    owner: str
    tasks: list[Task] = dataclasses.field(default_factory=list, hash=False)
    routines: list[Routine] = dataclasses.field(default_factory=list, hash=False)
    milestones: list[Milestone] = dataclasses.field(default_factory=list, hash=False)
    version: int = 0
    created: datetime | None = None


@dataclasses.dataclass(frozen=True)
class Provenance:
    type: SourceType
    goal_id: str
    goal_name: str
    milestone_id: str | None = None
    milestone_name: str | None = None
    routine_id: str | None = None
    routine_name: str | None = None


@dataclasses.dataclass(frozen=True)
class Recurrence:
    pattern: Frequency
    interval: int
    days_of_week: list[DaySchedule] = dataclasses.field(default_factory=list, hash=False)
    day_of_month: int | None = None
    skip_dates: list[date] = dataclasses.field(default_factory=list, hash=False)
    last_completed: datetime | None = None
    next_due: date | None = None


@dataclasses.dataclass(frozen=True)
class ScheduledOccurrence:
    id: str
    title: str
    source: Provenance
    created: datetime
    scheduled_for: date | None = None
    is_routine: bool = False
    completed: bool = False
    priority: Priority = "medium"
    status: Status = "not_started"
    due_date: date | None = None
    complexity: Complexity | None = None
    dependencies: list[Dependency] = dataclasses.field(default_factory=list, hash=False)
    blocked: bool = False
    dependents: list[str] = dataclasses.field(default_factory=list, hash=False)
    recurrence: Recurrence | None = None
    notes: str | None = None
