"""Core type definitions."""

from typing import Literal

Priority = Literal["high", "medium", "low"]
Complexity = Literal["high", "medium", "low"]
Status = Literal["not_started", "in_progress", "completed"]
Frequency = Literal["daily", "weekly", "monthly", "quarterly", "yearly"]
DependencyKind = Literal["blocks", "requires"]
SourceType = Literal["goal", "milestone", "routine"]
Weekday = Literal["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

PRIORITIES: tuple[str, ...] = ("high", "medium", "low")
FREQUENCIES: tuple[str, ...] = ("daily", "weekly", "monthly", "quarterly", "yearly")
WEEKDAYS: tuple[str, ...] = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)
