from datetime import date

from ..core.models import ScheduledOccurrence
from . import ansi

__all__ = ["format_due", "format_occurrence", "format_source", "format_status"]

_PRIORITY_MARK = {"high": "!", "low": "·"}


def format_due(due_date: date | None, today: date, colorize: bool = True) -> str:
    if not due_date:
        return ""
    date_str = due_date.strftime("%d/%m")
    if not colorize:
        return date_str
    if due_date < today:
        return ansi.overdue(date_str)
    if due_date == today:
        return ansi.due_today(date_str)
    return ansi.muted(date_str)


def format_source(item: ScheduledOccurrence) -> str:
    """#goal, or #goal › milestone when the item belongs to one."""
    src = item.source
    parts = [src.goal_name]
    if src.milestone_name:
        parts.append(src.milestone_name)
    return ansi.muted("#" + " › ".join(parts))


def format_occurrence(
    item: ScheduledOccurrence, today: date, show_id: bool = True, show_day: bool = False
) -> str:
    """Returns: [✓|⊘|□] [!] [day] [due] title [↻] #source [⇢n] [id]"""
    parts = []

    if item.completed:
        parts.append(ansi.done("✓"))
    elif item.blocked:
        parts.append(ansi.blocked("⊘"))
    else:
        parts.append("□")

    mark = _PRIORITY_MARK.get(item.priority)
    if mark and not item.completed:
        parts.append(ansi.urgent(mark) if mark == "!" else ansi.muted(mark))

    if show_day and item.is_routine and item.scheduled_for:
        parts.append(ansi.muted(item.scheduled_for.strftime("%a %d/%m").lower()))

    if item.due_date:
        parts.append(format_due(item.due_date, today))

    parts.append(ansi.muted(item.title.lower()) if item.completed else item.title.lower())

    if item.is_routine:
        parts.append(ansi.muted("↻"))

    parts.append(format_source(item))

    if item.dependents:
        parts.append(ansi.muted(f"⇢{len(item.dependents)}"))

    if show_id:
        parts.append(ansi.muted(f"[{item.id[:8]}]"))

    return " ".join(parts)


def format_status(symbol: str, content: str, item_id: str | None = None) -> str:
    """Format status message for action confirmations."""
    if item_id:
        return f"{symbol} {content} {ansi.muted(f'[{item_id[:8]}]')}"
    return f"{symbol} {content}"
