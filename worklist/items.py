import sys
from datetime import timedelta

from fncli import UsageError, cli

from . import config
from .core.errors import WorklistError
from .lib import ansi, clock
from .lib.dates import parse_date
from .lib.errors import echo, exit_error
from .lib.format import format_occurrence, format_status
from .lib.resolve import open_scheduler, resolve_occurrence, resolve_occurrence_exact

__all__ = ["done", "ls"]


@cli("worklist", default=True, flags={"all_": ["--all", "-a"]})
def ls(date: str | None = None, days: int | None = None, all_: bool = False) -> None:
    """Show the ordered worklist"""
    start = clock.today()
    if date is not None:
        parsed = parse_date(date)
        if parsed is None:
            raise UsageError(f"Unrecognized date '{date}': use today, tomorrow, mon, YYYY-MM-DD")
        start = parsed
    span = days if days is not None else config.get_horizon_days()
    if span < 1:
        raise UsageError("--days must be at least 1")

    scheduler = open_scheduler()
    items = scheduler.get_scheduled_occurrences(start, start + timedelta(days=span))
    if scheduler.error is not None:
        sys.stderr.write(ansi.warning(f"showing stale worklist: {scheduler.error}") + "\n")

    shown = items if all_ else [i for i in items if not i.completed]
    if not shown:
        echo("nothing scheduled")
        return
    for item in shown:
        echo("  " + format_occurrence(item, start, show_day=span > 1))


@cli("worklist", name="done")
def done(ref: list[str], exact: bool = False) -> None:
    """Complete a scheduled item, or toggle a task back to not done"""
    item_ref = " ".join(ref) if ref else ""
    if not item_ref:
        raise UsageError("Usage: worklist done <item>")

    scheduler = open_scheduler()
    pool = scheduler.get_scheduled_occurrences()
    if scheduler.error is not None:
        exit_error(f"cannot load worklist: {scheduler.error}")

    try:
        item = (resolve_occurrence_exact if exact else resolve_occurrence)(item_ref, pool)
        was_completed = item.completed
        scheduler.complete_occurrence(item.id)
    except WorklistError as e:
        exit_error(str(e))

    if item.is_routine and was_completed:
        echo(format_status(ansi.muted("✓"), f"{item.title.lower()} already done today", item.id))
    elif not item.is_routine and was_completed:
        echo(format_status("□", item.title.lower(), item.id))
    else:
        echo(format_status(ansi.done("✓"), item.title.lower(), item.id))
