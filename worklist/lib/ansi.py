"""Terminal colours for worklist output, keyed by what the text means."""

import re
from collections.abc import Callable
from dataclasses import dataclass, fields

_ESCAPE = re.compile(r"\x1b\[[0-9;]*m")


@dataclass(frozen=True)
class Palette:
    overdue: str = "\033[38;5;203m"
    due_today: str = "\033[38;5;221m"
    done: str = "\033[38;5;114m"
    blocked: str = "\033[38;5;208m"
    urgent: str = "\033[38;5;203m"
    warning: str = "\033[38;5;221m"
    muted: str = "\033[90m"
    reset: str = "\033[0m"

    @property
    def roles(self) -> tuple[str, ...]:
        return tuple(f.name for f in fields(self) if f.name != "reset")


DEFAULT = Palette()
PLAIN = Palette(**{f.name: "" for f in fields(Palette)})
_palette = DEFAULT


def use(palette: Palette) -> None:
    global _palette
    _palette = palette


def paint(role: str, text: str) -> str:
    code = getattr(_palette, role)
    if not code:
        return text
    return f"{code}{text}{_palette.reset}"


def __getattr__(role: str) -> Callable[[str], str]:
    # ansi.overdue("12/06") == paint("overdue", "12/06")
    if role in DEFAULT.roles:
        return lambda text: paint(role, text)
    raise AttributeError(f"module {__name__!r} has no attribute {role!r}")


def strip(text: str) -> str:
    return _ESCAPE.sub("", text)
