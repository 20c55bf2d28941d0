import getpass
import logging
from pathlib import Path

import yaml

from .core.types import WEEKDAYS

WORKLIST_DIR = Path.home() / ".worklist"
DB_PATH = WORKLIST_DIR / "worklist.db"
CONFIG_PATH = WORKLIST_DIR / "config.yaml"
BACKUP_DIR = Path.home() / ".worklist_backups"

DEFAULTS: dict[str, object] = {
    "week_start": "sunday",
    "missing_dependencies": "block",
    "horizon_days": 1,
    "log_level": "WARNING",
}
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

logger = logging.getLogger(__name__)


class Config:
    """config.yaml under WORKLIST_DIR, read on first use and shared after that."""

    _instance: "Config | None" = None
    _data: dict[str, object]

    def __new__(cls) -> "Config":
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._data = instance._read()
            cls._instance = instance
        return cls._instance

    @staticmethod
    def _read() -> dict[str, object]:
        if not CONFIG_PATH.exists():
            return {}
        try:
            loaded = yaml.safe_load(CONFIG_PATH.read_text())
        except (OSError, yaml.YAMLError) as e:
            logger.warning("ignoring unreadable %s: %s", CONFIG_PATH, e)
            return {}
        return loaded if isinstance(loaded, dict) else {}

    def get(self, key: str, default: object = None) -> object:
        return self._data.get(key, DEFAULTS.get(key, default))

    def set(self, key: str, value: object) -> None:
        self._data[key] = value
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_PATH.write_text(yaml.safe_dump(self._data, default_flow_style=False, allow_unicode=True))


def get_user() -> str:
    """User whose goals are scheduled. Defaults to the login name."""
    val = Config().get("user")
    return str(val).strip() if val else getpass.getuser()


def set_user(user: str) -> None:
    Config().set("user", user)


def get_week_start() -> str:
    val = str(Config().get("week_start")).strip().lower()
    return val if val in WEEKDAYS else "sunday"


def get_missing_dependencies() -> str:
    """How dependencies on ids outside the snapshot are treated: 'block' or 'ignore'."""
    val = str(Config().get("missing_dependencies")).strip().lower()
    return val if val in ("block", "ignore") else "block"


def get_horizon_days() -> int:
    val = Config().get("horizon_days")
    try:
        days = int(val)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return 1
    return max(days, 1)


def get_log_level() -> str:
    val = str(Config().get("log_level")).strip().upper()
    return val if val in _LOG_LEVELS else "WARNING"
