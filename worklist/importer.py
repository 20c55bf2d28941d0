"""Load goal documents from YAML into the local database.

Accepted shapes: a single goal mapping, a list of goals, or a mapping with a
`goals` list. A goal may carry `members`, a mapping of user id to can-edit.
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from fncli import cli

from . import config
from .core.errors import ValidationError
from .core.models import Goal
from .lib.converters import doc_to_goal
from .lib.errors import echo, exit_error
from .lib.format import format_status
from .store import SqliteGoalRepository

__all__ = ["import_goals", "load_goal_docs"]

logger = logging.getLogger(__name__)


def load_goal_docs(text: str) -> list[dict[str, Any]]:
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValidationError(f"invalid YAML: {e}") from e
    if isinstance(loaded, dict) and "goals" in loaded:
        loaded = loaded["goals"]
    if isinstance(loaded, dict):
        loaded = [loaded]
    if not isinstance(loaded, list):
        raise ValidationError("expected a goal, a list of goals, or a 'goals' list")
    docs = [doc for doc in loaded if isinstance(doc, dict)]
    if len(docs) != len(loaded):
        raise ValidationError("every goal must be a mapping")
    return docs


def _members(doc: dict[str, Any]) -> dict[str, bool] | None:
    raw = doc.get("members")
    if raw is None:
        return None
    if isinstance(raw, list):
        return {str(user): False for user in raw}
    if isinstance(raw, dict):
        return {str(user): bool(can_edit) for user, can_edit in raw.items()}
    raise ValidationError(f"goal '{doc.get('id')}': members must be a list or mapping")


def import_goals(
    docs: list[dict[str, Any]], repository: SqliteGoalRepository, owner: str
) -> list[Goal]:
    saved = []
    for doc in docs:
        if not doc.get("id"):
            raise ValidationError(f"goal '{doc.get('name', '?')}' has no id")
        try:
            goal = doc_to_goal(doc, owner=owner)
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"goal '{doc['id']}': {e}") from e
        saved.append(repository.save_goal(goal, _members(doc)))
        logger.info("imported goal %s (%d tasks)", goal.id, len(goal.tasks))
    return saved


@cli("worklist", name="import")
def import_(file: str) -> None:
    """Import goals from a YAML file"""
    path = Path(file).expanduser()
    if not path.exists():
        exit_error(f"No such file: {file}")

    user = config.get_user()
    try:
        goals = import_goals(load_goal_docs(path.read_text()), SqliteGoalRepository(user), user)
    except ValidationError as e:
        exit_error(str(e))

    for goal in goals:
        echo(format_status("→", goal.name, goal.id))
    echo(f"imported {len(goals)} goal{'s' if len(goals) != 1 else ''}")
