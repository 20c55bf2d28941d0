from tests.conftest import NOW, FnCLIRunner
from worklist import config
from worklist.lib.ansi import strip
from worklist.store import SqliteGoalRepository


def _goal(goal_id):
    return next(g for g in SqliteGoalRepository("alice").fetch_goals_for_user("alice") if g.id == goal_id)


def test_done_task_by_title(seeded):
    runner = FnCLIRunner()
    result = runner.invoke(["done", "call", "the", "bank"])

    assert result.exit_code == 0
    assert "✓ call the bank" in strip(result.stdout)
    assert _goal("g-home").tasks[0].completed


def test_done_unblocks_dependent(seeded):
    runner = FnCLIRunner()
    runner.invoke(["done", "t-bank"])

    lines = [strip(line).strip() for line in runner.invoke(["ls"]).stdout.splitlines()]
    forms = next(line for line in lines if "file the forms" in line)
    assert forms.startswith("□")


def test_done_task_twice_toggles_back(seeded):
    runner = FnCLIRunner()
    runner.invoke(["done", "t-bank"])
    result = runner.invoke(["done", "t-bank"])

    assert result.exit_code == 0
    assert strip(result.stdout).startswith("□ call the bank")
    task = _goal("g-home").tasks[0]
    assert not task.completed
    assert task.status == "not_started"


def test_done_routine_once_per_day(seeded):
    runner = FnCLIRunner()
    first = runner.invoke(["done", "stretch"])
    second = runner.invoke(["done", "stretch"])

    assert first.exit_code == 0
    assert second.exit_code == 0
    assert "already done today" in second.stdout
    assert _goal("g-home").routines[0].completions == [NOW]


def test_done_unknown_item(seeded):
    result = FnCLIRunner().invoke(["done", "walk the dog"])

    assert result.exit_code == 1
    assert "No item found" in result.stderr


def test_done_ambiguous_ref(seeded):
    result = FnCLIRunner().invoke(["done", "t-"])

    assert result.exit_code == 1
    assert "ambiguous" in result.stderr


def test_done_exact_skips_fuzzy(seeded):
    runner = FnCLIRunner()

    assert runner.invoke(["done", "--exact", "strech"]).exit_code == 1
    assert runner.invoke(["done", "strech"]).exit_code == 0


def test_done_requires_ref(seeded):
    assert FnCLIRunner().invoke(["done"]).exit_code != 0


def test_read_only_member_cannot_complete(seeded, monkeypatch):
    config.set_user("bob")
    result = FnCLIRunner().invoke(["done", "weekly", "review"])

    # the weekly review is not due on a monday
    assert result.exit_code == 1

    monkeypatch.setattr("worklist.lib.clock.now", lambda: NOW.replace(day=14))
    result = FnCLIRunner().invoke(["done", "weekly", "review"])
    assert result.exit_code == 1
    assert "cannot edit" in result.stderr
