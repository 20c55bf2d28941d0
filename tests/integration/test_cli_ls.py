from tests.conftest import FnCLIRunner
from worklist.lib.ansi import strip


def _lines(result):
    return [strip(line).strip() for line in result.stdout.splitlines() if line.strip()]


def test_empty_worklist(tmp_worklist_dir):
    result = FnCLIRunner().invoke(["ls"])

    assert result.exit_code == 0
    assert "nothing scheduled" in result.stdout


def test_bare_command_lists(seeded):
    result = FnCLIRunner().invoke([])

    assert result.exit_code == 0
    assert "call the bank" in result.stdout


def test_ordered_with_blocked_last(seeded):
    lines = _lines(FnCLIRunner().invoke(["ls"]))

    assert len(lines) == 3
    assert lines[0].startswith("□ ! call the bank #home")
    assert "⇢1" in lines[0]
    assert lines[1].startswith("□ stretch ↻ #home")
    assert lines[2].startswith("⊘ file the forms")


def test_milestone_routine_on_its_day(seeded):
    result = FnCLIRunner().invoke(["ls", "--date", "fri"])

    assert result.exit_code == 0
    assert "weekly review ↻ #work › q3" in strip(result.stdout)


def test_multi_day_window_labels_days(seeded):
    out = strip(FnCLIRunner().invoke(["ls", "--days", "3"]).stdout)

    assert "mon 10/06 stretch" in out
    assert "tue 11/06 stretch" in out
    assert "wed 12/06 stretch" in out
    assert out.count("call the bank") == 1


def test_completed_hidden_unless_all(seeded):
    runner = FnCLIRunner()
    runner.invoke(["done", "stretch"])

    assert "stretch" not in runner.invoke(["ls"]).stdout
    assert "stretch" in strip(runner.invoke(["ls", "--all"]).stdout)


def test_bad_date_is_usage_error(seeded):
    result = FnCLIRunner().invoke(["ls", "--date", "someday soon"])

    assert result.exit_code != 0
    assert "Unrecognized date" in result.stderr


def test_zero_days_rejected(seeded):
    result = FnCLIRunner().invoke(["ls", "--days", "0"])
    assert result.exit_code != 0
