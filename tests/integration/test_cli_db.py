from tests.conftest import FnCLIRunner


def test_migrate_when_current(tmp_worklist_dir):
    result = FnCLIRunner().invoke(["db", "migrate"])

    assert result.exit_code == 0
    assert "nothing to migrate" in result.stdout


def test_status_lists_migrations_and_counts(seeded):
    result = FnCLIRunner().invoke(["db", "status"])

    assert result.exit_code == 0
    assert "✓ 0001_init" in result.stdout
    assert "goals: 2" in result.stdout
    assert "tasks: 2" in result.stdout
