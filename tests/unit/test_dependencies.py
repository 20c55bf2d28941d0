from datetime import datetime

from worklist.core.models import Dependency, Provenance, ScheduledOccurrence
from worklist.dependencies import resolve

SOURCE = Provenance(type="goal", goal_id="g1", goal_name="g1")


def _occ(occ_id: str, *deps: str, completed: bool = False) -> ScheduledOccurrence:
    return ScheduledOccurrence(
        id=occ_id,
        title=occ_id,
        source=SOURCE,
        created=datetime(2024, 6, 1),
        completed=completed,
        dependencies=[Dependency(task_id=d) for d in deps],
    )


def _by_id(items):
    return {item.id: item for item in items}


def test_depends_on_incomplete_item_is_blocked():
    items = _by_id(resolve([_occ("d"), _occ("c", "d")]))

    assert items["c"].blocked
    assert not items["d"].blocked
    assert items["d"].dependents == ["c"]
    assert items["c"].dependents == []


def test_completed_dependency_unblocks():
    items = _by_id(resolve([_occ("d", completed=True), _occ("c", "d")]))

    assert not items["c"].blocked
    assert items["d"].dependents == ["c"]


def test_missing_dependency_blocks_by_default():
    (item,) = resolve([_occ("c", "elsewhere")])
    assert item.blocked


def test_missing_dependency_ignored_when_asked():
    (item,) = resolve([_occ("c", "elsewhere")], missing="ignore")
    assert not item.blocked


def test_dependents_in_snapshot_order_without_repeats():
    items = _by_id(resolve([_occ("b", "a", "a"), _occ("a"), _occ("c", "a")]))
    assert items["a"].dependents == ["b", "c"]


def test_blocked_by_any_incomplete_dependency():
    items = _by_id(
        resolve([_occ("a", completed=True), _occ("b"), _occ("c", "a", "b")])
    )
    assert items["c"].blocked


def test_order_and_inputs_preserved():
    candidates = [_occ("x"), _occ("y", "x")]
    resolved = resolve(candidates)

    assert [i.id for i in resolved] == ["x", "y"]
    assert not candidates[1].blocked
    assert candidates[0].dependents == []
