"""Tests for key based reconciliation."""

from typing import Any

import pytest

from pgcompare.errors import DuplicateKeyError
from pgcompare.reconcile import maintained_only, reconcile
from pgcompare.report import Added, Kind, Maintained, Removed, Report


def statuses(report: Report[Any]) -> list[tuple[str, Any]]:
    """Summarize a report as (entry type, key) pairs."""
    return [(type(entry).__name__, entry.key) for entry in report]


def test_reconcile_partitions_by_key() -> None:
    """Keys are split into removed, maintained and added entries."""
    report = reconcile(Kind.TABLE, ["a", "b", "c"], ["b", "c", "d"], str)

    assert statuses(report) == [
        ("Removed", "a"),
        ("Maintained", "b"),
        ("Maintained", "c"),
        ("Added", "d"),
    ]
    assert all(entry.kind == Kind.TABLE for entry in report)


def test_reconcile_keeps_left_order_and_sorts_added() -> None:
    """Left entries keep their order; right-only entries follow sorted by key."""
    report = reconcile(Kind.COLUMN, ["z", "m", "a"], ["q", "m", "b"], str)

    assert report.keys() == ("z", "m", "a", "b", "q")


def test_reconcile_added_order_independent_of_right_order() -> None:
    """Shuffling the right side does not change the report."""
    first = reconcile(Kind.INDEX, ["x"], ["c", "a", "b"], str)
    second = reconcile(Kind.INDEX, ["x"], ["b", "c", "a"], str)

    assert statuses(first) == statuses(second)


def test_reconcile_passes_both_rows_to_compare() -> None:
    """The children of a maintained entry come from the compare callback."""
    calls: list[tuple[str, str]] = []

    def compare(left: str, right: str) -> tuple[()]:
        calls.append((left, right))
        return ()

    reconcile(Kind.SEQUENCE, ["seq"], ["seq", "other"], str.lower, compare)

    assert calls == [("seq", "seq")]


def test_reconcile_empty_sides() -> None:
    """Reconciling nothing gives an empty report without changes."""
    report = reconcile(Kind.ROUTINE, [], [], str)

    assert len(report) == 0
    assert not report.has_changes()


def test_reconcile_maintained_without_children_has_no_changes() -> None:
    """An entity present on both sides with nothing below it is unchanged."""
    report = reconcile(Kind.SCHEMA, ["public"], ["public"], str)

    assert isinstance(report.entries[0], Maintained)
    assert not report.has_changes()


def test_reconcile_composite_keys() -> None:
    """Tuple keys reconcile like plain keys."""
    left = [("trg", "INSERT"), ("trg", "UPDATE")]
    right = [("trg", "INSERT"), ("trg", "DELETE")]

    report = reconcile(Kind.TRIGGER, left, right, lambda key: key)

    assert statuses(report) == [
        ("Maintained", ("trg", "INSERT")),
        ("Removed", ("trg", "UPDATE")),
        ("Added", ("trg", "DELETE")),
    ]


@pytest.mark.parametrize("side", ["left", "right"])
def test_reconcile_rejects_duplicate_keys(side: str) -> None:
    """Two rows with the same key in one scope are an error."""
    duplicated = ["a", "a"]
    single = ["a"]

    left, right = (duplicated, single) if side == "left" else (single, duplicated)

    with pytest.raises(DuplicateKeyError, match="Duplicate table key: 'a'"):
        reconcile(Kind.TABLE, left, right, str)


def test_maintained_only_drops_added_and_removed() -> None:
    """Filtering keeps maintained entries and the report kind."""
    report = maintained_only(reconcile(Kind.VIEW, ["a", "b"], ["b", "c"], str))

    assert report.kind == Kind.VIEW
    assert statuses(report) == [("Maintained", "b")]
    assert not any(isinstance(entry, Added | Removed) for entry in report)
