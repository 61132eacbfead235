"""Key based reconciliation of two collections of catalog entities."""

from __future__ import annotations

from itertools import chain
from typing import TYPE_CHECKING, Any

from pgcompare.errors import DuplicateKeyError
from pgcompare.report import (
    Added,
    EntityComparison,
    Kind,
    Maintained,
    Removed,
    Report,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from pgcompare.report import Key

type Children = tuple[Report[Any], ...]


def index_by_key[R](
    kind: Kind,
    rows: Iterable[R],
    key: Callable[[R], Key],
) -> dict[Key, R]:
    """Map each row to its natural key, keeping input order."""
    index: dict[Key, R] = {}
    for row in rows:
        row_key = key(row)
        if row_key in index:
            msg = f"Duplicate {kind} key: {row_key!r}"
            raise DuplicateKeyError(msg)
        index[row_key] = row
    return index


def no_children[R](_left: R, _right: R) -> Children:
    """Compare nothing below a maintained entity."""
    return ()


def reconcile[R](
    kind: Kind,
    left: Iterable[R],
    right: Iterable[R],
    key: Callable[[R], Key],
    compare: Callable[[R, R], Children] = no_children,
) -> Report[EntityComparison]:
    """Partition two collections into removed, maintained and added entities.

    Entities found on the left keep the left's order, whether removed or
    maintained. Entities found only on the right follow, sorted by key, so the
    result does not depend on how the right side was ordered.
    """
    left_rows = index_by_key(kind, left, key)
    right_rows = index_by_key(kind, right, key)

    added = sorted(right_rows.keys() - left_rows.keys())

    return Report(
        kind,
        tuple(
            chain(
                (
                    Maintained(kind, row_key, compare(row, right_rows[row_key]))
                    if row_key in right_rows
                    else Removed(kind, row_key)
                    for row_key, row in left_rows.items()
                ),
                (Added(kind, row_key) for row_key in added),
            ),
        ),
    )


def maintained_only(report: Report[EntityComparison]) -> Report[EntityComparison]:
    """Drop added and removed entries from a reconciled report."""
    return Report(
        report.kind,
        tuple(entry for entry in report if isinstance(entry, Maintained)),
    )
