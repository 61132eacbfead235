"""Hierarchical comparison report with bottom-up change aggregation."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import StrEnum, auto
from typing import Any, NamedTuple, Protocol

type Key = str | tuple[str, ...]


class Kind(StrEnum):
    """Kinds of entities held by a report."""

    SCHEMA = auto()
    ROUTINE = auto()
    SEQUENCE = auto()
    TABLE = auto()
    COLUMN = auto()
    VIEW = auto()
    INDEX = auto()
    CONSTRAINT = auto()
    TRIGGER = auto()
    PRIVILEGE = auto()
    PROPERTY = auto()


class HasChanges(Protocol):
    """Anything that can tell whether it holds a difference."""

    def has_changes(self) -> bool:
        """Return True when this result or anything below it differs."""
        ...


class PropertyChanged(NamedTuple):
    """A property whose value differs between left and right."""

    name: str
    left_value: str
    right_value: str

    def has_changes(self) -> bool:
        """Return True."""
        return True


class PropertyUnchanged(NamedTuple):
    """A property with the same value on both sides."""

    name: str
    value: str

    def has_changes(self) -> bool:
        """Return False."""
        return False


type PropertyComparison = PropertyChanged | PropertyUnchanged


class Added(NamedTuple):
    """An entity present only on the right."""

    kind: Kind
    key: Key

    def has_changes(self) -> bool:
        """Return True."""
        return True


class Removed(NamedTuple):
    """An entity present only on the left."""

    kind: Kind
    key: Key

    def has_changes(self) -> bool:
        """Return True."""
        return True


class Missing(NamedTuple):
    """A requested entity present on neither side."""

    kind: Kind
    key: Key

    def has_changes(self) -> bool:
        """Return True."""
        return True


class Maintained(NamedTuple):
    """An entity present on both sides, with its nested comparisons."""

    kind: Kind
    key: Key
    children: tuple[Report[Any], ...] = ()

    def has_changes(self) -> bool:
        """Return True when any nested report has changes."""
        return any(child.has_changes() for child in self.children)

    def child(self, kind: Kind) -> Report[Any]:
        """Return the nested report holding entities of the given kind."""
        for report in self.children:
            if report.kind == kind:
                return report
        msg = f"{self.kind} {self.key!r} has no {kind} report"
        raise KeyError(msg)


type EntityComparison = Added | Removed | Missing | Maintained


@dataclass(frozen=True)
class Report[T: HasChanges]:
    """Ordered, immutable sequence of comparison results of one kind."""

    kind: Kind
    entries: tuple[T, ...] = ()

    def has_changes(self) -> bool:
        """Return True when any entry has changes."""
        return any(entry.has_changes() for entry in self.entries)

    def __iter__(self) -> Iterator[T]:
        """Iterate over entries in report order."""
        return iter(self.entries)

    def __len__(self) -> int:
        """Return the number of entries."""
        return len(self.entries)

    def keys(self) -> tuple[Key, ...]:
        """Return the keys (or property names) of all entries, in order."""
        return tuple(
            entry.name
            if isinstance(entry, PropertyChanged | PropertyUnchanged)
            else entry.key
            for entry in self.entries
        )
