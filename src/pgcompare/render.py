"""Terminal rendering of comparison reports."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich.text import Text

from pgcompare.report import (
    Added,
    Kind,
    Maintained,
    Missing,
    PropertyChanged,
    PropertyUnchanged,
    Removed,
    Report,
)

if TYPE_CHECKING:
    from rich.console import Console

    from pgcompare.report import HasChanges, Key

COLOUR_ADDED = "green"
COLOUR_CHANGED = "yellow"
COLOUR_MISSING = "magenta"
COLOUR_REMOVED = "red"

INDENT = "  "


def label(kind: Kind, key: Key) -> str:
    """Render an entity as e.g. "Table 'users'"."""
    title = kind.value.capitalize()
    if kind == Kind.PRIVILEGE and isinstance(key, tuple):
        privilege_type, grantor, grantee = key
        return f"{title} '{privilege_type}' ({grantor}->{grantee})"
    if kind == Kind.TRIGGER and isinstance(key, tuple):
        trigger_name, event = key
        return f"{title} '{trigger_name}' ({event})"
    if isinstance(key, tuple):
        return f"{title} '{', '.join(key)}'"
    return f"{title} '{key}'"


def count_differences(result: HasChanges) -> int:
    """Count added, removed and missing entities and changed properties."""
    match result:
        case Report():
            return sum(count_differences(entry) for entry in result)
        case Maintained(children=children):
            return sum(count_differences(child) for child in children)
        case Added() | Removed() | Missing() | PropertyChanged():
            return 1
        case _:
            return 0


class TextRenderer:
    """Prints a report as indented, coloured lines."""

    def __init__(self, console: Console, *, verbose: bool = False) -> None:
        """Initialize renderer; verbose also prints unchanged entries."""
        self.console = console
        self.verbose = verbose

    def line(self, depth: int, message: str | Text, style: str = "") -> None:
        """Print one indented line."""
        text = Text(INDENT * depth)
        text.append(message if isinstance(message, Text) else Text(message, style))
        self.console.print(text, highlight=False, soft_wrap=True)

    def report(self, report: Report[Any], depth: int = 0) -> int:
        """Print every entry of a report; return the number of differences."""
        return sum(self.entry(entry, depth) for entry in report)

    def entry(self, entry: HasChanges, depth: int) -> int:
        """Print one entry and, when relevant, its children."""
        match entry:
            case PropertyChanged(name=name, left_value=left, right_value=right):
                self.line(
                    depth,
                    Text.assemble(
                        (f"Property '{name}': changed from '", COLOUR_CHANGED),
                        (left, COLOUR_REMOVED),
                        ("' to '", COLOUR_CHANGED),
                        (right, COLOUR_ADDED),
                        ("'", COLOUR_CHANGED),
                    ),
                )
                return 1
            case PropertyUnchanged(name=name, value=value):
                if self.verbose:
                    self.line(depth, f"Property '{name}': unchanged at '{value}'")
                return 0
            case Added(kind=kind, key=key):
                self.line(depth, f"{label(kind, key)}: added", COLOUR_ADDED)
                return 1
            case Removed(kind=kind, key=key):
                self.line(depth, f"{label(kind, key)}: removed", COLOUR_REMOVED)
                return 1
            case Missing(kind=kind, key=key):
                self.line(depth, f"{label(kind, key)}: missing in both", COLOUR_MISSING)
                return 1
            case Maintained(kind=kind, key=key, children=children):
                return self.maintained(kind, key, children, depth)
            case _:
                msg = f"Cannot render {entry!r}"
                raise TypeError(msg)

    def maintained(
        self,
        kind: Kind,
        key: Key,
        children: tuple[Report[Any], ...],
        depth: int,
    ) -> int:
        """Print a maintained entity; its children only if changed or verbose."""
        has_changes = any(child.has_changes() for child in children)
        if has_changes:
            self.line(depth, f"{label(kind, key)}:", COLOUR_CHANGED)
        elif self.verbose:
            self.line(depth, f"{label(kind, key)}: unchanged")

        if not (has_changes or self.verbose):
            return 0
        return sum(self.report(child, depth + 1) for child in children)


def render_text(
    report: Report[Any],
    console: Console,
    *,
    verbose: bool = False,
) -> int:
    """Print a schema report; return the number of differences."""
    return TextRenderer(console, verbose=verbose).report(report)
