"""JSON and HTML export of comparison reports."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from pgcompare.render import count_differences, label
from pgcompare.report import (
    Added,
    Maintained,
    Missing,
    PropertyChanged,
    PropertyUnchanged,
    Removed,
    Report,
)

if TYPE_CHECKING:
    from pgcompare.report import HasChanges

TEMPLATE_DIR = Path(__file__).parent / "templates"


def entry_to_dict(entry: HasChanges) -> dict[str, Any]:
    """Convert a comparison result to plain JSON-compatible data."""
    match entry:
        case PropertyChanged(name=name, left_value=left, right_value=right):
            return {"status": "changed", "name": name, "left": left, "right": right}
        case PropertyUnchanged(name=name, value=value):
            return {"status": "unchanged", "name": name, "value": value}
        case Maintained(kind=kind, key=key, children=children):
            return {
                "status": "maintained",
                "kind": kind.value,
                "key": key,
                "label": label(kind, key),
                "has_changes": entry.has_changes(),
                "children": [report_to_dict(child) for child in children],
            }
        case Added() | Removed() | Missing():
            return {
                "status": type(entry).__name__.lower(),
                "kind": entry.kind.value,
                "key": entry.key,
                "label": label(entry.kind, entry.key),
                "has_changes": True,
            }
        case _:
            msg = f"Object of type {type(entry)} is not JSON serializable"
            raise TypeError(msg)


def report_to_dict(report: Report[Any]) -> dict[str, Any]:
    """Convert a report and everything below it to plain data."""
    return {
        "kind": report.kind.value,
        "has_changes": report.has_changes(),
        "entries": [entry_to_dict(entry) for entry in report],
    }


def report_to_json(report: Report[Any], *, indent: int | None = None) -> str:
    """Convert a schema report to a JSON string."""
    return json.dumps(
        {"differences": count_differences(report), **report_to_dict(report)},
        indent=indent,
        ensure_ascii=False,
    )


def report_to_html(report: Report[Any], *, verbose: bool = False) -> str:
    """Render a schema report as a standalone HTML page."""
    env = Environment(
        loader=FileSystemLoader(TEMPLATE_DIR),
        autoescape=select_autoescape(),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    template = env.get_template("report.html")
    return template.render(
        report=report_to_dict(report),
        differences=count_differences(report),
        verbose=verbose,
    )
