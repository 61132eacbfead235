"""Tests for JSON and HTML report export."""

import json

import pytest

from pgcompare.export import entry_to_dict, report_to_html, report_to_json
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


@pytest.fixture(name="report")
def create_report() -> Report[Maintained | Missing]:
    """Create a small schema report with a nested change."""
    table = Maintained(
        Kind.TABLE,
        "users",
        (
            Report(
                Kind.PROPERTY,
                (
                    PropertyChanged("table_type", "BASE TABLE", "VIEW"),
                    PropertyUnchanged("is_typed", "NO"),
                ),
            ),
            Report(Kind.TRIGGER, (Removed(Kind.TRIGGER, ("audit", "INSERT")),)),
        ),
    )
    schema = Maintained(Kind.SCHEMA, "public", (Report(Kind.TABLE, (table,)),))
    return Report(Kind.SCHEMA, (schema, Missing(Kind.SCHEMA, "audit")))


def test_entry_to_dict_statuses() -> None:
    """Each kind of result maps to a status."""
    assert entry_to_dict(PropertyChanged("owner", "a", "b")) == {
        "status": "changed",
        "name": "owner",
        "left": "a",
        "right": "b",
    }
    assert entry_to_dict(PropertyUnchanged("owner", "a"))["status"] == "unchanged"
    assert entry_to_dict(Added(Kind.TABLE, "t"))["status"] == "added"
    assert entry_to_dict(Removed(Kind.TABLE, "t"))["status"] == "removed"
    assert entry_to_dict(Missing(Kind.SCHEMA, "s"))["label"] == "Schema 's'"


def test_report_to_json(report: Report[Maintained | Missing]) -> None:
    """JSON export keeps the tree and counts the differences."""
    data = json.loads(report_to_json(report))

    assert data["differences"] == 3
    assert data["kind"] == "schema"
    assert data["has_changes"] is True

    schema, missing = data["entries"]
    assert missing == {
        "status": "missing",
        "kind": "schema",
        "key": "audit",
        "label": "Schema 'audit'",
        "has_changes": True,
    }
    (table,) = schema["children"][0]["entries"]
    assert table["label"] == "Table 'users'"
    trigger = table["children"][1]["entries"][0]
    assert trigger["key"] == ["audit", "INSERT"]
    assert trigger["label"] == "Trigger 'audit' (INSERT)"


def test_entry_to_dict_rejects_unknown() -> None:
    """Unknown objects cannot be exported."""
    with pytest.raises(TypeError):
        entry_to_dict(object())  # type: ignore[arg-type]


def test_report_to_html(report: Report[Maintained | Missing]) -> None:
    """HTML export lists changes and hides unchanged properties."""
    html = report_to_html(report)

    assert "<!DOCTYPE html>" in html
    assert "3 differences found." in html
    assert "Table &#39;users&#39;:" in html
    assert "Trigger &#39;audit&#39; (INSERT): removed" in html
    assert "Schema &#39;audit&#39;: missing in both" in html
    assert "is_typed" not in html


def test_report_to_html_verbose(report: Report[Maintained | Missing]) -> None:
    """Verbose HTML export also lists unchanged properties."""
    html = report_to_html(report, verbose=True)

    assert "Property &#39;is_typed&#39;: unchanged at &#39;NO&#39;" in html


def test_report_to_html_escapes_values() -> None:
    """Catalog text is escaped in the HTML page."""
    report = Report(
        Kind.PROPERTY,
        (PropertyChanged("view_definition", "SELECT 1 < 2", "SELECT <b>"),),
    )

    html = report_to_html(report)

    assert "SELECT 1 &lt; 2" in html
    assert "<b>" not in html
