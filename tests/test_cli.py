"""Tests for the command line interface."""

import json
from pathlib import Path

import pytest
from rows import make_column, make_schema, make_table, make_view

from pgcompare import cli
from pgcompare.catalog import Catalog, catalog_to_json
from pgcompare.cli import ERROR_EXIT_CODE, app, compare, exit_code, snapshot


def write_snapshot(path: Path, catalog: Catalog) -> str:
    """Write a catalog snapshot and return its location."""
    path.write_text(catalog_to_json(catalog), encoding="utf-8")
    return str(path)


@pytest.fixture(name="before")
def create_before(tmp_path: Path) -> str:
    """Create the snapshot of a database before a migration."""
    return write_snapshot(
        tmp_path / "before.json",
        Catalog(
            schemas=(make_schema(),),
            tables=(make_table("users"), make_table("legacy")),
            columns=(make_column("users", "id"),),
            views=(make_view("recent", " SELECT id\n   FROM users;"),),
        ),
    )


@pytest.fixture(name="after")
def create_after(tmp_path: Path) -> str:
    """Create the snapshot of the same database after a migration."""
    return write_snapshot(
        tmp_path / "after.json",
        Catalog(
            schemas=(make_schema(),),
            tables=(make_table("users"),),
            columns=(
                make_column("users", "id", data_type="bigint", udt_name="int8"),
            ),
            views=(make_view("recent", "SELECT id FROM users;"),),
        ),
    )


def run_compare(*args: str, **kwargs: object) -> int:
    """Run the compare command and return its exit code."""
    with pytest.raises(SystemExit) as exc_info:
        compare(*args, schema=["public"], **kwargs)  # type: ignore[arg-type]
    return int(exc_info.value.code or 0)


@pytest.mark.parametrize(
    ("differences", "expected"),
    [(0, 0), (3, 3), (254, 254), (1000, 254)],
)
def test_exit_code_is_capped(differences: int, expected: int) -> None:
    """Difference counts above 254 are capped."""
    assert exit_code(differences) == expected


def test_compare_identical(before: str, capsys: pytest.CaptureFixture[str]) -> None:
    """Identical snapshots exit 0 with an empty report."""
    code = run_compare(before, before)

    captured = capsys.readouterr()
    assert code == 0
    assert not captured.out
    assert "No differences found" in captured.err


def test_compare_differences(
    before: str,
    after: str,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Each difference is counted in the exit code and printed."""
    code = run_compare(before, after)

    out = capsys.readouterr().out
    assert code == 4
    assert "Table 'legacy': removed" in out
    assert "Property 'data_type': changed from 'integer' to 'bigint'" in out
    assert "Property 'view_definition': changed from" in out


def test_compare_ignore_whitespace(
    before: str,
    after: str,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Ignoring whitespace hides definition layout changes."""
    code = run_compare(before, after, ignore_whitespace=True)

    out = capsys.readouterr().out
    assert code == 3
    assert "view_definition" not in out


def test_compare_config_file(
    before: str,
    after: str,
    tmp_path: Path,
) -> None:
    """Options can come from a configuration file."""
    config = tmp_path / "pgcompare.toml"
    config.write_text("[compare]\nignore_whitespace = true\n", encoding="utf-8")

    assert run_compare(before, after, config=config) == 3


def test_compare_json(
    before: str,
    after: str,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """JSON output goes to stdout."""
    code = run_compare(before, after, fmt="json")

    data = json.loads(capsys.readouterr().out)
    assert code == 4
    assert data["differences"] == 4
    assert data["entries"][0]["key"] == "public"


def test_compare_html(
    before: str,
    after: str,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """HTML output goes to stdout."""
    run_compare(before, after, fmt="html")

    assert "<!DOCTYPE html>" in capsys.readouterr().out


def test_compare_missing_snapshot(
    before: str,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Unreadable inputs exit 255 with an error on stderr."""
    code = run_compare(before, str(tmp_path / "missing.json"))

    captured = capsys.readouterr()
    assert code == ERROR_EXIT_CODE
    assert "Error:" in captured.err
    assert not captured.out


def test_compare_bad_config(
    before: str,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """A bad configuration file exits 255."""
    config = tmp_path / "pgcompare.toml"
    config.write_text("[compare]\nignore_typos = true\n", encoding="utf-8")

    code = run_compare(before, before, config=config)

    assert code == ERROR_EXIT_CODE
    assert "Unknown option" in capsys.readouterr().err


def test_compare_duplicate_keys(tmp_path: Path) -> None:
    """A catalog with duplicate keys exits 255."""
    duplicated = write_snapshot(
        tmp_path / "dup.json",
        Catalog(
            schemas=(make_schema(),),
            tables=(make_table("users"), make_table("users")),
        ),
    )

    assert run_compare(duplicated, duplicated) == ERROR_EXIT_CODE


def test_compare_parses_arguments(
    before: str,
    after: str,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """The compare command is reachable through the application."""
    with pytest.raises(SystemExit) as exc_info:
        app(["compare", before, after, "--fmt", "json", "--schema", "public"])

    assert exc_info.value.code == 4
    assert json.loads(capsys.readouterr().out)["differences"] == 4


def test_snapshot_invalid_url(capsys: pytest.CaptureFixture[str]) -> None:
    """An unusable database URL exits 255."""
    with pytest.raises(SystemExit) as exc_info:
        snapshot("not a database", schema=["public"])

    assert exc_info.value.code == ERROR_EXIT_CODE
    assert "Error:" in capsys.readouterr().err


def test_compare_undecodable_snapshot(
    before: str,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """A snapshot that is not UTF-8 exits 255 with an error on stderr."""
    binary = tmp_path / "binary.json"
    binary.write_bytes(b"\xff\xfe")

    code = run_compare(str(binary), before)

    assert code == ERROR_EXIT_CODE
    assert "Cannot read snapshot" in capsys.readouterr().err


def test_snapshot_interrupted(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Interrupting a snapshot exits 255 with an error on stderr."""

    def interrupt(_locations: list[str], _schemas: list[str]) -> None:
        raise KeyboardInterrupt

    monkeypatch.setattr(cli, "read_catalogs", interrupt)

    with pytest.raises(SystemExit) as exc_info:
        snapshot("postgresql://localhost/app", schema=["public"])

    assert exc_info.value.code == ERROR_EXIT_CODE
    assert "Snapshot interrupted by user" in capsys.readouterr().err
