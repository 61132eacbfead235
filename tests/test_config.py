"""Tests for comparison options and configuration files."""

from pathlib import Path

import pytest

from pgcompare.config import (
    CompareOptions,
    load_options,
    merge_options,
    options_from_mapping,
)
from pgcompare.errors import ConfigError


def test_default_options_are_strict() -> None:
    """Nothing is ignored by default."""
    assert CompareOptions() == CompareOptions(
        ignore_whitespace=False,
        ignore_column_ordinal=False,
        ignore_privileges=False,
    )


def test_load_options(tmp_path: Path) -> None:
    """Options are read from the [compare] table."""
    config = tmp_path / "pgcompare.toml"
    config.write_text(
        "[compare]\nignore_whitespace = true\nignore_privileges = false\n",
        encoding="utf-8",
    )

    assert load_options(config) == CompareOptions(ignore_whitespace=True)


def test_load_options_without_table(tmp_path: Path) -> None:
    """A file without a [compare] table gives the defaults."""
    config = tmp_path / "pyproject.toml"
    config.write_text('[project]\nname = "app"\n', encoding="utf-8")

    assert load_options(config) == CompareOptions()


@pytest.mark.parametrize(
    ("content", "message"),
    [
        ("[compare]\nignore_everything = true\n", "Unknown option"),
        ('[compare]\nignore_whitespace = "yes"\n', "must be true or false"),
        ("compare = 1\n", "must be a table"),
        ("[compare\n", "Cannot read configuration file"),
    ],
)
def test_load_options_rejects_bad_files(
    tmp_path: Path,
    content: str,
    message: str,
) -> None:
    """Malformed configuration files raise ConfigError."""
    config = tmp_path / "pgcompare.toml"
    config.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError, match=message):
        load_options(config)


def test_load_options_missing_file(tmp_path: Path) -> None:
    """A missing configuration file raises ConfigError."""
    with pytest.raises(ConfigError, match="Cannot read configuration file"):
        load_options(tmp_path / "missing.toml")


def test_options_from_mapping_partial() -> None:
    """Options left out of the mapping keep their defaults."""
    assert options_from_mapping({"ignore_column_ordinal": True}) == CompareOptions(
        ignore_column_ordinal=True,
    )


def test_merge_options_only_switches_on() -> None:
    """Flags switch options on but never off."""
    base = CompareOptions(ignore_whitespace=True)

    merged = merge_options(
        base,
        ignore_whitespace=False,
        ignore_column_ordinal=True,
        ignore_privileges=False,
    )

    assert merged == CompareOptions(ignore_whitespace=True, ignore_column_ordinal=True)
