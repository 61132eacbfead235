"""Comparison options and their configuration file."""

from __future__ import annotations

from logging import getLogger
from tomllib import TOMLDecodeError, load
from typing import TYPE_CHECKING, NamedTuple

from pgcompare.errors import ConfigError

if TYPE_CHECKING:
    from pathlib import Path

logger = getLogger(__name__)

CONFIG_TABLE = "compare"


class CompareOptions(NamedTuple):
    """Tolerances applied while comparing two catalogs."""

    ignore_whitespace: bool = False  # routine and view definitions
    ignore_column_ordinal: bool = False
    ignore_privileges: bool = False


def options_from_mapping(values: dict[str, object]) -> CompareOptions:
    """Build options from a mapping of option names to booleans."""
    if unknown := values.keys() - CompareOptions._fields:
        msg = f"Unknown option(s): {', '.join(sorted(unknown))}"
        raise ConfigError(msg)

    for name, value in values.items():
        if not isinstance(value, bool):
            msg = f"Option '{name}' must be true or false, got {value!r}"
            raise ConfigError(msg)

    return CompareOptions(**values)  # pyright: ignore[reportArgumentType]


def load_options(path: Path) -> CompareOptions:
    """Load options from the [compare] table of a TOML file."""
    try:
        with path.open("rb") as f:
            document = load(f)
    except (OSError, TOMLDecodeError) as err:
        msg = f"Cannot read configuration file {path}: {err}"
        raise ConfigError(msg) from err

    table = document.get(CONFIG_TABLE, {})
    if not isinstance(table, dict):
        msg = f"[{CONFIG_TABLE}] in {path} must be a table"
        raise ConfigError(msg)

    logger.debug("Loaded configuration from %s", path)
    return options_from_mapping(table)


def merge_options(base: CompareOptions, **overrides: bool) -> CompareOptions:
    """Switch on options requested on top of a base set of options."""
    return base._replace(**{name: True for name, value in overrides.items() if value})
