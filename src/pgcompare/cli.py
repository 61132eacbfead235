"""Command line interface for pgcompare."""

import sys
from logging import DEBUG, basicConfig
from pathlib import Path
from typing import Literal

from cyclopts import App
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn

from pgcompare.catalog import Catalog, catalog_to_json
from pgcompare.comparator import compare_catalogs
from pgcompare.config import CompareOptions, load_options, merge_options
from pgcompare.errors import ConfigError, DataSourceError, DuplicateKeyError
from pgcompare.export import report_to_html, report_to_json
from pgcompare.render import count_differences, render_text
from pgcompare.source import open_catalog

app = App(name="pgcompare", help="Compare the catalogs of two PostgreSQL databases")


type Format = Literal["text", "json", "html"]
type Colouring = Literal["auto", "always", "never"]

err_console = Console(stderr=True)

# Exit codes above this are reserved for errors
MAX_DIFFERENCES_EXIT_CODE = 254
ERROR_EXIT_CODE = 255


def print_error(message: str) -> None:
    """Print error message to stderr."""
    err_console.print(f"[bold red]Error:[/] {escape(message)}")


def print_success(message: str) -> None:
    """Print success message to stderr."""
    err_console.print(f"[bold green]✓[/] {escape(message)}")


def print_info(message: str) -> None:
    """Print info message to stderr."""
    err_console.print(f"[bold blue]i[/] {escape(message)}")


def configure_logging(*, debug: bool) -> None:
    """Send library debug logging to stderr when requested."""
    if debug:
        basicConfig(
            level=DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=err_console, show_path=False)],
        )


def report_console(color: Colouring) -> Console:
    """Create the stdout console honouring the colour choice."""
    if color == "always":
        return Console(force_terminal=True)
    if color == "never":
        return Console(color_system=None)
    return Console()


def exit_code(differences: int) -> int:
    """Map a difference count to a process exit code."""
    return min(differences, MAX_DIFFERENCES_EXIT_CODE)


def read_catalogs(
    locations: list[str],
    schemas: list[str],
) -> list[Catalog]:
    """Read the catalog of each location while showing a spinner."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=err_console,
    ) as progress:
        catalogs = []
        for location in locations:
            task = progress.add_task("Reading catalog...", total=None)
            catalogs.append(open_catalog(location, schemas))
            progress.remove_task(task)
    return catalogs


@app.command
def compare(  # noqa: PLR0913
    left: str,
    right: str,
    *,
    schema: list[str],
    ignore_whitespace: bool = False,
    ignore_column_ordinal: bool = False,
    ignore_privileges: bool = False,
    verbose: bool = False,
    color: Colouring = "auto",
    fmt: Format = "text",
    config: Path | None = None,
    debug: bool = False,
) -> None:
    """Compare two databases or catalog snapshots.

    Parameters
    ----------
    left
        Database URL or JSON snapshot of the left side.
    right
        Database URL or JSON snapshot of the right side.
    schema
        Schema to compare; repeat for several schemas.
    ignore_whitespace
        Ignore whitespace differences in routine and view definitions.
    ignore_column_ordinal
        Ignore column ordering differences.
    ignore_privileges
        Ignore privilege changes.
    verbose
        Show unchanged entries too.
    color
        Colour the text report.
    fmt
        Report format.
    config
        TOML file with a [compare] table of default options.
    debug
        Log catalog queries and comparison progress to stderr.

    """
    configure_logging(debug=debug)

    try:
        options = merge_options(
            load_options(config) if config else CompareOptions(),
            ignore_whitespace=ignore_whitespace,
            ignore_column_ordinal=ignore_column_ordinal,
            ignore_privileges=ignore_privileges,
        )
        print_info(f"Left: {left}")
        print_info(f"Right: {right}")
        print_info(f"Schemas: {', '.join(schema)}")

        left_catalog, right_catalog = read_catalogs([left, right], schema)
        report = compare_catalogs(left_catalog, right_catalog, schema, options)
    except (ConfigError, DataSourceError, DuplicateKeyError) as e:
        print_error(str(e))
        sys.exit(ERROR_EXIT_CODE)
    except KeyboardInterrupt:
        print_error("Comparison interrupted by user")
        sys.exit(ERROR_EXIT_CODE)

    # Output to stdout in requested format (keep stdout clean for data)
    if fmt == "text":
        differences = render_text(report, report_console(color), verbose=verbose)
    else:
        differences = count_differences(report)
        if fmt == "json":
            sys.stdout.write(report_to_json(report, indent=2))
        elif fmt == "html":
            sys.stdout.write(report_to_html(report, verbose=verbose))

    if differences:
        print_info(f"{differences} difference(s) found")
    else:
        print_success("No differences found")
    sys.exit(exit_code(differences))


@app.command
def snapshot(source: str, *, schema: list[str], debug: bool = False) -> None:
    """Write the catalog of a database as a JSON snapshot to stdout.

    Parameters
    ----------
    source
        Database URL to read.
    schema
        Schema to include; repeat for several schemas.
    debug
        Log catalog queries to stderr.

    """
    configure_logging(debug=debug)
    print_info(f"Source: {source}")

    try:
        (catalog,) = read_catalogs([source], schema)
    except DataSourceError as e:
        print_error(str(e))
        sys.exit(ERROR_EXIT_CODE)
    except KeyboardInterrupt:
        print_error("Snapshot interrupted by user")
        sys.exit(ERROR_EXIT_CODE)

    sys.stdout.write(catalog_to_json(catalog))
    print_success("Snapshot written")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
