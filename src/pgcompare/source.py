"""Reading catalogs from PostgreSQL metadata views or snapshot files."""

from __future__ import annotations

from collections import defaultdict
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, NamedTuple

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError

from pgcompare.catalog import (
    Catalog,
    Column,
    ColumnPrivilege,
    Index,
    Routine,
    RoutineParameter,
    RoutinePrivilege,
    Schema,
    Sequence,
    Table,
    TableConstraint,
    TablePrivilege,
    TableTrigger,
    View,
    catalog_from_json,
)
from pgcompare.errors import DataSourceError
from pgcompare.query import SCHEMAS_PARAMETER, Query, aliased, select

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy import Connection, Engine

logger = getLogger(__name__)

SNAPSHOT_EXTENSIONS = {".json"}
POSTGRES_DRIVER = "postgresql+psycopg"

# Self grants are implied by ownership and differ with the owning role
NOT_SELF_GRANTED = "grantor != grantee"

INDEX_ALIASES = {
    "schemaname": "table_schema",
    "tablename": "table_name",
    "indexname": "index_name",
    "tablespace": "table_space",
    "indexdef": "definition",
}

ROUTINE_COLUMNS = tuple(field for field in Routine._fields if field != "signature")


class RoutineGrant(NamedTuple):
    """Routine privilege as stored, before its routine's signature is known."""

    grantor: str
    grantee: str
    routine_catalog: str
    routine_schema: str
    specific_name: str
    privilege_type: str
    is_grantable: str


def columns_of(row_type: type[NamedTuple]) -> tuple[str, ...]:
    """Return the selected columns of a row type."""
    return row_type._fields


SCHEMAS = (
    select(*columns_of(Schema))
    .from_("information_schema.schemata")
    .in_schemas("schema_name")
    .order_by("schema_name")
)

TABLES = (
    select(*columns_of(Table))
    .from_("information_schema.tables")
    .in_schemas("table_schema")
    .order_by("table_schema", "table_name")
)

COLUMNS = (
    select(*columns_of(Column))
    .from_("information_schema.columns")
    .in_schemas("table_schema")
    .order_by("table_schema", "table_name", "ordinal_position")
)

VIEWS = (
    select(*columns_of(View))
    .from_("information_schema.views")
    .in_schemas("table_schema")
    .order_by("table_schema", "table_name")
)

ROUTINES = (
    select(*ROUTINE_COLUMNS)
    .from_("information_schema.routines")
    .in_schemas("routine_schema")
    .order_by("routine_schema", "routine_name", "specific_name")
)

PARAMETERS = (
    select(*columns_of(RoutineParameter))
    .from_("information_schema.parameters")
    .in_schemas("specific_schema")
    .order_by("specific_schema", "specific_name", "ordinal_position")
)

SEQUENCES = (
    select(*columns_of(Sequence))
    .from_("information_schema.sequences")
    .in_schemas("sequence_schema")
    .order_by("sequence_schema", "sequence_name")
)

INDICES = (
    select(*aliased(columns_of(Index), INDEX_ALIASES))
    .from_("pg_indexes")
    .in_schemas("schemaname")
    .order_by("schemaname", "tablename", "indexname")
)

TABLE_CONSTRAINTS = (
    select(*columns_of(TableConstraint))
    .from_("information_schema.table_constraints")
    .in_schemas("table_schema")
    .order_by("table_schema", "table_name", "constraint_name")
)

TABLE_TRIGGERS = (
    select(*columns_of(TableTrigger))
    .from_("information_schema.triggers")
    .in_schemas("event_object_schema")
    .order_by(
        "event_object_schema",
        "event_object_table",
        "trigger_name",
        "event_manipulation",
    )
)

COLUMN_PRIVILEGES = (
    select(*columns_of(ColumnPrivilege))
    .from_("information_schema.column_privileges")
    .in_schemas("table_schema")
    .where(NOT_SELF_GRANTED)
    .order_by(
        "table_schema",
        "table_name",
        "column_name",
        "grantor",
        "grantee",
        "privilege_type",
    )
)

TABLE_PRIVILEGES = (
    select(*columns_of(TablePrivilege))
    .from_("information_schema.table_privileges")
    .in_schemas("table_schema")
    .where(NOT_SELF_GRANTED)
    .order_by("table_schema", "table_name", "grantor", "grantee", "privilege_type")
)

ROUTINE_PRIVILEGES = (
    select(*columns_of(RoutineGrant))
    .from_("information_schema.routine_privileges")
    .in_schemas("routine_schema")
    .where(NOT_SELF_GRANTED)
    .order_by("routine_schema", "specific_name", "grantor", "grantee", "privilege_type")
)


def fetch[R: NamedTuple](
    connection: Connection,
    query: Query,
    row_type: type[R],
    schema_names: list[str],
) -> tuple[R, ...]:
    """Run a catalog query and map each result row to the given row type."""
    result = connection.execute(query.statement(), {SCHEMAS_PARAMETER: schema_names})
    rows = tuple(row_type._make(row) for row in result)
    logger.debug("Read %d %s rows", len(rows), row_type.__name__)
    return rows


def parameter_text(parameter: RoutineParameter) -> str:
    """Render a parameter as 'name MODE schema.type'."""
    name = parameter.parameter_name or f"${parameter.ordinal_position}"
    parts = (name, parameter.parameter_mode, f"{parameter.udt_schema}.{parameter.udt_name}")
    return " ".join(part for part in parts if part)


def signatures(
    routines: Iterable[tuple[str, str, str]],
    parameters: Iterable[RoutineParameter],
) -> dict[tuple[str, str], str]:
    """Build 'name(param, ...)' signatures keyed by (schema, specific name)."""
    by_routine: defaultdict[tuple[str, str], list[RoutineParameter]] = defaultdict(
        list,
    )
    for parameter in parameters:
        by_routine[parameter.specific_schema, parameter.specific_name].append(
            parameter,
        )

    return {
        (schema, specific_name): "{}({})".format(
            routine_name,
            ", ".join(
                parameter_text(parameter)
                for parameter in sorted(
                    by_routine[schema, specific_name],
                    key=lambda p: p.ordinal_position,
                )
            ),
        )
        for schema, specific_name, routine_name in routines
    }


def read_routines(
    connection: Connection,
    schema_names: list[str],
) -> tuple[tuple[Routine, ...], tuple[RoutinePrivilege, ...]]:
    """Read routines and their grants, both keyed by rendered signature."""
    result = connection.execute(ROUTINES.statement(), {SCHEMAS_PARAMETER: schema_names})
    stored = [dict(zip(ROUTINE_COLUMNS, row, strict=True)) for row in result]
    parameters = fetch(connection, PARAMETERS, RoutineParameter, schema_names)

    signature_of = signatures(
        (
            (routine["routine_schema"], routine["specific_name"], routine["routine_name"])
            for routine in stored
        ),
        parameters,
    )

    routines = sorted(
        (
            Routine(
                **routine,
                signature=signature_of[routine["routine_schema"], routine["specific_name"]],
            )
            for routine in stored
        ),
        key=lambda routine: (routine.routine_schema, routine.signature),
    )
    logger.debug("Read %d Routine rows", len(routines))

    grants = fetch(connection, ROUTINE_PRIVILEGES, RoutineGrant, schema_names)
    privileges = []
    for grant in grants:
        signature = signature_of.get((grant.routine_schema, grant.specific_name))
        if signature is None:
            logger.warning(
                "Skipping grant on unknown routine %s.%s",
                grant.routine_schema,
                grant.specific_name,
            )
            continue
        privileges.append(
            RoutinePrivilege(
                grantor=grant.grantor,
                grantee=grant.grantee,
                routine_catalog=grant.routine_catalog,
                routine_schema=grant.routine_schema,
                signature=signature,
                privilege_type=grant.privilege_type,
                is_grantable=grant.is_grantable,
            ),
        )

    return tuple(routines), tuple(privileges)


def read_catalog(connection: Connection, schema_names: Iterable[str]) -> Catalog:
    """Read every catalog slice for the given schemas, one query per kind."""
    names = list(schema_names)
    try:
        routines, routine_privileges = read_routines(connection, names)
        return Catalog(
            schemas=fetch(connection, SCHEMAS, Schema, names),
            tables=fetch(connection, TABLES, Table, names),
            columns=fetch(connection, COLUMNS, Column, names),
            views=fetch(connection, VIEWS, View, names),
            routines=routines,
            sequences=fetch(connection, SEQUENCES, Sequence, names),
            indices=fetch(connection, INDICES, Index, names),
            table_constraints=fetch(
                connection,
                TABLE_CONSTRAINTS,
                TableConstraint,
                names,
            ),
            table_triggers=fetch(connection, TABLE_TRIGGERS, TableTrigger, names),
            column_privileges=fetch(
                connection,
                COLUMN_PRIVILEGES,
                ColumnPrivilege,
                names,
            ),
            table_privileges=fetch(
                connection,
                TABLE_PRIVILEGES,
                TablePrivilege,
                names,
            ),
            routine_privileges=routine_privileges,
        )
    except SQLAlchemyError as err:
        msg = f"Failed to read catalog: {err}"
        raise DataSourceError(msg) from err


def create_catalog_engine(url: str) -> Engine:
    """Create an engine for a database URL, using psycopg for PostgreSQL."""
    database_url = make_url(url)
    if database_url.drivername in {"postgres", "postgresql"}:
        database_url = database_url.set(drivername=POSTGRES_DRIVER)
    return create_engine(database_url)


def is_snapshot(location: str) -> bool:
    """Return True when the location names a snapshot file."""
    return Path(location).suffix.lower() in SNAPSHOT_EXTENSIONS


def read_snapshot(location: Path) -> Catalog:
    """Read a catalog snapshot file."""
    try:
        text = location.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as err:
        msg = f"Cannot read snapshot {location}: {err}"
        raise DataSourceError(msg) from err
    return catalog_from_json(text)


def open_catalog(location: str, schema_names: Iterable[str]) -> Catalog:
    """Read a catalog from a snapshot file or a database URL."""
    if is_snapshot(location):
        logger.debug("Reading snapshot %s", location)
        return read_snapshot(Path(location))

    try:
        engine = create_catalog_engine(location)
    except SQLAlchemyError as err:
        msg = f"Invalid database URL: {err}"
        raise DataSourceError(msg) from err

    logger.debug("Reading catalog from %s", engine.url.render_as_string())
    try:
        with engine.connect() as connection:
            return read_catalog(connection, schema_names)
    except SQLAlchemyError as err:
        msg = f"Failed to connect to database: {err}"
        raise DataSourceError(msg) from err
    finally:
        engine.dispose()
