"""Catalog row types and the in-memory catalog snapshot."""

from __future__ import annotations

import json
from collections import defaultdict
from functools import cached_property
from types import NoneType
from typing import TYPE_CHECKING, Any, NamedTuple, get_args, get_type_hints

from pgcompare.errors import DataSourceError
from pgcompare.reconcile import index_by_key
from pgcompare.report import Kind

if TYPE_CHECKING:
    from collections.abc import Callable, Hashable, Iterable

    from pgcompare.report import Key


class Schema(NamedTuple):
    """Row of information_schema.schemata."""

    schema_name: str
    schema_owner: str
    default_character_set_catalog: str | None
    default_character_set_schema: str | None
    default_character_set_name: str | None
    sql_path: str | None


class Table(NamedTuple):
    """Row of information_schema.tables (views included)."""

    table_catalog: str
    table_schema: str
    table_name: str
    table_type: str
    self_referencing_column_name: str | None
    reference_generation: str | None
    user_defined_type_catalog: str | None
    user_defined_type_schema: str | None
    user_defined_type_name: str | None
    is_insertable_into: str
    is_typed: str
    commit_action: str | None


class Column(NamedTuple):
    """Row of information_schema.columns."""

    table_catalog: str
    table_schema: str
    table_name: str
    column_name: str
    ordinal_position: int
    column_default: str | None
    is_nullable: str
    data_type: str
    character_maximum_length: int | None
    character_octet_length: int | None
    numeric_precision: int | None
    numeric_precision_radix: int | None
    numeric_scale: int | None
    datetime_precision: int | None
    interval_type: str | None
    interval_precision: int | None
    collation_name: str | None
    domain_schema: str | None
    domain_name: str | None
    udt_schema: str | None
    udt_name: str | None
    is_self_referencing: str | None
    is_identity: str
    identity_generation: str | None
    identity_start: str | None
    identity_increment: str | None
    identity_maximum: str | None
    identity_minimum: str | None
    identity_cycle: str | None
    is_generated: str
    generation_expression: str | None
    is_updatable: str


class View(NamedTuple):
    """Row of information_schema.views."""

    table_catalog: str
    table_schema: str
    table_name: str
    view_definition: str | None
    check_option: str
    is_updatable: str
    is_insertable_into: str
    is_trigger_updatable: str
    is_trigger_deletable: str
    is_trigger_insertable_into: str


class Routine(NamedTuple):
    """Row of information_schema.routines, keyed by its rendered signature."""

    routine_catalog: str
    routine_schema: str
    routine_name: str
    specific_name: str
    signature: str
    routine_type: str | None
    module_catalog: str | None
    module_schema: str | None
    module_name: str | None
    udt_catalog: str | None
    udt_schema: str | None
    udt_name: str | None
    data_type: str | None
    character_maximum_length: int | None
    character_octet_length: int | None
    character_set_catalog: str | None
    character_set_schema: str | None
    character_set_name: str | None
    collation_catalog: str | None
    collation_schema: str | None
    collation_name: str | None
    numeric_precision: int | None
    numeric_precision_radix: int | None
    numeric_scale: int | None
    datetime_precision: int | None
    interval_type: str | None
    interval_precision: int | None
    type_udt_catalog: str | None
    type_udt_schema: str | None
    type_udt_name: str | None
    maximum_cardinality: int | None
    dtd_identifier: str | None
    routine_body: str
    routine_definition: str | None
    external_name: str | None
    external_language: str
    parameter_style: str | None
    is_deterministic: str
    sql_data_access: str
    is_null_call: str | None
    sql_path: str | None
    schema_level_routine: str
    max_dynamic_result_sets: int | None
    is_user_defined_cast: str | None
    is_implicitly_invocable: str | None
    security_type: str
    is_udt_dependent: str


class RoutineParameter(NamedTuple):
    """Row of information_schema.parameters, only used to build signatures."""

    specific_schema: str
    specific_name: str
    ordinal_position: int
    parameter_mode: str | None
    parameter_name: str | None
    udt_schema: str
    udt_name: str


class Sequence(NamedTuple):
    """Row of information_schema.sequences."""

    sequence_catalog: str
    sequence_schema: str
    sequence_name: str
    data_type: str
    numeric_precision: int
    numeric_precision_radix: int
    numeric_scale: int
    start_value: str
    minimum_value: str
    maximum_value: str
    increment: str
    cycle_option: str


class Index(NamedTuple):
    """Row of pg_indexes."""

    table_schema: str
    table_name: str
    index_name: str
    table_space: str | None
    definition: str


class TableConstraint(NamedTuple):
    """Row of information_schema.table_constraints."""

    constraint_catalog: str
    constraint_schema: str
    constraint_name: str
    table_catalog: str
    table_schema: str
    table_name: str
    constraint_type: str
    is_deferrable: str
    initially_deferred: str
    enforced: str
    nulls_distinct: str | None


class TableTrigger(NamedTuple):
    """Row of information_schema.triggers."""

    trigger_catalog: str
    trigger_schema: str
    trigger_name: str
    event_manipulation: str
    event_object_catalog: str
    event_object_schema: str
    event_object_table: str
    action_order: int
    action_condition: str | None
    action_statement: str
    action_orientation: str
    action_timing: str
    action_reference_old_table: str | None
    action_reference_new_table: str | None
    action_reference_old_row: str | None
    action_reference_new_row: str | None


class ColumnPrivilege(NamedTuple):
    """Row of information_schema.column_privileges."""

    grantor: str
    grantee: str
    table_catalog: str
    table_schema: str
    table_name: str
    column_name: str
    privilege_type: str
    is_grantable: str


class TablePrivilege(NamedTuple):
    """Row of information_schema.table_privileges."""

    grantor: str
    grantee: str
    table_catalog: str
    table_schema: str
    table_name: str
    privilege_type: str
    is_grantable: str
    with_hierarchy: str


class RoutinePrivilege(NamedTuple):
    """Row of information_schema.routine_privileges, keyed by signature."""

    grantor: str
    grantee: str
    routine_catalog: str
    routine_schema: str
    signature: str
    privilege_type: str
    is_grantable: str


type Privilege = ColumnPrivilege | TablePrivilege | RoutinePrivilege


class Catalog(NamedTuple):
    """All catalog rows fetched from one database for a set of schemas."""

    schemas: tuple[Schema, ...] = ()
    tables: tuple[Table, ...] = ()
    columns: tuple[Column, ...] = ()
    views: tuple[View, ...] = ()
    routines: tuple[Routine, ...] = ()
    sequences: tuple[Sequence, ...] = ()
    indices: tuple[Index, ...] = ()
    table_constraints: tuple[TableConstraint, ...] = ()
    table_triggers: tuple[TableTrigger, ...] = ()
    column_privileges: tuple[ColumnPrivilege, ...] = ()
    table_privileges: tuple[TablePrivilege, ...] = ()
    routine_privileges: tuple[RoutinePrivilege, ...] = ()


CATALOG_ROW_TYPES: dict[str, type[NamedTuple]] = {
    "schemas": Schema,
    "tables": Table,
    "columns": Column,
    "views": View,
    "routines": Routine,
    "sequences": Sequence,
    "indices": Index,
    "table_constraints": TableConstraint,
    "table_triggers": TableTrigger,
    "column_privileges": ColumnPrivilege,
    "table_privileges": TablePrivilege,
    "routine_privileges": RoutinePrivilege,
}


def group_by[R](
    rows: Iterable[R],
    key: Callable[[R], Hashable],
) -> dict[Hashable, tuple[R, ...]]:
    """Group rows by a parent key, keeping catalog order inside each group."""
    groups: defaultdict[Hashable, list[R]] = defaultdict(list)
    for row in rows:
        groups[key(row)].append(row)
    return {parent: tuple(members) for parent, members in groups.items()}


class CatalogIndex:
    """Lookups of catalog rows by their parent scope."""

    def __init__(self, catalog: Catalog) -> None:
        """Initialize the index over an already populated catalog."""
        self.catalog = catalog

    @cached_property
    def _schemas(self) -> dict[Key, Schema]:
        return index_by_key(
            Kind.SCHEMA,
            self.catalog.schemas,
            lambda schema: schema.schema_name,
        )

    @cached_property
    def _tables(self) -> dict[Hashable, tuple[Table, ...]]:
        return group_by(self.catalog.tables, lambda t: t.table_schema)

    @cached_property
    def _columns(self) -> dict[Hashable, tuple[Column, ...]]:
        return group_by(self.catalog.columns, lambda c: (c.table_schema, c.table_name))

    @cached_property
    def _views(self) -> dict[Hashable, tuple[View, ...]]:
        return group_by(self.catalog.views, lambda v: v.table_schema)

    @cached_property
    def _routines(self) -> dict[Hashable, tuple[Routine, ...]]:
        return group_by(self.catalog.routines, lambda r: r.routine_schema)

    @cached_property
    def _sequences(self) -> dict[Hashable, tuple[Sequence, ...]]:
        return group_by(self.catalog.sequences, lambda s: s.sequence_schema)

    @cached_property
    def _indices(self) -> dict[Hashable, tuple[Index, ...]]:
        return group_by(self.catalog.indices, lambda i: (i.table_schema, i.table_name))

    @cached_property
    def _constraints(self) -> dict[Hashable, tuple[TableConstraint, ...]]:
        return group_by(
            self.catalog.table_constraints,
            lambda c: (c.table_schema, c.table_name),
        )

    @cached_property
    def _triggers(self) -> dict[Hashable, tuple[TableTrigger, ...]]:
        return group_by(
            self.catalog.table_triggers,
            lambda t: (t.event_object_schema, t.event_object_table),
        )

    @cached_property
    def _column_privileges(self) -> dict[Hashable, tuple[ColumnPrivilege, ...]]:
        return group_by(
            self.catalog.column_privileges,
            lambda p: (p.table_schema, p.table_name, p.column_name),
        )

    @cached_property
    def _table_privileges(self) -> dict[Hashable, tuple[TablePrivilege, ...]]:
        return group_by(
            self.catalog.table_privileges,
            lambda p: (p.table_schema, p.table_name),
        )

    @cached_property
    def _routine_privileges(self) -> dict[Hashable, tuple[RoutinePrivilege, ...]]:
        return group_by(
            self.catalog.routine_privileges,
            lambda p: (p.routine_schema, p.signature),
        )

    def schema(self, schema_name: str) -> Schema | None:
        """Return the schema row with the given name, if present."""
        return self._schemas.get(schema_name)

    def tables(self, schema_name: str) -> tuple[Table, ...]:
        """Return tables and views of a schema."""
        return self._tables.get(schema_name, ())

    def columns(self, schema_name: str, table_name: str) -> tuple[Column, ...]:
        """Return columns of a table."""
        return self._columns.get((schema_name, table_name), ())

    def views(self, schema_name: str) -> tuple[View, ...]:
        """Return views of a schema."""
        return self._views.get(schema_name, ())

    def routines(self, schema_name: str) -> tuple[Routine, ...]:
        """Return routines of a schema."""
        return self._routines.get(schema_name, ())

    def sequences(self, schema_name: str) -> tuple[Sequence, ...]:
        """Return sequences of a schema."""
        return self._sequences.get(schema_name, ())

    def indices(self, schema_name: str, table_name: str) -> tuple[Index, ...]:
        """Return indices of a table."""
        return self._indices.get((schema_name, table_name), ())

    def constraints(
        self,
        schema_name: str,
        table_name: str,
    ) -> tuple[TableConstraint, ...]:
        """Return constraints of a table."""
        return self._constraints.get((schema_name, table_name), ())

    def triggers(self, schema_name: str, table_name: str) -> tuple[TableTrigger, ...]:
        """Return triggers fired by events on a table."""
        return self._triggers.get((schema_name, table_name), ())

    def column_privileges(
        self,
        schema_name: str,
        table_name: str,
        column_name: str,
    ) -> tuple[ColumnPrivilege, ...]:
        """Return privileges granted on a column."""
        return self._column_privileges.get((schema_name, table_name, column_name), ())

    def table_privileges(
        self,
        schema_name: str,
        table_name: str,
    ) -> tuple[TablePrivilege, ...]:
        """Return privileges granted on a table."""
        return self._table_privileges.get((schema_name, table_name), ())

    def routine_privileges(
        self,
        schema_name: str,
        signature: str,
    ) -> tuple[RoutinePrivilege, ...]:
        """Return privileges granted on a routine."""
        return self._routine_privileges.get((schema_name, signature), ())


def catalog_to_json(catalog: Catalog, *, indent: int | None = 2) -> str:
    """Serialize a catalog as one list of row objects per entity kind."""
    return json.dumps(
        {
            name: [row._asdict() for row in rows]
            for name, rows in catalog._asdict().items()
        },
        indent=indent,
        ensure_ascii=False,
    )


def row_from_json[R: NamedTuple](row_type: type[R], row: object) -> R:
    """Build a row, checking each value against the row type's annotations."""
    if not isinstance(row, dict):
        msg = f"Invalid catalog snapshot: {row_type.__name__} row must be an object"
        raise DataSourceError(msg)

    for name, hint in get_type_hints(row_type).items():
        if name not in row:
            continue
        value = row[name]
        allowed = get_args(hint) or (hint,)
        if value is None and NoneType in allowed:
            continue
        if isinstance(value, bool) or not isinstance(value, allowed):
            expected = " or ".join(
                "null" if kind is NoneType else kind.__name__ for kind in allowed
            )
            msg = (
                f"Invalid catalog snapshot: {row_type.__name__}.{name} "
                f"must be {expected}, got {value!r}"
            )
            raise DataSourceError(msg)

    try:
        return row_type(**row)
    except TypeError as err:
        msg = f"Invalid catalog snapshot: {err}"
        raise DataSourceError(msg) from err


def catalog_from_json(text: str) -> Catalog:
    """Restore a catalog serialized with catalog_to_json."""
    try:
        data: dict[str, Any] = json.loads(text)
    except json.JSONDecodeError as err:
        msg = f"Invalid catalog snapshot: {err}"
        raise DataSourceError(msg) from err

    if not isinstance(data, dict):
        msg = "Invalid catalog snapshot: expected a JSON object"
        raise DataSourceError(msg)

    if unknown := data.keys() - CATALOG_ROW_TYPES.keys():
        msg = f"Invalid catalog snapshot: unknown entity kinds {sorted(unknown)}"
        raise DataSourceError(msg)

    for name, rows in data.items():
        if not isinstance(rows, list):
            msg = f"Invalid catalog snapshot: {name} must be a list"
            raise DataSourceError(msg)

    return Catalog(
        **{
            name: tuple(row_from_json(row_type, row) for row in data.get(name, ()))
            for name, row_type in CATALOG_ROW_TYPES.items()
        },
    )
