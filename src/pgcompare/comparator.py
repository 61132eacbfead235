"""Catalog comparison engine."""

from __future__ import annotations

from collections.abc import Iterable
from logging import getLogger
from typing import TYPE_CHECKING

from pgcompare.catalog import (
    Catalog,
    CatalogIndex,
    Column,
    Index,
    Privilege,
    Routine,
    Schema,
    Sequence,
    Table,
    TableConstraint,
    TableTrigger,
    View,
)
from pgcompare.config import CompareOptions
from pgcompare.property import (
    PropertyRule,
    compare_option_property,
    compare_option_property_ignore_whitespace,
    compare_properties,
    optional,
    required,
)
from pgcompare.reconcile import maintained_only, reconcile
from pgcompare.report import (
    Added,
    EntityComparison,
    Kind,
    Maintained,
    Missing,
    Removed,
    Report,
)

if TYPE_CHECKING:
    from pgcompare.reconcile import Children

logger = getLogger(__name__)

SCHEMA_PROPERTIES = required("schema_owner") + optional(
    "default_character_set_catalog",
    "default_character_set_schema",
    "default_character_set_name",
    "sql_path",
)

SEQUENCE_PROPERTIES = required(
    "data_type",
    "numeric_precision",
    "numeric_precision_radix",
    "numeric_scale",
    "start_value",
    "minimum_value",
    "maximum_value",
    "increment",
    "cycle_option",
)

TABLE_PROPERTIES = (
    required("table_type")
    + optional(
        "self_referencing_column_name",
        "reference_generation",
        "user_defined_type_catalog",
        "user_defined_type_schema",
        "user_defined_type_name",
    )
    + required("is_insertable_into", "is_typed")
    + optional("commit_action")
)

COLUMN_PROPERTIES = (
    optional("column_default")
    + required("is_nullable", "data_type")
    + optional(
        "character_maximum_length",
        "character_octet_length",
        "numeric_precision",
        "numeric_precision_radix",
        "numeric_scale",
        "datetime_precision",
        "interval_type",
        "interval_precision",
        "collation_name",
        "domain_schema",
        "domain_name",
        "udt_schema",
        "udt_name",
        "is_self_referencing",
    )
    + required("is_identity")
    + optional(
        "identity_generation",
        "identity_start",
        "identity_increment",
        "identity_maximum",
        "identity_minimum",
        "identity_cycle",
    )
    + required("is_generated")
    + optional("generation_expression")
    + required("is_updatable")
)

COLUMN_ORDINAL = required("ordinal_position")

INDEX_PROPERTIES = optional("table_space") + required("definition")

CONSTRAINT_PROPERTIES = required(
    "constraint_type",
    "is_deferrable",
    "initially_deferred",
    "enforced",
) + optional("nulls_distinct")

TRIGGER_PROPERTIES = (
    required("action_order")
    + optional("action_condition")
    + required("action_statement", "action_orientation", "action_timing")
    + optional(
        "action_reference_old_table",
        "action_reference_new_table",
        "action_reference_old_row",
        "action_reference_new_row",
    )
)

# Properties that carry SQL text, compared whitespace-insensitively on request
ROUTINE_DEFINITION = "routine_definition"
VIEW_DEFINITION = "view_definition"

ROUTINE_PROPERTIES = (
    optional(
        "routine_type",
        "module_catalog",
        "module_schema",
        "module_name",
        "udt_catalog",
        "udt_schema",
        "udt_name",
        "data_type",
        "character_maximum_length",
        "character_octet_length",
        "character_set_catalog",
        "character_set_schema",
        "character_set_name",
        "collation_catalog",
        "collation_schema",
        "collation_name",
        "numeric_precision",
        "numeric_precision_radix",
        "numeric_scale",
        "datetime_precision",
        "interval_type",
        "interval_precision",
        "type_udt_catalog",
        "type_udt_schema",
        "type_udt_name",
        "maximum_cardinality",
        "dtd_identifier",
    )
    + required("routine_body")
    + optional(ROUTINE_DEFINITION, "external_name")
    + required("external_language")
    + optional("parameter_style")
    + required("is_deterministic", "sql_data_access")
    + optional("is_null_call", "sql_path")
    + required("schema_level_routine")
    + optional(
        "max_dynamic_result_sets",
        "is_user_defined_cast",
        "is_implicitly_invocable",
    )
    + required("security_type", "is_udt_dependent")
)

VIEW_PROPERTIES = optional(VIEW_DEFINITION) + required(
    "check_option",
    "is_updatable",
    "is_insertable_into",
    "is_trigger_updatable",
    "is_trigger_deletable",
    "is_trigger_insertable_into",
)


def privilege_key(privilege: Privilege) -> tuple[str, str, str]:
    """Identify a privilege by its type, grantor and grantee."""
    return (privilege.privilege_type, privilege.grantor, privilege.grantee)


def trigger_key(trigger: TableTrigger) -> tuple[str, str]:
    """Identify a trigger by its name and the event firing it."""
    return (trigger.trigger_name, trigger.event_manipulation)


def with_definition(
    properties: tuple[PropertyRule, ...],
    definition: str,
    *,
    ignore_whitespace: bool,
) -> tuple[PropertyRule, ...]:
    """Pick the comparer used for a definition property."""
    comparer = (
        compare_option_property_ignore_whitespace
        if ignore_whitespace
        else compare_option_property
    )
    return tuple(
        (name, comparer if name == definition else compare)
        for name, compare in properties
    )


def is_stably_named(constraint: TableConstraint) -> bool:
    """Return False for CHECK constraints, whose generated names differ per database."""
    return constraint.constraint_type != "CHECK"


class Comparator:
    """Compares the catalogs of two databases schema by schema."""

    def __init__(
        self,
        left: Catalog,
        right: Catalog,
        options: CompareOptions | None = None,
    ) -> None:
        """Initialize comparator with left and right catalogs."""
        self.left = CatalogIndex(left)
        self.right = CatalogIndex(right)
        self.options = options or CompareOptions()

        self.routine_properties = with_definition(
            ROUTINE_PROPERTIES,
            ROUTINE_DEFINITION,
            ignore_whitespace=self.options.ignore_whitespace,
        )
        self.view_properties = with_definition(
            VIEW_PROPERTIES,
            VIEW_DEFINITION,
            ignore_whitespace=self.options.ignore_whitespace,
        )
        self.column_properties = (
            COLUMN_PROPERTIES
            if self.options.ignore_column_ordinal
            else COLUMN_PROPERTIES + COLUMN_ORDINAL
        )

    def compare(self, schema_names: Iterable[str]) -> Report[EntityComparison]:
        """Compare the requested schemas, in the order requested."""
        return Report(
            Kind.SCHEMA,
            tuple(self.compare_schema(name) for name in schema_names),
        )

    def compare_schema(self, schema_name: str) -> EntityComparison:
        """Compare one schema and everything it contains."""
        logger.debug("Comparing schema %s", schema_name)
        left = self.left.schema(schema_name)
        right = self.right.schema(schema_name)

        if left is None and right is None:
            return Missing(Kind.SCHEMA, schema_name)
        if left is None:
            return Added(Kind.SCHEMA, schema_name)
        if right is None:
            return Removed(Kind.SCHEMA, schema_name)

        return Maintained(Kind.SCHEMA, schema_name, self.schema_children(left, right))

    def schema_children(self, left: Schema, right: Schema) -> Children:
        """Compare schema properties and the objects inside the schema."""
        schema_name = left.schema_name
        return (
            compare_properties(left, right, SCHEMA_PROPERTIES),
            self.routines(schema_name),
            self.sequences(schema_name),
            self.tables(schema_name),
            self.views(schema_name),
        )

    def privileges(
        self,
        left: Iterable[Privilege],
        right: Iterable[Privilege],
    ) -> Report[EntityComparison]:
        """Reconcile grants, unless privileges are ignored."""
        if self.options.ignore_privileges:
            return Report(Kind.PRIVILEGE)
        return reconcile(Kind.PRIVILEGE, left, right, privilege_key)

    def routines(self, schema_name: str) -> Report[EntityComparison]:
        """Compare routines of a schema by signature."""

        def compare(left: Routine, right: Routine) -> Children:
            return (
                compare_properties(left, right, self.routine_properties),
                self.privileges(
                    self.left.routine_privileges(schema_name, left.signature),
                    self.right.routine_privileges(schema_name, right.signature),
                ),
            )

        return reconcile(
            Kind.ROUTINE,
            self.left.routines(schema_name),
            self.right.routines(schema_name),
            lambda routine: routine.signature,
            compare,
        )

    def sequences(self, schema_name: str) -> Report[EntityComparison]:
        """Compare sequences of a schema by name."""

        def compare(left: Sequence, right: Sequence) -> Children:
            return (compare_properties(left, right, SEQUENCE_PROPERTIES),)

        return reconcile(
            Kind.SEQUENCE,
            self.left.sequences(schema_name),
            self.right.sequences(schema_name),
            lambda sequence: sequence.sequence_name,
            compare,
        )

    def tables(self, schema_name: str) -> Report[EntityComparison]:
        """Compare tables (views included) of a schema by name."""

        def compare(left: Table, right: Table) -> Children:
            table_name = left.table_name
            return (
                compare_properties(left, right, TABLE_PROPERTIES),
                self.columns(schema_name, table_name),
                self.indices(schema_name, table_name),
                self.privileges(
                    self.left.table_privileges(schema_name, table_name),
                    self.right.table_privileges(schema_name, table_name),
                ),
                self.constraints(schema_name, table_name),
                self.triggers(schema_name, table_name),
            )

        return reconcile(
            Kind.TABLE,
            self.left.tables(schema_name),
            self.right.tables(schema_name),
            lambda table: table.table_name,
            compare,
        )

    def columns(self, schema_name: str, table_name: str) -> Report[EntityComparison]:
        """Compare columns of a table by name."""

        def compare(left: Column, right: Column) -> Children:
            column_name = left.column_name
            return (
                compare_properties(left, right, self.column_properties),
                self.privileges(
                    self.left.column_privileges(schema_name, table_name, column_name),
                    self.right.column_privileges(schema_name, table_name, column_name),
                ),
            )

        return reconcile(
            Kind.COLUMN,
            self.left.columns(schema_name, table_name),
            self.right.columns(schema_name, table_name),
            lambda column: column.column_name,
            compare,
        )

    def indices(self, schema_name: str, table_name: str) -> Report[EntityComparison]:
        """Compare indices of a table by name."""

        def compare(left: Index, right: Index) -> Children:
            return (compare_properties(left, right, INDEX_PROPERTIES),)

        return reconcile(
            Kind.INDEX,
            self.left.indices(schema_name, table_name),
            self.right.indices(schema_name, table_name),
            lambda index: index.index_name,
            compare,
        )

    def constraints(
        self,
        schema_name: str,
        table_name: str,
    ) -> Report[EntityComparison]:
        """Compare named constraints of a table, leaving out CHECK constraints."""

        def compare(left: TableConstraint, right: TableConstraint) -> Children:
            return (compare_properties(left, right, CONSTRAINT_PROPERTIES),)

        return reconcile(
            Kind.CONSTRAINT,
            filter(is_stably_named, self.left.constraints(schema_name, table_name)),
            filter(is_stably_named, self.right.constraints(schema_name, table_name)),
            lambda constraint: constraint.constraint_name,
            compare,
        )

    def triggers(self, schema_name: str, table_name: str) -> Report[EntityComparison]:
        """Compare triggers of a table by name and event."""

        def compare(left: TableTrigger, right: TableTrigger) -> Children:
            return (compare_properties(left, right, TRIGGER_PROPERTIES),)

        return reconcile(
            Kind.TRIGGER,
            self.left.triggers(schema_name, table_name),
            self.right.triggers(schema_name, table_name),
            trigger_key,
            compare,
        )

    def views(self, schema_name: str) -> Report[EntityComparison]:
        """Compare views present on both sides.

        An added or removed view is already reported as an added or removed
        table, so only maintained views are kept.
        """

        def compare(left: View, right: View) -> Children:
            return (compare_properties(left, right, self.view_properties),)

        return maintained_only(
            reconcile(
                Kind.VIEW,
                self.left.views(schema_name),
                self.right.views(schema_name),
                lambda view: view.table_name,
                compare,
            ),
        )


def compare_catalogs(
    left: Catalog,
    right: Catalog,
    schema_names: Iterable[str],
    options: CompareOptions | None = None,
) -> Report[EntityComparison]:
    """Compare two catalogs for the given schema names."""
    return Comparator(left, right, options).compare(schema_names)
