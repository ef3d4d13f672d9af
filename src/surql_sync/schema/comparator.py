"""Schema comparison producing typed changes.

Compares a source schema (the side that should become true) against a
target schema (what currently exists). Pure logic -- no I/O, no database
connections.

Two normalizations are applied before matching:

- field names: ``tags[*]`` and ``tags.*`` are the same field
- field types: ``option<T>`` and ``none | T`` are the same type

Usage:
    from surql_sync.schema.comparator import compare_schemas, format_changes
    from surql_sync.schema.models import SyncDirection

    # push: code is authoritative, database is the target
    changes = compare_schemas(code_schema, db_schema, SyncDirection.PUSH)
    print(format_changes(changes, detailed=True))
"""

import re
from typing import Any

from surql_sync.schema.models import (
    Change,
    ChangeType,
    IndexAST,
    SchemaAST,
    SyncDirection,
    TableAST,
)


# ------------------------------------------------------------------
# Normalization
# ------------------------------------------------------------------


def normalize_field_name(name: str) -> str:
    """Spell array wildcards as ``.*``.

    Example:
        >>> normalize_field_name("tags[*]")
        'tags.*'
    """
    return name.replace("[*]", ".*")


def normalize_type(type_expr: str) -> str:
    """Spell ``option<T>`` as ``none | T``.

    Example:
        >>> normalize_type("option<string>") == normalize_type("none | string")
        True
    """
    match = re.match(r"^option<(.+)>$", type_expr.strip())
    if match:
        return f"none | {match.group(1)}"
    return type_expr.strip()


def _describe_counts(table: TableAST) -> str:
    details = []
    if table.fields:
        details.append(f"{len(table.fields)} field{'s' if len(table.fields) != 1 else ''}")
    if table.indexes:
        details.append(f"{len(table.indexes)} index{'es' if len(table.indexes) != 1 else ''}")
    return f" ({', '.join(details)})" if details else ""


# ------------------------------------------------------------------
# Comparison
# ------------------------------------------------------------------


def compare_schemas(
    source: SchemaAST,
    target: SchemaAST,
    direction: SyncDirection = SyncDirection.PULL,
) -> list[Change]:
    """Compare two schemas and return the changes that turn *target* into *source*.

    Args:
        source: The authoritative schema.
        target: The schema that currently exists.
        direction: Only affects the wording of change descriptions.

    Returns:
        Changes in source table order, each table's field changes before its
        index changes, followed by ``table_removed`` entries.

    Examples:
        >>> from surql_sync.schema.models import FieldAST, TableAST
        >>> source = SchemaAST(tables=[TableAST(name="user", fields=[
        ...     FieldAST(name="email", type="string"),
        ...     FieldAST(name="name", type="string"),
        ... ])])
        >>> target = SchemaAST(tables=[TableAST(name="user", fields=[
        ...     FieldAST(name="email", type="string"),
        ... ])])
        >>> [c.type.value for c in compare_schemas(source, target)]
        ['field_added']
    """
    is_push = direction == SyncDirection.PUSH
    changes: list[Change] = []

    source_tables = {table.name: table for table in source.tables}
    target_tables = {table.name: table for table in target.tables}

    for name, source_table in source_tables.items():
        target_table = target_tables.get(name)

        if target_table is None:
            verb = "created" if is_push else "added"
            changes.append(
                Change(
                    type=ChangeType.TABLE_ADDED,
                    table=name,
                    description=f"Table '{name}' will be {verb}{_describe_counts(source_table)}",
                )
            )
            continue

        if source_table.type != target_table.type:
            changes.append(
                Change(
                    type=ChangeType.TABLE_TYPE_CHANGED,
                    table=name,
                    old_value=target_table.type.value,
                    new_value=source_table.type.value,
                    description=(
                        f"Table '{name}' type changed from "
                        f"{target_table.type.value} to {source_table.type.value}"
                    ),
                )
            )

        changes.extend(compare_fields(source_table, target_table, direction))
        changes.extend(compare_indexes(source_table, target_table, direction))

    for name, target_table in target_tables.items():
        if name not in source_tables:
            verb = "dropped" if is_push else "removed"
            changes.append(
                Change(
                    type=ChangeType.TABLE_REMOVED,
                    table=name,
                    description=f"Table '{name}' will be {verb}{_describe_counts(target_table)}",
                )
            )

    return changes


def compare_fields(
    source_table: TableAST,
    target_table: TableAST,
    direction: SyncDirection = SyncDirection.PULL,
) -> list[Change]:
    """Field-level changes between two versions of one table.

    A field differing in several attributes yields one change per attribute.
    """
    is_push = direction == SyncDirection.PUSH
    table = source_table.name
    here, there = ("code", "database") if is_push else ("database", "code")

    changes: list[Change] = []
    source_fields = {normalize_field_name(f.name): f for f in source_table.fields}
    target_fields = {normalize_field_name(f.name): f for f in target_table.fields}

    for name, source_field in source_fields.items():
        target_field = target_fields.get(name)

        if target_field is None:
            changes.append(
                Change(
                    type=ChangeType.FIELD_ADDED,
                    table=table,
                    field=name,
                    new_value=source_field.type,
                    description=(
                        f"Field '{name}' ({source_field.type}) exists in {here} but not in {there}"
                    ),
                )
            )
            continue

        if normalize_type(source_field.type) != normalize_type(target_field.type):
            changes.append(
                Change(
                    type=ChangeType.FIELD_TYPE_CHANGED,
                    table=table,
                    field=name,
                    old_value=target_field.type,
                    new_value=source_field.type,
                    description=(
                        f"Field '{name}' type changed from {target_field.type} to {source_field.type}"
                    ),
                )
            )

        if source_field.default != target_field.default:
            changes.append(
                Change(
                    type=ChangeType.FIELD_DEFAULT_CHANGED,
                    table=table,
                    field=name,
                    old_value=target_field.default,
                    new_value=source_field.default,
                    description=f"Field '{name}' default changed",
                )
            )

        if source_field.assert_ != target_field.assert_:
            changes.append(
                Change(
                    type=ChangeType.FIELD_ASSERTION_CHANGED,
                    table=table,
                    field=name,
                    old_value=target_field.assert_,
                    new_value=source_field.assert_,
                    description=f"Field '{name}' assertion changed",
                )
            )

    for name, target_field in target_fields.items():
        if name not in source_fields:
            changes.append(
                Change(
                    type=ChangeType.FIELD_REMOVED,
                    table=table,
                    field=name,
                    old_value=target_field.type,
                    description=f"Field '{name}' exists in {there} but not in {here}",
                )
            )

    return changes


def compare_indexes(
    source_table: TableAST,
    target_table: TableAST,
    direction: SyncDirection = SyncDirection.PULL,
) -> list[Change]:
    """Index-level changes, matched by index name only."""
    is_push = direction == SyncDirection.PUSH
    table = source_table.name
    here, there = ("code", "database") if is_push else ("database", "code")

    changes: list[Change] = []
    source_indexes = {index.name: index for index in source_table.indexes}
    target_indexes = {index.name: index for index in target_table.indexes}

    for name, source_index in source_indexes.items():
        target_index = target_indexes.get(name)

        if target_index is None:
            changes.append(
                Change(
                    type=ChangeType.INDEX_ADDED,
                    table=table,
                    index=name,
                    new_value=list(source_index.columns),
                    description=(
                        f"Index '{name}' on [{', '.join(source_index.columns)}] "
                        f"exists in {here} but not in {there}"
                    ),
                )
            )
            continue

        if _index_definition_changed(source_index, target_index):
            changes.append(
                Change(
                    type=ChangeType.INDEX_MODIFIED,
                    table=table,
                    index=name,
                    old_value=target_index,
                    new_value=source_index,
                    description=f"Index '{name}' definition changed",
                )
            )

    for name, target_index in target_indexes.items():
        if name not in source_indexes:
            changes.append(
                Change(
                    type=ChangeType.INDEX_REMOVED,
                    table=table,
                    index=name,
                    old_value=list(target_index.columns),
                    description=f"Index '{name}' exists in {there} but not in {here}",
                )
            )

    return changes


def _index_definition_changed(source: IndexAST, target: IndexAST) -> bool:
    # Column order is significant
    return source.columns != target.columns or source.unique != target.unique


# ------------------------------------------------------------------
# Helpers over change lists
# ------------------------------------------------------------------


def schemas_are_equal(source: SchemaAST, target: SchemaAST) -> bool:
    return not compare_schemas(source, target)


def group_changes_by_table(changes: list[Change]) -> dict[str, list[Change]]:
    """Group changes by table, preserving first-seen table order."""
    grouped: dict[str, list[Change]] = {}
    for change in changes:
        grouped.setdefault(change.table, []).append(change)
    return grouped


def filter_changes_by_type(changes: list[Change], *types: ChangeType) -> list[Change]:
    return [change for change in changes if change.type in types]


def _change_icon(change_type: ChangeType) -> str:
    if change_type.value.endswith("added"):
        return "+"
    if change_type.value.endswith("removed"):
        return "-"
    return "~"


def format_value(value: Any) -> str:
    if isinstance(value, list):
        return f"[{', '.join(str(v) for v in value)}]"
    if isinstance(value, IndexAST):
        unique = " UNIQUE" if value.unique else ""
        return f"[{', '.join(value.columns)}]{unique}"
    return str(value)


def format_changes(changes: list[Change], detailed: bool = False) -> str:
    """Format changes as a plain-text report grouped by table.

    Example:
        >>> format_changes([])
        'Schemas are identical'
    """
    if not changes:
        return "Schemas are identical"

    lines: list[str] = []
    for table, table_changes in group_changes_by_table(changes).items():
        lines.append(f"\n{table}:")
        for change in table_changes:
            lines.append(f"  {_change_icon(change.type)} {change.description}")
            if detailed:
                if change.old_value is not None:
                    lines.append(f"      Old: {format_value(change.old_value)}")
                if change.new_value is not None:
                    lines.append(f"      New: {format_value(change.new_value)}")

    return "\n".join(lines)
