"""Render schema ASTs and changes as SurrealQL DDL.

Statements are ``;``-terminated and safe to concatenate into one
transaction. Field statements always emit their clauses in the same order
(``FLEXIBLE``, ``TYPE``, ``VALUE``, ``ASSERT``, ``DEFAULT``, ``READONLY``,
``COMMENT``, ``PERMISSIONS``) so that re-applying an ``OVERWRITE`` is
idempotent and the DDL parser reads the output back unchanged.

Usage:
    from surql_sync.schema.comparator import compare_schemas
    from surql_sync.schema.migration import generate_migration
    from surql_sync.schema.models import SyncDirection

    changes = compare_schemas(code_schema, db_schema, SyncDirection.PUSH)
    print(generate_migration(changes, code_schema, db_schema))
"""

from surql_sync.schema.comparator import group_changes_by_table, normalize_field_name
from surql_sync.schema.models import (
    Change,
    ChangeType,
    FieldAST,
    IndexAST,
    Permissions,
    SchemaAST,
    TableAST,
    TableType,
)


# ------------------------------------------------------------------
# Definition rendering
# ------------------------------------------------------------------


def render_permissions(permissions: Permissions) -> str | None:
    """Render a ``PERMISSIONS`` clause, or None when no slot is set."""
    if permissions.is_empty():
        return None
    if permissions.is_uniform() and permissions.select in ("FULL", "NONE"):
        return f"PERMISSIONS {permissions.select}"
    rules = ", ".join(f"FOR {op} {expr}" for op, expr in permissions.items())
    return f"PERMISSIONS {rules}"


def render_table_definition(table: TableAST, overwrite: bool = False) -> str:
    """Render a ``DEFINE TABLE`` statement.

    Example:
        >>> render_table_definition(TableAST(name="user"))
        'DEFINE TABLE user TYPE NORMAL SCHEMAFULL;'
    """
    parts = ["DEFINE TABLE"]
    if overwrite:
        parts.append("OVERWRITE")
    parts.append(table.name)
    if table.drop:
        parts.append("DROP")
    if table.type == TableType.RELATION:
        parts.append("TYPE RELATION")
    elif table.type == TableType.NORMAL:
        parts.append("TYPE NORMAL")
    parts.append("SCHEMAFULL" if table.schemafull else "SCHEMALESS")
    if table.type == TableType.VIEW and table.view_query:
        query = table.view_query
        if not query.upper().startswith("SELECT"):
            query = f"SELECT {query}"
        parts.append(f"AS {query}")
    if table.comment:
        parts.append(f"COMMENT {table.comment}")
    permissions = render_permissions(table.permissions)
    if permissions:
        parts.append(permissions)
    return " ".join(parts) + ";"


def render_field_definition(table_name: str, field: FieldAST, overwrite: bool = False) -> str:
    """Render a ``DEFINE FIELD`` statement with every clause re-emitted.

    Example:
        >>> render_field_definition("user", FieldAST(name="name", type="string"))
        'DEFINE FIELD name ON TABLE user TYPE string;'
    """
    parts = ["DEFINE FIELD"]
    if overwrite:
        parts.append("OVERWRITE")
    parts.append(f"{field.name} ON TABLE {table_name}")
    if field.flex:
        parts.append("FLEXIBLE")
    parts.append(f"TYPE {field.type}")
    if field.value is not None:
        parts.append(f"VALUE {field.value}")
    if field.assert_ is not None:
        parts.append(f"ASSERT {field.assert_}")
    if field.default is not None:
        parts.append(f"DEFAULT {field.default}")
    if field.readonly:
        parts.append("READONLY")
    if field.comment:
        parts.append(f"COMMENT {field.comment}")
    permissions = render_permissions(field.permissions)
    if permissions:
        parts.append(permissions)
    return " ".join(parts) + ";"


def render_index_definition(table_name: str, index: IndexAST, overwrite: bool = False) -> str | None:
    """Render a ``DEFINE INDEX`` statement.

    Search and vector indexes are never regenerated; they render as None.
    """
    if index.search or index.vector:
        return None
    parts = ["DEFINE INDEX"]
    if overwrite:
        parts.append("OVERWRITE")
    parts.append(f"{index.name} ON TABLE {table_name} FIELDS {', '.join(index.columns)}")
    if index.unique:
        parts.append("UNIQUE")
    if index.comment:
        parts.append(f"COMMENT {index.comment}")
    return " ".join(parts) + ";"


def render_table(table: TableAST, overwrite: bool = False) -> list[str]:
    """Render a table and all of its real fields and plain indexes.

    Wildcard element constraints (``tags[*]``, ``meta.*``) are left to the
    database, which derives them from the container type. The ``in``/``out`` fields
    of a relation table are pre-declared by ``TYPE RELATION`` and are
    therefore always rendered with ``OVERWRITE``.
    """
    statements = [render_table_definition(table, overwrite=overwrite)]
    for field in table.fields:
        if field.is_wildcard:
            continue
        relation_edge = table.type == TableType.RELATION and field.name in ("in", "out")
        statements.append(
            render_field_definition(table.name, field, overwrite=overwrite or relation_edge)
        )
    for index in table.indexes:
        statement = render_index_definition(table.name, index, overwrite=overwrite)
        if statement:
            statements.append(statement)
    return statements


def generate_schema_ddl(schema: SchemaAST) -> str:
    """Render a whole schema, one table block per table."""
    blocks = ["\n".join(render_table(table)) for table in schema.tables]
    return "\n\n".join(blocks) + ("\n" if blocks else "")


# ------------------------------------------------------------------
# Change rendering
# ------------------------------------------------------------------


def _find_field(table: TableAST, name: str) -> FieldAST | None:
    normalized = normalize_field_name(name)
    for field in table.fields:
        if normalize_field_name(field.name) == normalized:
            return field
    return None


def render_change(change: Change, source: SchemaAST, target: SchemaAST) -> str | None:
    """Render the DDL that applies one change.

    Definitions are looked up in *source*, the side the change says should
    become true. Returns None when the referenced table, field or index
    cannot be found there, or when the index kind is never regenerated.

    Examples:
        >>> source = SchemaAST(tables=[TableAST(name="user", fields=[FieldAST(name="name", type="string")])])
        >>> change = Change(type=ChangeType.FIELD_ADDED, table="user", field="name")
        >>> render_change(change, source, SchemaAST())
        'DEFINE FIELD name ON TABLE user TYPE string;'
        >>> change = Change(type=ChangeType.INDEX_REMOVED, table="user", index="idx_email")
        >>> render_change(change, source, SchemaAST())
        'REMOVE INDEX idx_email ON TABLE user;'
    """
    kind = change.type

    # Removals need only names
    if kind == ChangeType.TABLE_REMOVED:
        return f"REMOVE TABLE {change.table};"
    if kind == ChangeType.FIELD_REMOVED:
        return f"REMOVE FIELD {change.field} ON TABLE {change.table};" if change.field else None
    if kind == ChangeType.INDEX_REMOVED:
        return f"REMOVE INDEX {change.index} ON TABLE {change.table};" if change.index else None

    table = source.get_table(change.table)
    if table is None:
        return None

    if kind == ChangeType.TABLE_ADDED:
        return "\n".join(render_table(table))

    if kind == ChangeType.TABLE_TYPE_CHANGED:
        return render_table_definition(table, overwrite=True)

    if kind in (
        ChangeType.FIELD_ADDED,
        ChangeType.FIELD_TYPE_CHANGED,
        ChangeType.FIELD_DEFAULT_CHANGED,
        ChangeType.FIELD_ASSERTION_CHANGED,
    ):
        field = _find_field(table, change.field) if change.field else None
        if field is None:
            return None
        return render_field_definition(
            table.name, field, overwrite=kind != ChangeType.FIELD_ADDED
        )

    if kind in (ChangeType.INDEX_ADDED, ChangeType.INDEX_MODIFIED):
        index = table.get_index(change.index) if change.index else None
        if index is None:
            return None
        return render_index_definition(
            table.name, index, overwrite=kind == ChangeType.INDEX_MODIFIED
        )

    return None


def generate_migration_statements(
    changes: list[Change],
    source: SchemaAST,
    target: SchemaAST,
) -> list[str]:
    """Render every change, dropping the ones that yield no statement."""
    statements = []
    for change in changes:
        statement = render_change(change, source, target)
        if statement:
            statements.append(statement)
    return statements


def generate_migration(changes: list[Change], source: SchemaAST, target: SchemaAST) -> str:
    """Render a migration script grouped by table.

    Each table's statements follow a ``-- Table: <name>`` header; changes
    that render nothing are omitted.
    """
    blocks = []
    for table, table_changes in group_changes_by_table(changes).items():
        statements = generate_migration_statements(table_changes, source, target)
        if statements:
            blocks.append("\n".join([f"-- Table: {table}", *statements]))
    return "\n\n".join(blocks) + ("\n" if blocks else "")
