"""Pydantic models for the schema AST and schema changes.

This module contains schema-domain models:
- AST models: Permissions, FieldAST, IndexAST, EventAST, TableAST, SchemaAST
- Change models: ChangeType, Change, SyncDirection

Every other component reads or produces these models: the DDL parser and
both extractors build them, the comparator diffs them, and the migration
and code generators render them back to text.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Enums
# ============================================================================


class TableType(str, Enum):
    """Kind of table declared by ``DEFINE TABLE``."""

    NORMAL = "NORMAL"
    RELATION = "RELATION"
    VIEW = "VIEW"


class ChangeType(str, Enum):
    """Stable tag vocabulary for schema changes."""

    TABLE_ADDED = "table_added"
    TABLE_REMOVED = "table_removed"
    TABLE_TYPE_CHANGED = "table_type_changed"
    FIELD_ADDED = "field_added"
    FIELD_REMOVED = "field_removed"
    FIELD_TYPE_CHANGED = "field_type_changed"
    FIELD_DEFAULT_CHANGED = "field_default_changed"
    FIELD_ASSERTION_CHANGED = "field_assertion_changed"
    INDEX_ADDED = "index_added"
    INDEX_REMOVED = "index_removed"
    INDEX_MODIFIED = "index_modified"


class SyncDirection(str, Enum):
    """Which side of a comparison is authoritative.

    ``PUSH``: source is the code schema, target is the database.
    ``PULL``: source is the database schema, target is the code.
    """

    PUSH = "push"
    PULL = "pull"


# ============================================================================
# AST Models
# ============================================================================


_PERMISSION_OPS = ("select", "create", "update", "delete")


class Permissions(BaseModel):
    """Four-slot permission expressions for a table or field.

    Example:
        >>> perms = Permissions.uniform("FULL")
        >>> perms.select, perms.delete
        ('FULL', 'FULL')
    """

    select: str | None = None
    create: str | None = None
    update: str | None = None
    delete: str | None = None

    @classmethod
    def uniform(cls, expr: str) -> "Permissions":
        """Same expression for every operation."""
        return cls(select=expr, create=expr, update=expr, delete=expr)

    def items(self) -> list[tuple[str, str]]:
        """(operation, expression) pairs for the slots that are set."""
        return [(op, getattr(self, op)) for op in _PERMISSION_OPS if getattr(self, op) is not None]

    def is_empty(self) -> bool:
        return not self.items()

    def is_uniform(self) -> bool:
        """True if all four slots hold the same expression."""
        values = {getattr(self, op) for op in _PERMISSION_OPS}
        return len(values) == 1 and None not in values


class FieldAST(BaseModel):
    """A single ``DEFINE FIELD`` definition.

    ``name`` is a plain identifier, a dotted path (``address.city``) or a
    wildcard path (``tags.*`` / ``tags[*]``) constraining container elements.

    Example:
        >>> field = FieldAST(name="email", type="string", assert_="string::is::email($value)")
        >>> field.assert_
        'string::is::email($value)'
        >>> field.is_wildcard
        False
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str
    type: str = "any"
    flex: bool = False
    default: str | None = None
    value: str | None = None
    assert_: str | None = Field(default=None, alias="assert")
    readonly: bool = False
    comment: str | None = None
    permissions: Permissions = Field(default_factory=Permissions)

    @property
    def is_wildcard(self) -> bool:
        """True for element constraints such as ``tags.*`` or ``tags[*]``."""
        return self.name.endswith(".*") or self.name.endswith("[*]")

    @property
    def is_nested(self) -> bool:
        """True for any path that is not a plain top-level identifier."""
        return "." in self.name or "[*]" in self.name


class IndexAST(BaseModel):
    """A single ``DEFINE INDEX`` definition.

    ``search`` and ``vector`` are detection flags only; those index kinds
    are never regenerated.
    """

    name: str
    columns: list[str] = Field(default_factory=list)
    unique: bool = False
    search: bool = False
    vector: bool = False
    analyzer: str | None = None
    comment: str | None = None


class EventAST(BaseModel):
    """A ``DEFINE EVENT`` definition, kept for reporting only."""

    name: str
    cond: str = "true"
    then: str = ""


class TableAST(BaseModel):
    """A table with its fields, indexes and events.

    Example:
        >>> table = TableAST(name="user", fields=[FieldAST(name="email", type="string")])
        >>> table.get_field("email").type
        'string'
        >>> table.schemafull
        True
    """

    name: str
    type: TableType = TableType.NORMAL
    drop: bool = False
    schemafull: bool = True
    view_query: str | None = None
    permissions: Permissions = Field(default_factory=Permissions)
    comment: str | None = None
    fields: list[FieldAST] = Field(default_factory=list)
    indexes: list[IndexAST] = Field(default_factory=list)
    events: list[EventAST] = Field(default_factory=list)

    def get_field(self, name: str) -> FieldAST | None:
        for field in self.fields:
            if field.name == name:
                return field
        return None

    def get_index(self, name: str) -> IndexAST | None:
        for index in self.indexes:
            if index.name == name:
                return index
        return None


class SchemaAST(BaseModel):
    """Ordered collection of tables with unique names."""

    tables: list[TableAST] = Field(default_factory=list)

    def get_table(self, name: str) -> TableAST | None:
        for table in self.tables:
            if table.name == name:
                return table
        return None

    @property
    def table_names(self) -> list[str]:
        return [table.name for table in self.tables]


# ============================================================================
# Change Models
# ============================================================================


class Change(BaseModel):
    """One typed difference between two schema ASTs.

    ``old_value`` holds the target-side value and ``new_value`` the
    source-side value for ``*_changed`` and ``index_modified`` kinds.

    Example:
        >>> change = Change(
        ...     type=ChangeType.FIELD_ADDED,
        ...     table="user",
        ...     field="name",
        ...     description="Field 'name' (string) will be added",
        ... )
        >>> change.type.value
        'field_added'
    """

    type: ChangeType
    table: str
    field: str | None = None
    index: str | None = None
    old_value: Any = None
    new_value: Any = None
    description: str = ""
