"""Schema AST, DDL parsing, introspection, diffing and migrations.

Provides the AST models, the SurrealQL DDL parser (``parse_surql``), live
database introspection (``SchemaIntrospector``), schema comparison
(``compare_schemas``) and migration rendering/application
(``generate_migration``, ``apply_migration``).

The code-side extractor and module loader depend on ``surql_sync.orm``
and are imported from their own modules.

Usage:
    from surql_sync.schema import parse_surql, compare_schemas, SyncDirection
    from surql_sync.schema import SchemaIntrospector, WarningCollector
    from surql_sync.schema import plan_migration, apply_migration
"""

from surql_sync.schema.apply import ApplyResult, MigrationPlan, apply_migration, plan_migration
from surql_sync.schema.comparator import (
    compare_fields,
    compare_indexes,
    compare_schemas,
    format_changes,
    schemas_are_equal,
)
from surql_sync.schema.introspector import IntrospectionResult, SchemaIntrospector
from surql_sync.schema.migration import generate_migration, generate_schema_ddl, render_change
from surql_sync.schema.models import (
    Change,
    ChangeType,
    EventAST,
    FieldAST,
    IndexAST,
    Permissions,
    SchemaAST,
    SyncDirection,
    TableAST,
    TableType,
)
from surql_sync.schema.parser import (
    DDLParseError,
    parse_field_definition,
    parse_index_definition,
    parse_surql,
    parse_table_definition,
)
from surql_sync.schema.warnings import FeatureWarning, WarningCollector

__all__ = [
    "ApplyResult",
    "MigrationPlan",
    "apply_migration",
    "plan_migration",
    "compare_fields",
    "compare_indexes",
    "compare_schemas",
    "format_changes",
    "schemas_are_equal",
    "IntrospectionResult",
    "SchemaIntrospector",
    "generate_migration",
    "generate_schema_ddl",
    "render_change",
    "Change",
    "ChangeType",
    "EventAST",
    "FieldAST",
    "IndexAST",
    "Permissions",
    "SchemaAST",
    "SyncDirection",
    "TableAST",
    "TableType",
    "DDLParseError",
    "parse_field_definition",
    "parse_index_definition",
    "parse_surql",
    "parse_table_definition",
    "FeatureWarning",
    "WarningCollector",
]
