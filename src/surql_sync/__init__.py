"""surql-sync: Schema sync between SurrealDB and Python model code.

Parses SurrealQL DDL into a schema AST, diffs two schemas, renders
migrations, generates model modules and merges database changes into
existing ones without clobbering hand-written code.

Usage:
    from surql_sync import Field, Index, Table
    from surql_sync import parse_surql, compare_schemas, generate_migration
    from surql_sync import SchemaIntrospector, get_adapter, load_sync_config
"""

__version__ = "0.1.0"

# Adapters
from surql_sync.adapters.base import SchemaClient
from surql_sync.adapters.http import AsyncSurrealHttpAdapter, SurrealQueryError

# Config
from surql_sync.config.loader import load_sync_config
from surql_sync.config.models import ConnectionProfile, SyncConfig

# Factory
from surql_sync.factory import ProfileNotFoundError, get_adapter

# Model DSL
from surql_sync.orm import Field, Index, Table

# Schema
from surql_sync.schema.comparator import compare_schemas, schemas_are_equal
from surql_sync.schema.extractor import extract_schema_from_definables
from surql_sync.schema.introspector import SchemaIntrospector
from surql_sync.schema.migration import generate_migration
from surql_sync.schema.models import Change, ChangeType, SchemaAST, SyncDirection
from surql_sync.schema.parser import DDLParseError, parse_surql

# Codegen
from surql_sync.codegen.generator import generate_code
from surql_sync.codegen.planner import plan_file_changes

__all__ = [
    # Adapters
    "SchemaClient",
    "AsyncSurrealHttpAdapter",
    "SurrealQueryError",
    # Config
    "load_sync_config",
    "ConnectionProfile",
    "SyncConfig",
    # Factory
    "get_adapter",
    "ProfileNotFoundError",
    # Model DSL
    "Field",
    "Index",
    "Table",
    # Schema
    "compare_schemas",
    "schemas_are_equal",
    "extract_schema_from_definables",
    "SchemaIntrospector",
    "generate_migration",
    "Change",
    "ChangeType",
    "SchemaAST",
    "SyncDirection",
    "DDLParseError",
    "parse_surql",
    # Codegen
    "generate_code",
    "plan_file_changes",
]
