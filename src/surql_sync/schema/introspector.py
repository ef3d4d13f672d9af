"""SurrealDB schema introspection via ``INFO FOR`` queries.

This module queries the live database to extract schema information:
- Tables (``INFO FOR DB``) and their DEFINE statements
- Fields, indexes and events per table (``INFO FOR TABLE``)
- Analyzers, functions and params, which are reported as unsupported

Raw DEFINE statements go through the DDL parser. A table whose detail
query fails, or a statement that does not parse, is logged and skipped so
one bad definition never aborts the whole run.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from surql_sync.schema.models import EventAST, FieldAST, IndexAST, SchemaAST, TableAST
from surql_sync.schema.parser import (
    DDLParseError,
    parse_event_definition,
    parse_field_definition,
    parse_index_definition,
    parse_table_definition,
)
from surql_sync.schema.warnings import WarningCollector

if TYPE_CHECKING:
    from surql_sync.adapters.base import SchemaClient

logger = logging.getLogger(__name__)


@dataclass
class IntrospectionResult:
    """Schema read from the database plus the warnings raised while reading it."""

    schema: SchemaAST
    warnings: WarningCollector = field(default_factory=WarningCollector)
    skipped_tables: list[str] = field(default_factory=list)


def quote_identifier(name: str) -> str:
    """Backtick-escape a table name unless it is a plain identifier.

    Example:
        >>> quote_identifier("user"), quote_identifier("user-log")
        ('user', '`user-log`')
    """
    if re.fullmatch(r"[A-Za-z_][A-Za-z0-9_]*", name):
        return name
    escaped = name.replace("\\", "\\\\").replace("`", "\\`")
    return f"`{escaped}`"


def _first_result(results: list[Any], what: str) -> dict[str, Any]:
    if not results or not isinstance(results[0], dict):
        raise ValueError(f"Unexpected response for {what}: {results!r}")
    return results[0]


class SchemaIntrospector:
    """Introspects a SurrealDB database schema.

    Tables are queried one at a time, in the order ``INFO FOR DB`` lists
    them.

    Usage:
        introspector = SchemaIntrospector(client)
        result = await introspector.introspect()
        print(result.schema.table_names)
        print(result.warnings.format_report())
    """

    def __init__(self, client: "SchemaClient"):
        self._client = client

    async def introspect(self, warnings: WarningCollector | None = None) -> IntrospectionResult:
        """Build a ``SchemaAST`` from the connected database.

        Args:
            warnings: Collector to record unsupported features in. A new one
                is created when omitted.

        Returns:
            ``IntrospectionResult`` with the schema, the warnings and the
            names of tables that could not be read.

        Raises:
            SurrealQueryError: If ``INFO FOR DB`` itself fails.
        """
        if warnings is None:
            warnings = WarningCollector()

        db_info = _first_result(await self._client.query("INFO FOR DB"), "INFO FOR DB")

        for kind, key in (("analyzer", "analyzers"), ("function", "functions"), ("param", "params")):
            for name, ddl in (db_info.get(key) or {}).items():
                warnings.check_feature_support(kind, name, ddl or "")

        result = IntrospectionResult(schema=SchemaAST(), warnings=warnings)

        for table_name, table_ddl in (db_info.get("tables") or {}).items():
            sql = f"INFO FOR TABLE {quote_identifier(table_name)}"
            try:
                table_info = _first_result(await self._client.query(sql), sql)
            except Exception as e:
                logger.warning(f"Failed to get info for table {table_name}: {e}")
                result.skipped_tables.append(table_name)
                continue

            if not table_ddl:
                logger.warning(f"No DDL found for table {table_name}")
                result.skipped_tables.append(table_name)
                continue

            table = self._build_table(table_name, table_ddl, table_info, warnings)
            if table is None:
                result.skipped_tables.append(table_name)
                continue
            result.schema.tables.append(table)

        return result

    def _build_table(
        self,
        table_name: str,
        table_ddl: str,
        table_info: dict[str, Any],
        warnings: WarningCollector,
    ) -> TableAST | None:
        warnings.check_feature_support("table", table_name, table_ddl)
        try:
            table = parse_table_definition(table_ddl)
        except DDLParseError as e:
            logger.warning(f"Failed to parse table {table_name}: {e}")
            return None

        fields: list[FieldAST] = []
        for name, ddl in (table_info.get("fields") or {}).items():
            if not ddl:
                continue
            warnings.check_feature_support("field", name, ddl)
            try:
                fields.append(parse_field_definition(ddl))
            except DDLParseError as e:
                logger.warning(f"Failed to parse field {name} on table {table_name}: {e}")

        indexes: list[IndexAST] = []
        for name, ddl in (table_info.get("indexes") or {}).items():
            if not ddl or not warnings.check_feature_support("index", name, ddl):
                continue
            try:
                indexes.append(parse_index_definition(ddl))
            except DDLParseError as e:
                logger.warning(f"Failed to parse index {name} on table {table_name}: {e}")

        events: list[EventAST] = []
        for name, ddl in (table_info.get("events") or {}).items():
            if not ddl:
                continue
            warnings.check_feature_support("event", name, ddl)
            try:
                events.append(parse_event_definition(ddl))
            except DDLParseError as e:
                logger.warning(f"Failed to parse event {name} on table {table_name}: {e}")

        table.fields = fields
        table.indexes = indexes
        table.events = events
        return table
