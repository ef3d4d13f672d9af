"""DDL parser for SurrealQL ``DEFINE`` statements.

Turns raw ``DEFINE TABLE`` / ``DEFINE FIELD`` / ``DEFINE INDEX`` /
``DEFINE EVENT`` text, as returned by ``INFO FOR DB`` and
``INFO FOR TABLE`` or written in a ``.surql`` file, into schema AST nodes.

Clauses are extracted with keyword-terminated lazy matches rather than a
full grammar: a type expression such as ``array<record<user>> | none``
runs until the next clause keyword (``DEFAULT``, ``VALUE``, ``ASSERT``,
``PERMISSIONS``, ...) or the end of the statement. Clause keywords are
only recognized in upper case, so lower-case text inside expressions
(``$value``, ``'default'``) never terminates a clause.

Usage:
    from surql_sync.schema.parser import parse_field_definition, parse_surql

    field = parse_field_definition(
        "DEFINE FIELD email ON TABLE user TYPE string ASSERT string::is::email($value)"
    )
    schema = parse_surql(Path("schema.surql").read_text())
"""

import logging
import re
from pathlib import Path

from surql_sync.schema.models import (
    EventAST,
    FieldAST,
    IndexAST,
    Permissions,
    SchemaAST,
    TableAST,
    TableType,
)
from surql_sync.schema.warnings import WarningCollector

logger = logging.getLogger(__name__)


class DDLParseError(ValueError):
    """Raised when a statement does not match the expected DEFINE shape."""

    pass


# ============================================================================
# Patterns
# ============================================================================

_OPTIONAL_MODIFIERS = r"(?:IF\s+NOT\s+EXISTS\s+)?(?:OVERWRITE\s+)?"
# Plain, backtick-quoted or angle-bracket-quoted identifier
_IDENT = r"(?:\w+|`(?:[^`\\]|\\.)*`|⟨[^⟩]*⟩)"

_TABLE_PREFIX = re.compile(rf"^DEFINE\s+TABLE\s+{_OPTIONAL_MODIFIERS}", re.IGNORECASE)
_FIELD_HEADER = re.compile(
    rf"^DEFINE\s+FIELD\s+{_OPTIONAL_MODIFIERS}([\w.*\[\]]+)\s+ON\s+(?:TABLE\s+)?({_IDENT})",
    re.IGNORECASE,
)
_INDEX_HEADER = re.compile(
    rf"^DEFINE\s+INDEX\s+{_OPTIONAL_MODIFIERS}(\w+)\s+ON\s+(?:TABLE\s+)?({_IDENT})",
    re.IGNORECASE,
)
_EVENT_HEADER = re.compile(
    rf"^DEFINE\s+EVENT\s+{_OPTIONAL_MODIFIERS}(\w+)\s+ON\s+(?:TABLE\s+)?({_IDENT})",
    re.IGNORECASE,
)
_TABLE_NAME_REF = re.compile(rf"\sON\s+(?:TABLE\s+)?({_IDENT})", re.IGNORECASE)

# Any of these ends the clause before it
_FIELD_KEYWORDS = r"(?:FLEXIBLE|TYPE|DEFAULT|VALUE|ASSERT|READONLY|REFERENCE|PERMISSIONS|COMMENT)"
_INDEX_KEYWORDS = r"(?:UNIQUE|SEARCH|FULLTEXT|MTREE|HNSW|COUNT|CONCURRENTLY|COMMENT)"

_PERMISSION_OP = r"(?:select|create|update|delete)"
_PERMISSION_RULE = re.compile(
    rf"FOR\s+({_PERMISSION_OP}(?:\s*,\s*{_PERMISSION_OP})*)\s+(.+?)(?=\s*,?\s*FOR\s+{_PERMISSION_OP}\b|$)",
    re.IGNORECASE | re.DOTALL,
)


def _clean(ql: str) -> str:
    """Strip surrounding whitespace and a trailing semicolon."""
    text = ql.strip()
    if text.endswith(";"):
        text = text[:-1].rstrip()
    return text


def _unquote(ident: str) -> str:
    if len(ident) >= 2 and ident[0] == "`" and ident[-1] == "`":
        return re.sub(r"\\(.)", r"\1", ident[1:-1])
    if ident.startswith("⟨") and ident.endswith("⟩"):
        return ident[1:-1]
    return ident


def _clause(text: str, keyword: str, terminators: str = _FIELD_KEYWORDS) -> str | None:
    """Extract the expression following *keyword* up to the next clause keyword."""
    match = re.search(
        rf"\s{keyword}\s+(.+?)(?=\s+{terminators}\b|$)",
        text,
        re.DOTALL,
    )
    if not match:
        return None
    return match.group(1).strip()


def _has_keyword(text: str, keyword: str) -> bool:
    return re.search(rf"\b{keyword}\b", text) is not None


def parse_permissions(text: str) -> Permissions:
    """Parse the ``PERMISSIONS`` clause of a table or field statement.

    Supports the ``FULL`` / ``NONE`` shorthand as well as per-operation
    rules, including grouped operations::

        PERMISSIONS FOR select FULL, FOR create, update WHERE user = $auth.id

    Example:
        >>> parse_permissions("DEFINE TABLE post PERMISSIONS NONE").create
        'NONE'
    """
    match = re.search(r"\sPERMISSIONS\s+(.+?)(?=\s+COMMENT\b|$)", text, re.DOTALL)
    if not match:
        return Permissions()

    clause = match.group(1).strip()
    if clause.upper() in ("FULL", "NONE"):
        return Permissions.uniform(clause.upper())

    permissions = Permissions()
    for rule in _PERMISSION_RULE.finditer(clause):
        expr = rule.group(2).strip().rstrip(",").strip()
        for op in re.split(r"\s*,\s*", rule.group(1).lower()):
            setattr(permissions, op, expr)
    return permissions


# ============================================================================
# Statement Parsers
# ============================================================================


def parse_table_definition(ql: str) -> TableAST:
    """Parse a ``DEFINE TABLE`` statement.

    The result carries no fields, indexes or events; those are defined by
    separate statements.

    Raises:
        DDLParseError: If the statement is not a table definition.

    Example:
        >>> table = parse_table_definition("DEFINE TABLE follows TYPE RELATION SCHEMAFULL")
        >>> table.name, table.type.value
        ('follows', 'RELATION')
    """
    text = _clean(ql)
    prefix = _TABLE_PREFIX.match(text)
    if not prefix:
        raise DDLParseError(f"Not a DEFINE TABLE statement: {ql!r}")

    rest = " " + text[prefix.end():]
    name_match = re.match(rf"\s({_IDENT})", rest)
    if not name_match:
        raise DDLParseError(f"Missing table name: {ql!r}")

    # Flags are only read from the part before the view query / permissions
    head = re.split(r"\s(?:AS\s+SELECT|PERMISSIONS|COMMENT)\s", rest, maxsplit=1)[0]
    view = re.search(r"\sAS\s+SELECT\s+(.+?)(?=\s+PERMISSIONS\b|\s+COMMENT\b|$)", rest, re.DOTALL)

    if re.search(r"\bTYPE\s+RELATION\b", head):
        table_type = TableType.RELATION
    elif view:
        table_type = TableType.VIEW
    else:
        table_type = TableType.NORMAL

    comment = re.search(r"\sCOMMENT\s+(.+?)(?=\s+PERMISSIONS\b|$)", rest, re.DOTALL)

    return TableAST(
        name=_unquote(name_match.group(1)),
        type=table_type,
        drop=_has_keyword(head, "DROP"),
        schemafull=not _has_keyword(head, "SCHEMALESS"),
        view_query=f"SELECT {view.group(1).strip()}" if view else None,
        permissions=parse_permissions(rest),
        comment=comment.group(1).strip() if comment else None,
    )


def parse_field_definition(ql: str) -> FieldAST:
    """Parse a ``DEFINE FIELD`` statement.

    Raises:
        DDLParseError: If the field name or owning table cannot be found.

    Example:
        >>> field = parse_field_definition(
        ...     "DEFINE FIELD status ON TABLE post TYPE string DEFAULT 'draft' "
        ...     "ASSERT $value INSIDE ['draft','published']"
        ... )
        >>> field.type, field.default
        ('string', "'draft'")
        >>> field.assert_
        "$value INSIDE ['draft','published']"
    """
    text = _clean(ql)
    header = _FIELD_HEADER.match(text)
    if not header:
        raise DDLParseError(f"Invalid DEFINE FIELD statement: {ql!r}")

    rest = " " + text[header.end():]

    return FieldAST(
        name=header.group(1),
        type=_clause(rest, "TYPE") or "any",
        flex=_has_keyword(rest, "FLEXIBLE"),
        default=_clause(rest, "DEFAULT"),
        value=_clause(rest, "VALUE"),
        assert_=_clause(rest, "ASSERT"),
        readonly=_has_keyword(rest, "READONLY"),
        comment=_clause(rest, "COMMENT"),
        permissions=parse_permissions(rest),
    )


def parse_index_definition(ql: str) -> IndexAST:
    """Parse a ``DEFINE INDEX`` statement.

    Accepts both ``FIELDS`` and the legacy ``COLUMNS`` keyword.

    Raises:
        DDLParseError: If the index name or owning table cannot be found.

    Example:
        >>> index = parse_index_definition("DEFINE INDEX idx_email ON TABLE user FIELDS email UNIQUE")
        >>> index.columns, index.unique
        (['email'], True)
    """
    text = _clean(ql)
    header = _INDEX_HEADER.match(text)
    if not header:
        raise DDLParseError(f"Invalid DEFINE INDEX statement: {ql!r}")

    rest = " " + text[header.end():]
    columns_clause = re.search(
        rf"\s(?:FIELDS|COLUMNS)\s+(.+?)(?=\s+{_INDEX_KEYWORDS}\b|$)",
        rest,
        re.DOTALL,
    )
    columns = []
    if columns_clause:
        columns = [col.strip() for col in columns_clause.group(1).split(",") if col.strip()]

    analyzer = re.search(r"\bANALYZER\s+(\w+)", rest)

    return IndexAST(
        name=header.group(1),
        columns=columns,
        unique=_has_keyword(rest, "UNIQUE"),
        search=re.search(r"\b(?:SEARCH|FULLTEXT)\s+ANALYZER\b", rest) is not None,
        vector=re.search(r"\b(?:MTREE|HNSW)\b", rest) is not None,
        analyzer=analyzer.group(1) if analyzer else None,
        comment=_clause(rest, "COMMENT", _INDEX_KEYWORDS),
    )


def parse_event_definition(ql: str) -> EventAST:
    """Parse a ``DEFINE EVENT`` statement.

    Raises:
        DDLParseError: If the event name or ``THEN`` clause is missing.
    """
    text = _clean(ql)
    header = _EVENT_HEADER.match(text)
    if not header:
        raise DDLParseError(f"Invalid DEFINE EVENT statement: {ql!r}")

    rest = " " + text[header.end():]
    then = re.search(r"\sTHEN\s+(.+?)(?=\s+COMMENT\b|$)", rest, re.DOTALL)
    if not then:
        raise DDLParseError(f"DEFINE EVENT without THEN clause: {ql!r}")
    cond = re.search(r"\sWHEN\s+(.+?)\s+THEN\s", rest, re.DOTALL)

    return EventAST(
        name=header.group(1),
        cond=cond.group(1).strip() if cond else "true",
        then=then.group(1).strip(),
    )


def extract_table_name(ql: str) -> str:
    """Return the table a FIELD / INDEX / EVENT statement is defined on.

    Raises:
        DDLParseError: If the statement has no ``ON [TABLE] <name>`` part.
    """
    match = _TABLE_NAME_REF.search(ql)
    if not match:
        raise DDLParseError(f"Could not find table name in: {ql!r}")
    return _unquote(match.group(1))


# ============================================================================
# Whole-file Parsing
# ============================================================================


def split_statements(content: str) -> list[str]:
    """Split SurrealQL text into statements on top-level semicolons.

    Semicolons inside quoted strings or inside ``{...}`` / ``(...)`` blocks
    (event bodies, functions) do not end a statement. Line comments
    (``--``, ``//``, ``#``) and block comments are dropped.
    """
    statements: list[str] = []
    current: list[str] = []
    quote: str | None = None
    depth = 0
    i = 0
    n = len(content)

    while i < n:
        ch = content[i]
        nxt = content[i + 1] if i + 1 < n else ""

        if quote:
            current.append(ch)
            if ch == "\\" and nxt:
                current.append(nxt)
                i += 2
                continue
            if ch == quote:
                quote = None
            i += 1
            continue

        if ch in "'\"`":
            quote = ch
        elif ch == "#" or (ch == "-" and nxt == "-") or (ch == "/" and nxt == "/"):
            end = content.find("\n", i)
            i = n if end == -1 else end
            continue
        elif ch == "/" and nxt == "*":
            end = content.find("*/", i + 2)
            i = n if end == -1 else end + 2
            continue
        elif ch in "{(":
            depth += 1
        elif ch in "})":
            depth -= 1
        elif ch == ";" and depth <= 0:
            statement = "".join(current).strip()
            if statement:
                statements.append(statement)
            current = []
            i += 1
            continue

        current.append(ch)
        i += 1

    statement = "".join(current).strip()
    if statement:
        statements.append(statement)
    return statements


_STATEMENT_KIND = re.compile(
    rf"^DEFINE\s+(TABLE|FIELD|INDEX|EVENT|ANALYZER|FUNCTION|PARAM)\s+{_OPTIONAL_MODIFIERS}(\S+)",
    re.IGNORECASE,
)


def parse_surql(content: str, warnings: WarningCollector | None = None) -> SchemaAST:
    """Build a ``SchemaAST`` from a whole ``.surql`` schema file.

    Statements that fail to parse are logged and skipped. A field or index
    that appears before its table gets a default SCHEMAFULL NORMAL table,
    updated in place if the table is defined later.

    Args:
        content: SurrealQL text containing DEFINE statements.
        warnings: Collector for unsupported features. A private collector is
            used when omitted.

    Returns:
        ``SchemaAST`` with tables in order of first appearance.
    """
    if warnings is None:
        warnings = WarningCollector()

    tables: dict[str, TableAST] = {}

    def table_for(name: str) -> TableAST:
        if name not in tables:
            tables[name] = TableAST(name=name)
        return tables[name]

    for statement in split_statements(content):
        match = _STATEMENT_KIND.match(statement)
        if not match:
            continue
        kind = match.group(1).lower()
        name = match.group(2)

        try:
            if kind == "table":
                warnings.check_feature_support("table", name, statement)
                parsed = parse_table_definition(statement)
                existing = tables.get(parsed.name)
                if existing is not None:
                    parsed = parsed.model_copy(
                        update={
                            "fields": existing.fields,
                            "indexes": existing.indexes,
                            "events": existing.events,
                        }
                    )
                tables[parsed.name] = parsed

            elif kind == "field":
                warnings.check_feature_support("field", name, statement)
                field = parse_field_definition(statement)
                table = table_for(extract_table_name(statement))
                table.fields = [f for f in table.fields if f.name != field.name] + [field]

            elif kind == "index":
                if not warnings.check_feature_support("index", name, statement):
                    continue
                index = parse_index_definition(statement)
                table = table_for(extract_table_name(statement))
                table.indexes = [i for i in table.indexes if i.name != index.name] + [index]

            elif kind == "event":
                warnings.check_feature_support("event", name, statement)
                event = parse_event_definition(statement)
                table_for(extract_table_name(statement)).events.append(event)

            else:
                warnings.check_feature_support(kind, name, statement)

        except DDLParseError as e:
            logger.warning(f"Skipping unparseable {kind} statement: {e}")

    return SchemaAST(tables=list(tables.values()))


def parse_surql_file(path: str | Path, warnings: WarningCollector | None = None) -> SchemaAST:
    """Read and parse a ``.surql`` schema file.

    Raises:
        FileNotFoundError: If *path* does not exist.
    """
    schema_path = Path(path)
    if not schema_path.exists():
        raise FileNotFoundError(f"Schema file not found: {schema_path}")
    return parse_surql(schema_path.read_text(), warnings)
