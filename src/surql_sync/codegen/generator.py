"""Generate model source files from a schema AST.

One module per table, named ``<table>.py``, containing the ``Table``
subclass, its plain indexes and a ``<TABLE>_DEFINITIONS`` aggregate::

    from surql_sync.orm import Field, Index, Table


    class User(Table, table='user', schemafull=True):
        fields = {
            'email': Field.string(assert_='string::is::email($value)'),
        }


    idx_email = Index(User, name='idx_email', fields=['email'], unique=True)

    USER_DEFINITIONS = [User, idx_email]

Flat dotted / wildcard field paths are folded back into nested
``Field.object`` / ``Field.array`` builders, so loading the generated module
and extracting it yields the original field list.
"""

import re
from dataclasses import dataclass, field

from surql_sync.schema.models import FieldAST, IndexAST, Permissions, SchemaAST, TableAST, TableType

IMPORT_LINE = "from surql_sync.orm import Field, Index, Table"
INDENT = "    "

_SCALAR_TYPES = {
    "any",
    "string",
    "int",
    "float",
    "number",
    "bool",
    "datetime",
    "duration",
    "decimal",
    "uuid",
    "bytes",
}


# ------------------------------------------------------------------
# Naming
# ------------------------------------------------------------------


def class_name(table_name: str) -> str:
    """PascalCase class name for a table.

    Example:
        >>> class_name("user_profile")
        'UserProfile'
    """
    return "".join(part[:1].upper() + part[1:] for part in table_name.split("_") if part)


def definitions_name(table_name: str) -> str:
    """Name of the module-level aggregate list, e.g. ``USER_DEFINITIONS``."""
    return f"{re.sub(r'[^A-Za-z0-9_]', '_', table_name).upper()}_DEFINITIONS"


def index_var_name(index_name: str) -> str:
    return re.sub(r"[^A-Za-z0-9_]", "_", index_name)


def filename_for(table_name: str) -> str:
    return f"{table_name}.py"


# ------------------------------------------------------------------
# Type expression helpers
# ------------------------------------------------------------------


def split_top_level(expr: str, sep: str) -> list[str]:
    """Split *expr* on *sep* where it is not nested inside ``<>``, ``()``, ``[]`` or ``{}``."""
    parts: list[str] = []
    depth = 0
    start = 0
    i = 0
    while i < len(expr):
        ch = expr[i]
        if ch in "<([{":
            depth += 1
        elif ch in ">)]}":
            depth -= 1
        elif depth == 0 and expr.startswith(sep, i):
            parts.append(expr[start:i].strip())
            start = i + len(sep)
            i = start
            continue
        i += 1
    parts.append(expr[start:].strip())
    return parts


def unwrap_option(type_expr: str) -> str | None:
    """Inner type of ``option<T>`` or ``none | T``, else None."""
    expr = type_expr.strip()
    match = re.match(r"^option<(.+)>$", expr)
    if match:
        return match.group(1).strip()
    parts = split_top_level(expr, "|")
    if len(parts) == 2 and "none" in parts:
        return parts[1] if parts[0] == "none" else parts[0]
    return None


def parse_container(type_expr: str) -> tuple[str, str, str | None] | None:
    """Split ``array<T, N>`` / ``set<T>`` into (kind, element type, max)."""
    match = re.match(r"^(array|set)(?:<(.+)>)?$", type_expr.strip())
    if not match:
        return None
    kind, inner = match.group(1), match.group(2)
    if inner is None:
        return kind, "any", None
    args = split_top_level(inner, ",")
    size = args[1] if len(args) > 1 else None
    return kind, args[0], size


# ------------------------------------------------------------------
# Field tree
# ------------------------------------------------------------------


@dataclass
class FieldNode:
    """A field plus the nested definitions folded under it."""

    ast: FieldAST | None = None
    children: dict[str, "FieldNode"] = field(default_factory=dict)
    element: "FieldNode | None" = None


def _path_segments(path: str) -> list[str]:
    segments: list[str] = []
    for part in path.split("."):
        wildcards = 0
        while part.endswith("[*]"):
            part = part[:-3]
            wildcards += 1
        if part:
            segments.append(part)
        segments.extend(["[*]"] * wildcards)
    return segments


def build_field_tree(fields: list[FieldAST]) -> dict[str, FieldNode]:
    """Fold flat field paths into a tree of top-level nodes.

    Object wildcards (``meta.*``) are dropped; array element paths
    (``tags[*]``) become the ``element`` of their container node.

    Example:
        >>> tree = build_field_tree([FieldAST(name="tags", type="array<string>"),
        ...                          FieldAST(name="tags[*]", type="string")])
        >>> tree["tags"].element.ast.type
        'string'
    """
    roots: dict[str, FieldNode] = {}

    for field_ast in fields:
        segments = _path_segments(field_ast.name)
        if not segments or "*" in segments:
            continue

        node: FieldNode | None = None
        siblings = roots
        for segment in segments:
            if segment == "[*]":
                if node is None:
                    break
                if node.element is None:
                    node.element = FieldNode()
                node = node.element
            else:
                if node is not None:
                    siblings = node.children
                node = siblings.setdefault(segment, FieldNode())
        if node is not None:
            node.ast = field_ast

    return roots


# ------------------------------------------------------------------
# Field code rendering
# ------------------------------------------------------------------


def _literal(value: str) -> str:
    return repr(value)


def _permissions_code(permissions: Permissions) -> str | None:
    if permissions.is_empty():
        return None
    if permissions.is_uniform():
        return _literal(permissions.select)
    items = ", ".join(f"{_literal(op)}: {_literal(expr)}" for op, expr in permissions.items())
    return "{" + items + "}"


def _option_args(field_ast: FieldAST | None) -> list[str]:
    if field_ast is None:
        return []
    args = []
    if field_ast.default is not None:
        args.append(f"default={_literal(field_ast.default)}")
    if field_ast.value is not None:
        args.append(f"value={_literal(field_ast.value)}")
    if field_ast.assert_ is not None:
        args.append(f"assert_={_literal(field_ast.assert_)}")
    if field_ast.readonly:
        args.append("readonly=True")
    if field_ast.flex:
        args.append("flexible=True")
    if field_ast.comment is not None:
        args.append(f"comment={_literal(field_ast.comment)}")
    permissions = _permissions_code(field_ast.permissions)
    if permissions:
        args.append(f"permissions={permissions}")
    return args


def _call(builder: str, args: list[str]) -> str:
    return f"Field.{builder}({', '.join(args)})"


def type_to_code(
    type_expr: str,
    options: list[str],
    children: dict[str, FieldNode] | None = None,
    element: FieldNode | None = None,
    depth: int = 1,
) -> str:
    """Render the ``Field`` builder call for a type expression.

    Example:
        >>> type_to_code("option<record<user>>", [])
        "Field.option(Field.record('user'))"
    """
    expr = type_expr.strip()
    children = children or {}

    inner = unwrap_option(expr)
    if inner is not None:
        inner_code = type_to_code(inner, [], children, element, depth)
        return _call("option", [inner_code, *options])

    if expr in _SCALAR_TYPES:
        return _call(expr, options)

    container = parse_container(expr)
    if container:
        kind, element_type, size = container
        if element is not None:
            element_code = node_to_code(element, depth, fallback_type=element_type)
        else:
            element_code = type_to_code(element_type, [], depth=depth)
        args = [element_code]
        if size is not None:
            args.append(f"max={size}")
        return _call(kind, args + options)

    match = re.match(r"^record<(\w+)>$", expr)
    if match:
        return _call("record", [_literal(match.group(1)), *options])
    if expr == "record":
        return _call("record", options)

    match = re.match(r"^geometry<(\w+)>$", expr)
    if match:
        return _call("geometry", [_literal(match.group(1)), *options])

    if expr == "object":
        if not children:
            return _call("object", options)
        pad = INDENT * (depth + 1)
        entries = "".join(
            f"{pad}{_literal(name)}: {node_to_code(child, depth + 1)},\n"
            for name, child in children.items()
        )
        body = "{\n" + entries + INDENT * depth + "}"
        return _call("object", [body, *options])

    return _call("custom", [_literal(expr), *options])


def node_to_code(node: FieldNode, depth: int = 1, fallback_type: str = "any") -> str:
    """Render a field node, including its nested object entries and element."""
    if node.ast is not None:
        type_expr = node.ast.type
    else:
        type_expr = "object" if node.children else fallback_type
    return type_to_code(type_expr, _option_args(node.ast), node.children, node.element, depth)


def generate_field_code(table: TableAST, field_name: str) -> str | None:
    """Render the builder call for one top-level field of *table*."""
    node = build_field_tree(table.fields).get(field_name)
    if node is None:
        return None
    return node_to_code(node, depth=2)


# ------------------------------------------------------------------
# Module rendering
# ------------------------------------------------------------------


def _class_keywords(table: TableAST) -> list[str]:
    keywords = [f"table={_literal(table.name)}"]
    if table.type == TableType.RELATION:
        keywords.append("type='relation'")
    if table.type == TableType.VIEW and table.view_query:
        keywords.append(f"view={_literal(table.view_query)}")
    keywords.append(f"schemafull={table.schemafull}")
    if table.drop:
        keywords.append("drop=True")
    if table.comment is not None:
        keywords.append(f"comment={_literal(table.comment)}")
    permissions = _permissions_code(table.permissions)
    if permissions:
        keywords.append(f"permissions={permissions}")
    return keywords


def generate_index_code(table: TableAST, index: IndexAST, model_name: str | None = None) -> str | None:
    """Render an ``Index(...)`` assignment, or None for search/vector indexes.

    *model_name* overrides the class the index is bound to, for files whose
    model class was renamed by hand.
    """
    if index.search or index.vector:
        return None
    args = [
        model_name or class_name(table.name),
        f"name={_literal(index.name)}",
        f"fields=[{', '.join(_literal(c) for c in index.columns)}]",
    ]
    if index.unique:
        args.append("unique=True")
    if index.comment is not None:
        args.append(f"comment={_literal(index.comment)}")
    return f"{index_var_name(index.name)} = Index({', '.join(args)})"


def generate_table_code(table: TableAST) -> str:
    """Render the complete model module for one table."""
    cls = class_name(table.name)
    lines = [
        IMPORT_LINE,
        "",
        "",
        f"class {cls}(Table, {', '.join(_class_keywords(table))}):",
    ]

    tree = build_field_tree(table.fields)
    if tree:
        lines.append(f"{INDENT}fields = {{")
        for name, node in tree.items():
            lines.append(f"{INDENT * 2}{_literal(name)}: {node_to_code(node, depth=2)},")
        lines.append(f"{INDENT}}}")
    else:
        lines.append(f"{INDENT}fields = {{}}")

    definitions = [cls]
    index_lines = []
    for index in table.indexes:
        code = generate_index_code(table, index)
        if code is None:
            kind = "vector" if index.vector else "search"
            index_lines.append(f"# {kind} index '{index.name}' is managed in the database")
            continue
        index_lines.append(code)
        definitions.append(index_var_name(index.name))

    lines.extend(["", ""])
    if index_lines:
        lines.extend([*index_lines, ""])
    lines.extend([f"{definitions_name(table.name)} = [{', '.join(definitions)}]", ""])
    return "\n".join(lines)


def generate_code(schema: SchemaAST) -> dict[str, str]:
    """Render one module per table, keyed by file name."""
    return {filename_for(table.name): generate_table_code(table) for table in schema.tables}
