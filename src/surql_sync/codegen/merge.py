"""Non-destructive merging of database changes into existing model files.

Instead of regenerating a model module, the smart merge edits it in place:

1. New fields are inserted at the end of the ``fields = {...}`` block
2. New indexes are inserted before the ``<TABLE>_DEFINITIONS`` aggregate
   and appended to it
3. Fields and indexes that no longer exist in the database are commented
   out, never deleted

Everything else in the file -- hand-written methods, comments, formatting --
is left byte-for-byte untouched. Nested (``address.city``) and array
element (``tags[*]``) fields need structural edits and are left to manual
review.

Usage:
    from surql_sync.codegen.merge import merge_table_code

    result = merge_table_code(Path("models/user.py").read_text(), db_table, code_table)
    if result.has_changes:
        Path("models/user.py").write_text(result.content)
"""

import re
from collections.abc import Iterator
from dataclasses import dataclass, field

from surql_sync.codegen.generator import (
    class_name,
    definitions_name,
    generate_field_code,
    generate_index_code,
    index_var_name,
)
from surql_sync.schema.comparator import compare_fields, compare_indexes
from surql_sync.schema.models import ChangeType, SyncDirection, TableAST

ADDED_MARKER = "# Added from database"
REMOVED_MARKER = "# Removed from database - uncomment if needed"

_FIELDS_BLOCK = re.compile(r"^[ \t]+fields\s*=\s*\{", re.MULTILINE)


@dataclass
class MergeResult:
    """Edited source text plus what was touched."""

    content: str
    added_fields: list[str] = field(default_factory=list)
    added_indexes: list[str] = field(default_factory=list)
    removed_fields: list[str] = field(default_factory=list)
    removed_indexes: list[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.added_fields or self.added_indexes or self.removed_fields or self.removed_indexes)


# ------------------------------------------------------------------
# Source scanning
# ------------------------------------------------------------------


def _string_end(code: str, start: int) -> int:
    """Index just past the string literal opening at *start*."""
    quote = code[start : start + 3] if code[start : start + 3] in ('"""', "'''") else code[start]
    i = start + len(quote)
    while i < len(code):
        if code[i] == "\\":
            i += 2
            continue
        if code.startswith(quote, i):
            return i + len(quote)
        if len(quote) == 1 and code[i] == "\n":
            return i
        i += 1
    return len(code)


def scan_code(code: str, start: int = 0) -> Iterator[tuple[int, str]]:
    """Yield ``(index, char)`` for Python source outside comments.

    A string literal (single, double or triple quoted) is yielded once, as
    its opening quote character, and its contents are skipped, so brackets
    and commas inside strings are never seen by callers.
    """
    i = start
    n = len(code)
    while i < n:
        ch = code[i]
        if ch == "#":
            end = code.find("\n", i)
            i = n if end == -1 else end
            continue
        if ch in "'\"":
            yield i, ch
            i = _string_end(code, i)
            continue
        yield i, ch
        i += 1


def _matching_close(code: str, open_pos: int) -> int | None:
    depth = 0
    for i, ch in scan_code(code, open_pos):
        if ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
            if depth == 0:
                return i
    return None


def _find_fields_block(code: str) -> tuple[int, int] | None:
    """Positions of the ``{`` and matching ``}`` of the fields mapping."""
    match = _FIELDS_BLOCK.search(code)
    if not match:
        return None
    open_pos = match.end() - 1
    close_pos = _matching_close(code, open_pos)
    if close_pos is None:
        return None
    return open_pos, close_pos


def _line_indent(code: str, pos: int) -> str:
    line_start = code.rfind("\n", 0, pos) + 1
    return re.match(r"[ \t]*", code[line_start:]).group(0)


def _entry_indent(code: str, open_pos: int, close_pos: int) -> str:
    body = code[open_pos + 1 : close_pos]
    match = re.search(r"\n([ \t]+)['\"]", body)
    if match:
        return match.group(1)
    return _line_indent(code, open_pos) + "    "


def _comment_lines(text: str, first_indent: str) -> str:
    """Prefix every line of *text* with ``# `` after its own indentation."""
    lines = text.split("\n")
    commented = [f"{first_indent}# {lines[0]}"]
    for line in lines[1:]:
        indent = re.match(r"[ \t]*", line).group(0)
        commented.append(f"{indent}# {line[len(indent):]}")
    return "\n".join(commented)


# ------------------------------------------------------------------
# Edits
# ------------------------------------------------------------------


def insert_field(code: str, field_name: str, field_code: str) -> str | None:
    """Insert a field entry before the close of the fields mapping.

    Returns None if the file has no ``fields = {...}`` block.
    """
    block = _find_fields_block(code)
    if block is None:
        return None
    open_pos, close_pos = block
    indent = _entry_indent(code, open_pos, close_pos)

    # End of the last token inside the block, ignoring comments
    last_end = None
    for i, ch in scan_code(code[:close_pos], open_pos + 1):
        if ch in "'\"":
            last_end = _string_end(code, i)
        elif not ch.isspace():
            last_end = i + 1

    if last_end is not None and code[last_end - 1] != ",":
        code = code[:last_end] + "," + code[last_end:]
        close_pos += 1

    content_end = open_pos + 1 + len(code[open_pos + 1 : close_pos].rstrip())
    insertion = f"\n{indent}{ADDED_MARKER}\n{indent}{field_name!r}: {field_code},"
    if "\n" not in code[content_end:close_pos]:
        insertion += "\n" + _line_indent(code, open_pos)

    return code[:content_end] + insertion + code[content_end:]


def _find_field_entry(code: str, field_name: str) -> int | None:
    """Start of a top-level ``"name": Field...`` entry in the fields mapping."""
    block = _find_fields_block(code)
    if block is None:
        return None
    open_pos, close_pos = block

    key = re.compile(rf"(['\"]){re.escape(field_name)}\1\s*:\s*(?:Field\.|\{{)")
    depth = 0
    for i, ch in scan_code(code[:close_pos], open_pos + 1):
        if ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
        elif ch in "'\"" and depth == 0 and key.match(code, i):
            return i
    return None


def comment_out_field(code: str, field_name: str) -> str | None:
    """Comment out a field entry, including every line it spans.

    The entry ends at the first comma at its own nesting level, or just
    before the brace closing the mapping when it is the last entry.
    Returns None if the entry cannot be found.
    """
    start = _find_field_entry(code, field_name)
    if start is None:
        return None

    end = None
    depth = 0
    for i, ch in scan_code(code, start):
        if ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
            if depth < 0:
                end = i
                while end > start and code[end - 1].isspace():
                    end -= 1
                break
        elif ch == "," and depth == 0:
            end = i + 1
            break
    if end is None:
        return None

    line_start = code.rfind("\n", 0, start) + 1
    lead = code[line_start:start]
    if lead.strip():
        # Entry shares its line with preceding code; move it to its own line
        indent = _entry_indent(code, *_find_fields_block(code))
        cut, prefix = start, "\n"
    else:
        indent = lead
        cut, prefix = line_start, ""

    rest_of_line = code[end:].split("\n", 1)[0].strip()
    suffix = f"\n{indent}" if rest_of_line and not rest_of_line.startswith("#") else ""

    replacement = f"{indent}{REMOVED_MARKER}\n{_comment_lines(code[start:end], indent)}"
    return code[:cut] + prefix + replacement + suffix + code[end:]


def _definitions_list(code: str, table_name: str) -> re.Match | None:
    pattern = re.compile(
        rf"^({re.escape(definitions_name(table_name))}\s*=\s*\[)(.*?)(\])",
        re.MULTILINE | re.DOTALL,
    )
    return pattern.search(code)


def _model_class_name(code: str, table_name: str) -> str:
    match = re.search(r"^class\s+(\w+)\s*\(\s*Table\b", code, re.MULTILINE)
    return match.group(1) if match else class_name(table_name)


def insert_index(code: str, table_name: str, var_name: str, index_code: str) -> str:
    """Insert an index before the definitions aggregate and register it there.

    Without an aggregate the index is appended to the end of the file.
    """
    aggregate = re.search(
        rf"^{re.escape(definitions_name(table_name))}\s*=", code, re.MULTILINE
    )
    if aggregate is None:
        return f"{code.rstrip()}\n\n\n{ADDED_MARKER}\n{index_code}\n"

    code = code[: aggregate.start()] + f"{ADDED_MARKER}\n{index_code}\n\n" + code[aggregate.start() :]

    listing = _definitions_list(code, table_name)
    if listing is None:
        return code
    items = listing.group(2)
    if re.search(rf"\b{re.escape(var_name)}\b", items):
        return code

    stripped = items.rstrip()
    tail = items[len(stripped) :]
    if not stripped.strip():
        new_items = var_name
    elif stripped.endswith(","):
        new_items = f"{stripped} {var_name}{tail}"
    else:
        new_items = f"{stripped}, {var_name}{tail}"
    return code[: listing.start(2)] + new_items + code[listing.end(2) :]


def comment_out_index(code: str, table_name: str, var_name: str) -> str | None:
    """Comment out a module-level ``var = Index(...)`` and drop it from the aggregate.

    Returns None if the assignment cannot be found.
    """
    match = re.search(rf"^{re.escape(var_name)}\s*=\s*Index\(", code, re.MULTILINE)
    if match is None:
        return None

    start = match.start()
    end = _matching_close(code, match.end() - 1)
    if end is None:
        return None
    end += 1

    replacement = f"{REMOVED_MARKER}\n{_comment_lines(code[start:end], '')}"
    code = code[:start] + replacement + code[end:]

    listing = _definitions_list(code, table_name)
    if listing is not None:
        items = _remove_list_item(listing.group(2), var_name)
        code = code[: listing.start(2)] + items + code[listing.end(2) :]
    return code


def _remove_list_item(items: str, name: str) -> str:
    """Drop *name* from a comma-separated list body, wherever it sits."""
    ident = re.escape(name)
    for pattern in (rf",\s*\b{ident}\b", rf"\b{ident}\b\s*,\s*", rf"\b{ident}\b"):
        new_items, count = re.subn(pattern, "", items, count=1)
        if count:
            return new_items
    return items


# ------------------------------------------------------------------
# Merge
# ------------------------------------------------------------------


def merge_table_code(existing_code: str, db_table: TableAST, code_table: TableAST) -> MergeResult:
    """Apply the database-side changes for one table to its model source.

    Args:
        existing_code: Current content of the model module.
        db_table: The table as it exists in the database (authoritative).
        code_table: The table as extracted from the model module.

    Returns:
        ``MergeResult`` whose ``content`` is *existing_code* with only the
        targeted entries added or commented out.
    """
    result = MergeResult(content=existing_code)
    code = existing_code

    field_changes = compare_fields(db_table, code_table, SyncDirection.PULL)
    index_changes = compare_indexes(db_table, code_table, SyncDirection.PULL)

    for change in field_changes:
        if change.type != ChangeType.FIELD_ADDED or not change.field:
            continue
        if "." in change.field or "[*]" in change.field:
            continue
        field_code = generate_field_code(db_table, change.field)
        if field_code is None:
            continue
        updated = insert_field(code, change.field, field_code)
        if updated is not None:
            code = updated
            result.added_fields.append(change.field)

    for change in index_changes:
        if change.type != ChangeType.INDEX_ADDED or not change.index:
            continue
        index = db_table.get_index(change.index)
        if index is None:
            continue
        model = _model_class_name(code, db_table.name)
        index_code = generate_index_code(db_table, index, model_name=model)
        if index_code is None:
            continue
        code = insert_index(code, db_table.name, index_var_name(index.name), index_code)
        result.added_indexes.append(index.name)

    for change in field_changes:
        if change.type != ChangeType.FIELD_REMOVED or not change.field:
            continue
        if "." in change.field or "[*]" in change.field:
            continue
        updated = comment_out_field(code, change.field)
        if updated is not None:
            code = updated
            result.removed_fields.append(change.field)

    for change in index_changes:
        if change.type != ChangeType.INDEX_REMOVED or not change.index:
            continue
        updated = comment_out_index(code, db_table.name, index_var_name(change.index))
        if updated is not None:
            code = updated
            result.removed_indexes.append(change.index)

    result.content = code
    return result
