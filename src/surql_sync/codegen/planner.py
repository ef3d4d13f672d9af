"""Plan file changes that bring model modules in line with the database.

Generates a module for every table in the database schema and compares it
with the existing file of the same name:

- no existing file -> ``create`` with the generated content
- content differs, code schema known -> ``update`` through the smart merge,
  only for tables whose code-side AST differs semantically
- content differs, no code schema -> ``update`` with the generated content
- existing file without a database table -> ``delete``

Planning is pure; writing the planned content to disk is the caller's job.

Usage:
    from surql_sync.codegen.planner import plan_file_changes, format_file_changes

    changes = plan_file_changes(db_schema, read_model_files("models"), code_schema)
    print(format_file_changes(changes))
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from surql_sync.codegen.generator import generate_code
from surql_sync.codegen.merge import merge_table_code
from surql_sync.schema.comparator import compare_schemas
from surql_sync.schema.models import SchemaAST, SyncDirection


class FileChangeType(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass
class FileChange:
    """A planned change to one model file.

    Attributes:
        filename: File name relative to the models directory.
        type: create, update or delete.
        old_content: Current content (None for creates).
        new_content: Content to write (empty for deletes).
        added_fields: Fields inserted by the smart merge.
        added_indexes: Indexes inserted by the smart merge.
        removed_fields: Fields commented out by the smart merge.
        removed_indexes: Indexes commented out by the smart merge.
    """

    filename: str
    type: FileChangeType
    new_content: str
    old_content: str | None = None
    added_fields: list[str] = field(default_factory=list)
    added_indexes: list[str] = field(default_factory=list)
    removed_fields: list[str] = field(default_factory=list)
    removed_indexes: list[str] = field(default_factory=list)

    @property
    def is_merge(self) -> bool:
        return bool(self.added_fields or self.added_indexes or self.removed_fields or self.removed_indexes)


def _table_for_file(filename: str) -> str:
    return Path(filename).stem


def plan_file_changes(
    db_schema: SchemaAST,
    existing_files: dict[str, str],
    code_schema: SchemaAST | None = None,
) -> list[FileChange]:
    """Plan creates, updates and deletes for model files.

    Args:
        db_schema: The database schema (authoritative).
        existing_files: Current model files, file name -> content.
        code_schema: Schema extracted from the existing model files. When
            given, files are only touched for tables with semantic
            differences, and updates go through the smart merge.

    Returns:
        File changes: creates and updates in database table order, then
        deletes in ``existing_files`` order.
    """
    changes: list[FileChange] = []
    generated = generate_code(db_schema)

    tables_with_changes: set[str] = set()
    if code_schema is not None:
        for change in compare_schemas(db_schema, code_schema, SyncDirection.PULL):
            tables_with_changes.add(change.table)

    for filename, new_content in generated.items():
        old_content = existing_files.get(filename)
        table_name = _table_for_file(filename)

        if old_content is None:
            changes.append(FileChange(filename=filename, type=FileChangeType.CREATE, new_content=new_content))
            continue

        if old_content == new_content:
            continue

        if code_schema is None:
            changes.append(
                FileChange(
                    filename=filename,
                    type=FileChangeType.UPDATE,
                    old_content=old_content,
                    new_content=new_content,
                )
            )
            continue

        # Formatting-only differences are left alone
        if table_name not in tables_with_changes:
            continue

        db_table = db_schema.get_table(table_name)
        code_table = code_schema.get_table(table_name)
        if db_table is None or code_table is None:
            changes.append(
                FileChange(
                    filename=filename,
                    type=FileChangeType.UPDATE,
                    old_content=old_content,
                    new_content=new_content,
                )
            )
            continue

        merged = merge_table_code(old_content, db_table, code_table)
        if merged.content == old_content:
            continue
        changes.append(
            FileChange(
                filename=filename,
                type=FileChangeType.UPDATE,
                old_content=old_content,
                new_content=merged.content,
                added_fields=merged.added_fields,
                added_indexes=merged.added_indexes,
                removed_fields=merged.removed_fields,
                removed_indexes=merged.removed_indexes,
            )
        )

    for filename, old_content in existing_files.items():
        if filename not in generated:
            changes.append(
                FileChange(
                    filename=filename,
                    type=FileChangeType.DELETE,
                    old_content=old_content,
                    new_content="",
                )
            )

    return changes


def summarize_file_changes(changes: list[FileChange]) -> dict[str, int]:
    """Count changes by kind.

    Example:
        >>> summarize_file_changes([])
        {'created': 0, 'updated': 0, 'deleted': 0, 'total': 0}
    """
    return {
        "created": sum(1 for c in changes if c.type == FileChangeType.CREATE),
        "updated": sum(1 for c in changes if c.type == FileChangeType.UPDATE),
        "deleted": sum(1 for c in changes if c.type == FileChangeType.DELETE),
        "total": len(changes),
    }


def format_file_changes(changes: list[FileChange]) -> str:
    """Format planned file changes as a plain-text report."""
    if not changes:
        return "No file changes needed."

    lines: list[str] = []
    sections = (
        (FileChangeType.CREATE, "Files to create", "+"),
        (FileChangeType.UPDATE, "Files to update", "~"),
        (FileChangeType.DELETE, "Files to delete", "-"),
    )
    for change_type, title, icon in sections:
        selected = [c for c in changes if c.type == change_type]
        if not selected:
            continue
        lines.append(f"\n{title} ({len(selected)}):")
        for change in selected:
            lines.append(f"  {icon} {change.filename}")
            for label, names in (
                ("added fields", change.added_fields),
                ("added indexes", change.added_indexes),
                ("commented out fields", change.removed_fields),
                ("commented out indexes", change.removed_indexes),
            ):
                if names:
                    lines.append(f"      {label}: {', '.join(names)}")

    return "\n".join(lines)
