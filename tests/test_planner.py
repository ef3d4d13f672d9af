"""Tests for file change planning during pull."""

from surql_sync.codegen.generator import generate_code, generate_table_code
from surql_sync.codegen.planner import (
    FileChange,
    FileChangeType,
    format_file_changes,
    plan_file_changes,
    summarize_file_changes,
)
from surql_sync.schema.models import FieldAST, SchemaAST, TableAST


def _user(*extra: FieldAST) -> TableAST:
    return TableAST(name="user", fields=[FieldAST(name="email", type="string"), *extra])


# ------------------------------------------------------------------
# Without a code schema
# ------------------------------------------------------------------


class TestPlanWithoutCodeSchema:
    """Verify planning from file content alone."""

    def test_create_missing_file(self):
        """A table without a file is created with the generated module."""
        db_schema = SchemaAST(tables=[_user()])
        changes = plan_file_changes(db_schema, {})
        assert len(changes) == 1
        assert changes[0].type == FileChangeType.CREATE
        assert changes[0].filename == "user.py"
        assert changes[0].new_content == generate_code(db_schema)["user.py"]
        assert changes[0].old_content is None

    def test_identical_file_skipped(self):
        """A file equal to the generated content needs no change."""
        db_schema = SchemaAST(tables=[_user()])
        assert plan_file_changes(db_schema, generate_code(db_schema)) == []

    def test_full_update(self):
        """Differing content is replaced wholesale."""
        db_schema = SchemaAST(tables=[_user()])
        changes = plan_file_changes(db_schema, {"user.py": "# old\n"})
        assert changes[0].type == FileChangeType.UPDATE
        assert changes[0].old_content == "# old\n"
        assert changes[0].new_content == generate_code(db_schema)["user.py"]
        assert not changes[0].is_merge

    def test_delete_comes_last(self):
        """Files without a database table are deleted after other changes."""
        db_schema = SchemaAST(tables=[_user()])
        changes = plan_file_changes(db_schema, {"old.py": "x = 1\n"})
        assert [(c.filename, c.type) for c in changes] == [
            ("user.py", FileChangeType.CREATE),
            ("old.py", FileChangeType.DELETE),
        ]
        assert changes[1].new_content == ""
        assert changes[1].old_content == "x = 1\n"


# ------------------------------------------------------------------
# With a code schema
# ------------------------------------------------------------------


class TestPlanWithCodeSchema:
    """Verify semantic skipping and smart-merge updates."""

    def test_formatting_only_difference_skipped(self):
        """Hand-formatted files describing the same schema are left alone."""
        db_schema = SchemaAST(tables=[_user()])
        existing = {"user.py": "# hand edited\n" + generate_code(db_schema)["user.py"]}
        assert plan_file_changes(db_schema, existing, code_schema=db_schema) == []

    def test_merge_update(self):
        """New database fields are merged into the existing file."""
        code_table = _user()
        db_schema = SchemaAST(tables=[_user(FieldAST(name="name", type="string"))])
        existing = {"user.py": generate_table_code(code_table)}

        changes = plan_file_changes(db_schema, existing, code_schema=SchemaAST(tables=[code_table]))

        assert len(changes) == 1
        change = changes[0]
        assert change.type == FileChangeType.UPDATE
        assert change.is_merge
        assert change.added_fields == ["name"]
        assert "'name': Field.string()," in change.new_content
        assert "'email': Field.string()," in change.new_content

    def test_table_missing_from_code_gets_full_update(self):
        """A file whose table the code schema lacks is regenerated."""
        db_schema = SchemaAST(tables=[_user(), TableAST(name="post")])
        code_schema = SchemaAST(tables=[_user()])
        existing = {
            "user.py": generate_code(db_schema)["user.py"],
            "post.py": "# stale\n",
        }

        changes = plan_file_changes(db_schema, existing, code_schema=code_schema)

        assert [(c.filename, c.type) for c in changes] == [("post.py", FileChangeType.UPDATE)]
        assert changes[0].new_content == generate_code(db_schema)["post.py"]
        assert not changes[0].is_merge


# ------------------------------------------------------------------
# Reporting
# ------------------------------------------------------------------


class TestFileChangeReport:
    """Verify summary counts and text report."""

    def _changes(self) -> list[FileChange]:
        return [
            FileChange(filename="user.py", type=FileChangeType.CREATE, new_content="a"),
            FileChange(
                filename="post.py",
                type=FileChangeType.UPDATE,
                new_content="b",
                old_content="c",
                added_fields=["title", "body"],
                removed_indexes=["idx_old"],
            ),
            FileChange(filename="old.py", type=FileChangeType.DELETE, new_content="", old_content="d"),
        ]

    def test_summarize(self):
        """Counts per kind plus total."""
        assert summarize_file_changes(self._changes()) == {
            "created": 1,
            "updated": 1,
            "deleted": 1,
            "total": 3,
        }

    def test_format_empty(self):
        """Nothing to do."""
        assert format_file_changes([]) == "No file changes needed."

    def test_format_sections(self):
        """Each kind gets a section; merge details are listed."""
        assert format_file_changes(self._changes()) == (
            "\nFiles to create (1):\n"
            "  + user.py\n"
            "\nFiles to update (1):\n"
            "  ~ post.py\n"
            "      added fields: title, body\n"
            "      commented out indexes: idx_old\n"
            "\nFiles to delete (1):\n"
            "  - old.py"
        )
