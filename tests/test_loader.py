"""Tests for loading model modules from a directory."""

import textwrap

import pytest

from surql_sync.orm import Index, Table
from surql_sync.schema.extractor import extract_schema_from_definables
from surql_sync.schema.loader import load_definables, load_module_definables, read_model_files

USER_MODULE = textwrap.dedent(
    """\
    from surql_sync.orm import Field, Index, Table


    class User(Table, table="user"):
        fields = {
            "email": Field.string(),
        }


    idx_email = Index(User, name="idx_email", fields=["email"], unique=True)

    USER_DEFINITIONS = [User, idx_email]
    """
)


@pytest.fixture
def models_dir(tmp_path):
    """Create a models directory with one model, one helper and one broken file."""
    directory = tmp_path / "models"
    directory.mkdir()
    (directory / "user.py").write_text(USER_MODULE)
    (directory / "_helpers.py").write_text("raise RuntimeError('never imported')\n")
    (directory / "broken.py").write_text("raise RuntimeError('boom')\n")
    (directory / "notes.txt").write_text("not python")
    return directory


class TestReadModelFiles:
    """Verify raw file reading."""

    def test_reads_python_files(self, models_dir):
        """Only non-underscore .py files are read."""
        files = read_model_files(models_dir)
        assert sorted(files) == ["broken.py", "user.py"]
        assert files["user.py"] == USER_MODULE

    def test_missing_directory(self, tmp_path):
        """A missing directory yields no files."""
        assert read_model_files(tmp_path / "missing") == {}


class TestLoadDefinables:
    """Verify importing model modules by path."""

    def test_load_module(self, models_dir):
        """A module exposes its Table subclasses and Index instances."""
        definables = load_module_definables(models_dir / "user.py")
        assert len(definables) == 2
        assert any(isinstance(d, Index) for d in definables)
        models = [d for d in definables if isinstance(d, type)]
        assert len(models) == 1
        assert issubclass(models[0], Table)
        assert models[0] is not Table

    def test_broken_module_skipped(self, models_dir, caplog):
        """A module that fails to import is logged and skipped."""
        definables = load_definables(models_dir)
        schema = extract_schema_from_definables(definables)
        assert schema.table_names == ["user"]
        assert schema.get_table("user").get_index("idx_email").unique is True
        assert "broken.py" in caplog.text

    def test_missing_directory(self, tmp_path):
        """A missing directory raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_definables(tmp_path / "missing")
